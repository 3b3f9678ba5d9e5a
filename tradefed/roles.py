# Copyright (c) 2025 Jean Disset
# MIT License - see LICENSE file for details.
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional

from tradefed.interfaces import (
    BuildProvider,
    DeviceMonitor,
    DeviceRecovery,
    InvocationListener,
    LogOutput,
    RemoteTest,
    TargetPreparer,
)
from tradefed.options import CommandOptions, DeviceSelectionOptions
from tradefed.stubs import (
    StdoutLogger,
    StubBuildProvider,
    StubTargetPreparer,
    StubTest,
    TextResultReporter,
    WaitDeviceRecovery,
)

BUILD_PROVIDER_NAME = "build_provider"
TARGET_PREPARER_NAME = "target_preparer"
TEST_NAME = "test"
DEVICE_RECOVERY_NAME = "device_recovery"
LOGGER_NAME = "logger"
RESULT_REPORTER_NAME = "result_reporter"
CMD_OPTIONS_NAME = "cmd_options"
DEVICE_OPTIONS_NAME = "device_options"

DEVICE_MONITOR_NAME = "device_monitor"
DEVICE_REQUIREMENTS_NAME = "device_requirements"


@dataclass(frozen=True)
class RoleInfo:
    """a built-in role: the type its objects must have and how many it holds."""

    name: str
    expected_type: type
    is_list: bool
    default_factory: Optional[Callable[[], Any]] = None


def _table(*roles: RoleInfo) -> Mapping[str, RoleInfo]:
    return MappingProxyType({r.name: r for r in roles})


INVOCATION_ROLES: Mapping[str, RoleInfo] = _table(
    RoleInfo(BUILD_PROVIDER_NAME, BuildProvider, False, StubBuildProvider),
    RoleInfo(TARGET_PREPARER_NAME, TargetPreparer, True, StubTargetPreparer),
    RoleInfo(TEST_NAME, RemoteTest, True, StubTest),
    RoleInfo(DEVICE_RECOVERY_NAME, DeviceRecovery, False, WaitDeviceRecovery),
    RoleInfo(LOGGER_NAME, LogOutput, False, StdoutLogger),
    RoleInfo(RESULT_REPORTER_NAME, InvocationListener, True, TextResultReporter),
    RoleInfo(CMD_OPTIONS_NAME, CommandOptions, False, CommandOptions),
    RoleInfo(DEVICE_OPTIONS_NAME, DeviceSelectionOptions, False, DeviceSelectionOptions),
)

GLOBAL_ROLES: Mapping[str, RoleInfo] = _table(
    RoleInfo(DEVICE_MONITOR_NAME, DeviceMonitor, False),
    RoleInfo(DEVICE_REQUIREMENTS_NAME, DeviceSelectionOptions, False, DeviceSelectionOptions),
)
