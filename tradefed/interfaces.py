# Copyright (c) 2025 Jean Disset
# MIT License - see LICENSE file for details.
"""
collaborator interfaces expected by the built-in configuration roles.

the configuration layer only instantiates, configures and type-checks these
objects. what they do during an invocation is up to their implementations.
"""
from abc import ABC, abstractmethod
from typing import Any, Optional


class BuildProvider(ABC):
    @abstractmethod
    def get_build(self) -> Optional[Any]:
        """returns the build to test, or None if there is nothing to test."""

    def build_not_tested(self, build_info: Any) -> None:
        pass

    def clean_up(self, build_info: Any) -> None:
        pass


class TargetPreparer(ABC):
    @abstractmethod
    def set_up(self, device: Any, build_info: Any) -> None:
        """prepares `device` for testing `build_info`."""


class RemoteTest(ABC):
    @abstractmethod
    def run(self, listener: "InvocationListener") -> None:
        """runs the test, reporting results to `listener`."""


class DeviceRecovery(ABC):
    @abstractmethod
    def recover_device(self, device_state_monitor: Any, recover_until_online: bool = False) -> None:
        ...


class LogOutput(ABC):
    """a leveled log sink."""

    @abstractmethod
    def print_log(self, level: str, tag: str, message: str) -> None:
        ...

    @abstractmethod
    def get_log_level(self) -> str:
        ...

    def install(self) -> None:
        """starts routing python logging to this sink. undone by `close`."""

    def close(self) -> None:
        pass


class InvocationListener(ABC):
    """receives invocation lifecycle events. all callbacks are no-ops by default."""

    def invocation_started(self, build_info: Any) -> None:
        pass

    def invocation_failed(self, cause: BaseException) -> None:
        pass

    def invocation_ended(self, elapsed_time: float) -> None:
        pass


class DeviceMonitor(ABC):
    @abstractmethod
    def run(self) -> None:
        ...

    def stop(self) -> None:
        pass


class ConfigurationReceiver(ABC):
    """objects that want the configuration they were added to."""

    @abstractmethod
    def set_configuration(self, configuration: Any) -> None:
        ...
