# Copyright (c) 2025 Jean Disset
# MIT License - see LICENSE file for details.
"""default implementations of the built-in roles. none of them touches a device."""
import logging
from dataclasses import dataclass, field
from typing import Annotated, Any, Dict, Optional

from rich.console import Console
from rich.logging import RichHandler

from tradefed.interfaces import (
    BuildProvider,
    DeviceRecovery,
    InvocationListener,
    LogOutput,
    RemoteTest,
    TargetPreparer,
)
from tradefed.option import Option, option_class

logger = logging.getLogger(__name__)


@dataclass
class BuildInfo:
    build_id: int
    test_target: str
    build_name: str
    attributes: Dict[str, str] = field(default_factory=dict)


@option_class("stub")
class StubBuildProvider(BuildProvider):
    build_id: Annotated[int, Option("build-id", description="build id to supply.")]
    test_target: Annotated[str, Option("test-target", description="test target name to supply.")]
    build_name: Annotated[str, Option("build-name", description="build name to supply.")]
    build_attributes: Annotated[
        Dict[str, str], Option("build-attribute", description="build attributes to supply.")
    ]

    def __init__(self):
        self.build_id = 0
        self.test_target = "stub"
        self.build_name = "stub"
        self.build_attributes = {}

    def get_build(self) -> BuildInfo:
        return BuildInfo(
            build_id=self.build_id,
            test_target=self.test_target,
            build_name=self.build_name,
            attributes=dict(self.build_attributes),
        )


class StubTargetPreparer(TargetPreparer):
    def set_up(self, device: Any, build_info: Any) -> None:
        pass


class StubTest(RemoteTest):
    def run(self, listener: InvocationListener) -> None:
        logger.debug("stub test: nothing to run")


class WaitDeviceRecovery(DeviceRecovery):
    wait_time: Annotated[
        int,
        Option(
            "device-wait-time",
            description="maximum time in ms to wait for a single device recovery command",
        ),
    ]

    def __init__(self):
        self.wait_time = 4 * 60 * 1000

    def recover_device(self, device_state_monitor: Any, recover_until_online: bool = False) -> None:
        logger.info(f"waiting up to {self.wait_time} ms for device recovery")


LOG_LEVELS = ('VERBOSE', 'DEBUG', 'INFO', 'WARN', 'ERROR')
_PYTHON_LEVELS = {
    'VERBOSE': logging.DEBUG,
    'DEBUG': logging.DEBUG,
    'INFO': logging.INFO,
    'WARN': logging.WARNING,
    'ERROR': logging.ERROR,
}


class StdoutLogger(LogOutput):
    """logs to the console through rich."""

    log_level: Annotated[
        str,
        Option("log-level", description=f"minimum log level to display. One of {', '.join(LOG_LEVELS)}."),
    ]

    def __init__(self):
        self.log_level = 'INFO'
        self._handler = None
        self._logger_name = None
        self._saved_state = None

    def _python_level(self) -> int:
        return _PYTHON_LEVELS.get(self.log_level.upper(), logging.INFO)

    def install(self, logger_name: str = 'tradefed') -> None:
        """routes `logger_name` to stderr at the configured level.

        installing twice keeps a single handler. the logger stops propagating
        to the root until `close` restores it.
        """
        target = logging.getLogger(logger_name)
        if self._handler is None:
            self._handler = RichHandler(
                console=Console(stderr=True), rich_tracebacks=True, show_path=False
            )
            self._saved_state = (target.level, target.propagate)
            target.addHandler(self._handler)
            target.propagate = False
            self._logger_name = logger_name
        target.setLevel(self._python_level())
        logger.debug(f"logging '{logger_name}' at {self.log_level}")

    def print_log(self, level: str, tag: str, message: str) -> None:
        logging.getLogger(f"tradefed.{tag}").log(_PYTHON_LEVELS.get(level.upper(), logging.INFO), message)

    def get_log_level(self) -> str:
        return self.log_level

    def close(self) -> None:
        if self._handler is None:
            return
        target = logging.getLogger(self._logger_name)
        target.removeHandler(self._handler)
        target.setLevel(self._saved_state[0])
        target.propagate = self._saved_state[1]
        self._handler = None
        self._saved_state = None


class TextResultReporter(InvocationListener):
    """prints invocation events to the console."""

    def __init__(self, console: Optional[Console] = None):
        self._console = console or Console()

    def invocation_started(self, build_info: Any) -> None:
        self._console.print(f"[bold]invocation started[/] for {build_info}")

    def invocation_failed(self, cause: BaseException) -> None:
        self._console.print(f"[bold red]invocation failed:[/] {cause}")

    def invocation_ended(self, elapsed_time: float) -> None:
        self._console.print(f"[bold]invocation ended[/] after {elapsed_time:.2f}s")
