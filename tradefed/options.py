# Copyright (c) 2025 Jean Disset
# MIT License - see LICENSE file for details.
import logging
from typing import Annotated, Dict, List

from pydantic import BaseModel, Field

from tradefed.option import Importance, Option

logger = logging.getLogger(__name__)


class CommandOptions(BaseModel):
    """options controlling how a command is run."""

    help_mode: Annotated[
        bool,
        Option(
            "help",
            description="display the help text for the most important/critical options.",
            importance=Importance.ALWAYS,
        ),
    ] = False

    full_help_mode: Annotated[
        bool,
        Option(
            "help-all",
            description="display the full help text for all options.",
            importance=Importance.ALWAYS,
        ),
    ] = False

    dry_run: Annotated[
        bool,
        Option(
            "dry-run",
            description="build but don't actually run the command. Intended as a quick check "
            "to ensure that a command is runnable.",
            importance=Importance.ALWAYS,
        ),
    ] = False

    noisy_dry_run: Annotated[
        bool,
        Option(
            "noisy-dry-run",
            description="build but don't actually run the command. This version prints the "
            "command to the console. Intended for cmdfile debugging.",
            importance=Importance.ALWAYS,
        ),
    ] = False

    min_loop_time: Annotated[
        int, Option("min-loop-time", description="the minimum invocation time in ms when in loop mode.")
    ] = 10 * 60 * 1000

    loop_mode: Annotated[bool, Option("loop", description="keep running continuously.")] = False

    all_devices: Annotated[
        bool, Option("all-devices", description="fork this command to run on all connected devices.")
    ] = False

    def is_dry_run(self) -> bool:
        return self.dry_run or self.noisy_dry_run


class DeviceSelectionOptions(BaseModel):
    """criteria used to pick the device(s) a command runs on."""

    serials: Annotated[
        List[str],
        Option(
            "serial",
            short_name="s",
            description="run this test on a specific device with given serial number(s).",
        ),
    ] = Field(default_factory=list)

    exclude_serials: Annotated[
        List[str],
        Option(
            "exclude-serial",
            description="run this test on any device except those with this serial number(s).",
        ),
    ] = Field(default_factory=list)

    product_types: Annotated[
        List[str],
        Option(
            "product-type",
            description="run this test on device with this product type(s). May also filter by "
            "variant using product:variant.",
        ),
    ] = Field(default_factory=list)

    property_strings: Annotated[
        List[str],
        Option(
            "property",
            description="run this test on device with this property value. "
            "Expected format <propertyname>=<propertyvalue>.",
        ),
    ] = Field(default_factory=list)

    emulator_requested: Annotated[
        bool, Option("emulator", short_name="e", description="run this test on emulator.")
    ] = False

    null_device_requested: Annotated[
        bool, Option("null-device", short_name="n", description="do not allocate a device for this test.")
    ] = False

    def get_properties(self) -> Dict[str, str]:
        """the requested device properties. malformed entries are skipped with a warning."""
        properties = {}
        for prop in self.property_strings:
            name, sep, value = prop.partition('=')
            if not sep or not name:
                logger.warning(f"ignoring malformed property '{prop}', expected <name>=<value>")
                continue
            properties[name] = value
        return properties
