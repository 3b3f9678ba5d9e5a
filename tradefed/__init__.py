# Copyright (c) 2025 Jean Disset
# MIT License - see LICENSE file for details.

from tradefed.diagnostics import (
    ConfigurationError,
    SourceContext,
    SourceLocation,
    format_error,
    print_configuration_error,
    handle_configuration_error,
    load_source_lines,
)
from tradefed.option import Option, Importance, OptionUpdateRule, option_class
from tradefed.handlers import get_handler, format_type_str, DEFAULT_HANDLERS
from tradefed.setter import OptionSetter, OptionField
from tradefed.commandline import ArgsOptionParser, get_option_help
from tradefed.registry import ClassRegistry, default_registry
from tradefed.configuration import Configuration, GlobalConfiguration
from tradefed.definition import ConfigurationDef
from tradefed.xml_parser import ConfigurationXmlParser, ConfigDefLoader
from tradefed.factory import ConfigurationFactory
from tradefed.roles import INVOCATION_ROLES, GLOBAL_ROLES
from tradefed.options import CommandOptions, DeviceSelectionOptions
from tradefed.dump import dump_configuration, configuration_to_dict
