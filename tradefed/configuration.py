# Copyright (c) 2025 Jean Disset
# MIT License - see LICENSE file for details.
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from rich.console import Console

from tradefed.commandline import ArgsOptionParser, print_command_usage
from tradefed.diagnostics import ConfigurationError
from tradefed.interfaces import (
    BuildProvider,
    ConfigurationReceiver,
    DeviceRecovery,
    InvocationListener,
    LogOutput,
    RemoteTest,
    TargetPreparer,
)
from tradefed.options import CommandOptions, DeviceSelectionOptions
from tradefed.roles import (
    BUILD_PROVIDER_NAME,
    CMD_OPTIONS_NAME,
    DEVICE_MONITOR_NAME,
    DEVICE_OPTIONS_NAME,
    DEVICE_RECOVERY_NAME,
    DEVICE_REQUIREMENTS_NAME,
    GLOBAL_ROLES,
    INVOCATION_ROLES,
    LOGGER_NAME,
    RESULT_REPORTER_NAME,
    TARGET_PREPARER_NAME,
    TEST_NAME,
    RoleInfo,
)
from tradefed.setter import OptionSetter, class_path

logger = logging.getLogger(__name__)


class Configuration:
    """the object graph of one invocation: role name -> ordered list of objects.

    built-in roles check the type of their objects and how many they hold.
    every built-in role with a default implementation is populated at creation.
    """

    def __init__(
        self,
        name: str,
        description: str = "",
        roles: Mapping[str, RoleInfo] = INVOCATION_ROLES,
        populate_defaults: bool = True,
    ):
        self.name = name
        self.description = description
        self.roles = roles
        self._config_map: Dict[str, List[Any]] = {}
        self._namespaces: Dict[int, Tuple[str, ...]] = {}
        if populate_defaults:
            for role in roles.values():
                if role.default_factory is not None:
                    self.set_configuration_object(role.name, role.default_factory())

    def __repr__(self):
        return f"{type(self).__name__}({self.name!r}, roles={list(self._config_map)})"

    ## {{{                     --     object access     --

    def get_configuration_object_list(self, role: str) -> Optional[List[Any]]:
        """the objects of `role` in declaration order, None if it was never set."""
        return self._config_map.get(role)

    def get_configuration_object(self, role: str) -> Optional[Any]:
        objects = self.get_configuration_object_list(role)
        if objects is None:
            return None
        info = self.roles.get(role)
        if info is not None and info.is_list:
            raise ConfigurationError(
                f"Wrong method call for '{role}'. Used get_configuration_object() for a config "
                "object that is stored as a list"
            )
        if len(objects) != 1:
            raise ConfigurationError(
                f"Attempted to retrieve single object for {role}, but {len(objects)} are present"
            )
        return objects[0]

    def set_configuration_object(self, role: str, obj: Any) -> None:
        if obj is None:
            raise ValueError("configuration object cannot be None")
        self.set_configuration_object_list(role, [obj])

    def set_configuration_object_list(
        self,
        role: str,
        objects: Sequence[Any],
        namespaces: Optional[Mapping[int, Sequence[str]]] = None,
    ) -> None:
        """replaces the objects of `role`.

        Args:
            role: role name, built-in or user defined.
            objects: the new objects, in order.
            namespaces: extra option qualifiers per object id (e.g. "MyTest#2").
        """
        if objects is None:
            raise ValueError("configuration object list cannot be None")
        objects = list(objects)
        for obj in objects:
            self._check_object(role, obj)
        info = self.roles.get(role)
        if info is not None and not info.is_list and len(objects) > 1:
            raise ConfigurationError(
                f"Only one config object allowed for {role}, but multiple were specified."
            )

        for old in self._config_map.pop(role, []):
            self._namespaces.pop(id(old), None)
        self._config_map[role] = objects
        for obj in objects:
            if namespaces and id(obj) in namespaces:
                self._namespaces[id(obj)] = tuple(namespaces[id(obj)])
            if isinstance(obj, ConfigurationReceiver):
                obj.set_configuration(self)

    def _check_object(self, role: str, obj: Any) -> None:
        if obj is None:
            raise ValueError(f"configuration object for {role} cannot be None")
        info = self.roles.get(role)
        if info is not None and not isinstance(obj, info.expected_type):
            raise ConfigurationError(
                f"The config object {role} is not the correct type. Expected "
                f"{class_path(info.expected_type)}, received {class_path(type(obj))}"
            )

    def items(self) -> List[Tuple[str, List[Any]]]:
        return [(role, list(objects)) for role, objects in self._config_map.items()]

    def all_configuration_objects(self) -> List[Any]:
        return [obj for objects in self._config_map.values() for obj in objects]

    def get_namespaces(self, obj: Any) -> Tuple[str, ...]:
        return self._namespaces.get(id(obj), ())

    ##────────────────────────────────────────────────────────────────────────────}}}

    ## {{{                       --     options     --

    def _namespace_map(self) -> Dict[int, Tuple[str, ...]]:
        live = {id(o) for o in self.all_configuration_objects()}
        return {k: v for k, v in self._namespaces.items() if k in live}

    def create_option_setter(self) -> OptionSetter:
        """one binder session over every object of this configuration."""
        return OptionSetter(self.all_configuration_objects(), namespaces=self._namespace_map())

    def inject_option_value(self, name: str, *args: str) -> None:
        """inject_option_value(name, value) or inject_option_value(name, key, value)."""
        if len(args) == 1:
            self.create_option_setter().set_option_value(name, args[0])
        elif len(args) == 2:
            self.create_option_setter().set_option_map_value(name, args[0], args[1])
        else:
            raise TypeError("inject_option_value takes a value, or a key and a value")

    def inject_option_values(self, option_defs: Iterable[Any]) -> None:
        """applies option definitions (name, key, value, source) in order, in one session."""
        setter = self.create_option_setter()
        for opt in option_defs:
            try:
                if opt.key is None:
                    setter.set_option_value(opt.name, opt.value)
                else:
                    setter.set_option_map_value(opt.name, opt.key, opt.value)
            except ConfigurationError as e:
                source = getattr(opt, 'source', None)
                if source is not None:
                    source = source.with_operation(f"while setting option '{opt.name}'")
                raise e.with_context(source) from e.__cause__

    def set_options_from_command_line_args(self, args: Sequence[str]) -> List[str]:
        parser = ArgsOptionParser(
            self.all_configuration_objects(), namespaces=self._namespace_map()
        )
        unprocessed = parser.parse(args)
        if unprocessed:
            raise ConfigurationError(
                f"Invalid arguments provided. Unprocessed arguments: {unprocessed}"
            )
        return unprocessed

    def validate_options(self) -> None:
        """fails if a mandatory option of any object was left unset."""
        self.create_option_setter().validate_mandatory()

    def print_command_usage(self, console: Optional[Console] = None, full: bool = False) -> None:
        print_command_usage(self, console=console, full=full)

    ##────────────────────────────────────────────────────────────────────────────}}}

    def clone(self) -> "Configuration":
        """shallow copy: new role map, same objects."""
        clone = type(self).__new__(type(self))
        Configuration.__init__(
            clone, self.name, self.description, roles=self.roles, populate_defaults=False
        )
        for role, objects in self._config_map.items():
            clone._config_map[role] = list(objects)
        clone._namespaces = dict(self._namespaces)
        return clone

    ## {{{                    --     built-in roles     --

    @property
    def build_provider(self) -> BuildProvider:
        return self.get_configuration_object(BUILD_PROVIDER_NAME)

    @build_provider.setter
    def build_provider(self, provider: BuildProvider) -> None:
        self.set_configuration_object(BUILD_PROVIDER_NAME, provider)

    @property
    def target_preparers(self) -> List[TargetPreparer]:
        return self.get_configuration_object_list(TARGET_PREPARER_NAME)

    @target_preparers.setter
    def target_preparers(self, preparers: List[TargetPreparer]) -> None:
        self.set_configuration_object_list(TARGET_PREPARER_NAME, preparers)

    def set_target_preparer(self, preparer: TargetPreparer) -> None:
        self.set_configuration_object(TARGET_PREPARER_NAME, preparer)

    @property
    def tests(self) -> List[RemoteTest]:
        return self.get_configuration_object_list(TEST_NAME)

    @tests.setter
    def tests(self, tests: List[RemoteTest]) -> None:
        self.set_configuration_object_list(TEST_NAME, tests)

    def set_test(self, test: RemoteTest) -> None:
        self.set_configuration_object(TEST_NAME, test)

    def set_tests(self, tests: List[RemoteTest]) -> None:
        self.set_configuration_object_list(TEST_NAME, tests)

    @property
    def device_recovery(self) -> DeviceRecovery:
        return self.get_configuration_object(DEVICE_RECOVERY_NAME)

    @device_recovery.setter
    def device_recovery(self, recovery: DeviceRecovery) -> None:
        self.set_configuration_object(DEVICE_RECOVERY_NAME, recovery)

    @property
    def log_output(self) -> LogOutput:
        return self.get_configuration_object(LOGGER_NAME)

    @log_output.setter
    def log_output(self, log_output: LogOutput) -> None:
        self.set_configuration_object(LOGGER_NAME, log_output)

    @property
    def invocation_listeners(self) -> List[InvocationListener]:
        return self.get_configuration_object_list(RESULT_REPORTER_NAME)

    @invocation_listeners.setter
    def invocation_listeners(self, listeners: List[InvocationListener]) -> None:
        self.set_configuration_object_list(RESULT_REPORTER_NAME, listeners)

    def set_invocation_listener(self, listener: InvocationListener) -> None:
        self.set_configuration_object(RESULT_REPORTER_NAME, listener)

    @property
    def command_options(self) -> CommandOptions:
        return self.get_configuration_object(CMD_OPTIONS_NAME)

    @command_options.setter
    def command_options(self, options: CommandOptions) -> None:
        self.set_configuration_object(CMD_OPTIONS_NAME, options)

    @property
    def device_selection_options(self) -> DeviceSelectionOptions:
        return self.get_configuration_object(DEVICE_OPTIONS_NAME)

    @device_selection_options.setter
    def device_selection_options(self, options: DeviceSelectionOptions) -> None:
        self.set_configuration_object(DEVICE_OPTIONS_NAME, options)

    ##────────────────────────────────────────────────────────────────────────────}}}


class GlobalConfiguration(Configuration):
    """host-wide objects shared by every invocation (device monitoring, device requirements)."""

    def __init__(
        self,
        name: str,
        description: str = "",
        roles: Mapping[str, RoleInfo] = GLOBAL_ROLES,
        populate_defaults: bool = True,
    ):
        super().__init__(name, description, roles=roles, populate_defaults=populate_defaults)

    @property
    def device_monitor(self):
        return self.get_configuration_object(DEVICE_MONITOR_NAME)

    @device_monitor.setter
    def device_monitor(self, monitor) -> None:
        self.set_configuration_object(DEVICE_MONITOR_NAME, monitor)

    @property
    def device_requirements(self) -> DeviceSelectionOptions:
        return self.get_configuration_object(DEVICE_REQUIREMENTS_NAME)

    @device_requirements.setter
    def device_requirements(self, requirements: DeviceSelectionOptions) -> None:
        self.set_configuration_object(DEVICE_REQUIREMENTS_NAME, requirements)
