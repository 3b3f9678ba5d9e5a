# Copyright (c) 2025 Jean Disset
# MIT License - see LICENSE file for details.
import logging
import os
from typing import List, Optional, Sequence, Tuple, Type

from cachetools import LRUCache
from rich.console import Console

from tradefed.configuration import Configuration, GlobalConfiguration
from tradefed.definition import ConfigurationDef
from tradefed.diagnostics import ConfigurationError
from tradefed.loaders.file import read_from_file
from tradefed.loaders.pkg import list_pkg_configs, read_from_pkg
from tradefed.registry import ClassRegistry, default_registry
from tradefed.xml_parser import ConfigurationXmlParser

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV = "TRADEFED_CONFIG_PATH"
BUNDLED_CONFIG_DIR = "tradefed:config"
GLOBAL_CONFIG_NAME = "global"


def config_search_path() -> List[str]:
    """directories listed in TRADEFED_CONFIG_PATH."""
    raw = os.environ.get(CONFIG_PATH_ENV, "")
    return [p for p in raw.split(os.pathsep) if p]


class ConfigurationFactory:
    """loads configuration definitions by name and builds configurations from them.

    a name is looked up as a bundled configuration first, then as a file path,
    then in every directory of TRADEFED_CONFIG_PATH. loaded definitions are
    cached and include cycles are reported instead of recursing forever.
    """

    def __init__(
        self,
        registry: Optional[ClassRegistry] = None,
        bundled_config_dir: Optional[str] = BUNDLED_CONFIG_DIR,
        cache_size: int = 128,
    ):
        self.registry = registry or default_registry()
        self.bundled_config_dir = bundled_config_dir
        self._cache: LRUCache = LRUCache(maxsize=cache_size)
        self._loading: List[str] = []

    def clear_cache(self) -> None:
        self._cache.clear()

    ## {{{                        --     loading     --

    def _read(self, name: str) -> Tuple[bytes, str]:
        if self.bundled_config_dir:
            try:
                return read_from_pkg(f"{self.bundled_config_dir}/{name}")
            except FileNotFoundError:
                logger.debug(f"'{name}' is not a bundled configuration")
        try:
            return read_from_file(name, extra_paths=config_search_path())
        except FileNotFoundError as e:
            raise ConfigurationError(f"Could not find configuration '{name}'", cause=e) from e

    def get_configuration_def(self, name: str) -> ConfigurationDef:
        """the definition called `name`, loaded and parsed on first use."""
        if name in self._loading:
            cycle = " -> ".join(self._loading[self._loading.index(name):] + [name])
            raise ConfigurationError(f"Circular configuration include: {cycle}")

        config_def = self._cache.get(name)
        if config_def is not None:
            return config_def

        logger.info(f"Loading configuration '{name}'")
        self._loading.append(name)
        try:
            content, file_path = self._read(name)
            parser = ConfigurationXmlParser(loader=self)
            config_def = parser.parse(name, content, file_path=file_path)
        finally:
            self._loading.pop()
        self._cache[name] = config_def
        return config_def

    ##────────────────────────────────────────────────────────────────────────────}}}

    def create_configuration(
        self, name: str, configuration_type: Type[Configuration] = Configuration
    ) -> Configuration:
        return self.get_configuration_def(name).create_configuration(
            registry=self.registry, configuration_type=configuration_type
        )

    def create_configuration_from_args(
        self, args: Sequence[str], configuration_type: Type[Configuration] = Configuration
    ) -> Configuration:
        """builds the configuration named by the last argument and applies the others as options."""
        if not args:
            raise ConfigurationError("Configuration to run was not specified")
        args = list(args)
        config_name = args.pop()
        config = self.create_configuration(config_name, configuration_type=configuration_type)
        config.set_options_from_command_line_args(args)
        return config

    def create_global_configuration(
        self, name: str = GLOBAL_CONFIG_NAME, args: Sequence[str] = ()
    ) -> GlobalConfiguration:
        config = self.create_configuration(name, configuration_type=GlobalConfiguration)
        if args:
            config.set_options_from_command_line_args(args)
        return config

    def bundled_configuration_names(self) -> List[str]:
        if not self.bundled_config_dir:
            return []
        return list_pkg_configs(self.bundled_config_dir)

    def print_help(self, console: Optional[Console] = None) -> None:
        """lists the bundled configurations and their description."""
        console = console or Console()
        console.print("Use --help <configuration_name> to get list of options for a configuration\n")
        console.print("Available configurations include:")
        for name in self.bundled_configuration_names():
            try:
                config_def = self.get_configuration_def(name)
            except ConfigurationError as e:
                logger.warning(f"Could not load bundled config with name '{name}': {e}")
                continue
            console.print(f"  [bold]{config_def.name}[/]: {config_def.description}")
