# Copyright (c) 2025 Jean Disset
# MIT License - see LICENSE file for details.
import logging
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Tuple, Type

from tradefed.configuration import Configuration
from tradefed.diagnostics import ConfigurationError, SourceContext, SourceLocation
from tradefed.option import NAMESPACE_SEPARATOR
from tradefed.registry import ClassRegistry, default_registry

logger = logging.getLogger(__name__)

CLASS_INDEX_SEPARATOR = '#'


@dataclass(frozen=True)
class ConfigObjectDef:
    """one object of a definition: the class to instantiate and its 1-based index among objects of that class."""

    class_name: str
    index: int

    @property
    def qualifier(self) -> str:
        return f"{self.class_name}{CLASS_INDEX_SEPARATOR}{self.index}"


@dataclass(frozen=True)
class OptionDef:
    name: str
    key: Optional[str]
    value: str
    source: Optional[SourceContext] = None


def split_qualified_name(name: str) -> Tuple[Optional[str], str]:
    """'MyTest#2:timeout' -> ('MyTest#2', 'timeout'). option names never contain ':'."""
    qualifier, sep, option_name = name.rpartition(NAMESPACE_SEPARATOR)
    if not sep:
        return None, name
    return qualifier, option_name


class ConfigurationDef:
    """a configuration template: which classes fill which roles, and which options to set.

    objects keep their declaration order per role. options are applied in the
    order they were added, so a later assignment of a scalar option wins.
    """

    def __init__(self, name: str, description: str = ""):
        self.name = name
        self.description = description
        self._object_class_map: Dict[str, List[ConfigObjectDef]] = {}
        self._class_counts: Dict[str, int] = {}
        self._option_list: List[OptionDef] = []

    def __repr__(self):
        return (
            f"ConfigurationDef({self.name!r}, objects={self.object_class_map}, "
            f"options={len(self._option_list)})"
        )

    @property
    def object_class_map(self) -> Dict[str, List[str]]:
        return {t: [d.class_name for d in defs] for t, defs in self._object_class_map.items()}

    @property
    def option_list(self) -> List[OptionDef]:
        return list(self._option_list)

    def add_config_object_def(self, type_name: str, class_name: str) -> int:
        """appends `class_name` to the objects of `type_name`.

        Returns:
            how many times `class_name` appears in this definition, this one included.
            used to build the `<class>#<n>` qualifier of options nested in the object.
        """
        count = self._class_counts.get(class_name, 0) + 1
        self._class_counts[class_name] = count
        self._object_class_map.setdefault(type_name, []).append(ConfigObjectDef(class_name, count))
        return count

    def add_option_def(
        self,
        name: str,
        key: Optional[str],
        value: str,
        source: Optional[SourceContext] = None,
    ) -> None:
        self._option_list.append(OptionDef(name, key, value, source))

    def include_config_def(
        self, other: "ConfigurationDef", included_from: Optional[SourceLocation] = None
    ) -> None:
        """appends the objects then the options of `other`.

        objects of `other` are renumbered as if they had been declared here, and
        options qualified with their old `<class>#<n>` follow them.
        `included_from` (the <include> tag) is added to the include trace of the
        copied options.
        """
        renames: Dict[str, str] = {}
        for type_name, defs in other._object_class_map.items():
            for obj_def in defs:
                index = self.add_config_object_def(type_name, obj_def.class_name)
                renames[obj_def.qualifier] = ConfigObjectDef(obj_def.class_name, index).qualifier

        for opt in other._option_list:
            qualifier, option_name = split_qualified_name(opt.name)
            if qualifier in renames:
                opt = replace(opt, name=f"{renames[qualifier]}{NAMESPACE_SEPARATOR}{option_name}")
            if included_from is not None and opt.source is not None:
                opt = replace(opt, source=opt.source.with_parent(included_from))
            self._option_list.append(opt)
        logger.debug(f"included '{other.name}' into '{self.name}'")

    def _instantiate(self, registry: ClassRegistry, type_name: str, class_name: str):
        try:
            return registry.create(class_name)
        except Exception as e:
            raise ConfigurationError(
                f"Could not instantiate class {class_name} for config object type {type_name}: {e}",
                cause=e,
            ) from e

    def create_configuration(
        self,
        registry: Optional[ClassRegistry] = None,
        configuration_type: Type[Configuration] = Configuration,
    ) -> Configuration:
        """instantiates every object and applies every option, in order.

        Args:
            registry: resolves class names. defaults to `default_registry()`.
            configuration_type: Configuration or GlobalConfiguration.

        Raises:
            ConfigurationError: a class can't be instantiated, an object doesn't fit
                its role or an option can't be applied.
        """
        registry = registry or default_registry()
        config = configuration_type(self.name, self.description)

        for type_name, defs in self._object_class_map.items():
            objects, namespaces = [], {}
            for obj_def in defs:
                obj = self._instantiate(registry, type_name, obj_def.class_name)
                objects.append(obj)
                namespaces[id(obj)] = (obj_def.class_name, obj_def.qualifier)
            config.set_configuration_object_list(type_name, objects, namespaces=namespaces)

        config.inject_option_values(self._option_list)
        logger.debug(f"created configuration '{self.name}'")
        return config
