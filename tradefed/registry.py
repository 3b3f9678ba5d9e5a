# Copyright (c) 2025 Jean Disset
# MIT License - see LICENSE file for details.
import importlib
import logging
import sys
from typing import Any, Callable, Dict, Iterable, Optional

from tradefed import options, stubs
from tradefed.diagnostics import ConfigurationError

logger = logging.getLogger(__name__)


def resolve_dotted_path(path: str) -> Any:
    """imports `pkg.module.Name` or `pkg.module:Name` and returns the attribute."""
    if ':' in path:
        module_name, attr_path = path.split(':', 1)
    elif '.' in path:
        module_name, attr_path = path.rsplit('.', 1)
    else:
        raise ConfigurationError(f"'{path}' is not a registered class name nor a dotted path")

    try:
        module = sys.modules.get(module_name) or importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigurationError(f"could not import module '{module_name}': {e}", cause=e) from e

    obj = module
    for part in attr_path.split('.'):
        try:
            obj = getattr(obj, part)
        except AttributeError as e:
            raise ConfigurationError(
                f"module '{module_name}' has no attribute '{attr_path}'", cause=e
            ) from e
    return obj


class ClassRegistry:
    """maps class names used in configurations to no-argument factories.

    names that aren't registered are imported as dotted paths.
    """

    def __init__(self, factories: Optional[Dict[str, Callable[[], Any]]] = None):
        self._factories: Dict[str, Callable[[], Any]] = dict(factories or {})

    def register(self, name: str, factory: Optional[Callable[[], Any]] = None):
        """registers `factory` under `name`. usable as a decorator."""

        def wrap(f):
            if not callable(f):
                raise ValueError(f"factory registered as '{name}' is not callable")
            self._factories[name] = f
            return f

        if factory is None:
            return wrap
        return wrap(factory)

    def register_classes(self, classes: Iterable[type]) -> None:
        """registers each class under its own name and its dotted path."""
        for cls in classes:
            self._factories[cls.__name__] = cls
            self._factories[f"{cls.__module__}.{cls.__qualname__}"] = cls

    def __contains__(self, name: str) -> bool:
        return name in self._factories

    def names(self):
        return list(self._factories)

    def resolve(self, name: str) -> Callable[[], Any]:
        factory = self._factories.get(name)
        if factory is not None:
            return factory
        factory = resolve_dotted_path(name)
        if not callable(factory):
            raise ConfigurationError(f"'{name}' is not a class or factory")
        logger.debug(f"resolved class '{name}' by import")
        return factory

    def create(self, name: str) -> Any:
        """instantiates `name` with no arguments."""
        return self.resolve(name)()

    def copy(self) -> "ClassRegistry":
        return ClassRegistry(self._factories)


def default_registry() -> ClassRegistry:
    """a fresh registry holding the built-in stubs and option classes."""
    registry = ClassRegistry()
    registry.register_classes(
        [
            stubs.StubBuildProvider,
            stubs.StubTargetPreparer,
            stubs.StubTest,
            stubs.WaitDeviceRecovery,
            stubs.StdoutLogger,
            stubs.TextResultReporter,
            options.CommandOptions,
            options.DeviceSelectionOptions,
        ]
    )
    return registry
