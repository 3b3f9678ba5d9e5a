# Copyright (c) 2025 Jean Disset
# MIT License - see LICENSE file for details.
import collections.abc
import re
import types
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import (
    Annotated,
    Any,
    Dict,
    ForwardRef,
    List,
    Literal,
    Mapping,
    Optional,
    Union,
    get_args,
    get_origin,
)

from tradefed.diagnostics import ConfigurationError


## {{{                        --     Handlers     --


class Handler:
    """converts option text into a typed value. translate returns None when it can't."""

    is_boolean = False
    is_map = False

    def translate(self, text: str) -> Optional[Any]:
        raise NotImplementedError

    def __repr__(self):
        return f"{type(self).__name__}()"


class BooleanHandler(Handler):
    is_boolean = True

    def translate(self, text: str) -> Optional[bool]:
        lowered = text.lower()
        if lowered in ('true', 'yes'):
            return True
        if lowered in ('false', 'no'):
            return False
        return None


_INTEGER = re.compile(r'[+-]?[0-9]+')
_FLOAT = re.compile(r'[+-]?(?:(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?|NaN|Infinity)')


class IntegerHandler(Handler):
    # plain decimal digits only: no padding, no '_' separators
    def translate(self, text: str) -> Optional[int]:
        if not _INTEGER.fullmatch(text):
            return None
        return int(text)


class FloatHandler(Handler):
    # decimal or exponent notation, plus the spelled out 'NaN' and 'Infinity'
    def translate(self, text: str) -> Optional[float]:
        if not _FLOAT.fullmatch(text):
            return None
        return float(text)


class StringHandler(Handler):
    def translate(self, text: str) -> str:
        return text


class FileHandler(Handler):
    # no existence check, files are often created later in the invocation
    def translate(self, text: str) -> Path:
        return Path(text)


class EnumHandler(Handler):
    def __init__(self, enum_type: type):
        self.enum_type = enum_type

    def translate(self, text: str) -> Optional[Enum]:
        for candidate in (text, text.upper()):
            try:
                return self.enum_type[candidate]
            except KeyError:
                continue
        return None

    def __repr__(self):
        return f"EnumHandler({self.enum_type.__name__})"


class MapHandler(Handler):
    """handles dict-like options. entries are set one key at a time."""

    is_map = True

    def __init__(self, key_handler: Handler, value_handler: Handler):
        self.key_handler = key_handler
        self.value_handler = value_handler

    def translate(self, text: str) -> None:
        # a map entry can't be built from a single piece of text
        return None

    def translate_key(self, text: str) -> Optional[Any]:
        return self.key_handler.translate(text)

    def translate_value(self, text: str) -> Optional[Any]:
        return self.value_handler.translate(text)

    def __repr__(self):
        return f"MapHandler({self.key_handler!r}, {self.value_handler!r})"


DEFAULT_HANDLERS: Mapping[type, Handler] = MappingProxyType(
    {
        bool: BooleanHandler(),
        int: IntegerHandler(),
        float: FloatHandler(),
        str: StringHandler(),
        Path: FileHandler(),
    }
)

##────────────────────────────────────────────────────────────────────────────}}}

## {{{                      --     Type resolution     --

CONTAINER_ORIGINS = (
    list,
    set,
    collections.abc.Collection,
    collections.abc.MutableSequence,
    collections.abc.MutableSet,
)
MAP_ORIGINS = (dict, collections.abc.Mapping, collections.abc.MutableMapping)


def unwrap_type(declared_type: Any) -> Any:
    """strips Annotated and Optional wrappers."""
    while True:
        origin = get_origin(declared_type)
        args = get_args(declared_type)
        if origin is Annotated:
            declared_type = args[0]
        elif origin in (Union, types.UnionType):
            non_none = [a for a in args if a is not type(None)]
            if len(non_none) != 1:
                return declared_type
            declared_type = non_none[0]
        else:
            return declared_type


def _container_kind(declared_type: Any) -> Optional[str]:
    t = unwrap_type(declared_type)
    origin = get_origin(t) or t
    if origin in MAP_ORIGINS:
        return 'map'
    if origin in CONTAINER_ORIGINS:
        return 'collection'
    return None


def is_container_type(declared_type: Any) -> bool:
    return _container_kind(declared_type) == 'collection'


def is_map_type(declared_type: Any) -> bool:
    return _container_kind(declared_type) == 'map'


def _get_scalar_handler(t: Any, handlers: Mapping[type, Handler]) -> Optional[Handler]:
    t = unwrap_type(t)
    if not isinstance(t, type):
        return None
    if t in handlers:
        return handlers[t]
    if issubclass(t, Enum):
        return EnumHandler(t)
    if issubclass(t, Path):
        return FileHandler()
    return None


def get_handler(declared_type: Any, handlers: Mapping[type, Handler] = DEFAULT_HANDLERS) -> Handler:
    """resolves the handler of a declared option type.

    containers resolve to the handler of their element type. maps resolve to a
    MapHandler built from their key and value handlers.

    Raises:
        ConfigurationError: raw containers, nested parameterization or unknown types.
    """
    t = unwrap_type(declared_type)
    handler = _get_scalar_handler(t, handlers)
    if handler is not None:
        return handler

    origin = get_origin(t) or t
    args = get_args(t)
    type_str = format_type_str(declared_type)

    if origin in CONTAINER_ORIGINS or origin in MAP_ORIGINS:
        if not args:
            raise ConfigurationError(
                f"unsupported option type {type_str}: containers must declare their element type"
            )
        for arg in args:
            if get_origin(unwrap_type(arg)) is not None:
                raise ConfigurationError(
                    f"unsupported option type {type_str}: nested parameterized types are not supported"
                )
        element_handlers = [_get_scalar_handler(a, handlers) for a in args]
        if any(h is None for h in element_handlers):
            raise ConfigurationError(
                f"unsupported option type {type_str}: no handler for element type"
            )
        if origin in MAP_ORIGINS:
            if len(args) != 2:
                raise ConfigurationError(f"unsupported option type {type_str}")
            return MapHandler(element_handlers[0], element_handlers[1])
        if len(args) != 1:
            raise ConfigurationError(f"unsupported option type {type_str}")
        return element_handlers[0]

    if get_origin(t) is not None:
        raise ConfigurationError(f"unsupported option type {type_str}: unsupported generic type")
    raise ConfigurationError(f"unsupported option type {type_str}")


##────────────────────────────────────────────────────────────────────────────}}}

## {{{                     --     Type formatting     --


def format_type_str(declared_type: Any) -> str:
    """formats a type annotation into a display string for help and errors."""
    if declared_type is None:
        return ""

    if isinstance(declared_type, ForwardRef):
        return declared_type.__forward_arg__

    origin = get_origin(declared_type)
    args = get_args(declared_type)

    if origin is Annotated:
        return format_type_str(args[0]) if args else ""
    if origin is Literal:
        vals = [repr(a) for a in args]
        return f"{', '.join(vals[:-1])}, or {vals[-1]}" if len(vals) > 1 else vals[0]
    if origin in (Union, types.UnionType):
        non_none = [format_type_str(t) for t in args if t is not type(None)]
        return non_none[0] if len(non_none) == 1 else f"Union[{', '.join(non_none)}]"
    if origin in (list, List, collections.abc.MutableSequence, collections.abc.Collection):
        return f"List[{format_type_str(args[0]) if args else 'Any'}]"
    if origin in (set, collections.abc.MutableSet):
        return f"Set[{format_type_str(args[0]) if args else 'Any'}]"
    if origin in MAP_ORIGINS or origin is Dict:
        key_type = format_type_str(args[0]) if args else 'Any'
        val_type = format_type_str(args[1]) if len(args) > 1 else 'Any'
        return f"Dict[{key_type}, {val_type}]"

    if isinstance(declared_type, type):
        if issubclass(declared_type, Path):
            return "file path"
        if issubclass(declared_type, Enum):
            return f"{declared_type.__name__} ({'|'.join(m.name for m in declared_type)})"
        if declared_type in (list, set, dict):
            return declared_type.__name__
    return getattr(declared_type, "__name__", str(declared_type))


##────────────────────────────────────────────────────────────────────────────}}}
