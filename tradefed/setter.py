# Copyright (c) 2025 Jean Disset
# MIT License - see LICENSE file for details.
import collections.abc
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple
from typing import Annotated, get_args, get_origin, get_type_hints

from cachetools import cached, LRUCache
from pydantic import BaseModel

from tradefed.diagnostics import ConfigurationError
from tradefed.handlers import (
    DEFAULT_HANDLERS,
    Handler,
    format_type_str,
    get_handler,
    is_container_type,
    is_map_type,
    unwrap_type,
)
from tradefed.option import (
    BOOL_FALSE_PREFIX,
    NAMESPACE_SEPARATOR,
    Option,
    get_option_alias,
)

logger = logging.getLogger(__name__)


def class_path(cls: type) -> str:
    return f"{cls.__module__}.{cls.__qualname__}"


## {{{                     --     Option discovery     --


@dataclass(frozen=True)
class OptionDecl:
    """one option declared on a class: the attribute it lives in and its declared type."""

    attr_name: str
    option: Option
    declared_type: Any
    owner: type


def _own_pydantic_options(klass: type) -> List[OptionDecl]:
    own = inspect.get_annotations(klass)
    decls = []
    for attr_name in own:
        field = klass.model_fields.get(attr_name)
        if field is None:
            continue
        opt = next((m for m in field.metadata if isinstance(m, Option)), None)
        if opt is not None:
            decls.append(OptionDecl(attr_name, opt, field.annotation, klass))
    return decls


def _own_plain_options(klass: type) -> List[OptionDecl]:
    own = inspect.get_annotations(klass)
    if not own:
        return []
    try:
        hints = get_type_hints(klass, include_extras=True)
    except (NameError, TypeError) as e:
        raise ConfigurationError(
            f"could not resolve option annotations of class '{class_path(klass)}': {e}", cause=e
        ) from e
    decls = []
    for attr_name in own:
        hint = hints.get(attr_name)
        if get_origin(hint) is not Annotated:
            continue
        args = get_args(hint)
        opts = [m for m in hint.__metadata__ if isinstance(m, Option)]
        if len(opts) > 1:
            raise ConfigurationError(
                f"field '{attr_name}' in class '{class_path(klass)}' declares more than one option"
            )
        if opts:
            decls.append(OptionDecl(attr_name, opts[0], args[0], klass))
    return decls


@cached(LRUCache(maxsize=512))
def get_option_table(cls: type) -> Tuple[OptionDecl, ...]:
    """the options of `cls`, most-derived class level first.

    every class of the hierarchy contributes the options declared in its own
    annotations. an attribute redeclared in a subclass is only kept once (the
    subclass declaration wins).
    """
    table: List[OptionDecl] = []
    seen_attrs = set()
    for klass in cls.__mro__:
        if klass is object or klass is BaseModel:
            continue
        if isinstance(klass, type) and issubclass(klass, BaseModel):
            level = _own_pydantic_options(klass)
        else:
            level = _own_plain_options(klass)
        for decl in level:
            if decl.attr_name in seen_attrs:
                continue
            seen_attrs.add(decl.attr_name)
            table.append(decl)
    return tuple(table)


##────────────────────────────────────────────────────────────────────────────}}}

## {{{                       --     OptionField     --


@dataclass(frozen=True, eq=False)
class OptionField:
    """binds one declared option to the object instance holding it."""

    source: Any
    decl: OptionDecl
    handler: Handler

    @property
    def option(self) -> Option:
        return self.decl.option

    @property
    def attr_name(self) -> str:
        return self.decl.attr_name

    @property
    def declared_type(self) -> Any:
        return self.decl.declared_type

    @property
    def is_container(self) -> bool:
        return is_container_type(self.declared_type)

    @property
    def is_map(self) -> bool:
        return self.handler.is_map

    @property
    def is_boolean(self) -> bool:
        return self.handler.is_boolean

    @property
    def value_type_str(self) -> str:
        """type of a single value: the element type for containers."""
        if self.is_container:
            return format_type_str(get_args(unwrap_type(self.declared_type))[0])
        return format_type_str(self.declared_type)

    @property
    def source_class_name(self) -> str:
        return class_path(type(self.source))

    def get_value(self) -> Any:
        return getattr(self.source, self.attr_name, None)

    def set_value(self, value: Any) -> None:
        try:
            setattr(self.source, self.attr_name, value)
        except (AttributeError, TypeError, ValueError) as e:
            raise ConfigurationError(
                f"internal error when setting option '{self.option.name}'", cause=e
            ) from e

    def is_unset(self) -> bool:
        value = self.get_value()
        if value is None:
            return True
        if isinstance(value, (collections.abc.Collection, collections.abc.Mapping)) and not isinstance(
            value, str
        ):
            return len(value) == 0
        return False

    def __repr__(self):
        return f"OptionField({self.option.name!r} of {self.source_class_name})"


##────────────────────────────────────────────────────────────────────────────}}}

## {{{                       --     OptionSetter     --


class OptionSetter:
    """indexes the option fields of a set of objects and applies text values to them.

    every option registers its name, its short name and, for booleans, a
    `no-<name>` key. each of those keys is also registered prefixed by the
    qualifiers of its object (`<qualifier>:<key>`): the dotted class path, the
    `option_class` alias and any extra `namespaces` entry for that object.

    objects of the same class share their plain keys: setting such a key sets
    the field on every one of them.
    """

    def __init__(
        self,
        *sources: Any,
        namespaces: Optional[Mapping[int, Sequence[str]]] = None,
        handlers: Mapping[type, Handler] = DEFAULT_HANDLERS,
    ):
        if len(sources) == 1 and isinstance(sources[0], (list, tuple)):
            sources = tuple(sources[0])
        self._handlers = handlers
        self._namespaces = dict(namespaces or {})
        self._sources: List[Any] = []
        self._option_map: Dict[str, List[OptionField]] = {}
        self._fields: List[OptionField] = []

        seen = set()
        for source in sources:
            if source is None:
                raise ValueError("option sources cannot be None")
            if id(source) in seen:
                continue
            seen.add(id(source))
            self._sources.append(source)
            self._add_source(source)
        logger.debug(
            f"option setter indexed {len(self._fields)} options "
            f"({len(self._option_map)} keys) over {len(self._sources)} objects"
        )

    @property
    def sources(self) -> List[Any]:
        return list(self._sources)

    def _qualifiers(self, source: Any) -> List[str]:
        quals = [class_path(type(source))]
        alias = get_option_alias(source)
        if alias:
            quals.append(alias)
        for q in self._namespaces.get(id(source), ()):
            if q not in quals:
                quals.append(q)
        return quals

    def _add_source(self, source: Any) -> None:
        cls_name = class_path(type(source))
        source_keys: Dict[str, OptionField] = {}
        for decl in get_option_table(type(source)):
            opt = decl.option
            if NAMESPACE_SEPARATOR in opt.name:
                raise ConfigurationError(
                    f"Option name '{opt.name}' in class '{cls_name}' is invalid. "
                    f"Option names cannot contain the namespace separator character "
                    f"'{NAMESPACE_SEPARATOR}'"
                )
            try:
                handler = get_handler(decl.declared_type, self._handlers)
            except ConfigurationError as e:
                raise ConfigurationError(
                    f"Option name '{opt.name}' in class '{cls_name}' is invalid. {e}", cause=e
                ) from e

            field = OptionField(source=source, decl=decl, handler=handler)
            plain_keys = [opt.name]
            if opt.short_name:
                plain_keys.append(opt.short_name)
            if handler.is_boolean:
                plain_keys.append(BOOL_FALSE_PREFIX + opt.name)

            keys = list(plain_keys)
            for qualifier in self._qualifiers(source):
                keys.extend(f"{qualifier}{NAMESPACE_SEPARATOR}{k}" for k in plain_keys)

            for key in keys:
                if key in source_keys:
                    raise ConfigurationError(
                        f"Option '{key}' is defined more than once in class '{cls_name}'"
                    )
                source_keys[key] = field
            self._fields.append(field)

        for key, field in source_keys.items():
            existing = self._option_map.setdefault(key, [])
            if existing and type(existing[0].source) is not type(source):
                raise ConfigurationError(
                    f"Duplicate option '{key}': defined in class '{existing[0].source_class_name}' "
                    f"and in class '{cls_name}'"
                )
            existing.append(field)

    ## {{{                         --     lookup     --

    def _fields_for(self, name: str) -> List[OptionField]:
        fields = self._option_map.get(name)
        if not fields:
            raise ConfigurationError(f"Could not find option with name {name}")
        return fields

    def is_boolean_option(self, name: str) -> bool:
        return self._fields_for(name)[0].is_boolean

    def is_map_option(self, name: str) -> bool:
        return self._fields_for(name)[0].is_map

    def get_type_for_option(self, name: str) -> str:
        """human readable type of the option, used in error messages."""
        return format_type_str(self._fields_for(name)[0].declared_type)

    def get_option_fields(self) -> List[OptionField]:
        return list(self._fields)

    ##────────────────────────────────────────────────────────────────────────────}}}

    ## {{{                        --     setting     --

    def set_option_value(self, name: str, value: str) -> None:
        """converts `value` with the option's handler and stores it.

        container fields get the value appended, scalar fields go through the
        option's update rule.

        every field sharing `name` is checked before any of them is written, so
        a failure leaves all of them untouched.

        Raises:
            ConfigurationError: unknown option, map option or unconvertible value.
        """
        writes = []
        for field in self._fields_for(name):
            if field.is_map:
                raise ConfigurationError(
                    f"option '{name}' is a map option and requires a key"
                )
            translated = field.handler.translate(value)
            if translated is None:
                raise ConfigurationError(
                    f"Couldn't convert '{value}' to a {field.value_type_str} for option '{name}'"
                )
            if field.is_container:
                writes.append((field, self._storage(field, name), translated))
            else:
                current = field.get_value()
                writes.append((field, None, field.option.update_rule.update(name, current, translated)))

        for field, container, new_value in writes:
            if container is None:
                field.set_value(new_value)
            elif isinstance(container, collections.abc.MutableSet):
                container.add(new_value)
            else:
                container.append(new_value)
            logger.debug(f"set option {name}={value!r} on {field.source_class_name}")

    def set_option_map_value(self, name: str, key: str, value: str) -> None:
        """sets one entry of a map option, on every field sharing `name` or on none."""
        writes = []
        for field in self._fields_for(name):
            if not field.is_map:
                raise ConfigurationError(f"option '{name}' is not a map option")
            key_type, value_type = (
                format_type_str(a) for a in get_args(unwrap_type(field.declared_type))
            )
            translated_key = field.handler.translate_key(key)
            if translated_key is None:
                raise ConfigurationError(
                    f"Couldn't convert '{key}' to a {key_type} for the key of mapoption '{name}'"
                )
            translated_value = field.handler.translate_value(value)
            if translated_value is None:
                raise ConfigurationError(
                    f"Couldn't convert '{value}' to a {value_type} for the value of mapoption '{name}'"
                )
            writes.append((field, self._storage(field, name), translated_key, translated_value))

        for field, mapping, translated_key, translated_value in writes:
            mapping[translated_key] = translated_value
            logger.debug(f"set option {name}[{key!r}]={value!r} on {field.source_class_name}")

    def _storage(self, field: OptionField, name: str) -> Any:
        """the container or dict a field appends to. must already exist."""
        storage = field.get_value()
        if storage is None:
            raise ConfigurationError(
                f"internal error: no storage allocated for field '{field.attr_name}' "
                f"(used for option '{name}') in class '{field.source_class_name}'"
            )
        return storage

    ##────────────────────────────────────────────────────────────────────────────}}}

    def validate_mandatory(self) -> None:
        """raises if any mandatory option is still unset, naming all of them."""
        missing = []
        for field in self._fields:
            if field.option.mandatory and field.is_unset():
                if field.option.name not in missing:
                    missing.append(field.option.name)
        if missing:
            names = ", ".join(f"'{n}'" for n in missing)
            raise ConfigurationError(f"Found missing mandatory options: {names}")


##────────────────────────────────────────────────────────────────────────────}}}
