# Copyright (c) 2025 Jean Disset
# MIT License - see LICENSE file for details.
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from tradefed.diagnostics import ConfigurationError

logger = logging.getLogger(__name__)

NAMESPACE_SEPARATOR = ':'
BOOL_FALSE_PREFIX = 'no-'


class Importance(Enum):
    """how important an option is to show in the short usage text."""

    NEVER = 0
    IF_UNSET = 1  # only while the field still holds None (or an empty container)
    ALWAYS = 2


def _compare(option_name: str, current: Any, update: Any) -> int:
    try:
        if current < update:
            return -1
        if current > update:
            return 1
        return 0
    except TypeError as e:
        raise ConfigurationError(
            f"internal error: failed to compare {type(current).__name__} ({current!r}) and "
            f"{type(update).__name__} ({update!r}) for option '{option_name}'",
            cause=e,
        ) from e


class OptionUpdateRule(Enum):
    """decides which value a scalar option keeps when it is set more than once."""

    FIRST = "first"
    LAST = "last"
    GREATEST = "greatest"
    LEAST = "least"
    IMMUTABLE = "immutable"

    def update(self, option_name: str, current: Any, update: Any) -> Any:
        """returns the value to store. `update` is never None."""
        if self is OptionUpdateRule.LAST or current is None:
            return update
        if self is OptionUpdateRule.FIRST:
            logger.debug(f"ignoring update for option {option_name}")
            return current
        if self is OptionUpdateRule.GREATEST:
            return update if _compare(option_name, current, update) < 0 else current
        if self is OptionUpdateRule.LEAST:
            return update if _compare(option_name, current, update) > 0 else current
        raise ConfigurationError(
            f"Attempted to update immutable value ({current!r}) for option '{option_name}'"
        )


@dataclass(frozen=True)
class Option:
    """declares a field as externally settable. used as Annotated metadata."""

    name: str
    short_name: Optional[str] = None
    description: str = ""
    mandatory: bool = False
    importance: Importance = Importance.IF_UNSET
    update_rule: OptionUpdateRule = OptionUpdateRule.LAST

    def __post_init__(self):
        if not self.name:
            raise ValueError("an option needs a non-empty name")
        if self.short_name is not None and len(self.short_name) != 1:
            raise ValueError(
                f"short name of option '{self.name}' must be a single character, "
                f"got {self.short_name!r}"
            )


def option_class(alias: str):
    """class decorator giving option sources a short namespace alias (alias:option-name)."""
    if NAMESPACE_SEPARATOR in alias:
        raise ValueError(f"option class alias '{alias}' cannot contain '{NAMESPACE_SEPARATOR}'")

    def wrap(cls):
        cls.__option_alias__ = alias
        return cls

    return wrap


def get_option_alias(obj_or_cls) -> Optional[str]:
    cls = obj_or_cls if isinstance(obj_or_cls, type) else type(obj_or_cls)
    # only the class that carries the decorator, not its subclasses
    return cls.__dict__.get('__option_alias__')
