# Copyright (c) 2025 Jean Disset
# MIT License - see LICENSE file for details.
import logging
from enum import Enum
from typing import Any, Iterator, List, Optional, Sequence

from rich.box import ROUNDED
from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from tradefed.diagnostics import ConfigurationError
from tradefed.handlers import format_type_str, is_container_type
from tradefed.option import BOOL_FALSE_PREFIX, Importance
from tradefed.setter import OptionField, OptionSetter, get_option_table

COLOR_RED = "#EC7D76"
COLOR_BLUE = "#8D5DE9"
COLOR_YELLOW = "#F3CD73"
COLOR_BOLD_CYAN = "bold #5DE6B6"
COLOR_CYAN = "#5DE6B6"
COLOR_BRIGHT_BLACK = "bright_black"
COLOR_DIM = "dim"
COLOR_ITALIC = "italic"
COLOR_BOLD = "bold"

SHORT_NAME_PREFIX = "-"
OPTION_NAME_PREFIX = "--"

logger = logging.getLogger(__name__)


## {{{                      --     ArgsOptionParser     --


class ArgsOptionParser(OptionSetter):
    """populates option fields from a command line.

    grammar, left to right and without backtracking:
      --                 ends option parsing, everything after is positional
      --name=value       long option with inline value
      --name value       long option, value is the next token
      --flag / --no-flag boolean long option
      -abf out.txt       grouped short options, the first non-boolean takes
      -abfout.txt        the rest of the cluster or the next token
      anything else      starts the positional tail
    map options take a key and a value: --name key value, --name=key=value.
    """

    def parse(self, args: Sequence[str]) -> List[str]:
        """applies `args` and returns the leftover positional arguments."""
        leftovers: List[str] = []
        it = iter(list(args))
        for arg in it:
            if arg == OPTION_NAME_PREFIX:
                break
            if arg.startswith(OPTION_NAME_PREFIX):
                self._parse_long_option(arg, it)
            elif arg.startswith(SHORT_NAME_PREFIX) and arg != SHORT_NAME_PREFIX:
                self._parse_grouped_short_options(arg, it)
            else:
                leftovers.append(arg)
                break
        leftovers.extend(it)
        logger.debug(f"parsed {len(args)} args, leftovers: {leftovers}")
        return leftovers

    def _parse_long_option(self, arg: str, it: Iterator[str]) -> None:
        name = arg[len(OPTION_NAME_PREFIX):]
        value = None
        if '=' in name:
            name, value = name.split('=', 1)

        if self.is_map_option(name):
            if value is not None and '=' in value:
                key, value = value.split('=', 1)
            elif value is not None:
                key, value = value, self._grab_next_value(it, name, 'value')
            else:
                key = self._grab_next_value(it, name, 'key')
                value = self._grab_next_value(it, name, 'value')
            self.set_option_map_value(name, key, value)
            return

        if value is None:
            if self.is_boolean_option(name):
                value = "false" if name.startswith(BOOL_FALSE_PREFIX) else "true"
            else:
                value = self._grab_next_value(it, name)
        self.set_option_value(name, value)

    def _parse_grouped_short_options(self, arg: str, it: Iterator[str]) -> None:
        i = 1
        while i < len(arg):
            name = arg[i]
            rest = arg[i + 1:]
            if self.is_boolean_option(name):
                self.set_option_value(name, "true")
                i += 1
                continue
            # anything left in the cluster is the value (or the key of a map option)
            if self.is_map_option(name):
                key = rest if rest else self._grab_next_value(it, name, 'key')
                self.set_option_map_value(name, key, self._grab_next_value(it, name, 'value'))
            else:
                value = rest if rest else self._grab_next_value(it, name)
                self.set_option_value(name, value)
            return

    def _grab_next_value(self, it: Iterator[str], name: str, what: Optional[str] = None) -> str:
        try:
            return next(it)
        except StopIteration:
            expected = what or self.get_type_for_option(name)
            raise ConfigurationError(f"option '{name}' requires a '{expected}' argument") from None


##────────────────────────────────────────────────────────────────────────────}}}

## {{{                        --     Help Printing     --


def _format_default_value(value: Any) -> Optional[str]:
    """formats a field's current value for display."""
    if value is None:
        return None
    if isinstance(value, (list, set, tuple, dict)) and not value:
        return None
    if isinstance(value, str):
        return f'"{value}"'
    if isinstance(value, Enum):
        return value.name
    return str(value)


def get_option_help(cls: type) -> str:
    """plain text help for every option of `cls` (inherited ones included)."""
    lines = []
    for decl in get_option_table(cls):
        lines.append(f"    {OPTION_NAME_PREFIX}{decl.option.name}: {decl.option.description}")
    return "".join(line + "\n" for line in lines)


def should_show_option(field: OptionField, full: bool = False) -> bool:
    """decides if `field` appears in the usage text."""
    if full:
        return True
    importance = field.option.importance
    if importance is Importance.ALWAYS:
        return True
    if importance is Importance.IF_UNSET:
        return field.is_unset()
    return False


def _append_option_details(content: Text, field: OptionField) -> None:
    opt = field.option
    parts = [f"{SHORT_NAME_PREFIX}{opt.short_name}"] if opt.short_name else []
    parts.append(f"{OPTION_NAME_PREFIX}{opt.name}")
    content.append(f"    {', '.join(parts)}", style=COLOR_YELLOW)
    if not field.is_boolean:
        type_str = format_type_str(field.declared_type)
        if field.is_map:
            type_str = f"KEY VALUE ({type_str})"
        content.append(f" {type_str}", style=COLOR_BLUE)
    if opt.mandatory:
        content.append(" (required)", style=COLOR_RED)
    if is_container_type(field.declared_type):
        content.append(" (can be repeated)", style=COLOR_DIM)
    content.append("\n")
    if opt.description:
        content.append(f"      {opt.description}\n")
    default = _format_default_value(field.get_value())
    if default is not None:
        content.append(f"      [default: {default}]\n", style=COLOR_DIM)


def render_command_usage(configuration, full: bool = False, width: int = 80) -> Panel:
    """builds the usage panel of a configuration, options grouped by role."""
    content = Text()
    if configuration.description:
        content.append(f"\n{configuration.description}\n\n", style=COLOR_ITALIC)
        content.append("─" * max(min(width - 4, 80), 0) + "\n\n", style=COLOR_BRIGHT_BLACK)

    content.append("Usage: ", style=COLOR_BOLD)
    content.append(
        "[options] <configuration_name OR configuration xml file path>\n\n", style=COLOR_YELLOW
    )

    setter = configuration.create_option_setter()
    by_source = {}
    for field in setter.get_option_fields():
        by_source.setdefault(id(field.source), []).append(field)

    for role, objects in configuration.items():
        for obj in objects:
            fields = [f for f in by_source.get(id(obj), []) if should_show_option(f, full)]
            if not fields:
                continue
            content.append(f"{role} options", style=COLOR_BOLD_CYAN)
            content.append(f" ({type(obj).__name__}):\n", style=COLOR_DIM)
            for field in fields:
                _append_option_details(content, field)
            content.append("\n")

    if not full:
        content.append("use --help-all to show every option\n", style=COLOR_DIM)

    title = Text(f"'{configuration.name}' configuration", style=COLOR_BOLD_CYAN)
    return Panel(content, title=title, box=ROUNDED, border_style=COLOR_BRIGHT_BLACK, expand=False)


def print_command_usage(configuration, console: Optional[Console] = None, full: bool = False):
    console = console or Console()
    console.print(render_command_usage(configuration, full=full, width=console.width))


##────────────────────────────────────────────────────────────────────────────}}}
