# Copyright (c) 2025 Jean Disset
# MIT License - see LICENSE file for details.

from dataclasses import dataclass, field
from typing import Optional, Tuple, Sequence
import os

## {{{                    --     Source Context     --


@dataclass(frozen=True)
class SourceLocation:
    file_path: str
    line: int
    column: int = 0
    element: Optional[str] = None  # xml element the location points at (e.g. "option")

    def __str__(self) -> str:
        base = os.path.basename(self.file_path) if self.file_path else "<unknown>"
        s = f"{base}:{self.line}"
        if self.element:
            s += f" <{self.element}>"
        return s

    @classmethod
    def from_locator(cls, locator, file_path: Optional[str] = None, element: Optional[str] = None):
        """builds a location from a sax locator (or anything with getLineNumber/getColumnNumber)."""
        if locator is None:
            return cls(file_path=file_path or "<unknown>", line=0, column=0, element=element)
        return cls(
            file_path=file_path or locator.getSystemId() or "<unknown>",
            line=locator.getLineNumber() or 0,
            column=(locator.getColumnNumber() or 0) + 1,
            element=element,
        )


@dataclass(frozen=True)
class SourceContext:
    file_path: str
    line: int
    column: int = 0
    element: Optional[str] = None
    include_trace: Tuple[SourceLocation, ...] = field(default_factory=tuple)
    operation_context: Optional[str] = None

    def __str__(self) -> str:
        base = os.path.basename(self.file_path) if self.file_path else "<unknown>"
        s = f"{base}:{self.line}"
        if self.element:
            s += f" <{self.element}>"
        return s

    @classmethod
    def from_location(
        cls, loc: SourceLocation, include_trace: Tuple[SourceLocation, ...] = ()
    ) -> "SourceContext":
        return cls(
            file_path=loc.file_path,
            line=loc.line,
            column=loc.column,
            element=loc.element,
            include_trace=include_trace,
        )

    def with_operation(self, operation: str) -> "SourceContext":
        """same location, annotated with what was being done there (shown under the location)."""
        return SourceContext(
            file_path=self.file_path, line=self.line, column=self.column,
            element=self.element, include_trace=self.include_trace,
            operation_context=operation,
        )

    def with_parent(self, parent: SourceLocation) -> "SourceContext":
        """prepends the location of the <include> that pulled this context in."""
        return SourceContext(
            file_path=self.file_path, line=self.line, column=self.column,
            element=self.element, include_trace=(parent,) + self.include_trace,
            operation_context=self.operation_context,
        )


##────────────────────────────────────────────────────────────────────────────}}}

## {{{                    --     Exception     --


class ConfigurationError(Exception):
    """the single error kind raised by option binding, parsing and configuration building."""

    def __init__(
        self,
        message: str,
        context: Optional[SourceContext] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.context = context
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        return self.args[0] if self.args else ""

    @property
    def message(self) -> str:
        return str(self)

    def with_context(self, context: Optional[SourceContext]) -> "ConfigurationError":
        """returns a copy located at `context`, keeping an existing location if there is one."""
        if context is None or self.context is not None:
            return self
        err = ConfigurationError(str(self), context=context, cause=self.__cause__)
        return err


##────────────────────────────────────────────────────────────────────────────}}}

## {{{                    --     Error Formatting     --


def _simplify_path(path: str, base_dir: str) -> str:
    """Make path relative to base_dir if it doesn't require too many '../'."""
    if not path or not base_dir or path.startswith('<'):
        return path
    try:
        from pathlib import Path
        p = Path(path)
        b = Path(base_dir)
        if not p.is_absolute() or not b.is_absolute():
            return path
        try:
            return str(p.relative_to(b))
        except ValueError:
            rel = os.path.relpath(path, base_dir)
            if rel.count('..') <= 1:
                return rel
            return path
    except (OSError, ValueError):
        return path


def _get_base_dir(ctx: SourceContext) -> Optional[str]:
    """Get the base directory from the first file in the include trace."""
    if ctx.include_trace and ctx.include_trace[0].file_path:
        fp = ctx.include_trace[0].file_path
        if not fp.startswith('<'):
            return os.path.dirname(fp)
    if ctx.file_path and not ctx.file_path.startswith('<'):
        return os.path.dirname(ctx.file_path)
    return None


def _format_include_trace(ctx: SourceContext) -> list[str]:
    if not ctx.include_trace:
        return []

    base_dir = _get_base_dir(ctx)
    lines = ["", "Include trace:"]

    for i, loc in enumerate(ctx.include_trace, 1):
        fp = loc.file_path if i == 1 or not base_dir else _simplify_path(loc.file_path, base_dir)
        lines.append(f"  {i}. {fp}:{loc.line}")

    fp = _simplify_path(ctx.file_path, base_dir) if base_dir else ctx.file_path
    lines.append(f"  {len(ctx.include_trace) + 1}. {fp}:{ctx.line} <- error")
    return lines


def format_error(
    error: ConfigurationError, source_lines: Optional[dict[str, Sequence[str]]] = None
) -> str:
    lines = [f"Error: {error}"]

    if error.context is not None:
        ctx = error.context
        el = f" <{ctx.element}>" if ctx.element else ""
        lines.append(f"  in '{ctx.file_path}' line {ctx.line}{el}")

        if source_lines and ctx.file_path in source_lines:
            file_lines = source_lines[ctx.file_path]
            if 0 < ctx.line <= len(file_lines):
                if ctx.line > 1:
                    lines.append(f"    {ctx.line - 1}: {file_lines[ctx.line - 2].rstrip()}")
                lines.append(f" -> {ctx.line}: {file_lines[ctx.line - 1].rstrip()}")
                if ctx.line < len(file_lines):
                    lines.append(f"    {ctx.line + 1}: {file_lines[ctx.line].rstrip()}")

        if ctx.operation_context:
            lines.append(f"  {ctx.operation_context}")

        lines.extend(_format_include_trace(ctx))

    return "\n".join(lines)


def format_error_rich(
    error: ConfigurationError, source_lines: Optional[dict[str, Sequence[str]]] = None
):
    from rich.panel import Panel
    from rich.text import Text
    from rich.box import ROUNDED

    t = Text()
    t.append(str(error), style="bold red")
    t.append("\n")

    if error.context is not None:
        ctx = error.context
        base_dir = _get_base_dir(ctx)
        display_path = ctx.file_path
        if base_dir and ctx.include_trace:
            display_path = _simplify_path(ctx.file_path, base_dir)

        t.append("\nLocation: ", style="bold")
        t.append(display_path, style="cyan")
        t.append(f" line {ctx.line}", style="yellow")
        if ctx.element:
            t.append(" in ", style="dim")
            t.append(f"<{ctx.element}>", style="green")
        t.append("\n")

        if source_lines and ctx.file_path in source_lines:
            file_lines = source_lines[ctx.file_path]
            if 0 < ctx.line <= len(file_lines):
                t.append("\n")
                for n in range(max(1, ctx.line - 1), min(len(file_lines), ctx.line + 1) + 1):
                    content = file_lines[n - 1].rstrip()
                    if n == ctx.line:
                        t.append(f"-> {n:4d} | ", style="bold red")
                        t.append(f"{content}\n", style="bold")
                    else:
                        t.append(f"   {n:4d} | ", style="dim")
                        t.append(f"{content}\n", style="dim")

        if ctx.operation_context:
            t.append("\nContext: ", style="bold")
            t.append(f"{ctx.operation_context}\n", style="italic")

        if ctx.include_trace:
            t.append("\nInclude trace:\n", style="bold cyan")
            for i, loc in enumerate(ctx.include_trace, 1):
                fp = loc.file_path if i == 1 else _simplify_path(loc.file_path, base_dir)
                t.append(f"  {i}. ", style="dim")
                t.append(fp, style="cyan")
                t.append(f":{loc.line}\n", style="yellow")
            t.append(f"  {len(ctx.include_trace) + 1}. ", style="dim")
            t.append(display_path, style="cyan bold")
            t.append(f":{ctx.line}", style="yellow bold")
            t.append(" <- error\n", style="red bold")

    return Panel(
        t,
        title="[bold red]Configuration Error[/]",
        box=ROUNDED,
        border_style="red",
        expand=False,
        padding=(1, 2),
    )


def print_configuration_error(
    error: ConfigurationError,
    source_lines: Optional[dict[str, Sequence[str]]] = None,
    use_rich: bool = True,
) -> None:
    import sys
    import traceback

    show_traceback = os.environ.get("TRADEFED_DEBUG", "").lower() in ("1", "true", "yes")

    if use_rich:
        from rich.console import Console

        console = Console(stderr=True)
        console.print(format_error_rich(error, source_lines))
        if show_traceback and error.__cause__:
            console.print("\n[bold cyan]Python traceback (from underlying error):[/bold cyan]")
            tb_lines = traceback.format_exception(
                type(error.__cause__), error.__cause__, error.__cause__.__traceback__
            )
            console.print("".join(tb_lines))
        return

    print(format_error(error, source_lines), file=sys.stderr)
    if show_traceback and error.__cause__:
        print("\nPython traceback (from underlying error):", file=sys.stderr)
        traceback.print_exception(
            type(error.__cause__), error.__cause__, error.__cause__.__traceback__
        )


def load_source_lines(error: ConfigurationError) -> dict[str, Sequence[str]]:
    """Load source lines from files referenced in the error's context and include trace."""
    result: dict[str, Sequence[str]] = {}
    if error.context is None:
        return result

    ctx = error.context
    files_to_load = set()
    if ctx.file_path and not ctx.file_path.startswith('<'):
        files_to_load.add(ctx.file_path)
    for loc in ctx.include_trace:
        if loc.file_path and not loc.file_path.startswith('<'):
            files_to_load.add(loc.file_path)

    for fp in files_to_load:
        try:
            with open(fp, 'r') as f:
                result[fp] = f.readlines()
        except OSError:
            # bundled resources may live inside an archive; nothing to show then
            continue

    return result


def handle_configuration_error(
    error: ConfigurationError, exit_code: int = 1, use_rich: bool = True
) -> None:
    """Handle a ConfigurationError by printing formatted output and optionally exiting.

    Args:
        error: The ConfigurationError to handle
        exit_code: If >= 0, call sys.exit with this code. If < 0, just print and return.
        use_rich: Whether to use rich formatting
    """
    import sys

    source_lines = load_source_lines(error)
    print_configuration_error(error, source_lines=source_lines, use_rich=use_rich)
    if exit_code >= 0:
        sys.exit(exit_code)


##────────────────────────────────────────────────────────────────────────────}}}
