import sys
import logging
from typing import Annotated, List

from pydantic import BaseModel
from rich.console import Console
from rich.logging import RichHandler

from tradefed import ArgsOptionParser, ConfigurationError, ConfigurationFactory, Option, Importance
from tradefed import dump_configuration, handle_configuration_error


log = logging.getLogger("tradefed-print")

USAGE = "tradefed-print [--help] [--help-all] [--dump] [--verbose] <configuration> [configuration options...]"


class PrintOptions(BaseModel):
    help: Annotated[
        bool,
        Option("help", short_name="h", description="Show the usage of the configuration", importance=Importance.ALWAYS),
    ] = False

    help_all: Annotated[
        bool,
        Option("help-all", description="Show the usage of the configuration, every option included"),
    ] = False

    dump: Annotated[
        bool,
        Option("dump", short_name="d", description="Print the option values of every object as YAML, even with --help"),
    ] = False

    verbose: Annotated[
        bool,
        Option("verbose", short_name="v", description="Show debug logs while loading"),
    ] = False

    def run(self, config_args: List[str], console: Console) -> int:
        factory = ConfigurationFactory()
        if not config_args:
            console.print(f"Usage: {USAGE}\n")
            factory.print_help(console)
            return 0 if (self.help or self.help_all) else 1

        # the factory expects the configuration name last
        args = config_args[1:] + config_args[:1]
        try:
            config = factory.create_configuration_from_args(args)
        except ConfigurationError as e:
            handle_configuration_error(e, exit_code=-1)
            return 1

        log_output = config.log_output
        if log_output is not None:
            log_output.install()
        try:
            command = config.command_options
            asked_full = self.help_all or (command is not None and command.full_help_mode)
            asked_help = self.help or (command is not None and command.help_mode)
            if not self.dump and (asked_help or asked_full):
                config.print_command_usage(console=console, full=asked_full)
            else:
                log.debug(f"dumping configuration '{config.name}'")
                console.print(dump_configuration(config), markup=False, highlight=False, soft_wrap=True, end="")
        finally:
            if log_output is not None:
                log_output.close()
        return 0


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    options = PrintOptions()
    try:
        config_args = ArgsOptionParser(options).parse(argv)
    except ConfigurationError as e:
        handle_configuration_error(e, exit_code=-1)
        print(f"Usage: {USAGE}", file=sys.stderr)
        return 2

    logging.basicConfig(
        level="DEBUG" if options.verbose else "WARNING",
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True)],
    )
    return options.run(config_args, Console())


if __name__ == "__main__":
    sys.exit(main())
