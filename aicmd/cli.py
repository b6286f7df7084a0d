#!/usr/bin/env python3

import argparse
import argcomplete
import logging
import sys

from abc import ABC, abstractmethod
from typing import List, Optional, TextIO

from .ai import LLMClient, chat, do
from .config import ENV_KEYS, load_config
from .errors import UsageError
from .logger import setup_logging
from .platforms import current_platform

logger = logging.getLogger(__name__)

DESCRIPTION = "AI command-line helper: turns a description into a shell command, or answers a question."

EPILOG = f"""\
examples:
  aicmd "show the current system time"
  aicmd "find the process using port 8080"
  aicmd -c "how to speed up MySQL queries"
  cat error.log | aicmd -c "analyse this error log"

configuration:
  Put the API settings in ~/.aicmd/config:
    API_KEY=your_api_key
    API_URL=https://api.openai.com/v1/chat/completions
    MODEL=gpt-3.5-turbo
  The environment variables {', '.join(ENV_KEYS)} override the file.
"""


class Argument(ABC):
    def __init__(self, help: str, kwargs: Optional[dict] = None):
        self.help = help
        self.kwargs = kwargs if kwargs is not None else {}

    @abstractmethod
    def add_to_parser(self, parser: argparse.ArgumentParser):
        pass


class OptionalArg(Argument):
    def __init__(
        self,
        short_option: str,
        long_option: str,
        help: str,
        kwargs: Optional[dict] = None,
    ):
        super().__init__(help=help, kwargs=kwargs)
        self.short_option = short_option
        self.long_option = long_option

    def add_to_parser(self, parser: argparse.ArgumentParser):
        parser.add_argument(
            self.short_option, self.long_option, help=self.help, **self.kwargs
        )


class PositionalArg(Argument):
    def __init__(self, name: str, help: str, kwargs: Optional[dict] = None):
        super().__init__(help=help, kwargs=kwargs)
        self.name = name

    def add_to_parser(self, parser: argparse.ArgumentParser):
        parser.add_argument(self.name, help=self.help, **self.kwargs)


ARGUMENTS: List[Argument] = [
    OptionalArg(
        short_option="-c",
        long_option="--chat",
        help="Chat mode: answer the question directly instead of generating a command.",
        kwargs={"action": "store_true"},
    ),
    OptionalArg(
        short_option="-v",
        long_option="--verbose",
        help="Print debug logs to stderr.",
        kwargs={"action": "store_true"},
    ),
    PositionalArg(
        name="description",
        help="The task to turn into a command (or the question, in chat mode).",
        kwargs={"nargs": "*"},
    ),
]


##############################################################################


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="aicmd",
        description=DESCRIPTION,
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    for arg in ARGUMENTS:
        arg.add_to_parser(parser)
    return parser


def read_piped_input(stdin: TextIO) -> Optional[str]:
    """Returns whatever was piped into the program, or None for a terminal or blank input."""
    if stdin.isatty():
        return None

    try:
        content = stdin.read()
    except UnicodeDecodeError as e:
        logger.debug("Ignoring piped input that is not valid text: %s", e)
        return None

    if not content.strip():
        return None
    return content


def run_cli(argv: Optional[List[str]] = None, stdin: Optional[TextIO] = None):
    """
    Parses command-line arguments and runs the selected mode.

    Args:
        argv: The command-line arguments. If None, `sys.argv[1:]` is used.
        stdin: Where piped input is read from. Defaults to `sys.stdin`.
    """
    parser = build_parser()

    # Enable argument auto-completion.
    argcomplete.autocomplete(parser)

    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    if stdin is None:
        stdin = sys.stdin

    try:
        stdin_content = read_piped_input(stdin)
        description = " ".join(args.description)
        if not description and stdin_content is None:
            raise UsageError("Please provide a description or pipe some input.")

        config = load_config()
        platform = current_platform()
        client = LLMClient(config)

        mode = chat if args.chat else do
        mode(client, description, stdin_content, platform)
    except UsageError as e:
        print(f"Error: {e}", file=sys.stderr)
        print("Use -h or --help for help.", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        logger.debug("Invocation failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def main():
    """The entry point of the `aicmd` script."""
    try:
        run_cli()
    except KeyboardInterrupt:
        print()
        sys.exit(130)  # 128 + SIGINT


if __name__ == "__main__":
    main()
