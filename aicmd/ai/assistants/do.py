import logging
import subprocess
import sys

from enum import Enum
from typing import Optional, Tuple

from rich.console import Console
from rich.text import Text

from ...errors import EmptyResultError
from ...platforms import PlatformAdapter, current_platform
from ..llm import LLMClient
from .explain import explain

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """
You are a command line expert. The user is on {os_name} using the {shell_name} shell.
Given a description of a task, generate the shell command that best accomplishes it
in the user's environment.
Output only the command itself: no explanation, no comments and no markdown formatting.
The command should be concise, safe and directly executable.
"""

CHOICE_PROMPT = "Execute command? [Enter/e-execute/d-explain/q-quit]: "


class InteractionChoice(Enum):
    EXECUTE = "execute"
    EXPLAIN = "explain"
    QUIT = "quit"
    INVALID = "invalid"


_CHOICES = {
    "": InteractionChoice.EXECUTE,
    "e": InteractionChoice.EXECUTE,
    "E": InteractionChoice.EXECUTE,
    "exec": InteractionChoice.EXECUTE,
    "EXEC": InteractionChoice.EXECUTE,
    "d": InteractionChoice.EXPLAIN,
    "D": InteractionChoice.EXPLAIN,
    "q": InteractionChoice.QUIT,
    "Q": InteractionChoice.QUIT,
    "quit": InteractionChoice.QUIT,
    "QUIT": InteractionChoice.QUIT,
}


def parse_choice(answer: str) -> InteractionChoice:
    """Maps one line of user input to a choice. An empty line means execute."""
    return _CHOICES.get(answer.strip(), InteractionChoice.INVALID)


def build_generate_prompt(
    description: str,
    stdin_content: Optional[str] = None,
    platform: Optional[PlatformAdapter] = None,
) -> Tuple[str, str]:
    if platform is None:
        platform = current_platform()

    system_prompt = SYSTEM_PROMPT.format(
        os_name=platform.os_name, shell_name=platform.shell_name()
    )
    if stdin_content is not None:
        user_prompt = (
            f"Description: {description}\n\n"
            f"Input content:\n{stdin_content}\n\n"
            "Generate a command that processes the content above:"
        )
    else:
        user_prompt = f"Description: {description}"
    return system_prompt, user_prompt


def _suggest_shell_command(
    client: LLMClient,
    description: str,
    stdin_content: Optional[str],
    platform: PlatformAdapter,
) -> str:
    system_prompt, user_prompt = build_generate_prompt(description, stdin_content, platform)
    return client.call_buffered(system_prompt, user_prompt).strip()


def display_command(console: Console, command: str):
    # Text, not markup: the command may contain square brackets.
    console.print(Text(f"  {command}", style="red"), soft_wrap=True)


def read_choice(platform: PlatformAdapter, from_terminal: bool) -> str:
    """
    Asks the user what to do with the command and returns their answer.

    When stdin was consumed by a pipe, the answer is read from the
    controlling terminal instead. Raises EOFError if there is nothing to read.
    """
    if not from_terminal:
        return input(CHOICE_PROMPT).strip()

    print(CHOICE_PROMPT, end="", flush=True)
    return platform.read_terminal_line()


def run_command(command: str, platform: PlatformAdapter, err_console: Console) -> int:
    """Runs `command` through the platform's interpreter and waits for it."""
    result = subprocess.run(platform.interpreter_args(command))
    logger.debug("Command exited with status %s", result.returncode)
    if result.returncode != 0:
        err_console.print(
            Text(f"Warning: the command exited with status {result.returncode}", style="yellow")
        )
    return result.returncode


def do(
    client: LLMClient,
    description: str,
    stdin_content: Optional[str] = None,
    platform: Optional[PlatformAdapter] = None,
):
    """
    Generates a shell command for `description` and lets the user execute it,
    have it explained, or quit.

    Any answer that isn't a known option ends the program (exit code 0)
    instead of asking again.
    """
    if platform is None:
        platform = current_platform()
    console = Console()
    err_console = Console(stderr=True)

    command = _suggest_shell_command(client, description, stdin_content, platform)
    if not command:
        raise EmptyResultError("Could not generate a command for the given description.")

    display_command(console, command)

    # stdin is exhausted after a pipe, so answers come from the terminal.
    from_terminal = stdin_content is not None

    while True:
        try:
            choice = parse_choice(read_choice(platform, from_terminal))
        except (KeyboardInterrupt, EOFError):
            # EOF quits. Only an explicit empty line means execute.
            print()
            sys.exit(0)

        if choice is InteractionChoice.EXECUTE:
            print()
            run_command(command, platform, err_console)
            return
        if choice is InteractionChoice.EXPLAIN:
            explain(client, command, platform)
            print()
            display_command(console, command)
            continue
        if choice is InteractionChoice.QUIT:
            sys.exit(0)

        print("Invalid option.")
        sys.exit(0)
