from typing import Optional, Tuple

from ...platforms import PlatformAdapter, current_platform
from ..llm import LLMClient


SYSTEM_PROMPT = """
You are a command line expert. The user is on {os_name} using the {shell_name} shell.
Explain the given shell command: what each argument means, what the command does,
and anything to watch out for when running it.
Do not use any markdown formatting (no code blocks, no bold text, no lists).
Answer in plain text that reads well directly in a terminal.
"""


def build_explain_prompt(
    command: str, platform: Optional[PlatformAdapter] = None
) -> Tuple[str, str]:
    if platform is None:
        platform = current_platform()

    system_prompt = SYSTEM_PROMPT.format(
        os_name=platform.os_name, shell_name=platform.shell_name()
    )
    user_prompt = f"Explain the following command:\n\n{command}"
    return system_prompt, user_prompt


def explain(client: LLMClient, command: str, platform: Optional[PlatformAdapter] = None) -> str:
    """Streams an explanation of `command` to the terminal and returns it."""
    system_prompt, user_prompt = build_explain_prompt(command, platform)
    return client.call_streamed(system_prompt, user_prompt)
