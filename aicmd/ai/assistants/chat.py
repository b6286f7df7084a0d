from typing import Optional, Tuple

from ...platforms import PlatformAdapter, current_platform
from ..llm import LLMClient


SYSTEM_PROMPT = """
You are a helpful assistant running in a command-line environment.
The user is on {os_name} using the {shell_name} shell.
Answer the user's question concisely and accurately.
Do not use any markdown formatting (no code blocks, no bold text, no lists, no headings).
Answer in plain text that reads well directly in a terminal.
"""


def build_chat_prompt(
    question: str,
    stdin_content: Optional[str] = None,
    platform: Optional[PlatformAdapter] = None,
) -> Tuple[str, str]:
    if platform is None:
        platform = current_platform()

    system_prompt = SYSTEM_PROMPT.format(
        os_name=platform.os_name, shell_name=platform.shell_name()
    )
    if stdin_content is not None:
        user_prompt = f"Question: {question}\n\nInput content:\n{stdin_content}"
    else:
        user_prompt = question
    return system_prompt, user_prompt


def chat(
    client: LLMClient,
    question: str,
    stdin_content: Optional[str] = None,
    platform: Optional[PlatformAdapter] = None,
) -> str:
    """Answers a free-form question, streaming the answer as it is generated."""
    system_prompt, user_prompt = build_chat_prompt(question, stdin_content, platform)
    return client.call_streamed(system_prompt, user_prompt)
