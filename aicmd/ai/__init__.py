"""
The `ai` package talks to the chat-completion endpoint and holds the
assistants built on top of it: command generation, command explanation
and free-form chat.
"""

from .llm import ChatMessage, ChatRequest, LLMClient, Role
from .assistants.do import do
from .assistants.explain import explain
from .assistants.chat import chat


__all__ = [
    "ChatMessage",
    "ChatRequest",
    "LLMClient",
    "Role",
    "do",
    "explain",
    "chat",
]
