"""
aicmd turns natural-language descriptions into shell commands, or answers
questions, using an OpenAI-compatible chat-completion endpoint.
"""

__version__ = "0.1.0"
