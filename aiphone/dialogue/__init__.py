"""Conversation history and the dialogue endpoint client."""

from .client import DialogueClient
from .history import ConversationHistory
from .prompt import DEFAULT_SYSTEM_PROMPT, load_system_prompt

__all__ = [
    'DialogueClient',
    'ConversationHistory',
    'DEFAULT_SYSTEM_PROMPT',
    'load_system_prompt',
]
