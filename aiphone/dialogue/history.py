"""Conversation history for one call."""

import json
import logging
from typing import Dict, Iterator, List, Optional

from ..models.dialogue import HistoryEntry, Role

logger = logging.getLogger(__name__)


class ConversationHistory:
    """Ordered user/assistant messages exchanged during a call."""

    def __init__(self):
        self._entries: List[HistoryEntry] = []

    def append_user(self, text: str) -> HistoryEntry:
        """Record a transcript; the endpoint receives it wrapped as JSON."""
        entry = HistoryEntry(Role.USER, text, raw=json.dumps({"transcription": text}))
        self._entries.append(entry)
        return entry

    def append_assistant(self, text: str, raw: Optional[str] = None) -> HistoryEntry:
        entry = HistoryEntry(Role.ASSISTANT, text, raw=raw)
        self._entries.append(entry)
        return entry

    def clear(self) -> None:
        self._entries.clear()
        logger.debug("Conversation history cleared")

    def reset_to_greeting(self, greeting: str) -> None:
        """Drop everything except the greeting (used when context is disabled)."""
        self.clear()
        self.append_assistant(greeting)

    @property
    def entries(self) -> List[HistoryEntry]:
        return list(self._entries)

    def to_messages(self) -> List[Dict]:
        """Entries in the dialogue endpoint's message format."""
        return [entry_to_message(entry) for entry in self._entries]

    def simplified(self) -> List[Dict[str, str]]:
        """``{role, text}`` pairs for the triage summary."""
        return [entry.simplified() for entry in self._entries]

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[HistoryEntry]:
        return iter(list(self._entries))


def entry_to_message(entry: HistoryEntry) -> Dict:
    return {
        "role": entry.role.value,
        "content": [{"type": "text", "text": entry.raw if entry.raw is not None else entry.text}],
    }
