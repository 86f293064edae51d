"""Dialogue models: conversation entries and structured replies."""

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, ValidationError

logger = logging.getLogger(__name__)


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class HistoryEntry:
    """One conversation message.

    ``raw`` keeps the exact text exchanged with the dialogue endpoint when it
    differs from the spoken ``text`` (e.g. the assistant's JSON reply).
    """
    role: Role
    text: str
    raw: Optional[str] = None

    def simplified(self) -> Dict[str, str]:
        return {"role": self.role.value, "text": self.text}


class DialogueReply(BaseModel):
    """Structured reply from the dialogue endpoint.

    Unknown keys (triage fields such as symptoms or urgency) are kept so they
    can be forwarded with the call completion payload.
    """
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    response_text: str = Field(alias="response")
    end_call: bool = False
    send_triage: bool = False

    _raw_text: Optional[str] = PrivateAttr(default=None)

    @classmethod
    def from_raw(cls, raw_text: str) -> "DialogueReply":
        """Parse endpoint text, wrapping anything that is not a reply object.

        Args:
            raw_text: Text content returned by the dialogue endpoint

        Returns:
            Parsed reply, or a plain reply carrying ``raw_text`` verbatim
        """
        try:
            data = json.loads(raw_text)
            if isinstance(data, dict):
                reply = cls.model_validate(data)
                reply._raw_text = raw_text
                return reply
        except (json.JSONDecodeError, ValidationError) as e:
            logger.debug(f"Reply is not a structured object: {e}")
        logger.warning("Dialogue reply is not valid JSON, wrapping raw text")
        reply = cls(response_text=raw_text)
        reply._raw_text = raw_text
        return reply

    @property
    def raw_text(self) -> str:
        """Text exactly as returned by the endpoint."""
        return self._raw_text if self._raw_text is not None else self.response_text

    def to_payload(self) -> Dict[str, Any]:
        """Reply as sent to the call API, using the endpoint's key names."""
        return self.model_dump(by_alias=True)
