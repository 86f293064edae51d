"""Client for the conversational endpoint (Anthropic Messages API)."""

import asyncio
import json
import logging
from typing import Optional, Sequence

import aiohttp

from .history import entry_to_message
from ..errors import DialogueError
from ..models.dialogue import DialogueReply, HistoryEntry

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"


class DialogueClient:
    """Sends transcripts with the conversation so far and parses the reply."""

    def __init__(self, api_key: Optional[str], api_url: str = DEFAULT_API_URL,
                 model: str = "claude-3-opus-20240229", max_tokens: int = 1024,
                 timeout_seconds: float = 30.0):
        """Initialize dialogue client.

        Args:
            api_key: API key; the client is unusable without one
            api_url: Messages endpoint URL
            model: Model name sent with each request
            max_tokens: Maximum tokens in the reply
            timeout_seconds: Total request timeout
        """
        self.api_key = api_key
        self.api_url = api_url
        self.model = model
        self.max_tokens = max_tokens
        self.timeout_seconds = timeout_seconds

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def build_payload(self, user_text: str, history: Sequence[HistoryEntry], system_prompt: str) -> dict:
        messages = [entry_to_message(entry) for entry in history]
        messages.append({
            "role": "user",
            "content": [{"type": "text", "text": json.dumps({"transcription": user_text})}],
        })
        return {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": messages,
            "system": system_prompt,
        }

    async def send(self, user_text: str, history: Sequence[HistoryEntry], system_prompt: str) -> DialogueReply:
        """Send a transcript and return the structured reply.

        Args:
            user_text: Transcript of the caller's latest utterance
            history: Conversation before this utterance
            system_prompt: System prompt for the model

        Returns:
            Parsed reply; replies that are not JSON objects are wrapped

        Raises:
            DialogueError: If the client is not configured or the request fails
        """
        if not self.is_configured:
            raise DialogueError("Dialogue API key is not configured")

        headers = {
            "Content-Type": "application/json",
            "x-api-key": self.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
        }
        payload = self.build_payload(user_text, history, system_prompt)
        logger.debug(f"Sending {len(payload['messages'])} messages to {self.api_url}")

        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(self.api_url, headers=headers, json=payload) as response:
                    if response.status != 200:
                        error_text = await response.text()
                        raise DialogueError(f"Dialogue API error: {response.status} - {error_text}")
                    result = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise DialogueError(f"Failed to get response from dialogue API: {e}") from e

        try:
            raw_text = result["content"][0]["text"]
        except (KeyError, IndexError, TypeError) as e:
            raise DialogueError(f"Unexpected dialogue API response: {result}") from e

        reply = DialogueReply.from_raw(raw_text)
        logger.info(f"Dialogue reply: end_call={reply.end_call}, send_triage={reply.send_triage}")
        return reply
