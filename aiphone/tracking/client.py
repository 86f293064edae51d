"""REST client for call records kept by the admin app."""

import asyncio
import logging
from typing import Any, Dict, Optional, Union

import aiohttp

from ..errors import CallTrackingError
from ..models.call import CallStatus

logger = logging.getLogger(__name__)

CallId = Union[int, str]


class CallTrackingClient:
    """Creates call records and reports their progress.

    Tracking is best effort: every public method logs failures and returns
    normally so the call itself is never interrupted.
    """

    def __init__(self, base_url: Optional[str], timeout_seconds: float = 5.0):
        self.base_url = base_url.rstrip("/") if base_url else None
        self.timeout_seconds = timeout_seconds

    @property
    def is_configured(self) -> bool:
        return bool(self.base_url)

    async def _request(self, method: str, path: str, status: CallStatus,
                       body: Optional[Dict[str, Any]] = None) -> Any:
        if not self.is_configured:
            raise CallTrackingError("API base URL is not configured")

        url = f"{self.base_url}{path}"
        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.request(method, url, params={"status": status.value}, json=body) as response:
                    if response.status >= 400:
                        error_text = await response.text()
                        raise CallTrackingError(f"Call API error: {response.status} - {error_text}")
                    return await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise CallTrackingError(f"{method} {url} failed: {e}") from e

    async def create_call(self) -> Optional[CallId]:
        """Start a call record.

        Returns:
            The new call id, or None if the record could not be created
        """
        try:
            data = await self._request("POST", "/api/call", CallStatus.INITIATED)
            call_id = data["id"]
        except CallTrackingError as e:
            logger.error(f"Error starting call: {e}")
            return None
        except (KeyError, TypeError):
            logger.error(f"Call API returned no call id: {data}")
            return None
        logger.info(f"Call started with ID: {call_id}")
        return call_id

    async def update_status(self, call_id: Optional[CallId], status: CallStatus) -> bool:
        """Move a call record to ``status``; returns True on success."""
        if call_id is None:
            logger.warning("No active call ID found. Call may not have been started.")
            return False
        try:
            await self._request("PATCH", f"/api/call/{call_id}", status)
        except CallTrackingError as e:
            logger.error(f"Error updating call status to {status.value}: {e}")
            return False
        logger.info(f"Call {call_id} status updated to: {status.value}")
        return True

    async def complete_call(self, call_id: Optional[CallId], payload: Dict[str, Any]) -> bool:
        """Complete a call with the triage payload.

        Falls back to a plain ``completed`` status update when the payload
        cannot be delivered.
        """
        if call_id is None:
            logger.warning("No active call ID found. Call may not have been started.")
            return False
        try:
            await self._request("PATCH", f"/api/call/{call_id}", CallStatus.COMPLETED,
                                body={"ai_response": payload})
        except CallTrackingError as e:
            logger.error(f"Error completing call with data: {e}")
            return await self.update_status(call_id, CallStatus.COMPLETED)
        logger.info(f"Call {call_id} completed with data")
        return True
