"""Test doubles and synthetic audio shared by the test suites."""

import asyncio
import os
from contextlib import asynccontextmanager
from typing import List, Optional

import numpy as np
from aiohttp import test_utils, web

from aiphone.audio.source import AudioFrameSource
from aiphone.errors import DeviceError
from aiphone.models.audio import AudioFrame
from aiphone.models.dialogue import DialogueReply


def level_frame(level: float, sequence_number: int, samples: int = 1600,
                sample_rate: int = 16000) -> AudioFrame:
    """Frame whose energy level is ``level`` (constant amplitude)."""
    amplitude = int(round(level * 32768))
    data = np.full(samples, min(amplitude, 32767), dtype=np.int16).tobytes()
    return AudioFrame(
        data=data,
        sequence_number=sequence_number,
        sample_rate=sample_rate,
        timestamp_ms=sequence_number * samples * 1000.0 / sample_rate,
    )


def level_frames(levels: List[float], samples: int = 1600) -> List[AudioFrame]:
    return [level_frame(level, i, samples) for i, level in enumerate(levels)]


class ScriptedFrameSource(AudioFrameSource):
    """Frame source replaying a fixed list of frames.

    With ``stall=True`` it blocks after the last frame until closed, like a
    microphone that stopped delivering data. ``error_after`` raises
    DeviceError once that many frames have been delivered.
    """

    def __init__(self, frames: List[AudioFrame], stall: bool = False,
                 error_after: Optional[int] = None, fail_open: bool = False):
        self.frames = list(frames)
        self.stall = stall
        self.error_after = error_after
        self.fail_open = fail_open
        self.delivered = 0
        self.opened = False
        self.closed = False
        self.close_calls = 0
        self.wait_closed_calls = 0
        self._closed_event: Optional[asyncio.Event] = None

    def open(self) -> None:
        if self.fail_open:
            raise DeviceError("No input device")
        self.opened = True
        self._closed_event = asyncio.Event()

    def close(self) -> None:
        self.close_calls += 1
        if self.closed:
            return
        self.closed = True
        if self._closed_event is not None:
            self._closed_event.set()

    async def wait_closed(self) -> None:
        self.wait_closed_calls += 1

    async def __anext__(self) -> AudioFrame:
        if self.closed:
            raise StopAsyncIteration
        if self.error_after is not None and self.delivered >= self.error_after:
            raise DeviceError("Input overflowed")
        if self.delivered < len(self.frames):
            frame = self.frames[self.delivered]
            self.delivered += 1
            # Yield to the loop like a real device would
            await asyncio.sleep(0)
            return frame
        if self.stall:
            await self._closed_event.wait()
        raise StopAsyncIteration


class FakeTranscriber:
    def __init__(self, text: str = "I have a headache", error: Optional[Exception] = None):
        self.text = text
        self.error = error
        self.paths = []

    def transcribe_file(self, path: str) -> str:
        self.paths.append(path)
        if self.error is not None:
            raise self.error
        return self.text

    def initialize(self) -> bool:
        return True

    def cleanup(self) -> None:
        pass


class FakeSynthesizer:
    def __init__(self, directory: str, error: Optional[Exception] = None):
        self.directory = directory
        self.error = error
        self.texts = []
        self.preloaded = []

    def synthesize(self, text: str, voice: str = None) -> str:
        self.texts.append(text)
        if self.error is not None:
            raise self.error
        return os.path.join(self.directory, f"speech_{len(self.texts)}.wav")

    def preload(self, phrases, voice=None):
        self.preloaded.extend(phrases)
        return []

    def initialize(self) -> bool:
        return True

    def cleanup(self) -> None:
        pass


class FakePlayer:
    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.played = []
        self.closed = False

    def play(self, path: str) -> None:
        self.played.append(path)
        if self.error is not None:
            raise self.error

    def close(self) -> None:
        self.closed = True


class FakeDialogue:
    def __init__(self, replies=None, error: Optional[Exception] = None, configured: bool = True):
        self.replies = list(replies or [])
        self.error = error
        self.is_configured = configured
        self.requests = []

    async def send(self, user_text, history, system_prompt) -> DialogueReply:
        self.requests.append((user_text, list(history), system_prompt))
        if self.error is not None:
            raise self.error
        if self.replies:
            reply = self.replies.pop(0)
            return reply if isinstance(reply, DialogueReply) else DialogueReply.from_raw(reply)
        return DialogueReply(response_text=f"You said: {user_text}")


class FakeTracker:
    def __init__(self, call_id=42, complete_ok: bool = True):
        self.call_id = call_id
        self.complete_ok = complete_ok
        self.is_configured = True
        self.events = []

    async def create_call(self):
        self.events.append(("create",))
        return self.call_id

    async def update_status(self, call_id, status) -> bool:
        self.events.append(("status", call_id, status.value))
        return True

    async def complete_call(self, call_id, payload) -> bool:
        self.events.append(("complete", call_id, payload))
        return self.complete_ok

    @property
    def statuses(self) -> List[str]:
        return [event[2] for event in self.events if event[0] == "status"]


@asynccontextmanager
async def serve(routes):
    """Run an aiohttp app on a free local port; yields its base URL."""
    app = web.Application()
    app.add_routes(routes)
    server = test_utils.TestServer(app)
    await server.start_server()
    try:
        yield f"http://{server.host}:{server.port}"
    finally:
        await server.close()


class CallApi:
    """In-memory version of the call record endpoints."""

    def __init__(self, fail_body_updates=False, call_id=7):
        self.fail_body_updates = fail_body_updates
        self.call_id = call_id
        self.requests = []

    async def create(self, request):
        self.requests.append(("POST", request.path, request.query.get("status"), None))
        return web.json_response({"id": self.call_id, "status": request.query.get("status")})

    async def update(self, request):
        body = await request.json() if request.can_read_body else None
        self.requests.append(("PATCH", request.path, request.query.get("status"), body))
        if body is not None and self.fail_body_updates:
            return web.json_response({"message": "invalid"}, status=422)
        return web.json_response({"id": int(request.match_info["call_id"])})

    @property
    def statuses(self) -> List[str]:
        return [status for _, _, status, _ in self.requests]

    @property
    def routes(self):
        return [web.post("/api/call", self.create), web.patch("/api/call/{call_id}", self.update)]
