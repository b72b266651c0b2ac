"""Shared test helpers: mock Gemini responses and a scripted provider."""

from __future__ import annotations

import asyncio
from unittest.mock import MagicMock

from google.genai import types

from sparkgarden.agent.provider import ChatReply, Generation, ImageData


def _web_chunk(uri: str, title: str = "") -> types.GroundingChunk:
    return types.GroundingChunk(web=types.GroundingChunkWeb(uri=uri, title=title))


def _maps_chunk(uri: str, title: str = "") -> types.GroundingChunk:
    return types.GroundingChunk(maps=types.GroundingChunkMaps(uri=uri, title=title))


def _make_text_response(text: str | None, chunks: list | None = None):
    """Create a mock Gemini response with text content and grounding chunks."""
    part = MagicMock()
    part.text = text
    part.function_call = None
    part.inline_data = None

    content = MagicMock()
    content.role = "model"
    content.parts = [part]

    metadata = MagicMock()
    metadata.grounding_chunks = chunks

    candidate = MagicMock()
    candidate.content = content
    candidate.grounding_metadata = metadata

    response = MagicMock()
    response.candidates = [candidate]
    response.function_calls = None
    response.text = text
    return response


def _make_fn_call_response(name: str, args: dict, call_id: str | None = None):
    """Create a mock Gemini response with a function call."""
    fn_call = MagicMock()
    fn_call.name = name
    fn_call.args = args
    fn_call.id = call_id

    fn_part = MagicMock()
    fn_part.function_call = fn_call

    content = MagicMock()
    content.role = "model"
    content.parts = [fn_part]

    candidate = MagicMock()
    candidate.content = content
    candidate.grounding_metadata = None

    response = MagicMock()
    response.candidates = [candidate]
    response.function_calls = [fn_call]
    response.text = None
    return response


def _make_image_response(data: bytes | None, mime_type: str = "image/png"):
    """Create a mock Gemini response carrying one inline image part."""
    part = MagicMock()
    part.text = None
    if data is None:
        part.inline_data = None
    else:
        part.inline_data = MagicMock()
        part.inline_data.data = data
        part.inline_data.mime_type = mime_type

    candidate = MagicMock()
    candidate.content.parts = [part]

    response = MagicMock()
    response.candidates = [candidate]
    return response


class FakeChatSession:
    """Chat session that replays scripted replies and records what was sent."""

    def __init__(self, replies: list) -> None:
        self._replies = list(replies)
        self.sent: list = []

    async def send_message(self, message):
        self.sent.append(message)
        reply = self._replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class FakeProvider:
    """Scripted GenerationProvider.

    ``outcomes`` maps a prompt prefix (an agent prompt) to a Generation, an
    exception to raise, or a (delay, Generation) pair. Unmatched prompts get
    ``Generation(text="ok")``.
    """

    def __init__(
        self,
        outcomes: dict | None = None,
        chat_replies: list[ChatReply] | None = None,
    ) -> None:
        self._outcomes = outcomes or {}
        self.calls: list[dict] = []
        self.events: list[str] = []
        self.chat_kwargs: dict | None = None
        self.session = FakeChatSession(chat_replies or [])
        self.image = ImageData(data=b"\x89PNG", mime_type="image/png")
        self.image_calls: list[dict] = []
        self.places = Generation(text="")
        self.places_calls: list[dict] = []

    async def generate(self, prompt, search=False, thinking_budget=None):
        self.calls.append({"prompt": prompt, "search": search, "thinking_budget": thinking_budget})
        outcome = Generation(text="ok")
        for prefix, value in self._outcomes.items():
            if prompt.startswith(prefix):
                outcome = value
                break
        self.events.append(f"start:{prompt[:20]}")
        if isinstance(outcome, tuple):
            delay, outcome = outcome
            await asyncio.sleep(delay)
        self.events.append(f"end:{prompt[:20]}")
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def create_chat(self, system_instruction, tools, history):
        self.chat_kwargs = {
            "system_instruction": system_instruction,
            "tools": tools,
            "history": history,
        }
        return self.session

    async def generate_image(self, prompt, aspect_ratio, image_size):
        self.image_calls.append(
            {"prompt": prompt, "aspect_ratio": aspect_ratio, "image_size": image_size}
        )
        if isinstance(self.image, Exception):
            raise self.image
        return self.image

    async def find_places(self, query, location=None):
        self.places_calls.append({"query": query, "location": location})
        if isinstance(self.places, Exception):
            raise self.places
        return self.places
