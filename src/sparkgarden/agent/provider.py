"""Generative model client interface and Gemini implementation."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Protocol

from google import genai
from google.genai import types

from sparkgarden import config
from sparkgarden.models import ChatMessage, Citation

logger = logging.getLogger(__name__)


class ImageGenerationError(RuntimeError):
    """Raised when the image model returns no image data."""


@dataclass
class Generation:
    """Text plus the grounding chunks attached to it."""

    text: str
    citations: list[Citation] = field(default_factory=list)


@dataclass
class FunctionCall:
    name: str
    args: dict[str, Any]
    id: str | None = None


@dataclass
class ToolResult:
    """Acknowledgment sent back to the model for one function call."""

    name: str
    result: str
    id: str | None = None


@dataclass
class ChatReply:
    text: str
    function_calls: list[FunctionCall] = field(default_factory=list)


@dataclass
class ImageData:
    data: bytes
    mime_type: str = "image/png"


class ChatSession(Protocol):
    async def send_message(self, message: str | list[ToolResult]) -> ChatReply: ...


class GenerationProvider(Protocol):
    """Protocol for the hosted model operations the agents consume."""

    async def generate(
        self,
        prompt: str,
        search: bool = False,
        thinking_budget: int | None = None,
    ) -> Generation: ...

    def create_chat(
        self,
        system_instruction: str,
        tools: list[types.FunctionDeclaration],
        history: list[ChatMessage],
    ) -> ChatSession: ...

    async def generate_image(
        self,
        prompt: str,
        aspect_ratio: str,
        image_size: str,
    ) -> ImageData: ...

    async def find_places(
        self,
        query: str,
        location: tuple[float, float] | None = None,
    ) -> Generation: ...


def extract_citations(response: Any) -> list[Citation]:
    """Collect web and maps grounding chunks from the first candidate."""
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return []
    metadata = getattr(candidates[0], "grounding_metadata", None)
    chunks = getattr(metadata, "grounding_chunks", None) or []

    citations: list[Citation] = []
    for chunk in chunks:
        if getattr(chunk, "web", None) is not None:
            citations.append(Citation(
                kind="web",
                uri=chunk.web.uri or "",
                title=chunk.web.title or "",
            ))
        elif getattr(chunk, "maps", None) is not None:
            snippets: list[str] = []
            sources = getattr(chunk.maps, "place_answer_sources", None)
            for snippet in getattr(sources, "review_snippets", None) or []:
                text = getattr(snippet, "review", None) or getattr(snippet, "title", None)
                if text:
                    snippets.append(text)
            citations.append(Citation(
                kind="maps",
                uri=chunk.maps.uri or "",
                title=chunk.maps.title or "",
                review_snippets=snippets,
            ))
    return citations


def extract_function_calls(response: Any) -> list[FunctionCall]:
    calls = []
    for call in getattr(response, "function_calls", None) or []:
        calls.append(FunctionCall(
            name=call.name or "",
            args=dict(call.args) if call.args else {},
            id=getattr(call, "id", None),
        ))
    return calls


def _to_content(message: ChatMessage) -> types.Content:
    return types.Content(
        role=message.role,
        parts=[types.Part.from_text(text=message.text)],
    )


class GeminiChatSession:
    """One multi-turn chat on the async Gemini client."""

    def __init__(self, chat: Any) -> None:
        self._chat = chat

    async def send_message(self, message: str | list[ToolResult]) -> ChatReply:
        if isinstance(message, str):
            payload: Any = message
            logger.debug("Chat send: %d char message", len(message))
        else:
            payload = [
                types.Part(
                    function_response=types.FunctionResponse(
                        id=r.id,
                        name=r.name,
                        response={"result": r.result},
                    )
                )
                for r in message
            ]
            logger.debug("Chat send: %d tool result(s)", len(message))
        t0 = time.perf_counter()
        response = await self._chat.send_message(payload)
        reply = ChatReply(
            text=response.text or "",
            function_calls=extract_function_calls(response),
        )
        logger.debug(
            "Chat reply: %d chars, %d function call(s), %.0fms",
            len(reply.text), len(reply.function_calls), (time.perf_counter() - t0) * 1000,
        )
        return reply


class GeminiClient:
    """Gemini implementation of text, chat, image and maps generation."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        image_model: str | None = None,
        maps_model: str | None = None,
    ) -> None:
        self._client = genai.Client(api_key=api_key or config.GEMINI_API_KEY)
        self._model = model or config.GEMINI_MODEL
        self._image_model = image_model or config.IMAGE_MODEL
        self._maps_model = maps_model or config.MAPS_MODEL

    async def generate(
        self,
        prompt: str,
        search: bool = False,
        thinking_budget: int | None = None,
    ) -> Generation:
        """Generate text, optionally grounded with Google Search.

        Args:
            prompt: The full prompt, agent instructions included.
            search: Enable the web-search tool.
            thinking_budget: Optional thinking token budget.

        Returns:
            The text (empty string when the model returned none) and citations.
        """
        logger.debug(
            "Generate via %s (%d char prompt, search=%s)", self._model, len(prompt), search,
        )
        t0 = time.perf_counter()
        gen_config = types.GenerateContentConfig(
            tools=[types.Tool(google_search=types.GoogleSearch())] if search else None,
            thinking_config=(
                types.ThinkingConfig(thinking_budget=thinking_budget)
                if thinking_budget is not None else None
            ),
        )
        response = await self._client.aio.models.generate_content(
            model=self._model,
            contents=prompt,
            config=gen_config,
        )
        result = Generation(text=response.text or "", citations=extract_citations(response))
        logger.debug(
            "Generate complete: %d chars, %d citation(s), %.0fms",
            len(result.text), len(result.citations), (time.perf_counter() - t0) * 1000,
        )
        return result

    def create_chat(
        self,
        system_instruction: str,
        tools: list[types.FunctionDeclaration],
        history: list[ChatMessage],
    ) -> GeminiChatSession:
        chat = self._client.aio.chats.create(
            model=self._model,
            config=types.GenerateContentConfig(
                system_instruction=system_instruction,
                tools=[types.Tool(function_declarations=tools)],
                automatic_function_calling=types.AutomaticFunctionCallingConfig(
                    disable=True
                ),
            ),
            history=[_to_content(m) for m in history],
        )
        return GeminiChatSession(chat)

    async def generate_image(
        self,
        prompt: str,
        aspect_ratio: str,
        image_size: str,
    ) -> ImageData:
        """Synthesize one image. Raises ImageGenerationError if none comes back."""
        logger.debug(
            "Generate image via %s (%s, %s, %d char prompt)",
            self._image_model, aspect_ratio, image_size, len(prompt),
        )
        t0 = time.perf_counter()
        response = await self._client.aio.models.generate_content(
            model=self._image_model,
            contents=prompt,
            config=types.GenerateContentConfig(
                image_config=types.ImageConfig(
                    aspect_ratio=aspect_ratio,
                    image_size=image_size,
                ),
            ),
        )
        candidates = response.candidates or []
        parts = (candidates[0].content.parts or []) if candidates and candidates[0].content else []
        for part in parts:
            if part.inline_data is not None and part.inline_data.data:
                logger.debug("Image complete: %.0fms", (time.perf_counter() - t0) * 1000)
                return ImageData(
                    data=part.inline_data.data,
                    mime_type=part.inline_data.mime_type or "image/png",
                )
        raise ImageGenerationError("No image data found in response")

    async def find_places(
        self,
        query: str,
        location: tuple[float, float] | None = None,
    ) -> Generation:
        """Answer a query grounded with Google Maps, optionally near (lat, lng)."""
        logger.debug("Find places via %s: %r (location=%s)", self._maps_model, query[:80], location)
        tool_config = None
        if location is not None:
            lat, lng = location
            tool_config = types.ToolConfig(
                retrieval_config=types.RetrievalConfig(
                    lat_lng=types.LatLng(latitude=lat, longitude=lng),
                ),
            )
        response = await self._client.aio.models.generate_content(
            model=self._maps_model,
            contents=query,
            config=types.GenerateContentConfig(
                tools=[types.Tool(google_maps=types.GoogleMaps())],
                tool_config=tool_config,
            ),
        )
        return Generation(text=response.text or "", citations=extract_citations(response))
