"""Idea records and their nested collections.

Every record serializes to one JSON document. Document keys keep the camelCase
names of the legacy flat-list export so old exports load unchanged.
"""

from __future__ import annotations

import random
import time
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

CARD_COLORS = [
    "#FFD6E0",  # soft pink
    "#C1F0DC",  # mint
    "#D4E0FF",  # periwinkle
    "#FFF5C2",  # light yellow
    "#E0D4FF",  # lavender
    "#FFE4C2",  # peach
]

DEFAULT_TAGS = ["Idea"]


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def new_id() -> str:
    return uuid.uuid4().hex


class IdeaStatus(str, Enum):
    NEW = "new"
    PROCESSING = "processing"
    READY = "ready"
    ERROR = "error"


class Section(str, Enum):
    """The five analysis sections. Values are the ids the chat tool accepts."""

    EXECUTIVE_SUMMARY = "executiveSummary"
    MARKET_RESEARCH = "marketResearch"
    PRD = "prd"
    UIUX = "uiux"
    ONE_SHOT_PROMPT = "oneShotPrompt"

    @classmethod
    def parse(cls, value: Any) -> Section | None:
        """Return the matching section, or None for anything unrecognized."""
        try:
            return cls(value)
        except ValueError:
            return None


# Section id -> Analysis attribute
_SECTION_FIELDS = {
    Section.EXECUTIVE_SUMMARY: "executive_summary",
    Section.MARKET_RESEARCH: "market_research",
    Section.PRD: "prd",
    Section.UIUX: "uiux",
    Section.ONE_SHOT_PROMPT: "one_shot_prompt",
}


class AspectRatio(str, Enum):
    SQUARE = "1:1"
    PORTRAIT = "3:4"
    LANDSCAPE = "4:3"
    WIDE = "16:9"
    ULTRAWIDE = "21:9"
    NINE_SIXTEEN = "9:16"


class ImageSize(str, Enum):
    ONE_K = "1K"
    TWO_K = "2K"
    FOUR_K = "4K"


class ImageStyle(str, Enum):
    ARTISTIC = "artistic"
    UI_FLOW = "ui-flow"


@dataclass
class Note:
    text: str
    id: str = field(default_factory=new_id)
    timestamp: int = field(default_factory=now_ms)

    def to_dict(self) -> dict:
        return {"id": self.id, "text": self.text, "timestamp": self.timestamp}

    @classmethod
    def from_dict(cls, data: dict) -> Note:
        return cls(
            text=data.get("text", ""),
            id=str(data.get("id") or new_id()),
            timestamp=int(data.get("timestamp") or 0),
        )


@dataclass
class Analysis:
    """Five markdown documents produced by the agent pipeline."""

    executive_summary: str = ""
    market_research: str = ""
    prd: str = ""
    uiux: str = ""
    one_shot_prompt: str = ""

    def get(self, section: Section) -> str:
        return getattr(self, _SECTION_FIELDS[section])

    def with_section(self, section: Section, content: str) -> Analysis:
        """Return a copy with one section replaced."""
        return replace(self, **{_SECTION_FIELDS[section]: content})

    def to_dict(self) -> dict:
        return {section.value: self.get(section) for section in Section}

    @classmethod
    def from_dict(cls, data: dict | None) -> Analysis:
        data = data or {}
        return cls(**{
            attr: data.get(section.value) or ""
            for section, attr in _SECTION_FIELDS.items()
        })


@dataclass
class Citation:
    """A grounding chunk: a web page or a maps place the model cited."""

    kind: str  # "web" or "maps"
    uri: str = ""
    title: str = ""
    review_snippets: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        if self.kind == "maps":
            body: dict[str, Any] = {"uri": self.uri, "title": self.title}
            if self.review_snippets:
                body["placeAnswerSources"] = [
                    {"reviewSnippets": [{"content": s} for s in self.review_snippets]}
                ]
            return {"maps": body}
        return {"web": {"uri": self.uri, "title": self.title}}

    @classmethod
    def from_dict(cls, data: dict) -> Citation | None:
        """Parse a stored grounding chunk. Chunks with neither web nor maps are dropped."""
        if data.get("web"):
            web = data["web"]
            return cls(kind="web", uri=web.get("uri") or "", title=web.get("title") or "")
        if data.get("maps"):
            maps = data["maps"]
            snippets = []
            for source in maps.get("placeAnswerSources") or []:
                for snippet in source.get("reviewSnippets") or []:
                    if snippet.get("content"):
                        snippets.append(snippet["content"])
            return cls(
                kind="maps",
                uri=maps.get("uri") or "",
                title=maps.get("title") or "",
                review_snippets=snippets,
            )
        return None


@dataclass
class GeneratedImage:
    url: str  # data: URI
    prompt: str
    aspect_ratio: str = AspectRatio.SQUARE.value
    style: str = ImageStyle.ARTISTIC.value

    def to_dict(self) -> dict:
        return {
            "url": self.url,
            "prompt": self.prompt,
            "aspectRatio": self.aspect_ratio,
            "style": self.style,
        }

    @classmethod
    def from_dict(cls, data: dict) -> GeneratedImage:
        return cls(
            url=data.get("url", ""),
            prompt=data.get("prompt", ""),
            aspect_ratio=data.get("aspectRatio") or AspectRatio.SQUARE.value,
            style=data.get("style") or ImageStyle.ARTISTIC.value,
        )


@dataclass
class ChatMessage:
    role: str  # "user" or "model"
    text: str
    id: str = field(default_factory=new_id)

    def to_dict(self) -> dict:
        return {"id": self.id, "role": self.role, "text": self.text}

    @classmethod
    def from_dict(cls, data: dict) -> ChatMessage:
        return cls(
            role=data.get("role", "user"),
            text=data.get("text", ""),
            id=str(data.get("id") or new_id()),
        )


@dataclass
class Idea:
    """One idea and everything derived from it.

    Records are replaced whole (``dataclasses.replace``), never mutated in place.
    """

    title: str
    id: str = field(default_factory=new_id)
    initial_prompt: str = ""
    notes: list[Note] = field(default_factory=list)
    analysis: Analysis = field(default_factory=Analysis)
    status: IdeaStatus = IdeaStatus.NEW
    tags: list[str] = field(default_factory=lambda: list(DEFAULT_TAGS))
    created_at: int = field(default_factory=now_ms)
    updated_at: int = field(default_factory=now_ms)
    color: str = field(default_factory=lambda: random.choice(CARD_COLORS))
    images: list[GeneratedImage] = field(default_factory=list)
    grounding_sources: list[Citation] = field(default_factory=list)
    chat_history: list[ChatMessage] = field(default_factory=list)

    def with_section(self, section: Section, content: str) -> Idea:
        """Return a copy with one analysis section replaced and updated_at refreshed."""
        return replace(
            self,
            analysis=self.analysis.with_section(section, content),
            updated_at=now_ms(),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "initialPrompt": self.initial_prompt,
            "userNotes": [n.to_dict() for n in self.notes],
            "analysis": self.analysis.to_dict(),
            "status": self.status.value,
            "tags": list(self.tags),
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "color": self.color,
            "images": [i.to_dict() for i in self.images],
            "groundingSources": [c.to_dict() for c in self.grounding_sources],
            "chatHistory": [m.to_dict() for m in self.chat_history],
        }

    @classmethod
    def from_dict(cls, data: dict) -> Idea:
        """Build an Idea from a stored document, filling in missing collections."""
        try:
            status = IdeaStatus(data.get("status") or IdeaStatus.NEW.value)
        except ValueError:
            status = IdeaStatus.NEW
        citations = [Citation.from_dict(c) for c in data.get("groundingSources") or []]
        return cls(
            id=str(data["id"]),
            title=data.get("title", ""),
            initial_prompt=data.get("initialPrompt") or "",
            notes=[Note.from_dict(n) for n in data.get("userNotes") or []],
            analysis=Analysis.from_dict(data.get("analysis")),
            status=status,
            tags=list(data.get("tags") or DEFAULT_TAGS),
            created_at=int(data.get("createdAt") or 0),
            updated_at=int(data.get("updatedAt") or 0),
            color=data.get("color") or CARD_COLORS[0],
            images=[GeneratedImage.from_dict(i) for i in data.get("images") or []],
            grounding_sources=[c for c in citations if c is not None],
            chat_history=[ChatMessage.from_dict(m) for m in data.get("chatHistory") or []],
        )
