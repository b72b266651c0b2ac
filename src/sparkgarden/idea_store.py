"""In-memory working set of ideas, written through to SQLite."""

from __future__ import annotations

import logging
import time
from dataclasses import replace
from pathlib import Path

from sparkgarden.agent.chat import ChatToolLoop, ChatTurnResult
from sparkgarden.agent.orchestrator import AnalysisOrchestrator
from sparkgarden.agent.provider import GenerationProvider
from sparkgarden.agent.visuals import (
    STYLE_DEFAULTS,
    build_image_prompt,
    build_places_query,
    enrich_image_prompt,
    to_data_uri,
)
from sparkgarden.models import (
    AspectRatio,
    ChatMessage,
    GeneratedImage,
    Idea,
    IdeaStatus,
    ImageSize,
    ImageStyle,
    Note,
    now_ms,
)
from sparkgarden.storage.sqlite_store import SqliteStore

logger = logging.getLogger(__name__)


class IdeaNotFoundError(KeyError):
    """Raised when an idea id is not in the working set."""


class IdeaStore:
    """Mediates between user actions, persistence and the agents.

    The in-memory list is the source of truth for the session: a failed
    write-through is logged and does not roll anything back. Records are only
    replaced whole. Callers must not run two analyses on one idea at once.
    """

    def __init__(
        self,
        repository: SqliteStore,
        provider: GenerationProvider,
        orchestrator: AnalysisOrchestrator | None = None,
        chat_loop: ChatToolLoop | None = None,
        legacy_path: Path | None = None,
    ) -> None:
        self._repository = repository
        self._provider = provider
        self._orchestrator = orchestrator or AnalysisOrchestrator(provider)
        self._chat_loop = chat_loop or ChatToolLoop(provider)
        self._legacy_path = legacy_path
        self._ideas: list[Idea] = []

    # ── Working set ──

    def load(self) -> list[Idea]:
        """Import legacy data if needed, then load every idea, newest first."""
        if self._legacy_path is not None:
            self._repository.migrate_legacy(self._legacy_path)
        ideas = self._repository.get_all()
        ideas.sort(key=lambda i: i.updated_at or 0, reverse=True)
        self._ideas = ideas
        logger.info("Loaded %d idea(s)", len(ideas))
        return list(self._ideas)

    def list_ideas(self) -> list[Idea]:
        return list(self._ideas)

    def get(self, idea_id: str) -> Idea:
        for idea in self._ideas:
            if idea.id == idea_id:
                return idea
        raise IdeaNotFoundError(idea_id)

    def _persist(self, idea: Idea) -> Idea:
        """Replace the record in memory, then write it through."""
        for i, existing in enumerate(self._ideas):
            if existing.id == idea.id:
                self._ideas[i] = idea
                break
        else:
            self._ideas.insert(0, idea)
        try:
            self._repository.put(idea)
        except Exception:
            logger.exception("Failed to save idea %s", idea.id)
        return idea

    # ── User actions ──

    def create_idea(self, title: str, text: str = "") -> Idea:
        """Plant a new idea with its first note. Run analyze() afterwards."""
        if not title.strip():
            raise ValueError("Idea title must not be blank")
        idea = Idea(title=title, initial_prompt=text, notes=[Note(text=text)])
        logger.info("Creating idea %s: %r", idea.id, title[:80])
        return self._persist(idea)

    def update_idea(self, idea: Idea) -> Idea:
        """Stamp updated_at and replace the stored record."""
        self.get(idea.id)
        return self._persist(replace(idea, updated_at=now_ms()))

    def add_note(self, idea_id: str, text: str) -> Idea:
        """Append a note and mark the idea for re-analysis. Run analyze() afterwards."""
        if not text.strip():
            raise ValueError("Note text must not be blank")
        idea = self.get(idea_id)
        return self.update_idea(replace(
            idea,
            notes=[*idea.notes, Note(text=text)],
            status=IdeaStatus.PROCESSING,
        ))

    async def analyze(self, idea_id: str) -> Idea:
        """Run the agent pipeline for one idea and record the outcome as its status.

        Pipeline failures do not propagate: the idea is marked ``error`` and
        keeps the analysis it had before the run.
        """
        idea = self.get(idea_id)
        logger.info("Triggering analysis for %s", idea_id)
        self._persist(replace(idea, status=IdeaStatus.PROCESSING))

        t0 = time.perf_counter()
        try:
            result = await self._orchestrator.run(idea.title, idea.notes)
        except Exception:
            logger.error("Analysis failed for %s after %.2fs", idea_id, time.perf_counter() - t0)
            return self._persist(replace(self.get(idea_id), status=IdeaStatus.ERROR))

        current = self.get(idea_id)
        return self._persist(replace(
            current,
            status=IdeaStatus.READY,
            analysis=result.analysis,
            grounding_sources=[*current.grounding_sources, *result.grounding_chunks],
            updated_at=now_ms(),
        ))

    async def chat(
        self,
        history: list[ChatMessage],
        message: str,
        idea_id: str | None = None,
    ) -> ChatTurnResult:
        """Run one assistant turn. Section edits are written through as they happen.

        Only the edited analysis is copied onto the current record, so notes
        or status changed while the model was working are kept.
        """
        idea = self.get(idea_id) if idea_id is not None else None
        return await self._chat_loop.run_turn(
            history, message, idea=idea, on_update=self._apply_chat_edit,
        )

    def _apply_chat_edit(self, edited: Idea) -> Idea:
        current = self.get(edited.id)
        return self.update_idea(replace(current, analysis=edited.analysis))

    async def generate_image(
        self,
        idea_id: str,
        style: ImageStyle = ImageStyle.ARTISTIC,
        aspect_ratio: AspectRatio | None = None,
        image_size: ImageSize | None = None,
    ) -> Idea:
        """Generate a concept image for an idea and attach it."""
        idea = self.get(idea_id)
        default_ratio, default_size = STYLE_DEFAULTS[style]
        aspect_ratio = aspect_ratio or default_ratio
        image_size = image_size or default_size

        prompt = build_image_prompt(idea, style)
        image = await self._provider.generate_image(
            enrich_image_prompt(prompt, style),
            aspect_ratio=aspect_ratio.value,
            image_size=image_size.value,
        )
        generated = GeneratedImage(
            url=to_data_uri(image),
            prompt=prompt,
            aspect_ratio=aspect_ratio.value,
            style=style.value,
        )
        current = self.get(idea_id)
        return self.update_idea(replace(current, images=[*current.images, generated]))

    async def find_places(
        self,
        idea_id: str,
        location: tuple[float, float] | None = None,
    ) -> Idea:
        """Look up places related to an idea and attach them as grounding sources."""
        idea = self.get(idea_id)
        result = await self._provider.find_places(
            build_places_query(idea, with_location=location is not None),
            location=location,
        )
        logger.info("Found %d place source(s) for %s", len(result.citations), idea_id)
        current = self.get(idea_id)
        return self.update_idea(replace(
            current,
            grounding_sources=[*current.grounding_sources, *result.citations],
        ))
