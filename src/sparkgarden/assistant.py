"""Ephemeral transcript for the floating assistant."""

from __future__ import annotations

import logging

from sparkgarden.idea_store import IdeaStore
from sparkgarden.models import ChatMessage, new_id

logger = logging.getLogger(__name__)

GREETING = "Hi! I'm your creative partner. Ask me anything or open a note to get specific help!"
FAILURE_REPLY = "Sorry, I had trouble processing that request."


class AssistantSession:
    """One chat transcript. Lives only as long as the session object."""

    def __init__(self, store: IdeaStore, session_id: str | None = None) -> None:
        self.id = session_id or new_id()
        self._store = store
        self.messages: list[ChatMessage] = [ChatMessage(role="model", text=GREETING)]

    async def send(self, text: str, idea_id: str | None = None) -> list[ChatMessage]:
        """Send one user message; return the messages this turn appended."""
        if not text.strip():
            return []

        history = list(self.messages)
        start = len(self.messages)
        self.messages.append(ChatMessage(role="user", text=text))
        try:
            result = await self._store.chat(history, text, idea_id=idea_id)
        except Exception:
            logger.exception("Chat turn failed in session %s", self.id)
            self.messages.append(ChatMessage(role="model", text=FAILURE_REPLY))
            return self.messages[start:]

        for section in result.updated_sections:
            self.messages.append(ChatMessage(
                role="model",
                text=f"*Updating {section.value} based on your request...*",
            ))
        self.messages.append(ChatMessage(role="model", text=result.text))
        return self.messages[start:]
