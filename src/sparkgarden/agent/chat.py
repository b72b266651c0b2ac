"""Chat tool loop: one assistant turn that may rewrite analysis sections."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from google.genai import types

from sparkgarden.agent.provider import FunctionCall, GenerationProvider, ToolResult
from sparkgarden.models import ChatMessage, Idea, Section

logger = logging.getLogger(__name__)

UPDATE_TOOL_NAME = "updateProjectBlueprint"
UPDATE_FALLBACK_REPLY = "Updated the blueprints for you."

# Analysis excerpt caps (characters) for the chat context
EXCERPT_LIMITS = {
    Section.EXECUTIVE_SUMMARY: 1000,
    Section.MARKET_RESEARCH: 4000,
    Section.PRD: 2000,
    Section.UIUX: 2000,
}

UPDATE_SECTION_DECLARATION = types.FunctionDeclaration(
    name=UPDATE_TOOL_NAME,
    description=(
        "Updates a specific section of the project documentation (blueprints). "
        "Use this when the user asks to modify or rewrite the PRD, design, strategy, "
        "research, or the one-shot build prompt."
    ),
    parameters_json_schema={
        "type": "object",
        "properties": {
            "section": {
                "type": "string",
                "enum": [s.value for s in Section],
                "description": "The section id to update.",
            },
            "content": {
                "type": "string",
                "description": "The new full markdown content for this section.",
            },
        },
        "required": ["section", "content"],
    },
)

GENERAL_SYSTEM_PROMPT = (
    "You are a helpful creative assistant in a notes app called SparkGarden. "
    "Help the user develop their ideas."
)

CONTEXT_SYSTEM_PROMPT_TEMPLATE = """\
You are a helpful creative assistant in a notes app called SparkGarden. \
The user is currently looking at a project described in the context below.

CONTEXT:
{context}

CAPABILITIES:
1. Answer questions about the idea using the context.
2. Update the project blueprints (PRD, design, market research, executive \
summary, one-shot prompt) with the '{tool_name}' tool.

If the user asks to refine or rewrite a blueprint, use the tool.

You have no live web search in this chat. Rely on the research in the context."""


@dataclass
class SectionUpdate:
    """A validated request to replace one analysis section."""

    section: Section
    content: str
    call_id: str | None = None


@dataclass
class ChatTurnResult:
    text: str
    idea: Idea | None = None
    updated_sections: list[Section] = field(default_factory=list)


def build_idea_context(idea: Idea) -> str:
    """Summarize an idea for the system instruction, truncating long sections."""
    notes = "\n".join(n.text for n in idea.notes)
    excerpts = {
        section: idea.analysis.get(section)[:limit]
        for section, limit in EXCERPT_LIMITS.items()
    }
    return (
        f"CURRENT IDEA TITLE: {idea.title}\n\n"
        f"USER NOTES:\n{notes}\n\n"
        "CURRENT BLUEPRINTS (Analysis):\n"
        f"- Executive Summary: {excerpts[Section.EXECUTIVE_SUMMARY]}...\n"
        f"- Market & Tech Research: {excerpts[Section.MARKET_RESEARCH]}...\n"
        f"- PRD: {excerpts[Section.PRD]}...\n"
        f"- UI/UX: {excerpts[Section.UIUX]}..."
    )


def build_system_instruction(context: str | None) -> str:
    if not context:
        return GENERAL_SYSTEM_PROMPT
    return CONTEXT_SYSTEM_PROMPT_TEMPLATE.format(context=context, tool_name=UPDATE_TOOL_NAME)


def parse_section_update(call: FunctionCall) -> SectionUpdate | None:
    """Validate a function call against the update tool. Returns None to skip it."""
    if call.name != UPDATE_TOOL_NAME:
        logger.warning("Ignoring call to unknown tool %r", call.name)
        return None
    section = Section.parse(call.args.get("section"))
    content = call.args.get("content")
    if section is None or not isinstance(content, str):
        logger.warning("Ignoring malformed %s call: %r", UPDATE_TOOL_NAME, call.args)
        return None
    return SectionUpdate(section=section, content=content, call_id=call.id)


class ChatToolLoop:
    """Runs one chat turn, applying blueprint edits the model asks for."""

    def __init__(self, provider: GenerationProvider) -> None:
        self._provider = provider

    async def run_turn(
        self,
        history: list[ChatMessage],
        message: str,
        idea: Idea | None = None,
        on_update: Callable[[Idea], None] | None = None,
    ) -> ChatTurnResult:
        """Send ``message`` and resolve any tool calls into a final reply.

        Every accepted edit is passed to ``on_update`` as soon as it is applied,
        before the follow-up request. A failure in the follow-up leaves those
        edits in place.
        """
        logger.info("Chat turn started: %r (history=%d)", message[:120], len(history))
        t0 = time.perf_counter()
        context = build_idea_context(idea) if idea is not None else None
        session = self._provider.create_chat(
            system_instruction=build_system_instruction(context),
            tools=[UPDATE_SECTION_DECLARATION],
            history=history,
        )

        response = await session.send_message(message)
        if not response.function_calls:
            logger.info("Chat turn complete: text reply (%.2fs)", time.perf_counter() - t0)
            return ChatTurnResult(text=response.text, idea=idea)

        logger.info(
            "Model requested %d tool call(s): %s",
            len(response.function_calls),
            ", ".join(c.name for c in response.function_calls),
        )

        current = idea
        updated: list[Section] = []
        acknowledgments: list[ToolResult] = []
        for call in response.function_calls:
            update = parse_section_update(call)
            if update is None:
                continue
            if current is None:
                logger.warning("Ignoring %s call: no idea in context", call.name)
                continue

            current = current.with_section(update.section, update.content)
            logger.info("  -> %s(section=%s, %d chars)", call.name, update.section.value, len(update.content))
            if on_update is not None:
                on_update(current)
            updated.append(update.section)
            acknowledgments.append(ToolResult(
                name=call.name,
                id=update.call_id,
                result=f"Successfully updated section: {update.section.value}",
            ))

        if not acknowledgments:
            return ChatTurnResult(text=response.text, idea=idea)

        follow_up = await session.send_message(acknowledgments)
        logger.info(
            "Chat turn complete: %d section(s) updated (%.2fs)",
            len(updated), time.perf_counter() - t0,
        )
        return ChatTurnResult(
            text=follow_up.text or UPDATE_FALLBACK_REPLY,
            idea=current,
            updated_sections=updated,
        )
