#!/usr/bin/env python3
"""CLI: Run the research + blueprint pipeline for one idea and print the result."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import time
from pathlib import Path

# Ensure the package is importable when running as a script
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from sparkgarden import config
from sparkgarden.agent.orchestrator import AnalysisOrchestrator, AnalysisResult
from sparkgarden.agent.provider import GeminiClient
from sparkgarden.idea_store import IdeaStore
from sparkgarden.models import Idea, Note, Section
from sparkgarden.storage.sqlite_store import SqliteStore

SECTION_TITLES = {
    Section.EXECUTIVE_SUMMARY: "Executive Summary",
    Section.MARKET_RESEARCH: "Market & Tech Research",
    Section.PRD: "Product Requirements",
    Section.UIUX: "UI/UX Design",
    Section.ONE_SHOT_PROMPT: "One-Shot Build Prompt",
}


def format_result(title: str, result: AnalysisResult) -> str:
    """Render an analysis as one markdown document."""
    lines = [f"# {title}", ""]
    for section, heading in SECTION_TITLES.items():
        lines += [f"## {heading}", "", result.analysis.get(section), ""]
    if result.grounding_chunks:
        lines += ["## Sources", ""]
        for c in result.grounding_chunks:
            lines.append(f"- [{c.title or c.uri}]({c.uri})")
    return "\n".join(lines)


def plant_idea(ideas: IdeaStore, title: str, notes: list[str]) -> Idea:
    """Create an idea with the first note, then add the rest one by one."""
    idea = ideas.create_idea(title, notes[0] if notes else "")
    for text in notes[1:]:
        if not text.strip():
            continue
        idea = ideas.add_note(idea.id, text)
    return idea


async def _run(args: argparse.Namespace) -> int:
    client = GeminiClient()
    orchestrator = AnalysisOrchestrator(client, thinking_budget=args.thinking_budget)

    if args.save:
        store = SqliteStore(config.SQLITE_PATH)
        store.init_db()
        ideas = IdeaStore(
            store, client, orchestrator=orchestrator, legacy_path=config.LEGACY_IDEAS_PATH,
        )
        ideas.load()
        idea = plant_idea(ideas, args.title, args.note)
        idea = await ideas.analyze(idea.id)
        print(f"Saved idea {idea.id} with status {idea.status.value}")
        return 0 if idea.status.value == "ready" else 1

    result = await orchestrator.run(args.title, [Note(text=t) for t in args.note])
    print(format_result(args.title, result))
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Research and plan an idea with Gemini agents")
    parser.add_argument("title", type=str, help="Idea title")
    parser.add_argument(
        "--note",
        action="append",
        default=[],
        help="A note about the idea (repeatable, kept in order)",
    )
    parser.add_argument(
        "--thinking-budget",
        type=int,
        default=None,
        help=f"Thinking budget for the research agents (default: {config.THINKING_BUDGET})",
    )
    parser.add_argument(
        "--save",
        action="store_true",
        help="Create the idea in the SQLite store and persist the analysis",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else getattr(logging, config.LOG_LEVEL, logging.INFO),
        format="%(asctime)s %(levelname)-5s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
    )

    if not config.GEMINI_API_KEY:
        print("Error: GEMINI_API_KEY is not set.", file=sys.stderr)
        sys.exit(1)

    t0 = time.perf_counter()
    code = asyncio.run(_run(args))
    print(f"\nDone in {time.perf_counter() - t0:.1f}s", file=sys.stderr)
    sys.exit(code)


if __name__ == "__main__":
    main()
