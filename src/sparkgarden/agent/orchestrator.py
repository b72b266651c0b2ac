"""Analysis pipeline: Market + Tech research -> Product, Design, Executive, Build prompt."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime

from sparkgarden import config
from sparkgarden.agent.provider import GenerationProvider
from sparkgarden.models import Analysis, Citation, Note

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Agent prompts
# ---------------------------------------------------------------------------

MARKET_AGENT_PROMPT = """\
You are an elite market researcher and trend analyst. Validate the user's idea \
against the current market.

Instructions:
1. Search for direct competitors, recent startup launches and similar features in major apps.
2. Analyze why those competitors succeed or fail, not just who they are.
3. Look for news from the last 12 months relevant to this domain.

Output format (Markdown):
* **Competitor Landscape**: 3-5 real competitors with strengths and weaknesses.
* **Market Pulse**: current trends, funding news or user shifts in this space.
* **Why Now**: why this is the right time for the idea."""

TECH_AGENT_PROMPT = """\
You are a principal software architect. Work out how to build this idea with \
current technology.

Instructions:
1. Search for open-source libraries, APIs and SDKs that solve the core problems.
2. Identify the hardest technical challenges (latency, cost, hardware access).
3. Recommend a modern stack: models, databases, frameworks.

Output format (Markdown):
* **Recommended Stack**: frontend, backend, AI models, database.
* **Key APIs & Libraries**: specific tools and what each one is for.
* **Technical Risks**: the hardest parts to engineer."""

PRODUCT_AGENT_PROMPT = """\
You are a senior product manager. Review the user's notes, the market research \
and the technical feasibility report, then write a Product Requirements Document.

Be specific: name concrete mechanisms instead of generic features. Prioritize \
moments that delight users immediately.

Output format (Markdown):
* **Core Value Prop**: one sentence.
* **Target Personas**
* **MVP Feature Set**: the must-haves for V1.
* **Magic Moment**: the interaction that hooks the user.
* **User Stories**: three critical flows."""

DESIGN_AGENT_PROMPT = """\
You are a lead UI/UX designer. Review the research and the user's notes and \
define the visual and interaction experience.

Output format (Markdown):
* **Design Philosophy**: the overall style.
* **Color & Typography**: palette (hex codes where possible) and font pairings.
* **Key Screens**: home, main action and settings views.
* **Micro-Interactions**: animations and feedback loops."""

EXECUTIVE_AGENT_PROMPT = """\
You are the chief strategy officer. Summarize the project (market, tech, \
product, design) as a tight executive brief. Highlight the biggest opportunity \
and the biggest risk. Stay under 200 words."""

ONE_SHOT_AGENT_PROMPT = """\
You are a lead AI prompt engineer. Write one prompt a user can paste into an \
AI coding agent to build this exact app.

Instructions:
1. Open by defining the agent's role.
2. Use the stack recommended in the technical feasibility report.
3. Give a step-by-step plan: setup, database, UI, logic.
4. List the key files to create.

Output format (Markdown):
# Build Prompt for [App Name]

**Role**: ...
**Goal**: ...

[detailed prompt content]"""

RESEARCH_SEPARATOR = "\n\n---\n\n### Technical Architecture & Feasibility\n\n"

MARKET_PLACEHOLDER = "Market research pending..."
TECH_PLACEHOLDER = "Technical research pending..."
PRD_PLACEHOLDER = "Pending PRD..."
DESIGN_PLACEHOLDER = "Pending Design Specs..."
SUMMARY_PLACEHOLDER = "Pending Summary..."
BUILD_PROMPT_PLACEHOLDER = "Pending Build Prompt..."


@dataclass
class AnalysisResult:
    """Output of one pipeline run."""

    analysis: Analysis
    grounding_chunks: list[Citation] = field(default_factory=list)


def build_context(title: str, notes: list[Note]) -> str:
    """Format the title and dated note history shared by every agent."""
    combined = "\n\n".join(
        f"[{datetime.fromtimestamp(n.timestamp / 1000).strftime('%Y-%m-%d')}] {n.text}"
        for n in notes
    )
    return f"PROJECT TITLE: {title}\n\nUSER NOTES HISTORY:\n{combined}"


def build_enriched_context(context: str, market_text: str, tech_text: str) -> str:
    return (
        f"{context}\n\n--- MARKET RESEARCH ---\n{market_text}"
        f"\n\n--- TECHNICAL FEASIBILITY ---\n{tech_text}"
    )


class AnalysisOrchestrator:
    """Runs the two-stage, six-call agent pipeline over one idea.

    Stage 1 (market, tech) runs concurrently and must fully resolve before
    Stage 2 (product, design, executive, build prompt) starts. Any exception
    fails the whole run; empty text becomes a per-section placeholder.
    """

    def __init__(
        self,
        provider: GenerationProvider,
        thinking_budget: int | None = None,
    ) -> None:
        self._provider = provider
        self._thinking_budget = (
            thinking_budget if thinking_budget is not None else config.THINKING_BUDGET
        )

    async def run(self, title: str, notes: list[Note]) -> AnalysisResult:
        logger.info("Analysis started: %r (%d notes)", title[:80], len(notes))
        run_t0 = time.perf_counter()
        context = build_context(title, notes)

        try:
            # Stage 1: dual-track research
            t0 = time.perf_counter()
            market, tech = await asyncio.gather(
                self._provider.generate(
                    f"{MARKET_AGENT_PROMPT}\n\n{context}",
                    search=True,
                    thinking_budget=self._thinking_budget,
                ),
                self._provider.generate(
                    f"{TECH_AGENT_PROMPT}\n\n{context}",
                    search=True,
                    thinking_budget=self._thinking_budget,
                ),
            )
            logger.info("Research stage done (%.2fs)", time.perf_counter() - t0)

            market_text = market.text or MARKET_PLACEHOLDER
            tech_text = tech.text or TECH_PLACEHOLDER
            grounding_chunks = [*market.citations, *tech.citations]

            combined_research = f"{market_text}{RESEARCH_SEPARATOR}{tech_text}"
            enriched = build_enriched_context(context, market_text, tech_text)

            # Stage 2: blueprints
            t0 = time.perf_counter()
            prd, design, summary, build_prompt = await asyncio.gather(
                self._provider.generate(f"{PRODUCT_AGENT_PROMPT}\n\n{enriched}", search=True),
                self._provider.generate(f"{DESIGN_AGENT_PROMPT}\n\n{enriched}"),
                self._provider.generate(f"{EXECUTIVE_AGENT_PROMPT}\n\n{enriched}"),
                self._provider.generate(f"{ONE_SHOT_AGENT_PROMPT}\n\n{enriched}"),
            )
            logger.info("Blueprint stage done (%.2fs)", time.perf_counter() - t0)
        except Exception:
            logger.exception("Analysis failed after %.2fs", time.perf_counter() - run_t0)
            raise

        grounding_chunks.extend(prd.citations)

        analysis = Analysis(
            executive_summary=summary.text or SUMMARY_PLACEHOLDER,
            market_research=combined_research,
            prd=prd.text or PRD_PLACEHOLDER,
            uiux=design.text or DESIGN_PLACEHOLDER,
            one_shot_prompt=build_prompt.text or BUILD_PROMPT_PLACEHOLDER,
        )
        logger.info(
            "Analysis complete: %d citation(s), %.2fs total",
            len(grounding_chunks), time.perf_counter() - run_t0,
        )
        return AnalysisResult(analysis=analysis, grounding_chunks=grounding_chunks)
