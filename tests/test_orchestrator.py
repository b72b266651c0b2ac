"""Tests for the two-stage analysis pipeline."""

from __future__ import annotations

import pytest

from sparkgarden.agent.orchestrator import (
    BUILD_PROMPT_PLACEHOLDER,
    DESIGN_AGENT_PROMPT,
    DESIGN_PLACEHOLDER,
    EXECUTIVE_AGENT_PROMPT,
    MARKET_AGENT_PROMPT,
    MARKET_PLACEHOLDER,
    ONE_SHOT_AGENT_PROMPT,
    PRD_PLACEHOLDER,
    PRODUCT_AGENT_PROMPT,
    RESEARCH_SEPARATOR,
    SUMMARY_PLACEHOLDER,
    TECH_AGENT_PROMPT,
    TECH_PLACEHOLDER,
    AnalysisOrchestrator,
    build_context,
)
from sparkgarden.agent.provider import Generation
from sparkgarden.models import Citation, Note
from tests.helpers import FakeProvider


def _web(uri: str) -> Citation:
    return Citation(kind="web", uri=uri, title=uri)


def _full_outcomes(**overrides) -> dict:
    outcomes = {
        MARKET_AGENT_PROMPT: Generation("MARKET", [_web("m1"), _web("m2")]),
        TECH_AGENT_PROMPT: Generation("TECH", [_web("t1")]),
        PRODUCT_AGENT_PROMPT: Generation("PRD", [_web("p1")]),
        DESIGN_AGENT_PROMPT: Generation("DESIGN", [_web("ignored-design")]),
        EXECUTIVE_AGENT_PROMPT: Generation("SUMMARY"),
        ONE_SHOT_AGENT_PROMPT: Generation("BUILD"),
    }
    outcomes.update(overrides)
    return outcomes


def _calls_for(provider: FakeProvider, agent_prompt: str) -> list[dict]:
    return [c for c in provider.calls if c["prompt"].startswith(agent_prompt)]


NOTES = [Note(text="Uber for dog walkers", timestamp=1_700_000_000_000)]


# ── Context ──


class TestBuildContext:
    def test_includes_title_and_notes(self):
        ctx = build_context("Dog walking app", NOTES)
        assert ctx.startswith("PROJECT TITLE: Dog walking app")
        assert "USER NOTES HISTORY:" in ctx
        assert "Uber for dog walkers" in ctx

    def test_notes_keep_order(self):
        notes = [Note(text="first", timestamp=0), Note(text="second", timestamp=0)]
        ctx = build_context("T", notes)
        assert ctx.index("first") < ctx.index("second")

    def test_empty_notes(self):
        ctx = build_context("T", [])
        assert ctx.endswith("USER NOTES HISTORY:\n")


# ── Successful runs ──


class TestSuccessfulRun:
    @pytest.mark.asyncio
    async def test_all_sections_filled(self):
        provider = FakeProvider(_full_outcomes())
        result = await AnalysisOrchestrator(provider).run("Dog walking app", NOTES)

        a = result.analysis
        assert a.market_research == f"MARKET{RESEARCH_SEPARATOR}TECH"
        assert a.prd == "PRD"
        assert a.uiux == "DESIGN"
        assert a.executive_summary == "SUMMARY"
        assert a.one_shot_prompt == "BUILD"

    @pytest.mark.asyncio
    async def test_market_research_layout(self):
        provider = FakeProvider(_full_outcomes())
        result = await AnalysisOrchestrator(provider).run("Dog walking app", NOTES)
        text = result.analysis.market_research
        assert text.startswith("MARKET")
        assert "---" in text
        assert text.endswith("TECH")

    @pytest.mark.asyncio
    async def test_citation_order(self):
        """Market chunks, then tech, then product; other stage 2 agents add none."""
        provider = FakeProvider(_full_outcomes())
        result = await AnalysisOrchestrator(provider).run("Dog walking app", NOTES)
        assert [c.uri for c in result.grounding_chunks] == ["m1", "m2", "t1", "p1"]

    @pytest.mark.asyncio
    async def test_citation_order_ignores_completion_order(self):
        outcomes = _full_outcomes(**{
            MARKET_AGENT_PROMPT: (0.05, Generation("MARKET", [_web("m1")])),
            TECH_AGENT_PROMPT: (0.0, Generation("TECH", [_web("t1")])),
        })
        provider = FakeProvider(outcomes)
        result = await AnalysisOrchestrator(provider).run("T", NOTES)
        assert [c.uri for c in result.grounding_chunks][:2] == ["m1", "t1"]

    @pytest.mark.asyncio
    async def test_duplicate_citations_kept(self):
        outcomes = _full_outcomes(**{
            MARKET_AGENT_PROMPT: Generation("MARKET", [_web("same")]),
            TECH_AGENT_PROMPT: Generation("TECH", [_web("same")]),
            PRODUCT_AGENT_PROMPT: Generation("PRD"),
        })
        result = await AnalysisOrchestrator(FakeProvider(outcomes)).run("T", NOTES)
        assert [c.uri for c in result.grounding_chunks] == ["same", "same"]

    @pytest.mark.asyncio
    async def test_six_calls(self):
        provider = FakeProvider(_full_outcomes())
        await AnalysisOrchestrator(provider).run("T", NOTES)
        assert len(provider.calls) == 6

    @pytest.mark.asyncio
    async def test_empty_notes_still_runs(self):
        provider = FakeProvider(_full_outcomes())
        result = await AnalysisOrchestrator(provider).run("T", [])
        assert result.analysis.prd == "PRD"


# ── Tool and context wiring ──


class TestAgentConfiguration:
    @pytest.mark.asyncio
    async def test_search_enabled_for_research_and_product_only(self):
        provider = FakeProvider(_full_outcomes())
        await AnalysisOrchestrator(provider).run("T", NOTES)

        assert _calls_for(provider, MARKET_AGENT_PROMPT)[0]["search"] is True
        assert _calls_for(provider, TECH_AGENT_PROMPT)[0]["search"] is True
        assert _calls_for(provider, PRODUCT_AGENT_PROMPT)[0]["search"] is True
        assert _calls_for(provider, DESIGN_AGENT_PROMPT)[0]["search"] is False
        assert _calls_for(provider, EXECUTIVE_AGENT_PROMPT)[0]["search"] is False
        assert _calls_for(provider, ONE_SHOT_AGENT_PROMPT)[0]["search"] is False

    @pytest.mark.asyncio
    async def test_thinking_budget_on_research_agents(self):
        provider = FakeProvider(_full_outcomes())
        await AnalysisOrchestrator(provider, thinking_budget=512).run("T", NOTES)
        assert _calls_for(provider, MARKET_AGENT_PROMPT)[0]["thinking_budget"] == 512
        assert _calls_for(provider, TECH_AGENT_PROMPT)[0]["thinking_budget"] == 512
        assert _calls_for(provider, PRODUCT_AGENT_PROMPT)[0]["thinking_budget"] is None

    @pytest.mark.asyncio
    async def test_stage_two_gets_enriched_context(self):
        provider = FakeProvider(_full_outcomes())
        await AnalysisOrchestrator(provider).run("Dog walking app", NOTES)
        for agent in (PRODUCT_AGENT_PROMPT, DESIGN_AGENT_PROMPT,
                      EXECUTIVE_AGENT_PROMPT, ONE_SHOT_AGENT_PROMPT):
            prompt = _calls_for(provider, agent)[0]["prompt"]
            assert "PROJECT TITLE: Dog walking app" in prompt
            assert "MARKET" in prompt
            assert "TECH" in prompt

    @pytest.mark.asyncio
    async def test_stage_one_gets_base_context_only(self):
        provider = FakeProvider(_full_outcomes())
        await AnalysisOrchestrator(provider).run("Dog walking app", NOTES)
        prompt = _calls_for(provider, MARKET_AGENT_PROMPT)[0]["prompt"]
        assert "Uber for dog walkers" in prompt
        assert "--- MARKET RESEARCH ---" not in prompt

    @pytest.mark.asyncio
    async def test_stage_two_starts_after_stage_one_finishes(self):
        outcomes = _full_outcomes(**{
            MARKET_AGENT_PROMPT: (0.02, Generation("MARKET")),
            TECH_AGENT_PROMPT: (0.05, Generation("TECH")),
        })
        provider = FakeProvider(outcomes)
        await AnalysisOrchestrator(provider).run("T", NOTES)

        last_stage_one_end = max(
            i for i, e in enumerate(provider.events)
            if e in (f"end:{MARKET_AGENT_PROMPT[:20]}", f"end:{TECH_AGENT_PROMPT[:20]}")
        )
        first_stage_two_start = min(
            i for i, e in enumerate(provider.events)
            if e == f"start:{PRODUCT_AGENT_PROMPT[:20]}"
            or e == f"start:{DESIGN_AGENT_PROMPT[:20]}"
        )
        assert last_stage_one_end < first_stage_two_start

    @pytest.mark.asyncio
    async def test_stage_one_calls_run_concurrently(self):
        outcomes = _full_outcomes(**{
            MARKET_AGENT_PROMPT: (0.02, Generation("MARKET")),
            TECH_AGENT_PROMPT: (0.02, Generation("TECH")),
        })
        provider = FakeProvider(outcomes)
        await AnalysisOrchestrator(provider).run("T", NOTES)
        # Both started before either finished
        assert provider.events[:2] == [
            f"start:{MARKET_AGENT_PROMPT[:20]}",
            f"start:{TECH_AGENT_PROMPT[:20]}",
        ]


# ── Soft failures (empty text) ──


class TestPlaceholders:
    @pytest.mark.asyncio
    async def test_empty_stage_two_section_gets_placeholder(self):
        outcomes = _full_outcomes(**{DESIGN_AGENT_PROMPT: Generation("")})
        result = await AnalysisOrchestrator(FakeProvider(outcomes)).run("T", NOTES)
        assert result.analysis.uiux == DESIGN_PLACEHOLDER
        assert result.analysis.prd == "PRD"
        assert result.analysis.executive_summary == "SUMMARY"
        assert result.analysis.one_shot_prompt == "BUILD"

    @pytest.mark.asyncio
    async def test_every_stage_two_placeholder(self):
        outcomes = _full_outcomes(**{
            PRODUCT_AGENT_PROMPT: Generation(""),
            DESIGN_AGENT_PROMPT: Generation(""),
            EXECUTIVE_AGENT_PROMPT: Generation(""),
            ONE_SHOT_AGENT_PROMPT: Generation(""),
        })
        result = await AnalysisOrchestrator(FakeProvider(outcomes)).run("T", NOTES)
        assert result.analysis.prd == PRD_PLACEHOLDER
        assert result.analysis.uiux == DESIGN_PLACEHOLDER
        assert result.analysis.executive_summary == SUMMARY_PLACEHOLDER
        assert result.analysis.one_shot_prompt == BUILD_PROMPT_PLACEHOLDER

    @pytest.mark.asyncio
    async def test_empty_research_placeholders_flow_downstream(self):
        outcomes = _full_outcomes(**{
            MARKET_AGENT_PROMPT: Generation(""),
            TECH_AGENT_PROMPT: Generation(""),
        })
        provider = FakeProvider(outcomes)
        result = await AnalysisOrchestrator(provider).run("T", NOTES)
        assert result.analysis.market_research == (
            f"{MARKET_PLACEHOLDER}{RESEARCH_SEPARATOR}{TECH_PLACEHOLDER}"
        )
        prd_prompt = _calls_for(provider, PRODUCT_AGENT_PROMPT)[0]["prompt"]
        assert MARKET_PLACEHOLDER in prd_prompt


# ── Hard failures ──


class TestFailures:
    @pytest.mark.asyncio
    async def test_market_failure_rejects(self):
        outcomes = _full_outcomes(**{MARKET_AGENT_PROMPT: RuntimeError("boom")})
        provider = FakeProvider(outcomes)
        with pytest.raises(RuntimeError, match="boom"):
            await AnalysisOrchestrator(provider).run("T", NOTES)
        assert _calls_for(provider, PRODUCT_AGENT_PROMPT) == []

    @pytest.mark.asyncio
    async def test_tech_failure_rejects(self):
        outcomes = _full_outcomes(**{TECH_AGENT_PROMPT: ConnectionError("down")})
        provider = FakeProvider(outcomes)
        with pytest.raises(ConnectionError):
            await AnalysisOrchestrator(provider).run("T", NOTES)
        assert _calls_for(provider, DESIGN_AGENT_PROMPT) == []

    @pytest.mark.asyncio
    async def test_stage_two_failure_rejects(self):
        outcomes = _full_outcomes(**{EXECUTIVE_AGENT_PROMPT: RuntimeError("quota")})
        with pytest.raises(RuntimeError, match="quota"):
            await AnalysisOrchestrator(FakeProvider(outcomes)).run("T", NOTES)
