"""
Tests for the aggregation cycle.

Sources are injected through the source table and the summarizer is a
fake, so these tests never touch the network or the host machine.
"""

import asyncio
from datetime import date, datetime

import pytest

from agents.summarizer import SUMMARY_EMPTY, SUMMARY_ERROR
from aggregator import (
    CONTINUITY_CLAUSE,
    SOURCES,
    SourceSpec,
    build_context,
    build_prompt,
    collect_sections,
    run_cycle,
    select_sources,
)
from errors import PersistenceError
from models.cycle import FetcherResult
from partition import CSV_HEADER, append_row, csv_path, read_snapshot, snapshot_path
from reports import list_reports, write_report

from conftest import FakeSummarizer, FixedClock, failing_source, static_source


def delayed_source(name: str, content: str, delay: float) -> SourceSpec:
    async def fetch(config) -> str:
        await asyncio.sleep(delay)
        return content

    return SourceSpec(name, fetch)


class TestSourceSelection:
    """Test the declarative source table."""

    def test_default_table_order(self):
        assert [s.name for s in SOURCES] == [
            "weather", "news", "health", "meetings",
            "screen_time", "mail", "calendar", "imessage",
        ]

    def test_disabled_sources_skipped(self, config):
        names = [s.name for s in select_sources(config)]

        assert names == ["weather", "news"]

    def test_flags_enable_sources(self, config):
        config.enable_mail = True
        config.enable_calendar = True

        names = [s.name for s in select_sources(config)]

        assert names == ["weather", "news", "mail", "calendar"]

    def test_duplicate_names_ignored(self, config):
        table = (static_source("a", "first"), static_source("a", "second"))

        selected = select_sources(config, table)

        assert len(selected) == 1
        assert selected[0].fetch(config) == "first"


class TestCollectSections:
    """Test concurrent fetching and merge order."""

    @pytest.mark.asyncio
    async def test_order_independent_of_completion(self, config):
        """Slowest-first table still yields table order."""
        table = (
            delayed_source("slow", "S", 0.05),
            delayed_source("medium", "M", 0.02),
            delayed_source("fast", "F", 0.0),
        )

        sections = await collect_sections(config, table)

        assert [s.source for s in sections] == ["slow", "medium", "fast"]
        assert build_context(sections) == "S\n\nM\n\nF"

    @pytest.mark.asyncio
    async def test_failing_source_is_isolated(self, config):
        table = (
            static_source("a", "A"),
            failing_source("b"),
            static_source("c", "C"),
        )

        sections = await collect_sections(config, table)

        assert build_context(sections) == "A\n\nC"

    @pytest.mark.asyncio
    async def test_empty_and_whitespace_dropped(self, config):
        table = (static_source("a", ""), static_source("b", "  \n"), static_source("c", "C"))

        sections = await collect_sections(config, table)

        assert [s.source for s in sections] == ["c"]

    @pytest.mark.asyncio
    async def test_non_text_result_treated_as_failure(self, config):
        table = (SourceSpec("bad", lambda c: 42), static_source("ok", "fine"))

        sections = await collect_sections(config, table)

        assert [s.source for s in sections] == ["ok"]

    @pytest.mark.asyncio
    async def test_async_failure_isolated(self, config):
        async def boom(config):
            await asyncio.sleep(0)
            raise TimeoutError("too slow")

        table = (SourceSpec("boom", boom), static_source("ok", "fine"))

        sections = await collect_sections(config, table)

        assert build_context(sections) == "fine"


class TestPrompt:
    """Test the continuity clause."""

    def test_no_previous_summary(self):
        assert build_prompt("Base", None) == "Base"

    def test_blank_previous_summary(self):
        assert build_prompt("Base", "   ") == "Base"

    def test_sentinels_are_not_continuity(self):
        assert build_prompt("Base", SUMMARY_ERROR) == "Base"
        assert build_prompt("Base", SUMMARY_EMPTY) == "Base"

    def test_clause_appended(self):
        prompt = build_prompt("Base", "Yesterday it rained")

        assert prompt == "Base" + CONTINUITY_CLAUSE.format(summary="Yesterday it rained")
        assert "For continuity, this was yesterday's summary:" in prompt
        assert "Yesterday it rained" in prompt


class TestRunCycle:
    """Test a full cycle end to end against tmp_path."""

    @pytest.mark.asyncio
    async def test_writes_all_three_artifacts(self, config, summarizer, clock):
        table = (static_source("weather", "Weather: sunny"), static_source("news", "News: x"))

        result = await run_cycle(config, summarizer=summarizer, sources=table, clock=clock)

        day = date(2024, 3, 5)
        assert result.timestamp == "2024-03-05 09:30:00"
        assert result.index == 1
        assert csv_path(config.output_dir, day).read_text(encoding="utf-8") == (
            CSV_HEADER + '"2024-03-05 09:30:00","A fine day."\n'
        )
        snapshot = read_snapshot(snapshot_path(config.output_dir, day))
        assert snapshot.timestamp == result.timestamp
        assert [s.source for s in snapshot.sections] == ["weather", "news"]
        report = result.report_path.read_text(encoding="utf-8")
        assert report.startswith("---\ndate: 2024-03-05T09:30:00\nindex: 1\n")
        assert 'contextFile: "2024/03/05.ctx.br"' in report
        assert report.endswith("A fine day.")

    @pytest.mark.asyncio
    async def test_summarizer_receives_merged_context(self, config, summarizer, clock):
        table = (static_source("a", "A"), static_source("b", "B"))

        await run_cycle(config, summarizer=summarizer, sources=table, clock=clock)

        context, prompt = summarizer.calls[0]
        assert context == "A\n\nB"
        assert prompt == config.prompt

    @pytest.mark.asyncio
    async def test_all_sources_empty_still_summarizes(self, config, summarizer, clock):
        table = (static_source("a", ""), failing_source("b"))

        result = await run_cycle(config, summarizer=summarizer, sources=table, clock=clock)

        assert summarizer.calls == [("", config.prompt)]
        assert result.sections == []
        lines = result.csv_path.read_text(encoding="utf-8").splitlines()
        assert len(lines) == 2

    @pytest.mark.asyncio
    async def test_continuity_from_yesterday(self, config, summarizer, clock):
        append_row(date(2024, 3, 4), config.output_dir, "2024-03-04 22:00:00", "Rainy Monday")

        await run_cycle(config, summarizer=summarizer, sources=(), clock=clock)

        _, prompt = summarizer.calls[0]
        assert prompt.startswith(config.prompt)
        assert "Rainy Monday" in prompt

    @pytest.mark.asyncio
    async def test_no_continuity_without_yesterday(self, config, summarizer, clock):
        await run_cycle(config, summarizer=summarizer, sources=(), clock=clock)

        assert summarizer.calls[0][1] == config.prompt

    @pytest.mark.asyncio
    async def test_sentinel_summary_is_persisted(self, config, clock):
        fake = FakeSummarizer(reply=SUMMARY_ERROR)

        result = await run_cycle(config, summarizer=fake, sources=(), clock=clock)

        assert f'"{SUMMARY_ERROR}"' in result.csv_path.read_text(encoding="utf-8")

    @pytest.mark.asyncio
    async def test_markdown_index_after_restart(self, config, summarizer, clock):
        moment = datetime(2024, 3, 5, 6, 0, 0)
        for i in (1, 2, 3):
            write_report(config.web_content_dir, moment, i, "earlier", "earlier run")

        result = await run_cycle(config, summarizer=summarizer, sources=(), clock=clock)

        assert result.index == 4
        assert result.report_path.name == "05-4.md"

    @pytest.mark.asyncio
    async def test_date_rollover(self, config, summarizer):
        """Cycles either side of midnight land in separate partitions."""
        before = FixedClock(datetime(2024, 3, 4, 23, 59, 59))
        after = FixedClock(datetime(2024, 3, 5, 0, 0, 5))

        await run_cycle(config, summarizer=summarizer, sources=(), clock=before)
        await run_cycle(config, summarizer=summarizer, sources=(), clock=after)

        first = csv_path(config.output_dir, date(2024, 3, 4)).read_text(encoding="utf-8")
        second = csv_path(config.output_dir, date(2024, 3, 5)).read_text(encoding="utf-8")
        assert first == CSV_HEADER + '"2024-03-04 23:59:59","A fine day."\n'
        assert second == CSV_HEADER + '"2024-03-05 00:00:05","A fine day."\n'
        assert len(list_reports(config.web_content_dir, date(2024, 3, 5))) == 1
        # The second cycle sees the first as yesterday
        assert "A fine day." in summarizer.calls[1][1]

    @pytest.mark.asyncio
    async def test_persistence_failure_raises_after_other_writes(self, config, summarizer, clock, tmp_path):
        blocker = tmp_path / "blocked"
        blocker.write_text("file, not a directory")
        config.web_content_dir = blocker

        with pytest.raises(PersistenceError) as exc_info:
            await run_cycle(config, summarizer=summarizer, sources=(), clock=clock)

        assert "markdown" in str(exc_info.value)
        day = date(2024, 3, 5)
        assert csv_path(config.output_dir, day).exists()
        assert snapshot_path(config.output_dir, day).exists()

    @pytest.mark.asyncio
    async def test_result_sections_are_fetcher_results(self, config, summarizer, clock):
        result = await run_cycle(
            config, summarizer=summarizer, sources=(static_source("a", "A"),), clock=clock,
        )

        assert result.sections == [FetcherResult(source="a", content="A")]
        assert result.full_context == "A"
