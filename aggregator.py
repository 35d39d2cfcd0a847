"""Aggregation core: one fetch -> summarize -> persist cycle.

Cycle Flow:
    1. SELECT: Filter the source table by the config's enable flags
    2. FETCH: Run every selected adapter concurrently; a failure in one
       becomes empty content for that source only
    3. MERGE: Drop empty sections, join the rest in table order
    4. CONTINUITY: Append yesterday's summary to the prompt, if any
    5. SUMMARIZE: Call the summarizer (returns a sentinel instead of raising)
    6. PERSIST: Append the CSV row, replace the snapshot, write the markdown

All three writes share one timestamp taken when the cycle starts. They are
attempted independently; if any fail the cycle raises PersistenceError
after the others have been written.
"""

import asyncio
import inspect
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, Protocol

from agents.summarizer import SUMMARY_EMPTY, SUMMARY_ERROR, Summarizer
from config import Config
from errors import FetcherError, PersistenceError, classify_error
from fetchers import (
    fetch_calendar,
    fetch_health,
    fetch_imessage,
    fetch_mail,
    fetch_meetings,
    fetch_news,
    fetch_screen_time,
    fetch_weather,
)
from history import load_previous
from models.cycle import CycleResult, FetcherResult
from observability.logging import clear_context, set_cycle_context
from observability.tracing import trace_operation
from partition import append_row, format_timestamp, snapshot_path, write_snapshot
from reports import next_index, report_title, write_report

logger = logging.getLogger(__name__)

CONTINUITY_CLAUSE = (
    "\n\nFor continuity, this was yesterday's summary:\n"
    '"""\n{summary}\n"""\n'
    "Do not repeat anything from yesterday's summary unless there is materially new information."
)

SECTION_SEPARATOR = "\n\n"


def _always(config: Config) -> bool:
    return True


@dataclass(frozen=True)
class SourceSpec:
    """One row of the source table.

    Attributes:
        name: Section name, unique within the table
        fetch: Adapter called with the Config; returns text or an awaitable of text
        enabled: Predicate on the Config deciding whether the source runs
    """

    name: str
    fetch: Callable[[Config], str | Awaitable[str]]
    enabled: Callable[[Config], bool] = _always


# Table order is the order sections appear in the summarizer context
SOURCES: tuple[SourceSpec, ...] = (
    SourceSpec("weather", fetch_weather),
    SourceSpec("news", fetch_news),
    SourceSpec("health", fetch_health, lambda c: c.enable_health),
    SourceSpec("meetings", fetch_meetings, lambda c: c.enable_transcripts),
    SourceSpec("screen_time", fetch_screen_time, lambda c: c.enable_screen_time),
    SourceSpec("mail", fetch_mail, lambda c: c.enable_mail),
    SourceSpec("calendar", fetch_calendar, lambda c: c.enable_calendar),
    SourceSpec("imessage", fetch_imessage, lambda c: c.enable_imessage),
)


class SupportsSummarize(Protocol):
    async def summarize(self, context: str, prompt: str) -> str: ...


def select_sources(config: Config, sources: tuple[SourceSpec, ...] = SOURCES) -> list[SourceSpec]:
    """Enabled sources in table order, first occurrence of each name only."""
    selected: list[SourceSpec] = []
    seen: set[str] = set()
    for spec in sources:
        if spec.name in seen:
            logger.warning("Duplicate source ignored | source=%s", spec.name)
            continue
        seen.add(spec.name)
        if spec.enabled(config):
            selected.append(spec)
    return selected


async def _run_source(spec: SourceSpec, config: Config) -> FetcherResult:
    """Run one adapter, folding any exception into empty content."""
    try:
        with trace_operation("fetch", {"source": spec.name}) as attrs:
            content = spec.fetch(config)
            if inspect.isawaitable(content):
                content = await content
            if not isinstance(content, str):
                raise FetcherError(f"adapter returned {type(content).__name__}", spec.name)
            attrs["chars"] = len(content)
    except Exception as e:
        logger.warning(
            "Source failed | source=%s error=%s type=%s",
            spec.name, e, classify_error(e), exc_info=True,
        )
        return FetcherResult.empty(spec.name)
    logger.debug("Source fetched | source=%s chars=%d", spec.name, len(content))
    return FetcherResult(source=spec.name, content=content)


async def collect_sections(
    config: Config,
    sources: tuple[SourceSpec, ...] = SOURCES,
) -> list[FetcherResult]:
    """Fetch all enabled sources concurrently.

    Returns:
        Non-empty results in source-table order, regardless of completion order
    """
    selected = select_sources(config, sources)
    results = await asyncio.gather(*(_run_source(spec, config) for spec in selected))
    by_name = {result.source: result for result in results}
    sections = [by_name[spec.name] for spec in selected if not by_name[spec.name].is_empty]
    logger.info(
        "Fetch complete | sources=%d sections=%d empty=%s",
        len(selected), len(sections),
        ",".join(r.source for r in results if r.is_empty) or "-",
    )
    return sections


def build_context(sections: list[FetcherResult]) -> str:
    return SECTION_SEPARATOR.join(section.content for section in sections)


def build_prompt(base_prompt: str, previous_summary: str | None) -> str:
    """Append the continuity clause when yesterday produced a real summary."""
    if not previous_summary or not previous_summary.strip():
        return base_prompt
    if previous_summary in (SUMMARY_ERROR, SUMMARY_EMPTY):
        return base_prompt
    return base_prompt + CONTINUITY_CLAUSE.format(summary=previous_summary.strip())


def _previous_summary(config: Config, moment: datetime) -> str | None:
    try:
        return load_previous(config.output_dir, today=moment.date()).summary
    except Exception as e:
        logger.warning("History unavailable | error=%s type=%s", e, type(e).__name__)
        return None


def persist_cycle(
    config: Config,
    moment: datetime,
    summary: str,
    sections: list[FetcherResult],
) -> CycleResult:
    """Perform the cycle's three durable writes.

    Raises:
        PersistenceError: If any write failed (after attempting all three)
    """
    day = moment.date()
    timestamp = format_timestamp(moment)
    result = CycleResult(
        summary=summary,
        full_context=build_context(sections),
        sections=sections,
        timestamp=timestamp,
    )
    failed: list[str] = []

    try:
        result.csv_path = append_row(day, config.output_dir, timestamp, summary)
    except PersistenceError as e:
        logger.error("CSV write failed | path=%s error=%s", e.path, e)
        failed.append("csv")

    try:
        result.snapshot_path = write_snapshot(day, config.output_dir, timestamp, sections)
    except PersistenceError as e:
        logger.error("Snapshot write failed | path=%s error=%s", e.path, e)
        failed.append("snapshot")

    try:
        result.index = next_index(config.web_content_dir, day)
        context_file = snapshot_path(config.output_dir, day).relative_to(config.output_dir).as_posix()
        result.report_path = write_report(
            config.web_content_dir,
            moment,
            result.index,
            report_title(day, result.index),
            summary,
            context_file=context_file,
        )
    except PersistenceError as e:
        logger.error("Markdown write failed | path=%s error=%s", e.path, e)
        failed.append("markdown")

    if failed:
        raise PersistenceError(f"Cycle writes failed: {', '.join(failed)}")
    return result


async def run_cycle(
    config: Config,
    summarizer: SupportsSummarize | None = None,
    sources: tuple[SourceSpec, ...] = SOURCES,
    clock: Callable[[], datetime] = datetime.now,
) -> CycleResult:
    """Execute one complete cycle.

    Args:
        config: Configuration snapshot for this cycle
        summarizer: Summarizer to use (a new Summarizer(config) if None)
        sources: Source table (defaults to SOURCES)
        clock: Returns the local naive time the cycle is stamped with

    Returns:
        CycleResult with the summary, sections and written paths

    Raises:
        PersistenceError: If any durable write failed
    """
    cycle_id = uuid.uuid4().hex[:8]
    set_cycle_context(cycle_id)
    moment = clock().replace(microsecond=0)
    summarizer = summarizer or Summarizer(config)

    try:
        with trace_operation("cycle", {"cycle_id": cycle_id}) as attrs:
            logger.info("Cycle started | timestamp=%s", format_timestamp(moment))

            sections = await collect_sections(config, sources)
            full_context = build_context(sections)
            prompt = build_prompt(config.prompt, _previous_summary(config, moment))
            if prompt != config.prompt:
                logger.debug("Continuity clause added")

            summary = await summarizer.summarize(full_context, prompt)
            result = persist_cycle(config, moment, summary, sections)

            attrs["sections"] = len(sections)
            attrs["index"] = result.index
            logger.info(
                "Cycle complete | sections=%d index=%d summary_chars=%d",
                len(sections), result.index, len(summary),
            )
            return result
    finally:
        clear_context()
