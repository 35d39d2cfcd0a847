"""Cycle data models.

A cycle is one run of fetch -> summarize -> persist. These models carry
its data between the aggregator, the partition writer and the history
reader.

Model Hierarchy:
    FetcherResult: One source's text for one cycle
    ContextSnapshot: What is compressed into the day's ``.ctx.br`` file
    CycleResult: Everything a cycle produced, returned to the scheduler
    PreviousDay: What the history reader recovered from yesterday
"""

from pathlib import Path

from pydantic import BaseModel, Field


class FetcherResult(BaseModel):
    """Text collected from a single source during a cycle.

    Attributes:
        source: Source name from the aggregator's source table
        content: UTF-8 text blob, empty when the source had nothing (or failed)
    """

    source: str = Field(description="Source name")
    content: str = Field(default="", description="Collected text, possibly empty")

    @property
    def is_empty(self) -> bool:
        """True when the content is empty or whitespace-only."""
        return not self.content.strip()

    @classmethod
    def empty(cls, source: str) -> "FetcherResult":
        return cls(source=source, content="")


class ContextSnapshot(BaseModel):
    """Raw context of the most recent cycle of a day.

    Serialised with ``model_dump_json()`` (compact JSON) before compression.
    """

    timestamp: str = Field(description="Cycle timestamp, YYYY-MM-DD HH:MM:SS local time")
    sections: list[FetcherResult] = Field(default_factory=list)

    def joined_context(self) -> str:
        """Rejoin section contents the same way the aggregator builds context."""
        return "\n\n".join(section.content for section in self.sections)


class CycleResult(BaseModel):
    """Outcome of one aggregation cycle.

    Attributes:
        summary: Summarizer output (may be a sentinel string)
        full_context: Non-empty sections joined with blank lines
        sections: Non-empty FetcherResults in source-table order
        timestamp: Single cycle timestamp shared by all writes
        index: 1-based daily markdown sequence number
        csv_path: Daily CSV file the row was appended to
        snapshot_path: Daily compressed snapshot file
        report_path: Markdown file written for this cycle
    """

    summary: str
    full_context: str
    sections: list[FetcherResult] = Field(default_factory=list)
    timestamp: str
    index: int = 0
    csv_path: Path | None = None
    snapshot_path: Path | None = None
    report_path: Path | None = None


class PreviousDay(BaseModel):
    """Continuity state recovered from yesterday's partition.

    Both fields are None when the corresponding artifact is absent or unreadable.
    """

    summary: str | None = None
    context: str | None = None
