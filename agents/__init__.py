"""PydanticAI agents for the PersonalLM aggregator.

Summarizer:
    Turns a cycle's merged context into a short markdown brief.
    Returns a sentinel string instead of raising on failure.

Example:
    >>> from agents import Summarizer
    >>> summarizer = Summarizer(config)
    >>> text = await summarizer.summarize(context, prompt)
"""

from agents.summarizer import SUMMARY_EMPTY, SUMMARY_ERROR, Summarizer

__all__ = [
    "Summarizer",
    "SUMMARY_ERROR",
    "SUMMARY_EMPTY",
]
