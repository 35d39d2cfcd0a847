"""Summarizer agent turning a cycle's merged context into a brief.

The summarizer never raises: a failed model call becomes the sentinel
``SUMMARY_ERROR`` and an empty response becomes ``SUMMARY_EMPTY``. Both are
persisted like any other summary so a human reading the log can see them.
"""

import logging
from dataclasses import dataclass

from openai import AsyncOpenAI
from pydantic_ai import Agent, RunContext
from pydantic_ai.models.google import GoogleModel
from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.profiles.openai import OpenAIModelProfile
from pydantic_ai.providers.google import GoogleProvider
from pydantic_ai.providers.openai import OpenAIProvider

from config import Config
from errors import SummarizerError

logger = logging.getLogger(__name__)

SUMMARY_ERROR = "(LLM summarization error)"
SUMMARY_EMPTY = "(No summary was generated)"


@dataclass
class SummarizerContext:
    """Runtime context passed to the summarizer agent.

    Attributes:
        prompt: Instructions for this cycle (base prompt plus continuity clause)
    """

    prompt: str


def _parse_local_model(model_str: str) -> tuple[str, str] | None:
    """Parse ``openai:<model>@<base_url>`` into (model_name, base_url) or None."""
    if model_str.startswith("openai:") and "@" in model_str:
        rest = model_str[7:]
        model_name, base_url = rest.split("@", 1)
        return model_name, base_url
    return None


def _create_model(model_str: str, api_key: str):
    """Create a PydanticAI model instance or pass through the model string."""
    parsed = _parse_local_model(model_str)
    if parsed:
        model_name, base_url = parsed
        logger.info("Using local model | model=%s base_url=%s", model_name, base_url)
        client = AsyncOpenAI(base_url=base_url, api_key="local-model")
        profile = OpenAIModelProfile(supports_json_object_output=False)
        return OpenAIChatModel(
            model_name=model_name,
            provider=OpenAIProvider(openai_client=client),
            profile=profile,
        )
    if model_str.startswith("google-gla:") and api_key:
        return GoogleModel(
            model_str.split(":", 1)[1],
            provider=GoogleProvider(api_key=api_key),
        )
    return model_str


def _create_agent(model: str, api_key: str) -> Agent[SummarizerContext, str]:
    """Create the underlying PydanticAI agent with a per-run prompt."""
    agent = Agent(
        _create_model(model, api_key),
        deps_type=SummarizerContext,
        output_type=str,
        retries=2,
    )

    @agent.system_prompt
    def dynamic_prompt(ctx: RunContext[SummarizerContext]) -> str:
        return ctx.deps.prompt

    return agent


class Summarizer:
    """Summarizes a cycle's context with the configured model."""

    def __init__(self, config: Config):
        """Initialize the summarizer agent.

        Args:
            config: Application configuration with model and API key
        """
        self.model = config.summary_model
        self._agent = _create_agent(config.summary_model, config.gemini_api_key)

    async def summarize(self, context: str, prompt: str) -> str:
        """Summarize ``context`` following ``prompt``.

        Returns:
            Summary text, or a sentinel string on failure (never raises)
        """
        try:
            result = await self._agent.run(context, deps=SummarizerContext(prompt=prompt))
        except Exception as e:
            err = SummarizerError(f"{type(e).__name__}: {e}", model=self.model)
            logger.error(
                "Summarization failed | model=%s code=%s error=%s",
                err.model, err.code, err, exc_info=True,
            )
            return SUMMARY_ERROR

        text = (result.output or "").strip()
        if not text:
            logger.warning("Summarizer returned empty output | model=%s", self.model)
            return SUMMARY_EMPTY

        usage = result.usage
        logger.info(
            "Summary generated | chars=%d input_tokens=%d output_tokens=%d",
            len(text), usage.input_tokens or 0, usage.output_tokens or 0,
        )
        return text
