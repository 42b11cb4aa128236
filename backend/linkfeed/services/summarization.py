"""
Summarization service using LLMs (Claude or GPT).
Generates the short summary stored with every new post.
"""
import asyncio
from typing import Any, Awaitable, Callable, Optional

import structlog
from tenacity import AsyncRetrying, RetryCallState, stop_after_attempt, wait_exponential

from linkfeed.config import GenerationSettings, get_settings
from linkfeed.core.errors import SummaryFailed
from linkfeed.services.data_ingestion.rate_limiter import get_rate_limiter

logger = structlog.get_logger(__name__)

SUMMARY_PROMPT = """Summarize the most important points a reader should remember from the text below in three short sentences.
Write the summary in the same language as the text. Return only the summary.

Text:
{content}

Summary:"""


class EmptySummary(ValueError):
    """The backend answered without any summary text."""


class SummarizationService:
    """
    Service for generating post summaries using LLMs.

    Every call is retried with pure exponential backoff: the first
    failure waits summary_initial_backoff_seconds, each further failure
    doubles the wait, up to summary_max_attempts attempts in total.
    An empty answer counts as a failure.
    """

    def __init__(
        self,
        settings: Optional[GenerationSettings] = None,
        anthropic_client: Any = None,
        openai_client: Any = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.settings = settings or get_settings().generation
        self._anthropic_client = anthropic_client
        self._openai_client = openai_client
        self._sleep = sleep
        self.rate_limiter = get_rate_limiter()

    async def initialize(self):
        """Initialize the LLM client (lazy loading)."""
        self.rate_limiter.set_limit("generation", self.settings.requests_per_minute, 60)
        if self.is_configured:
            return
        if self.settings.anthropic_api_key:
            from anthropic import AsyncAnthropic

            self._anthropic_client = AsyncAnthropic(api_key=self.settings.anthropic_api_key)
        elif self.settings.openai_api_key:
            from openai import AsyncOpenAI

            self._openai_client = AsyncOpenAI(api_key=self.settings.openai_api_key)
        else:
            logger.warning("No summarization backend configured; summaries will fail")

    @property
    def is_configured(self) -> bool:
        return self._anthropic_client is not None or self._openai_client is not None

    async def summarize(self, content: str) -> str:
        """
        Generate a summary for a text body.

        Raises:
            SummaryFailed: after the last attempt failed, carrying its error
        """
        if not self.is_configured:
            raise SummaryFailed(0, RuntimeError("no summarization backend configured"))

        max_attempts = self.settings.summary_max_attempts
        attempt_number = 0

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(max_attempts),
                wait=wait_exponential(
                    multiplier=self.settings.summary_initial_backoff_seconds,
                    exp_base=2,
                ),
                sleep=self._sleep,
                before_sleep=self._log_retry,
                reraise=True,
            ):
                with attempt:
                    attempt_number = attempt.retry_state.attempt_number
                    return await self._summarize_once(content)
        except Exception as e:
            logger.error("Summary generation failed", attempts=attempt_number, error=str(e))
            raise SummaryFailed(attempt_number, e) from e

        raise SummaryFailed(attempt_number, None)

    def _log_retry(self, retry_state: RetryCallState):
        error = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            "Summary attempt failed, retrying",
            attempt=retry_state.attempt_number,
            max_attempts=self.settings.summary_max_attempts,
            delay_seconds=retry_state.next_action.sleep if retry_state.next_action else None,
            error=str(error),
        )

    async def _summarize_once(self, content: str) -> str:
        await self.rate_limiter.wait_if_needed("generation")

        prompt = SUMMARY_PROMPT.format(content=content)
        if self._anthropic_client:
            text = await self._summarize_anthropic(prompt)
        else:
            text = await self._summarize_openai(prompt)

        text = (text or "").strip()
        if not text:
            raise EmptySummary("summary backend returned no text")
        return text

    async def _summarize_anthropic(self, prompt: str) -> Optional[str]:
        """Generate summary using Claude."""
        response = await self._anthropic_client.messages.create(
            model=self.settings.summary_model_anthropic,
            max_tokens=self.settings.summary_max_tokens,
            messages=[{"role": "user", "content": prompt}],
        )
        if not response.content:
            return None
        return response.content[0].text

    async def _summarize_openai(self, prompt: str) -> Optional[str]:
        """Generate summary using GPT."""
        response = await self._openai_client.chat.completions.create(
            model=self.settings.summary_model_openai,
            max_tokens=self.settings.summary_max_tokens,
            messages=[{"role": "user", "content": prompt}],
        )
        if not response.choices:
            return None
        return response.choices[0].message.content
