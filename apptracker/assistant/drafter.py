"""Follow-up email drafting with a bounded retry loop.

Usage::

    drafter = FollowUpDrafter(GeminiGenerator(), settings.assistant)
    text = await drafter.draft(form)
"""

import asyncio
import logging
import random

from apptracker.assistant.backoff import SleepFn, backoff_sleep
from apptracker.assistant.llm import RateLimitedError, TextGenerator
from apptracker.core.config import AssistantConfig
from apptracker.core.errors import DraftError
from apptracker.core.schemas import ApplicationDraft

logger = logging.getLogger(__name__)

FALLBACK_TEXT = "Could not generate email draft."

SYSTEM_INSTRUCTION = (
    "You are a professional career coach and email drafting assistant. "
    "Generate only the body of the email in a kind, direct, and professional tone. "
    "Keep it concise, under 200 words."
)


def build_prompt(draft: ApplicationDraft) -> str:
    """Instruction text for one application's follow-up email."""
    notes = draft.notes.strip() or "No specific notes recorded."
    lines = [
        "Draft a concise, professional follow-up email.",
        f'The job title is "{draft.title.strip()}" at "{draft.company.strip()}".',
        f'The current application status is "{draft.status.value}".',
        f'Context/Notes from the job seeker: "{notes}".',
        "If the status is 'Applied', draft a check-in email.",
        "If the status is 'Interviewing' or 'Technical Screen', "
        "draft a thank-you note or a request for next steps.",
        "If the status is 'Rejected', draft a polite request for feedback.",
        "Do not include placeholders for the recipient's name or your signature. "
        'Start directly with a brief opening (e.g., "Dear Hiring Team,").',
    ]
    return "\n".join(lines)


class FollowUpDrafter:
    """Requests a follow-up email body, retrying only when rate limited.

    At most ``1 + config.max_retries`` generation calls are made. Any failure
    other than rate limiting is raised on the spot.
    """

    def __init__(
        self,
        generator: TextGenerator,
        config: AssistantConfig | None = None,
        *,
        sleep: SleepFn = asyncio.sleep,
        rng: random.Random | None = None,
    ) -> None:
        self._generator = generator
        self._config = config or AssistantConfig()
        self._sleep = sleep
        self._rng = rng

    async def draft(self, draft: ApplicationDraft) -> str:
        if not draft.title.strip() or not draft.company.strip():
            msg = "Job title and company are required to draft a follow-up"
            raise ValueError(msg)

        prompt = build_prompt(draft)
        attempts = 1 + self._config.max_retries
        for attempt in range(attempts):
            try:
                text = await self._generator.generate(prompt, system=SYSTEM_INSTRUCTION)
            except RateLimitedError as e:
                if attempt + 1 >= attempts:
                    logger.error("Draft request still rate limited after %d attempts", attempts)
                    msg = "The drafting service is busy. Please try again in a moment."
                    raise DraftError(msg) from e
                logger.warning("Draft request rate limited (attempt %d/%d)", attempt + 1, attempts)
                await backoff_sleep(
                    attempt,
                    base_s=self._config.base_delay_s,
                    max_jitter_s=self._config.max_jitter_s,
                    sleep=self._sleep,
                    rng=self._rng,
                )
                continue

            if not text or not text.strip():
                logger.info("Draft response carried no text")
                return FALLBACK_TEXT
            return text.strip()

        # range(attempts) is never empty; every iteration returns, raises or continues.
        raise DraftError(FALLBACK_TEXT)
