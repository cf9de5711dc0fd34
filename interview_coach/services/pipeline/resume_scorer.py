import logging
from typing import Optional

from interview_coach.schemas.interview import ResumeMatchResult
from interview_coach.services.interview.retry import RetryNotifier, retry_with_backoff
from interview_coach.services.providers.base import AIProvider

logger = logging.getLogger(__name__)


async def score_resume(
    provider: AIProvider,
    resume_text: str,
    job_description: str,
    on_retry: Optional[RetryNotifier] = None,
    **retry_options,
) -> ResumeMatchResult:
    """
    Score a resume against a job description under the retry policy.

    Stateless: nothing is kept between calls. Raises the last provider error
    once retries are exhausted.
    """
    outcome = await retry_with_backoff(
        lambda: provider.score_resume(resume_text, job_description),
        label="resume score",
        on_retry=on_retry,
        **retry_options,
    )
    if outcome.exhausted:
        raise outcome.error
    logger.info(f"Resume scored {outcome.value.score}/100")
    return outcome.value
