"""
Results pipeline.

Runs once after the interview ends:
1. Evaluation of the full transcript (retried on transient failure)
2. Roadmap for the evaluated level (retried on transient failure)
3. Ids + completion flags assigned by the session store

Nothing is written to the session unless both steps succeed.
"""
from __future__ import annotations
import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from interview_coach.core.exceptions import (
    InterviewStateError,
    MissingPrerequisiteError,
    ResultsUnavailableError,
)
from interview_coach.core.logger import log_async_execution_time, set_interview_id
from interview_coach.schemas.interview import ResultsResponse
from interview_coach.services.interview.retry import retry_with_backoff
from interview_coach.services.interview.session import InterviewSession
from interview_coach.services.interview.speech import EventListener
from interview_coach.services.providers.base import AIProvider

logger = logging.getLogger(__name__)

NO_INTERVIEW_DATA = "No interview data found. Please start a new interview."
RESULTS_FAILED = (
    "I'm sorry, I encountered an issue while generating your results. This can happen due to a "
    "temporary connection problem. Please try starting a new interview."
)
ANALYZING_MESSAGE = "Analyzing your interview performance..."
ROADMAP_MESSAGE = "Creating your personalized learning roadmap..."
INTERVIEW_REPLACED = "A new interview started while results were being generated; these results were discarded."


class ResultsPipeline:
    """
    Turns a finished transcript into an evaluation and a roadmap.

    Invoking `run` again once an evaluation exists returns the stored results
    without calling the provider.
    """

    def __init__(
        self,
        provider: AIProvider,
        session: InterviewSession,
        listener: Optional[EventListener] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.provider = provider
        self.session = session
        self.listener = listener
        self._sleep = sleep
        self._lock = asyncio.Lock()

    @log_async_execution_time
    async def run(self) -> ResultsResponse:
        async with self._lock:
            if self.session.evaluation is not None:
                logger.info("Results already generated; skipping provider calls")
                return self._current()

            interview_id = self.session.interview_id
            set_interview_id(interview_id)
            goal = self.session.goal
            transcript = self.session.transcript
            if goal is None or not transcript:
                raise MissingPrerequisiteError(NO_INTERVIEW_DATA)

            self._status(ANALYZING_MESSAGE)
            evaluation_outcome = await retry_with_backoff(
                lambda: self.provider.generate_evaluation(transcript, goal),
                label="evaluation",
                on_retry=self._on_retry,
                sleep=self._sleep,
            )
            if evaluation_outcome.exhausted:
                raise ResultsUnavailableError(RESULTS_FAILED, {"step": "evaluation"})
            evaluation = evaluation_outcome.value
            logger.info(f"Evaluation complete: level={evaluation.level.value}")

            self._status(ROADMAP_MESSAGE)
            roadmap_outcome = await retry_with_backoff(
                lambda: self.provider.generate_roadmap(evaluation.level, goal),
                label="roadmap",
                on_retry=self._on_retry,
                sleep=self._sleep,
            )
            if roadmap_outcome.exhausted:
                raise ResultsUnavailableError(RESULTS_FAILED, {"step": "roadmap"})

            if self.session.interview_id != interview_id:
                logger.warning(f"Interview {interview_id} was replaced during results generation; discarding")
                raise InterviewStateError(INTERVIEW_REPLACED, {"interview_id": interview_id})

            self.session.set_evaluation(evaluation)
            roadmap = self.session.replace_roadmap(roadmap_outcome.value)
            logger.info(f"Roadmap ready with {len(roadmap)} items")
            return self._current()

    def _current(self) -> ResultsResponse:
        return ResultsResponse(evaluation=self.session.evaluation, roadmap=self.session.roadmap)

    def _on_retry(self, status: str, delay: float) -> None:
        self._status(status)

    def _status(self, message: str) -> None:
        if self.listener is not None:
            self.listener({"type": "status", "content": message})
