"""Shared fakes for the interview coach test suite."""
import asyncio
from typing import Callable, Optional

import pytest

from interview_coach.core.exceptions import TransportError, UninitializedSessionError
from interview_coach.schemas.interview import (
    Evaluation,
    Level,
    Resource,
    ResourceType,
    ResumeMatchResult,
    RoadmapItemDraft,
    SessionGoal,
)


def make_evaluation(level: Level = Level.INTERMEDIATE) -> Evaluation:
    return Evaluation(
        summary="Solid answers overall.",
        knowledge="Knows SQL and pandas well.",
        skills="Breaks problems down methodically.",
        confidence="Calm and steady.",
        communication="Clear, few filler words.",
        level=level,
    )


def make_drafts(count: int = 5) -> list[RoadmapItemDraft]:
    return [
        RoadmapItemDraft(
            title=f"Topic {i}",
            description=f"Why topic {i} matters.",
            key_concepts=["a", "b", "c"],
            project=f"Build project {i}",
            resources=[
                Resource(title="Docs", url="https://example.com/docs", type=ResourceType.DOCS),
                Resource(title="Video", url="https://example.com/video", type=ResourceType.VIDEO),
            ],
        )
        for i in range(count)
    ]


class FakeProvider:
    """
    In-memory AIProvider.

    `replies` are consumed one per successful turn; `turn_failures` makes the
    next N stream attempts fail with TransportError (after yielding a
    fragment, to prove partial text is thrown away).
    """

    name = "fake"

    def __init__(self, replies=None, turn_failures: int = 0):
        self.replies = list(replies or ["Tell me about yourself."])
        self.turn_failures = turn_failures
        self.messages: list[dict] = []
        self.stream_calls: list[str] = []
        self.evaluation_calls = 0
        self.roadmap_calls = 0
        self.evaluation_failures = 0
        self.roadmap_failures = 0
        self.evaluation = make_evaluation()
        self.drafts = make_drafts()
        self.resume_result = ResumeMatchResult(score="82", strengths="SQL", weaknesses="Cloud")
        self.started_goals: list[SessionGoal] = []
        self.last_transcript = None

    def start_chat(self, goal, interview_types):
        self.started_goals.append(goal)
        self.messages = [{"role": "system", "content": f"Interview for {goal.role}"}]

    async def stream_next_turn(self, message):
        self.stream_calls.append(message)
        if not self.messages:
            raise UninitializedSessionError("Chat not initialized. Call start_chat first.")
        if self.turn_failures > 0:
            self.turn_failures -= 1
            yield "partial garbage "
            raise TransportError("connection reset")
        self.messages.append({"role": "user", "content": message})
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        words = reply.split(" ")
        for index, word in enumerate(words):
            await asyncio.sleep(0)
            yield word if index == len(words) - 1 else word + " "
        self.messages.append({"role": "assistant", "content": reply})

    def history(self):
        return list(self.messages)

    async def generate_evaluation(self, transcript, goal):
        self.evaluation_calls += 1
        self.last_transcript = list(transcript)
        if self.evaluation_failures > 0:
            self.evaluation_failures -= 1
            raise TransportError("evaluation unavailable")
        return self.evaluation

    async def generate_roadmap(self, level, goal):
        self.roadmap_calls += 1
        if self.roadmap_failures > 0:
            self.roadmap_failures -= 1
            raise TransportError("roadmap unavailable")
        return self.drafts

    async def score_resume(self, resume_text, job_description):
        return self.resume_result

    async def aclose(self):
        pass


class FakeSpeech:
    """Speech sink that records what was spoken; playback ends on demand."""

    def __init__(self, auto_complete: bool = False):
        self.spoken: list[str] = []
        self.auto_complete = auto_complete
        self._pending: Optional[Callable[[], None]] = None

    def speak(self, text, on_done):
        self.spoken.append(text)
        if self.auto_complete:
            on_done()
        else:
            self._pending = on_done

    def cancel(self):
        self._pending = None

    def finish(self):
        callback, self._pending = self._pending, None
        if callback:
            callback()


class RecordingSleep:
    """Async sleep replacement that records requested delays."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay):
        self.delays.append(delay)


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def fake_sleep():
    return RecordingSleep()


@pytest.fixture
def goal():
    return SessionGoal(name="Ada", role="Data Analyst")


@pytest.fixture
def make_provider():
    """Factory for providers with scripted replies or failures."""
    return FakeProvider


@pytest.fixture
def speech():
    return FakeSpeech()


@pytest.fixture
def evaluation():
    return make_evaluation()


@pytest.fixture
def drafts():
    return make_drafts()
