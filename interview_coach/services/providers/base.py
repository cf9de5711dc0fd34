"""
Provider contract shared by every remote language-model backend.

The orchestrator and the results pipeline depend only on `AIProvider`; the
Gemini and OpenAI implementations satisfy it independently.
"""
import base64
import binascii
import logging
from typing import AsyncIterator, Optional, Protocol, Sequence, runtime_checkable

from interview_coach.core.exceptions import MalformedResponseError, MissingPrerequisiteError
from interview_coach.schemas.interview import (
    Evaluation,
    InterviewType,
    Level,
    ResumeMatchResult,
    RoadmapItemDraft,
    SessionGoal,
    Speaker,
    Utterance,
)

logger = logging.getLogger(__name__)

IMAGE_REFERENCE_MARKER = "[Reference image for the candidate's statement above]"

ROADMAP_ITEM_RANGE = (5, 7)
KEY_CONCEPT_RANGE = (3, 5)
RESOURCE_RANGE = (2, 3)


@runtime_checkable
class AIProvider(Protocol):
    """Capability set every provider client implements."""

    name: str

    def start_chat(self, goal: SessionGoal, interview_types: Sequence[InterviewType]) -> None:
        """Replace any conversational state with a fresh interviewer session."""
        ...

    def stream_next_turn(self, message: str) -> AsyncIterator[str]:
        """Send the candidate message and lazily yield the interviewer reply."""
        ...

    def history(self) -> list[dict]:
        """Conversational state as role-tagged messages (system/user/assistant)."""
        ...

    async def generate_evaluation(self, transcript: Sequence[Utterance], goal: SessionGoal) -> Evaluation:
        ...

    async def generate_roadmap(self, level: Level, goal: SessionGoal) -> list[RoadmapItemDraft]:
        ...

    async def score_resume(self, resume_text: str, job_description: str) -> ResumeMatchResult:
        ...

    async def aclose(self) -> None:
        ...


def require_transcript(transcript: Sequence[Utterance]) -> None:
    """An evaluation is never built from an empty transcript."""
    if not transcript:
        raise MissingPrerequisiteError("Cannot evaluate an empty transcript.")


def format_transcript(transcript: Sequence[Utterance]) -> tuple[str, list[str]]:
    """
    Serialize the transcript as "speaker: text" lines.

    Returns:
        The transcript text and the image data URLs of candidate utterances,
        in order. Each image gets a reference marker line after its utterance.
    """
    lines: list[str] = []
    images: list[str] = []
    for utterance in transcript:
        lines.append(f"{utterance.speaker.value}: {utterance.text}")
        if utterance.speaker is Speaker.CANDIDATE and utterance.image:
            images.append(utterance.image)
            lines.append(IMAGE_REFERENCE_MARKER)
    return "\n".join(lines), images


def split_data_url(data_url: str) -> Optional[tuple[str, bytes]]:
    """Decode a base64 data URL into (mime_type, bytes); None if it is not one."""
    if not data_url.startswith("data:") or "," not in data_url:
        return None
    header, payload = data_url.split(",", 1)
    if ";base64" not in header:
        return None
    mime_type = header[len("data:"):].split(";", 1)[0] or "image/jpeg"
    try:
        return mime_type, base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        logger.warning("Dropping undecodable image attachment")
        return None


def check_roadmap_shape(items: Sequence[RoadmapItemDraft]) -> None:
    """Reject an empty roadmap; log when the provider ignores the requested proportions."""
    if not items:
        raise MalformedResponseError("Provider returned an empty roadmap")
    low, high = ROADMAP_ITEM_RANGE
    if not low <= len(items) <= high:
        logger.warning(f"Roadmap has {len(items)} items, expected {low}-{high}")
    for item in items:
        if not KEY_CONCEPT_RANGE[0] <= len(item.key_concepts) <= KEY_CONCEPT_RANGE[1]:
            logger.warning(f"Roadmap item '{item.title}' has {len(item.key_concepts)} key concepts")
        if not RESOURCE_RANGE[0] <= len(item.resources) <= RESOURCE_RANGE[1]:
            logger.warning(f"Roadmap item '{item.title}' has {len(item.resources)} resources")
