import re
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# --- Enumerations ---

class InterviewType(str, Enum):
    BEHAVIORAL = "behavioral"
    TECHNICAL = "technical"


class Speaker(str, Enum):
    CANDIDATE = "candidate"
    INTERVIEWER = "interviewer"


class Level(str, Enum):
    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"


class ResourceType(str, Enum):
    ARTICLE = "article"
    VIDEO = "video"
    DOCS = "docs"
    INTERACTIVE = "interactive"


class Screen(str, Enum):
    SETUP = "setup"
    INTERVIEW = "interview"
    RESULTS = "results"
    DASHBOARD = "dashboard"
    RESUME_CHECKER = "resume-checker"


# --- Session Models ---

class SessionGoal(BaseModel):
    """The candidate and the role they are interviewing for."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(default="", description="Candidate name.")
    role: str = Field(..., min_length=1, description="Target role, e.g. 'Backend Engineer'.")

    @field_validator("name", "role")
    @classmethod
    def _strip(cls, value: str) -> str:
        return value.strip()


class Utterance(BaseModel):
    """One speaker turn in the transcript."""
    model_config = ConfigDict(frozen=True)

    speaker: Speaker
    text: str = Field(..., description="Finalized utterance text.")
    image: Optional[str] = Field(
        default=None,
        description="JPEG data URL captured while the candidate spoke."
    )

    @field_validator("text")
    @classmethod
    def _text_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("utterance text must not be empty")
        return value

    @model_validator(mode="after")
    def _image_only_for_candidate(self) -> "Utterance":
        if self.image is not None and self.speaker is not Speaker.CANDIDATE:
            raise ValueError("only candidate utterances may carry an image")
        return self


# --- Structured Generation Models ---
# These double as response schemas for the providers, so they carry no
# length constraints; content checks live in validators.

class Evaluation(BaseModel):
    """Structured assessment of one interview."""
    model_config = ConfigDict(frozen=True)

    summary: str = Field(..., description="A brief overall summary of the candidate performance, considering verbal and non-verbal cues.")
    knowledge: str = Field(..., description="Assessment of technical knowledge from verbal answers.")
    skills: str = Field(..., description="Assessment of problem-solving skills from verbal answers.")
    confidence: str = Field(..., description="Assessment of confidence, referencing verbal answers and visual cues from images.")
    communication: str = Field(..., description="Feedback on communication style, including verbal clarity and non-verbal cues.")
    level: Level = Field(..., description="The overall level of the candidate: Beginner, Intermediate, or Advanced.")

    @field_validator("summary", "knowledge", "skills", "confidence", "communication")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("evaluation fields must not be empty")
        return value


class Resource(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    url: str
    type: ResourceType


class RoadmapItemDraft(BaseModel):
    """A roadmap step as returned by the provider, before ids are assigned."""
    model_config = ConfigDict(frozen=True)

    title: str = Field(..., description="A concise title for the learning topic.")
    description: str = Field(..., description="A short explanation of the topic and its importance.")
    key_concepts: list[str] = Field(..., description="3-5 crucial sub-topics or concepts to master.")
    project: str = Field(..., description="A small, practical project idea to apply the skills.")
    resources: list[Resource] = Field(..., description="2-3 diverse, high-quality online resources.")


class RoadmapItem(RoadmapItemDraft):
    """A roadmap step owned by the session. Only `completed` ever changes."""
    id: str
    completed: bool = False


class ResumeMatchResult(BaseModel):
    """Resume vs. job description match."""
    score: int = Field(..., description="A score from 0 to 100 representing the match.")
    strengths: str = Field(..., description="A summary of the candidate's strengths.")
    weaknesses: str = Field(..., description="A summary of areas for improvement.")

    @field_validator("score", mode="before")
    @classmethod
    def _coerce_score(cls, value: Any) -> int:
        return coerce_score(value)


def coerce_score(value: Any) -> int:
    """
    Best-effort integer parse clamped to [0, 100].

    Numbers are truncated, strings are read up to the first non-digit
    ("82" -> 82, "82/100" -> 82) and anything unparseable becomes 0.
    """
    if isinstance(value, bool):
        score = 0
    elif isinstance(value, (int, float)):
        score = int(value)
    elif isinstance(value, str):
        match = re.match(r"\s*([+-]?\d+)", value)
        score = int(match.group(1)) if match else 0
    else:
        score = 0
    return max(0, min(100, score))


# --- API Models ---

class StartInterviewRequest(BaseModel):
    name: str = ""
    role: str = Field(..., min_length=1)
    interview_types: list[InterviewType] = Field(..., min_length=1)


class ResumeScoreRequest(BaseModel):
    resume_text: str = Field(..., min_length=1)
    job_description: str = Field(..., min_length=1)


class SessionSnapshot(BaseModel):
    """Read-only view of the session for the frontend."""
    current_screen: Screen
    goal: Optional[SessionGoal] = None
    interview_types: list[InterviewType] = Field(default_factory=list)
    transcript: list[Utterance] = Field(default_factory=list)
    evaluation: Optional[Evaluation] = None
    roadmap: list[RoadmapItem] = Field(default_factory=list)


class ResultsResponse(BaseModel):
    evaluation: Evaluation
    roadmap: list[RoadmapItem]
