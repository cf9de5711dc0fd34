"""Session-state store shared by the orchestrator, results pipeline and API."""
import logging
import secrets
import uuid
from typing import Optional, Sequence

from interview_coach.core.exceptions import InterviewStateError
from interview_coach.core.logger import set_interview_id
from interview_coach.schemas.interview import (
    Evaluation,
    InterviewType,
    RoadmapItem,
    RoadmapItemDraft,
    Screen,
    SessionGoal,
    SessionSnapshot,
    Utterance,
)

logger = logging.getLogger(__name__)


def assign_roadmap_ids(drafts: Sequence[RoadmapItemDraft]) -> list[RoadmapItem]:
    """
    Give every draft an id and `completed=False`.

    Ids combine the position with a random suffix, so they are unique within
    one roadmap and never reused by a later generation.
    """
    suffix = secrets.token_hex(4)
    return [
        RoadmapItem(**draft.model_dump(), id=f"step-{index + 1}-{suffix}", completed=False)
        for index, draft in enumerate(drafts)
    ]


class InterviewSession:
    """
    The single active interview of this process.

    Holds the current screen, goal, interview types, transcript, evaluation
    and roadmap, and exposes the only operations allowed on them.
    """

    def __init__(self):
        self.interview_id: Optional[str] = None
        self.current_screen: Screen = Screen.SETUP
        self.goal: Optional[SessionGoal] = None
        self.interview_types: list[InterviewType] = []
        self._transcript: list[Utterance] = []
        self._evaluation: Optional[Evaluation] = None
        self._roadmap: list[RoadmapItem] = []

    # --- navigation ---

    def navigate(self, screen: Screen) -> None:
        logger.info(f"Navigating {self.current_screen.value} -> {screen.value}")
        self.current_screen = screen

    def reset_session(self) -> None:
        """Drop everything and go back to setup."""
        self.interview_id = None
        self.goal = None
        self.interview_types = []
        self._transcript = []
        self._evaluation = None
        self._roadmap = []
        self.current_screen = Screen.SETUP
        set_interview_id(None)

    def start_interview(self, goal: SessionGoal, interview_types: Sequence[InterviewType]) -> None:
        types = list(dict.fromkeys(InterviewType(t) for t in interview_types))
        if not types:
            raise InterviewStateError("Select at least one interview type.")
        self.reset_session()
        self.interview_id = uuid.uuid4().hex[:12]
        set_interview_id(self.interview_id)
        self.goal = goal
        self.interview_types = types
        self.navigate(Screen.INTERVIEW)
        logger.info(f"Interview started for '{goal.role}' ({', '.join(t.value for t in types)})")

    # --- transcript ---

    @property
    def transcript(self) -> list[Utterance]:
        return list(self._transcript)

    def append_utterance(self, utterance: Utterance) -> None:
        self._transcript.append(utterance)

    # --- results ---

    @property
    def evaluation(self) -> Optional[Evaluation]:
        return self._evaluation

    def set_evaluation(self, evaluation: Evaluation) -> None:
        if self._evaluation is not None:
            raise InterviewStateError("An evaluation already exists for this interview.")
        self._evaluation = evaluation

    @property
    def roadmap(self) -> list[RoadmapItem]:
        return list(self._roadmap)

    def replace_roadmap(self, drafts: Sequence[RoadmapItemDraft]) -> list[RoadmapItem]:
        self._roadmap = assign_roadmap_ids(drafts)
        return self.roadmap

    def toggle_roadmap_item(self, item_id: str) -> RoadmapItem:
        for index, item in enumerate(self._roadmap):
            if item.id == item_id:
                toggled = item.model_copy(update={"completed": not item.completed})
                self._roadmap[index] = toggled
                return toggled
        raise KeyError(item_id)

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            current_screen=self.current_screen,
            goal=self.goal,
            interview_types=self.interview_types,
            transcript=self.transcript,
            evaluation=self._evaluation,
            roadmap=self.roadmap,
        )
