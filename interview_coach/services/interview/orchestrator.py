"""
Interview orchestrator: the turn-taking state machine.

    thinking --reply streamed--> speaking --playback done--> idle
    idle --capture--> listening --utterance finalized--> thinking
    thinking --retries exhausted--> (apology spoken) --> finished
    any --end_interview (after one full exchange)--> finished

The interview opens in `thinking` while the first question is generated.
Candidate input is refused while thinking, speaking or finished.
"""
import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Sequence

from interview_coach.core.exceptions import (
    CaptureUnavailableError,
    InterviewStateError,
    MalformedResponseError,
)
from interview_coach.core.logger import set_interview_id
from interview_coach.core.prompts import CLOSING_APOLOGY, OPENING_MESSAGE
from interview_coach.schemas.interview import (
    InterviewType,
    Screen,
    SessionGoal,
    Speaker,
    Utterance,
)
from interview_coach.services.interview.frame_correlator import FrameCorrelator
from interview_coach.services.interview.retry import retry_with_backoff
from interview_coach.services.interview.session import InterviewSession
from interview_coach.services.interview.speech import EventListener, SpeechSink
from interview_coach.services.interview.stream_consumer import consume_stream
from interview_coach.services.providers.base import AIProvider

logger = logging.getLogger(__name__)

TURN_RETRY_MESSAGE = "I'm having a little trouble connecting. Trying again in {delay:g} seconds..."


class InterviewState(str, Enum):
    IDLE = "idle"
    LISTENING = "listening"
    THINKING = "thinking"
    SPEAKING = "speaking"
    FINISHED = "finished"


class InterviewOrchestrator:
    """
    Drives one interview against an `AIProvider`.

    The orchestrator owns the provider's conversational state for the whole
    session. UI updates go out through `listener` as
    `{"type": ..., "content": ...}` events.
    """

    def __init__(
        self,
        provider: AIProvider,
        session: InterviewSession,
        speech: Optional[SpeechSink] = None,
        frames: Optional[FrameCorrelator] = None,
        listener: Optional[EventListener] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.provider = provider
        self.session = session
        self.speech = speech
        self.frames = frames or FrameCorrelator()
        self.listener = listener
        self._sleep = sleep
        self.state = InterviewState.IDLE
        self.partial_reply = ""

    # --- properties ---

    @property
    def accepts_input(self) -> bool:
        return self.state in (InterviewState.IDLE, InterviewState.LISTENING)

    @property
    def can_end(self) -> bool:
        """True once the opening question and one candidate reply exist."""
        speakers = {u.speaker for u in self.session.transcript}
        return Speaker.INTERVIEWER in speakers and Speaker.CANDIDATE in speakers

    # --- operations exposed to the UI ---

    async def start_interview(self, goal: SessionGoal, interview_types: Sequence[InterviewType]) -> None:
        """Reset the session, open a fresh provider chat and ask the first question."""
        self.session.start_interview(goal, interview_types)
        if self.speech is not None:
            # A late playback ack from the previous interview must not land here
            self.speech.cancel()
        self.provider.start_chat(goal, self.session.interview_types)
        self.partial_reply = ""
        self._set_state(InterviewState.THINKING)
        await self._run_turn(OPENING_MESSAGE)

    def start_listening(self) -> None:
        if self.state is not InterviewState.IDLE:
            raise InterviewStateError(f"Cannot start listening while {self.state.value}.")
        self._set_state(InterviewState.LISTENING)

    def stop_listening(self) -> None:
        """Stop capture; an utterance that was not finalized is discarded."""
        if self.state is InterviewState.LISTENING:
            self._set_state(InterviewState.IDLE)

    def capture_failed(self, message: str) -> None:
        """Microphone/camera trouble: report it, keep the interview going."""
        error = CaptureUnavailableError(message)
        logger.warning(f"Capture unavailable: {error.message}")
        self._emit("error", {"error": error.message, "error_type": type(error).__name__})
        if self.state is InterviewState.LISTENING:
            self._set_state(InterviewState.IDLE)

    async def submit_utterance(self, text: str) -> Optional[Utterance]:
        """
        Record a finalized candidate utterance and run the interviewer's turn.

        Returns the recorded utterance, or None if the text was blank.
        """
        if not self.accepts_input:
            raise InterviewStateError(f"Cannot accept input while {self.state.value}.")

        text = (text or "").strip()
        if not text:
            logger.info("Ignoring blank utterance")
            self._set_state(InterviewState.IDLE)
            return None

        utterance = Utterance(speaker=Speaker.CANDIDATE, text=text, image=self.frames.capture())
        self.session.append_utterance(utterance)
        self._emit("utterance", utterance.model_dump(mode="json", exclude={"image"}))

        self._set_state(InterviewState.THINKING)
        await self._run_turn(text)
        return utterance

    def playback_complete(self) -> None:
        if self.state is InterviewState.SPEAKING:
            self._set_state(InterviewState.IDLE)

    def end_interview(self) -> None:
        if self.state is InterviewState.FINISHED:
            return
        if not self.can_end:
            raise InterviewStateError("Answer at least one question before finishing the interview.")
        self._close()

    def shutdown(self) -> None:
        """The interview screen went away: release the camera."""
        self.frames.close()

    # --- turn handling ---

    async def _run_turn(self, message: str) -> None:
        set_interview_id(self.session.interview_id)
        try:
            outcome = await retry_with_backoff(
                lambda: self._stream_turn(message),
                label="interview turn",
                on_retry=self._on_retry,
                message=TURN_RETRY_MESSAGE,
                sleep=self._sleep,
            )
        except Exception as e:
            logger.error(f"Interview turn failed without recovery: {e}", exc_info=True)
            self.partial_reply = ""
            self._end_after_failure()
            return

        self.partial_reply = ""
        if outcome.succeeded:
            self._finish_turn(outcome.value)
        else:
            self._end_after_failure()

    async def _stream_turn(self, message: str) -> str:
        self._show_partial("")
        reply = await consume_stream(self.provider.stream_next_turn(message), on_partial=self._show_partial)
        reply = reply.strip()
        if not reply:
            raise MalformedResponseError("Interviewer reply was empty")
        return reply

    def _finish_turn(self, reply: str) -> None:
        self._record_interviewer(reply)
        if self.state is InterviewState.FINISHED:
            logger.info("Interview ended during the turn; reply recorded but not spoken")
            return
        self._set_state(InterviewState.SPEAKING)
        self._speak(reply, self.playback_complete)

    def _end_after_failure(self) -> None:
        self._record_interviewer(CLOSING_APOLOGY)
        if self.state is InterviewState.FINISHED:
            return
        self._set_state(InterviewState.SPEAKING)
        self._speak(CLOSING_APOLOGY, self._close)

    def _close(self) -> None:
        if self.state is InterviewState.FINISHED:
            return
        self._set_state(InterviewState.FINISHED)
        self.session.navigate(Screen.RESULTS)
        self._emit("navigate", Screen.RESULTS.value)

    # --- helpers ---

    def _record_interviewer(self, text: str) -> None:
        utterance = Utterance(speaker=Speaker.INTERVIEWER, text=text)
        self.session.append_utterance(utterance)
        self._emit("utterance", utterance.model_dump(mode="json"))

    def _speak(self, text: str, on_done: Callable[[], None]) -> None:
        if self.speech is None:
            on_done()
        else:
            self.speech.speak(text, on_done)

    def _on_retry(self, status: str, delay: float) -> None:
        self.partial_reply = ""
        self._emit("status", status)

    def _show_partial(self, text: str) -> None:
        self.partial_reply = text
        self._emit("partial", text)

    def _set_state(self, state: InterviewState) -> None:
        if state is not self.state:
            logger.debug(f"State {self.state.value} -> {state.value}")
        self.state = state
        self._emit("state", state.value)

    def _emit(self, event_type: str, content: Any) -> None:
        if self.listener is not None:
            self.listener({"type": event_type, "content": content})
