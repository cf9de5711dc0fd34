"""Speech synthesis sink used by the orchestrator to voice interviewer turns."""
import logging
from typing import Callable, Optional, Protocol

logger = logging.getLogger(__name__)

EventListener = Callable[[dict], None]


class SpeechSink(Protocol):
    def speak(self, text: str, on_done: Callable[[], None]) -> None:
        """Start voicing `text`; call `on_done` once playback completes."""
        ...

    def cancel(self) -> None:
        """Forget any pending completion callback."""
        ...


class ClientSpeechSink:
    """
    Speech happens in the browser: emit a `speak` event and wait for the
    client to report playback completion.
    """

    def __init__(self, emit: EventListener):
        self._emit = emit
        self._pending: Optional[Callable[[], None]] = None

    @property
    def is_speaking(self) -> bool:
        return self._pending is not None

    def speak(self, text: str, on_done: Callable[[], None]) -> None:
        if self._pending is not None:
            logger.warning("New utterance requested before playback finished; dropping old callback")
        self._pending = on_done
        self._emit({"type": "speak", "content": text})

    def cancel(self) -> None:
        if self._pending is not None:
            logger.debug("Discarding pending playback callback")
        self._pending = None

    def playback_complete(self) -> None:
        callback, self._pending = self._pending, None
        if callback is None:
            logger.debug("Playback completion with nothing pending")
            return
        callback()
