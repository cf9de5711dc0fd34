"""
Frame correlation: one mirrored still per finalized candidate utterance.

The preview the candidate sees is mirrored, so the captured frame is flipped
horizontally before encoding to match it.
"""
import base64
import io
import logging
from typing import Optional, Protocol, Union

from PIL import Image, ImageOps, UnidentifiedImageError

from interview_coach.core.config import settings
from interview_coach.core.exceptions import CaptureUnavailableError
from interview_coach.services.providers.base import split_data_url

logger = logging.getLogger(__name__)


class VideoFeed(Protocol):
    """A live video source owned by the frame correlator."""

    def read_frame(self) -> Optional[Image.Image]:
        """Current frame, or None if nothing has been captured yet."""
        ...

    def release(self) -> None:
        ...


class LatestFrameFeed:
    """
    Push-based feed: the client sends frames, only the newest is kept.

    Frames arrive as raw JPEG/PNG bytes or as data URLs and are decoded
    lazily on read.
    """

    def __init__(self):
        self._latest: Optional[bytes] = None
        self._released = False

    def push(self, frame: Union[bytes, str]) -> None:
        if self._released:
            return
        if isinstance(frame, str):
            decoded = split_data_url(frame)
            if decoded is None:
                logger.warning("Ignoring frame that is not a base64 data URL")
                return
            frame = decoded[1]
        self._latest = frame

    def read_frame(self) -> Optional[Image.Image]:
        if self._released:
            raise CaptureUnavailableError("Video feed has been released.")
        if self._latest is None:
            return None
        try:
            image = Image.open(io.BytesIO(self._latest))
            image.load()
        except (UnidentifiedImageError, OSError) as e:
            raise CaptureUnavailableError(f"Could not decode video frame: {e}") from e
        return image

    def release(self) -> None:
        self._released = True
        self._latest = None


def encode_frame(image: Image.Image, quality: int = None) -> str:
    """Mirror `image` horizontally and encode it as a JPEG data URL."""
    mirrored = ImageOps.mirror(image.convert("RGB"))
    buffer = io.BytesIO()
    mirrored.save(buffer, format="JPEG", quality=quality or settings.FRAME_JPEG_QUALITY)
    return "data:image/jpeg;base64," + base64.b64encode(buffer.getvalue()).decode("ascii")


class FrameCorrelator:
    """Captures the still attached to a candidate utterance. Best-effort."""

    def __init__(self, feed: Optional[VideoFeed] = None):
        self._feed = feed

    @property
    def has_feed(self) -> bool:
        return self._feed is not None

    def attach(self, feed: Optional[VideoFeed]) -> None:
        """Swap in a new feed, releasing the previous one."""
        if self._feed is not None and self._feed is not feed:
            self._feed.release()
        self._feed = feed

    def capture(self) -> Optional[str]:
        """
        Grab exactly one frame as a mirrored JPEG data URL.

        Returns None when there is no feed, no frame yet, or the camera is
        unavailable; a missing image never stops the utterance from being
        recorded.
        """
        if self._feed is None:
            return None
        try:
            frame = self._feed.read_frame()
        except CaptureUnavailableError as e:
            logger.warning(f"Frame capture unavailable: {e.message}")
            return None
        if frame is None:
            return None
        try:
            return encode_frame(frame)
        except OSError as e:
            logger.warning(f"Frame encoding failed: {e}")
            return None

    def close(self) -> None:
        """Release the feed when the interview screen goes away."""
        if self._feed is not None:
            self._feed.release()
            self._feed = None
