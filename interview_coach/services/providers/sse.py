"""Incremental decoder for OpenAI-style server-sent event streams."""
import json
import logging
from typing import Any, Optional

from interview_coach.core.exceptions import TransportError

logger = logging.getLogger(__name__)

DONE_SENTINEL = "[DONE]"


class SSEDecoder:
    """
    Turns arbitrarily split text chunks into content deltas.

    Lines are split on newline boundaries; a trailing partial line stays in
    the buffer until the next chunk completes it. Only `data:` lines are
    decoded, and the `[DONE]` frame ends the stream.
    """

    def __init__(self):
        self._buffer = ""
        self.done = False

    def feed(self, chunk: str) -> list[str]:
        """Consume one text chunk and return the deltas it completed."""
        if self.done:
            return []
        self._buffer += chunk
        lines = self._buffer.split("\n")
        self._buffer = lines.pop()
        return self._process(lines)

    def flush(self) -> list[str]:
        """Decode whatever is left once the body ends without a newline."""
        if self.done or not self._buffer:
            return []
        lines, self._buffer = [self._buffer], ""
        return self._process(lines)

    def _process(self, lines: list[str]) -> list[str]:
        deltas = []
        for line in lines:
            line = line.rstrip("\r")
            if not line.startswith("data:"):
                continue
            data = line[len("data:"):].strip()
            if data == DONE_SENTINEL:
                self.done = True
                break
            try:
                payload = json.loads(data)
            except json.JSONDecodeError:
                logger.warning(f"Skipping undecodable stream frame: {data[:100]}")
                continue
            content = extract_delta(payload)
            if content:
                deltas.append(content)
        return deltas


def extract_delta(payload: Any) -> Optional[str]:
    """Pull `choices[0].delta.content` out of one stream frame."""
    if not isinstance(payload, dict):
        return None
    if "error" in payload:
        error = payload["error"]
        message = error.get("message") if isinstance(error, dict) else str(error)
        raise TransportError(f"Provider reported a stream error: {message}")
    choices = payload.get("choices") or []
    if not choices or not isinstance(choices[0], dict):
        return None
    delta = choices[0].get("delta") or {}
    content = delta.get("content")
    return content if isinstance(content, str) else None
