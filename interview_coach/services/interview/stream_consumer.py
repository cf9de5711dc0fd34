import logging
from typing import AsyncIterable, Callable, Optional

logger = logging.getLogger(__name__)


async def consume_stream(
    fragments: AsyncIterable[str],
    on_partial: Optional[Callable[[str], None]] = None,
) -> str:
    """
    Drain a fragment stream into one string.

    The stream is always read to the end. `on_partial` receives the text
    accumulated so far after every fragment, for live-typing display.
    """
    chunks: list[str] = []
    accumulated = ""
    async for fragment in fragments:
        if not fragment:
            continue
        chunks.append(fragment)
        accumulated = "".join(chunks)
        if on_partial is not None:
            on_partial(accumulated)

    logger.debug(f"Stream drained: {len(chunks)} fragment(s), {len(accumulated)} chars")
    return accumulated
