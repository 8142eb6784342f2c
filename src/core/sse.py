# src/core/sse.py
"""
Server-sent events framing.

Turns a sequence of domain events (pydantic models) into `data: <json>\\n\\n`
frames. It knows nothing about where the events come from, so it can be driven
by the model stream in production and by a plain list in tests.
"""

import logging
from typing import AsyncIterable, AsyncIterator

from pydantic import BaseModel

from src.models.schemas import ErrorFrame

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"
DONE_FRAME = f"{DATA_PREFIX}{DONE_SENTINEL}\n\n".encode("utf-8")

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


def encode_frame(event: BaseModel) -> bytes:
    """Serializes one event as a single SSE frame."""
    return f"{DATA_PREFIX}{event.model_dump_json()}\n\n".encode("utf-8")


async def frame_events(events: AsyncIterable[BaseModel]) -> AsyncIterator[bytes]:
    """
    Yields one frame per event followed by the [DONE] sentinel.

    If the event source fails after streaming has begun the status line is
    already sent, so the failure is reported as an error frame instead.
    """
    try:
        async for event in events:
            yield encode_frame(event)
    except Exception as e:
        logging.exception("Recommendation stream failed mid-way.")
        yield encode_frame(ErrorFrame(error=str(e) or type(e).__name__))
        return
    yield DONE_FRAME
