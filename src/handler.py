"""Request handling for one chat turn.

Maps a raw JSON payload to a pipeline run and the pipeline outcome to a
status code and response body. Transport is left to the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from core.errors import ConfigurationError, DependencyError
from core.pipeline import TurnPipeline
from core.schemas import parse_turn_request

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChatResponse:
    status: int
    body: Optional[dict] = None
    error: Optional[str] = field(default=None, compare=False)


async def handle_chat_request(pipeline: TurnPipeline, payload: Any) -> ChatResponse:
    """Run one turn for a chat request payload.

    Fatal errors produce no body. Persistence warnings still return the reply.
    """

    try:
        turn = parse_turn_request(payload)
        result = await pipeline.process(turn)
    except ConfigurationError as exc:
        return ChatResponse(status=400, error=str(exc))
    except DependencyError as exc:
        return ChatResponse(status=502, error=str(exc))

    body = {
        "text": result.reply,
        "state": result.state.value,
        "warnings": [str(warning) for warning in result.warnings],
    }
    if result.warnings:
        LOGGER.warning("Turn for chat block %s finished with warnings", turn.chat_block_id)
    return ChatResponse(status=200, body=body)
