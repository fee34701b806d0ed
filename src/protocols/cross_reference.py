"""Cross-reference: embed some agents' latest replies in a message to others."""

import logging

from src.errors import InvalidProtocolRequest, MissingSourceReply
from src.models import CrossReferenceRequest, DispatchResult
from src.orchestrator import Orchestrator
from src.protocols.base import tag_reply

logger = logging.getLogger(__name__)


def compose_cross_reference(prefix: str, replies: list[tuple[str, str]]) -> str:
    """User text first, then each source's tagged reply in source order."""
    message = prefix + "\n"
    for source, content in replies:
        message += "\n" + tag_reply(source, content)
    return message


async def cross_reference(orchestrator: Orchestrator, request: CrossReferenceRequest) -> list[DispatchResult]:
    """Send one composed message to every target.

    Raises:
        MissingSourceReply: If any source has no reply. Nothing is sent.
    """
    if not request.targets or not request.sources:
        exc = InvalidProtocolRequest("Cross-reference needs at least one target and one source")
        logger.error("Cross-reference: %s", exc)
        raise exc

    logger.info("Cross-reference: %s <- %s", ", ".join(request.targets), ", ".join(request.sources))

    replies: list[tuple[str, str]] = []
    for source in request.sources:
        reply = await orchestrator.get_latest_reply(source)
        if not reply:
            exc = MissingSourceReply(source)
            logger.error("Cross-reference: %s", exc)
            raise exc
        replies.append((source, reply))

    message = compose_cross_reference(request.message_template, replies)
    return await orchestrator.broadcast(list(request.targets), message)
