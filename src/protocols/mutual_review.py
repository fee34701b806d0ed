"""Mutual review protocol: every reviewer evaluates the other speakers' replies."""

import logging
from collections.abc import Callable
from enum import Enum

from config.config_loader import PromptsConfig
from src.errors import InvalidProtocolRequest, MissingSpeakerReply, NoValidRelations, ProtocolError
from src.models import DispatchResult, MutualReviewState
from src.orchestrator import Orchestrator
from src.protocols.base import ProtocolMachine, tag_reply

logger = logging.getLogger(__name__)


class ReviewPhase(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    DISPATCHING = "dispatching"
    AWAITING_REVIEWS = "awaiting-reviews"
    COMPLETE = "complete"


def build_review_matrix(speakers: list[str], reviewers: list[str]) -> dict[str, list[str]]:
    """Map each reviewer to every speaker except itself, in speaker order."""
    return {r: [s for s in speakers if s != r] for r in reviewers}


def compose_review_message(header: str, replies: list[tuple[str, str]], prompt: str) -> str:
    parts = [header]
    parts.extend(tag_reply(speaker, content) for speaker, content in replies)
    parts.append(prompt)
    return "\n\n".join(parts)


class MutualReview(ProtocolMachine):
    def __init__(
        self,
        orchestrator: Orchestrator,
        prompts: PromptsConfig,
        on_complete: Callable[[MutualReviewState], None] | None = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._prompts = prompts
        self._on_complete = on_complete
        self.phase = ReviewPhase.IDLE
        self.state: MutualReviewState | None = None

    @property
    def is_finished(self) -> bool:
        return self.phase in (ReviewPhase.IDLE, ReviewPhase.COMPLETE)

    def expects(self, agent_id: str) -> bool:
        return self.state is not None and agent_id in self.state.pending_reviewers

    async def start(
        self,
        speakers: list[str],
        reviewers: list[str] | None = None,
        prompt_text: str | None = None,
    ) -> list[DispatchResult]:
        """Fetch every speaker's reply, then send each reviewer the others' replies.

        Raises:
            NoValidRelations: If no reviewer has anyone else to review.
            MissingSpeakerReply: If a speaker has no reply yet. Nothing is sent.
        """
        if self.phase in (ReviewPhase.FETCHING, ReviewPhase.DISPATCHING):
            raise self._reject(InvalidProtocolRequest("A mutual review is already being sent"))

        speakers = list(dict.fromkeys(speakers))
        reviewers = list(dict.fromkeys(reviewers if reviewers is not None else speakers))
        matrix = build_review_matrix(speakers, reviewers)
        if not any(matrix.values()):
            raise self._reject(NoValidRelations())

        prompt = (prompt_text or "").strip() or self._prompts.mutual_default
        state = MutualReviewState(speakers=speakers, reviewers=reviewers, review_matrix=matrix)

        previous_phase = self.phase
        self.phase = ReviewPhase.FETCHING
        logger.info("[Mutual] Fetching responses from %s...", ", ".join(speakers))
        for speaker in speakers:
            reply = await self._orchestrator.get_latest_reply(speaker)
            if not reply or not reply.strip():
                # A running review stays attached and keeps waiting
                self.phase = previous_phase
                raise self._reject(MissingSpeakerReply(speaker))
            state.collected_replies[speaker] = reply
            logger.info("[Mutual] Got %s's response (%d chars)", speaker, len(reply))

        if previous_phase is ReviewPhase.AWAITING_REVIEWS:
            logger.warning("[Mutual] Replacing unfinished review, still waiting on %s",
                           ", ".join(sorted(self.state.pending_reviewers)))
            self._orchestrator.detach(self)

        self.state = state
        self.phase = ReviewPhase.DISPATCHING
        self._orchestrator.attach(self)
        logger.info("[Mutual] All responses collected. Sending cross-evaluations...")

        results: list[DispatchResult] = []
        for reviewer, assigned in matrix.items():
            if not assigned:
                continue
            message = compose_review_message(
                self._prompts.mutual_header,
                [(s, state.collected_replies[s]) for s in assigned],
                prompt,
            )
            state.pending_reviewers.add(reviewer)
            logger.info("[Mutual] Sending to %s: %s responses + prompt", reviewer, "+".join(assigned))
            result = await self._orchestrator.dispatch(reviewer, message)
            if not result.success:
                state.pending_reviewers.discard(reviewer)
            results.append(result)

        if state.pending_reviewers:
            self.phase = ReviewPhase.AWAITING_REVIEWS
        else:
            self._finish()
        return results

    def on_capture(self, agent_id: str, content: str) -> None:
        state = self.state
        if state is None or agent_id not in state.pending_reviewers:
            return
        state.reviews[agent_id] = content
        state.pending_reviewers.discard(agent_id)
        logger.info("[Mutual] %s review received", agent_id)
        if not state.pending_reviewers and self.phase is ReviewPhase.AWAITING_REVIEWS:
            self._finish()

    def reset(self) -> None:
        self._orchestrator.detach(self)
        self.state = None
        self.phase = ReviewPhase.IDLE

    def _finish(self) -> None:
        self.phase = ReviewPhase.COMPLETE
        self._orchestrator.detach(self)
        logger.info("[Mutual] Complete! %d review(s) received", len(self.state.reviews))
        if self._on_complete:
            self._on_complete(self.state)

    @staticmethod
    def _reject(exc: ProtocolError) -> ProtocolError:
        logger.error("[Mutual] %s", exc)
        return exc
