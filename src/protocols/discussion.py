"""Discussion protocol: two agents debate a topic over explicit rounds."""

import logging
from collections.abc import Callable
from enum import Enum

from config.config_loader import PromptsConfig
from src.errors import InvalidProtocolRequest, MissingRoundData, MissingSourceReply, ProtocolError
from src.models import DiscussionState, DispatchResult, RoundEntry, RoundType
from src.orchestrator import Orchestrator
from src.protocols.base import ProtocolMachine, display_name, tag_reply

logger = logging.getLogger(__name__)


class DiscussionPhase(str, Enum):
    SETUP = "setup"
    ACTIVE = "active"
    ROUND_COMPLETE = "round-complete"
    SUMMARY = "summary"
    COMPLETE = "complete"


def format_history(state: DiscussionState) -> str:
    """Format all debate rounds (summaries excluded) into one transcript string."""
    parts: list[str] = [f"Topic: {state.topic}"]
    for round_number in range(1, state.current_round + 1):
        entries = [
            e for e in state.entries_for_round(round_number)
            if e.round_type is not RoundType.SUMMARY
        ]
        if not entries:
            continue
        parts.append(f"=== Round {round_number} ===")
        for entry in entries:
            parts.append(f"[{display_name(entry.agent_id)}]:\n{entry.content}")
    return "\n\n".join(parts)


class Discussion(ProtocolMachine):
    """Two-party debate.

    Round 1 sends both participants the same opening prompt. Each advance()
    sends every participant the other's previous reply for cross-evaluation.
    summarize() asks both for a summary of the whole history, after which the
    run is complete. Rounds never advance on their own.
    """

    def __init__(
        self,
        orchestrator: Orchestrator,
        prompts: PromptsConfig,
        on_round_complete: Callable[[DiscussionState], None] | None = None,
        on_complete: Callable[[DiscussionState], None] | None = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._prompts = prompts
        self._on_round_complete = on_round_complete
        self._on_complete = on_complete
        self.phase = DiscussionPhase.SETUP
        self.state: DiscussionState | None = None

    @property
    def is_finished(self) -> bool:
        return self.phase in (DiscussionPhase.SETUP, DiscussionPhase.COMPLETE)

    @property
    def summaries(self) -> dict[str, str]:
        if self.state is None:
            return {}
        return {
            e.agent_id: e.content
            for e in self.state.history
            if e.round_type is RoundType.SUMMARY
        }

    def expects(self, agent_id: str) -> bool:
        return self.state is not None and agent_id in self.state.pending_agents

    async def start(self, topic: str, participants: list[str]) -> list[DispatchResult]:
        if not self.is_finished:
            raise self._reject(InvalidProtocolRequest("A discussion is already running, reset it first"))
        topic = topic.strip()
        if not topic:
            raise self._reject(InvalidProtocolRequest("Please enter a discussion topic"))
        if len(participants) != 2 or len(set(participants)) != 2:
            raise self._reject(
                InvalidProtocolRequest(f"Please select 2 participants, got {len(set(participants))}")
            )

        self.state = DiscussionState(
            topic=topic,
            participants=list(participants),
            pending_agents=set(participants),
        )
        self.phase = DiscussionPhase.ACTIVE
        self._orchestrator.attach(self)
        logger.info("Discussion started: %s vs %s", *participants)

        opening = self._prompts.opening.format(topic=topic)
        return await self._orchestrator.broadcast(list(participants), opening)

    def on_capture(self, agent_id: str, content: str) -> None:
        state = self.state
        if state is None or agent_id not in state.pending_agents:
            return

        if state.entry_for(state.current_round, agent_id) is not None:
            logger.warning(
                "Discussion: %s already has a round %d reply, keeping the first one",
                agent_id, state.current_round,
            )
        else:
            state.history.append(
                RoundEntry(
                    round=state.current_round,
                    agent_id=agent_id,
                    round_type=state.round_type,
                    content=content,
                )
            )
        state.pending_agents.discard(agent_id)
        logger.info("Discussion: %s replied (round %d)", agent_id, state.current_round)

        if state.pending_agents:
            logger.info("Discussion: waiting for %s...", ", ".join(sorted(state.pending_agents)))
            return

        if state.round_type is RoundType.SUMMARY:
            self.phase = DiscussionPhase.COMPLETE
            logger.info("Discussion summaries received from both participants")
            if self._on_complete:
                self._on_complete(state)
        else:
            self.phase = DiscussionPhase.ROUND_COMPLETE
            logger.info("Round %d complete, ready for the next round", state.current_round)
            if self._on_round_complete:
                self._on_round_complete(state)

    async def advance(self) -> list[DispatchResult]:
        """Start a cross-evaluation round from the previous round's replies."""
        state = self._require_state()
        if self.phase in (DiscussionPhase.SUMMARY, DiscussionPhase.COMPLETE):
            raise self._reject(InvalidProtocolRequest("Discussion is already being summarized"))

        previous = state.current_round
        replies = {p: state.entry_for(previous, p) for p in state.participants}
        missing = [p for p, entry in replies.items() if entry is None]
        if missing:
            raise self._reject(MissingRoundData(previous, missing))

        first, second = state.participants
        messages = {
            first: self._cross_eval_message(second, replies[second].content),
            second: self._cross_eval_message(first, replies[first].content),
        }

        state.current_round += 1
        state.round_type = RoundType.CROSS_EVAL
        state.pending_agents = set(state.participants)
        self.phase = DiscussionPhase.ACTIVE
        logger.info(
            "Round %d: cross-evaluation, %s reviews %s and %s reviews %s",
            state.current_round, first, second, second, first,
        )

        return [await self._orchestrator.dispatch(p, messages[p]) for p in state.participants]

    async def summarize(self) -> list[DispatchResult]:
        """Ask both participants for a summary of the full history."""
        state = self._require_state()
        if self.phase is not DiscussionPhase.ROUND_COMPLETE:
            raise self._reject(
                InvalidProtocolRequest("Wait for the current round to complete before summarizing")
            )

        prompt = self._prompts.summary.format(history=format_history(state))
        state.current_round += 1
        state.round_type = RoundType.SUMMARY
        state.pending_agents = set(state.participants)
        self.phase = DiscussionPhase.SUMMARY
        logger.info("[Summary] Requesting summaries from both participants...")

        return await self._orchestrator.broadcast(list(state.participants), prompt)

    async def interject(self, message: str) -> list[DispatchResult]:
        """Send the user's message plus the other side's latest reply to each participant."""
        state = self._require_state()
        message = message.strip()
        if not message:
            raise self._reject(InvalidProtocolRequest("Please enter a message to send"))

        latest: dict[str, str] = {}
        for participant in state.participants:
            reply = await self._orchestrator.get_latest_reply(participant)
            if not reply:
                raise self._reject(MissingSourceReply(participant))
            latest[participant] = reply

        first, second = state.participants
        outgoing = {
            first: self._interject_message(message, second, latest[second]),
            second: self._interject_message(message, first, latest[first]),
        }
        logger.info("[Interject] Sending to both participants with the other's reply")
        return [await self._orchestrator.dispatch(p, outgoing[p]) for p in state.participants]

    def reset(self) -> None:
        self._orchestrator.detach(self)
        self.state = None
        self.phase = DiscussionPhase.SETUP
        logger.info("Discussion ended")

    def _cross_eval_message(self, other: str, other_reply: str) -> str:
        return self._prompts.cross_eval.format(
            other_name=display_name(other),
            topic=self.state.topic,
            other_response=tag_reply(other, other_reply),
        )

    def _interject_message(self, message: str, other: str, other_reply: str) -> str:
        return self._prompts.interject.format(
            message=message,
            other_name=display_name(other),
            other_response=tag_reply(other, other_reply),
        )

    def _require_state(self) -> DiscussionState:
        if self.state is None:
            raise self._reject(InvalidProtocolRequest("No discussion in progress"))
        return self.state

    @staticmethod
    def _reject(exc: ProtocolError) -> ProtocolError:
        logger.error("Discussion: %s", exc)
        return exc
