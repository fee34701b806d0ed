"""Dataclasses for agents, capture sessions, dispatches, protocol state and messages."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from src.errors import ChannelError


class ConnectionState(str, Enum):
    UNKNOWN = "unknown"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


class RoundType(str, Enum):
    INITIAL = "initial"
    CROSS_EVAL = "cross-eval"
    SUMMARY = "summary"


@dataclass
class Agent:
    agent_id: str
    connection_state: ConnectionState = ConnectionState.UNKNOWN
    last_captured_reply: str | None = None


@dataclass
class CaptureSession:
    """Polling state for one agent. At most one live instance per agent."""

    agent_id: str
    start_time: float
    stable_threshold: int = 4
    previous_content: str = ""
    stable_count: int = 0
    polls: int = 0

    def observe(self, content: str, completion_hint: bool = False) -> bool:
        """Feed one poll result. Returns True once the reply is considered final."""
        self.polls += 1
        unchanged = bool(content) and content == self.previous_content
        hinted = bool(content) and completion_hint
        self.previous_content = content

        if not (unchanged or hinted):
            self.stable_count = 0
            return False

        self.stable_count += 1
        return hinted or self.stable_count >= self.stable_threshold


@dataclass
class DispatchRequest:
    agent_id: str
    text: str
    attempt: int = 0
    max_attempts: int = 3


@dataclass
class DispatchResult:
    agent_id: str
    success: bool
    error: ChannelError | None = None
    attempts: int = 0


@dataclass(frozen=True)
class RoundEntry:
    round: int
    agent_id: str
    round_type: RoundType
    content: str
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class DiscussionState:
    topic: str
    participants: list[str]
    current_round: int = 1
    round_type: RoundType = RoundType.INITIAL
    pending_agents: set[str] = field(default_factory=set)
    history: list[RoundEntry] = field(default_factory=list)

    def entry_for(self, round_number: int, agent_id: str) -> RoundEntry | None:
        for entry in self.history:
            if entry.round == round_number and entry.agent_id == agent_id:
                return entry
        return None

    def entries_for_round(self, round_number: int) -> list[RoundEntry]:
        return [e for e in self.history if e.round == round_number]


@dataclass
class MutualReviewState:
    speakers: list[str]
    reviewers: list[str]
    review_matrix: dict[str, list[str]] = field(default_factory=dict)
    collected_replies: dict[str, str] = field(default_factory=dict)
    pending_reviewers: set[str] = field(default_factory=set)
    reviews: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class CrossReferenceRequest:
    targets: tuple[str, ...]
    sources: tuple[str, ...]
    message_template: str


# Message contract between the orchestrator and its host/adapters.

@dataclass(frozen=True)
class AgentReady:
    agent_id: str


@dataclass(frozen=True)
class Dispatch:
    agent_id: str
    text: str


@dataclass(frozen=True)
class GetLatestReply:
    agent_id: str


@dataclass(frozen=True)
class ReplyCaptured:
    agent_id: str
    content: str


@dataclass(frozen=True)
class ConnectivityChanged:
    agent_id: str
    connected: bool


Message = AgentReady | Dispatch | GetLatestReply | ReplyCaptured | ConnectivityChanged
