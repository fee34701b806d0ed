"""Error taxonomy for delivery and protocol failures."""


class PanelError(Exception):
    """Base for every error raised or returned by the panel core."""


class ChannelError(PanelError):
    """A message could not be delivered to an agent."""

    def __init__(self, agent_id: str, message: str) -> None:
        self.agent_id = agent_id
        super().__init__(f"[{agent_id}] {message}")


class AgentNotFound(ChannelError):
    """No live session exists for the agent. Never retried."""

    def __init__(self, agent_id: str) -> None:
        super().__init__(agent_id, f"No {agent_id} session found")


class InputNotFound(ChannelError):
    def __init__(self, agent_id: str) -> None:
        super().__init__(agent_id, "Could not find input field")


class SubmitNotFound(ChannelError):
    def __init__(self, agent_id: str) -> None:
        super().__init__(agent_id, "Could not find send button")


class TransientChannelError(ChannelError):
    """Receiving end not ready yet; delivery may be retried."""


class PermanentChannelError(ChannelError):
    """Delivery failed for a reason retrying will not fix."""


class ProtocolError(PanelError):
    """A protocol precondition failed; nothing was dispatched."""


class MissingRoundData(ProtocolError):
    def __init__(self, round_number: int, missing: list[str]) -> None:
        self.round_number = round_number
        self.missing = missing
        super().__init__(
            f"Round {round_number} is missing replies from: {', '.join(missing)}"
        )


class MissingSpeakerReply(ProtocolError):
    def __init__(self, speaker: str) -> None:
        self.speaker = speaker
        super().__init__(
            f"Could not get {speaker}'s response - make sure {speaker} has replied first"
        )


class MissingSourceReply(ProtocolError):
    def __init__(self, source: str) -> None:
        self.source = source
        super().__init__(f"Could not get {source}'s response")


class NoValidRelations(ProtocolError):
    def __init__(self) -> None:
        super().__init__("No reviewer has any other speaker to review")


class InvalidProtocolRequest(ProtocolError):
    """The request does not fit the protocol's current phase or arguments."""
