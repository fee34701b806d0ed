"""Parse one line of user input into a structured command. Pure, no I/O."""

import re
from dataclasses import dataclass

# Two @mentions plus one of these words means "first mention evaluates the other"
_EVAL_KEYWORDS = re.compile(
    r"评价|看看|怎么样|怎么看|如何|讲的|说的|回答|赞同|同意|分析|认为|观点|看法|意见|借鉴|批评|补充|对比"
    r"|evaluate|think of|opinion|review|agree|analysis|compare|learn from",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class SendCommand:
    text: str
    targets: tuple[str, ...] = ()  # empty: use the current selection


@dataclass(frozen=True)
class CrossReferenceCommand:
    targets: tuple[str, ...]
    sources: tuple[str, ...]
    text: str


@dataclass(frozen=True)
class MutualReviewCommand:
    prompt: str | None = None


@dataclass(frozen=True)
class DiscussCommand:
    participants: tuple[str, ...]
    topic: str


@dataclass(frozen=True)
class NextRoundCommand:
    pass


@dataclass(frozen=True)
class SummaryCommand:
    pass


@dataclass(frozen=True)
class InterjectCommand:
    text: str


@dataclass(frozen=True)
class ResetCommand:
    pass


@dataclass(frozen=True)
class StatusCommand:
    pass


@dataclass(frozen=True)
class SelectCommand:
    targets: tuple[str, ...]


@dataclass(frozen=True)
class QuitCommand:
    pass


@dataclass(frozen=True)
class EmptyCommand:
    pass


Command = (
    SendCommand | CrossReferenceCommand | MutualReviewCommand | DiscussCommand
    | NextRoundCommand | SummaryCommand | InterjectCommand | ResetCommand
    | StatusCommand | SelectCommand | QuitCommand | EmptyCommand
)

_SIMPLE_COMMANDS = {
    "/next": NextRoundCommand,
    "/summary": SummaryCommand,
    "/reset": ResetCommand,
    "/status": StatusCommand,
    "/quit": QuitCommand,
    "/exit": QuitCommand,
}


def _mention_pattern(agent_ids: list[str]) -> re.Pattern[str]:
    names = "|".join(re.escape(a) for a in sorted(agent_ids, key=len, reverse=True))
    return re.compile(rf"@({names})", re.IGNORECASE)


def _unique(names: list[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(n.lower() for n in names))


def _split_keyword(text: str) -> tuple[str, str]:
    head, _, rest = text.partition(" ")
    return head.lower(), rest.strip()


def _parse_cross(message: str, pattern: re.Pattern[str]) -> CrossReferenceCommand | None:
    """/cross @targets <- @sources text. The text is whatever follows the last source."""
    body = message.strip()[len("/cross"):]
    before, arrow, after = body.partition("<-")
    if not arrow:
        return None

    targets = _unique(pattern.findall(before))
    source_matches = list(pattern.finditer(after))
    sources = _unique([m.group(1) for m in source_matches])
    if not targets or not sources:
        return None

    text = after[source_matches[-1].end():].strip()
    return CrossReferenceCommand(targets=targets, sources=sources, text=text)


def parse_command(message: str, agent_ids: list[str]) -> Command:
    """Turn user input into a command value.

    Args:
        message: Raw input line.
        agent_ids: Agent ids recognized as @mentions.

    Returns:
        One of the command dataclasses above. Plain text, and anything that
        looks like a command but does not parse, becomes a SendCommand.
    """
    stripped = message.strip()
    if not stripped:
        return EmptyCommand()

    pattern = _mention_pattern(agent_ids)
    keyword, rest = _split_keyword(stripped)

    # Trailing words after a simple command are ignored, never broadcast
    if keyword in _SIMPLE_COMMANDS:
        return _SIMPLE_COMMANDS[keyword]()

    if keyword == "/mutual":
        return MutualReviewCommand(prompt=rest or None)

    if keyword == "/interject":
        return InterjectCommand(text=rest)

    if keyword == "/targets":
        return SelectCommand(targets=_unique(pattern.findall(rest)))

    if keyword == "/discuss":
        participants = _unique(pattern.findall(rest))
        topic = pattern.sub("", rest).strip()
        return DiscussCommand(participants=participants, topic=topic)

    if keyword == "/cross":
        cross = _parse_cross(stripped, pattern)
        if cross is not None:
            return cross

    mentions = _unique(pattern.findall(stripped))
    if len(mentions) == 2 and _EVAL_KEYWORDS.search(stripped):
        return CrossReferenceCommand(
            targets=(mentions[0],),
            sources=(mentions[1],),
            text=stripped,
        )

    return SendCommand(text=stripped, targets=mentions)
