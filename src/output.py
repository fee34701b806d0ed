"""Rich console output and markdown transcript save for panel sessions."""

import logging
import re
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table

from src.models import Agent, ConnectionState, DiscussionState, MutualReviewState, RoundType
from src.protocols.base import display_name

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

_STATE_STYLES = {
    ConnectionState.CONNECTED: "[green]Connected[/green]",
    ConnectionState.DISCONNECTED: "[red]Not found[/red]",
    ConnectionState.UNKNOWN: "[dim]Unknown[/dim]",
}


def _slug(text: str, max_len: int = 40) -> str:
    """Convert text to a filename-safe slug."""
    slug = re.sub(r"[^\w\s-]", "", text.lower())
    slug = re.sub(r"[\s_-]+", "-", slug).strip("-")
    return slug[:max_len]


def _preview(content: str, chars: int = 200) -> str:
    """Return the first N characters of a reply."""
    if len(content) <= chars:
        return content
    return content[:chars] + "..."


def print_capture(agent_id: str, content: str) -> None:
    console.print(
        Panel(
            _preview(content, 400),
            title=f"[bold]{display_name(agent_id)}[/bold]",
            subtitle=f"{len(content)} chars",
            border_style="dim",
        )
    )


def print_status(
    agents: list[Agent],
    selected: list[str],
    capturing: list[str],
    discussion: DiscussionState | None = None,
) -> None:
    table = Table(title="Agents", show_lines=False)
    table.add_column("Agent")
    table.add_column("Status")
    table.add_column("Selected")
    table.add_column("Capturing")
    table.add_column("Last reply", justify="right")
    for agent in agents:
        last = agent.last_captured_reply
        table.add_row(
            agent.agent_id,
            _STATE_STYLES[agent.connection_state],
            "yes" if agent.agent_id in selected else "",
            "yes" if agent.agent_id in capturing else "",
            f"{len(last)} chars" if last else "-",
        )
    console.print(table)

    if discussion is not None:
        pending = ", ".join(sorted(discussion.pending_agents)) or "none"
        console.print(
            f"Discussion: {display_name(discussion.participants[0])} vs "
            f"{display_name(discussion.participants[1])} | round {discussion.current_round} "
            f"({discussion.round_type.value}) | waiting for: {pending}"
        )


def print_discussion_summary(state: DiscussionState) -> None:
    """Print both summaries, then a short preview of every debate round."""
    console.print(Rule("[bold green]Summary Comparison[/bold green]"))
    summaries = {e.agent_id: e.content for e in state.history if e.round_type is RoundType.SUMMARY}
    if not summaries:
        logger.warning("No summary content received from the participants")
    for participant in state.participants:
        console.print(
            Panel(
                Markdown(summaries.get(participant, "")),
                title=f"[bold]{display_name(participant)}'s summary[/bold]",
                border_style="green",
            )
        )

    console.print(Rule("[bold cyan]Full Discussion History[/bold cyan]"))
    for round_number in range(1, state.current_round + 1):
        entries = [
            e for e in state.entries_for_round(round_number)
            if e.round_type is not RoundType.SUMMARY
        ]
        if not entries:
            continue
        console.print(f"[bold]Round {round_number}[/bold]")
        for entry in entries:
            console.print(f"  [bold]{display_name(entry.agent_id)}:[/bold] {_preview(entry.content)}")


def print_review_summary(state: MutualReviewState) -> None:
    console.print(Rule("[bold green]Mutual Review[/bold green]"))
    for reviewer, content in state.reviews.items():
        assigned = ", ".join(display_name(s) for s in state.review_matrix.get(reviewer, []))
        console.print(
            Panel(
                _preview(content, 400),
                title=f"[bold]{display_name(reviewer)}[/bold] on {assigned}",
                border_style="dim",
            )
        )


def save_transcript(state: DiscussionState, output_dir: Path, slug_override: str | None = None) -> Path:
    """Save the full discussion as a markdown file.

    Args:
        state: The discussion to save (finished or not).
        output_dir: Directory to save the file in.
        slug_override: If provided, use this as the filename stem instead of
            deriving one from the topic.

    Returns:
        Path to the saved file.
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    slug = slug_override if slug_override is not None else _slug(state.topic)
    filepath = output_dir / f"{timestamp}_{slug}.md"

    first, second = state.participants
    lines: list[str] = [
        f"# AI Panel Discussion: {state.topic[:80]}",
        "",
        f"**Date:** {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
        f"**Participants:** {display_name(first)} vs {display_name(second)}",
        f"**Rounds:** {state.current_round}",
        "",
        "---",
        "",
    ]

    round_labels = {
        RoundType.INITIAL: "Initial Responses",
        RoundType.CROSS_EVAL: "Cross-Evaluation",
        RoundType.SUMMARY: "Summary",
    }
    for round_number in range(1, state.current_round + 1):
        entries = state.entries_for_round(round_number)
        if not entries:
            continue
        lines.append(f"## Round {round_number}: {round_labels[entries[0].round_type]}")
        lines.append("")
        for entry in entries:
            lines.append(f"### {display_name(entry.agent_id)}")
            lines.append("")
            lines.append(entry.content)
            lines.append("")
            lines.append(f"*Captured: {entry.timestamp.strftime('%H:%M:%S')}*")
            lines.append("")

    filepath.write_text("\n".join(lines), encoding="utf-8")
    logger.info("Discussion saved to: %s", filepath)
    return filepath
