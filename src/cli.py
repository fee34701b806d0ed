"""Click CLI — loads config, builds agent sessions, runs the interactive panel."""

import asyncio
import logging
import sys
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler

from config.config_loader import AppConfig, load_config
from src.adapters.anthropic import AnthropicAdapter
from src.adapters.base import AgentAdapter
from src.adapters.gemini import GeminiAdapter
from src.adapters.openai_adapter import OpenAIAdapter
from src.commands import (
    Command,
    CrossReferenceCommand,
    DiscussCommand,
    EmptyCommand,
    InterjectCommand,
    MutualReviewCommand,
    NextRoundCommand,
    QuitCommand,
    ResetCommand,
    SelectCommand,
    SendCommand,
    StatusCommand,
    SummaryCommand,
    parse_command,
)
from src.errors import ProtocolError
from src.healthcheck import publish_connectivity, run_health_checks
from src.models import AgentReady, ConnectivityChanged, CrossReferenceRequest, DiscussionState
from src.orchestrator import Orchestrator
from src.output import (
    print_capture,
    print_discussion_summary,
    print_review_summary,
    print_status,
    save_transcript,
)
from src.protocols.cross_reference import cross_reference
from src.protocols.discussion import Discussion
from src.protocols.mutual_review import MutualReview
from src.store import StateStore

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

ADAPTER_CLASSES: dict[str, type[AgentAdapter]] = {
    "anthropic": AnthropicAdapter,
    "openai": OpenAIAdapter,
    "gemini": GeminiAdapter,
}

_HELP = """[bold]Commands[/bold]
  text                       send to the selected agents (or to @mentioned ones)
  @a evaluate @b's answer    cross-reference: @a receives @b's latest reply
  /cross @a @b <- @c @d text send @c and @d's replies to @a and @b
  /mutual [prompt]           every selected agent reviews the others' replies
  /discuss @a @b topic       start a two-agent discussion
  /next  /summary  /interject text  /reset
  /targets @a @b             change the selection
  /status  /quit"""


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def _build_all_adapters(config: AppConfig) -> dict[str, AgentAdapter]:
    """Build sessions for all available agents. Returns dict keyed by agent id."""
    adapters: dict[str, AgentAdapter] = {}
    for name in sorted(config.available_agents):
        agent_cfg = config.agents[name]
        adapter_cls = ADAPTER_CLASSES.get(agent_cfg.sdk)
        if adapter_cls is None:
            logging.warning("Agent '%s' uses unknown sdk '%s', skipping", name, agent_cfg.sdk)
            continue
        try:
            adapters[name] = adapter_cls(agent_cfg)
        except Exception as exc:
            logging.warning("Failed to create session for '%s': %s", name, exc)
    return adapters


def _resolve_targets(
    config: AppConfig,
    agents_arg: str | None,
    saved_selection: list[str],
    available: set[str],
) -> list[str]:
    """Pick the initial target selection. --agents > saved selection > config default."""
    if agents_arg:
        wanted = [a.strip().lower() for a in agents_arg.split(",") if a.strip()]
    elif saved_selection:
        wanted = saved_selection
    else:
        wanted = config.defaults.default_targets
    return [a for a in dict.fromkeys(wanted) if a in available]


class PanelSession:
    """Executes parsed commands against one orchestrator and its protocols."""

    def __init__(
        self,
        config: AppConfig,
        orchestrator: Orchestrator,
        selection: list[str],
        output_dir: Path,
        store: StateStore | None = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._output_dir = output_dir
        self._store = store
        self.selection = list(selection)
        self.discussion = Discussion(
            orchestrator,
            config.prompts,
            on_round_complete=self._on_round_complete,
            on_complete=self._on_discussion_complete,
        )
        self.review = MutualReview(orchestrator, config.prompts, on_complete=print_review_summary)
        self.last_transcript: Path | None = None

    async def execute(self, command: Command) -> bool:
        """Run one command. Returns False when the session should end."""
        if isinstance(command, QuitCommand):
            return False
        try:
            await self._execute(command)
        except ProtocolError as exc:
            console.print(f"[red]{exc}[/red]")
        return True

    async def _execute(self, command: Command) -> None:
        if isinstance(command, EmptyCommand):
            return
        if isinstance(command, StatusCommand):
            print_status(
                self._orchestrator.agents,
                self.selection,
                self._orchestrator.capture.active_agents(),
                self.discussion.state,
            )
        elif isinstance(command, SelectCommand):
            self._select(list(command.targets))
        elif isinstance(command, SendCommand):
            targets = list(command.targets) or self.selection
            if not targets:
                logger.error("No targets selected")
                return
            await self._orchestrator.broadcast(targets, command.text)
        elif isinstance(command, CrossReferenceCommand):
            request = CrossReferenceRequest(
                targets=command.targets,
                sources=command.sources,
                message_template=command.text,
            )
            await cross_reference(self._orchestrator, request)
        elif isinstance(command, MutualReviewCommand):
            if len(self.selection) < 2:
                logger.error("Mutual review requires at least 2 AIs selected")
                return
            logger.info("Mutual review: %s", ", ".join(self.selection))
            await self.review.start(self.selection, self.selection, command.prompt)
        elif isinstance(command, DiscussCommand):
            participants = list(command.participants) or self.selection[:2]
            await self.discussion.start(command.topic, participants)
        elif isinstance(command, NextRoundCommand):
            await self.discussion.advance()
        elif isinstance(command, SummaryCommand):
            await self.discussion.summarize()
        elif isinstance(command, InterjectCommand):
            await self.discussion.interject(command.text)
        elif isinstance(command, ResetCommand):
            self.discussion.reset()
            self.review.reset()
        else:
            raise TypeError(f"Unhandled command: {command!r}")

    def _select(self, targets: list[str]) -> None:
        if not targets:
            logger.error("No targets given, selection unchanged")
            return
        self.selection = targets
        if self._store is not None:
            self._store.save_selection(targets)
        logger.info("Selected: %s", ", ".join(targets))

    def _on_round_complete(self, state: DiscussionState) -> None:
        console.print(
            f"[green]Round {state.current_round} complete[/green] — "
            "/next for cross-evaluation, /summary to wrap up"
        )

    def _on_discussion_complete(self, state: DiscussionState) -> None:
        print_discussion_summary(state)
        self.last_transcript = save_transcript(state, self._output_dir)
        console.print(f"\n[dim]Saved to: {self.last_transcript}[/dim]")


async def _connect_agents(
    orchestrator: Orchestrator,
    config: AppConfig,
    adapters: dict[str, AgentAdapter],
    skip_health_check: bool,
) -> bool:
    """Register adapters and report connectivity. Returns False to abort."""
    for name, adapter in adapters.items():
        orchestrator.register_adapter(name, adapter)
    for name in config.agent_ids:
        if name not in adapters:
            await orchestrator.handle(ConnectivityChanged(agent_id=name, connected=False))

    if skip_health_check:
        for name in adapters:
            await orchestrator.handle(AgentReady(agent_id=name))
        return True

    console.print("\n[bold]Checking agents...[/bold]")
    results = await run_health_checks(adapters)
    failed_names: list[str] = []
    for name in sorted(results):
        ok, err = results[name]
        if ok:
            console.print(f"  [green]OK  [/green] {name}")
        else:
            short_err = err.splitlines()[0][:120] if err else "unknown error"
            console.print(f"  [red]FAIL[/red] {name}: {short_err}")
            failed_names.append(name)
    await publish_connectivity(orchestrator, results)

    if not failed_names:
        return True
    if len(failed_names) == len(results):
        console.print("\n[bold red]Error:[/bold red] No agents passed the health check.")
        return False
    return await asyncio.to_thread(click.confirm, "Continue with working agents only?", default=True)


async def _run_panel(
    config: AppConfig,
    adapters: dict[str, AgentAdapter],
    selection: list[str],
    output_dir: Path,
    store: StateStore,
    skip_health_check: bool,
) -> None:
    orchestrator = Orchestrator(
        config.agent_ids,
        capture_settings=config.capture,
        dispatch_settings=config.dispatch,
        store=store,
    )
    orchestrator.add_capture_listener(print_capture)

    if not await _connect_agents(orchestrator, config, adapters, skip_health_check):
        orchestrator.close()
        sys.exit(1)

    session = PanelSession(config, orchestrator, selection, output_dir, store)
    console.print(f"\n[bold cyan]AI Panel[/bold cyan] — {len(adapters)} agents: {', '.join(adapters)}")
    console.print(f"Selected: {', '.join(selection) or 'none'}\n")
    console.print(_HELP)

    try:
        while True:
            line = await asyncio.to_thread(console.input, "\n[bold cyan]>[/bold cyan] ")
            if not await session.execute(parse_command(line, config.agent_ids)):
                break
    except (EOFError, KeyboardInterrupt):
        console.print()
    finally:
        orchestrator.close()


@click.command()
@click.option("--agents", "agents_arg", default=None, help="Comma-separated initial target selection")
@click.option("--output", "output_path", default=None, help="Transcript directory (default: from config)")
@click.option("--state-file", default=None, help="State file for cached replies (default: from config)")
@click.option("--verbose", is_flag=True, help="Enable DEBUG-level logging")
@click.option("--skip-health-check", is_flag=True, default=False,
              help="Skip the connectivity probe at startup")
def main(
    agents_arg: str | None,
    output_path: str | None,
    state_file: str | None,
    verbose: bool,
    skip_health_check: bool,
) -> None:
    """AI Panel -- talk to several AI chat sessions at once.

    \b
    Examples:
      python -m src.cli
      python -m src.cli --agents claude,gemini
      python -m src.cli --skip-health-check --verbose
    """
    if sys.platform == "win32":
        if hasattr(sys.stdout, "reconfigure"):
            sys.stdout.reconfigure(encoding="utf-8", errors="replace")
        if hasattr(sys.stderr, "reconfigure"):
            sys.stderr.reconfigure(encoding="utf-8", errors="replace")

    load_dotenv()
    _setup_logging(verbose)

    try:
        config = load_config()
    except FileNotFoundError as exc:
        console.print(f"[bold red]Config error:[/bold red] {exc}")
        sys.exit(1)

    adapters = _build_all_adapters(config)
    if not adapters:
        console.print("[bold red]Error:[/bold red] No agents available. Check API keys in .env.")
        sys.exit(1)

    store = StateStore(Path(state_file) if state_file else config.defaults.state_file)
    logger.debug("State file: %s", store.path)
    selection = _resolve_targets(config, agents_arg, store.load_selection(), set(adapters))
    effective_output = Path(output_path) if output_path else config.defaults.output_dir

    asyncio.run(
        _run_panel(
            config=config,
            adapters=adapters,
            selection=selection,
            output_dir=effective_output,
            store=store,
            skip_health_check=skip_health_check,
        )
    )


if __name__ == "__main__":
    main()
