"""CLI entrypoint for Verno."""

import logging
from pathlib import Path
from typing import Optional

import typer
from rich import print as rprint
from rich.console import Console
from rich.logging import RichHandler
from rich.markdown import Markdown
from rich.table import Table

from agents import AgentContext, build_default_registry
from llm_backend import LLMService, get_backend
from local_storage import FeedbackService, PlanStateStore
from orchestrator import Orchestrator, PipelineRunner, ProgressTracker, format_time
from pipeline import __version__
from pipeline.config import Config, get_config
from schemas.plan_state import CODING_PHASE_AGENTS
from schemas.progress import ProgressState, ProgressStatus

app = typer.Typer(
    name="verno",
    help="Multi-agent plan/code pipeline with local LLM support.",
    add_completion=False,
)
console = Console()

WorkspaceOption = typer.Option(
    None,
    "--workspace",
    "-w",
    help="Workspace directory (default: current directory)",
)
BackendOption = typer.Option(
    None,
    "--backend",
    "-b",
    help="LLM backend: auto, ollama, openai, anthropic, lmstudio, echo",
)


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
    )


def _workspace(workspace: Optional[Path]) -> Path:
    return (workspace or Path.cwd()).resolve()


def _build_llm(config: Config, backend: Optional[str]) -> LLMService:
    kind = backend or config.llm.backend
    try:
        provider = get_backend(kind, **config.llm.backend_kwargs())
    except (ValueError, ImportError, ConnectionError) as e:
        rprint(f"[red]Could not initialize LLM backend '{kind}': {e}[/red]")
        raise typer.Exit(1)
    return LLMService(
        provider,
        max_retries=config.llm.max_retries,
        retry_delay_ms=config.llm.retry_delay_ms,
    )


def _progress_printer(tracker: ProgressTracker):
    def show(state: ProgressState) -> None:
        if state.status != ProgressStatus.RUNNING or not state.completed_stages:
            return
        eta = tracker.estimated_time_remaining()
        suffix = f", ~{format_time(eta)} left" if eta else ""
        rprint(f"[dim]{state.completed_stages}/{state.total_stages} stages ({state.percentage}%){suffix}[/dim]")

    return show


def _build_runner(config: Config, backend: Optional[str]) -> PipelineRunner:
    _setup_logging(config.pipeline.log_level)
    llm = _build_llm(config, backend)
    registry = build_default_registry(
        llm,
        app_dir=config.pipeline.app_dir,
        max_context_chars=config.agents.max_context_chars,
        scan_max_files=config.agents.scan_max_files,
        scan_max_file_chars=config.agents.scan_max_file_chars,
        workspace_checks=config.agents.workspace_checks,
    )
    tracker = ProgressTracker()
    tracker.subscribe(_progress_printer(tracker))
    return PipelineRunner(
        registry,
        progress=tracker,
        app_dir=config.pipeline.app_dir,
        debug_dump=config.pipeline.debug_dump,
        default_stages=config.pipeline.default_stages,
        console=console,
    )


def _build_orchestrator(config: Config, backend: Optional[str]) -> Orchestrator:
    runner = _build_runner(config, backend)
    registry = runner.registry
    return Orchestrator(
        registry,
        runner=runner,
        planner=registry.get("planning"),
        review_retry=config.pipeline.review_retry,
        clear_state_on_complete=config.pipeline.clear_state_on_complete,
        app_dir=config.pipeline.app_dir,
    )


def _header(workspace: Path) -> None:
    rprint(f"[bold blue]Verno v{__version__}[/bold blue]")
    rprint(f"[green]Workspace:[/green] {workspace}")
    rprint()


@app.command()
def plan(
    request: str = typer.Argument(..., help="What to build"),
    workspace: Optional[Path] = WorkspaceOption,
    backend: Optional[str] = BackendOption,
) -> None:
    """Run the planning stages and save the plan for the code phase.

    Examples:
        verno plan "Build a todo app with local storage"
        verno plan "Add login" -w ./my-app -b ollama
    """
    config = get_config()
    root = _workspace(workspace)
    _header(root)

    orchestrator = _build_orchestrator(config, backend)
    context = AgentContext(str(root), {"userRequest": request, "mode": "plan"})
    try:
        summary = orchestrator.execute_plan(context)
    except KeyboardInterrupt:
        rprint("\n[yellow]Interrupted[/yellow]")
        raise typer.Exit(130)

    console.print(Markdown(summary))
    rprint()
    rprint("[dim]Run 'verno code' to execute the pending coding stages.[/dim]")


@app.command()
def code(
    request: Optional[str] = typer.Argument(
        None, help="Request (default: the request of the saved plan)"
    ),
    workspace: Optional[Path] = WorkspaceOption,
    backend: Optional[str] = BackendOption,
) -> None:
    """Run pending coding stages, or edit existing code when nothing is pending.

    Examples:
        verno code
        verno code "Add a dark mode toggle"
    """
    config = get_config()
    root = _workspace(workspace)

    if request is None:
        state = PlanStateStore(root, app_dir=config.pipeline.app_dir).load()
        if state is None:
            rprint("[red]No saved plan. Pass a request or run 'verno plan' first.[/red]")
            raise typer.Exit(1)
        request = state.user_request

    _header(root)
    orchestrator = _build_orchestrator(config, backend)
    context = AgentContext(str(root), {"userRequest": request, "mode": "code"})
    try:
        report = orchestrator.execute_code(context)
    except KeyboardInterrupt:
        rprint("\n[yellow]Interrupted[/yellow]")
        raise typer.Exit(130)

    console.print(Markdown(report))


@app.command()
def run(
    request: str = typer.Argument(..., help="What to build"),
    stages: Optional[str] = typer.Option(
        None,
        "--stages",
        "-s",
        help="Comma-separated stage ids (default: configured default stages)",
    ),
    workspace: Optional[Path] = WorkspaceOption,
    backend: Optional[str] = BackendOption,
) -> None:
    """Run an explicit list of stages in order, without plan state.

    Examples:
        verno run "Todo app" --stages brainstorm,model,decide,act
        verno run "Todo app" -s analyst,architect,developer
    """
    config = get_config()
    root = _workspace(workspace)
    _header(root)

    stage_ids = [s.strip() for s in stages.split(",") if s.strip()] if stages else None
    runner = _build_runner(config, backend)
    context = AgentContext(str(root), {"userRequest": request})
    try:
        outputs = runner.run_pipeline(context, stage_ids)
    except KeyboardInterrupt:
        rprint("\n[yellow]Interrupted[/yellow]")
        raise typer.Exit(130)

    table = Table(title="Stage Results")
    table.add_column("Stage", style="cyan")
    table.add_column("Result", style="white")
    table.add_column("Chars", style="green", justify="right")
    for stage, output in outputs.items():
        failed = output.startswith("Error: ") or output == f"Agent {stage} missing"
        result = f"[red]{output[:60]}[/red]" if failed else "[green]ok[/green]"
        table.add_row(stage, result, str(len(output)))
    console.print(table)


@app.command()
def status(workspace: Optional[Path] = WorkspaceOption) -> None:
    """Show the saved plan and which stages are done."""
    config = get_config()
    store = PlanStateStore(_workspace(workspace), app_dir=config.pipeline.app_dir)
    state = store.load()

    if state is None:
        rprint("[dim]No saved plan.[/dim]")
        return

    rprint(f"[green]Request:[/green] {state.user_request}")
    rprint(f"[dim]Updated: {state.updated_at:%Y-%m-%d %H:%M:%S}[/dim]")

    table = Table(title="Plan")
    table.add_column("#", style="dim", justify="right")
    table.add_column("Agent", style="cyan")
    table.add_column("Phase", style="white")
    table.add_column("Status", style="green")
    table.add_column("Task", style="white")

    for i, step in enumerate(state.plan.steps, 1):
        done = step.agent_id in state.completed_steps
        phase = "code" if step.agent_id in CODING_PHASE_AGENTS else "plan"
        table.add_row(
            str(i),
            step.agent_id,
            phase,
            "[green]done[/green]" if done else "[yellow]pending[/yellow]",
            (step.description or "")[:50],
        )
    console.print(table)

    backups = store.list_backups()
    if backups:
        rprint(f"[dim]{len(backups)} backup(s) in {store.history_dir}[/dim]")


@app.command()
def feedback(
    critical: bool = typer.Option(
        False,
        "--critical",
        help="Only show critical and high severity issues",
    ),
    workspace: Optional[Path] = WorkspaceOption,
) -> None:
    """Show the latest feedback of every agent."""
    config = get_config()
    service = FeedbackService(_workspace(workspace), app_dir=config.pipeline.app_dir)

    if not service.list_agents():
        rprint("[dim]No feedback recorded.[/dim]")
        return

    if not critical:
        console.print(Markdown(service.get_feedback_summary()))
        return

    issues = service.get_critical_issues()
    if not issues:
        rprint("[green]No critical or high severity issues.[/green]")
        return

    table = Table(title="Critical Issues")
    table.add_column("Severity", style="red")
    table.add_column("Description", style="white")
    table.add_column("Context", style="dim")
    for issue in issues:
        table.add_row(f"{issue.severity.icon} {issue.severity.value}", issue.description, issue.context)
    console.print(table)


@app.command()
def reset(
    workspace: Optional[Path] = WorkspaceOption,
    include_feedback: bool = typer.Option(
        False,
        "--feedback",
        help="Also delete all feedback records",
    ),
) -> None:
    """Back up and delete the saved plan."""
    config = get_config()
    root = _workspace(workspace)
    store = PlanStateStore(root, app_dir=config.pipeline.app_dir)

    if store.exists():
        store.clear()
        rprint("[green]Plan state cleared (backup kept).[/green]")
    else:
        rprint("[dim]No saved plan.[/dim]")

    if include_feedback:
        FeedbackService(root, app_dir=config.pipeline.app_dir).clear_all_feedback()
        rprint("[green]Feedback cleared.[/green]")


@app.command()
def version() -> None:
    """Show version information."""
    config = get_config()

    rprint(f"[bold blue]Verno[/bold blue] v{__version__}")
    rprint()
    rprint(f"[dim]LLM Backend:[/dim] {config.llm.backend}")
    rprint(f"[dim]Model:[/dim] {config.llm.model or 'backend default'}")
    rprint(f"[dim]App directory:[/dim] {config.pipeline.app_dir}")


if __name__ == "__main__":
    app()
