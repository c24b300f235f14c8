import asyncio
import functools
import importlib.metadata
import logging
import sys
from contextlib import asynccontextmanager

import structlog
import typer
from rich.console import Console
from rich.table import Table
from rich.traceback import Traceback

from .browser.agent.agent_session import AgentSession
from .browser.agent.models import LocateResult, StrategyProbe
from .browser.providers.browser_manager import BrowserManager
from .config import get_config
from .state import APP_STATE

app = typer.Typer(
    name="pje",
    help="Locate and activate 'Adicionar Órgão Julgador' on the PJe form.",
    no_args_is_help=True,
)
console = Console()
logger = structlog.get_logger(__name__)


def version_callback(value: bool):
    """Prints the application version and exits."""
    if value:
        try:
            version = importlib.metadata.version("pje-automation")
            console.print(f"pje version: {version}")
        except importlib.metadata.PackageNotFoundError:
            console.print("pje version: unknown (package not installed)")
        raise typer.Exit()


def setup_logging(verbose: bool):
    """Routes structlog and stdlib logging to stderr; -v switches to DEBUG."""
    log_level = logging.DEBUG if verbose else logging.INFO
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.format_exc_info,
    ]
    structlog.configure(
        processors=shared_processors
        + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processor=structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
    )
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)


def handle_exceptions(func):
    """A decorator to catch and format exceptions for all CLI commands."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        error_console = Console(stderr=True)
        try:
            return func(*args, **kwargs)
        except typer.Exit:
            raise
        except Exception as e:
            error_console.print(f"[bold red]Error:[/bold red] {e}")
            if APP_STATE.verbose_mode:
                error_console.print(
                    Traceback.from_exception(type(e), e, e.__traceback__, show_locals=True)
                )
            raise typer.Exit(code=1)

    return wrapper


@asynccontextmanager
async def browser_session(url: str):
    """Launches the configured local browser, opens `url` and yields a ready AgentSession."""
    config = get_config()
    logger.info("Opening PJe page.", url=url)
    provider = BrowserManager.get_provider("local")
    try:
        _browser, page = await provider.get_browser(
            browser_type=config.browser.browser_type,
            headless=config.browser.headless,
            default_timeout_ms=config.browser.default_timeout_ms,
        )
        session = AgentSession(screenshots_dir=config.resolved_screenshots_dir())
        await session.initialize(page, config.browser.default_timeout_ms)
        await session.open(url)
        yield session
    finally:
        await provider.close()


async def run_locate(url: str, click: bool) -> LocateResult:
    async with browser_session(url) as session:
        if click:
            return await session.add_organ()
        return await session.find_add_organ_button()


async def run_probe(url: str) -> list[StrategyProbe]:
    async with browser_session(url) as session:
        return await session.probe()


@app.callback()
def main(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable verbose DEBUG logging."
    ),
    version: bool = typer.Option(
        None,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show the version and exit.",
    ),
):
    APP_STATE.verbose_mode = verbose
    setup_logging(verbose)


@app.command()
@handle_exceptions
def locate(
    url: str = typer.Argument(..., help="URL of the PJe form page."),
    click: bool = typer.Option(
        False, "--click", help="Click the button and wait for the add form to open."
    ),
):
    """Find the 'Adicionar Órgão Julgador' button (and optionally click it)."""
    result = asyncio.run(run_locate(url, click))
    action = "Clicked" if click else "Found"
    console.print(
        f"[bold green]✓ {action}[/bold green] via strategy "
        f"[cyan]{result.strategy.name}[/cyan] on attempt {result.attempt_number} "
        f"(panel: {result.panel_outcome.value}, overlays: {result.overlay_outcome.value})"
    )


@app.command()
@handle_exceptions
def probe(url: str = typer.Argument(..., help="URL of the PJe form page.")):
    """Show what every location strategy currently matches, without clicking."""
    report = asyncio.run(run_probe(url))

    table = Table(title="Location strategies")
    table.add_column("#", justify="right")
    table.add_column("Strategy", style="cyan")
    table.add_column("Kind")
    table.add_column("Matches", justify="right")
    table.add_column("Visible")
    table.add_column("Selector", overflow="fold")
    for index, item in enumerate(report, start=1):
        visible = "[green]yes[/green]" if item.visible else "[red]no[/red]"
        if item.error:
            visible = f"[yellow]error[/yellow] {item.error}"
        table.add_row(
            str(index), item.name, item.kind.value, str(item.count), visible, item.selector
        )
    console.print(table)


if __name__ == "__main__":
    app()
