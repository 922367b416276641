"""
flowstate CLI entry point.

A headless page host: each command plays one page event against the
flow's webhook and prints what the page would do.

Commands:
- flowstate open: Load a page (landing pages initialize and redirect)
- flowstate submit: Submit a form on a page
- flowstate action: Invoke an action button on a page
- flowstate archive: List archive entries, optionally open one
- flowstate state: Show the stored session
- flowstate reset: Clear the stored session
- flowstate route: Resolve a route to a flow entry page
- flowstate validate: Validate a flow config document
"""

import asyncio
import functools
import logging
import sys
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

import click
from rich.text import Text

from flowstate import __version__
from flowstate.cli_ui import (
    confirm,
    console,
    fail,
    is_interactive,
    listing,
    navigate,
    notice,
    ok,
    session_panel,
    status,
    summary_panel,
    waiting,
)
from flowstate.core.gate import GateState
from flowstate.driver.page import RecordingHost


class ColoredFormatter(logging.Formatter):
    """Custom formatter to add colors to logs."""

    grey = "\x1b[38;20m"
    blue = "\x1b[34;20m"
    yellow = "\x1b[33;20m"
    red = "\x1b[31;20m"
    bold_red = "\x1b[31;1m"
    reset = "\x1b[0m"
    format_str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    FORMATS = {
        logging.DEBUG: grey + format_str + reset,
        logging.INFO: blue + format_str + reset,
        logging.WARNING: yellow + format_str + reset,
        logging.ERROR: red + format_str + reset,
        logging.CRITICAL: bold_red + format_str + reset,
    }

    def format(self, record):
        log_fmt = self.FORMATS.get(record.levelno)
        formatter = logging.Formatter(log_fmt, datefmt="%Y-%m-%d %H:%M:%S")
        return formatter.format(record)


def setup_logging(debug: bool = False, level: str = "WARNING") -> None:
    """Configure logging. Logs go to stderr so command output stays clean."""
    handler = logging.StreamHandler(sys.stderr)
    if sys.stderr.isatty():
        handler.setFormatter(ColoredFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
    logging.basicConfig(
        level=logging.DEBUG if debug else getattr(logging, level, logging.WARNING),
        handlers=[handler],
    )


def parse_pairs(pairs: Tuple[str, ...], option: str) -> Dict[str, str]:
    """Parse repeated key=value options."""
    result: Dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected key=value, got '{pair}'", param_hint=option)
        result[key] = value
    return result


def settings_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Add the --settings and --debug options shared by page commands."""

    @click.option(
        "--settings",
        "-s",
        "settings_path",
        type=click.Path(exists=True, path_type=Path),
        default=None,
        help="Path to flowstate.yaml",
    )
    @click.option(
        "--debug/--no-debug",
        default=False,
        help="Enable debug logging",
    )
    @functools.wraps(func)
    def wrapper(*args: Any, settings_path: Optional[Path], debug: bool, **kwargs: Any) -> Any:
        from flowstate.config.settings import FlowStateSettings

        settings = FlowStateSettings(_config_path=str(settings_path) if settings_path else None)
        if debug:
            settings.debug = True
        setup_logging(settings.debug, settings.log_level)
        return func(*args, settings=settings, **kwargs)

    return wrapper


def _build_driver(settings, url: str, landing: Optional[bool] = None):
    from flowstate.driver.engine import FlowDriver
    from flowstate.driver.page import PageContext

    page = PageContext.from_url(url, landing=landing, landing_page=settings.flow.landing_page)
    driver = FlowDriver.from_settings(settings, page, host=ConsoleHost())

    def show_status(state: GateState, message: str) -> None:
        if state == GateState.BUSY:
            status(message)

    driver.gate.add_listener(show_status)
    return driver


def _run_page(
    settings,
    url: str,
    step: Callable[[Any], Awaitable[Any]],
    landing: Optional[bool] = None,
    load: bool = True,
) -> Any:
    """Load the page (unless load=False), then run step(driver); exits 1 on failure."""
    from flowstate.driver.engine import OutcomeStatus

    async def run() -> Any:
        driver = _build_driver(settings, url, landing=landing)
        try:
            if load:
                outcome = await driver.load_page()
                if outcome.status == OutcomeStatus.FAILED or driver.page.is_landing:
                    return outcome
            return await step(driver)
        finally:
            await driver.aclose()

    outcome = asyncio.run(run())
    if outcome is not None and outcome.status == OutcomeStatus.FAILED:
        raise SystemExit(1)
    return outcome


class ConsoleHost(RecordingHost):
    """A RecordingHost that also prints redirects and errors."""

    def redirect(self, destination: str) -> None:
        super().redirect(destination)
        navigate(destination)

    def show_error(self, message: str) -> None:
        super().show_error(message)
        if message:
            fail(message)


@click.group()
@click.version_option(version=__version__, prog_name="flowstate")
def main() -> None:
    """flowstate - Flow state engine for webhook-driven form wizards.

    Plays page loads, form submissions and actions against a flow's
    webhook, keeping the session record between commands.
    """
    pass


@main.command(name="open")
@click.argument("url")
@click.option(
    "--landing/--no-landing",
    default=None,
    help="Treat the page as the landing page (default: by file name)",
)
@settings_options
def open_page(url: str, landing: Optional[bool], settings) -> None:
    """Load a page.

    The landing page always initializes and redirects. Other pages
    initialize once per session and report ready.

    Example:
        flowstate open "reading-form.html?casting_id=42"
    """

    async def ready(driver):
        ok(f"{driver.page.page} ready")
        return None

    _run_page(settings, url, ready, landing=landing)


@main.command()
@click.argument("url")
@click.option("--field", "-f", "fields", multiple=True, help="Form field as key=value (repeatable)")
@click.option("--vars", "submitter_vars", default=None, help="Submitter request variables (JSON object)")
@click.option("--form-vars", default=None, help="Form request variables (JSON object)")
@click.option("--fallback", default=None, help="Submitter next-step fallback")
@click.option("--form-fallback", default=None, help="Form next-step fallback")
@click.option("--message", default=None, help="Waiting message while the request is in flight")
@settings_options
def submit(
    url: str,
    fields: Tuple[str, ...],
    submitter_vars: Optional[str],
    form_vars: Optional[str],
    fallback: Optional[str],
    form_fallback: Optional[str],
    message: Optional[str],
    settings,
) -> None:
    """Submit a form on a page.

    Example:
        flowstate submit step2.html -f name=Lee -f mood=calm --fallback summary.html
    """
    from flowstate.driver.page import FormSubmission, Trigger

    submission = FormSubmission(
        fields=parse_pairs(fields, "--field"),
        form=Trigger(
            request_variables=form_vars,
            next_step_fallback=form_fallback,
        ),
        submitter=Trigger(
            request_variables=submitter_vars,
            next_step_fallback=fallback,
            waiting_message=message,
        ),
    )

    async def step(driver):
        return await driver.submit_form(submission)

    _run_page(settings, url, step, landing=False)


@main.command()
@click.argument("url")
@click.option("--vars", "action_vars", default=None, help="Action request variables (JSON object)")
@click.option("--fallback", default=None, help="Next-step fallback")
@click.option("--message", default=None, help="Waiting message while the request is in flight")
@settings_options
def action(
    url: str,
    action_vars: Optional[str],
    fallback: Optional[str],
    message: Optional[str],
    settings,
) -> None:
    """Invoke an action button on a page.

    Example:
        flowstate action summary.html --vars '{"step": "save"}'
    """
    from flowstate.driver.page import Trigger

    trigger = Trigger(
        request_variables=action_vars,
        next_step_fallback=fallback,
        waiting_message=message,
    )

    async def step(driver):
        return await driver.invoke_action(trigger)

    _run_page(settings, url, step, landing=False)


@main.command()
@click.option("--select", "select_id", default=None, help="Open the entry with this id")
@click.option("--page", default="archive.html", help="Archive page file name")
@settings_options
def archive(select_id: Optional[str], page: str, settings) -> None:
    """List archive entries, or open one with --select.

    Example:
        flowstate archive
        flowstate archive --select 2024-05-01-reading
    """
    from flowstate.driver.archive import ArchiveBrowser
    from flowstate.driver.engine import ActionOutcome, OutcomeStatus

    async def step(driver):
        browser = ArchiveBrowser(
            driver,
            flow_name=settings.archive.flow_name,
            summary_page=settings.archive.summary_page,
        )
        outcome = await browser.load_titles()
        if not outcome.ok:
            return outcome

        titles = outcome.data
        if select_id is None:
            rows = [[t.title, t.id, t.subtitle or ""] for t in titles]
            listing("Archive", ["Title", "Id", "Subtitle"], rows)
            return outcome

        match = next((t for t in titles if t.id == select_id), None)
        if match is None:
            fail(f"No archive entry with id '{select_id}'")
            return ActionOutcome(OutcomeStatus.FAILED)
        return await browser.select(match)

    _run_page(settings, page, step, landing=False, load=False)


@main.command()
@settings_options
def state(settings) -> None:
    """Show the stored session record."""
    from flowstate.core.store import Corrupt, SessionStore

    store = SessionStore.from_settings(settings)
    result = store.load()
    if isinstance(result, Corrupt):
        fail(f"Stored session is corrupt: {result.reason}", hint="Run: flowstate reset")
        raise SystemExit(1)

    session = result.state
    if not session.variables and not session.form and not session.initialized:
        notice(f"No session stored under '{store.key}'")
        return

    session_panel(store.key, session.to_dict())


@main.command()
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@settings_options
def reset(yes: bool, settings) -> None:
    """Clear the stored session; the next page starts from scratch."""
    from flowstate.core.store import SessionStore

    if not yes and is_interactive():
        if not confirm("Clear the stored session?", default=False):
            status("Nothing changed.")
            return

    SessionStore.from_settings(settings).clear()
    ok("Session cleared")


@main.command()
@click.argument("path")
@click.option("--config-path", default=None, help="Explicit flow config path (skips routes.json)")
@click.option("--root", default=None, help="Directory or URL the route table and configs are relative to")
@settings_options
def route(path: str, config_path: Optional[str], root: Optional[str], settings) -> None:
    """Resolve a route to its flow entry page.

    Example:
        flowstate route /i-ching-journal --root ./site
    """
    from flowstate.core.errors import FlowError
    from flowstate.flow.parser import is_url
    from flowstate.routing import RouteResolver

    base = root or settings.flow.base_url
    remote = bool(base) and is_url(base)
    resolver = RouteResolver(
        root=None if remote else base,
        base_url=base if remote else None,
        routes_path=settings.flow.routes_path,
    )

    try:
        with waiting(f"Resolving {path}..."):
            flow_path = asyncio.run(resolver.resolve(path, config_path=config_path))
    except FlowError as e:
        fail(str(e))
        raise SystemExit(1)

    if flow_path is None:
        status(f"No route for '{path}'")
        return
    navigate(flow_path)


@main.command()
@click.argument(
    "config_path",
    type=click.Path(exists=True, path_type=Path),
)
def validate(config_path: Path) -> None:
    """Validate a flow config document.

    Example:
        flowstate validate "flows/I Ching Journal/config.json"
    """
    from flowstate.flow.parser import FlowConfigParser

    valid, message = FlowConfigParser.validate_file(config_path)
    if not valid:
        fail(f"Validation error: {message}")
        raise SystemExit(1)

    config = FlowConfigParser.parse_file(config_path)

    summary_panel(
        "✓ Valid Flow Config",
        {
            "Route": config.route or "-",
            "Webhook": config.webhook_url,
            "Start page": config.initialization.start_page or "-",
            "Steps": str(len(config.steps_by_page)),
        },
    )

    if config.steps_by_page:
        rows = []
        for page, step in config.steps_by_page.items():
            declared = step.request_variables
            if isinstance(declared, dict):
                declared = ", ".join(sorted(declared)) or "-"
            rows.append([page, declared or "-", step.next_step_fallback or "-"])
        listing("Steps", ["Page", "Variables", "Fallback"], rows)


@main.command()
def version() -> None:
    """Show version information."""
    console.print(
        Text.assemble(
            ("flowstate", "bold"),
            (f" v{__version__}", "dim"),
        )
    )


if __name__ == "__main__":
    main()
