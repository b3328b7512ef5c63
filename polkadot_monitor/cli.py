"""Thin CLI wrapper for polkadot_monitor.

This module provides the command-line interface using Typer.
All business logic is delegated to core modules.
"""

import json
import logging
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from sqlalchemy.exc import SQLAlchemyError

from polkadot_monitor import __version__
from polkadot_monitor.accounts.io import ConfigError, load_accounts, load_monitor_config
from polkadot_monitor.accounts.schema import MonitorConfigSchema, ReportJobSchema
from polkadot_monitor.chain.api import ChainApi, ChainApiError
from polkadot_monitor.config import Settings, get_settings, print_settings_json
from polkadot_monitor.deploy.harness import (
    DEFAULT_READY_TIMEOUT,
    DEPLOY_SCRIPT,
    POD_NAME,
    RELEASE_NAME,
    HarnessError,
    run_integration_tests,
)
from polkadot_monitor.publishing import PublishError, publisher_from_config
from polkadot_monitor.reporting import ReportError, ReportService
from polkadot_monitor.scraping import DuplicateModuleError, ScrapingService
from polkadot_monitor.storage import StorageError
from polkadot_monitor.types import Context, Module, Occurrence

app = typer.Typer(
    name="polkadot-monitor",
    help="Polkadot Account Monitor - scrape Subscan data and publish reports",
    no_args_is_help=True,
)
console = Console()

logger = logging.getLogger(__name__)

DOMAIN_ERRORS = (
    ChainApiError,
    ConfigError,
    DuplicateModuleError,
    HarnessError,
    PublishError,
    ReportError,
    SQLAlchemyError,
    StorageError,
)


def configure_logging(level: str) -> None:
    """Send log records of all modules through rich."""
    logging.basicConfig(
        level=level,
        format="%(name)s: %(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
        force=True,
    )
    # Request lines of httpx are too chatty at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"polkadot-monitor version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """Polkadot Account Monitor - scrape Subscan data and publish reports."""


def _fail(message: str) -> typer.Exit:
    console.print(f"[red]{escape(message)}[/red]")
    return typer.Exit(code=1)


def _load_settings() -> Settings:
    settings = get_settings()
    configure_logging(settings.log_level)
    return settings


def _load_files(settings: Settings) -> tuple[list[Context], MonitorConfigSchema]:
    try:
        accounts = load_accounts(settings.accounts_file)
        monitor_config = load_monitor_config(settings.config_file)
    except ConfigError as e:
        raise _fail(f"Configuration error: {e}") from None

    contexts = accounts.contexts()
    if not contexts:
        console.print(f"[yellow]No accounts in {settings.accounts_file}[/yellow]")
    return contexts, monitor_config


def _session_factory(settings: Settings) -> Any:
    from polkadot_monitor.db import create_all_tables, get_engine, get_session_factory

    try:
        engine = get_engine(settings.db_url)
        create_all_tables(engine)
    except SQLAlchemyError as e:
        raise _fail(f"Database error: {e}") from None
    return get_session_factory(engine)


def _chain_api(settings: Settings) -> ChainApi:
    api_key = (
        settings.subscan_api_key.get_secret_value()
        if settings.subscan_api_key is not None
        else None
    )
    return ChainApi(
        api_key=api_key,
        timeout=settings.request_timeout,
        request_interval=settings.request_interval,
    )


def _scraping_service(
    settings: Settings, session_factory: Any, contexts: list[Context]
) -> ScrapingService:
    service = ScrapingService(session_factory, _chain_api(settings), settings)
    service.add_contexts(contexts)
    return service


def _report_service(
    settings: Settings,
    session_factory: Any,
    contexts: list[Context],
    monitor_config: MonitorConfigSchema,
) -> ReportService:
    if monitor_config.reporting is None:
        raise _fail(f"No reporting section in {settings.config_file}")

    try:
        publisher, info = publisher_from_config(
            monitor_config.reporting.publisher,
            upload_interval=settings.publisher_interval,
        )
    except PublishError as e:
        raise _fail(f"Publisher error: {e}") from None

    service = ReportService(session_factory, publisher, info, settings)
    service.add_contexts(contexts)
    return service


@app.command()
def config(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Show effective configuration."""
    settings = get_settings()
    if json_output:
        console.print(print_settings_json(settings))
    else:
        api_key = "(set)" if settings.subscan_api_key is not None else "(not set)"
        console.print("[bold]Effective Configuration:[/bold]")
        console.print()
        console.print("[bold]Files:[/bold]")
        console.print(f"  Database URL:        {settings.db_url}")
        console.print(f"  Config file:         {settings.config_file}")
        console.print(f"  Accounts file:       {settings.accounts_file}")
        console.print()
        console.print("[bold]Chain API:[/bold]")
        console.print(f"  Subscan API key:     {api_key}")
        console.print(f"  Request timeout:     {settings.request_timeout}")
        console.print(f"  Request interval:    {settings.request_interval}")
        console.print()
        console.print("[bold]Loop (seconds):[/bold]")
        console.print(f"  Rows per page:       {settings.row_amount}")
        console.print(f"  Loop interval:       {settings.loop_interval}")
        console.print(f"  Failed task sleep:   {settings.failed_task_sleep}")
        console.print(f"  Publisher interval:  {settings.publisher_interval}")
        console.print()
        console.print("[bold]Status API:[/bold]")
        console.print(f"  Host:                {settings.http_host}")
        console.print(f"  Port:                {settings.http_port}")
        console.print(f"  Log level:           {settings.log_level}")


accounts_app = typer.Typer(help="Inspect monitored accounts")
app.add_typer(accounts_app, name="accounts")


@accounts_app.command("list")
def accounts_list(
    path: Annotated[
        Path | None,
        typer.Option("--file", "-f", help="Accounts file (default from settings)"),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """List monitored accounts."""
    if path is None:
        path = get_settings().accounts_file

    try:
        accounts = load_accounts(path)
    except ConfigError as e:
        raise _fail(str(e)) from None

    if json_output:
        output = [a.model_dump(mode="json") for a in accounts.accounts]
        console.print(json.dumps(output, indent=2))
        return

    if not accounts.accounts:
        console.print("[yellow]No accounts found[/yellow]")
        return

    console.print(f"[bold]Found {len(accounts.accounts)} account(s):[/bold]")
    console.print()
    for account in accounts.accounts:
        console.print(f"  [green]{account.stash}[/green]")
        console.print(f"    Network: {account.network.as_str()}")
        if account.description:
            console.print(f"    Description: {account.description}")


@accounts_app.command("validate")
def accounts_validate(
    path: Annotated[Path, typer.Argument(help="Accounts file to validate")],
    config_path: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Also validate this config.yml"),
    ] = None,
) -> None:
    """Validate an accounts file (and optionally a config file)."""
    try:
        accounts = load_accounts(path)
    except ConfigError as e:
        console.print("[red]Validation failed:[/red]")
        console.print(str(e))
        raise typer.Exit(code=1) from None

    count = len(accounts.accounts)
    console.print(f"[green]✓ Valid accounts file: {count} account(s)[/green]")

    if config_path is not None:
        try:
            monitor_config = load_monitor_config(config_path)
        except ConfigError as e:
            console.print("[red]Validation failed:[/red]")
            console.print(str(e))
            raise typer.Exit(code=1) from None

        scraping = monitor_config.scraping.modules if monitor_config.scraping else []
        reporting = monitor_config.reporting.modules if monitor_config.reporting else []
        console.print("[green]✓ Valid config file[/green]")
        console.print(f"  Scraping: {', '.join(m.value for m in scraping) or '(off)'}")
        console.print(
            "  Reporting: "
            + (
                ", ".join(f"{j.module.value}/{j.occurrence.value}" for j in reporting)
                or "(off)"
            )
        )


@app.command()
def scrape(
    modules: Annotated[
        list[Module] | None,
        typer.Option("--module", "-m", help="Module to scrape (can be repeated)"),
    ] = None,
    once: Annotated[
        bool,
        typer.Option("--once", help="Run a single pass and exit"),
    ] = False,
) -> None:
    """Scrape Subscan data for all monitored accounts.

    Without --module, the modules of the scraping section in config.yml run.
    """
    settings = _load_settings()
    contexts, monitor_config = _load_files(settings)

    if not modules:
        modules = monitor_config.scraping.modules if monitor_config.scraping else []
    if not modules:
        raise _fail("No scraping modules configured")

    service = _scraping_service(settings, _session_factory(settings), contexts)
    try:
        if once:
            for module in modules:
                fetcher = service.fetcher_for(module)
                total = service.run_pass(fetcher)
                console.print(f"[green]{fetcher.name}: {total} new entries[/green]")
            return

        for module in modules:
            service.run(module)
        console.print("[blue]Scraping started, press Ctrl+C to stop[/blue]")
        service.wait_blocking()
    except DOMAIN_ERRORS as e:
        raise _fail(f"Error: {e}") from None
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    finally:
        service.stop()


@app.command()
def report(
    module: Annotated[
        Module | None,
        typer.Option("--module", "-m", help="Report module"),
    ] = None,
    occurrence: Annotated[
        Occurrence,
        typer.Option("--occurrence", "-o", help="Report cadence (with --module)"),
    ] = Occurrence.DAILY,
    once: Annotated[
        bool,
        typer.Option("--once", help="Run each due job once and exit"),
    ] = False,
) -> None:
    """Generate and publish reports.

    Without --module, the jobs of the reporting section in config.yml run.
    The publisher always comes from config.yml.
    """
    settings = _load_settings()
    contexts, monitor_config = _load_files(settings)

    service = _report_service(
        settings, _session_factory(settings), contexts, monitor_config
    )

    if module is not None:
        jobs = [ReportJobSchema(module=module, occurrence=occurrence)]
    else:
        reporting = monitor_config.reporting
        jobs = list(reporting.modules) if reporting is not None else []
    if not jobs:
        raise _fail("No report jobs configured")

    try:
        if once:
            for job in jobs:
                generator = service.generator_for(job.module)
                published = service.run_job_once(generator, job)
                console.print(
                    f"[green]{generator.name} ({job.occurrence.value}): "
                    f"{published} report(s) published[/green]"
                )
            return

        for job in jobs:
            service.run(job)
        console.print("[blue]Reporting started, press Ctrl+C to stop[/blue]")
        service.wait_blocking()
    except DOMAIN_ERRORS as e:
        raise _fail(f"Error: {e}") from None
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    finally:
        service.stop()


@app.command()
def run(
    no_http: Annotated[
        bool,
        typer.Option("--no-http", help="Do not serve the status API"),
    ] = False,
) -> None:
    """Run the monitor: scraping, reporting and the status API."""
    settings = _load_settings()
    contexts, monitor_config = _load_files(settings)

    scraping_modules = monitor_config.scraping.modules if monitor_config.scraping else []
    report_jobs = monitor_config.reporting.modules if monitor_config.reporting else []

    # /ready requires every served service to have started a worker
    if not scraping_modules and not report_jobs:
        raise _fail(
            f"Neither scraping nor reporting is configured in {settings.config_file}"
        )

    logger.info("Starting polkadot-monitor %s", __version__)
    session_factory = _session_factory(settings)
    services: list[Any] = []

    try:
        if scraping_modules:
            scraping = _scraping_service(settings, session_factory, contexts)
            services.append(scraping)
            for module in scraping_modules:
                scraping.run(module)

        if report_jobs:
            reporting = _report_service(
                settings, session_factory, contexts, monitor_config
            )
            services.append(reporting)
            for job in report_jobs:
                reporting.run(job)

        if no_http:
            services[0].wait_blocking()
        else:
            import uvicorn

            from web.app import create_app

            uvicorn.run(
                create_app(session_factory=session_factory, services=services),
                host=settings.http_host,
                port=settings.http_port,
                log_config=None,
            )
    except DOMAIN_ERRORS as e:
        raise _fail(f"Error: {e}") from None
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    finally:
        for service in services:
            service.stop()


@app.command("integration-test")
def integration_test(
    script: Annotated[
        Path,
        typer.Option("--script", help="Deployment script"),
    ] = DEPLOY_SCRIPT,
    release: Annotated[
        str,
        typer.Option("--release", help="Helm release deleted on teardown"),
    ] = RELEASE_NAME,
    pod: Annotated[
        str,
        typer.Option("--pod", help="Pod waited on for readiness"),
    ] = POD_NAME,
    timeout: Annotated[
        int,
        typer.Option("--timeout", help="Readiness timeout in seconds"),
    ] = DEFAULT_READY_TIMEOUT,
) -> None:
    """Deploy the monitor, wait for its pod and tear it down.

    Set KEEP_POLKADOT_MONITOR to keep the deployment afterwards.
    """
    _load_settings()
    try:
        run_integration_tests(
            script=script, release=release, pod_name=pod, timeout=timeout
        )
    except HarnessError as e:
        console.print(f"[red]Integration tests failed: {escape(str(e))}[/red]")
        exit_code = e.exit_code if e.exit_code and e.exit_code > 0 else 1
        raise typer.Exit(code=exit_code) from None

    console.print("[green]✓ Integration tests passed[/green]")


if __name__ == "__main__":
    app()
