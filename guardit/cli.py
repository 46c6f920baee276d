"""
GuardIT CLI - administration for the backup status monitor.

Usage:
    guardit --help                          Show all commands
    guardit serve                           Start the API server
    guardit init-db                         Create missing tables
    guardit register-server SRV-01          Register a server
    guardit register-task backup-db-01 "Nightly DB" --server SRV-01
    guardit deactivate-task backup-db-01    Reject further reports
    guardit add-keyword "disk full" critical 5
    guardit seed-keywords                   Load keyword rules from config.yml
    guardit list-tasks                      Show registered tasks
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import typer

app = typer.Typer(
    name="guardit",
    help="GuardIT CLI - backup status monitor administration",
    no_args_is_help=True,
)


# --- Printer helpers ---


def _print_success(message: str) -> None:
    typer.echo(f"  ✅ {message}")


def _print_warning(message: str) -> None:
    typer.echo(f"  ⚠️ {message}")


def _print_error(message: str) -> None:
    """Print an error message to stderr."""
    typer.echo(f"❌ {message}", err=True)


@asynccontextmanager
async def _session_factory() -> AsyncIterator:
    """Engine and session factory for one command, disposed on exit."""
    from guardit.config import get_settings
    from guardit.core.database import build_engine, build_session_factory
    from guardit.core.logging import setup_logging

    settings = get_settings()
    setup_logging(settings)
    engine = build_engine(settings)
    try:
        yield build_session_factory(engine)
    finally:
        await engine.dispose()


@app.command()
def serve(
    reload: bool = typer.Option(False, "--reload", "-r", help="Enable hot reload"),
    host: str | None = typer.Option(None, "--host", help="Interface to bind (default from settings)"),
    port: int | None = typer.Option(None, "--port", "-p", help="Port to run on"),
):
    """Start the API server."""
    import subprocess

    from guardit.config import get_settings

    settings = get_settings()
    cmd = [
        "uvicorn",
        "guardit.main:app",
        "--host",
        host or settings.host,
        "--port",
        str(port or settings.port),
    ]
    if reload:
        cmd.append("--reload")

    subprocess.run(cmd, check=False)


@app.command()
def migrate():
    """Run database migrations (alembic upgrade head)."""
    import subprocess

    result = subprocess.run(["alembic", "upgrade", "head"], check=False)
    raise typer.Exit(result.returncode)


@app.command("init-db")
def init_db():
    """Create any missing tables without going through migrations."""
    from guardit.config import get_settings
    from guardit.core.database import build_engine, create_schema

    async def run() -> None:
        engine = build_engine(get_settings())
        try:
            await create_schema(engine)
        finally:
            await engine.dispose()

    asyncio.run(run())
    _print_success("Schema ready")


@app.command("register-server")
def register_server(
    server_id: str = typer.Argument(..., help="Stable server identifier"),
    name: str | None = typer.Option(None, "--name", "-n", help="Display name"),
    description: str | None = typer.Option(None, "--description", "-d"),
):
    """Register a server, or refresh the name/description of an existing one."""
    from guardit.stores.sql import SqlTaskRegistry

    async def run():
        async with _session_factory() as factory:
            return await SqlTaskRegistry(factory).register_server(server_id, name, description)

    server = asyncio.run(run())
    _print_success(f"Server {server.server_id} ({server.display_name})")


@app.command("register-task")
def register_task(
    task_id: str = typer.Argument(..., help="Identifier the backup job reports under"),
    name: str = typer.Argument(..., help="Display name"),
    task_type: str = typer.Option("backup", "--type", "-t", help="Task type"),
    server_id: str | None = typer.Option(None, "--server", "-s", help="Owning server"),
    description: str | None = typer.Option(None, "--description", "-d"),
):
    """Register a backup task so its status reports are accepted."""
    from sqlalchemy.exc import IntegrityError

    from guardit.stores.sql import SqlTaskRegistry

    async def run():
        async with _session_factory() as factory:
            return await SqlTaskRegistry(factory).register_task(
                task_id,
                name,
                task_type=task_type,
                description=description,
                server_id=server_id,
            )

    try:
        task = asyncio.run(run())
    except IntegrityError:
        _print_error(f"Task {task_id} is already registered")
        raise typer.Exit(1) from None

    _print_success(f"Task {task.task_id} registered (server: {task.server_id or '-'})")


def _set_active(task_id: str, is_active: bool) -> None:
    from guardit.stores.sql import SqlTaskRegistry

    async def run():
        async with _session_factory() as factory:
            return await SqlTaskRegistry(factory).set_active(task_id, is_active)

    task = asyncio.run(run())
    if task is None:
        _print_error(f"Task {task_id} not found")
        raise typer.Exit(1)
    _print_success(f"Task {task_id} {'activated' if is_active else 'deactivated'}")


@app.command("deactivate-task")
def deactivate_task(task_id: str = typer.Argument(...)):
    """Reject further status reports for a task (403)."""
    _set_active(task_id, False)


@app.command("activate-task")
def activate_task(task_id: str = typer.Argument(...)):
    """Accept status reports for a previously deactivated task."""
    _set_active(task_id, True)


@app.command("add-keyword")
def add_keyword(
    keyword: str = typer.Argument(..., help="Case-insensitive substring to look for"),
    alert_type: str = typer.Argument("warning", help="warning, error, critical, ..."),
    severity: int = typer.Argument(1, help="Severity (higher is worse)"),
):
    """Add a keyword rule, or update the type/severity of an existing one."""
    from guardit.stores.sql import SqlKeywordTable

    async def run():
        async with _session_factory() as factory:
            return await SqlKeywordTable(factory).add_keyword(keyword, alert_type, severity)

    rule = asyncio.run(run())
    _print_success(f"'{rule.keyword}' -> {rule.alert_type} (severity {rule.severity})")


@app.command("seed-keywords")
def seed_keywords():
    """Load the keyword rules declared under seeds.keywords in config.yml."""
    from guardit.config import get_config
    from guardit.stores.sql import SqlKeywordTable

    seeds = get_config().seeds.keywords
    if not seeds:
        _print_warning("No keywords configured under seeds.keywords")
        return

    async def run():
        async with _session_factory() as factory:
            table = SqlKeywordTable(factory)
            return [await table.add_keyword(s.keyword, s.alert_type, s.severity) for s in seeds]

    rules = asyncio.run(run())
    for rule in rules:
        _print_success(f"'{rule.keyword}' -> {rule.alert_type} (severity {rule.severity})")


@app.command("list-tasks")
def list_tasks():
    """Show registered tasks, newest first."""
    from guardit.stores.sql import SqlTaskRegistry

    async def run():
        async with _session_factory() as factory:
            return await SqlTaskRegistry(factory).list_tasks()

    tasks = asyncio.run(run())
    if not tasks:
        typer.echo("No tasks registered.")
        return

    for task in tasks:
        state = "active" if task.is_active else "inactive"
        last_seen = task.last_seen.isoformat() if task.last_seen else "never"
        typer.echo(
            f"{task.task_id:<24} {task.display_name:<30} {state:<9} "
            f"server={task.server_id or '-'} last_seen={last_seen}"
        )


if __name__ == "__main__":
    app()
