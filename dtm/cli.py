"""dtm CLI -- operator commands for the design token governance core."""

import sys

import click
from rich.console import Console
from rich.table import Table

from dtm import __version__
from dtm.errors import GovernanceError

console = Console()


def _core(ctx: click.Context):
    from dtm.config import GovernanceConfig
    from dtm.core import GovernanceCore
    from dtm.logging_setup import configure_logging

    config = GovernanceConfig.load(ctx.obj.get("root"))
    configure_logging(config.log_level)
    return GovernanceCore.from_config(config)


def _fail(exc: GovernanceError) -> None:
    console.print(f"[red]x[/] [{exc.code}] {exc.message}")
    sys.exit(1)


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--root",
    "-r",
    default=None,
    envvar="DTM_PROJECT_ROOT",
    type=click.Path(file_okay=False),
    help="Project root (defaults to the current directory)",
)
@click.pass_context
def main(ctx: click.Context, root: str | None):
    """dtm -- design token governance.

    Inspect and restore global-tier backups, validate token references
    before a Figma export, and provision client/project workspaces.
    """
    ctx.ensure_object(dict)
    ctx.obj["root"] = root


# ── Backups ──────────────────────────────────────────────────────────


@main.command()
@click.option("--target", "-t", default=None, help="Only show backups of this file (/tokens/global/...)")
@click.option("--limit", "-n", default=None, type=int, help="Maximum entries to show")
@click.pass_context
def history(ctx: click.Context, target: str | None, limit: int | None):
    """List global-tier backups, newest first."""
    core = _core(ctx)
    if limit is None:
        limit = core.config.history_limit
    try:
        entries = core.backups.list(limit=limit, target_path=target)
    except GovernanceError as exc:
        _fail(exc)

    if not entries:
        console.print("[yellow]No backups recorded.[/]")
        return

    table = Table(title=f"Backups ({len(entries)} of {core.backups.count()})")
    table.add_column("ID", style="cyan")
    table.add_column("Created")
    table.add_column("Action")
    table.add_column("Source")
    table.add_column("Token", style="dim")

    for entry in entries:
        source = entry.source_path if entry.existed else f"{entry.source_path} [dim](absent)[/]"
        table.add_row(entry.id, entry.created_at, entry.action.value, source, entry.token_path or "")

    console.print(table)


@main.command()
@click.argument("backup_id")
@click.pass_context
def restore(ctx: click.Context, backup_id: str):
    """Restore a file from the backup BACKUP_ID."""
    core = _core(ctx)
    try:
        result = core.restore.restore_by_id(backup_id)
    except GovernanceError as exc:
        _fail(exc)
    verb = "Removed" if result.removed else "Restored"
    console.print(f"[green]{verb}[/] {result.restored_path} from {result.backup_id}")


@main.command(name="restore-latest")
@click.option("--target", "-t", default=None, help="Restore this file instead of the newest backup overall")
@click.pass_context
def restore_latest(ctx: click.Context, target: str | None):
    """Restore the most recent backup."""
    core = _core(ctx)
    try:
        result = core.restore.restore_latest(target)
    except GovernanceError as exc:
        _fail(exc)
    verb = "Removed" if result.removed else "Restored"
    console.print(f"[green]{verb}[/] {result.restored_path} from {result.backup_id}")


# ── Validation ───────────────────────────────────────────────────────


@main.command()
@click.option("--project", "-p", default=None, help="Validate one lineage only: client/project")
@click.option("--strict", is_flag=True, help="Treat warnings as errors")
@click.pass_context
def validate(ctx: click.Context, project: str | None, strict: bool):
    """Check alias references before a Figma export."""
    core = _core(ctx)
    try:
        report = core.validator.validate(project_key=project)
    except GovernanceError as exc:
        _fail(exc)

    summary = report.summary
    console.print(
        f"\n[bold blue]dtm[/] -- {summary['totalTokens']} tokens, "
        f"{summary['errorCount']} errors, {summary['warningCount']} warnings\n"
    )
    for issue in report.errors:
        console.print(f"  [red]x[/] [{issue.code}] {issue.token}: {issue.message}")
    for issue in report.warnings:
        console.print(f"  [yellow]![/] [{issue.code}] {issue.token}: {issue.message}")

    if not report.valid or (strict and report.warnings):
        console.print("\n[red]FAIL[/]")
        sys.exit(1)
    console.print("\n[green]Valid![/]")


# ── Workspace ────────────────────────────────────────────────────────


@main.command(name="create-project")
@click.argument("client")
@click.argument("project")
@click.option("--brand", "-b", default="", help="Brand id (defaults to 'core')")
@click.option("--template", default="", help="Scaffold template")
@click.pass_context
def create_project(ctx: click.Context, client: str, project: str, brand: str, template: str):
    """Provision tokens/clients/CLIENT/projects/PROJECT."""
    from dtm.workspace.models import CreateProjectRequest

    core = _core(ctx)
    try:
        result = core.provisioner.create_project(
            CreateProjectRequest(client_id=client, project_id=project, brand_id=brand, template=template)
        )
    except GovernanceError as exc:
        _fail(exc)
    console.print(f"[green]Created[/] {result.project_key}")
    for path in result.files:
        console.print(f"  {path}")


@main.command()
@click.pass_context
def projects(ctx: click.Context):
    """List provisioned projects."""
    core = _core(ctx)
    registered = core.registry.list_projects()
    if not registered:
        console.print("[yellow]No projects provisioned.[/]")
        return

    table = Table(title=f"Projects ({len(registered)})")
    table.add_column("Key", style="cyan")
    table.add_column("Brand")
    table.add_column("Template")
    table.add_column("Files", justify="right")

    for key, project in sorted(registered.items()):
        metadata = project.get("metadata", {})
        table.add_row(
            key,
            str(metadata.get("brand", "")),
            str(metadata.get("template", "")),
            str(len(project.get("files", []))),
        )

    console.print(table)


# ── Server ───────────────────────────────────────────────────────────


@main.command()
@click.option("--host", default="127.0.0.1", help="Bind address")
@click.option("--port", default=8000, type=int, help="Bind port")
@click.pass_context
def serve(ctx: click.Context, host: str, port: int):
    """Run the governance API."""
    import uvicorn

    from web.backend.app.main import create_app

    app = create_app(_core(ctx))
    console.print(f"\n[bold blue]dtm[/] -- serving on http://{host}:{port}\n")
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    main()
