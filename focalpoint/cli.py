"""Operator command line for Focal Point migrations, backups and restores."""

import sys
from pathlib import Path

import click

from focalpoint.main import build_app, build_runtime, serve


def _manager(ctx):
    obj = ctx.ensure_object(dict)
    if "manager" not in obj:
        _cfg, _settings, manager, _log_system = build_runtime(obj.get("home"))
        obj["manager"] = manager
    return obj["manager"]


def _finish(result):
    """Echo a lifecycle result and exit non-zero when it failed."""
    if result.get("ok"):
        click.echo(result.get("message", "OK"))
        return
    click.echo(f"Error [{result.get('error', 'unknown')}]: {result.get('message', '')}", err=True)
    sys.exit(1)


@click.group()
@click.version_option(version="1.0.0")
@click.option(
    "--home",
    type=click.Path(file_okay=False, path_type=Path),
    envvar="FOCALPOINT_HOME",
    help="Directory holding focalpoint.env (defaults to the working directory).",
)
@click.pass_context
def cli(ctx, home):
    """Focal Point - persistent state lifecycle tools."""
    ctx.ensure_object(dict)["home"] = home


# -------------------------------------------------------------------------
# Migration Commands
# -------------------------------------------------------------------------


@cli.command("migrate")
@click.pass_context
def migrate(ctx):
    """Import the legacy ledger if present, then apply pending migrations."""
    manager = _manager(ctx)
    imported = manager.import_legacy_ledger()
    if not imported.get("ok"):
        _finish(imported)
    if imported.get("imported"):
        click.echo(imported["message"])
    result = manager.run_pending_migrations()
    for name in result.get("applied", []):
        click.echo(f"  applied {name}")
    if result.get("failed_unit"):
        click.echo(f"  failed  {result['failed_unit']}", err=True)
    _finish(result)


@cli.command("revert-last")
@click.pass_context
def revert_last(ctx):
    """Revert the most recently applied migration."""
    _finish(_manager(ctx).revert_last_migration())


@cli.command("status")
@click.pass_context
def status(ctx):
    """Show applied and pending migrations."""
    result = _manager(ctx).migration_status()
    if not result.get("ok"):
        _finish(result)
    for row in result["migrations"]:
        mark = "applied" if row["applied"] else "pending"
        revert = "" if row["reversible"] else "  (no revert)"
        click.echo(f"  {mark:<8} {row['name']:<32}{revert}")
    click.echo(result["message"])


# -------------------------------------------------------------------------
# Snapshot Commands
# -------------------------------------------------------------------------


@cli.command("snapshot")
@click.pass_context
def snapshot(ctx):
    """Create a snapshot of the store and image tree."""
    _finish(_manager(ctx).create_snapshot())


@cli.command("list")
@click.pass_context
def list_snapshots(ctx):
    """List stored snapshots, newest first."""
    manager = _manager(ctx)
    items = manager.list_snapshots()
    if not items:
        click.echo("No backups stored.")
    for item in items:
        click.echo(f"  {item['name']:<45} {item['size_text']:>10}  {item['modified']}")
    summary = manager.storage_summary()
    click.echo(f"Using {summary['used_text']} of {summary['limit_text']} ({summary['percent']}%)")


@cli.command("delete")
@click.argument("name")
@click.pass_context
def delete(ctx, name):
    """Delete one stored snapshot."""
    _finish(_manager(ctx).delete_snapshot(name))


@cli.command("bulk-delete")
@click.argument("names", nargs=-1, required=True)
@click.pass_context
def bulk_delete(ctx, names):
    """Delete several stored snapshots; invalid names are skipped."""
    result = _manager(ctx).bulk_delete_snapshots(names)
    for name in result.get("rejected", []):
        click.echo(f"  rejected {name}", err=True)
    _finish(result)


# -------------------------------------------------------------------------
# Restore Commands
# -------------------------------------------------------------------------


@cli.command("restore")
@click.argument("name")
@click.pass_context
def restore(ctx, name):
    """Restore a stored snapshot by name."""
    _finish(_manager(ctx).restore_from_stored(name))


@cli.command("restore-file")
@click.argument("archive", type=click.File("rb"))
@click.pass_context
def restore_file(ctx, archive):
    """Restore from a snapshot zip anywhere on disk."""
    _finish(_manager(ctx).restore_from_upload(archive, filename=Path(archive.name).name))


@cli.command("serve")
@click.pass_context
def serve_command(ctx):
    """Run startup migrations, then the admin web server."""
    serve(build_app(ctx.ensure_object(dict).get("home")))


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
