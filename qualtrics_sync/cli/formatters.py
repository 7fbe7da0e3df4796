"""CLI output formatting functions.

This module contains functions for displaying run summaries and detailed
planned changes on the command line.
"""

from typing import TYPE_CHECKING

import click

from qualtrics_sync.sync.unit import ACTION_ADD, ACTION_DELETE, ACTION_UPDATE

if TYPE_CHECKING:
    from qualtrics_sync.sync.contact import ContactRecord
    from qualtrics_sync.sync.engine import RunResult
    from qualtrics_sync.sync.unit import SyncUnit

# Contacts shown per section before truncating
DISPLAY_LIMIT = 10

ACTION_SYMBOLS = {
    ACTION_ADD: "+",
    ACTION_UPDATE: "~",
    ACTION_DELETE: "-",
}


def format_contact(contact: "ContactRecord") -> str:
    """One-line description of a contact."""
    name = " ".join(p for p in (contact.first_name, contact.last_name) if p)
    parts = [contact.external_reference or "<no id>"]
    if name:
        parts.append(name)
    if contact.email:
        parts.append(f"<{contact.email}>")
    return " ".join(parts)


def show_unit_summary(unit: "SyncUnit", dry_run: bool = False) -> None:
    """Print the outcome of one mailing list."""
    report = unit.report
    click.echo(f"\n{click.style(unit.name, bold=True)} ({unit.list_id or 'no list id'})")

    if report.file_error is not None:
        click.echo(click.style(f"  File error: {report.file_error}", fg="red"))
        return
    if report.matching_hash:
        click.echo("  The hashes matched, nothing to do")
        return

    if dry_run:
        click.echo(
            f"  Would add {len(report.to_add)}, update {len(report.to_update)}, "
            f"delete {len(report.to_delete)} ({report.unchanged} unchanged)"
        )
    else:
        click.echo(
            f"  Added {report.added}/{len(report.to_add)}, "
            f"updated {report.updated}/{len(report.to_update)}, "
            f"deleted {report.deleted}/{len(report.to_delete)} "
            f"({report.unchanged} unchanged)"
        )

    if report.skipped_rows:
        click.echo(
            click.style(
                f"  Skipped {report.skipped_rows} row(s) without a unique id",
                fg="yellow",
            )
        )

    if report.failed:
        click.echo(click.style(f"  Failed: {len(report.failed)}", fg="red"))
        for failed in report.failed[:DISPLAY_LIMIT]:
            click.echo(
                f"    {failed.action} {failed.contact.external_reference}: "
                f"{failed.reason}"
            )
        if len(report.failed) > DISPLAY_LIMIT:
            click.echo(f"    ... and {len(report.failed) - DISPLAY_LIMIT} more")


def show_detailed_changes(unit: "SyncUnit") -> None:
    """
    Display the planned changes of one list (dry-run mode).

    Args:
        unit: A classified SyncUnit
    """
    report = unit.report
    if report.file_error is not None or report.matching_hash:
        return

    click.echo(f"\n=== Detailed Changes: {unit.name} ===")
    if report.changes_count == 0:
        click.echo("  No changes")
        return

    headings = {
        ACTION_ADD: "To add",
        ACTION_UPDATE: "To update",
        ACTION_DELETE: "To delete",
    }
    for action, heading in headings.items():
        contacts = report.bucket(action)
        if not contacts:
            continue
        click.echo(f"\n{heading}:")
        for contact in contacts[:DISPLAY_LIMIT]:
            click.echo(f"  {ACTION_SYMBOLS[action]} {format_contact(contact)}")
        if len(contacts) > DISPLAY_LIMIT:
            click.echo(f"  ... and {len(contacts) - DISPLAY_LIMIT} more")


def show_run_summary(result: "RunResult") -> None:
    """Print the totals of a run."""
    click.echo("\n=== Summary ===")
    click.echo(f"Lists processed: {len(result.units)}")
    click.echo(f"Lists synced without file error: {result.files_synced}")
    if result.failed_contacts:
        click.echo(
            click.style(f"Failed contacts: {result.failed_contacts}", fg="red")
        )
    if result.dry_run:
        click.echo(click.style("\nDry run: no changes were applied.", fg="yellow"))
    elif result.has_errors:
        click.echo(click.style("\nSync completed with errors.", fg="yellow"))
    else:
        click.echo(click.style("\nSync completed successfully!", fg="green"))
