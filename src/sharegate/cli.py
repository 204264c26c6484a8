# src/sharegate/cli.py
"""sharegate Command Line Interface.

Entry point for the sharegate CLI tool.
"""

import json
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import TYPE_CHECKING

import typer
from pydantic import ValidationError

from sharegate import __version__
from sharegate.contracts import (
    Credentials,
    DenialReason,
    ItemDraft,
    ShareGateError,
)
from sharegate.core.config import ShareGateSettings, load_settings, resolve_config
from sharegate.core.logging import configure_logging

if TYPE_CHECKING:
    from sharegate.engine.service import ShareService

app = typer.Typer(
    name="sharegate",
    help="sharegate: Gated short-id content sharing.",
    no_args_is_help=True,
)

_DEFAULT_SETTINGS = Path("settings.yaml")

SettingsOption = typer.Option(
    None,
    "--settings",
    "-s",
    help="Path to settings YAML file (default: ./settings.yaml if present).",
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"sharegate version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """sharegate: Gated short-id content sharing."""
    pass


def _load(settings: str | None) -> ShareGateSettings:
    """Load settings, reporting problems the way every command does."""
    if settings is not None:
        settings_path = Path(settings)
    elif _DEFAULT_SETTINGS.exists():
        settings_path = _DEFAULT_SETTINGS
    else:
        config = ShareGateSettings()
        configure_logging(json_output=config.logging.json_output, level=config.logging.level)
        return config

    try:
        config = load_settings(settings_path)
    except FileNotFoundError:
        typer.echo(f"Error: Settings file not found: {settings_path}", err=True)
        raise typer.Exit(1) from None
    except ValidationError as e:
        _echo_validation_errors("Configuration errors:", e)
        raise typer.Exit(1) from None

    configure_logging(json_output=config.logging.json_output, level=config.logging.level)
    return config


def _echo_validation_errors(heading: str, error: ValidationError) -> None:
    typer.echo(heading, err=True)
    for item in error.errors():
        loc = ".".join(str(x) for x in item["loc"])
        if loc:
            typer.echo(f"  - {loc}: {item['msg']}", err=True)
        else:
            typer.echo(f"  - {item['msg']}", err=True)


@contextmanager
def _service(config: ShareGateSettings) -> Iterator["ShareService"]:
    from sharegate.engine.service import ShareService

    try:
        service = ShareService.from_settings(config)
    except Exception as e:
        typer.echo(f"Error connecting to database: {e}", err=True)
        raise typer.Exit(1) from None
    try:
        yield service
    except ShareGateError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None
    finally:
        service.close()


@app.command()
def create(
    text: str | None = typer.Option(None, "--text", help="Inline text to share."),
    url: str | None = typer.Option(None, "--url", help="URL to redirect to."),
    file: Path | None = typer.Option(
        None, "--file", "-f", exists=True, dir_okay=False, help="File to upload."
    ),
    extracted_text: str | None = typer.Option(
        None,
        "--extracted-text",
        help="Text extracted from the uploaded document (sealed like inline text).",
    ),
    slides: bool = typer.Option(
        False, "--slides", help="Extracted text comes from a slide deck."
    ),
    name: str | None = typer.Option(None, "--name", "-n", help="Display name."),
    item_type: str | None = typer.Option(
        None, "--type", "-t", help="Declared type (pdf, image, document, ...)."
    ),
    password: str | None = typer.Option(None, "--password", "-p", help="Gate password."),
    quiz_question: str | None = typer.Option(None, "--quiz-question", help="Quiz question."),
    quiz_answer: str | None = typer.Option(None, "--quiz-answer", help="Quiz answer."),
    view_limit: int | None = typer.Option(
        None, "--view-limit", "-l", help="Maximum number of views."
    ),
    expires_in: int | None = typer.Option(
        None, "--expires-in", help="Expire this many seconds from now."
    ),
    unlock_after: int | None = typer.Option(
        None, "--unlock-after", help="Release content this many seconds from now."
    ),
    settings: str | None = SettingsOption,
) -> None:
    """Publish an item and print its short id and owner token.

    Examples:

        sharegate create --text "meet at noon" --password 'P@ss1234' --view-limit 1

        sharegate create --url https://example.com --expires-in 3600
    """
    try:
        draft = ItemDraft(
            name=name,
            declared_type=item_type,
            text=text,
            url=url,
            blob=file.read_bytes() if file is not None else None,
            filename=file.name if file is not None else None,
            extracted_text=extracted_text,
            extract_kind="slide" if slides else "doc",
            password=password,
            quiz_question=quiz_question,
            quiz_answer=quiz_answer,
            view_limit=view_limit,
            expires_at=(
                datetime.now(UTC) + timedelta(seconds=expires_in)
                if expires_in is not None
                else None
            ),
            unlock_after_seconds=unlock_after,
        )
    except ValidationError as e:
        _echo_validation_errors("Invalid item:", e)
        raise typer.Exit(1) from None

    with _service(_load(settings)) as service:
        try:
            created = service.create(draft)
        except ValueError as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(1) from None

    typer.echo(f"Short id: {created.short_id}")
    typer.echo(f"Secondary id: {created.secondary_id}")
    typer.echo(f"Type: {created.item_type.value}")
    if created.unlock_at is not None:
        typer.echo(f"Unlocks at: {created.unlock_at.isoformat()}")
    if created.expires_at is not None:
        typer.echo(f"Expires at: {created.expires_at.isoformat()}")
    if created.view_limit is not None:
        typer.echo(f"View limit: {created.view_limit}")
    typer.echo(f"Owner token: {created.owner_token}")
    typer.echo("Keep the owner token: it is shown only once.")


@app.command()
def resolve(
    short_id: str = typer.Argument(..., help="Short id to resolve."),
    password: str | None = typer.Option(None, "--password", "-p", help="Gate password."),
    quiz_answer: str | None = typer.Option(None, "--quiz-answer", help="Quiz answer."),
    settings: str | None = SettingsOption,
) -> None:
    """Resolve a short id, consuming one view.

    Prints the content on success. Denials exit with status 1.
    """
    with _service(_load(settings)) as service:
        result = service.resolve(
            short_id, Credentials(password=password, quiz_answer=quiz_answer)
        )

    if not result.ok:
        assert result.denial is not None and result.denial.reason is not None
        reason = result.denial.reason
        typer.echo(f"Denied: {reason.value}", err=True)
        if reason is DenialReason.LOCKED and result.denial.unlock_at is not None:
            typer.echo(f"  Unlocks at: {result.denial.unlock_at.isoformat()}", err=True)
        if reason is DenialReason.QUIZ_FAILED and result.denial.quiz_question:
            typer.echo(f"  Quiz: {result.denial.quiz_question}", err=True)
        raise typer.Exit(1)

    content = result.content
    assert content is not None
    if content.redirect_url is not None:
        typer.echo(f"Redirect: {content.redirect_url}")
    if content.blob_ref is not None:
        typer.echo(f"Blob: {content.blob_ref}")
    if content.text is not None:
        typer.echo(content.text)


@app.command()
def describe(
    short_id: str = typer.Argument(..., help="Short id to describe."),
    settings: str | None = SettingsOption,
) -> None:
    """Show an item's gates without consuming a view."""
    with _service(_load(settings)) as service:
        result = service.describe(short_id)

    if not result.ok:
        assert result.reason is not None
        typer.echo(f"Unavailable: {result.reason.value}", err=True)
        raise typer.Exit(1)

    description = result.description
    assert description is not None
    typer.echo(f"Short id: {description.short_id}")
    typer.echo(f"Name: {description.name or '-'}")
    typer.echo(f"Type: {description.item_type.value}")
    typer.echo(f"Password: {'yes' if description.has_password else 'no'}")
    if description.has_quiz:
        typer.echo(f"Quiz: {description.quiz_question or '(hidden until unlocked)'}")
    if description.has_delayed_access:
        state = "locked" if description.is_locked else "unlocked"
        assert description.unlock_at is not None
        typer.echo(f"Release: {description.unlock_at.isoformat()} ({state})")
    if description.views_remaining is not None:
        typer.echo(f"Views remaining: {description.views_remaining}")


@app.command()
def analytics(
    short_id: str = typer.Argument(..., help="Short id to summarize."),
    owner_token: str = typer.Option(..., "--owner-token", "-o", help="Owner token."),
    limit: int | None = typer.Option(
        None, "--limit", help="Recent accesses to show (default 50, max 200)."
    ),
    as_json: bool = typer.Option(False, "--json", help="Print JSON."),
    settings: str | None = SettingsOption,
) -> None:
    """Show usage analytics for an item you own."""
    with _service(_load(settings)) as service:
        summary = service.analytics(short_id, owner_token, limit)

    if as_json:
        typer.echo(
            json.dumps(
                {
                    "short_id": summary.short_id,
                    "name": summary.name,
                    "created_at": summary.created_at.isoformat(),
                    "total_views": summary.total_views,
                    "unique_device_types": summary.unique_device_types,
                    "device_breakdown": summary.device_breakdown,
                    "recent_access": summary.recent_access,
                },
                indent=2,
            )
        )
        return

    typer.echo(f"Item: {summary.short_id} ({summary.name or '-'})")
    typer.echo(f"Created: {summary.created_at.isoformat()}")
    typer.echo(f"Total views: {summary.total_views}")
    for device, count in sorted(summary.device_breakdown.items()):
        typer.echo(f"  {device}: {count}")
    if summary.recent_access:
        typer.echo("Recent access:")
        for entry in summary.recent_access:
            typer.echo(f"  {entry['accessed_at']}  {entry['device_type']}")


@app.command()
def delete(
    short_id: str = typer.Argument(..., help="Short id to delete."),
    owner_token: str = typer.Option(..., "--owner-token", "-o", help="Owner token."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt."),
    settings: str | None = SettingsOption,
) -> None:
    """Delete an item you own and release its blob."""
    if not yes:
        confirm = typer.confirm(f"Delete item {short_id}?")
        if not confirm:
            typer.echo("Aborted.")
            raise typer.Exit(1)

    with _service(_load(settings)) as service:
        service.delete(short_id, owner_token)
    typer.echo(f"Deleted {short_id}.")


@app.command()
def sweep(
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Show what would be deleted without deleting."
    ),
    loop: bool = typer.Option(
        False, "--loop", help="Keep sweeping on the configured interval until interrupted."
    ),
    settings: str | None = SettingsOption,
) -> None:
    """Delete expired and exhausted items and release their blobs.

    Examples:

        # See what would be deleted
        sharegate sweep --dry-run

        # Run as a long-lived sweeper process
        sharegate sweep --loop
    """
    from sharegate.engine.sweeper import LifecycleSweeper, SweepScheduler

    config = _load(settings)
    with _service(config) as service:
        sweeper = LifecycleSweeper(
            service.store,
            service.blob_store,
            release_timeout_seconds=config.sweeper.release_timeout_seconds,
        )
        if dry_run:
            expired, over_quota = sweeper.pending()
            if not expired and not over_quota:
                typer.echo("Nothing to sweep.")
                return
            typer.echo(
                f"Would delete {len(expired)} expired and "
                f"{len(over_quota)} exhausted item(s):"
            )
            for item in (expired + over_quota)[:10]:
                typer.echo(f"  {item.short_id}")
            remaining = len(expired) + len(over_quota) - 10
            if remaining > 0:
                typer.echo(f"  ... and {remaining} more")
            return

        if loop:
            if not config.sweeper.enabled:
                typer.echo("Error: sweeper is disabled in settings.", err=True)
                raise typer.Exit(1)
            scheduler = SweepScheduler(
                sweeper,
                interval_seconds=config.sweeper.interval_seconds,
                run_immediately=True,
            )
            typer.echo(
                f"Sweeping every {config.sweeper.interval_seconds:g}s. "
                "Press Ctrl+C to stop."
            )
            with scheduler:
                try:
                    threading.Event().wait()
                except KeyboardInterrupt:
                    typer.echo("Stopping sweeper.")
            return

        result = sweeper.sweep()

    typer.echo(f"Sweep completed in {result.duration_seconds:.2f}s:")
    typer.echo(f"  Expired deleted: {result.expired_deleted}")
    typer.echo(f"  Exhausted deleted: {result.over_quota_deleted}")
    typer.echo(f"  Blobs released: {result.blobs_released}")
    if result.blob_failures:
        typer.echo(f"  Blob release failures: {result.blob_failures}")
    if result.failed_ids:
        typer.echo(f"  Failed: {len(result.failed_ids)}")
        for item_id in result.failed_ids[:5]:
            typer.echo(f"    {item_id}")


@app.command("seal-legacy")
def seal_legacy(
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Show how many payloads would be sealed."
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt."),
    settings: str | None = SettingsOption,
) -> None:
    """Seal textual payloads still stored as plaintext."""
    from sharegate.engine.migration import seal_legacy_content

    with _service(_load(settings)) as service:
        service.envelope.require()
        if not dry_run and not yes:
            confirm = typer.confirm("Seal all plaintext textual payloads in place?")
            if not confirm:
                typer.echo("Aborted.")
                raise typer.Exit(1)
        result = seal_legacy_content(service.store, service.envelope, dry_run=dry_run)

    verb = "Would seal" if dry_run else "Sealed"
    typer.echo(f"{verb}: {len(result.sealed_ids)}")
    typer.echo(f"Already sealed: {len(result.skipped_ids)}")
    if result.failed_ids:
        typer.echo(f"Failed: {len(result.failed_ids)}", err=True)
        raise typer.Exit(1)


@app.command()
def validate(
    settings: str = typer.Option(
        ...,
        "--settings",
        "-s",
        help="Path to settings YAML file.",
    ),
) -> None:
    """Validate settings and print the resolved configuration."""
    config = _load(settings)
    typer.echo("Configuration valid.")
    typer.echo(json.dumps(resolve_config(config), indent=2, default=str))


if __name__ == "__main__":
    app()
