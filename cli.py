"""CLI commands for managing the wedding guest list."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

import typer
from pydantic import ValidationError

from src.config.logging import setup_logging
from src.config.settings import settings
from src.guests.dtos import (
    GuestCategory,
    GuestDTO,
    GuestFormData,
    GuestNotFoundError,
    GuestStatsDTO,
    GuestStatus,
    RemoteWriteError,
)
from src.guests.engine import GuestEngine, build_guest_engine

app = typer.Typer(help="CLI commands for managing the wedding guest list")

T = TypeVar("T")

STATUS_COLORS = {
    GuestStatus.PENDING: typer.colors.YELLOW,
    GuestStatus.CONFIRMED: typer.colors.GREEN,
    GuestStatus.DELETED: typer.colors.RED,
}


class GuestListUnavailableError(Exception):
    """The initial load failed, so there is nothing to act on."""


async def _run_with_engine(
    action: Callable[[GuestEngine], Awaitable[T]],
    realtime_backend: str = "off",
) -> T:
    """Start an engine, run ``action`` against it and always close it."""
    engine = build_guest_engine(realtime_backend)
    try:
        if not await engine.start():
            raise GuestListUnavailableError("Could not load the guest list, see the log for details")
        return await action(engine)
    finally:
        await engine.close()


def _run(action: Callable[[GuestEngine], Awaitable[T]]) -> T:
    """Run an engine action, turning engine errors into a non-zero exit."""
    setup_logging()
    try:
        return asyncio.run(_run_with_engine(action))
    except (GuestListUnavailableError, GuestNotFoundError, RemoteWriteError) as e:
        typer.secho(str(e), fg=typer.colors.RED)
        raise typer.Exit(1)


def _echo_guest(guest: GuestDTO) -> None:
    typer.secho(
        f"[{guest.id}] {guest.name} ({guest.category.value}) - {guest.status.value}",
        fg=STATUS_COLORS[guest.status],
    )
    if guest.allergies:
        typer.secho(f"  Allergies: {guest.allergies}", fg=typer.colors.MAGENTA)
    for companion in guest.companions:
        allergies = f" - allergies: {companion.allergies}" if companion.allergies else ""
        typer.secho(f"  + {companion.name}{allergies}", fg=typer.colors.BLUE)


def _echo_stats(stats: GuestStatsDTO) -> None:
    typer.secho(f"Invitation units: {stats.total}", fg=typer.colors.GREEN)
    typer.secho(f"  Confirmed: {stats.confirmed}", fg=typer.colors.GREEN)
    typer.secho(f"  Pending: {stats.pending}", fg=typer.colors.YELLOW)
    typer.secho(f"  Deleted: {stats.deleted}", fg=typer.colors.RED)
    typer.secho(f"Expected headcount: {stats.total_with_companions}", fg=typer.colors.CYAN)
    for category, count in stats.by_category.items():
        typer.secho(f"  {category}: {count}", fg=typer.colors.BLUE)


def _parse_companion(value: str) -> dict:
    """Split 'Name:allergies' into form data."""
    name, _, allergies = value.partition(":")
    return {"name": name, "allergies": allergies or None}


@app.command()
def list_guests(
    status: GuestStatus = typer.Option(
        None,
        "--status",
        "-s",
        help="Only show units with this status",
    ),
):
    """List invitation units, newest first."""

    async def _list(engine: GuestEngine) -> list[GuestDTO]:
        return engine.by_status(status) if status else engine.all()

    guests = _run(_list)
    if not guests:
        typer.secho("No guests found", fg=typer.colors.YELLOW)
    for guest in guests:
        _echo_guest(guest)


@app.command()
def stats():
    """Show guest list totals."""

    async def _stats(engine: GuestEngine) -> GuestStatsDTO:
        return engine.stats()

    _echo_stats(_run(_stats))


def _build_form(name: str, category: GuestCategory, allergies: str | None, companions: list[str]) -> GuestFormData:
    try:
        return GuestFormData(
            name=name,
            category=category,
            allergies=allergies,
            companions=[_parse_companion(value) for value in companions],
        )
    except ValidationError as e:
        for error in e.errors():
            location = ".".join(str(part) for part in error["loc"])
            typer.secho(f"{location}: {error['msg']}", fg=typer.colors.RED)
        raise typer.Exit(1)


@app.command()
def add_guest(
    name: str = typer.Argument(
        ...,
        help="Name of the primary guest",
    ),
    category: GuestCategory = typer.Option(
        GuestCategory.FRIENDS,
        "--category",
        "-c",
        help="Guest category",
    ),
    allergies: str = typer.Option(
        None,
        "--allergies",
        "-a",
        help="Allergies of the primary guest",
    ),
    companions: list[str] = typer.Option(
        [],
        "--companion",
        "-p",
        help="Companion as 'Name' or 'Name:allergies', repeatable",
    ),
):
    """Create an invitation unit with its companions."""
    form = _build_form(name, category, allergies, companions)

    async def _add(engine: GuestEngine) -> GuestDTO:
        return await engine.add_guest(form)

    guest = _run(_add)
    typer.secho("Guest created!", fg=typer.colors.GREEN)
    _echo_guest(guest)


@app.command()
def edit_guest(
    unit_id: str = typer.Argument(..., help="Invitation unit id"),
    name: str = typer.Argument(..., help="New name of the primary guest"),
    category: GuestCategory = typer.Option(GuestCategory.FRIENDS, "--category", "-c"),
    allergies: str = typer.Option(None, "--allergies", "-a"),
    companions: list[str] = typer.Option(
        [],
        "--companion",
        "-p",
        help="Companion as 'Name' or 'Name:allergies', repeatable; replaces the current ones",
    ),
):
    """Rewrite a unit's details. Confirmation and trash state are kept."""
    form = _build_form(name, category, allergies, companions)
    guest = _run(lambda engine: engine.update_guest(unit_id, form))
    typer.secho("Guest updated!", fg=typer.colors.GREEN)
    _echo_guest(guest)


@app.command()
def confirm(unit_id: str = typer.Argument(..., help="Invitation unit id")):
    """Confirm an invitation unit."""
    _echo_guest(_run(lambda engine: engine.confirm_guest(unit_id)))


@app.command()
def pending(unit_id: str = typer.Argument(..., help="Invitation unit id")):
    """Revert an invitation unit to pending."""
    _echo_guest(_run(lambda engine: engine.revert_to_pending(unit_id)))


@app.command()
def delete(unit_id: str = typer.Argument(..., help="Invitation unit id")):
    """Move an invitation unit to the trash."""
    _echo_guest(_run(lambda engine: engine.soft_delete(unit_id)))


@app.command()
def restore(unit_id: str = typer.Argument(..., help="Invitation unit id")):
    """Bring an invitation unit back from the trash as pending."""
    _echo_guest(_run(lambda engine: engine.restore(unit_id)))


@app.command()
def purge(
    unit_id: str = typer.Argument(
        None,
        help="Invitation unit id to delete for good",
    ),
    all_deleted: bool = typer.Option(
        False,
        "--all-deleted",
        help="Permanently delete every unit in the trash",
    ),
):
    """Permanently delete invitation units. This cannot be undone."""
    if not unit_id and not all_deleted:
        typer.secho("Give a unit id or --all-deleted", fg=typer.colors.RED)
        raise typer.Exit(1)

    async def _purge(engine: GuestEngine) -> list[GuestDTO]:
        targets = [engine.get(unit_id)] if unit_id else engine.by_status(GuestStatus.DELETED)
        if targets == [None]:
            raise GuestNotFoundError(unit_id)
        return [await engine.permanently_delete(guest.id) for guest in targets]

    removed = _run(_purge)
    if not removed:
        typer.secho("Trash is empty", fg=typer.colors.YELLOW)
    for guest in removed:
        typer.secho(f"Deleted [{guest.id}] {guest.name}", fg=typer.colors.RED)


@app.command()
def watch(
    backend: str = typer.Option(
        None,
        "--backend",
        "-b",
        help="Change feed to listen on: postgres or local (defaults to settings)",
    ),
):
    """Print stats every time a remote change reloads the guest list."""
    realtime_backend = backend or settings.realtime_backend
    if realtime_backend == "off":
        typer.secho("Realtime updates are off, set REALTIME_BACKEND", fg=typer.colors.RED)
        raise typer.Exit(1)

    async def _watch(engine: GuestEngine) -> None:
        _echo_stats(engine.stats())
        engine.add_reload_listener(lambda e: _echo_stats(e.stats()))
        typer.secho("Watching for changes, Ctrl+C to stop", fg=typer.colors.CYAN)
        await asyncio.Event().wait()

    setup_logging()
    try:
        asyncio.run(_run_with_engine(_watch, realtime_backend=realtime_backend))
    except GuestListUnavailableError as e:
        typer.secho(str(e), fg=typer.colors.RED)
        raise typer.Exit(1)
    except KeyboardInterrupt:
        typer.secho("Stopped", fg=typer.colors.YELLOW)


if __name__ == "__main__":
    app()
