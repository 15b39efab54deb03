"""Typer-based CLI entry point."""

from __future__ import annotations

import asyncio
import functools
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, List, Optional

import httpx
import typer
from rich import print
from rich.console import Console
from rich.table import Table

from edumatch.application.dtos import TabView
from edumatch.application.services.membership_store import MembershipStore
from edumatch.application.services.toggle_controller import OptimisticToggleController, ToggleOutcome
from edumatch.config import ACTIVE_MEMBERSHIP_STATUS, FEE_BUCKETS
from edumatch.di import Container
from edumatch.di.bootstrap import bootstrap
from edumatch.domain.models import Program, ResearchPosition, Scholarship, SortOption
from edumatch.errors import (
    AuthError,
    EduMatchError,
    InvalidFilterError,
    InvalidStatusError,
    NetworkError,
    SettingsError,
)
from edumatch.gui.viewmodels.wishlist_viewmodel import WishlistViewModel
from edumatch.infrastructure.api_client import ApiClient
from edumatch.settings import SettingsManager
from edumatch.utils.logging import configure_logging

app = typer.Typer(help="EduMatch wishlist client")
wishlist_app = typer.Typer(help="Inspect and edit the saved wishlist")
app.add_typer(wishlist_app, name="wishlist")

console = Console()

# Replaced in tests with an httpx.MockTransport.
_transport: Optional[httpx.AsyncBaseTransport] = None


def _handle_errors(func):
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (AuthError, NetworkError, InvalidFilterError, InvalidStatusError, SettingsError) as exc:
            typer.echo(f"Error: {exc}", err=True)
            raise typer.Exit(1) from exc
        except EduMatchError as exc:
            typer.echo(f"Unexpected error: {exc}", err=True)
            raise typer.Exit(1) from exc

    return wrapper


@app.callback()
def main(
    ctx: typer.Context,
    settings_path: Optional[Path] = typer.Option(None, "--settings", help="Path to settings.json"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING or ERROR"),
) -> None:
    """Talk to the EduMatch wishlist API."""

    ctx.obj = {"settings_path": settings_path, "log_level": log_level}


def _load_settings(ctx: typer.Context) -> SettingsManager:
    options = ctx.obj or {}
    settings = SettingsManager(options.get("settings_path"))
    settings.load()
    configure_logging(options.get("log_level") or settings.get("logging.level"))
    return settings


@asynccontextmanager
async def _session(settings: SettingsManager) -> AsyncIterator[Container]:
    container = Container()
    bootstrap(container, settings, transport=_transport)
    try:
        yield container
    finally:
        view_model = container.resolve(WishlistViewModel)
        controller = container.resolve(OptimisticToggleController)
        await controller.wait_background()
        await view_model.wait_idle()
        view_model.dispose()
        await container.resolve(ApiClient).aclose()


def _render(view: TabView) -> Table:
    table = Table(title=f"{view.tab.item_label}s ({view.total_items})")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Title")
    table.add_column("Organisation")
    table.add_column("Country")
    table.add_column("Details")
    table.add_column("Days left", justify="right")
    for entity in view.data:
        if isinstance(entity, Program):
            details = " / ".join(part for part in (entity.field, entity.price, entity.attendance) if part)
        elif isinstance(entity, Scholarship):
            details = entity.amount
        elif isinstance(entity, ResearchPosition):
            details = " / ".join(part for part in (entity.field, entity.position) if part)
        else:
            details = ""
        days = "[red]expired[/red]" if entity.is_expired else str(entity.days_left)
        table.add_row(entity.id, entity.title, entity.organization, entity.country, details, days)
    return table


@wishlist_app.command("show")
@_handle_errors
def show(
    ctx: typer.Context,
    tab: str = typer.Option("programmes", "--tab", "-t", help="programmes, scholarships or research"),
    search: str = typer.Option("", "--search", "-s"),
    discipline: List[str] = typer.Option([], "--discipline"),
    country: List[str] = typer.Option([], "--country"),
    fee: Optional[str] = typer.Option(None, "--fee", help=f"Fee bucket, one of: {', '.join(FEE_BUCKETS)}"),
    degree: List[str] = typer.Option([], "--degree"),
    attendance: List[str] = typer.Option([], "--attendance"),
    show_expired: bool = typer.Option(False, "--show-expired"),
    sort: SortOption = typer.Option(SortOption.NEWEST, "--sort"),
) -> None:
    """List the saved items of one tab after applying the filters."""

    settings = _load_settings(ctx)

    async def run() -> TabView:
        async with _session(settings) as container:
            vm = container.resolve(WishlistViewModel)
            vm.set_active_tab(tab)
            vm.sort_order.value = sort
            vm.set_search_query(search)
            vm.set_disciplines(discipline)
            vm.set_countries(country)
            vm.set_fee_range(fee)
            vm.set_degree_levels(degree)
            vm.set_attendance(attendance)
            vm.set_show_expired(show_expired)
            await vm.load()
            return vm.current_tab_view()

    view = asyncio.run(run())
    if view.error:
        typer.echo(f"Error: {view.error}", err=True)
        raise typer.Exit(1)
    if view.is_empty:
        print(f"[yellow]No saved {view.tab.item_label.lower()}s match the current filters")
        return
    console.print(_render(view))


@wishlist_app.command("toggle")
@_handle_errors
def toggle(
    ctx: typer.Context,
    post_id: str = typer.Argument(..., help="Post id to add or remove"),
    tab: str = typer.Option("programmes", "--tab", "-t", help="Category used for the notification"),
) -> None:
    """Add POST_ID to the wishlist, or remove it when already saved."""

    settings = _load_settings(ctx)

    async def run():
        async with _session(settings) as container:
            vm = container.resolve(WishlistViewModel)
            vm.set_active_tab(tab)
            await vm.load()
            outcome = await vm.toggle(post_id)
            return outcome, vm.last_notification.value

    outcome, notification = asyncio.run(run())
    message = notification.message if notification is not None else outcome.value
    if outcome in (ToggleOutcome.FAILED, ToggleOutcome.REJECTED):
        typer.echo(f"Error: {message}", err=True)
        raise typer.Exit(1)
    print(f"[green]{message}")


@wishlist_app.command("add")
@_handle_errors
def add(
    ctx: typer.Context,
    post_ids: List[str] = typer.Argument(..., help="Post ids to save"),
) -> None:
    """Save several posts in one request."""

    settings = _load_settings(ctx)

    async def run():
        async with _session(settings) as container:
            store = container.resolve(MembershipStore)
            await store.bulk_add(post_ids)
            return len(store.member_ids())

    total = asyncio.run(run())
    print(f"[green]Saved {len(post_ids)} item(s); wishlist now holds {total}")


@wishlist_app.command("remove")
@_handle_errors
def remove(
    ctx: typer.Context,
    post_ids: List[str] = typer.Argument(..., help="Post ids to drop"),
) -> None:
    """Remove several posts in one request."""

    settings = _load_settings(ctx)

    async def run():
        async with _session(settings) as container:
            store = container.resolve(MembershipStore)
            await store.list()
            await store.bulk_remove(post_ids)
            return len(store.member_ids())

    total = asyncio.run(run())
    print(f"[green]Removed {len(post_ids)} item(s); wishlist now holds {total}")


@wishlist_app.command("status")
@_handle_errors
def status(
    ctx: typer.Context,
    post_id: str = typer.Argument(..., help="Saved post id"),
    value: int = typer.Argument(..., help="1 = active, 0 = inactive"),
) -> None:
    """Mark a saved post active or inactive."""

    settings = _load_settings(ctx)

    async def run():
        async with _session(settings) as container:
            await container.resolve(MembershipStore).update_status(post_id, value)

    asyncio.run(run())
    print(f"[green]{post_id} marked {'active' if value == ACTIVE_MEMBERSHIP_STATUS else 'inactive'}")


@wishlist_app.command("counts")
@_handle_errors
def counts(ctx: typer.Context) -> None:
    """Print the wishlist summary counts."""

    settings = _load_settings(ctx)

    async def run():
        async with _session(settings) as container:
            return await container.resolve(MembershipStore).refresh_counts()

    result = asyncio.run(run())
    if result is None:
        typer.echo("Error: wishlist counts are unavailable", err=True)
        raise typer.Exit(1)
    table = Table(title=f"Wishlist ({result.total})")
    table.add_column("Category")
    table.add_column("Items", justify="right")
    for category, value in result.by_category.items():
        table.add_row(category, str(value))
    console.print(table)


@wishlist_app.command("facets")
@_handle_errors
def facets(ctx: typer.Context) -> None:
    """Print the filter values advertised by the catalogs."""

    settings = _load_settings(ctx)

    async def run():
        async with _session(settings) as container:
            vm = container.resolve(WishlistViewModel)
            await vm.load()
            return vm.facets.value, vm.tab_errors.value

    result, errors = asyncio.run(run())
    if errors:
        typer.echo(f"Error: {next(iter(errors.values()))}", err=True)
        raise typer.Exit(1)
    for label, values in (
        ("Disciplines", result.disciplines),
        ("Countries", result.countries),
        ("Degree levels", result.degree_levels),
        ("Attendance", result.attendance_types),
    ):
        print(f"[bold]{label}:[/bold] {', '.join(values) if values else '-'}")


if __name__ == "__main__":  # pragma: no cover
    app()
