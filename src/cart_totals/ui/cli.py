from __future__ import annotations

from dataclasses import replace

from dotenv import load_dotenv
import typer

from cart_totals.adapters.store.firestore import get_firestore_store
from cart_totals.config import load_handler_config_from_env
from cart_totals.errors import CartTotalsError
from cart_totals.logging_setup import configure_logging
from cart_totals.services.recalculation import (
    CartRecalculationService,
    RecalculationResult,
)

# Load environment variables from .env
load_dotenv()

app = typer.Typer(
    help="Cart totals: recalculate shipping and tax on Firestore carts.",
    no_args_is_help=True,
)


def _build_service(project: str | None) -> CartRecalculationService:
    try:
        config = load_handler_config_from_env()
    except CartTotalsError as e:
        typer.echo(f"Configuration error: {e}", err=True)
        raise typer.Exit(code=2) from e

    configure_logging(config.log_level)
    if project:
        config = replace(config, project_id=project)
    store = get_firestore_store(config.project_id)
    return CartRecalculationService(store=store, config=config)


def _format_result(result: RecalculationResult) -> str:
    totals = result.totals
    line = (
        f"{result.owner_id}: items={totals.items_count} "
        f"subtotal={totals.subtotal:g} shipping={totals.shipping:g} "
        f"tax={totals.tax:g}"
    )
    if result.malformed_item_ids:
        line += f" malformed={','.join(result.malformed_item_ids)}"
    if not result.written:
        line += " (dry run)"
    return line


@app.command("recalc")
def recalc_cmd(
    user_id: str = typer.Argument(..., help="Cart owner id (carts/{userId})"),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Compute totals without writing them"
    ),
    project: str | None = typer.Option(
        None, help="Google Cloud project id (defaults to GOOGLE_CLOUD_PROJECT)"
    ),
) -> None:
    """Recalculate shipping and tax for one cart."""
    service = _build_service(project)
    try:
        result = service.recalculate(user_id, dry_run=dry_run)
    except CartTotalsError as e:
        typer.echo(f"Failed: {e}", err=True)
        raise typer.Exit(code=1) from e
    typer.echo(_format_result(result))


@app.command("backfill")
def backfill_cmd(
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Compute totals without writing them"
    ),
    project: str | None = typer.Option(
        None, help="Google Cloud project id (defaults to GOOGLE_CLOUD_PROJECT)"
    ),
) -> None:
    """Recalculate shipping and tax for every cart.

    Keeps going after a cart fails and exits non-zero if any did.
    """
    service = _build_service(project)
    try:
        owner_ids = service.list_owner_ids()
    except CartTotalsError as e:
        typer.echo(f"Failed to list carts: {e}", err=True)
        raise typer.Exit(code=1) from e

    failures: list[str] = []
    for owner_id in owner_ids:
        try:
            result = service.recalculate(owner_id, dry_run=dry_run)
        except CartTotalsError as e:
            failures.append(owner_id)
            typer.echo(f"{owner_id}: failed: {e}", err=True)
            continue
        typer.echo(_format_result(result))

    typer.echo(
        f"Processed {len(owner_ids)} carts, {len(failures)} failed"
    )
    if failures:
        raise typer.Exit(code=1)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
