#!/usr/bin/env python
"""
Upload airport and airline catalog JSON files into their Firestore collections.

Usage:
    python scripts/upload_catalog.py --data-dir data                 # every {locale}Airports/Airlines.json
    python scripts/upload_catalog.py --data-dir data --locale tr     # one locale only
    python scripts/upload_catalog.py --file data/enAirports.json --collection enAirports
    python scripts/upload_catalog.py --file data/enHome.json --collection enHome --document homeData
    python scripts/upload_catalog.py --data-dir data --dry-run       # Preview without writing
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.table import Table

# Load environment variables from .env file
load_dotenv()

from airdex.bootstrap import configure_logging
from airdex.schemas.favorites import FavoriteType
from airdex.services.dependencies import create_firestore_client
from airdex.services.favorites import catalog_collection
from airdex.settings import get_settings

# Firestore rejects write batches above 500 operations.
BATCH_LIMIT = 499
DEFAULT_LOCALES = ("en", "tr")

console = Console()


@dataclass
class UploadSummary:
    collection: str
    uploaded: int = 0
    skipped: list[Any] = field(default_factory=list)
    batches: int = 0


def load_json(path: Path) -> Any:
    with open(path, encoding="utf-8") as handle:
        return json.load(handle)


def plan_batches(
    items: list[dict[str, Any]], *, limit: int = BATCH_LIMIT
) -> tuple[list[list[tuple[str, dict[str, Any]]]], list[Any]]:
    """Split catalog items into write batches keyed by document id.

    Items without an ``id`` are returned separately so the caller can report them.
    """

    batches: list[list[tuple[str, dict[str, Any]]]] = []
    current: list[tuple[str, dict[str, Any]]] = []
    skipped: list[Any] = []

    for item in items:
        if not isinstance(item, dict) or item.get("id") in (None, ""):
            skipped.append(item)
            continue
        current.append((str(item["id"]), item))
        if len(current) == limit:
            batches.append(current)
            current = []

    if current:
        batches.append(current)
    return batches, skipped


def discover_catalog_files(data_dir: Path, locales: tuple[str, ...]) -> list[tuple[Path, str]]:
    """Return ``(file, collection)`` pairs for every catalog file present in ``data_dir``."""

    found: list[tuple[Path, str]] = []
    for locale in locales:
        for favorite_type in (FavoriteType.AIRLINE, FavoriteType.AIRPORT):
            collection = catalog_collection(locale, favorite_type)
            candidate = data_dir / f"{collection}.json"
            if candidate.exists():
                found.append((candidate, collection))
            else:
                console.print(f"[yellow]⚠️  No {candidate.name} in {data_dir}, skipping[/yellow]")
    return found


async def upload_collection(
    client: Any, collection: str, items: Any, *, dry_run: bool = False
) -> UploadSummary:
    """Write every catalog item to ``collection`` using batched sets."""

    if not isinstance(items, list):
        raise click.ClickException(
            f"Data for [{collection}] is not an array; use --document for single documents"
        )

    batches, skipped = plan_batches(items)
    summary = UploadSummary(collection=collection, skipped=skipped)
    for item in skipped:
        console.print(f"[yellow]Skipped item without id in {collection}: {escape(repr(item))}[/yellow]")

    for index, batch_items in enumerate(batches, start=1):
        if not dry_run:
            batch = client.batch()
            for document_id, data in batch_items:
                batch.set(client.collection(collection).document(document_id), data)
            await batch.commit()
        summary.uploaded += len(batch_items)
        summary.batches += 1
        verb = "planned" if dry_run else "uploaded"
        console.print(f"Batch {index}/{len(batches)} {verb} for {collection}")

    return summary


async def upload_document(
    client: Any, collection: str, document_id: str, data: Any, *, dry_run: bool = False
) -> UploadSummary:
    """Write one JSON object as ``collection/document_id``."""

    if not isinstance(data, dict):
        raise click.ClickException(
            f"Data for [{collection}/{document_id}] must be an object, not {type(data).__name__}"
        )

    if not dry_run:
        await client.collection(collection).document(document_id).set(data)
    return UploadSummary(collection=f"{collection}/{document_id}", uploaded=1, batches=1)


def _render_summary(summaries: list[UploadSummary], *, dry_run: bool) -> None:
    table = Table("Target", "Documents", "Batches", "Skipped", title="Catalog upload")
    for summary in summaries:
        table.add_row(
            summary.collection,
            str(summary.uploaded),
            str(summary.batches),
            str(len(summary.skipped)),
        )
    console.print(table)
    if dry_run:
        console.print("[cyan]Dry run: nothing was written to Firestore[/cyan]")
    else:
        console.print("[green]✅ Upload completed[/green]")


async def _upload_catalog_async(
    *,
    data_dir: Path | None,
    file: Path | None,
    collection: str | None,
    document: str | None,
    locales: tuple[str, ...],
    dry_run: bool,
) -> list[UploadSummary]:
    client = None if dry_run else create_firestore_client(get_settings())
    summaries: list[UploadSummary] = []

    if file is not None:
        payload = load_json(file)
        if document:
            summaries.append(
                await upload_document(client, collection, document, payload, dry_run=dry_run)
            )
        else:
            summaries.append(
                await upload_collection(client, collection, payload, dry_run=dry_run)
            )

    if data_dir is not None:
        for path, target in discover_catalog_files(data_dir, locales):
            console.print(f"Reading {path} for {target}...")
            summaries.append(
                await upload_collection(client, target, load_json(path), dry_run=dry_run)
            )

    return summaries


@click.command()
@click.option(
    "--data-dir",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Directory holding {locale}Airports.json / {locale}Airlines.json",
)
@click.option(
    "--file",
    "file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Single JSON file to upload",
)
@click.option("--collection", help="Target collection for --file")
@click.option("--document", help="Upload --file as this single document id")
@click.option(
    "--locale",
    "locales",
    multiple=True,
    default=DEFAULT_LOCALES,
    show_default=True,
    help="Catalog locales to upload from --data-dir",
)
@click.option("--dry-run", is_flag=True, help="Preview batches without writing")
def upload_catalog(
    data_dir: Path | None,
    file: Path | None,
    collection: str | None,
    document: str | None,
    locales: tuple[str, ...],
    dry_run: bool,
) -> None:
    """Upload catalog data used to resolve favorite airports and airlines."""

    if data_dir is None and file is None:
        raise click.UsageError("Provide --data-dir and/or --file")
    if file is not None and not collection:
        raise click.UsageError("--collection is required with --file")

    configure_logging()
    summaries = asyncio.run(
        _upload_catalog_async(
            data_dir=data_dir,
            file=file,
            collection=collection,
            document=document,
            locales=tuple(locales),
            dry_run=dry_run,
        )
    )
    _render_summary(summaries, dry_run=dry_run)


if __name__ == "__main__":
    upload_catalog()
