"""CLI entry point for api-collection-sync."""

import json
import logging
from pathlib import Path

import click

from api_collection_sync.config import get_settings
from api_collection_sync.errors import CollectionSyncError, InvalidSpecificationError
from api_collection_sync.parser.base import ItemType, count_requests
from api_collection_sync.parser.detect import detect_dialect, load_document
from api_collection_sync.sync.importer import CollectionImporter, document_info, transform_document
from api_collection_sync.sync.store import InMemoryCollectionStore, JsonFileStore


def _load(doc_path: Path, fmt: str) -> dict:
    """Load a document and check it against the requested format."""
    document = load_document(doc_path)
    dialect = detect_dialect(document)
    if fmt != "auto" and dialect.value != fmt:
        raise InvalidSpecificationError(f"Invalid specification: expected {fmt}, found {dialect.value}")
    return document


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def main(verbose: bool):
    """API Collection Sync: import OpenAPI/Postman documents as request collections."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@main.command("import")
@click.argument("doc_path", type=click.Path(exists=True, path_type=Path))
@click.option("-o", "--output", required=True, type=click.Path(path_type=Path), help="Output file for the collection JSON.")
@click.option("--format", "fmt", default="auto", type=click.Choice(["auto", "openapi2", "openapi3", "postman"]), help="Document format.")
@click.option("--user", default=None, help="Name stamped into audit fields.")
@click.option("--workspace", default="", help="Workspace id recorded on the collection.")
@click.option("--flatten/--no-flatten", default=None, help="Flatten nested Postman folders.")
def import_cmd(doc_path: Path, output: Path, fmt: str, user: str | None, workspace: str, flatten: bool | None):
    """Transform an API document into a collection JSON file."""
    settings = get_settings()
    if flatten is not None:
        settings = settings.model_copy(update={"flatten_postman_folders": flatten})

    try:
        document = _load(doc_path, fmt)
        importer = CollectionImporter(InMemoryCollectionStore(), settings)
        result = importer.import_document(document, workspace, acting_user=user)
    except CollectionSyncError as e:
        raise click.ClickException(str(e)) from e

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(
        json.dumps(result.collection.model_dump(mode="json", by_alias=True), indent=2, ensure_ascii=False),
        encoding="utf-8",
    )
    click.echo(f"Imported {result.collection.total_requests} requests ({result.dialect.value}) to {output}")


@main.command()
@click.argument("doc_path", type=click.Path(exists=True, path_type=Path))
@click.option("--store", "store_path", required=True, type=click.Path(path_type=Path), help="JSON file holding collections and branches.")
@click.option("--workspace", required=True, help="Workspace id the collection belongs to.")
@click.option("--branch", default=None, help="Branch to sync (defaults to the configured branch).")
@click.option("--url", "sync_url", default="", help="Upstream URL recorded as the active sync source.")
@click.option("--user", default=None, help="Name stamped into audit fields.")
def sync(doc_path: Path, store_path: Path, workspace: str, branch: str | None, sync_url: str, user: str | None):
    """Active-sync a document into a collection branch, merging with stored state."""
    try:
        document = _load(doc_path, "auto")
        importer = CollectionImporter(JsonFileStore(store_path))
        result = importer.import_document(
            document,
            workspace,
            acting_user=user,
            active_sync=True,
            active_sync_url=sync_url,
            branch_name=branch,
        )
    except CollectionSyncError as e:
        raise click.ClickException(str(e)) from e

    action = "Merged" if result.merged else "Created"
    click.echo(f"{action} branch '{result.branch_ref.name}' of collection {result.collection.id}")
    click.echo(f"Total requests: {result.collection.total_requests}")


@main.command()
@click.argument("doc_path", type=click.Path(exists=True, path_type=Path))
@click.option("--diagnostics", is_flag=True, help="List references that could not be resolved.")
def inspect(doc_path: Path, diagnostics: bool):
    """Show what an import of this document would produce."""
    messages: list[str] = []
    try:
        document = load_document(doc_path)
        dialect, folders = transform_document(document, get_settings().acting_user, diagnostics=messages)
    except CollectionSyncError as e:
        raise click.ClickException(str(e)) from e

    title, _ = document_info(document, dialect)
    items = list(folders.values())
    click.echo(f"Dialect: {dialect.value}")
    click.echo(f"Title: {title}")
    for item in items:
        suffix = f" ({len(item.items)} items)" if item.type == ItemType.FOLDER else ""
        click.echo(f"  - {item.name}{suffix}")
    click.echo(f"Total requests: {count_requests(items)}")
    if diagnostics:
        for message in messages:
            click.echo(f"! {message}")
