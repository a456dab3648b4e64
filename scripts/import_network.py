#!/usr/bin/env python3
"""
CLI Script for Network Import.

Usage:
    python scripts/import_network.py --file network.json --validate-only
    python scripts/import_network.py --base current.json --file a.json --file b.json -o merged.json
    python scripts/import_network.py --dir imports/ --mode replace -o out.json
"""

import argparse
import json
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from app.config import get_settings
from network_engine.ingestion.importer import NetworkImporter
from network_engine.ingestion.normalizer import decode_import_payload
from network_engine.ingestion.schemas import ImportReport, ValidationResult
from network_engine.ingestion.validator import SchemaError
from network_engine.knowledge.graph_store import GraphStore, GraphStoreError
from network_engine.knowledge.graph_views import network_stats
from network_engine.knowledge.schemas import ImportMode, Network
from network_engine.utils.logger import get_logger, setup_logging

console = Console()
logger = get_logger(__name__)


def load_base(path: Path) -> Network:
    """
    Load an exported network to merge into.

    Raises:
        SchemaError: If the file is not a valid network export
    """
    data = decode_import_payload(path.read_bytes())
    try:
        return Network.model_validate(data)
    except ValidationError as e:
        raise SchemaError([f"{path.name}: {err['msg']} at {err['loc']}" for err in e.errors()]) from e


def validate_file(importer: NetworkImporter, file_path: Path) -> bool:
    """
    Validate a single import file and print the result.

    Returns:
        True if the file is importable
    """
    console.print(f"\n[bold blue]Validating:[/] {file_path.name}")

    try:
        data = decode_import_payload(file_path.read_bytes())
    except SchemaError as e:
        console.print(f"[bold red]✗[/] {e}")
        return False

    result = importer.validate(data)
    _display_validation(result)
    return result.is_valid


def import_file(importer: NetworkImporter, file_path: Path, mode: ImportMode, max_bytes: int) -> bool:
    """
    Import a single file into the store and print the report.

    Returns:
        True if the import was applied
    """
    console.print(f"\n[bold blue]Importing:[/] {file_path.name} ({mode.value})")

    try:
        report = importer.import_file(file_path, mode, max_bytes=max_bytes)
    except SchemaError as e:
        console.print(f"[bold red]✗[/] Failed to import {file_path.name}")
        for error in e.errors:
            console.print(f"  [red]• {error}[/red]")
        return False

    _display_report(report)
    console.print(f"[bold green]✓[/] {report.summary}")
    return True


def _display_validation(result: ValidationResult) -> None:
    """Display validation results in a table."""
    table = Table(title="Validation")
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Valid", "yes" if result.is_valid else "[red]no[/red]")
    table.add_row("Entities", str(result.stats.entities))
    table.add_row("Relationships", str(result.stats.relationships))
    for entity_type, count in sorted(result.stats.entity_types.items()):
        table.add_row(f"  {entity_type}", str(count))

    console.print(table)

    for error in result.errors:
        console.print(f"  [red]error:[/red] {error}")
    for warning in result.warnings:
        console.print(f"  [yellow]warning:[/yellow] {warning}")


def _display_report(report: ImportReport) -> None:
    """Display an import report in a table."""
    table = Table(title="Import Report")
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Mode", report.mode.value)
    table.add_row("Added entities", str(report.added_entities))
    table.add_row("Added relationships", str(report.added_relationships))
    table.add_row("Skipped entities", str(report.skipped_entities))
    table.add_row("Skipped relationships", str(report.skipped_relationships))
    table.add_row("Network size", f"{report.entity_count} / {report.relationship_count}")

    console.print(table)

    if report.warnings:
        console.print(f"[yellow]{len(report.warnings)} warning(s)[/yellow]")
        for warning in report.warnings:
            console.print(f"  [dim]{warning}[/dim]")


def _display_stats(store: GraphStore) -> None:
    """Display summary statistics for the final network."""
    stats = network_stats(store.network)

    table = Table(title=f"Network: {store.title}")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Entities", str(stats.entity_count))
    table.add_row("Relationships", str(stats.relationship_count))
    table.add_row("Orphaned relationships", str(stats.orphaned_relationship_count))
    table.add_row("Connected components", str(stats.component_count))
    for entity_type, count in sorted(stats.entity_types.items()):
        table.add_row(f"  {entity_type}", str(count))

    console.print(table)

    if stats.most_connected:
        console.print("\n[bold]Most connected:[/]")
        for entity_id, degree in stats.most_connected:
            entity = store.get_entity(entity_id)
            name = entity.name if entity else entity_id
            console.print(f"  {name} [dim]({degree})[/dim]")


def main() -> None:
    """Main entry point."""
    settings = get_settings()

    parser = argparse.ArgumentParser(
        description="Validate and merge investigation network JSON files"
    )
    parser.add_argument(
        "--file", "-f",
        type=Path,
        action="append",
        default=[],
        help="Import file (repeatable, applied in order)",
    )
    parser.add_argument(
        "--dir", "-d",
        type=Path,
        help="Directory of .json import files",
    )
    parser.add_argument(
        "--base", "-b",
        type=Path,
        help="Exported network to import into (default: empty network)",
    )
    parser.add_argument(
        "--mode", "-m",
        type=ImportMode,
        choices=list(ImportMode),
        default=settings.default_import_mode,
        help="Import mode",
    )
    parser.add_argument(
        "--output", "-o",
        type=Path,
        help="Write the resulting network here",
    )
    parser.add_argument(
        "--validate-only",
        action="store_true",
        help="Only validate the files",
    )
    parser.add_argument(
        "--log-level",
        default=settings.log_level,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )

    args = parser.parse_args()

    # Setup logging
    setup_logging(args.log_level)

    files: list[Path] = list(args.file)
    if args.dir:
        if not args.dir.is_dir():
            console.print(f"[red]Directory not found: {args.dir}[/red]")
            sys.exit(1)
        files.extend(sorted(args.dir.glob("*.json")))

    if not files:
        parser.error("Must specify --file or --dir")

    missing = [f for f in files if not f.exists()]
    if missing:
        for path in missing:
            console.print(f"[red]File not found: {path}[/red]")
        sys.exit(1)

    console.print("[bold]Investigation Network Engine - Import[/]")
    console.print("=" * 50)

    store = GraphStore()
    if args.base:
        try:
            store.replace_network(load_base(args.base))
        except (SchemaError, GraphStoreError) as e:
            console.print(f"[red]Invalid base network: {e}[/red]")
            sys.exit(1)
        console.print(
            f"Loaded base [bold]{store.title}[/] "
            f"({store.entity_count()} entities, {store.relationship_count()} relationships)"
        )

    importer = NetworkImporter(store)
    failures = 0

    for file_path in files:
        if args.validate_only:
            ok = validate_file(importer, file_path)
        else:
            ok = import_file(importer, file_path, args.mode, settings.max_import_bytes)
        if not ok:
            failures += 1

    if not args.validate_only:
        console.print()
        _display_stats(store)

        if args.output:
            args.output.parent.mkdir(parents=True, exist_ok=True)
            args.output.write_text(json.dumps(store.export(), indent=2))
            console.print(f"[dim]Saved network to {args.output}[/dim]")

    if failures:
        logger.warning(f"{failures} of {len(files)} file(s) failed")
        sys.exit(1)


if __name__ == "__main__":
    main()
