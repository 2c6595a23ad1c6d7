"""CLI commands for person record extraction."""

from __future__ import annotations

import argparse
import signal
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Sequence

from src import paths
from src.extraction import RunStatus
from src.extraction.activity import ActivityLog
from src.extraction.checkpoint import CheckpointError, CheckpointStore
from src.extraction.config import ConfigError, RunConfig, load_run_config
from src.extraction.driver import ExtractionDriver
from src.extraction.export import write_results_csv
from src.extraction.planner import advance_cursor, plan_batch
from src.extraction.prompts import default_examples
from src.parsing import DocumentParseError, parse_document, split_paragraphs

__all__ = ["register_commands"]


def register_commands(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    """Add extraction-focused subcommands to the main CLI parser."""
    _register_extract_command(subparsers)
    _register_resume_command(subparsers)
    _register_export_command(subparsers)
    _register_paragraphs_command(subparsers)
    _register_status_command(subparsers)


def _add_config_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to run configuration YAML. Defaults to config/roster.yaml when present.",
    )
    parser.add_argument("--api-key", help="Endpoint credential. Defaults to $SILICONFLOW_API_KEY.")
    parser.add_argument("--model", help="Model identifier.")
    parser.add_argument("--batch-size", type=int, help="Maximum paragraphs per batch.")
    parser.add_argument("--overlap", type=int, help="Paragraphs re-fed as context to the next batch.")
    parser.add_argument("--max-characters", type=int, help="Character cap per batch.")
    parser.add_argument(
        "--field",
        action="append",
        dest="fields",
        metavar="NAME",
        help="Extra attribute to extract. Repeat for several; replaces configured fields.",
    )
    parser.add_argument(
        "--default-examples",
        action="store_true",
        help="Embed the built-in few-shot examples in the prompt.",
    )


def _register_extract_command(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    parser = subparsers.add_parser(
        "extract",
        description="Extract person records from a document.",
        help="Extract person records from a document.",
    )
    parser.add_argument("document", type=Path, help="DOCX or text document to process.")
    _add_config_arguments(parser)
    parser.add_argument(
        "--checkpoint",
        type=Path,
        help="Checkpoint file. Defaults to checkpoints/<document>.checkpoint.json.",
    )
    parser.add_argument("--output", type=Path, help="CSV destination. Defaults to exports/extracted_<date>.csv.")
    parser.add_argument(
        "--export-partial",
        action="store_true",
        help="Write the CSV even when the run was paused.",
    )
    parser.set_defaults(func=extract_cli, command="extract")


def _register_resume_command(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    parser = subparsers.add_parser(
        "resume",
        description="Continue a paused extraction from its checkpoint.",
        help="Continue a paused extraction from its checkpoint.",
    )
    parser.add_argument("checkpoint", type=Path, help="Checkpoint file written by 'extract'.")
    _add_config_arguments(parser)
    parser.add_argument("--output", type=Path, help="CSV destination.")
    parser.add_argument("--export-partial", action="store_true", help="Write the CSV even when paused again.")
    parser.set_defaults(func=resume_cli, command="resume")


def _register_export_command(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    parser = subparsers.add_parser(
        "export",
        description="Write the records stored in a checkpoint to CSV.",
        help="Write the records stored in a checkpoint to CSV.",
    )
    parser.add_argument("checkpoint", type=Path, help="Checkpoint file written by 'extract'.")
    parser.add_argument("--config", type=Path, help="Run configuration providing the field list.")
    parser.add_argument(
        "--field",
        action="append",
        dest="fields",
        metavar="NAME",
        help="Extra column to export. Repeat for several.",
    )
    parser.add_argument("--output", type=Path, help="CSV destination.")
    parser.set_defaults(func=export_cli, command="export")


def _register_paragraphs_command(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    parser = subparsers.add_parser(
        "paragraphs",
        description="Show how a document splits into paragraphs and batches.",
        help="Show how a document splits into paragraphs and batches.",
    )
    parser.add_argument("document", type=Path, help="DOCX or text document to inspect.")
    parser.add_argument("--config", type=Path, help="Run configuration providing the batch caps.")
    parser.add_argument("--limit", type=int, default=20, help="Paragraphs to list (0 for all).")
    parser.set_defaults(func=paragraphs_cli, command="paragraphs")


def _register_status_command(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    parser = subparsers.add_parser(
        "status",
        description="Print the progress stored in a checkpoint.",
        help="Print the progress stored in a checkpoint.",
    )
    parser.add_argument("checkpoint", type=Path, help="Checkpoint file written by 'extract'.")
    parser.set_defaults(func=status_cli, command="status")


def extract_cli(args: argparse.Namespace) -> int:
    """Execute a fresh extraction run."""

    try:
        config = _build_config(args)
    except (FileNotFoundError, ConfigError) as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1

    driver = ExtractionDriver(config, activity=ActivityLog())
    try:
        driver.load_document(args.document)
    except DocumentParseError:
        return 1

    store = CheckpointStore(args.checkpoint or paths.default_checkpoint_path(args.document))
    return _run_and_save(driver, store, args)


def resume_cli(args: argparse.Namespace) -> int:
    """Restore a checkpoint and keep extracting."""

    try:
        store = CheckpointStore(args.checkpoint)
        checkpoint = store.load()
        config = _build_config(args, fields=checkpoint.extraction_fields)
    except (FileNotFoundError, ConfigError, CheckpointError) as exc:
        print(f"Initialization error: {exc}", file=sys.stderr)
        return 1

    driver = ExtractionDriver(config, activity=ActivityLog())
    driver.restore(checkpoint)
    if driver.stats.status is RunStatus.COMPLETED:
        print("Checkpoint already completed; use 'export' to write the CSV.")
        return 0
    return _run_and_save(driver, store, args)


def export_cli(args: argparse.Namespace) -> int:
    try:
        checkpoint = CheckpointStore(args.checkpoint).load()
        config = load_run_config(args.config).with_overrides(
            extraction_fields=args.fields or checkpoint.extraction_fields
        )
    except (FileNotFoundError, ConfigError, CheckpointError) as exc:
        print(f"Initialization error: {exc}", file=sys.stderr)
        return 1

    if not checkpoint.results:
        print("Checkpoint holds no records to export.", file=sys.stderr)
        return 1

    path = write_results_csv(checkpoint.results, config.extraction_fields, args.output)
    print(f"Wrote {len(checkpoint.results)} records to {path}")
    return 0


def paragraphs_cli(args: argparse.Namespace) -> int:
    """Preview the paragraph split and the batch plan for the configured caps."""

    try:
        config = load_run_config(args.config)
        document = parse_document(args.document)
    except (FileNotFoundError, ConfigError, DocumentParseError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    paragraphs = split_paragraphs(document.text)
    print(f"{len(paragraphs)} paragraphs in {args.document}")
    shown = paragraphs if args.limit <= 0 else paragraphs[: args.limit]
    for index, paragraph in enumerate(shown, start=1):
        preview = paragraph if len(paragraph) <= 60 else paragraph[:57] + "..."
        print(f"  {index:>5}  {len(paragraph):>6} chars  {preview}")
    if len(shown) < len(paragraphs):
        print(f"  ... {len(paragraphs) - len(shown)} more")

    print(
        f"\nBatch plan (batch_size={config.batch_size}, overlap={config.overlap_size}, "
        f"max_characters={config.max_characters}):"
    )
    cursor = 0
    count = 0
    while cursor < len(paragraphs):
        batch = plan_batch(paragraphs, cursor, config.batch_size, config.max_characters)
        count += 1
        print(f"  #{count:<4} {batch.label} ({batch.char_count} chars)")
        cursor = advance_cursor(batch.start, batch.end, len(paragraphs), config.overlap_size)
    return 0


def status_cli(args: argparse.Namespace) -> int:
    try:
        checkpoint = CheckpointStore(args.checkpoint).load()
    except CheckpointError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    stats = checkpoint.stats
    print(f"Source: {checkpoint.source or '(unknown)'}")
    print(f"Status: {stats.status.value}")
    print(
        f"Paragraphs: {stats.processed_paragraphs}/{stats.total_paragraphs} "
        f"({stats.percent_complete:.1f}%)"
    )
    print(f"Records: {stats.extracted_count}")
    if stats.start_time:
        print(f"Started: {stats.start_time.isoformat()}")
    print(f"Saved: {checkpoint.saved_at.isoformat()}")
    if checkpoint.skipped:
        print("Skipped spans:")
        for span in checkpoint.skipped:
            print(f"  paragraphs {span.start + 1}-{span.end}: {span.error}")
    return 0


def _build_config(args: argparse.Namespace, *, fields: Sequence[str] | None = None) -> RunConfig:
    """Merge file config with flags; ``fields`` is the default when no --field is given."""
    config = load_run_config(args.config)
    return config.with_overrides(
        api_key=args.api_key,
        model=args.model,
        batch_size=args.batch_size,
        overlap_size=args.overlap,
        max_characters=args.max_characters,
        extraction_fields=args.fields or fields,
        examples=default_examples() if args.default_examples else None,
    )


def _run_and_save(driver: ExtractionDriver, store: CheckpointStore, args: argparse.Namespace) -> int:
    try:
        with _pause_on_interrupt(driver):
            stats = driver.start()
    except KeyboardInterrupt:
        print("\nInterrupted; the batch in flight will be repeated on resume.", file=sys.stderr)
        stats = driver.stats

    if stats.status not in (RunStatus.COMPLETED, RunStatus.PAUSED):
        return 1

    checkpoint_path = store.save(driver.snapshot())
    print(f"Checkpoint saved to {checkpoint_path}")

    if stats.status is RunStatus.PAUSED:
        print(f"Paused. Continue with: resume {checkpoint_path}")

    if driver.results and (stats.status is RunStatus.COMPLETED or args.export_partial):
        path = write_results_csv(driver.results, driver.config.extraction_fields, args.output)
        print(f"Wrote {len(driver.results)} records to {path}")
    elif not driver.results:
        print("No records extracted.")

    if driver.skipped:
        print(f"{len(driver.skipped)} batch(es) skipped; see 'status {checkpoint_path}'.")
    return 0


@contextmanager
def _pause_on_interrupt(driver: ExtractionDriver) -> Iterator[None]:
    """Turn the first Ctrl-C into a pause request; a second one interrupts the batch."""

    def _handler(signum, frame):  # noqa: ARG001
        print("\nPause requested; finishing the current batch...", file=sys.stderr)
        driver.request_pause()
        signal.signal(signal.SIGINT, signal.default_int_handler)

    previous = signal.signal(signal.SIGINT, _handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)
