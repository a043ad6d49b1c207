"""Command-line interface."""

import argparse
import signal
import sys
from types import FrameType
from typing import TYPE_CHECKING

from . import __version__

if TYPE_CHECKING:
    from .pipeline import PipelineResults


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        description="Sustainity Knowledge Base Pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  sustainity-kg run --config config/default.yaml --debug
  sustainity-kg run --dump latest-all.json.gz --store store/ --workers 8
  sustainity-kg export --store store/ --output records.jsonl
        """,
    )

    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    run_parser = subparsers.add_parser("run", help="Run the pipeline")
    run_parser.add_argument("--config", "-c", type=str, help="Configuration file path")
    run_parser.add_argument(
        "--dump", type=str, help="Dump file to read instead of the configured sources"
    )
    run_parser.add_argument("--store", type=str, help="Store directory")
    run_parser.add_argument("--workers", type=int, help="Number of builder threads")
    run_parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable DEBUG level logging",
    )

    export_parser = subparsers.add_parser(
        "export", help="Export a published dataset as JSON lines"
    )
    export_parser.add_argument(
        "--store", type=str, required=True, help="Store directory"
    )
    export_parser.add_argument(
        "--output", "-o", type=str, required=True, help="Output file path"
    )
    export_parser.add_argument(
        "--dataset-version", type=int, help="Dataset version (default: published)"
    )

    return parser


def _print_success_summary(results: "PipelineResults") -> None:
    """Print pipeline success summary."""
    print("Pipeline completed successfully!")
    print(
        f"Processed {results['processed']} entities "
        f"({results['skipped']} unchanged, {results['irrelevant']} irrelevant)"
    )
    print(
        f"Published {results['records']} records as version "
        f"{results['dataset_version']}"
    )
    print(
        f"Issues: {results['parse_errors']} parse errors, "
        f"{results['ambiguous']} ambiguous, {results['incomplete']} incomplete, "
        f"{results['unresolved']} unresolved relations, "
        f"{results['merge_conflicts']} merge conflicts, "
        f"{results['worker_errors']} worker errors"
    )

    duration = results.get("duration")
    if duration is not None:
        print(f"Duration: {duration:.2f} seconds")


def _print_failure_summary(results: "PipelineResults") -> None:
    """Print pipeline failure summary."""
    if results["interrupted"]:
        print("Pipeline interrupted; rerun to resume.", file=sys.stderr)
        return

    print("Pipeline failed:", file=sys.stderr)

    error = results.get("error")
    if error:
        print(f"Error: {error}", file=sys.stderr)


def run_pipeline(args: argparse.Namespace) -> int:
    """Run the pipeline."""
    from .config import PipelineConfig, load_config
    from .errors import ConfigError
    from .pipeline import Pipeline, build_config

    try:
        if args.dump:
            config = build_config(
                args.dump, args.store or "store", workers=args.workers
            )
        else:
            config = load_config(args.config) if args.config else PipelineConfig()
            if args.store:
                config.store.path = args.store
            if args.workers:
                config.processing.workers = args.workers
    except ConfigError as e:
        print(f"Failed to load configuration: {e}", file=sys.stderr)
        return 1

    if getattr(args, "debug", False):
        config.logging.level = "DEBUG"

    try:
        pipeline = Pipeline(config)
    except ConfigError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 1

    def _interrupt(signum: int, frame: FrameType | None) -> None:
        pipeline.request_shutdown()

    signal.signal(signal.SIGINT, _interrupt)
    signal.signal(signal.SIGTERM, _interrupt)

    results = pipeline.run()

    if results["success"]:
        _print_success_summary(results)
        return 0
    else:
        _print_failure_summary(results)
        return 130 if results["interrupted"] else 1


def export_dataset(args: argparse.Namespace) -> int:
    """Export a published dataset."""
    from .errors import StoreError
    from .export import export_jsonl
    from .store import LmdbStore

    try:
        with LmdbStore(args.store, readonly=True) as store:
            count = export_jsonl(store, args.output, version=args.dataset_version)
    except StoreError as e:
        print(f"Export failed: {e}", file=sys.stderr)
        return 1

    print(f"Exported {count} records to {args.output}")
    return 0


def main() -> int:
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 1

    handlers = {
        "run": run_pipeline,
        "export": export_dataset,
    }

    handler = handlers.get(args.command)
    if handler:
        return handler(args)
    else:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
