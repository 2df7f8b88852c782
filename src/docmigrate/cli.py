"""
Command line interface.

Usage:
    docmigrate init [--directory DIR] [--force]
    docmigrate run MIGRATION_FILE [--env-file .env] [--yes] [--chunk-size N]
                   [--max-retries N] [--log-level LEVEL]

Exit codes:
    0   migration completed, declined by the operator, or nothing to do
    1   configuration, selection, validation, store or write error
    130 cancelled by SIGINT/SIGTERM (a second signal stops immediately)
"""

from __future__ import annotations

import argparse
import asyncio
import importlib.util
import logging
import signal
import sys
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path

from dotenv import load_dotenv

from docmigrate.bulk.writer import BulkWriteProgress, BulkWriter
from docmigrate.cancellation import CancellationToken
from docmigrate.config import CosmosSettings, RunSettings
from docmigrate.confirmation import AutoConfirmation, ConfirmationGate, ConsoleConfirmation
from docmigrate.exceptions import (
    ConfigurationError,
    DocMigrateError,
    MigrationCancelledError,
    MigrationError,
)
from docmigrate.migration import (
    CreateMigration,
    DeleteMigration,
    MigrationEngine,
    MigrationSpec,
    UpdateMigration,
)
from docmigrate.scaffold import write_templates
from docmigrate.stores.cosmos import CosmosDocumentStore
from docmigrate.stores.interface import DocumentStore

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_CANCELLED = 130

MIGRATION_MODULE_NAME = "docmigrate_migration"

StoreFactory = Callable[[CosmosSettings], DocumentStore]


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the ``docmigrate`` command."""
    parser = argparse.ArgumentParser(
        prog="docmigrate",
        description="Bulk create, update or delete documents in a Cosmos DB container.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    init = subparsers.add_parser("init", help="Write .env and migration.py templates")
    init.add_argument(
        "--directory",
        type=Path,
        default=Path.cwd(),
        help="Directory to write the templates to (default: current directory)",
    )
    init.add_argument(
        "--force",
        action="store_true",
        help="Overwrite existing files",
    )

    run = subparsers.add_parser("run", help="Run a migration file")
    run.add_argument("migration_file", type=Path, help="Python file defining `migration`")
    run.add_argument(
        "--env-file",
        type=Path,
        default=Path(".env"),
        help="Environment file to load before reading settings (default: .env)",
    )
    run.add_argument(
        "--yes",
        action="store_true",
        default=None,
        help="Skip the confirmation prompt",
    )
    run.add_argument("--chunk-size", type=int, help="Operations per bulk request (1-100)")
    run.add_argument("--max-retries", type=int, help="Resubmissions allowed per batch")
    run.add_argument(
        "--log-level",
        help="Logging level (default: INFO, or DOCMIGRATE_LOG_LEVEL)",
    )
    return parser


def load_migration(path: Path) -> MigrationSpec:
    """
    Import a migration file and return its ``migration`` attribute.

    Args:
        path: Path to a Python file.

    Returns:
        The MigrationSpec defined by the file.

    Raises:
        ConfigurationError: If the file is missing, fails to execute or defines
            no valid migration.
    """
    if not path.is_file():
        raise ConfigurationError(f"Migration file not found: {path}")

    module_spec = importlib.util.spec_from_file_location(MIGRATION_MODULE_NAME, path)
    if module_spec is None or module_spec.loader is None:
        raise ConfigurationError(f"Cannot import migration file: {path}")
    module = importlib.util.module_from_spec(module_spec)
    # Dataclasses and pickling resolve classes through sys.modules.
    sys.modules[MIGRATION_MODULE_NAME] = module
    try:
        module_spec.loader.exec_module(module)
    except Exception as e:
        sys.modules.pop(MIGRATION_MODULE_NAME, None)
        raise ConfigurationError(
            f"Error while loading migration file {path}: {type(e).__name__}: {e}"
        ) from e

    migration = getattr(module, "migration", None)
    if not isinstance(migration, CreateMigration | UpdateMigration | DeleteMigration):
        raise ConfigurationError(
            f"{path} must define `migration` as a CreateMigration, UpdateMigration "
            f"or DeleteMigration, got {type(migration).__name__}"
        )
    return migration


def _log_progress(progress: BulkWriteProgress) -> None:
    logger.info(
        "Batch %d/%d committed (%.1f%%)",
        progress.batch_index + 1,
        progress.batches_total,
        progress.progress_percent,
        extra={
            "batch_index": progress.batch_index,
            "operations_written": progress.operations_written,
        },
    )


def _handle_signal(token: CancellationToken, task: asyncio.Task[int], sig: signal.Signals) -> None:
    """
    First signal: stop after the request in flight. Second signal: stop now.
    """
    if token.is_cancelled:
        logger.warning(
            "Received second %s, forcing exit",
            sig.name,
            extra={"signal": sig.name},
        )
        task.cancel()
        return

    logger.warning(
        "Received %s, stopping after the current request (send again to force exit)",
        sig.name,
        extra={"signal": sig.name},
    )
    token.cancel(sig.name)


def _register_signals(token: CancellationToken) -> list[signal.Signals]:
    loop = asyncio.get_running_loop()
    task = asyncio.current_task()
    registered = []
    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, _handle_signal, token, task, sig)
            registered.append(sig)
        except NotImplementedError:
            logger.warning(
                "Signal handling not supported on this platform",
                extra={"signal": sig.name},
            )
    return registered


def _unregister_signals(signals: Sequence[signal.Signals]) -> None:
    loop = asyncio.get_running_loop()
    for sig in signals:
        loop.remove_signal_handler(sig)


async def run_migration(
    spec: MigrationSpec,
    cosmos: CosmosSettings,
    settings: RunSettings,
    *,
    store_factory: StoreFactory = CosmosDocumentStore.from_settings,
    confirmation: ConfirmationGate | None = None,
    cancellation: CancellationToken | None = None,
) -> int:
    """
    Run ``spec`` against the configured store and map the result to an exit code.

    Args:
        spec: Migration to run.
        cosmos: Store connection settings.
        settings: Run tuning settings.
        store_factory: Builds the store from connection settings.
        confirmation: Gate to use; defaults from ``settings.assume_yes``.
        cancellation: Token to cancel the run; one wired to SIGINT/SIGTERM
            is created when omitted.

    Returns:
        Process exit code.
    """
    gate = confirmation or (AutoConfirmation() if settings.assume_yes else ConsoleConfirmation())
    token = cancellation or CancellationToken()
    registered = _register_signals(token) if cancellation is None else []

    try:
        async with store_factory(cosmos) as store:
            writer = BulkWriter(
                store,
                chunk_size=settings.chunk_size,
                retry_policy=settings.retry_policy(),
            )
            engine = MigrationEngine(store, gate, writer=writer)
            outcome = await engine.run(spec, cancellation=token, progress_callback=_log_progress)
    except MigrationCancelledError as e:
        logger.warning("%s", e, extra=e.to_dict())
        return EXIT_CANCELLED
    except asyncio.CancelledError:
        if not token.is_cancelled:
            raise
        current = asyncio.current_task()
        if current is not None:
            current.uncancel()
        logger.warning("Migration stopped immediately", extra={"reason": token.reason})
        return EXIT_CANCELLED
    except MigrationError as e:
        logger.error("Migration failed: %s", e, extra=e.to_dict())
        return EXIT_ERROR
    except DocMigrateError as e:
        logger.error("Migration failed: %s", e, extra={"error_type": type(e).__name__})
        return EXIT_ERROR
    finally:
        if registered:
            _unregister_signals(registered)

    if outcome.wrote_documents:
        logger.info(
            "%s migration wrote %d operations",
            outcome.operation_type.label,
            outcome.write_result.operations_written,
            extra=outcome.to_dict(),
        )
    else:
        logger.info(
            "%s migration wrote nothing (%s)",
            outcome.operation_type.label,
            outcome.status.value,
            extra=outcome.to_dict(),
        )
    return outcome.exit_code


def _run_command(args: argparse.Namespace, environ: Mapping[str, str] | None) -> int:
    if args.env_file.is_file():
        load_dotenv(args.env_file, override=False)

    settings = RunSettings.from_env(
        environ=environ,
        chunk_size=args.chunk_size,
        max_retries=args.max_retries,
        assume_yes=args.yes,
        log_level=args.log_level,
    )
    logging.getLogger().setLevel(settings.logging_level)

    cosmos = CosmosSettings.from_env(environ=environ)
    spec = load_migration(args.migration_file)
    return asyncio.run(run_migration(spec, cosmos, settings))


def main(argv: Sequence[str] | None = None, environ: Mapping[str, str] | None = None) -> int:
    """
    Entry point for the ``docmigrate`` command.

    Args:
        argv: Command line arguments (defaults to ``sys.argv[1:]``).
        environ: Environment to read settings from (defaults to ``os.environ``).

    Returns:
        Process exit code.
    """
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        if args.command == "init":
            for path in write_templates(args.directory, force=args.force):
                print(f"Created {path}")
            return EXIT_OK
        return _run_command(args, environ)
    except ConfigurationError as e:
        logger.error("%s", e)
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
