"""Command line entry point for container migration."""

import argparse
import asyncio
import os
import sys

from .core.config_loader import CMTConfig, load_config
from .core.exceptions import CMTError, ConfigurationError, MigrationStepError, ValidationError
from .core.logging_config import get_cli_logger, setup_logging
from .core.migration import MigrationOrchestrator
from .core.validation import EndpointValidator
from .models.migration import MigrationOutcome


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(prog="cmt", description="Container Migration Tool")
    parser.add_argument(
        "--log-level",
        default=os.getenv("LOG_LEVEL", "INFO"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )
    parser.add_argument("--log-dir", default=os.getenv("LOG_DIR"), help="Directory for cmt.log")
    parser.add_argument("--config", default=None, help="Hosts configuration file path")

    subparsers = parser.add_subparsers(dest="command", required=True)
    migrate = subparsers.add_parser("migrate", help="Migrate running container")
    migrate.add_argument("--src", required=True, help="Source host where the container is running")
    migrate.add_argument("--dst", required=True, help="Target host to migrate the container")
    migrate.add_argument(
        "--pre-dump", action="store_true", help="Perform a pre-dump to minimize downtime"
    )
    migrate.add_argument(
        "--poll-interval", type=float, default=None, help="Liveness polling interval in seconds"
    )
    migrate.add_argument(
        "--restore-timeout",
        type=float,
        default=None,
        help="Seconds to wait for the restored container before giving up",
    )

    return parser.parse_args(argv)


async def run_migration(args: argparse.Namespace, config: CMTConfig) -> MigrationOutcome:
    """Validate endpoints, then migrate."""
    validator = EndpointValidator(config)
    plan = await validator.build_plan(args.src, args.dst, args.pre_dump)
    orchestrator = MigrationOrchestrator(settings=config.migration)
    return await orchestrator.migrate(plan)


def _apply_overrides(args: argparse.Namespace, config: CMTConfig) -> None:
    overrides = {}
    if args.poll_interval is not None:
        if args.poll_interval <= 0:
            raise ConfigurationError("--poll-interval must be positive")
        overrides["poll_interval"] = args.poll_interval
    if args.restore_timeout is not None:
        if args.restore_timeout <= 0:
            raise ConfigurationError("--restore-timeout must be positive")
        overrides["restore_timeout"] = args.restore_timeout
    if overrides:
        config.migration = config.migration.model_copy(update=overrides)


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    setup_logging(log_dir=args.log_dir, log_level=args.log_level)
    logger = get_cli_logger()

    try:
        config = load_config(args.config)
        _apply_overrides(args, config)
        outcome = asyncio.run(run_migration(args, config))
    except ConfigurationError as e:
        logger.error("Configuration error", error=str(e))
        return 2
    except ValidationError as e:
        logger.error("Validation failed", error=str(e))
        return 1
    except MigrationStepError as e:
        progress = e.progress
        logger.error(
            "Migration aborted",
            step=e.step,
            error=str(e),
            completed_steps=progress.completed_steps if progress else [],
            source_container_stopped=progress.source_container_stopped if progress else None,
        )
        return 1
    except CMTError as e:
        logger.error("Migration failed", error=str(e))
        return 1
    except KeyboardInterrupt:
        logger.warning("Migration interrupted")
        return 130

    if not outcome.succeeded:
        logger.error(
            "Restore failed",
            error=str(outcome.failure_cause),
            downtime_ms=outcome.downtime_ms,
        )
        return 1
    logger.info("Restore finished successfully", downtime_ms=outcome.downtime_ms)
    return 0


if __name__ == "__main__":
    sys.exit(main())
