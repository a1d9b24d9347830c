"""Command line entry point for the agent digest mailer."""

from dotenv import load_dotenv
load_dotenv()

import argparse
import signal
import sys
import threading
import time
from pathlib import Path
from typing import List, Optional, Tuple

from agent_digest.config.environment import EnvironmentConfig
from agent_digest.config.exceptions import ConfigurationError
from agent_digest.config.loader import load_config, validate_config_file
from agent_digest.config.models import AppConfig, RunConfig
from agent_digest.digest.translations import YamlTranslationLoader
from agent_digest.dispatch import Dispatcher, DispatchRunResult, RunState
from agent_digest.logging import get_logger
from agent_digest.logging.config import configure_logging
from agent_digest.notifications.service import NotificationService
from agent_digest.persistence.database import close_database, init_database
from agent_digest.scheduler import SchedulerService
from agent_digest.search.gateway import SearchGateway

logger = get_logger(__name__, component="cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="agent-digest",
        description="Send the daily digest of new listings to search agent subscribers",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: config.yaml or config/config.yaml)",
    )
    parser.add_argument(
        "-f",
        "--force",
        action="store_true",
        help="Send digests even when ENVIRONMENT is not production",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (overrides config and environment)",
    )
    parser.add_argument(
        "--daemon",
        action="store_true",
        help="Stay running and send digests daily at schedule.send_time (UTC)",
    )
    parser.add_argument(
        "--validate-config",
        action="store_true",
        help="Validate the configuration file and exit",
    )
    return parser


def load_runtime_config(
    config_path: Optional[Path], log_level_override: Optional[str]
) -> Tuple[AppConfig, EnvironmentConfig]:
    """
    Load configuration and settle the effective log level.

    Priority: CLI flag > LOG_LEVEL environment variable > config file.

    Raises:
        ConfigurationError: If configuration is invalid
    """
    app_config, env_config = load_config(config_path)

    if log_level_override:
        env_config.log_level = log_level_override
    elif not env_config.log_level:
        env_config.log_level = app_config.logging.level

    env_config.log_level = str(env_config.log_level).upper()
    return app_config, env_config


def build_dispatcher(
    app_config: AppConfig, env_config: EnvironmentConfig, force: bool
) -> Dispatcher:
    run_config = RunConfig(
        environment=env_config.environment,
        force=force,
        domain=app_config.domain,
    )
    return Dispatcher(
        run_config=run_config,
        app_config=app_config,
        env_config=env_config,
        translation_loader=YamlTranslationLoader(app_config.locale_dir),
        search_gateway=SearchGateway(app_config.search),
        notification_service=NotificationService(),
    )


def exit_code_for(result: DispatchRunResult) -> int:
    """0 for completed or gated runs, 1 for aborted runs."""
    return 1 if result.state == RunState.ABORTED else 0


def run_daemon(dispatcher: Dispatcher, app_config: AppConfig) -> int:
    shutdown_event = threading.Event()
    scheduler_service = SchedulerService(
        run_callable=dispatcher.run,
        hour=app_config.schedule.hour,
        minute=app_config.schedule.minute,
        shutdown_event=shutdown_event,
    )

    def signal_handler(signum, frame):
        logger.info(
            f"Received signal {signum}, shutting down",
            extra={"event": "service.signal_received", "signal": signum},
        )
        dispatcher.request_stop()
        scheduler_service.shutdown(wait=False)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    scheduler_service.start()
    logger.info(
        "Scheduler started. Press Ctrl+C to stop",
        extra={"event": "service.daemon_mode.started"},
    )

    shutdown_event.wait()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point.

    Returns:
        Exit code: 0 for completed or gated runs, 1 for aborted runs,
        configuration errors and fatal errors.
    """
    start_time = time.time()
    args = build_parser().parse_args(argv)

    if args.validate_config:
        config_path = args.config or Path("config.yaml")
        return 0 if validate_config_file(config_path) else 1

    try:
        app_config, env_config = load_runtime_config(args.config, args.log_level)

        configure_logging(
            level=env_config.log_level,
            format_type=app_config.logging.format,
            environment=env_config.environment,
        )

        logger.info(
            "Agent digest starting",
            extra={
                "event": "service.starting",
                "domain": app_config.domain.name,
                "environment": env_config.environment,
                "force": args.force,
                "daemon": args.daemon,
            },
        )

        init_database(env_config.database_url)
        dispatcher = build_dispatcher(app_config, env_config, args.force)

        try:
            if args.daemon:
                exit_code = run_daemon(dispatcher, app_config)
            else:
                exit_code = exit_code_for(dispatcher.run())
        finally:
            close_database()

        logger.info(
            "Agent digest stopped",
            extra={
                "event": "service.stopping",
                "uptime_seconds": round(time.time() - start_time, 2),
                "exit_code": exit_code,
            },
        )
        return exit_code

    except ConfigurationError as e:
        print(f"Configuration Error: {e}", file=sys.stderr)
        logger.error(
            f"Configuration error: {e}",
            extra={"event": "config.error", "error_type": "ConfigurationError"},
        )
        return 1
    except KeyboardInterrupt:
        print("\nShutdown requested by user", file=sys.stderr)
        return 0
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        logger.critical(
            "Fatal error",
            exc_info=True,
            extra={"event": "service.fatal", "error_type": type(e).__name__},
        )
        return 1


if __name__ == "__main__":
    sys.exit(main())
