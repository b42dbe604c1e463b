"""
Command-line follower for a single job.

This worker:
- Loads the client configuration from config files and environment
- Opens a live view of the named job
- Prints phases and section transitions (or the raw log with --raw) as they happen
- Reconnects automatically when the stream drops
- Exits non-zero if the job finished unsuccessfully
- Supports graceful shutdown on SIGINT/SIGTERM
"""

import argparse
import asyncio
import logging
import signal
import sys
from typing import NoReturn, TextIO

from src.core.config.loader import ClientConfig, load_client_config
from src.core.models import ListenLogMode, SectionStatus
from src.core.services.job_view import JobView
from src.core.transport.base import BaseTransport
from src.core.transport.exceptions import NotFoundError, TransportError
from src.core.transport.http import HttpTransport

logger = logging.getLogger(__name__)

# Global event for graceful shutdown
shutdown_event = asyncio.Event()

EXIT_OK = 0
EXIT_JOB_FAILED = 1
EXIT_ERROR = 2

STATUS_MARKS = {
    SectionStatus.DONE: "ok",
    SectionStatus.FAILED: "FAILED",
    SectionStatus.UNKNOWN: "?",
}


def load_follower_config() -> ClientConfig:
    """
    Load follower configuration from environment variables and config files.

    Environment variables take precedence over config files.

    Returns:
        Client configuration.
    """
    return load_client_config()


def setup_logging(log_level: str) -> None:
    """
    Configure logging for the follower.

    Logs go to stderr so they never mix with the printed job output.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )


def handle_signal(signum: int, frame: object) -> None:
    """
    Handle SIGINT/SIGTERM for graceful shutdown.

    Args:
        signum: Signal number.
        frame: Current stack frame.
    """
    signal_name = signal.Signals(signum).name
    logger.info(f"Received signal {signal_name}, shutting down gracefully...")
    shutdown_event.set()


class ProgressPrinter:
    """
    Observer that prints what changed in a JobView since the last call.

    Everything printed is remembered, so a reconnect that replays the log
    from the start prints nothing twice.
    """

    def __init__(
        self,
        raw: bool = False,
        show_internal: bool = False,
        out: TextIO | None = None,
    ) -> None:
        self.raw = raw
        self.show_internal = show_internal
        self.out = out or sys.stdout
        self._phases: set[str] = set()
        self._statuses: dict[tuple[str, str], SectionStatus] = {}
        self._raw_printed = 0

    def __call__(self, view: JobView) -> None:
        if self.raw:
            self._print_raw(view)
        else:
            self._print_tree(view)

    def _print_raw(self, view: JobView) -> None:
        lines = view.logs.raw_lines(self.show_internal)
        for line in lines[self._raw_printed:]:
            self._emit(line)
        self._raw_printed = max(self._raw_printed, len(lines))

    def _print_tree(self, view: JobView) -> None:
        for phase, sections in view.tree():
            if phase.name not in self._phases:
                self._phases.add(phase.name)
                title = f"{phase.name}: {phase.description}" if phase.description else phase.name
                self._emit(f"== {title}")

            for section in sections:
                previous = self._statuses.get(section.key)
                if previous is None:
                    self._emit(f"  > {section.name}")
                if section.status != SectionStatus.RUNNING and section.status != previous:
                    detail = ""
                    if section.status == SectionStatus.FAILED and section.last_line:
                        detail = f": {section.last_line}"
                    self._emit(f"  {STATUS_MARKS[section.status]} {section.name}{detail}")
                self._statuses[section.key] = section.status

    def _emit(self, line: str) -> None:
        print(line, file=self.out, flush=True)


def exit_code_for(view: JobView) -> int:
    """Map the final state of a view to a process exit code."""
    if view.status is None or view.connection_lost:
        return EXIT_ERROR
    if view.finished and not view.status.conditions.success:
        return EXIT_JOB_FAILED
    return EXIT_OK


async def follow_job(
    config: ClientConfig,
    name: str,
    raw: bool = False,
    show_internal: bool = False,
    transport: BaseTransport | None = None,
    out: TextIO | None = None,
    poll_interval: float = 0.2,
) -> int:
    """
    Follow a job until its stream ends, it fails for good, or shutdown.

    Args:
        config: Client configuration.
        name: Job name.
        raw: Print the raw log instead of phase and section transitions.
        show_internal: Include internal status lines in the raw log.
        transport: Transport to use; an HttpTransport is built when omitted.
        out: Where job output is printed (stdout by default).
        poll_interval: Seconds between checks of the stream state.

    Returns:
        Process exit code.
    """
    owns_transport = transport is None
    if transport is None:
        transport = HttpTransport(config.transport)

    view = JobView(
        transport,
        name,
        log_mode=ListenLogMode(config.log_mode),
        internal_prefixes=config.logs.internal_prefixes,
        debounce_interval=config.logs.debounce_interval,
        retry_delay=config.subscription.retry_delay,
        max_retries=config.subscription.max_retries,
    )
    printer = ProgressPrinter(raw=raw, show_internal=show_internal, out=out)
    view.subscribe(printer)

    try:
        try:
            await view.open()
        except NotFoundError:
            logger.error(f"Job {name} not found")
            return EXIT_ERROR
        except TransportError as e:
            logger.error(f"Cannot load job {name}: {e}")
            return EXIT_ERROR

        logger.info(f"Following job {name} (phase {view.status.phase})")

        while not shutdown_event.is_set() and view.subscription.active:
            await asyncio.sleep(poll_interval)

        view.flush()
        printer(view)

        if view.connection_lost:
            logger.error(f"Lost connection to job {name}: {view.subscription.last_status}")
        elif view.finished:
            outcome = "succeeded" if view.status.conditions.success else "failed"
            logger.info(f"Job {name} {outcome}")

        return exit_code_for(view)
    finally:
        view.close()
        if owns_transport:
            await transport.close()


async def main_async(args: argparse.Namespace) -> int:
    """
    Async entrypoint for the follower.

    Loads configuration, installs signal handlers and follows the job.
    """
    config = load_follower_config()
    setup_logging(config.log_level)

    logger.debug(f"Configuration: {config}")

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    return await follow_job(
        config,
        args.name,
        raw=args.raw,
        show_internal=args.show_internal,
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Follow a job's status and log output",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  jobwatch-follow werft-main.12                  Print phases and sections
  jobwatch-follow werft-main.12 --raw            Print the raw log
  jobwatch-follow werft-main.12 --raw --show-internal
        """,
    )
    parser.add_argument("name", help="Name of the job to follow")
    parser.add_argument(
        "--raw",
        action="store_true",
        help="Print raw log lines instead of phase and section transitions",
    )
    parser.add_argument(
        "--show-internal",
        action="store_true",
        help="Include internal status lines in raw output",
    )
    return parser.parse_args(argv)


def main() -> NoReturn:
    """
    Main entrypoint for the follower.

    This is the synchronous wrapper that starts the async event loop.
    """
    args = parse_args()
    try:
        exit_code = asyncio.run(main_async(args))
    except SystemExit:
        raise
    except Exception as e:
        logger.critical(f"Fatal error: {e}", exc_info=True)
        sys.exit(EXIT_ERROR)

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
