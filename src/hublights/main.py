"""Application entry point for HubLights."""

from __future__ import annotations

import argparse
import logging
import sys
import threading
from concurrent.futures import CancelledError
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Callable, Dict, Iterable, Optional, Sequence

from .cli import parse_args
from .config import Settings, load_settings
from .errors import ConfigurationError
from .github_client import FetchHandle, StatusFetcher
from .models import DecodeFailed, FetchFailed, TargetConfiguration, store_minimal
from .monitor import StatusMonitor
from .persistence import JsonFileStore
from .poller import StatusPoller
from .report import generate_report

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_UNEXPECTED = 1
EXIT_CONFIGURATION = 2
EXIT_CHECK_FAILED = 4

Command = Callable[[StatusMonitor, argparse.Namespace, Settings], int]


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def resolve_target_id(monitor: StatusMonitor, reference: str) -> str:
    """Resolve a full target id or a unique id prefix.

    Raises:
        ConfigurationError: If nothing, or more than one target, matches.
    """
    ids = [target.id for target in monitor.list_targets()]
    if reference in ids:
        return reference

    matches = [target_id for target_id in ids if target_id.startswith(reference)]
    if len(matches) == 1:
        return matches[0]
    if not matches:
        raise ConfigurationError(f"No target matches '{reference}'.")
    raise ConfigurationError(f"Target reference '{reference}' is ambiguous ({len(matches)} matches).")


def apply_target_edits(target: TargetConfiguration, args: argparse.Namespace) -> None:
    """Apply field edits from ``add``/``set`` arguments; empty strings clear a field."""
    for name in ("org", "repo", "branch"):
        value = getattr(args, name)
        if value is not None:
            setattr(target, name, store_minimal(value.strip(), ""))

    if args.title is not None:
        target.title_defaulted = args.title
    if args.interval is not None:
        target.check_interval_defaulted = args.interval
    if args.enabled is not None:
        target.enabled_defaulted = args.enabled


def _print_targets(monitor: StatusMonitor, target_ids: Optional[Iterable[str]] = None) -> None:
    targets = monitor.list_targets()
    if target_ids is not None:
        wanted = set(target_ids)
        targets = [target for target in targets if target.id in wanted]
    statuses = [monitor.get_status(target.id) for target in targets]
    print(generate_report(targets, statuses))


def _wait_for(handles: Dict[str, FetchHandle], timeout: float) -> None:
    for target_id, handle in handles.items():
        try:
            handle.result(timeout=timeout)
        except FutureTimeoutError:
            logger.warning("Timed out waiting for status check", extra={"target_id": target_id})
            handle.cancel()
        except CancelledError:
            logger.debug("Status check was cancelled", extra={"target_id": target_id})


def _cmd_list(monitor: StatusMonitor, args: argparse.Namespace, settings: Settings) -> int:
    _print_targets(monitor)
    return EXIT_OK


def _cmd_add(monitor: StatusMonitor, args: argparse.Namespace, settings: Settings) -> int:
    has_location = any(getattr(args, name) for name in ("org", "repo", "branch"))
    target = TargetConfiguration() if has_location else TargetConfiguration.new()
    apply_target_edits(target, args)
    monitor.add_target(target)
    monitor.save()
    print(f"Added {target.id} ({target.list_item_title or '(untitled)'})")
    return EXIT_OK


def _cmd_remove(monitor: StatusMonitor, args: argparse.Namespace, settings: Settings) -> int:
    target_ids = [resolve_target_id(monitor, reference) for reference in args.targets]
    removed = monitor.remove_targets(target_ids)
    monitor.save()
    print(f"Removed {len(removed)} target(s).")
    return EXIT_OK


def _cmd_move(monitor: StatusMonitor, args: argparse.Namespace, settings: Settings) -> int:
    target_id = resolve_target_id(monitor, args.target)
    ids = [target.id for target in monitor.list_targets()]
    offset = ids.index(target_id)
    position = min(args.position, len(ids) - 1)
    # list-move destinations count positions before removal
    destination = position + 1 if position > offset else position
    monitor.move_targets([offset], destination)
    monitor.save()
    _print_targets(monitor)
    return EXIT_OK


def _cmd_set(monitor: StatusMonitor, args: argparse.Namespace, settings: Settings) -> int:
    target_id = resolve_target_id(monitor, args.target)
    target = monitor.get_target(target_id)
    apply_target_edits(target, args)
    monitor.update_target(target_id, target)
    monitor.save()
    _print_targets(monitor, [target_id])
    return EXIT_OK


def _check_exit_code(monitor: StatusMonitor, target_ids: Iterable[str]) -> int:
    for target_id in target_ids:
        if isinstance(monitor.get_status(target_id), (DecodeFailed, FetchFailed)):
            return EXIT_CHECK_FAILED
    return EXIT_OK


def _cmd_check(monitor: StatusMonitor, args: argparse.Namespace, settings: Settings) -> int:
    if args.targets:
        handles: Dict[str, FetchHandle] = {}
        for reference in args.targets:
            target_id = resolve_target_id(monitor, reference)
            handle = monitor.check_now(target_id)
            if handle is None:
                print(f"Skipping {target_id}: no organization configured.", file=sys.stderr)
                continue
            handles[target_id] = handle
    else:
        handles = monitor.check_all()
        if not handles:
            print("No enabled repositories to check.")
            return EXIT_OK

    _wait_for(handles, timeout=settings.timeout_seconds + 5)
    monitor.save()
    _print_targets(monitor, handles)
    return _check_exit_code(monitor, handles)


def _cmd_watch(monitor: StatusMonitor, args: argparse.Namespace, settings: Settings) -> int:
    finished = threading.Event()
    ticks = {"count": 0}

    def on_tick(started: Dict[str, FetchHandle]) -> None:
        if started:
            _wait_for(started, timeout=settings.timeout_seconds + 5)
            monitor.save()
            _print_targets(monitor, started)
        ticks["count"] += 1
        if args.cycles is not None and ticks["count"] >= args.cycles:
            finished.set()

    poller = StatusPoller(monitor, tick_seconds=args.tick, on_tick=on_tick)
    poller.start()
    try:
        while not finished.wait(timeout=args.tick):
            if not poller.is_running():
                logger.warning("Poller stopped unexpectedly")
                return EXIT_UNEXPECTED
    except KeyboardInterrupt:
        print("Stopping.")
    finally:
        poller.stop()
        poller.join(timeout=settings.timeout_seconds + 5)
    return EXIT_OK


COMMANDS: Dict[str, Command] = {
    "list": _cmd_list,
    "add": _cmd_add,
    "remove": _cmd_remove,
    "move": _cmd_move,
    "set": _cmd_set,
    "check": _cmd_check,
    "watch": _cmd_watch,
}


def run(argv: Optional[Sequence[str]] = None) -> int:
    """Run one CLI command and map failures to exit codes.

    Returns:
        ``0`` on success, ``2`` for configuration problems, ``4`` when a
        checked target failed, and ``1`` for unexpected errors.
    """
    args = parse_args(argv)
    _configure_logging(args.verbose)

    try:
        settings = load_settings(
            storage_path=args.storage,
            timeout_seconds=args.timeout,
            max_workers=args.workers,
        )
        monitor = StatusMonitor(StatusFetcher(settings), storage=JsonFileStore(settings.storage_path))
        monitor.load()
        try:
            return COMMANDS[args.command](monitor, args, settings)
        finally:
            monitor.close()
    except ConfigurationError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_CONFIGURATION
    except Exception as exc:
        logger.exception("Unexpected failure")
        print(f"ERROR: Unexpected failure: {exc}", file=sys.stderr)
        return EXIT_UNEXPECTED


def main() -> None:
    raise SystemExit(run())


if __name__ == "__main__":
    main()
