#!/usr/bin/env python3
"""
StepChain CLI

Command-line interface for running chains and inspecting configuration.

Usage:
    stepchain run <module:factory> [--payload '{"key": "value"}'] [--scheduler inline|queue|asyncio]
    stepchain run path/to/chains.py:build_orders --json
    stepchain config
    stepchain version

A factory is any callable accepting (payload, scheduler) keyword arguments
and returning an unstarted Chain.
"""

import argparse
import asyncio
import importlib
import importlib.util
import json
import sys
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

EXIT_FULFILLED = 0
EXIT_REJECTED = 1
EXIT_ERROR = 2


def _load_factory(target: str) -> Callable[..., Any]:
    """
    Resolve "module:attr" or "path/to/file.py:attr" to a callable.

    Uses importlib.util for file paths (no sys.path manipulation).
    """
    module_ref, sep, attr = target.rpartition(":")
    if not sep or not module_ref or not attr:
        raise ValueError(f"Expected MODULE:FACTORY, got '{target}'")

    if module_ref.endswith(".py") or Path(module_ref).exists():
        file_path = Path(module_ref).resolve()
        spec = importlib.util.spec_from_file_location(file_path.stem, file_path)
        if spec is None or spec.loader is None:
            raise ImportError(f"Cannot load chain definitions from {file_path}")
        module = importlib.util.module_from_spec(spec)
        sys.modules[file_path.stem] = module
        spec.loader.exec_module(module)
    else:
        module = importlib.import_module(module_ref)

    factory = getattr(module, attr, None)
    if not callable(factory):
        raise AttributeError(f"'{attr}' in {module_ref} is not a callable chain factory")
    return factory


def _drive(chain: Any, scheduler: Any, kind: str, timeout: float | None) -> None:
    """Execute the chain with the given scheduler until it settles or stalls."""
    from stepchain.schedulers import AsyncioScheduler, QueueScheduler

    if kind == "asyncio" and isinstance(scheduler, AsyncioScheduler):
        asyncio.run(scheduler.run(chain, timeout=timeout))
        return

    chain.execute()
    if isinstance(scheduler, QueueScheduler):
        scheduler.run_all()


# =============================================================================
# COMMANDS
# =============================================================================


def cmd_run(args: argparse.Namespace) -> int:
    """Build a chain from a factory, run it and report the outcome."""
    from stepchain.config import get_config
    from stepchain.core.chain import Chain
    from stepchain.core.errors import ChainError
    from stepchain.schedulers import create_scheduler

    payload: Any = None
    if args.payload:
        try:
            payload = json.loads(args.payload)
        except json.JSONDecodeError as e:
            print(f"Error parsing --payload JSON: {e}", file=sys.stderr)
            return EXIT_ERROR

    kind = args.scheduler or get_config().default_scheduler

    try:
        factory = _load_factory(args.target)
        scheduler = create_scheduler(kind)
        chain = factory(payload=payload, scheduler=scheduler)
    except (ImportError, AttributeError, ValueError, TypeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR

    if not isinstance(chain, Chain):
        print(f"Error: factory returned {type(chain).__name__}, expected Chain", file=sys.stderr)
        return EXIT_ERROR

    if not args.json:
        print(f"\n{'═' * 60}")
        print(f"  Running: {chain.name} ({len(chain.steps)} steps, scheduler={kind})")
        print(f"{'═' * 60}\n")

    start_time = time.perf_counter()
    try:
        _drive(chain, scheduler, kind, args.timeout)
    except asyncio.TimeoutError:
        print(f"Error: chain still pending after {args.timeout}s", file=sys.stderr)
        return EXIT_ERROR
    except ChainError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR
    except Exception as e:
        print(f"Error: {type(e).__name__}: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc()
        return EXIT_ERROR
    duration = (time.perf_counter() - start_time) * 1000

    result = chain.to_dict()
    result["duration_ms"] = round(duration, 2)

    if args.json:
        print(json.dumps(result, indent=2, default=str))
    else:
        print(f"\n{'═' * 60}")
        print(f"  Result: {chain.state.value.upper()}")
        print(f"  Duration: {duration:.2f}ms")
        print(f"  Steps run: {chain.steps_run}/{len(chain.steps)}")
        print(f"  Outcome: {chain.outcome()!r}")
        print(f"{'═' * 60}\n")

    if chain.is_fulfilled():
        return EXIT_FULFILLED
    if chain.is_rejected():
        return EXIT_REJECTED
    print("Error: chain stalled (a step never settled its resolver)", file=sys.stderr)
    return EXIT_ERROR


def cmd_config(args: argparse.Namespace) -> int:
    """Print the effective configuration."""
    from stepchain.config import get_config

    print(json.dumps(get_config().to_safe_dict(), indent=2))
    return 0


def cmd_version(args: argparse.Namespace) -> int:
    from stepchain import __version__

    print(f"stepchain {__version__}")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="stepchain",
        description="StepChain CLI - Sequential Asynchronous Chain Orchestration",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  stepchain run myapp.chains:build_orders --payload '{"order_id": 42}'
  stepchain run ./chains.py:build_orders --scheduler asyncio --timeout 30
  stepchain config
        """,
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable debug logging"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    run_parser = subparsers.add_parser("run", help="Run a chain built by a factory")
    run_parser.add_argument("target", help="MODULE:FACTORY or path/to/file.py:FACTORY")
    run_parser.add_argument("--payload", "-p", help="Initial payload as JSON")
    run_parser.add_argument(
        "--scheduler", "-s", choices=["inline", "queue", "asyncio"],
        help="Scheduler kind (default: STEPCHAIN_SCHEDULER)",
    )
    run_parser.add_argument(
        "--timeout", "-t", type=float, default=None,
        help="Seconds to wait for an asyncio chain to settle",
    )
    run_parser.add_argument(
        "--json", "-j", action="store_true", help="Print the result as JSON only"
    )
    run_parser.set_defaults(func=cmd_run)

    config_parser = subparsers.add_parser("config", help="Show effective configuration")
    config_parser.set_defaults(func=cmd_config)

    version_parser = subparsers.add_parser("version", help="Show version")
    version_parser.set_defaults(func=cmd_version)

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    from stepchain.config import ConfigError, get_config
    from stepchain.utils.logging import configure_logging
    from stepchain.utils.tracing import configure_tracing

    try:
        config = get_config()
    except ConfigError as e:
        print(str(e), file=sys.stderr)
        return EXIT_ERROR

    if args.verbose:
        level = "DEBUG"
    elif getattr(args, "json", False):
        # Keep stdout parseable
        level = "WARNING"
    else:
        level = config.log_level
    configure_logging(level=level, json_output=config.log_format == "json")

    if config.otel_enabled:
        configure_tracing(service_name=config.otel_service_name or config.service_name)

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
