"""Command-line entry point for memos-relay.

Operator tooling around the lifecycle hooks:
- config: show effective settings (API key masked)
- search: run one memory search and print the prompt block
- detect: run the correction detector on a text
- hook: run the hooks once for a host event read from stdin

Usage:
    python -m memos_relay config
    python -m memos_relay search "what does the user drink in the morning"
    python -m memos_relay detect "不对，应该是周二"
    echo '{"event": {"prompt": "..."}, "context": {"sessionKey": "s1"}}' \\
        | python -m memos_relay hook before-turn

Settings come from MEMOS_* environment variables or a .env file.
All logging goes to stderr; stdout carries only command output.
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import ValidationError

from memos_relay import __version__
from memos_relay.client import MemosClient
from memos_relay.config import RelaySettings
from memos_relay.feedback import detect_correction
from memos_relay.formatting import format_prompt_block, transform_search_results
from memos_relay.payloads import build_search_payload
from memos_relay.plugin import MemosPlugin
from memos_relay.types import HookContext

logger = logging.getLogger(__name__)


def setup_logging(log_level: str) -> None:
    """Configure logging to stderr.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def parse_arguments(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse CLI arguments.

    Args:
        argv: Argument list (default: sys.argv[1:])

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        prog="memos-relay",
        description="MemOS long-term memory relay for chat-agent hosts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: MEMOS_LOG_LEVEL or INFO)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("config", help="Show effective settings")

    search_parser = subparsers.add_parser("search", help="Search memories")
    search_parser.add_argument("query", type=str, help="Search query")

    detect_parser = subparsers.add_parser("detect", help="Detect correction intent")
    detect_parser.add_argument("text", type=str, help="User message text")

    hook_parser = subparsers.add_parser("hook", help="Run hooks for a stdin event")
    hook_parser.add_argument(
        "phase",
        choices=["before-turn", "turn-end"],
        help="Lifecycle phase to run",
    )

    return parser.parse_args(argv)


def read_hook_input() -> dict[str, Any]:
    """Read a hook event object from stdin.

    Raises:
        ValueError: If stdin is not a JSON object.
    """
    data = sys.stdin.read()
    if not data.strip():
        return {}
    parsed = json.loads(data)
    if not isinstance(parsed, dict):
        raise ValueError("hook input must be a JSON object")
    return parsed


async def run_search(settings: RelaySettings, query: str) -> int:
    """Run one search and print the formatted memories."""
    if not settings.api_key:
        print("MEMOS_API_KEY is not set", file=sys.stderr)
        return 1
    result = await MemosClient(settings).search(build_search_payload(settings, query))
    if not result.ok:
        print(f"Search failed: {result.message}", file=sys.stderr)
        return 1
    block = format_prompt_block(transform_search_results(result))
    print(block or "No relevant memories found")
    return 0


async def run_hook(settings: RelaySettings, phase: str, payload: dict[str, Any]) -> int:
    """Run the hooks of one lifecycle phase and print their outcomes."""
    plugin = MemosPlugin(settings)
    event = payload.get("event") or {}
    ctx = HookContext.from_dict(payload.get("context") or {})

    if phase == "before-turn":
        outcomes = {"recall": await plugin.on_before_turn(event, ctx)}
    else:
        outcomes = {
            "feedback": await plugin.on_turn_end_feedback(event, ctx),
            "add": await plugin.on_turn_end_add(event, ctx),
        }

    print(json.dumps({name: o.to_dict() for name, o in outcomes.items()}, ensure_ascii=False))
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point.

    Returns:
        Process exit code (0 on success, 1 on configuration or input errors)
    """
    load_dotenv()
    args = parse_arguments(argv)

    try:
        settings = RelaySettings()
    except ValidationError as e:
        print(f"ERROR: invalid configuration: {e}", file=sys.stderr)
        return 1

    setup_logging(args.log_level or settings.log_level)
    logger.debug(f"memos-relay {__version__}: {args.command}")

    if args.command == "config":
        print(json.dumps(settings.masked(), indent=2, ensure_ascii=False))
        return 0

    if args.command == "detect":
        info = detect_correction(args.text, settings.require_explicit_memory_reference)
        result = None
        if info is not None:
            result = {"keywords": list(info.matched_keywords), "confidence": info.confidence}
        print(json.dumps(result, ensure_ascii=False))
        return 0

    if args.command == "search":
        return asyncio.run(run_search(settings, args.query))

    try:
        payload = read_hook_input()
    except ValueError as e:
        print(f"ERROR: invalid hook input: {e}", file=sys.stderr)
        return 1
    return asyncio.run(run_hook(settings, args.phase, payload))


if __name__ == "__main__":
    sys.exit(main())
