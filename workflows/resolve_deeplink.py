"""Resolve a deferred or direct deep link from the command line.

Reads DYNALINKS_* settings from the environment (see services/deeplink/config.py)
and prints the result as JSON.

Usage:
    uv run python -m workflows.resolve_deeplink --referrer "utm_source=x&_url=aHR0cHM6Ly9..."
    uv run python -m workflows.resolve_deeplink --url "https://demo.dynalinks.app/promo"
    uv run python -m workflows.resolve_deeplink --parse-only "url=https%3A%2F%2Fdemo.dynalinks.app%2Fp"
    uv run python -m workflows.resolve_deeplink --reset --state-path ~/.dynalinks/state.json
"""

import argparse
import asyncio
import json
import sys
from typing import Optional

from loguru import logger
from pydantic import ValidationError

from lib.attribution.errors import DynalinksError
from lib.attribution.referrer import parse_referrer
from services.deeplink.config import DynalinksConfig
from services.deeplink.context import DynalinksContext
from services.deeplink.referrer_source import StaticReferrerProvider


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Resolve Dynalinks deep links")
    action = parser.add_mutually_exclusive_group(required=True)
    action.add_argument("--referrer", type=str, help="Install referrer string to resolve as a deferred link")
    action.add_argument("--url", type=str, help="URL the app was opened with (direct link)")
    action.add_argument("--parse-only", type=str, metavar="REFERRER", help="Only extract the URL from a referrer")
    action.add_argument("--reset", action="store_true", help="Clear the stored check state")
    parser.add_argument("--state-path", type=str, default=None, help="JSON state file (overrides DYNALINKS_STATE_PATH)")
    parser.add_argument("--allow-emulator", action="store_true", help="Allow deferred checks on emulators")
    return parser


async def run(
    referrer: Optional[str] = None,
    url: Optional[str] = None,
    reset: bool = False,
    state_path: Optional[str] = None,
    allow_emulator: bool = False,
) -> int:
    try:
        config = DynalinksConfig.from_env()
    except ValidationError as e:
        logger.error(f"Invalid configuration: {e}")
        print(json.dumps({"error": "invalid_config", "message": str(e)}))
        return 1

    updates = {}
    if state_path:
        updates["state_path"] = state_path
    if allow_emulator:
        updates["allow_emulator"] = True
    if updates:
        config = config.model_copy(update=updates)

    async with DynalinksContext() as context:
        try:
            context.configure(config, referrer_provider=StaticReferrerProvider(referrer))
            if reset:
                await context.reset()
                print(json.dumps({"reset": True}))
                return 0
            if url is not None:
                result = await context.resolve_direct(url)
            else:
                result = await context.resolve_deferred()
        except DynalinksError as e:
            logger.error(f"{e.kind.value}: {e.message}")
            print(json.dumps({"error": e.kind.value, "message": e.message}))
            return 1

    print(result.model_dump_json(indent=2))
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    # Sink is installed by configure() at DYNALINKS_LOG_LEVEL
    logger.remove()

    if args.parse_only is not None:
        print(json.dumps({"url": parse_referrer(args.parse_only)}))
        return 0

    return asyncio.run(run(
        referrer=args.referrer,
        url=args.url,
        reset=args.reset,
        state_path=args.state_path,
        allow_emulator=args.allow_emulator,
    ))


if __name__ == "__main__":
    sys.exit(main())
