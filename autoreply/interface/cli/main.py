"""CLI entrypoint: draft a reply for a ticket and stream it to stdout.

Interface layer is thin: parse args, wire via composition root, print chunks.
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys
from dataclasses import replace
from pathlib import Path

from autoreply.application.dto.draft_dto import DraftRequest
from autoreply.config.composition import build_draft_use_case, configure_logging
from autoreply.config.settings import AppSettings
from autoreply.domain.errors import (
    CancellationError,
    ConfigurationError,
    DomainError,
    RequestTimeoutError,
)
from autoreply.infrastructure.http.cancellation import CancellationToken

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_CONFIG = 2
EXIT_CANCELLED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="autoreply", description="Draft a support reply with an LLM provider."
    )
    sub = parser.add_subparsers(dest="command", required=True)

    draft = sub.add_parser("draft", help="Draft a reply for one customer query")
    draft.add_argument("--query-file", required=True, help="File with the customer query")
    draft.add_argument("--memory-file", help="Knowledge base text file")
    draft.add_argument("--instructions", help="Rule prompt (default: support agent)")
    draft.add_argument("--provider", choices=["openai", "anthropic"])
    draft.add_argument("--model")
    draft.add_argument("--temperature", type=float)
    draft.add_argument("--max-tokens", type=int)
    return parser


def settings_from_args(args: argparse.Namespace, base: AppSettings | None = None) -> AppSettings:
    settings = base or AppSettings()
    overrides = {
        "provider": args.provider,
        "model": args.model,
        "temperature": args.temperature,
        "max_tokens": args.max_tokens,
    }
    return replace(settings, **{k: v for k, v in overrides.items() if v is not None})


async def run_draft(args: argparse.Namespace, settings: AppSettings) -> int:
    req = DraftRequest(
        query=Path(args.query_file).read_text(encoding="utf-8"),
        config=settings.provider_config(),
        memory=Path(args.memory_file).read_text(encoding="utf-8") if args.memory_file else "",
        instructions=args.instructions,
    )
    use_case = build_draft_use_case(settings)
    token = CancellationToken()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, token.cancel)
    except (NotImplementedError, RuntimeError):
        pass  # platform without loop signal handlers: Ctrl-C raises KeyboardInterrupt

    try:
        async with use_case.stream(req, token) as chunks:
            async for chunk in chunks:
                if chunk.done:
                    break
                sys.stdout.write(chunk.content)
                sys.stdout.flush()
        sys.stdout.write("\n")
        return EXIT_OK
    except RequestTimeoutError:
        print("\n[TIMEOUT] request timed out; partial output kept", file=sys.stderr)
        return EXIT_CANCELLED
    except CancellationError:
        print("\n[CANCELLED] partial output kept", file=sys.stderr)
        return EXIT_CANCELLED
    finally:
        try:
            loop.remove_signal_handler(signal.SIGINT)
        except (NotImplementedError, RuntimeError):
            pass
        await use_case.client.aclose()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = settings_from_args(args)
        configure_logging(settings)
        return asyncio.run(run_draft(args, settings))
    except ConfigurationError as err:
        print(f"[CONFIG] {err}", file=sys.stderr)
        return EXIT_CONFIG
    except DomainError as err:
        print(f"[ERROR] {type(err).__name__}: {err}", file=sys.stderr)
        return EXIT_ERROR
    except OSError as err:
        print(f"[ERROR] {err}", file=sys.stderr)
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
