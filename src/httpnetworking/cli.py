"""Command line entry point for fetching a URL through the pipeline."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Sequence

from .backoff import DEFAULT_ATTEMPTS, DEFAULT_BACKOFF_BASE, RetryStrategy
from .client import HTTPClient
from .exceptions import HTTPNetworkingError
from .models import HTTPMethod, Response
from .transport import HTTPXTransport, Transport
from .validators import StatusCodeValidator


def _parse_header(raw: str) -> tuple[str, str]:
    name, sep, value = raw.partition(":")
    if not sep or not name.strip():
        raise argparse.ArgumentTypeError(f"expected 'Name: value', got {raw!r}")
    return name.strip(), value.strip()


def _parse_status(raw: str) -> StatusCodeValidator:
    lower, sep, upper = raw.partition("-")
    try:
        if sep:
            return StatusCodeValidator.between(int(lower), int(upper))
        return StatusCodeValidator(int(lower))
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid status range {raw!r}: {exc}") from exc


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="httpnetworking-fetch")
    parser.add_argument("url")
    parser.add_argument("-X", "--method", default="GET", type=str.upper, choices=[m.value for m in HTTPMethod])
    parser.add_argument("-H", "--header", action="append", default=[], type=_parse_header)
    parser.add_argument("-d", "--data", default=None, help="raw request body")
    parser.add_argument("--expect-status", default="200-299", type=_parse_status)
    parser.add_argument("--attempts", default=DEFAULT_ATTEMPTS, type=int)
    parser.add_argument("--backoff-base", default=DEFAULT_BACKOFF_BASE, type=float)
    parser.add_argument("--max-delay", default=None, type=float)
    parser.add_argument("--timeout", default=30.0, type=float)
    parser.add_argument("-v", "--verbose", action="count", default=0)
    return parser


def _build_transport(timeout: float) -> Transport:
    return HTTPXTransport(timeout=timeout)


async def _fetch(args: argparse.Namespace) -> Response:
    client = HTTPClient(
        headers=dict(args.header),
        validators=[args.expect_status],
        retriers=[
            RetryStrategy(
                attempts=args.attempts,
                backoff_base=args.backoff_base,
                max_delay=args.max_delay,
            )
        ],
        transport=_build_transport(args.timeout),
    )
    try:
        content = args.data.encode() if args.data is not None else None
        return await client.send(args.method, args.url, content=content)
    finally:
        transport = client.transport
        if isinstance(transport, HTTPXTransport):
            await transport.aclose()


def _main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG if args.verbose > 1 else logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

    try:
        response = asyncio.run(_fetch(args))
    except HTTPNetworkingError as exc:
        attempts = f" after {exc.attempts} attempt(s)" if exc.attempts else ""
        print(f"Request failed{attempts}: {exc}", file=sys.stderr)
        return 1
    except ValueError as exc:
        print(f"Invalid request: {exc}", file=sys.stderr)
        return 2

    sys.stdout.write(response.text)
    if response.text and not response.text.endswith("\n"):
        sys.stdout.write("\n")
    return 0


def main() -> None:
    raise SystemExit(_main())
