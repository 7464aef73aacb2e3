"""Post a single position to a running relay."""
from __future__ import annotations

import argparse
import asyncio
import json

from ..core.http_client import create_relay_client


def _field(pair: str) -> tuple[str, object]:
    key, sep, value = pair.partition("=")
    if not sep or not key or key in ("lat", "lng"):
        raise argparse.ArgumentTypeError(f"expected KEY=VALUE, got {pair!r}")
    try:
        return key, json.loads(value)
    except json.JSONDecodeError:
        return key, value


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("lat", type=float)
    parser.add_argument("lng", type=float)
    parser.add_argument("--url", default=None, help="relay base URL (default: $RELAY_URL)")
    parser.add_argument(
        "--field",
        action="append",
        default=[],
        type=_field,
        metavar="KEY=VALUE",
        help="extra field to attach; VALUE is parsed as JSON when possible",
    )
    return parser.parse_args(argv)


async def _send(args: argparse.Namespace) -> dict[str, object]:
    async with create_relay_client(args.url) as client:
        return await client.post_position(args.lat, args.lng, **dict(args.field))


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    print(json.dumps(asyncio.run(_send(args))))


if __name__ == "__main__":
    main()
