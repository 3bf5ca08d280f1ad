"""CLI for printing an actor's request dashboard counters or approval queue."""

from __future__ import annotations

import argparse
import json
import sys
from typing import cast
from urllib import error, request


def build_summary_url(*, base_url: str, pending: bool = False) -> str:
    """Build the stats (or pending queue) endpoint URL."""
    normalized_base = base_url.rstrip("/")
    suffix = "pending" if pending else "stats"
    return f"{normalized_base}/api/v1/requests/{suffix}"


def fetch_request_summary(
    *,
    base_url: str,
    actor_id: str,
    pending: bool,
    timeout_seconds: int,
) -> object:
    """Fetch the summary payload as seen by ``actor_id``."""
    headers = {"Accept": "application/json", "X-Actor-Id": actor_id}
    url = build_summary_url(base_url=base_url, pending=pending)
    req = request.Request(url, headers=headers, method="GET")
    try:
        with request.urlopen(req, timeout=timeout_seconds) as response:  # noqa: S310
            payload = response.read().decode("utf-8")
    except error.HTTPError as exc:
        raise RuntimeError(f"request-summary endpoint returned HTTP {exc.code}") from exc
    decoded = json.loads(payload)
    if pending:
        if not isinstance(decoded, list):
            msg = "pending queue payload is not a JSON array"
            raise ValueError(msg)
        return cast(list[object], decoded)
    if not isinstance(decoded, dict):
        msg = "stats payload is not a JSON object"
        raise ValueError(msg)
    return cast(dict[str, object], decoded)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m portal.cli.request_summary",
        description="Print request dashboard counters for one portal user.",
    )
    parser.add_argument("--base-url", default="http://localhost:8000")
    parser.add_argument("--actor-id", required=True)
    parser.add_argument(
        "--pending",
        action="store_true",
        help="Print the approver work queue instead of counters.",
    )
    parser.add_argument("--timeout-seconds", type=int, default=12)
    parser.add_argument(
        "--compact",
        action="store_true",
        help="Print single-line JSON output.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    try:
        payload = fetch_request_summary(
            base_url=args.base_url,
            actor_id=args.actor_id,
            pending=args.pending,
            timeout_seconds=args.timeout_seconds,
        )
    except (OSError, RuntimeError, ValueError) as exc:
        print(f"request-summary error: {exc}", file=sys.stderr)
        return 1

    if args.compact:
        print(json.dumps(payload, sort_keys=True))
    else:
        print(json.dumps(payload, indent=2, sort_keys=True))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
