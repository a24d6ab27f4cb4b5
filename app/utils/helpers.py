"""Helper utilities (durations, clocks, responses, request helpers)."""
import re
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import Request

_DURATION_RE = re.compile(r"^(\d+)([smhd])$")
_UNIT_MS = {
    "s": 1000,
    "m": 60 * 1000,
    "h": 60 * 60 * 1000,
    "d": 24 * 60 * 60 * 1000,
}
DEFAULT_DURATION_MS = 15 * 60 * 1000


def parse_duration_ms(value: Optional[str]) -> int:
    """Parse durations such as ``15m`` or ``7d`` into milliseconds.

    Unparseable input falls back to 15 minutes.
    """
    match = _DURATION_RE.match((value or "").strip())
    if not match:
        return DEFAULT_DURATION_MS
    amount, unit = match.groups()
    return int(amount) * _UNIT_MS[unit]


def utcnow() -> datetime:
    """Naive UTC now, matching how timestamps are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def format_response(data: Any = None, message: str = "Success", success: bool = True) -> dict:
    return {"success": success, "message": message, "data": data}


def get_client_ip(request: Request) -> str:
    """Return client's IP address from request headers or connection info.

    Checks `X-Forwarded-For` first (comma-separated), then falls back to
    `request.client.host`. Returns 'unknown' if not found.
    """
    x_forwarded_for = request.headers.get("x-forwarded-for")
    if x_forwarded_for:
        # X-Forwarded-For can contain a list of IPs
        return x_forwarded_for.split(",")[0].strip()

    client = getattr(request, "client", None)
    if client and getattr(client, "host", None):
        return client.host

    return "unknown"


def get_user_agent(request: Request) -> Optional[str]:
    return request.headers.get("user-agent") or None


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
