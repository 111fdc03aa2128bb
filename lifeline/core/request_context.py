"""Request Context — the per-request view consumed by the logger and dispatcher.

Invariants:
    - RequestContext lives exactly as long as one request
    - Only status_code is written after construction (by error handling / middleware)
    - LogRecord is built once per request by LogHandler and never retained
    - wants_html is PURE: decided from the Accept header alone

Design Decisions:
    - Plain dataclass over Starlette Request: core stays framework-free
    - Wildcards never select HTML: curl and API clients get the structured payload
"""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class RequestContext:
    """Handle to the in-flight request/response pair."""
    method: str
    path: str
    status_code: int = 200
    wants_html: bool = False


@dataclass(frozen=True)
class LogRecord:
    """Ephemeral snapshot handed to formatters that prefer a value object."""
    method: str
    path: str
    status_code: int
    timestamp: datetime
    elapsed: float

    @classmethod
    def capture(
        cls, context: RequestContext, time: datetime, elapsed: float,
    ) -> "LogRecord":
        return cls(
            method=context.method,
            path=context.path,
            status_code=context.status_code,
            timestamp=time,
            elapsed=elapsed,
        )


HTML_MEDIA_TYPE = "text/html"
JSON_MEDIA_TYPE = "application/json"


def wants_html(accept: str | None) -> bool:
    """Content negotiation: True only for an explicit, preferred text/html."""
    if not accept:
        return False
    weights = _parse_accept(accept)
    html_q = weights.get(HTML_MEDIA_TYPE, 0.0)
    if html_q <= 0.0:
        return False
    return html_q >= weights.get(JSON_MEDIA_TYPE, 0.0)


def _parse_accept(accept: str) -> dict[str, float]:
    """Map each explicitly listed media type to its q-value."""
    weights: dict[str, float] = {}
    for part in accept.split(","):
        media_type, *params = (p.strip() for p in part.split(";"))
        if not media_type:
            continue
        q = 1.0
        for param in params:
            name, _, value = param.partition("=")
            if name.strip().lower() == "q":
                try:
                    q = float(value)
                except ValueError:
                    q = 0.0
        media_type = media_type.lower()
        weights[media_type] = max(q, weights.get(media_type, 0.0))
    return weights
