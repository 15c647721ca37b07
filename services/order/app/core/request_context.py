"""Per-request context.

A ``RequestContext`` is bound for the lifetime of one inbound request using a
``ContextVar``. asyncio copies the current context into every task it
creates, and Starlette's threadpool copies it into worker threads, so any code
reached from the request handler sees the same value without it being passed
around. Work started outside the request (the Kafka consumer thread, startup
hooks) sees no context at all.
"""

import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Iterator, Optional

import structlog


@dataclass(frozen=True)
class RequestMetadata:
    host: Optional[str] = None
    forwarded_host: Optional[str] = None
    protocol: Optional[str] = None
    forwarded_proto: Optional[str] = None

    @classmethod
    def from_scope(cls, scope: dict) -> "RequestMetadata":
        headers = {}
        for raw_name, raw_value in scope.get("headers") or []:
            name = raw_name.decode("latin-1").lower()
            # first occurrence wins, like most proxies
            headers.setdefault(name, raw_value.decode("latin-1"))
        return cls(
            host=headers.get("host"),
            forwarded_host=headers.get("x-forwarded-host"),
            protocol=scope.get("scheme"),
            forwarded_proto=headers.get("x-forwarded-proto"),
        )


@dataclass(frozen=True)
class RequestContext:
    base_url: Optional[str] = None
    request_id: Optional[str] = None


_current: ContextVar[Optional[RequestContext]] = ContextVar("request_context", default=None)


def _first(value: Optional[str]) -> Optional[str]:
    # X-Forwarded-* may hold a comma separated chain; the client facing hop is first
    if not isinstance(value, str):
        return None
    value = value.split(",", 1)[0].strip()
    return value or None


def derive_base_url(metadata: Optional[RequestMetadata]) -> Optional[str]:
    """Build ``{proto}://{host}`` from request metadata, or None without a host."""
    if metadata is None:
        return None
    host = _first(metadata.forwarded_host) or _first(metadata.host)
    if not host:
        return None
    proto = _first(metadata.forwarded_proto) or _first(metadata.protocol) or "http"
    return f"{proto}://{host}"


@contextmanager
def establish_context(metadata: Optional[RequestMetadata], request_id: Optional[str] = None) -> Iterator[RequestContext]:
    """Bind a context derived from ``metadata`` for the body of the ``with`` block."""
    ctx = RequestContext(base_url=derive_base_url(metadata), request_id=request_id or uuid.uuid4().hex)
    token = _current.set(ctx)
    try:
        with structlog.contextvars.bound_contextvars(request_id=ctx.request_id, base_url=ctx.base_url):
            yield ctx
    finally:
        _current.reset(token)


def current_context() -> Optional[RequestContext]:
    return _current.get()


def read_base_url() -> Optional[str]:
    ctx = _current.get()
    if ctx is None:
        return None
    return ctx.base_url or None


class RequestContextMiddleware:
    """ASGI middleware establishing a RequestContext for every HTTP request."""

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return
        metadata = RequestMetadata.from_scope(scope)
        with establish_context(metadata):
            await self.app(scope, receive, send)
