"""Absolute URL building for response payloads.

The base is whatever the client used to reach us (see
``app.core.request_context``), so links work behind proxies and from other
hosts. Outside a request the configured PUBLIC_BASE_URL is used.
"""

from typing import Optional

from app.core.config import settings
from app.core.request_context import read_base_url


def base_url() -> str:
    return (read_base_url() or settings.PUBLIC_BASE_URL).rstrip("/")


def absolute_url(path: Optional[str]) -> Optional[str]:
    if not path or not isinstance(path, str):
        return None
    path = path.strip()
    if not path:
        return None
    if path.startswith(("http://", "https://")):
        return path
    if not path.startswith("/"):
        path = "/" + path
    return f"{base_url()}{path}"


def order_url(order_id: int, admin: bool = False) -> str:
    prefix = "/order/v1/admin/orders" if admin else "/order/v1/orders"
    return absolute_url(f"{prefix}/{order_id}")
