from typing import Iterable, List, Dict
import httpx
from app.core.config import settings
from app.core.errors import InventoryUnavailable, UpstreamUnavailable
from app.core.logging import get_logger

logger = get_logger(__name__)

class CatalogClient:
    """Inventory calls against the catalog service's internal API."""

    def __init__(self, base_url: str | None = None, internal_key: str | None = None, timeout: float = 5.0):
        self.base_url = (base_url or settings.CATALOG_BASE).rstrip("/")
        self.internal_key = internal_key or settings.SVC_INTERNAL_KEY
        self.timeout = timeout

    def _post(self, action: str, items: Iterable[Dict]) -> None:
        payload = {"items": [{"product_id": it["product_id"], "qty": it["qty"]} for it in items]}
        try:
            with httpx.Client(timeout=self.timeout) as client:
                resp = client.post(
                    f"{self.base_url}/catalog/v1/inventory/{action}",
                    json=payload,
                    headers={"X-Internal-Key": self.internal_key},
                )
        except httpx.RequestError as exc:
            logger.error("catalog request failed", action=action, error=str(exc))
            raise UpstreamUnavailable("Catalog") from exc
        if resp.status_code != 200:
            logger.warning("catalog rejected inventory call", action=action, status=resp.status_code)
            raise InventoryUnavailable(resp.text or f"Inventory {action} failed", status_code=resp.status_code)

    def reserve(self, items: List[Dict]) -> None:
        self._post("reserve", items)

    def commit(self, items: List[Dict]) -> None:
        self._post("commit", items)

    def release(self, items: List[Dict]) -> None:
        self._post("release", items)
