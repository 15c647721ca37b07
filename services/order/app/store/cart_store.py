import json
from typing import Any, Dict, List
from redis import Redis
from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)

def get_client() -> Redis:
    return Redis.from_url(settings.REDIS_URL, decode_responses=True)

def cart_key(email: str) -> str:
    return f"cart:{email}"

class RedisCartStore:
    """Read side of the cart service's Redis hash ({product_id: item_json})."""

    def __init__(self, client: Redis | None = None):
        self.client = client or get_client()

    def get_items(self, email: str) -> List[Dict[str, Any]]:
        raw = self.client.hgetall(cart_key(email))
        items = []
        for pid, val in raw.items():
            try:
                items.append(json.loads(val))
            except ValueError:
                logger.warning("skipping unreadable cart entry", product_id=pid)
        return items

    def clear(self, email: str) -> None:
        self.client.delete(cart_key(email))
