from app.core.config import settings
from app.core.request_context import RequestMetadata, establish_context
from app.helpers.urls import absolute_url, order_url


def test_uses_request_base_url():
    with establish_context(RequestMetadata(host="api.example.com", forwarded_proto="https")):
        assert absolute_url("/uploads/a.jpg") == "https://api.example.com/uploads/a.jpg"
        assert absolute_url("uploads/a.jpg") == "https://api.example.com/uploads/a.jpg"
        assert order_url(7) == "https://api.example.com/order/v1/orders/7"


def test_falls_back_to_public_base_url(monkeypatch):
    monkeypatch.setattr(settings, "PUBLIC_BASE_URL", "http://fallback.local/")
    assert absolute_url("/x.png") == "http://fallback.local/x.png"
    assert order_url(3, admin=True) == "http://fallback.local/order/v1/admin/orders/3"


def test_absolute_and_empty_paths():
    assert absolute_url("https://cdn.example.com/a.jpg") == "https://cdn.example.com/a.jpg"
    assert absolute_url("   ") is None
    assert absolute_url(None) is None
