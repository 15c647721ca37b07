from fastapi import FastAPI
from app.version import VERSION
from app.api import routes
from app.core.auth import warn_if_admin_auth_disabled
from app.core.errors import register_exception_handlers
from app.core.logging import configure_logging, get_logger
from app.core.request_context import RequestContextMiddleware
from app.kafka import consumer as payment_consumer
from prometheus_fastapi_instrumentator import Instrumentator

configure_logging()
logger = get_logger(__name__)

# Create instrumentator first
instrumentator = Instrumentator()

app = FastAPI(title="Order Service", version=VERSION)

# Instrument the app BEFORE adding routes or middleware
instrumentator.instrument(app).expose(
    app,
    include_in_schema=False,
    endpoint="/order/metrics",
    should_gzip=True,
)

app.add_middleware(RequestContextMiddleware)
register_exception_handlers(app)

# Health endpoints
@app.get("/health")
def health():
    return {"status": "ok"}

@app.get("/order/health")
def order_health():
    return {"status": "ok"}

@app.get("/v1/_info")
def info():
    return {"service": "order", "version": VERSION}

# Kafka event handlers
@app.on_event("startup")
async def startup_event():
    for route in app.routes:
        if hasattr(route, "methods") and hasattr(route, "path"):
            logger.debug("route", methods=sorted(route.methods), path=route.path)
    warn_if_admin_auth_disabled()
    payment_consumer.start()

@app.on_event("shutdown")
async def shutdown_event():
    payment_consumer.stop()

# Include routers
app.include_router(routes.router, prefix='/order', tags=["orders"])
