from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.logging import get_logger

logger = get_logger(__name__)


class OrderServiceError(Exception):
    status_code = 500
    message = "Order service error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class OrderNotFound(OrderServiceError):
    status_code = 404
    message = "Order not found"


class OrderAccessDenied(OrderServiceError):
    status_code = 403
    message = "Order belongs to another customer"


class OrderNotCancellable(OrderServiceError):
    status_code = 400

    def __init__(self, status: str):
        super().__init__(f"Only orders in status 'pendiente' can be cancelled (current status: '{status}')")
        self.status = status


class EmptyCart(OrderServiceError):
    status_code = 400
    message = "Cart is empty"


class InventoryUnavailable(OrderServiceError):
    status_code = 409

    def __init__(self, message: str, status_code: int = 409):
        super().__init__(message)
        self.status_code = status_code


class UpstreamUnavailable(OrderServiceError):
    status_code = 503

    def __init__(self, service: str):
        super().__init__(f"{service} unavailable")
        self.service = service


class RequestValidationFailed(OrderServiceError):
    status_code = 400
    message = "Validation failed"

    def __init__(self, violations: list):
        super().__init__()
        self.violations = violations


def _error_body(exc: OrderServiceError) -> dict:
    body = {"success": False, "message": exc.message}
    if isinstance(exc, RequestValidationFailed):
        body["errors"] = [v.as_dict() for v in exc.violations]
    return body


async def order_error_handler(request: Request, exc: OrderServiceError):
    logger.info("request rejected", path=request.url.path, status=exc.status_code, reason=exc.message)
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc))


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ())]
        errors.append({
            "field": ".".join(loc[1:]) or (loc[0] if loc else ""),
            "message": err.get("msg", "Invalid value"),
            "value": jsonable_encoder(err.get("input")),
            "location": loc[0] if loc else "body",
        })
    logger.info("request rejected", path=request.url.path, status=422, errors=len(errors))
    return JSONResponse(status_code=422, content={"success": False, "message": "Validation failed", "errors": errors})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(OrderServiceError, order_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
