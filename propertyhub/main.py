import logging
import traceback

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from propertyhub.api.v1.router import router as v1_router
from propertyhub.core.config import settings
from propertyhub.core.errors import HubError, StoreError, StoreTimeout, ValidationError
from propertyhub.core.telemetry import setup_logging, setup_telemetry

log = logging.getLogger(__name__)


def _error_body(err: HubError, exc: BaseException) -> dict:
    body = {"success": False, "kind": err.kind, "message": err.message}
    if err.details:
        body["details"] = err.details
    if settings.env != "prod":
        body["debug"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return body


async def hub_error_handler(request: Request, exc: HubError) -> JSONResponse:
    if exc.status_code >= 500:
        log.error("%s %s failed: %s", request.method, request.url.path, exc.message, exc_info=exc)
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc, exc))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"loc": list(e.get("loc", ())), "msg": e.get("msg", ""), "type": e.get("type", "")}
        for e in exc.errors()
    ]
    err = ValidationError("Request validation failed", details={"errors": errors})
    return JSONResponse(status_code=err.status_code, content=_error_body(err, exc))


async def store_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    if isinstance(exc, PoolTimeoutError) or (isinstance(exc, OperationalError) and "timeout" in str(exc).lower()):
        err: HubError = StoreTimeout("The data store did not respond in time")
    else:
        err = StoreError("The data store rejected the request")
    log.error("%s %s store failure", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=err.status_code, content=_error_body(err, exc))


def create_app() -> FastAPI:
    setup_logging()

    app = FastAPI(title="PropertyHub API", version="0.1.0")
    app.add_exception_handler(HubError, hub_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(SQLAlchemyError, store_error_handler)

    setup_telemetry(app)
    app.include_router(v1_router)
    return app


app = create_app()
