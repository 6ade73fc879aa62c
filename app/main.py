import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.core.exceptions import ServiceError
from app.core.logging_config import setup_logging
from app.db.base import init_db
from app.api.routes import admin as admin_router
from app.api.routes import bookings as bookings_router
from app.api.routes import payments as payments_router
from app.api.routes import providers as providers_router
from app.api.routes import review as review_router

setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="ServiceHub API")

@app.on_event("startup")
def startup():
    init_db()

@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    logger.warning("%s %s -> %s: %s", request.method, request.url.path, exc.kind, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

@app.get("/")
def root():
    return {"message": "ServiceHub API running"}


app.include_router(providers_router.router)
app.include_router(bookings_router.router)
app.include_router(payments_router.router)
app.include_router(review_router.router)
app.include_router(admin_router.router)
