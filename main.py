import logging
import os

from fastapi import FastAPI, APIRouter, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import SQLAlchemyError

import models  # noqa: F401  (φορτώνει όλα τα models στο registry)
from database import Base, engine
from errors import MarketplaceError
from routers import admin, auth, categories, checkout, orders, reviews, templates
from services import uploads

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger("uvicorn.error")

# Για SQLite/dev φτιάχνουμε τους πίνακες εδώ· σε production τρέχει `alembic upgrade head`
if engine.url.get_backend_name() == "sqlite":
    Base.metadata.create_all(bind=engine)

# ──────────────────────────────────────────────────────────────────────────────
# APP
app = FastAPI(title="Template Marketplace API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("CORS_ALLOW_ORIGINS", "*").split(",") if os.getenv("CORS_ALLOW_ORIGINS") else ["*"],
    allow_credentials=True, allow_methods=["*"], allow_headers=["*"],
)

# uploaded ZIPs / preview images (σε production: object storage)
app.mount("/uploads", StaticFiles(directory=uploads.UPLOADS_DIR), name="uploads")


@app.get("/favicon.ico", include_in_schema=False)
def favicon():
    return Response("<svg xmlns='http://www.w3.org/2000/svg' viewBox='0 0 16 16'><text y='14'>T</text></svg>",
                    media_type="image/svg+xml")


@app.get("/health", include_in_schema=False)
def health():
    return {"ok": True}


@app.get("/healthz")
def healthz():
    return {"ok": True}


# ──────────────────────────────────────────────────────────────────────────────
# Errors -> JSON {"message": ...}
@app.exception_handler(MarketplaceError)
async def marketplace_error_handler(request: Request, exc: MarketplaceError):
    if exc.status_code >= 500:
        log.error("[%s %s] %s: %s", request.method, request.url.path, type(exc).__name__, exc.message)
    else:
        log.warning("[%s %s] %s: %s", request.method, request.url.path, type(exc).__name__, exc.message)
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_dict()))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"field": ".".join(str(p) for p in e.get("loc", ())[1:]) or None, "message": e.get("msg")}
        for e in exc.errors()
    ]
    log.warning("[%s %s] invalid request: %s", request.method, request.url.path, errors)
    return JSONResponse(status_code=400, content={"message": "Invalid request", "errors": errors})


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    log.exception("[%s %s] database error", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"message": "Internal server error"})


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    log.exception("[%s %s] unhandled error", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"message": "Internal server error"})


# ──────────────────────────────────────────────────────────────────────────────
# API
api = APIRouter(prefix="/api")
api.include_router(auth.router)
api.include_router(categories.router)
api.include_router(templates.router)
api.include_router(reviews.router)
api.include_router(checkout.router)
api.include_router(orders.router)
api.include_router(admin.router)
app.include_router(api)
