import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.analytics import router as analytics_router
from app.api.budgets import router as budgets_router
from app.api.categories import router as categories_router
from app.api.dashboard import router as dashboard_router
from app.api.export import router as export_router
from app.api.goals import router as goals_router
from app.api.imports import router as imports_router
from app.api.transactions import router as transactions_router
from app.api.user_settings import router as settings_router
from app.api.wallets import router as wallets_router
from app.core.config import settings
from app.core.logging import setup_logging

setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(title="Ledgerline")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request", "details": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


app.include_router(imports_router, prefix="/api/imports", tags=["imports"])
app.include_router(categories_router, prefix="/api/categories", tags=["categories"])
app.include_router(wallets_router, prefix="/api/wallets", tags=["wallets"])
app.include_router(transactions_router, prefix="/api/transactions", tags=["transactions"])
app.include_router(budgets_router, prefix="/api/budgets", tags=["budgets"])
app.include_router(goals_router, prefix="/api/goals", tags=["goals"])
app.include_router(dashboard_router, prefix="/api/dashboard", tags=["dashboard"])
app.include_router(analytics_router, prefix="/api/analytics", tags=["analytics"])
app.include_router(export_router, prefix="/api/export", tags=["export"])
app.include_router(settings_router, prefix="/api/settings", tags=["settings"])


@app.get("/health")
def health_check() -> dict:
    return {"status": "ok"}
