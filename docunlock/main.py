import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from docunlock.config import get_settings
from docunlock.database import create_db_and_tables
from docunlock.routes import (
    admin,
    admin_storage,
    ai_search,
    health,
    payments,
    search,
    sections,
    textbooks,
    users,
)
from docunlock.utils.log_setup import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Run DB creation ONLY in local
    if get_settings().app_env == "local":
        create_db_and_tables()
    yield


def register_exception_handlers(app: FastAPI):
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        body = {"error": exc.detail}
        body.update(getattr(exc, "extra", None) or {})
        return JSONResponse(
            status_code=exc.status_code,
            content=jsonable_encoder(body),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content=jsonable_encoder({"error": "Invalid request", "details": exc.errors()}),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        body = {"error": "Internal server error"}
        if get_settings().app_env != "production":
            body["message"] = str(exc) or exc.__class__.__name__
        return JSONResponse(status_code=500, content=body)


def create_app() -> FastAPI:
    settings = get_settings()
    setup_logging(settings.log_level)

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Pay-per-section textbook access: paywalled PDF sections, payments and tiered storage",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(search.router, tags=["Search"])
    app.include_router(sections.router, tags=["Sections"])
    app.include_router(payments.router, tags=["Payments"])
    app.include_router(users.router, prefix="/user", tags=["Users"])
    app.include_router(textbooks.router, prefix="/textbook", tags=["Textbooks"])
    app.include_router(admin.router, prefix="/admin", tags=["Admin"])
    app.include_router(admin_storage.router, prefix="/admin", tags=["Admin Storage"])
    app.include_router(ai_search.router, prefix="/ai", tags=["AI Search"])
    app.include_router(health.router, tags=["Health"])

    @app.get("/")
    def root():
        return {
            "message": settings.app_name,
            "endpoints": [
                "GET /search?q=query&textbook=slug - Search sections",
                "GET /section/:resource_id - Get section metadata",
                "GET /section/:resource_id/content - Get section content (PDF)",
                "POST /payment - Record payment and grant access",
                "GET /user/:id/sections - Get user's accessible sections",
                "GET /user/:id/payments - Get user's payment history",
                "GET /textbook/:slug - Get textbook info",
                "GET /textbook/:slug/sections - Get all sections in textbook",
                "GET /ai/search?q=query&textbook=slug - Rank sections for a question",
                "GET /ai/pdf/:resource_id - Open a referenced section",
                "",
                "Admin Endpoints:",
                "POST /admin/upload - Upload PDF (filename: {title}.pdf)",
                "POST /admin/textbooks - Create new textbook",
                "GET /admin/textbooks - List all textbooks",
                "GET /admin/textbooks/:slug/sections - List sections for textbook",
                "POST /admin/migrate-to-r2 - Move inline PDFs to R2",
                "GET /admin/storage-analysis - Storage usage",
                "POST /admin/optimize-storage?threshold=MB - Move large inline PDFs to R2",
                "POST /admin/cleanup-orphaned - Delete unreferenced R2 objects",
            ],
        }

    return app


app = create_app()
