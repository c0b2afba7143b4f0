"""Personal finance tracker API served over FastAPI."""

import logging
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

import analytics_routes
import auth_routes
import transaction_routes
import user_routes
from config import FRONTEND_ORIGIN, LOG_LEVEL, S3_BUCKET, UPLOAD_DIR
from database import init_db
from errors import register_error_handlers

logger = logging.getLogger(__name__)


def configure_logging(level: str = LOG_LEVEL) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(_: FastAPI):
    init_db()
    logger.info("Database ready")
    yield


def create_app() -> FastAPI:
    app = FastAPI(title="Finance Tracker API", version="0.1.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[origin.strip() for origin in FRONTEND_ORIGIN.split(",")],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)

    api = APIRouter(prefix="/api")
    api.include_router(auth_routes.router)
    api.include_router(user_routes.router)
    api.include_router(transaction_routes.router)
    api.include_router(analytics_routes.router)

    @api.get("/")
    async def root():
        return {"message": "Finance Tracker API"}

    app.include_router(api)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    if not S3_BUCKET:
        # Local image uploads are served straight from disk
        app.mount("/uploads", StaticFiles(directory=UPLOAD_DIR, check_dir=False), name="uploads")

    return app


configure_logging()
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("server:app", host="0.0.0.0", port=8000, reload=True)
