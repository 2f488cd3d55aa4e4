# logistics_backend/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from logistics_backend.api.v1.router import api_router
from logistics_backend.config.database import engine
from logistics_backend.config.settings import settings
from logistics_backend.core.middleware import setup_middleware
from logistics_backend.shared.database.models import Base

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    logger.info("🚀 Logistics API starting...")
    logger.info(f"📍 Version: {settings.version}")
    logger.info(f"🌍 Environment: {'development' if settings.debug else 'production'}")
    logger.info(f"🔐 JWT algorithm: {settings.algorithm}, tokens expire after {settings.access_token_expire_minutes} minutes")
    logger.info(f"🗄️  Database: {settings.database_url.split('@')[1] if '@' in settings.database_url else 'local'}")

    Base.metadata.create_all(bind=engine)

    yield

    # Shutdown
    logger.info("🛑 Logistics API shutting down...")


app = FastAPI(
    title=settings.app_name,
    version=settings.version,
    description="Shipment lifecycle, driver dispatch and payment reconciliation for drivers, clients and admins",
    docs_url="/docs",
    redoc_url="/redoc" if settings.debug else None,
    lifespan=lifespan
)

setup_middleware(app)

app.include_router(api_router, prefix="/api/v1")


@app.get("/")
async def root():
    return {
        "message": "🚚 Logistics API",
        "version": settings.version,
        "status": "running",
        "environment": "production" if not settings.debug else "development",
        "docs": "/docs",
        "api": "/api/v1"
    }


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "version": settings.version,
        "app": settings.app_name,
        "environment": "production" if not settings.debug else "development"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "logistics_backend.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
