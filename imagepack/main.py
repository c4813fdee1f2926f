# imagepack/main.py
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from imagepack.core.config import settings
from imagepack.core.logging import setup_logging, get_logger
from imagepack.api.v1.router import api_router
from imagepack.api.deps import get_batch_storage
from imagepack.middleware.error_handler import add_error_handlers


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = get_logger(__name__)
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    storage = get_batch_storage()
    logger.info(f"Batch storage root: {storage.root}")
    storage.sweep_expired(settings.ARTIFACT_TTL_SECONDS)

    logger.info("Startup complete")
    yield
    logger.info("Shutting down")

# Initialize app
app = FastAPI(
    title=settings.APP_NAME,
    description="Convert image batches into desktop and mobile WebP archives",
    version=settings.APP_VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc"
)

# Setup logging first
setup_logging()

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Error handlers
add_error_handlers(app)

# API Router
app.include_router(api_router, prefix=settings.API_V1_PREFIX)

# Root
@app.get("/")
async def root():
    return {
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "api": settings.API_V1_PREFIX
    }
