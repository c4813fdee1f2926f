# imagepack/api/v1/router.py
from fastapi import APIRouter
from imagepack.api.v1.endpoints import health, convert, download

# Create API v1 router
api_router = APIRouter()

# Include all endpoint routers
api_router.include_router(
    health.router,
    tags=["Health"]
)

api_router.include_router(
    convert.router,
    tags=["Conversion"]
)

api_router.include_router(
    download.router,
    tags=["Downloads"]
)
