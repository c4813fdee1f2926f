"""
Application entry point
Run with: python run.py
"""
import uvicorn
from imagepack.core.config import settings

if __name__ == "__main__":
    uvicorn.run(
        "imagepack.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
