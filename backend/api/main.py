"""
FastAPI application entry point.

Run with: uvicorn api.main:app --reload
"""
import logging
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Load environment variables from backend/.env (optional) before other imports that read env
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(env_path)

from api.routes import entries, map as map_routes, resolve, session  # noqa: E402
from domain.errors import DirectoryError  # noqa: E402

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Create app
app = FastAPI(
    title="GeoMark Community API",
    description="Community location directory grounded by an AI place service",
    version="0.1.0",
)

# CORS middleware for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure properly for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(entries.router, prefix="/entries", tags=["entries"])
app.include_router(session.router, tags=["session"])
app.include_router(map_routes.router, prefix="/map", tags=["map"])
app.include_router(resolve.router, prefix="/resolve", tags=["resolve"])


@app.exception_handler(DirectoryError)
async def directory_error_handler(request: Request, exc: DirectoryError):
    """Anything a route did not convert itself is still a recoverable error."""
    logger.warning("Unhandled directory error on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=502, content={"detail": str(exc)})


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "GeoMark Community API"}


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}
