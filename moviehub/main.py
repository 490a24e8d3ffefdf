from fastapi import FastAPI, Request, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from dotenv import load_dotenv
from moviehub import database
from moviehub.routes import admin, categories, downloads, isr, movies, search
from moviehub.middleware.security import SecurityHeadersMiddleware
from moviehub.services.background_jobs import BackgroundJobService
from moviehub.utils.cache import AppCaches
import os
import logging

# Load environment variables
load_dotenv()

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


# ============================================
# Application Lifespan Management
# ============================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifespan events

    Startup:
    - Build the process-wide caches
    - Create the MongoDB client
    - Start background jobs (cache purge, monthly leaderboard refresh)

    Shutdown:
    - Stop background jobs
    - Close the MongoDB client
    """
    logger.info(f"MovieHub API starting (environment: {os.getenv('ENVIRONMENT', 'development')})")

    app.state.caches = AppCaches.from_env()
    database.connect()

    jobs = BackgroundJobService(app.state.caches, database.get_db)
    app.state.background_jobs = jobs
    try:
        jobs.start()
    except Exception as e:
        logger.error(f"Failed to start background jobs: {str(e)}")

    yield

    logger.info("MovieHub API shutting down")
    try:
        jobs.shutdown()
    except Exception as e:
        logger.error(f"Error stopping background jobs: {str(e)}")
    database.close()


app = FastAPI(
    title="MovieHub API",
    description="Movie catalog: listings, search, categories and download counters",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# ============================================
# Security Configuration
# ============================================

# CORS - Whitelist allowed origins
allowed_origins = [
    "http://localhost:3000",
    "http://localhost:3001",
]
if production_url := os.getenv("FRONTEND_URL"):
    allowed_origins.append(production_url)

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

app.add_middleware(SecurityHeadersMiddleware)

# Trusted Hosts - Production only
if os.getenv("ENVIRONMENT") == "production":
    if trusted_hosts := [host for host in os.getenv("TRUSTED_HOSTS", "").split(",") if host]:
        app.add_middleware(TrustedHostMiddleware, allowed_hosts=trusted_hosts)


# ============================================
# Exception Handlers - JSON envelope with CORS headers on every error
# ============================================

def _error_response(request: Request, status_code: int, message: str) -> JSONResponse:
    origin = request.headers.get("origin")

    response = JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message}
    )

    # Error responses raised outside the middleware stack miss the CORS headers
    if origin in allowed_origins:
        response.headers["Access-Control-Allow-Origin"] = origin
        response.headers["Access-Control-Allow-Credentials"] = "true"

    return response


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return _error_response(request, exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Bad query parameters or body: 400 with the first problem"""
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part not in ("query", "body", "path"))
        message = f"Invalid {location}: {first.get('msg')}" if location else str(first.get("msg"))
    else:
        message = "Invalid request"
    return _error_response(request, 400, message)


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)
    return _error_response(request, 500, "Internal server error")


# ============================================
# Routes
# ============================================

@app.get("/", tags=["Health"])
async def root():
    """Basic health check"""
    return {
        "message": "MovieHub API",
        "version": "1.0.0",
        "status": "healthy",
        "docs": "/docs"
    }


@app.get("/health", tags=["Health"])
async def health_check(request: Request):
    """Detailed health check for monitoring"""
    jobs = getattr(request.app.state, "background_jobs", None)
    return {
        "status": "healthy",
        "api_version": "1.0.0",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "background_jobs": bool(jobs and jobs.scheduler.running),
    }


app.include_router(movies.router)
app.include_router(search.router)
app.include_router(categories.router)
app.include_router(downloads.router)
app.include_router(isr.router)
app.include_router(admin.router)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=8000,
        log_level="info"
    )
