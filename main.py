"""
Subscription Tracker API
Account sign-up/sign-in with JWT and subscription tracking with automatic renewal dates
"""

from contextlib import asynccontextmanager
from pathlib import Path
import logging

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from auth import auth_router
from config.settings import API_PREFIX, settings
from database import init_db
from routers.subscription_router import subscription_router
from routers.user_router import user_router
from utils.error_handler import register_error_handlers
from utils.rate_limit import RateLimiterMiddleware
from utils.responses import success_response

# Logging setup - write ALL events to /logs/app.log
LOGS_DIR = Path("./logs")
LOGS_DIR.mkdir(exist_ok=True)
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler(LOGS_DIR / "app.log"),
        logging.StreamHandler()
    ]
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables on startup."""
    try:
        await init_db()
        logger.info(f"Database initialized in {settings.env} mode")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise
    yield
    logger.info("Shutting down Subscription Tracker API")


# ============================================================================
# FASTAPI APP SETUP
# ============================================================================

app = FastAPI(title="Subscription Tracker API", lifespan=lifespan)

register_error_handlers(app)
app.add_middleware(RateLimiterMiddleware, requests_per_minute=settings.rate_limit_per_minute)

# CORS MUST be near the bottom
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def root():
    return success_response(message="Welcome to the Subscription Tracker API")


# ============================================================================
# INCLUDE ROUTERS
# ============================================================================
api = APIRouter(prefix=API_PREFIX)
api.include_router(auth_router)
api.include_router(user_router)
api.include_router(subscription_router)
app.include_router(api)


if __name__ == "__main__":
    import uvicorn
    logger.info(f"The server is running on port {settings.port}")
    uvicorn.run(app, host="0.0.0.0", port=settings.port)
