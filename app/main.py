import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# IMPORTANT:
# This imports ALL models so SQLAlchemy registers tables + FKs correctly
import app.models  # noqa: F401
from app.core.config import settings
from app.core.exceptions import AppException, app_exception_handler

# Routers
from app.routers.auth import router as auth_router

from app.routers.events import router as events_router
from app.routers.posts import router as posts_router
from app.routers.games import router as games_router
from app.routers.coupons import router as coupons_router
from app.routers.stamps import router as stamps_router
from app.routers.merchants import router as merchants_router

from app.routers.admin_events import router as admin_events_router
from app.routers.admin_posts import router as admin_posts_router
from app.routers.admin_templates import router as admin_templates_router
from app.routers.admin_merchants import router as admin_merchants_router
from app.routers.admin_coupons import router as admin_coupons_router

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(title="Stamp Tour API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(AppException, app_exception_handler)


@app.get("/healthz")
async def healthz():
    return {"ok": True}


# Auth
app.include_router(auth_router)

# User flow: visit -> game -> coupon, stamps -> rewards
app.include_router(events_router)
app.include_router(posts_router)
app.include_router(games_router)
app.include_router(coupons_router)
app.include_router(stamps_router)

# Merchant counter
app.include_router(merchants_router)

# Admin
app.include_router(admin_events_router)
app.include_router(admin_posts_router)
app.include_router(admin_templates_router)
app.include_router(admin_merchants_router)
app.include_router(admin_coupons_router)
