"""Document storefront FastAPI application."""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from auth.middleware import AuthGateMiddleware
from config import settings
from models.base import Base, async_engine
from api import auth, documents, location, payments, products, profile, purchases

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(title="Document Storefront API", version="1.0.0")

app.add_middleware(AuthGateMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.public_base_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(profile.router)
app.include_router(products.router)
app.include_router(location.router)
app.include_router(payments.router)
app.include_router(documents.router)
app.include_router(purchases.router)


@app.on_event("startup")
async def startup():
    """Create database tables."""
    logger.info("Creating database tables...")
    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ready.")


@app.get("/api/health")
async def health():
    return {"status": "ok"}
