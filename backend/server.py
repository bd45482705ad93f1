"""Slim entry point – wires up all modular routers."""
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles
from starlette.middleware.cors import CORSMiddleware
import logging

from config import client, db, UPLOAD_DIR, OPENPAY_SETTINGS
from routes.user import router as user_router
from routes.billing import router as billing_router
from routes.routines import router as routines_router
from routes.contact import router as contact_router
from services.openpay_client import OpenPayClient
from services.subscription_service import SubscriptionService

app = FastAPI()

# ── Route routers (all prefixed with /api) ──
app.include_router(user_router, prefix="/api")
app.include_router(billing_router, prefix="/api")
app.include_router(routines_router, prefix="/api")
app.include_router(contact_router, prefix="/api")

# ── Billing ──
app.state.subscription_service = SubscriptionService(OpenPayClient(OPENPAY_SETTINGS), OPENPAY_SETTINGS)

# ── Static file serving for uploads ──
app.mount("/api/uploads", StaticFiles(directory=str(UPLOAD_DIR)), name="uploads")

# ── CORS ──
app.add_middleware(
    CORSMiddleware,
    allow_credentials=True,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Logging ──
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@app.get("/api/")
async def root():
    return {"message": "Caff Balance API"}


# ── Lifecycle ──
@app.on_event("startup")
async def startup_indexes():
    await db.users.create_index("email", unique=True)
    await db.users.create_index("id", unique=True)
    if not OPENPAY_SETTINGS.is_configured:
        logger.warning("OpenPay is not configured; billing and gated routes will fail until it is")


@app.on_event("shutdown")
async def shutdown_db_client():
    client.close()
