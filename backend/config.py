from dataclasses import dataclass
from dotenv import load_dotenv
from motor.motor_asyncio import AsyncIOMotorClient
import os
from pathlib import Path

ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')

mongo_url = os.environ['MONGO_URL']
client = AsyncIOMotorClient(mongo_url)
db = client[os.environ['DB_NAME']]

# JWT Configuration
JWT_SECRET = os.environ.get('JWT_SECRET', 'caffbalance-secret-key')
JWT_ALGORITHM = "HS256"
RESET_TOKEN_TTL_SECONDS = 3600

# Admin / mail
ADMIN_EMAIL = os.environ.get('ADMIN_EMAIL', 'admin@caffbalance.com')
RESEND_API_KEY = os.environ.get('RESEND_API_KEY', '')
SENDER_EMAIL = os.environ.get('SENDER_EMAIL', 'noreply@caffbalance.com')
CONTACT_EMAIL = os.environ.get('CONTACT_EMAIL', 'contacto@caffbalance.com')
APP_NAME = "Caff Balance"

# Exercise video uploads
UPLOAD_DIR = Path(os.environ.get('UPLOAD_DIR', str(ROOT_DIR / 'uploads')))
UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
ALLOWED_VIDEO_EXTENSIONS = {".mp4": "mp4", ".webm": "webm", ".ogg": "ogg"}
MAX_VIDEO_SIZE = 200 * 1024 * 1024

OPENPAY_SANDBOX_URL = "https://sandbox-api.openpay.mx/v1"
OPENPAY_PRODUCTION_URL = "https://api.openpay.mx/v1"


@dataclass(frozen=True)
class OpenPaySettings:
    """Merchant credentials and the single subscription plan every user signs up for."""

    merchant_id: str = ""
    private_key: str = ""
    public_key: str = ""
    plan_id: str = ""
    production: bool = False
    country_code: str = "MX"
    timeout: float = 15.0

    @staticmethod
    def from_env() -> "OpenPaySettings":
        return OpenPaySettings(
            merchant_id=os.environ.get('OPENPAY_MERCHANT_ID', ''),
            private_key=os.environ.get('OPENPAY_PRIVATE_KEY', ''),
            public_key=os.environ.get('OPENPAY_PUBLIC_KEY', ''),
            plan_id=os.environ.get('OPENPAY_SUBSCRIPTION_ID', ''),
            production=os.environ.get('OPENPAY_PRODUCTION', '').lower() in ("1", "true", "yes"),
        )

    @property
    def base_url(self) -> str:
        host = OPENPAY_PRODUCTION_URL if self.production else OPENPAY_SANDBOX_URL
        return f"{host}/{self.merchant_id}"

    @property
    def is_configured(self) -> bool:
        return bool(self.merchant_id and self.private_key and self.plan_id)


OPENPAY_SETTINGS = OpenPaySettings.from_env()
