import os

from dotenv import load_dotenv

# Load .env at repo root
load_dotenv(dotenv_path=os.path.join(os.path.dirname(os.path.dirname(__file__)), "..", ".env"))


class Settings:
    def __init__(self) -> None:
        self.database_url = os.getenv("DATABASE_URL", "sqlite:///./clubsphere.db")
        self.cors_origin = os.getenv("CORS_ORIGIN", "http://localhost:5173")
        self.stripe_secret_key = os.getenv("STRIPE_SECRET_KEY", "")
        self.site_domain = os.getenv("SITE_DOMAIN", "http://localhost:5173").rstrip("/")
        self.currency = os.getenv("CURRENCY", "usd").lower()
        self.log_level = os.getenv("LOG_LEVEL", "INFO").upper()


settings = Settings()
