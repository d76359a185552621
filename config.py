import os
from functools import lru_cache
from typing import List
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"

def _split_list(value: str) -> List[str]:
    if value == "*":
        return ["*"]
    return [item.strip() for item in value.split(",") if item.strip()]

class Settings:
    """Runtime configuration, read from the environment when instantiated"""

    def __init__(self):
        # Database
        self.DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./lnurl.db")

        # Nostr key used to sign zap receipts (hex or nsec1 bech32)
        self.NSEC: str = os.getenv("LNURL_NSEC", "")

        # Webserver
        self.DOMAIN: str = os.getenv("LNURL_DOMAIN", "localhost:3000")
        self.BIND: str = os.getenv("LNURL_BIND", "0.0.0.0")
        self.PORT: int = int(os.getenv("LNURL_PORT", "3000"))
        self.MAX_BODY_BYTES: int = int(os.getenv("MAX_BODY_BYTES", "1000000"))  # 1mb
        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

        # LNURL-pay parameters (millisatoshis)
        self.MIN_SENDABLE: int = int(os.getenv("LNURL_MIN_SENDABLE", "1000"))
        self.MAX_SENDABLE: int = int(os.getenv("LNURL_MAX_SENDABLE", "11000000000"))
        self.COMMENT_ALLOWED: int = int(os.getenv("LNURL_COMMENT_ALLOWED", "100"))

        # LNbits wallet
        self.LNBITS_ENDPOINT: str = os.getenv("LNBITS_ENDPOINT", "https://demo.lnbits.com")
        self.LNBITS_API_KEY: str = os.getenv("LNBITS_API_KEY", "")
        self.LNBITS_TIMEOUT_SECONDS: float = float(os.getenv("LNBITS_TIMEOUT_SECONDS", "30"))

        # Invoice lifecycle
        self.INVOICE_EXPIRY_SECONDS: int = int(os.getenv("INVOICE_EXPIRY_SECONDS", "3600"))
        self.SETTLEMENT_POLL_ENABLED: bool = _env_bool("SETTLEMENT_POLL_ENABLED", "true")
        self.SETTLEMENT_POLL_INTERVAL_SECONDS: int = int(os.getenv("SETTLEMENT_POLL_INTERVAL_SECONDS", "60"))

        # Admin API security
        self.ADMIN_API_KEY: str = os.getenv("ADMIN_API_KEY", "")

        # CORS configuration
        self.CORS_ENABLED: bool = _env_bool("CORS_ENABLED", "true")
        self.CORS_ORIGINS: str = os.getenv("CORS_ORIGINS", "*")
        self.CORS_ALLOW_METHODS: str = os.getenv("CORS_ALLOW_METHODS", "GET,POST,PUT,DELETE,OPTIONS")
        self.CORS_ALLOW_HEADERS: str = os.getenv("CORS_ALLOW_HEADERS", "Content-Type,Authorization")

    @property
    def cors_origins_list(self) -> List[str]:
        """Convert CORS_ORIGINS string to list"""
        return _split_list(self.CORS_ORIGINS)

    @property
    def cors_methods_list(self) -> List[str]:
        """Convert CORS_ALLOW_METHODS string to list"""
        return _split_list(self.CORS_ALLOW_METHODS)

    @property
    def cors_headers_list(self) -> List[str]:
        """Convert CORS_ALLOW_HEADERS string to list"""
        return _split_list(self.CORS_ALLOW_HEADERS)

    def validate(self) -> List[str]:
        """Return a list of configuration problems (empty when valid)"""
        errors = []

        if not self.DATABASE_URL:
            errors.append("DATABASE_URL not configured")

        if not self.NSEC:
            errors.append("LNURL_NSEC not configured")

        if self.MIN_SENDABLE <= 0:
            errors.append("LNURL_MIN_SENDABLE must be positive")

        if self.MAX_SENDABLE < self.MIN_SENDABLE:
            errors.append("LNURL_MAX_SENDABLE must be >= LNURL_MIN_SENDABLE")

        if self.COMMENT_ALLOWED < 0:
            errors.append("LNURL_COMMENT_ALLOWED must be >= 0")

        if not self.LNBITS_API_KEY:
            errors.append("LNBITS_API_KEY not configured")

        return errors

@lru_cache()
def get_settings() -> Settings:
    """Return cached settings instance"""
    return Settings()
