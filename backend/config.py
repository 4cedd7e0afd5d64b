"""
Configuration management for the Rex360 registration backend.

Loads settings from .env via pydantic-settings.

Notes:
    - cors_origins accepts exact origins and wildcard subdomain patterns
      (e.g. https://*.vercel.app); malformed entries are dropped with a warning
    - validate_production_settings() enforces strict CORS and required
      credentials in production
"""
import logging
import re
from typing import List, Optional
from urllib.parse import urlsplit

from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

_WILDCARD_ORIGIN = re.compile(r"^(https?)://\*\.([A-Za-z0-9.-]+)(:\d+)?$")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ── Application ─────────────────────────────────────────────────
    environment: str = "development"
    port: int = 5000
    site_name: str = "Rex360 Solutions"

    # ── Database ────────────────────────────────────────────────────
    database_url: str = "sqlite:///./data/rex360.db"

    # ── Supabase (storage + identity) ───────────────────────────────
    supabase_url: str = ""
    supabase_service_key: str = ""
    supabase_jwt_secret: str = ""  # when set, tokens are verified locally
    storage_bucket: str = "uploads"

    # ── Admin ───────────────────────────────────────────────────────
    admin_email: str = ""

    # ── Paystack ────────────────────────────────────────────────────
    paystack_secret_key: str = ""
    paystack_base_url: str = "https://api.paystack.co"
    payment_callback_url: str = "http://localhost:5173/payment-success"

    # ── Mail (Resend) ───────────────────────────────────────────────
    resend_api_key: str = ""
    mail_from: str = "Rex360 Solutions <noreply@rex360solutions.com>"

    # ── Uploads ─────────────────────────────────────────────────────
    max_upload_mb: int = 10
    image_variants_enabled: bool = True

    # ── Outbound calls ──────────────────────────────────────────────
    http_timeout_seconds: float = 10.0

    # ── Rate limiting ───────────────────────────────────────────────
    rate_limit_max_requests: int = 100
    rate_limit_window_seconds: int = 900  # 15 minutes

    # ── CORS ────────────────────────────────────────────────────────
    cors_origins: str = "http://localhost:5173,http://localhost:3000,https://rex360solutions.com"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # allow unknown .env keys without crashing
    )

    def _origin_entries(self) -> List[str]:
        return [o.strip().rstrip("/") for o in self.cors_origins.split(",") if o.strip()]

    @property
    def cors_origins_list(self) -> List[str]:
        """Exact-match origins; wildcard and malformed entries are excluded."""
        origins = []
        for entry in self._origin_entries():
            if entry == "*":
                origins.append(entry)
                continue
            if "*" in entry:
                continue
            parts = urlsplit(entry)
            if parts.scheme not in ("http", "https") or not parts.netloc or parts.path:
                logger.warning(f"Ignoring malformed CORS origin: {entry!r}")
                continue
            origins.append(entry)
        return origins

    @property
    def cors_origin_regex(self) -> Optional[str]:
        """
        Regex for wildcard subdomain origins, or None if there are none.

        ``https://*.vercel.app`` matches ``https://my-app.vercel.app`` but not
        ``https://vercel.app`` itself.
        """
        patterns = []
        for entry in self._origin_entries():
            if entry == "*" or "*" not in entry:
                continue
            match = _WILDCARD_ORIGIN.match(entry)
            if not match:
                logger.warning(f"Ignoring malformed wildcard CORS origin: {entry!r}")
                continue
            scheme, domain, port = match.groups()
            patterns.append(
                rf"{scheme}://[A-Za-z0-9-]+(\.[A-Za-z0-9-]+)*\.{re.escape(domain)}{re.escape(port or '')}"
            )
        if not patterns:
            return None
        return "^(" + "|".join(patterns) + ")$"

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024

    @property
    def async_database_url(self) -> str:
        """Map sync driver URLs onto their async drivers."""
        url = self.database_url
        if url.startswith("sqlite:///"):
            return url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
        if url.startswith("postgresql://"):
            return url.replace("postgresql://", "postgresql+asyncpg://", 1)
        if url.startswith("postgres://"):
            return url.replace("postgres://", "postgresql+asyncpg://", 1)
        return url

    def validate_production_settings(self):
        """
        Validate settings for production safety.

        Called during app startup. In production, missing credentials or an
        open CORS policy abort startup; elsewhere they are logged.
        """
        problems = []
        if "*" in self._origin_entries():
            problems.append("CORS_ORIGINS contains '*' (open access)")
        if not self.admin_email:
            problems.append("ADMIN_EMAIL is not set (admin routes will reject every token)")
        if not self.paystack_secret_key:
            problems.append("PAYSTACK_SECRET_KEY is not set (payments and webhooks disabled)")
        if not self.supabase_url or not self.supabase_service_key:
            problems.append("SUPABASE_URL / SUPABASE_SERVICE_KEY not set (uploads and identity lookup disabled)")
        if not self.resend_api_key:
            problems.append("RESEND_API_KEY is not set (emails will not be delivered)")

        if self.environment == "production":
            fatal = [p for p in problems if not p.startswith("RESEND_API_KEY")]
            if fatal:
                raise ValueError("Invalid production settings: " + "; ".join(fatal))
            logger.info("Production settings validated")
        for p in problems:
            logger.warning(p)


# Global settings instance
settings = Settings()
