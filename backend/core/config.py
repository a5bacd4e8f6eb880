"""
Application configuration.
All secrets and connection strings are loaded exclusively from environment
variables (via etc/app.conf).  Nothing sensitive is hard-coded here.
"""

from pathlib import Path

from pydantic_settings import BaseSettings

# Project root is two levels up from this file  (backend/core/config.py → termbase/)
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


class Settings(BaseSettings):
    # Database
    database_url: str = "sqlite:///./termbase.db"

    # AES-256 master key – base64-encoded 32 random bytes.
    # Encrypts the support copy of non-admin passwords; never logged.
    master_encryption_key: str

    # Sessions are opaque server-side rows; fixed lifetime, no sliding refresh
    session_ttl_hours: int = 24

    # PBKDF2 work factor.  Lower it only for tests.
    password_hash_rounds: int = 600_000

    # IP geolocation (ip-api.com compatible JSON endpoint)
    geoip_url: str = "http://ip-api.com/json/{ip}"
    geoip_timeout: float = 2.5
    geoip_lang: str = "zh-CN"

    # Outbound mail for abnormal-login alerts
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    smtp_from: str = ""
    smtp_use_tls: bool = True
    smtp_timeout: float = 10.0
    alert_email: str = ""

    # Used only by bin/init_db.py to bootstrap the first admin account.
    first_admin_username: str = "admin"
    first_admin_email: str = ""
    first_admin_password: str = ""

    cors_origins: list[str] = ["http://localhost:8000"]

    # Peers allowed to set X-Forwarded-For (e.g. the reverse proxy address).
    # Empty means the header is ignored and the socket peer is the client.
    trusted_proxies: list[str] = []

    # app.conf lives in etc/ – resolved relative to the project root so that
    # the file is found regardless of the working directory.
    model_config = {"env_file": str(_PROJECT_ROOT / "etc" / "app.conf"), "extra": "ignore"}


# Module-level singleton – import this everywhere: from core.config import settings
settings = Settings()
