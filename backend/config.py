"""
Application configuration with Docker secrets support.

Secrets are read using the _read_secret() pattern:
  1. Direct env var (e.g., STRIPE_SECRET_KEY)
  2. File-based env var (e.g., STRIPE_SECRET_KEY_FILE → reads file path)
  3. Raises ValueError if neither is set
"""

import os
import logging

logger = logging.getLogger(__name__)


def _read_secret(env_var: str, file_env_var: str | None = None) -> str:
    """Read a secret from env var or Docker secrets file.

    Args:
        env_var: Direct environment variable name (e.g., STRIPE_SECRET_KEY)
        file_env_var: File path env var name (e.g., STRIPE_SECRET_KEY_FILE).
                      If None, defaults to env_var + '_FILE'.

    Returns:
        The secret value.

    Raises:
        ValueError: If neither source provides a value.
    """
    if file_env_var is None:
        file_env_var = f"{env_var}_FILE"

    # Priority 1: Direct env var
    value = os.environ.get(env_var)
    if value:
        return value

    # Priority 2: File-based (Docker secrets pattern)
    file_path = os.environ.get(file_env_var)
    if file_path:
        try:
            with open(file_path, "r") as f:
                value = f.read().strip()
            if value:
                return value
        except FileNotFoundError:
            logger.error(f"Secret file not found: {file_path} (from {file_env_var})")
        except PermissionError:
            logger.error(f"Permission denied reading: {file_path} (from {file_env_var})")

    raise ValueError(
        f"Secret not configured. Set {env_var} env var or {file_env_var} pointing to a file."
    )


def _read_optional_secret(env_var: str) -> str | None:
    """Like _read_secret() but returns None when the secret is absent."""
    try:
        return _read_secret(env_var)
    except ValueError:
        return None


class Settings:
    """Application settings loaded from environment and Docker secrets."""

    def __init__(self):
        # Database
        self.database_url = self._build_database_url()

        # Secrets (loaded lazily on first access via properties)
        self._app_secret_key: str | None = None
        self._stripe_secret_key: str | None = None

        # Public config
        self.public_base_url = os.environ.get("PUBLIC_BASE_URL", "http://localhost:3000")
        self.stripe_publishable_key = os.environ.get("STRIPE_PUBLISHABLE_KEY", "")
        self.default_currency = os.environ.get("DEFAULT_CURRENCY", "usd").lower()

        # Content source (Sanity)
        self.sanity_project_id = os.environ.get("SANITY_PROJECT_ID", "")
        self.sanity_dataset = os.environ.get("SANITY_DATASET", "production")
        self.sanity_api_version = os.environ.get("SANITY_API_VERSION", "2023-05-03")

        # Blob storage
        self.storage_root = os.environ.get("STORAGE_ROOT", "/var/lib/docstore")
        self.storage_bucket = os.environ.get("STORAGE_BUCKET", "documents")

        # Fulfillment
        self.default_generation_allowance = int(os.environ.get("DEFAULT_GENERATION_ALLOWANCE", "1"))
        self.pdf_font_path = os.environ.get("PDF_FONT_PATH", "")

        # Mail delivery (optional)
        self.mailgun_domain = os.environ.get("MAILGUN_DOMAIN", "")
        self.mailgun_base_url = os.environ.get("MAILGUN_BASE_URL", "https://api.mailgun.net")
        self.email_from_name = os.environ.get("EMAIL_FROM_NAME", "Document Service")
        self.email_from_address = os.environ.get("EMAIL_FROM_ADDRESS", "")
        self.internal_email = os.environ.get("INTERNAL_EMAIL", "")

    def _build_database_url(self) -> str:
        """Build async database URL with password from secrets."""
        base_url = os.environ.get(
            "DATABASE_URL", "postgresql+asyncpg://docstore@postgres:5432/docstore"
        )
        try:
            password = _read_secret("POSTGRES_PASSWORD")
            # Insert password into URL: postgresql+asyncpg://user@host → user:pass@host
            if "://" in base_url and "@" in base_url:
                scheme_user, rest = base_url.split("@", 1)
                if ":" not in scheme_user.split("://")[1]:
                    # No password in URL yet, add it
                    base_url = f"{scheme_user}:{password}@{rest}"
        except ValueError:
            logger.warning("POSTGRES_PASSWORD not set, using DATABASE_URL as-is")
        return base_url

    @property
    def app_secret_key(self) -> str:
        if self._app_secret_key is None:
            self._app_secret_key = _read_secret("APP_SECRET_KEY")
        return self._app_secret_key

    @property
    def stripe_secret_key(self) -> str:
        if self._stripe_secret_key is None:
            self._stripe_secret_key = _read_secret("STRIPE_SECRET_KEY")
        return self._stripe_secret_key

    @property
    def stripe_webhook_secret(self) -> str | None:
        # Not cached: a missing secret must keep rejecting webhooks until configured.
        return _read_optional_secret("STRIPE_WEBHOOK_SECRET")

    @property
    def sanity_api_token(self) -> str | None:
        return _read_optional_secret("SANITY_API_TOKEN")

    @property
    def mailgun_api_key(self) -> str | None:
        return _read_optional_secret("MAILGUN_API_KEY")

    @property
    def mail_enabled(self) -> bool:
        return bool(self.mailgun_domain and self.mailgun_api_key)


settings = Settings()
