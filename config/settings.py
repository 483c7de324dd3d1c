from __future__ import annotations

import os
import re
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv


load_dotenv()


def clean_endpoint(endpoint: str) -> str:
    """Reduce an Azure OpenAI endpoint to its bare host.

    Accepts values with or without protocol, trailing slashes or a trailing
    ``/openai`` segment.
    """
    cleaned = re.sub(r"^https?://", "", endpoint.strip())
    cleaned = re.sub(r"/+$", "", cleaned)
    cleaned = re.sub(r"/openai$", "", cleaned)
    return cleaned


class Settings:
    """Application settings loaded from environment variables.

    Keep all credentials and config centralized here.
    """

    def __init__(self) -> None:
        self.app_env: str = os.getenv("APP_ENV", "development")
        self.log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()
        self.host: str = os.getenv("HOST", "127.0.0.1")
        self.port: int = int(os.getenv("PORT", "3000"))

        self.azure_openai_key: Optional[str] = _stripped("AZURE_OPENAI_KEY")
        self.azure_openai_endpoint: Optional[str] = _stripped("AZURE_OPENAI_ENDPOINT")
        self.azure_openai_deployment: Optional[str] = _stripped(
            "AZURE_OPENAI_DEPLOYMENT_NAME"
        )
        self.azure_openai_api_version: str = os.getenv(
            "AZURE_OPENAI_API_VERSION", "2023-12-01-preview"
        )
        self.request_timeout: float = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "60"))

        self.public_dir: str = os.getenv("PUBLIC_DIR", "public")
        self.max_upload_bytes: int = int(
            os.getenv("MAX_UPLOAD_BYTES", str(5 * 1024 * 1024))
        )

        self.jwt_secret: str = os.getenv("JWT_SECRET", "your-secret-key-change-this")
        self.auth_username: str = os.getenv("AUTH_USERNAME", "admin")
        self.auth_password: str = os.getenv("AUTH_PASSWORD", "change-this-password")
        self.token_max_age: int = int(os.getenv("TOKEN_MAX_AGE_SECONDS", str(24 * 3600)))

        self.unknown_conversation_policy: str = os.getenv(
            "UNKNOWN_CONVERSATION_POLICY", "create"
        ).lower()

    @property
    def uploads_dir(self) -> str:
        return os.path.join(self.public_dir, "uploads")

    @property
    def is_dev(self) -> bool:
        return self.app_env.lower() in {"dev", "development", "local"}

    def azure_endpoint_url(self) -> str:
        """Normalized resource URL for the chat completions client.

        Raises RuntimeError naming the first missing variable.
        """
        required = {
            "AZURE_OPENAI_KEY": self.azure_openai_key,
            "AZURE_OPENAI_ENDPOINT": self.azure_openai_endpoint,
            "AZURE_OPENAI_DEPLOYMENT_NAME": self.azure_openai_deployment,
        }
        for name, value in required.items():
            if not value:
                raise RuntimeError(f"{name} environment variable is required")

        host = clean_endpoint(self.azure_openai_endpoint or "")
        return f"https://{host}"


def _stripped(name: str) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return None
    return value.strip() or None


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
