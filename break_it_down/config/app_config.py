"""
Application configuration - Settings for the Break It Down web app
"""

from dataclasses import dataclass, field
from typing import Optional, Dict, Any
import os
from enum import Enum


class StoreBackend(str, Enum):
    """Supported data store backends"""
    MEMORY = "memory"
    FILE = "file"
    REST = "rest"


class AuthBackend(str, Enum):
    """Supported session providers"""
    LOCAL = "local"
    REST = "rest"


def parse_local_users(raw: Optional[str]) -> Dict[str, str]:
    """
    Parse ``email:password`` pairs separated by commas.

    Example:
        >>> parse_local_users("ana@example.com:secret, bo@example.com:pw")
        {'ana@example.com': 'secret', 'bo@example.com': 'pw'}
    """
    users: Dict[str, str] = {}
    for item in (raw or "").split(","):
        item = item.strip()
        if not item:
            continue
        if ":" not in item:
            raise ValueError(f"Local user entry must be 'email:password', got '{item}'")
        email, password = item.split(":", 1)
        users[email.strip().lower()] = password
    return users


@dataclass
class AppConfig:
    """
    Configuration settings for the Break It Down web app.

    Attributes:
        ai_service_url: Base URL of the AI task-decomposition service (optional)
        ai_timeout_seconds: Timeout for the AI health probe (default: 8.0)
        store_backend: Data store backend (memory, file, rest)
        storage_dir: Directory for the file backend's JSON tables
        backend_url: Base URL of the hosted backend (rest store / rest auth)
        backend_anon_key: Public API key sent as ``apikey`` to the hosted backend
        auth_backend: Session provider (local, rest)
        local_users: email -> password accounts for the local provider
        host: Host to bind the web server to
        port: Port to bind the web server to
        log_level: Logging level (default: 'INFO')
        cookie_secure: Mark the session cookie Secure (HTTPS only)
        activity_log_file: JSONL file for the structured activity log
    """

    ai_service_url: Optional[str] = None
    ai_timeout_seconds: float = 8.0
    store_backend: str = StoreBackend.MEMORY.value
    storage_dir: str = "./data"
    backend_url: Optional[str] = None
    backend_anon_key: Optional[str] = None
    auth_backend: str = AuthBackend.LOCAL.value
    local_users: Dict[str, str] = field(default_factory=dict)
    host: str = "127.0.0.1"
    port: int = 8550
    log_level: str = "INFO"
    cookie_secure: bool = False
    activity_log_file: Optional[str] = "./logs/activity.jsonl"

    def __post_init__(self):
        """Validate configuration after initialization."""
        valid_stores = [b.value for b in StoreBackend]
        if self.store_backend not in valid_stores:
            raise ValueError(f"store_backend must be one of {valid_stores}, got {self.store_backend}")

        valid_auth = [b.value for b in AuthBackend]
        if self.auth_backend not in valid_auth:
            raise ValueError(f"auth_backend must be one of {valid_auth}, got {self.auth_backend}")

        if self.ai_timeout_seconds <= 0:
            raise ValueError("ai_timeout_seconds must be positive")

        if not 0 < self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}")

        if self.log_level not in ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']:
            raise ValueError(f"Invalid log_level: {self.log_level}")

        needs_backend = (
            self.store_backend == StoreBackend.REST.value
            or self.auth_backend == AuthBackend.REST.value
        )
        if needs_backend and not self.backend_url:
            raise ValueError("backend_url is required for the rest store or rest auth backend")

        if self.ai_service_url:
            self.ai_service_url = self.ai_service_url.rstrip("/")
        if self.backend_url:
            self.backend_url = self.backend_url.rstrip("/")

    @classmethod
    def from_env(cls, prefix: str = "BID_") -> "AppConfig":
        """
        Create configuration from environment variables.

        Args:
            prefix: Prefix for environment variables (default: "BID_")

        Example:
            export AI_SERVICE_URL=https://ai.example.com
            export BID_STORE_BACKEND=file
            export BID_LOCAL_USERS=me@example.com:secret
            config = AppConfig.from_env()
        """
        return cls(
            ai_service_url=os.getenv("AI_SERVICE_URL") or os.getenv("NEXT_PUBLIC_AI_SERVICE_URL") or None,
            ai_timeout_seconds=float(os.getenv(f"{prefix}AI_TIMEOUT", "8")),
            store_backend=os.getenv(f"{prefix}STORE_BACKEND", "memory").lower(),
            storage_dir=os.getenv(f"{prefix}STORAGE_DIR", "./data"),
            backend_url=os.getenv(f"{prefix}BACKEND_URL") or None,
            backend_anon_key=os.getenv(f"{prefix}BACKEND_ANON_KEY") or None,
            auth_backend=os.getenv(f"{prefix}AUTH_BACKEND", "local").lower(),
            local_users=parse_local_users(os.getenv(f"{prefix}LOCAL_USERS")),
            host=os.getenv(f"{prefix}HOST", "127.0.0.1"),
            port=int(os.getenv(f"{prefix}PORT", "8550")),
            log_level=os.getenv(f"{prefix}LOG_LEVEL", "INFO").upper(),
            cookie_secure=os.getenv(f"{prefix}COOKIE_SECURE", "false").lower() == "true",
            activity_log_file=os.getenv(f"{prefix}ACTIVITY_LOG_FILE", "./logs/activity.jsonl") or None,
        )

    def to_dict(self, include_secrets: bool = False) -> Dict[str, Any]:
        """
        Convert to dictionary.

        Args:
            include_secrets: Whether to include keys and passwords (default: False)
        """
        result = {
            "ai_service_url": self.ai_service_url,
            "ai_timeout_seconds": self.ai_timeout_seconds,
            "store_backend": self.store_backend,
            "storage_dir": self.storage_dir,
            "backend_url": self.backend_url,
            "auth_backend": self.auth_backend,
            "local_users": sorted(self.local_users),
            "host": self.host,
            "port": self.port,
            "log_level": self.log_level,
            "cookie_secure": self.cookie_secure,
        }

        if include_secrets:
            result["backend_anon_key"] = self.backend_anon_key
            result["local_users"] = dict(self.local_users)

        return result
