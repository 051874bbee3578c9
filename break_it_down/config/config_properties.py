"""
Configuration Properties - single source of truth for raw configuration.

Reads config.properties (and a .env file, via python-dotenv) and exposes
both file-based and env-var accessors. AppConfig builds its typed settings
from the environment this class populates.
"""

import os
from pathlib import Path
from typing import Optional, Dict, Any

from dotenv import load_dotenv


class ConfigProperties:
    """
    Unified configuration loader and accessor.

    Reads config.properties once at startup, injects all plain-key values
    into os.environ, and exposes both file-based and env-var accessors.

    Quick usage::

        # File-based (dot-notation and plain keys from config.properties)
        ConfigProperties.get("ui.title")
        ConfigProperties.get_int("activity.max_entries", 500)

        # Env-var accessors (reads os.environ, respects OS overrides)
        ConfigProperties.get_env("AI_SERVICE_URL")
        ConfigProperties.get_logging_config()

        # Bootstrap (call once at process start)
        ConfigProperties.load_env_file()   # load + inject into os.environ
    """

    _instance: Optional["ConfigProperties"] = None
    _properties: Dict[str, str] = {}
    _loaded: bool = False
    _source: Optional[Path] = None

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @classmethod
    def load(cls, path: Optional[str] = None) -> "ConfigProperties":
        """
        Parse config.properties and return the singleton instance.

        Args:
            path: Explicit path to config.properties; auto-discovered if omitted.
        """
        if cls._instance and cls._loaded:
            return cls._instance

        cls._instance = cls()
        cls._properties = {}

        config_path = Path(path) if path else cls._find_config_file()

        if config_path and config_path.exists():
            cls._parse_file(config_path)
            cls._source = config_path

        cls._loaded = True
        return cls._instance

    @classmethod
    def load_env_file(cls, path: Optional[str] = None, dotenv_path: Optional[str] = None) -> bool:
        """
        Load config.properties and .env, then inject plain keys into os.environ.

        Values already present in the process environment always win over
        both files.

        Args:
            path: Explicit path to config.properties; auto-discovered if omitted.
            dotenv_path: Explicit path to a .env file; auto-discovered if omitted.

        Returns:
            True if either file was found and loaded.
        """
        env_file = Path(dotenv_path) if dotenv_path else cls._find_upwards(".env")
        loaded_dotenv = bool(env_file and env_file.exists() and load_dotenv(env_file, override=False))

        try:
            cls.load(path)
            cls.load_to_env()
        except OSError as exc:
            print(f"Warning: Failed to load config.properties: {exc}")
            return loaded_dotenv

        return loaded_dotenv or bool(cls._properties)

    @classmethod
    def load_to_env(cls) -> None:
        """
        Populate os.environ from config.properties (plain keys only).

        - OS/container env vars already set are **never** overwritten.
        - Dot-notation keys (e.g. ``activity.max_entries``) are skipped; they
          are not valid env-var identifiers and must be read via :meth:`get`.
        """
        if not cls._loaded:
            cls.load()

        for key, value in cls._properties.items():
            if "." in key:
                continue
            if key not in os.environ:
                os.environ[key] = value

    @classmethod
    def reload(cls, path: Optional[str] = None) -> "ConfigProperties":
        """Force a fresh re-parse of config.properties."""
        cls._loaded = False
        cls._properties = {}
        cls._instance = None
        cls._source = None
        return cls.load(path)

    # ------------------------------------------------------------------
    # File-based accessors
    # ------------------------------------------------------------------

    @classmethod
    def get(cls, key: str, default: Optional[str] = None) -> Optional[str]:
        """Return the value for *key* from config.properties (or *default*)."""
        if not cls._loaded:
            cls.load()
        return cls._properties.get(key, default)

    @classmethod
    def get_bool(cls, key: str, default: bool = False) -> bool:
        val = cls.get(key)
        if val is None:
            return default
        return val.lower() in ("true", "1", "yes", "on")

    @classmethod
    def get_int(cls, key: str, default: int = 0) -> int:
        val = cls.get(key)
        if val is None:
            return default
        try:
            return int(val)
        except ValueError:
            return default

    # ------------------------------------------------------------------
    # Env-var-style accessors (reads os.environ, respects OS overrides)
    # ------------------------------------------------------------------

    @staticmethod
    def get_env(key: str, default: Optional[str] = None) -> Optional[str]:
        """Get an environment variable (same as ``os.getenv``)."""
        return os.getenv(key, default)

    @staticmethod
    def get_bool_env(key: str, default: bool = False) -> bool:
        value = os.getenv(key, str(default)).lower()
        return value in ("true", "1", "yes", "on")

    @staticmethod
    def get_int_env(key: str, default: int = 0) -> int:
        try:
            return int(os.getenv(key, str(default)))
        except ValueError:
            return default

    # ------------------------------------------------------------------
    # Logging configuration helper
    # ------------------------------------------------------------------

    @staticmethod
    def get_logging_config() -> Dict[str, Any]:
        """
        Return a ``ComprehensiveLogger.initialize()``-compatible dict
        built from the current environment (populated by ``load_to_env``).
        """
        return {
            "log_folder":     os.getenv("BID_LOG_FOLDER", "./logs"),
            "log_level":      os.getenv("BID_LOG_LEVEL", "INFO"),
            "enable_console": os.getenv("BID_ENABLE_CONSOLE_LOGGING", "true").lower() in ("true", "1", "yes"),
            "enable_file":    os.getenv("BID_ENABLE_FILE_LOGGING", "true").lower() in ("true", "1", "yes"),
            "max_bytes":      int(os.getenv("BID_LOG_MAX_BYTES", "10485760")),
            "backup_count":   int(os.getenv("BID_LOG_BACKUP_COUNT", "5")),
        }

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @classmethod
    def _find_config_file(cls) -> Optional[Path]:
        """Search for config.properties starting from the project root."""
        fixed = Path(__file__).parent.parent.parent / "config.properties"
        if fixed.exists():
            return fixed
        return cls._find_upwards("config.properties")

    @staticmethod
    def _find_upwards(filename: str) -> Optional[Path]:
        """Look for *filename* in the current dir and up to 3 parents."""
        current = Path.cwd()
        for _ in range(4):
            candidate = current / filename
            if candidate.exists():
                return candidate
            if current.parent == current:
                break
            current = current.parent
        return None

    @classmethod
    def _parse_file(cls, path: Path) -> None:
        """Parse a Java-style .properties file into ``_properties``."""
        with open(path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line or line.startswith("#") or line.startswith("!"):
                    continue
                for sep in ("=", ":"):
                    if sep in line:
                        key, value = line.split(sep, 1)
                        cls._properties[key.strip()] = value.strip()
                        break
