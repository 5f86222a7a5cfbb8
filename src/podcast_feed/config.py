from __future__ import annotations

import json
import os
import sys
from pathlib import Path
from typing import Any, Dict, Literal, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from . import config_constants


def _is_test_environment() -> bool:
    """Check if we're running in a test environment."""
    if "pytest" in sys.modules or "PYTEST_CURRENT_TEST" in os.environ:
        return True
    if os.environ.get("TESTING", "").lower() in ("1", "true", "yes"):
        return True
    return False


# Tests configure through Config objects and environment variables only
if not _is_test_environment():
    try:
        load_dotenv(override=False)
    except (PermissionError, OSError):
        pass

DEFAULT_LOG_LEVEL = config_constants.DEFAULT_LOG_LEVEL
DEFAULT_TIMEOUT_SECONDS = config_constants.DEFAULT_TIMEOUT_SECONDS
DEFAULT_USER_AGENT = config_constants.DEFAULT_USER_AGENT
DEFAULT_REDIRECT_POLICY = config_constants.DEFAULT_REDIRECT_POLICY
MIN_TIMEOUT_SECONDS = config_constants.MIN_TIMEOUT_SECONDS
VALID_LOG_LEVELS = config_constants.VALID_LOG_LEVELS
VALID_REDIRECT_POLICIES = config_constants.VALID_REDIRECT_POLICIES

RedirectPolicy = Literal["background", "follow", "ignore"]


class Config(BaseModel):
    """Configuration model for feed retrieval and parsing.

    The model is immutable (frozen) after creation. It can be created
    programmatically or from a JSON/YAML file via `load_config_file()`.

    Attributes:
        timeout: Request timeout in seconds (minimum: 1).
        user_agent: HTTP User-Agent header for requests.
        redirect_policy: What to do when a channel declares ``itunes:new-feed-url``.
            ``background`` re-resolves the new URL in a background worker and
            discards the result, ``follow`` returns the new feed's result instead,
            ``ignore`` only logs the marker.
        log_level: Root log level applied by `workflow.configure_logging()`.
        log_file: Optional path for a file log handler.

    Example:
        >>> cfg = Config(timeout=5, redirect_policy="follow")
        >>> podcast = get_podcast_from_url("https://example.com/feed.xml", cfg)
    """

    timeout: int = Field(
        default=DEFAULT_TIMEOUT_SECONDS,
        description="HTTP request timeout in seconds.",
    )
    user_agent: str = Field(
        default=DEFAULT_USER_AGENT,
        description="User-Agent header sent when fetching feeds.",
    )
    redirect_policy: RedirectPolicy = Field(
        default=DEFAULT_REDIRECT_POLICY,  # type: ignore[assignment]
        description="Handling of itunes:new-feed-url (background, follow, ignore).",
    )
    log_level: str = Field(default=DEFAULT_LOG_LEVEL, description="Log level.")
    log_file: Optional[str] = Field(default=None, description="Optional log file path.")

    model_config = ConfigDict(extra="forbid", populate_by_name=True, frozen=True)

    @model_validator(mode="before")
    @classmethod
    def _preprocess_config_data(cls, data: Any) -> Any:
        """Fill unset values from environment variables.

        LOG_LEVEL takes precedence over the config value; the other variables
        are only used when the config does not set the field.
        """
        if not isinstance(data, dict):
            return data

        env_log_level = os.getenv("LOG_LEVEL")
        if env_log_level:
            env_value = str(env_log_level).strip().upper()
            if env_value in VALID_LOG_LEVELS:
                data["log_level"] = env_value

        for field_name, env_name in (
            ("log_file", "LOG_FILE"),
            ("timeout", "TIMEOUT"),
            ("user_agent", "USER_AGENT"),
            ("redirect_policy", "FEED_REDIRECT_POLICY"),
        ):
            if data.get(field_name) is None:
                env_value = os.getenv(env_name, "").strip()
                if env_value:
                    data[field_name] = env_value

        return data

    @field_validator("timeout", mode="before")
    @classmethod
    def _ensure_timeout(cls, value: Any) -> int:
        if value is None or value == "":
            return DEFAULT_TIMEOUT_SECONDS
        try:
            timeout = int(value)
        except (TypeError, ValueError) as exc:
            raise ValueError("timeout must be an integer") from exc
        return max(MIN_TIMEOUT_SECONDS, timeout)

    @field_validator("user_agent", mode="before")
    @classmethod
    def _coerce_user_agent(cls, value: Any) -> str:
        if value is None:
            return DEFAULT_USER_AGENT
        value_str = str(value).strip()
        return value_str or DEFAULT_USER_AGENT

    @field_validator("redirect_policy", mode="before")
    @classmethod
    def _normalize_redirect_policy(cls, value: Any) -> str:
        if value is None:
            return DEFAULT_REDIRECT_POLICY
        return str(value).strip().lower() or DEFAULT_REDIRECT_POLICY

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: Any) -> str:
        """Normalize log level value."""
        if value is None:
            return DEFAULT_LOG_LEVEL
        return str(value).strip().upper() or DEFAULT_LOG_LEVEL

    @field_validator("log_level", mode="after")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        """Validate log level is one of the valid levels."""
        if value not in VALID_LOG_LEVELS:
            raise ValueError(f"log_level must be one of {VALID_LOG_LEVELS}, got: {value}")
        return value

    @field_validator("log_file", mode="before")
    @classmethod
    def _strip_log_file(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        value = str(value).strip()
        return value or None


def load_config_file(path: str) -> Dict[str, Any]:
    """Load configuration from a JSON or YAML file.

    The file format is auto-detected from the extension (`.json`, `.yaml` or
    `.yml`). The returned dictionary can be unpacked into `Config`.

    Args:
        path: Path to configuration file. Supports tilde expansion.

    Returns:
        Dictionary of configuration values from the file.

    Raises:
        ValueError: If the path is empty or missing, the format is unsupported,
            the content fails to parse, or the top level is not a mapping.

    Example:
        >>> cfg = Config(**load_config_file("feed.yaml"))
    """
    if not path:
        raise ValueError("Config path cannot be empty")

    cfg_path = Path(path).expanduser()
    try:
        resolved = cfg_path.resolve()
    except (OSError, RuntimeError) as exc:
        raise ValueError(f"Invalid config path: {path} ({exc})") from exc

    if not resolved.exists():
        raise ValueError(f"Config file not found: {resolved}")

    suffix = resolved.suffix.lower()
    try:
        text = resolved.read_text(encoding="utf-8")
    except OSError as exc:
        raise ValueError(f"Failed to read config file {resolved}: {exc}") from exc

    if suffix == ".json":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid JSON config file {resolved}: {exc}") from exc
    elif suffix in (".yaml", ".yml"):
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML config file {resolved}: {exc}") from exc
    else:
        raise ValueError(f"Unsupported config file type: {resolved.suffix}")

    if not isinstance(data, dict):
        raise ValueError("Config file must contain a mapping/object at the top level")

    return data
