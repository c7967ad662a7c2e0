"""Configuration loader for Council."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict
import logging
import os
import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config" / "default.yaml"
USER_CONFIG_PATH = Path.home() / ".config" / "council" / "config.yaml"
COUNCIL_DIR_NAME = ".council"
PARENT_SEARCH_DEPTH = 5


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    result = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _int_env(name: str) -> int | None:
    raw = os.getenv(name)
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Ignoring non-integer {name}={raw!r}")
        return None


def load_config(
    default_path: Path | None = None,
    user_path: Path | None = None,
) -> Dict[str, Any]:
    default_path = default_path or DEFAULT_CONFIG_PATH
    user_path = user_path or USER_CONFIG_PATH
    data: Dict[str, Any] = {}
    if default_path.exists():
        data = yaml.safe_load(default_path.read_text()) or {}
    if user_path.exists():
        override = yaml.safe_load(user_path.read_text()) or {}
        data = _deep_merge(data, override)

    # Environment overrides - storage root
    root = os.getenv("COUNCIL_ROOT")
    if root:
        data["root"] = root

    # Environment overrides - timeouts
    review_timeout = _int_env("COUNCIL_REVIEW_TIMEOUT")
    if review_timeout is not None:
        data.setdefault("timeouts", {})["review_seconds"] = review_timeout
    finalize_timeout = _int_env("COUNCIL_FINALIZE_TIMEOUT")
    if finalize_timeout is not None:
        data.setdefault("timeouts", {})["finalize_seconds"] = finalize_timeout

    # Environment overrides - server
    host = os.getenv("COUNCIL_HOST")
    if host:
        data.setdefault("server", {})["host"] = host
    port = _int_env("COUNCIL_PORT")
    if port is not None:
        data.setdefault("server", {})["port"] = port

    audit_path = os.getenv("COUNCIL_AUDIT_PATH")
    if audit_path:
        data.setdefault("audit", {})["path"] = audit_path

    return data


def find_council_dir(start: Path | None = None) -> Path:
    """Locate the nearest ``.council`` directory at or above ``start``."""
    current = (start or Path.cwd()).resolve()
    directory = current
    for _ in range(PARENT_SEARCH_DEPTH + 1):
        candidate = directory / COUNCIL_DIR_NAME
        if candidate.is_dir():
            return candidate
        if directory.parent == directory:
            break
        directory = directory.parent
    return current / COUNCIL_DIR_NAME


@dataclass
class Config:
    raw: Dict[str, Any]

    @property
    def root(self) -> Path:
        configured = self.raw.get("root")
        if configured:
            return Path(configured).expanduser()
        return find_council_dir()

    @property
    def timeouts(self) -> Dict[str, Any]:
        return self.raw.get("timeouts", {})

    @property
    def review_timeout_seconds(self) -> int:
        """Timeout for a peer-review engine call. Default 5 minutes."""
        return int(self.timeouts.get("review_seconds", 300))

    @property
    def finalize_timeout_seconds(self) -> int:
        """Timeout for a finalize engine call. Default 10 minutes."""
        return int(self.timeouts.get("finalize_seconds", 600))

    @property
    def default_engine(self) -> str:
        return str(self.raw.get("default_engine") or "claude")

    @property
    def engines(self) -> Dict[str, Any]:
        return self.raw.get("engines", {}) or {}

    @property
    def server(self) -> Dict[str, Any]:
        return self.raw.get("server", {})

    @property
    def audit_path(self) -> Path | None:
        path = (self.raw.get("audit") or {}).get("path")
        return Path(path).expanduser() if path else None


def get_config() -> Config:
    return Config(load_config())
