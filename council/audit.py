"""Structured audit logging for Council operations."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict
import json
import logging

from council.store import now_iso

logger = logging.getLogger(__name__)


@dataclass
class AuditLog:
    path: Path

    def log(self, event: str, data: Dict[str, Any] | None = None) -> None:
        payload = {
            "timestamp": now_iso(),
            "event": event,
            "data": data or {},
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as handle:
                handle.write(json.dumps(payload) + "\n")
        except OSError:
            logger.warning(f"Failed to append audit event to {self.path}", exc_info=True)
