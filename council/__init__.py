"""Council: peer review and final synthesis over multi-model answers."""
from __future__ import annotations

__version__ = "0.1.0"
