"""Error taxonomy shared by the council core and its outer surfaces."""
from __future__ import annotations

from typing import Any, Dict, Optional


class CouncilError(Exception):
    """Base class for every failure surfaced to a caller."""

    kind = "CouncilError"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message
        self.stage: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "message": self.message}


class InvalidTitle(CouncilError):
    kind = "InvalidTitle"


class NotFound(CouncilError):
    kind = "NotFound"


class NoSourceDocuments(CouncilError):
    kind = "NoSourceDocuments"


class StoreIO(CouncilError):
    kind = "StoreIO"


class UnknownEngine(CouncilError):
    kind = "UnknownEngine"


class EngineError(CouncilError):
    """Raised when an engine process could not produce usable output."""

    kind = "EngineError"

    def __init__(self, engine: str, message: str) -> None:
        super().__init__(message)
        self.engine = engine


class EngineUnavailable(EngineError):
    kind = "EngineUnavailable"


class EngineFailed(EngineError):
    kind = "EngineFailed"

    def __init__(self, engine: str, returncode: int, stderr: str) -> None:
        detail = stderr.strip() or "no stderr output"
        super().__init__(engine, f"{engine} exited with status {returncode}: {detail}")
        self.returncode = returncode
        self.stderr = stderr


class EngineTimeout(EngineError):
    kind = "EngineTimeout"

    def __init__(self, engine: str, timeout: float, stdout: str = "") -> None:
        super().__init__(engine, f"{engine} did not finish within {timeout:g}s and was terminated")
        self.timeout = timeout
        self.stdout = stdout


class EngineEmptyOutput(EngineError):
    kind = "EngineEmptyOutput"

    def __init__(self, engine: str) -> None:
        super().__init__(engine, f"{engine} exited successfully but wrote nothing to stdout")
