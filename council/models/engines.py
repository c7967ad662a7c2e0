"""Recognized engines and how each one is invoked."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
import logging

from council.errors import UnknownEngine
from council.models.cli import CliClient

logger = logging.getLogger(__name__)

DEFAULT_ENGINE = "claude"


@dataclass(frozen=True)
class Engine:
    """One recognized engine executable.

    ``command`` is the argv template; the prompt always travels on stdin,
    and ``stdin_flag`` is appended when the executable needs to be told to
    read it from there.
    """

    name: str
    command: Tuple[str, ...]
    stdin_flag: Optional[str] = None
    aliases: Tuple[str, ...] = ()
    env: Dict[str, str] = field(default_factory=dict)

    def argv(self) -> List[str]:
        cmd = list(self.command)
        if self.stdin_flag:
            cmd.append(self.stdin_flag)
        return cmd

    def configured(self, override: Dict[str, Any] | None) -> "Engine":
        """Apply a config override without changing the engine's identity."""
        if not override:
            return self
        command = override.get("command")
        if isinstance(command, str):
            command = command.split()
        env = dict(self.env)
        env.update({str(k): str(v) for k, v in (override.get("env") or {}).items()})
        return Engine(
            name=self.name,
            command=tuple(command) if command else self.command,
            stdin_flag=override.get("stdin_flag", self.stdin_flag),
            aliases=self.aliases,
            env=env,
        )

    def invoke(self, client: CliClient, prompt: str, timeout_seconds: float) -> str:
        return client.run(
            engine=self.name,
            command=self.argv(),
            prompt=prompt,
            timeout_seconds=timeout_seconds,
            env=self.env,
        ).text


ENGINES: Dict[str, Engine] = {
    "claude": Engine(name="claude", command=("claude", "-p"), aliases=("sonnet", "opus")),
    "codex": Engine(name="codex", command=("codex", "exec", "--skip-git-repo-check"), stdin_flag="-", aliases=("gpt", "openai")),
    "gemini": Engine(name="gemini", command=("gemini",)),
    "grok": Engine(name="grok", command=("grok", "--prompt"), stdin_flag="-"),
}


def canonical_engine(token: str | None) -> str:
    """Map an engine token or alias to its canonical name, failing on unknown tokens."""
    value = (token or "").strip().lower() or DEFAULT_ENGINE
    if value in ENGINES:
        return value
    for engine in ENGINES.values():
        if value in engine.aliases:
            return engine.name
    raise UnknownEngine(f"Unknown engine {token!r}; expected one of: {', '.join(sorted(ENGINES))}")


def get_engine(token: str | None, overrides: Dict[str, Any] | None = None) -> Engine:
    name = canonical_engine(token)
    engine = ENGINES[name]
    override = (overrides or {}).get(name)
    return engine.configured(override if isinstance(override, dict) else None)


class EngineAdapter:
    """Invoke a recognized engine with a prompt and return its raw stdout."""

    def __init__(self, overrides: Dict[str, Any] | None = None, client: CliClient | None = None) -> None:
        self.overrides = overrides or {}
        self.client = client or CliClient()
        unknown = sorted(set(self.overrides) - set(ENGINES))
        if unknown:
            logger.warning(f"Ignoring overrides for unrecognized engines: {', '.join(unknown)}")

    def resolve(self, token: str | None) -> Engine:
        return get_engine(token, self.overrides)

    def invoke(self, engine_id: str, prompt_text: str, timeout: float) -> str:
        engine = self.resolve(engine_id)
        return engine.invoke(self.client, prompt_text, timeout)
