"""Health check for the Claude command-line tool."""

from __future__ import annotations

import os
import shutil
import subprocess
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any


class HealthStatus(Enum):
    """Overall state of the Claude CLI installation."""

    HEALTHY = "healthy"
    WARNING = "warning"
    ERROR = "error"


def _run(args: list[str]) -> subprocess.CompletedProcess:
    return subprocess.run(args, capture_output=True, check=False)


def _decode(data: bytes | str | None) -> str:
    if data is None:
        return ""
    if isinstance(data, str):
        return data
    return data.decode("utf-8", errors="replace")


def _find_claude_path() -> str:
    found = shutil.which("claude")
    if found:
        return found.strip()

    home = os.environ.get("HOME")
    if home is not None:
        candidates = [
            f"{home}/.claude/local/claude",
            f"{home}/.npm-global/bin/claude",
            "/usr/local/bin/claude",
            "/opt/homebrew/bin/claude",
            "/usr/local/Homebrew/bin/claude",
        ]
        for candidate in candidates:
            if Path(candidate).exists():
                return candidate

    raise FileNotFoundError("Claude CLI not found in PATH or common installation locations")


def _get_version(claude_path: str) -> str:
    try:
        output = _run([claude_path, "--version"])
    except OSError as exc:
        raise RuntimeError("Failed to get version") from exc
    if output.returncode != 0:
        raise RuntimeError("Failed to get version")
    return _decode(output.stdout).strip()


def _check_authentication(claude_path: str) -> bool:
    try:
        output = _run([claude_path, "--print", "test"])
    except OSError as exc:
        raise RuntimeError("Failed to check authentication") from exc
    stderr = _decode(output.stderr)
    return not any(marker in stderr for marker in ("not authenticated", "login", "setup-token"))


@dataclass
class ClaudeHealthCheck:
    """Result of checking whether the Claude CLI is installed and authenticated."""

    installed: bool = False
    path: str | None = None
    version: str | None = None
    authenticated: bool = False
    issues: list[str] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)
    status: HealthStatus = HealthStatus.ERROR

    @classmethod
    def check(cls) -> ClaudeHealthCheck:
        """Inspect the local Claude CLI installation."""
        result = cls()
        try:
            path = _find_claude_path()
        except FileNotFoundError:
            result.issues.append("Claude CLI is not installed or not in PATH")
            result.suggestions.append(
                "Install Claude CLI: npm install -g @anthropic-ai/claude-code"
            )
            result.suggestions.append("Or via Homebrew: brew install claude")
        else:
            result.installed = True
            result.path = path

            try:
                result.version = _get_version(path)
            except RuntimeError as exc:
                result.issues.append(f"Failed to get Claude CLI version: {exc}")

            try:
                result.authenticated = _check_authentication(path)
            except RuntimeError as exc:
                result.issues.append(f"Failed to check authentication: {exc}")
            else:
                if not result.authenticated:
                    result.issues.append("Claude CLI is not authenticated")
                    result.suggestions.append("Run 'claude setup-token' to authenticate")

        if result.installed and result.authenticated:
            result.status = HealthStatus.HEALTHY
        elif result.installed:
            result.status = HealthStatus.WARNING
        else:
            result.status = HealthStatus.ERROR
        return result

    def status_message(self) -> str:
        """Human-readable summary of the status."""
        if self.status is HealthStatus.HEALTHY:
            return "Claude CLI is ready"
        if self.status is HealthStatus.WARNING:
            return f"Claude CLI has issues: {', '.join(self.issues)}"
        return f"Claude CLI is not available: {', '.join(self.issues)}"

    def setup_instructions(self) -> list[str]:
        """Steps the user should take to get the CLI working."""
        instructions: list[str] = []
        if not self.installed:
            instructions += [
                "1. Install Claude CLI:",
                "   npm install -g @anthropic-ai/claude-code",
                "   OR",
                "   brew install claude",
            ]
        if self.installed and not self.authenticated:
            instructions += ["2. Authenticate Claude CLI:", "   claude setup-token"]
        if self.installed and self.authenticated:
            instructions.append("Claude CLI is ready to use!")
        return instructions

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready representation."""
        return {
            "installed": self.installed,
            "path": self.path,
            "version": self.version,
            "authenticated": self.authenticated,
            "issues": list(self.issues),
            "suggestions": list(self.suggestions),
            "status": self.status.value,
        }