"""Client for the Claude command-line tool in headless mode."""

from __future__ import annotations

import json
import logging
import subprocess
import tempfile
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

_HTML_LIMIT = 100_000


class ClaudeError(Exception):
    """Base class for failures when calling the Claude CLI."""


class _DetailedError(ClaudeError):
    _template = "{detail}"

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(self._template.format(detail=detail))


class NotInstalledError(ClaudeError):
    """The CLI executable could not be found."""

    def __init__(self) -> None:
        super().__init__("Claude CLI not found or not executable")


class NotAuthenticatedError(ClaudeError):
    """The CLI has no valid login."""

    def __init__(self) -> None:
        super().__init__(
            "Claude CLI not authenticated. Run 'claude' to authenticate or "
            "'claude setup-token' for headless mode"
        )


class PermissionDeniedError(_DetailedError):
    """The CLI refused an operation."""

    _template = "Claude CLI permission denied: {detail}"


class RateLimitExceededError(_DetailedError):
    """A usage or rate limit was reached."""

    _template = "Claude CLI rate limit exceeded: {detail}"


class ModelNotAvailableError(_DetailedError):
    """The requested model does not exist or is unavailable."""

    _template = "Claude CLI model not available: {detail}"


class InvalidInputError(_DetailedError):
    """The CLI rejected its arguments."""

    _template = "Claude CLI invalid input: {detail}"


class InvalidOutputFormatError(_DetailedError):
    """The CLI produced output in an unexpected format."""

    _template = "Claude CLI invalid output format: {detail}"


class ClaudeTimeoutError(ClaudeError):
    """The operation took too long."""

    def __init__(self) -> None:
        super().__init__("Claude CLI timeout: operation took too long")


class ProcessError(_DetailedError):
    """The CLI process could not be run or ended badly."""

    _template = "Claude CLI process error: {detail}"


class ClaudeParseError(_DetailedError):
    """The CLI output could not be parsed."""

    _template = "Failed to parse Claude CLI output: {detail}"


class CommandFailedError(ClaudeError):
    """The CLI exited with a non-zero code for an unrecognised reason."""

    def __init__(self, code: int, stderr: str) -> None:
        self.code = code
        self.stderr = stderr
        super().__init__(f"Claude CLI returned non-zero exit code {code}: {stderr}")


def classify_error_from_result(result: str, stderr: str, exit_code: int) -> ClaudeError:
    """Classify an error from the result text of a JSON response, falling back to stderr."""
    lower = result.lower()
    if any(s in lower for s in ("limit reached", "rate limit", "hour limit", "usage limit")):
        return RateLimitExceededError(result)
    if any(
        s in lower for s in ("not authenticated", "authentication", "login", "please sign in")
    ):
        return NotAuthenticatedError()
    if any(s in lower for s in ("permission denied", "access denied", "unauthorized")):
        return PermissionDeniedError(result)
    if "model" in lower and ("not available" in lower or "not found" in lower):
        return ModelNotAvailableError(result)
    if "timeout" in lower or "timed out" in lower:
        return ClaudeTimeoutError()
    return classify_error(stderr, exit_code)


def classify_error(stderr: str, exit_code: int) -> ClaudeError:
    """Classify an error from the CLI's stderr output."""
    lower = stderr.lower()
    if any(
        s in lower for s in ("not authenticated", "authentication", "login", "please sign in")
    ):
        return NotAuthenticatedError()
    if any(s in lower for s in ("permission denied", "access denied", "unauthorized")):
        return PermissionDeniedError(stderr)
    if any(s in lower for s in ("rate limit", "too many requests", "429")):
        return RateLimitExceededError(stderr)
    if "model" in lower and ("not available" in lower or "not found" in lower):
        return ModelNotAvailableError(stderr)
    if "invalid" in lower and ("input" in lower or "argument" in lower):
        return InvalidInputError(stderr)
    if "timeout" in lower or "timed out" in lower:
        return ClaudeTimeoutError()
    return CommandFailedError(exit_code, stderr)


@dataclass
class ClaudeConfig:
    """How the CLI is invoked."""

    claude_path: Path | str | None = None
    skip_permissions: bool = False
    model: str | None = None
    allowed_dirs: list[Path | str] = field(default_factory=list)
    allowed_tools: list[str] = field(default_factory=list)
    disallowed_tools: list[str] = field(default_factory=list)


@dataclass
class ClaudeInput:
    """A prompt with optional page context."""

    prompt: str
    images: list[Path | str] = field(default_factory=list)
    html: str | None = None


def _optional(data: dict[str, Any], key: str, kind: type | tuple[type, ...]) -> Any:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) and kind is not bool:
        raise ValueError(f"invalid type for `{key}`")
    if not isinstance(value, kind):
        raise ValueError(f"invalid type for `{key}`")
    return value


def _required_str(data: dict[str, Any], key: str) -> str:
    if key not in data:
        raise ValueError(f"missing field `{key}`")
    value = data[key]
    if not isinstance(value, str):
        raise ValueError(f"invalid type for `{key}`")
    return value


def _load_object(text: str) -> dict[str, Any]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ClaudeParseError(str(exc)) from exc
    if not isinstance(data, dict):
        raise ClaudeParseError("expected a JSON object")
    return data


@dataclass
class ClaudeResponse:
    """The JSON result printed by the CLI."""

    response_type: str
    result: str
    subtype: str | None = None
    is_error: bool = False
    session_id: str | None = None
    duration_ms: int | None = None
    usage: Any = None
    permission_denials: list[Any] | None = None

    @classmethod
    def from_json(cls, text: str) -> ClaudeResponse:
        """Parse a response; raise ClaudeParseError if it does not match."""
        data = _load_object(text)
        try:
            if "is_error" in data and not isinstance(data["is_error"], bool):
                raise ValueError("invalid type for `is_error`")
            duration = _optional(data, "duration_ms", int)
            if duration is not None and duration < 0:
                raise ValueError("`duration_ms` must not be negative")
            return cls(
                response_type=_required_str(data, "type"),
                result=_required_str(data, "result"),
                subtype=_optional(data, "subtype", str),
                is_error=data.get("is_error", False),
                session_id=_optional(data, "session_id", str),
                duration_ms=duration,
                usage=data.get("usage"),
                permission_denials=_optional(data, "permission_denials", list),
            )
        except ValueError as exc:
            raise ClaudeParseError(str(exc)) from exc

    def text(self) -> str:
        """The response text."""
        return self.result


@dataclass
class ClaudeStreamChunk:
    """One line of streamed CLI output."""

    chunk_type: str
    content: str | None = None
    metadata: Any = None

    @classmethod
    def from_json(cls, text: str) -> ClaudeStreamChunk:
        """Parse a chunk; raise ClaudeParseError if it does not match."""
        data = _load_object(text)
        try:
            return cls(
                chunk_type=_required_str(data, "type"),
                content=_optional(data, "content", str),
                metadata=data.get("metadata"),
            )
        except ValueError as exc:
            raise ClaudeParseError(str(exc)) from exc


def _decode(data: bytes | None) -> str:
    return (data or b"").decode("utf-8", errors="replace")


class ClaudeClient:
    """Runs the Claude CLI non-interactively."""

    def __init__(self, config: ClaudeConfig | None = None) -> None:
        self.config = config if config is not None else ClaudeConfig()

    def build_prompt(self, input: ClaudeInput) -> str:
        """Full prompt text: page HTML, if any, followed by the prompt."""
        if input.images:
            logger.warning(
                "Images provided but Claude CLI headless mode doesn't support image input; "
                "continuing without images: %s",
                [str(image) for image in input.images],
            )
        parts: list[str] = []
        if input.html is not None:
            parts.append("Here is the HTML content of the web page:\n\n```html\n")
            encoded = input.html.encode("utf-8")
            if len(encoded) > _HTML_LIMIT:
                logger.warning(
                    "HTML content is large (%d bytes), truncating to 100KB", len(encoded)
                )
                parts.append(encoded[:_HTML_LIMIT].decode("utf-8", errors="ignore"))
                parts.append("\n... [truncated]")
            else:
                parts.append(input.html)
            parts.append("\n```\n\n")
        parts.append(input.prompt)
        return "".join(parts)

    def build_command(self, input: ClaudeInput, streaming: bool) -> list[str]:
        """Argument list for invoking the CLI."""
        cfg = self.config
        args = [str(cfg.claude_path) if cfg.claude_path is not None else "claude", "--print"]
        args += ["--output-format", "stream-json" if streaming else "json"]
        if cfg.model is not None:
            args += ["--model", cfg.model]
        if cfg.skip_permissions:
            args.append("--dangerously-skip-permissions")
        if cfg.allowed_dirs:
            args.append("--add-dir")
            args += [str(d) for d in cfg.allowed_dirs]
        if cfg.allowed_tools:
            args.append("--allowed-tools")
            args += cfg.allowed_tools
        if cfg.disallowed_tools:
            args.append("--disallowed-tools")
            args += cfg.disallowed_tools
        args.append(self.build_prompt(input))
        return args

    def _run(self, input: ClaudeInput) -> str:
        args = self.build_command(input, streaming=False)
        try:
            output = subprocess.run(args, capture_output=True, check=False)
        except OSError as exc:
            raise ProcessError(f"Failed to execute Claude CLI: {exc}") from exc

        stdout = _decode(output.stdout)
        stderr = _decode(output.stderr)
        exit_code = output.returncode if output.returncode >= 0 else -1
        succeeded = output.returncode == 0

        try:
            response = ClaudeResponse.from_json(stdout)
        except ClaudeParseError:
            response = None

        if response is not None:
            if response.is_error or not succeeded:
                error = classify_error_from_result(response.result, stderr, exit_code)
                logger.error("Claude CLI returned error (exit %d): %s", exit_code, error)
                raise error
            return stdout

        if not succeeded:
            error = classify_error(stderr, exit_code)
            logger.error("Claude CLI failed (exit %d): %s", exit_code, error)
            raise error
        return stdout

    def execute(self, input: ClaudeInput) -> ClaudeResponse:
        """Run the CLI and return its parsed response."""
        output = self._run(input)
        try:
            response = ClaudeResponse.from_json(output)
        except ClaudeParseError as exc:
            raise ClaudeParseError(
                f"Failed to parse Claude CLI response as JSON: {exc.detail}"
            ) from exc
        logger.info("Claude CLI executed successfully")
        return response

    def execute_streaming(
        self, input: ClaudeInput, callback: Callable[[ClaudeStreamChunk], None]
    ) -> None:
        """Run the CLI in streaming mode, passing each parsed chunk to callback."""
        args = self.build_command(input, streaming=True)
        with tempfile.TemporaryFile() as err_file:
            try:
                child = subprocess.Popen(args, stdout=subprocess.PIPE, stderr=err_file)
            except OSError as exc:
                raise ProcessError(f"Failed to spawn Claude CLI: {exc}") from exc
            try:
                assert child.stdout is not None
                for raw in child.stdout:
                    line = _decode(raw).rstrip("\r\n")
                    if not line.strip():
                        continue
                    try:
                        chunk = ClaudeStreamChunk.from_json(line)
                    except ClaudeParseError as exc:
                        logger.warning("Failed to parse stream chunk: %s - Line: %s", exc, line)
                        continue
                    callback(chunk)
                code = child.wait()
            finally:
                if child.poll() is None:
                    child.kill()
                    child.wait()
                if child.stdout is not None:
                    child.stdout.close()
            if code != 0:
                err_file.seek(0)
                stderr = _decode(err_file.read()).strip()
                detail = f"Claude CLI exited with status: {code}"
                if stderr:
                    detail += f": {stderr}"
                raise ProcessError(detail)