import json
import os
import sys
from pathlib import Path

import pytest

from robert.claude import (
    ClaudeClient,
    ClaudeConfig,
    ClaudeInput,
    ClaudeParseError,
    ClaudeResponse,
    ClaudeStreamChunk,
    ClaudeTimeoutError,
    CommandFailedError,
    InvalidInputError,
    ModelNotAvailableError,
    NotAuthenticatedError,
    PermissionDeniedError,
    ProcessError,
    RateLimitExceededError,
    classify_error,
    classify_error_from_result,
)

_NOT_AUTHENTICATED_MESSAGE = (
    "Claude CLI not authenticated. Run 'claude' to authenticate "
    "or 'claude setup-token' for headless mode"
)
_TIMEOUT_MESSAGE = "Claude CLI timeout: operation took too long"


def _fake_cli(tmp_path: Path, body: str) -> Path:
    script = tmp_path / "fake-claude"
    script.write_text(f"#!{sys.executable}\nimport sys, json\n{body}\n", encoding="utf-8")
    os.chmod(script, 0o755)
    return script


def test_build_prompt():
    client = ClaudeClient()
    prompt = client.build_prompt(
        ClaudeInput(
            prompt="What do you see in the screenshot?",
            images=[Path("/tmp/screenshot.png")],
            html="<html><body>Hello</body></html>",
        )
    )
    assert "screenshot" in prompt
    assert "HTML" in prompt
    assert "What do you see" in prompt


def test_build_prompt_without_html_is_just_prompt():
    assert ClaudeClient().build_prompt(ClaudeInput(prompt="hi")) == "hi"


def test_build_prompt_truncates_large_html():
    html = "x" * 150_000
    prompt = ClaudeClient().build_prompt(ClaudeInput(prompt="p", html=html))
    assert "... [truncated]" in prompt
    assert "x" * 100_000 in prompt
    assert "x" * 100_001 not in prompt


def test_build_command_order():
    config = ClaudeConfig(
        claude_path="/opt/claude",
        skip_permissions=True,
        model="sonnet",
        allowed_dirs=["/a", "/b"],
        allowed_tools=["Edit"],
        disallowed_tools=["Bash"],
    )
    args = ClaudeClient(config).build_command(ClaudeInput(prompt="go"), streaming=False)
    assert args == [
        "/opt/claude",
        "--print",
        "--output-format",
        "json",
        "--model",
        "sonnet",
        "--dangerously-skip-permissions",
        "--add-dir",
        "/a",
        "/b",
        "--allowed-tools",
        "Edit",
        "--disallowed-tools",
        "Bash",
        "go",
    ]


def test_build_command_defaults_streaming():
    args = ClaudeClient().build_command(ClaudeInput(prompt="go"), streaming=True)
    assert args == ["claude", "--print", "--output-format", "stream-json", "go"]


@pytest.mark.parametrize(
    ("result", "expected", "message"),
    [
        (
            "5-hour limit reached",
            RateLimitExceededError,
            "Claude CLI rate limit exceeded: 5-hour limit reached",
        ),
        ("Please sign in", NotAuthenticatedError, _NOT_AUTHENTICATED_MESSAGE),
        (
            "Access denied to file",
            PermissionDeniedError,
            "Claude CLI permission denied: Access denied to file",
        ),
        (
            "Model foo not found",
            ModelNotAvailableError,
            "Claude CLI model not available: Model foo not found",
        ),
        ("Request timed out", ClaudeTimeoutError, _TIMEOUT_MESSAGE),
    ],
)
def test_classify_from_result(result, expected, message):
    error = classify_error_from_result(result, "", 1)
    assert type(error) is expected
    assert str(error) == message


def test_classify_from_result_falls_back_to_stderr():
    error = classify_error_from_result("something odd", "boom", 7)
    assert isinstance(error, CommandFailedError)
    assert error.code == 7
    assert error.stderr == "boom"
    assert str(error) == "Claude CLI returned non-zero exit code 7: boom"


@pytest.mark.parametrize(
    ("stderr", "expected", "message"),
    [
        ("Error: not authenticated", NotAuthenticatedError, _NOT_AUTHENTICATED_MESSAGE),
        ("Unauthorized", PermissionDeniedError, "Claude CLI permission denied: Unauthorized"),
        ("HTTP 429", RateLimitExceededError, "Claude CLI rate limit exceeded: HTTP 429"),
        (
            "model not available",
            ModelNotAvailableError,
            "Claude CLI model not available: model not available",
        ),
        (
            "Invalid argument --x",
            InvalidInputError,
            "Claude CLI invalid input: Invalid argument --x",
        ),
        ("Timeout waiting", ClaudeTimeoutError, _TIMEOUT_MESSAGE),
    ],
)
def test_classify_stderr(stderr, expected, message):
    error = classify_error(stderr, 1)
    assert type(error) is expected
    assert str(error) == message


def test_detail_error_message():
    error = classify_error("Too many requests", 1)
    assert str(error) == "Claude CLI rate limit exceeded: Too many requests"


def test_response_from_json():
    response = ClaudeResponse.from_json(
        json.dumps({"type": "result", "result": "hello", "session_id": "s1", "extra": 1})
    )
    assert response.text() == "hello"
    assert response.response_type == "result"
    assert response.session_id == "s1"
    assert response.is_error is False


@pytest.mark.parametrize(
    "text", ["not json", "[]", '{"type": "result"}', '{"type": "r", "result": 3}']
)
def test_response_from_json_rejects(text):
    with pytest.raises(ClaudeParseError):
        ClaudeResponse.from_json(text)


def test_stream_chunk_from_json():
    chunk = ClaudeStreamChunk.from_json('{"type": "content", "content": "abc"}')
    assert chunk.chunk_type == "content"
    assert chunk.content == "abc"
    assert chunk.metadata is None


def test_execute_success(tmp_path):
    script = _fake_cli(
        tmp_path,
        'print(json.dumps({"type": "result", "result": sys.argv[-1]}))',
    )
    client = ClaudeClient(ClaudeConfig(claude_path=script))
    response = client.execute(ClaudeInput(prompt="echo me"))
    assert response.text() == "echo me"


def test_execute_error_json_is_classified(tmp_path):
    script = _fake_cli(
        tmp_path,
        'print(json.dumps({"type": "result", "result": "usage limit reached", "is_error": True}))',
    )
    client = ClaudeClient(ClaudeConfig(claude_path=script))
    with pytest.raises(RateLimitExceededError):
        client.execute(ClaudeInput(prompt="x"))


def test_execute_nonzero_with_stderr(tmp_path):
    script = _fake_cli(tmp_path, 'sys.stderr.write("not authenticated"); sys.exit(2)')
    client = ClaudeClient(ClaudeConfig(claude_path=script))
    with pytest.raises(NotAuthenticatedError):
        client.execute(ClaudeInput(prompt="x"))


def test_execute_nonzero_unknown(tmp_path):
    script = _fake_cli(tmp_path, 'sys.stderr.write("weird"); sys.exit(3)')
    client = ClaudeClient(ClaudeConfig(claude_path=script))
    with pytest.raises(CommandFailedError) as info:
        client.execute(ClaudeInput(prompt="x"))
    assert info.value.code == 3


def test_execute_non_json_success_fails_to_parse(tmp_path):
    script = _fake_cli(tmp_path, 'print("plain text")')
    client = ClaudeClient(ClaudeConfig(claude_path=script))
    with pytest.raises(ClaudeParseError):
        client.execute(ClaudeInput(prompt="x"))


def test_execute_missing_executable(tmp_path):
    client = ClaudeClient(ClaudeConfig(claude_path=tmp_path / "missing"))
    with pytest.raises(ProcessError):
        client.execute(ClaudeInput(prompt="x"))


def test_execute_streaming(tmp_path):
    script = _fake_cli(
        tmp_path,
        'print(json.dumps({"type": "content", "content": "a"}))\n'
        'print("")\n'
        'print("garbage")\n'
        'print(json.dumps({"type": "content", "content": "b"}))',
    )
    chunks = []
    ClaudeClient(ClaudeConfig(claude_path=script)).execute_streaming(
        ClaudeInput(prompt="x"), chunks.append
    )
    assert [c.content for c in chunks] == ["a", "b"]


def test_execute_streaming_nonzero_exit(tmp_path):
    script = _fake_cli(tmp_path, 'print(json.dumps({"type": "content"}))\nsys.exit(4)')
    chunks = []
    with pytest.raises(ProcessError) as info:
        ClaudeClient(ClaudeConfig(claude_path=script)).execute_streaming(
            ClaudeInput(prompt="x"), chunks.append
        )
    assert "4" in str(info.value)
    assert len(chunks) == 1