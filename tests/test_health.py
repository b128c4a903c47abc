import json
import subprocess

import pytest

from robert.health import ClaudeHealthCheck, HealthStatus

FAKE_PATH = "/opt/fake/bin/claude"


def _fake_runner(version_code=0, version_out=b"1.0.0 (Claude Code)\n", auth_stderr=b""):
    def fake_run(args, **kwargs):
        if "--version" in args:
            return subprocess.CompletedProcess(args, version_code, version_out, b"")
        return subprocess.CompletedProcess(args, 0, b"ok", auth_stderr)

    return fake_run


@pytest.fixture
def installed(monkeypatch):
    monkeypatch.setattr("robert.health.shutil.which", lambda name: FAKE_PATH)


def test_not_installed(monkeypatch):
    monkeypatch.setattr("robert.health.shutil.which", lambda name: None)
    monkeypatch.delenv("HOME", raising=False)
    check = ClaudeHealthCheck.check()
    assert check.installed is False
    assert check.path is None
    assert check.status is HealthStatus.ERROR
    assert check.issues == ["Claude CLI is not installed or not in PATH"]
    assert check.suggestions == [
        "Install Claude CLI: npm install -g @anthropic-ai/claude-code",
        "Or via Homebrew: brew install claude",
    ]


def test_found_in_home_install_location(monkeypatch, tmp_path):
    monkeypatch.setattr("robert.health.shutil.which", lambda name: None)
    monkeypatch.setenv("HOME", str(tmp_path))
    binary = tmp_path / ".claude" / "local" / "claude"
    binary.parent.mkdir(parents=True)
    binary.write_text("")
    monkeypatch.setattr("robert.health.subprocess.run", _fake_runner())
    check = ClaudeHealthCheck.check()
    assert check.installed is True
    assert check.path == f"{tmp_path}/.claude/local/claude"


def test_healthy(monkeypatch, installed):
    monkeypatch.setattr("robert.health.subprocess.run", _fake_runner())
    check = ClaudeHealthCheck.check()
    assert check.status is HealthStatus.HEALTHY
    assert check.path == FAKE_PATH
    assert check.version == "1.0.0 (Claude Code)"
    assert check.authenticated is True
    assert check.issues == []
    assert check.status_message() == "Claude CLI is ready"
    assert check.setup_instructions() == ["Claude CLI is ready to use!"]


def test_not_authenticated(monkeypatch, installed):
    monkeypatch.setattr(
        "robert.health.subprocess.run",
        _fake_runner(auth_stderr=b"Please run claude setup-token first"),
    )
    check = ClaudeHealthCheck.check()
    assert check.status is HealthStatus.WARNING
    assert check.authenticated is False
    assert check.issues == ["Claude CLI is not authenticated"]
    assert check.suggestions == ["Run 'claude setup-token' to authenticate"]
    assert check.status_message() == "Claude CLI has issues: Claude CLI is not authenticated"
    assert check.setup_instructions() == ["2. Authenticate Claude CLI:", "   claude setup-token"]


def test_version_failure_is_reported(monkeypatch, installed):
    monkeypatch.setattr("robert.health.subprocess.run", _fake_runner(version_code=1))
    check = ClaudeHealthCheck.check()
    assert check.version is None
    assert check.issues == ["Failed to get Claude CLI version: Failed to get version"]
    assert check.status is HealthStatus.HEALTHY


def test_unrunnable_binary(monkeypatch, installed):
    def broken(args, **kwargs):
        raise FileNotFoundError(args[0])

    monkeypatch.setattr("robert.health.subprocess.run", broken)
    check = ClaudeHealthCheck.check()
    assert check.status is HealthStatus.WARNING
    assert check.issues == [
        "Failed to get Claude CLI version: Failed to get version",
        "Failed to check authentication: Failed to check authentication",
    ]


def test_error_status_message_and_instructions():
    check = ClaudeHealthCheck(issues=["Claude CLI is not installed or not in PATH"])
    assert check.status_message() == (
        "Claude CLI is not available: Claude CLI is not installed or not in PATH"
    )
    assert check.setup_instructions() == [
        "1. Install Claude CLI:",
        "   npm install -g @anthropic-ai/claude-code",
        "   OR",
        "   brew install claude",
    ]


def test_to_dict_is_json_ready(monkeypatch, installed):
    monkeypatch.setattr("robert.health.subprocess.run", _fake_runner())
    data = json.loads(json.dumps(ClaudeHealthCheck.check().to_dict()))
    assert data["status"] == "healthy"
    assert data["installed"] is True
    assert data["path"] == FAKE_PATH
    assert HealthStatus(data["status"]) is HealthStatus.HEALTHY