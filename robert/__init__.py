"""Agent configuration, prompt building, Claude CLI client and agent workflows for browser automation."""

__version__ = "0.1.0"