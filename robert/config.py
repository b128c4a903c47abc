"""Agent configuration stored as TOML files."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import platformdirs
import tomli_w

_CDP_INSTRUCTIONS = """You are a browser automation expert that generates Chrome DevTools Protocol (CDP) scripts.

Your task is to:
1. Understand the user's natural language request
2. Analyze the current page (screenshot and HTML provided)
3. Generate a valid CDP JSON script that accomplishes the task
4. Use only the approved CDP commands listed in the template
5. Ensure the script is safe and follows best practices

Key principles:
- Always navigate to a page before interacting with it
- Use Runtime.evaluate for complex interactions (clicks, form fills, data extraction)
- Be defensive - check if elements exist before interacting
- Provide clear descriptions for each command
- Handle errors gracefully"""

_META_INSTRUCTIONS = """You are a meta-agent responsible for updating agent configurations and instructions.

Your task is to:
1. Analyze user feedback about agent performance
2. Identify what went wrong or what could be improved
3. Update agent instructions to prevent similar issues
4. Make minimal, targeted changes to fix specific problems
5. Maintain the overall structure and purpose of the agent

Key principles:
- Be conservative - only change what's necessary
- Document why you're making changes
- Test your logic mentally before updating
- Don't remove important safety checks
- Keep instructions clear and concise"""


def _field(data: dict[str, Any], key: str, kind: type | tuple[type, ...], where: str) -> Any:
    if key not in data:
        raise ValueError(f"Failed to parse agent config TOML: missing field `{key}` in {where}")
    value = data[key]
    if isinstance(value, bool) and kind is not bool:
        raise ValueError(f"Failed to parse agent config TOML: invalid type for `{key}` in {where}")
    if not isinstance(value, kind):
        raise ValueError(f"Failed to parse agent config TOML: invalid type for `{key}` in {where}")
    return value


def _string_list(data: dict[str, Any], key: str) -> list[str]:
    if key not in data:
        return []
    value = data[key]
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ValueError(f"Failed to parse agent config TOML: `{key}` must be a list of strings")
    return list(value)


@dataclass
class AgentSettings:
    """Model and request options for an agent."""

    model: str | None = None
    include_screenshots: bool = True
    include_html: bool = True
    max_retries: int = 3
    temperature: float = 0.7

    @classmethod
    def _from_mapping(cls, data: dict[str, Any]) -> AgentSettings:
        defaults = cls()
        model = data.get("model")
        if model is not None and not isinstance(model, str):
            raise ValueError("Failed to parse agent config TOML: `model` must be a string")
        include_screenshots = (
            _field(data, "include_screenshots", bool, "settings")
            if "include_screenshots" in data
            else defaults.include_screenshots
        )
        include_html = (
            _field(data, "include_html", bool, "settings")
            if "include_html" in data
            else defaults.include_html
        )
        max_retries = (
            _field(data, "max_retries", int, "settings")
            if "max_retries" in data
            else defaults.max_retries
        )
        if max_retries < 0:
            raise ValueError("Failed to parse agent config TOML: `max_retries` must not be negative")
        temperature = (
            float(_field(data, "temperature", (int, float), "settings"))
            if "temperature" in data
            else defaults.temperature
        )
        return cls(
            model=model,
            include_screenshots=include_screenshots,
            include_html=include_html,
            max_retries=max_retries,
            temperature=temperature,
        )

    def _to_mapping(self) -> dict[str, Any]:
        mapping: dict[str, Any] = {}
        if self.model is not None:
            mapping["model"] = self.model
        mapping["include_screenshots"] = self.include_screenshots
        mapping["include_html"] = self.include_html
        mapping["max_retries"] = self.max_retries
        mapping["temperature"] = self.temperature
        return mapping


@dataclass
class AgentConfig:
    """An agent's name, instructions and settings."""

    name: str
    description: str
    version: str
    settings: AgentSettings
    instructions: str
    examples: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)

    @classmethod
    def from_toml(cls, text: str) -> AgentConfig:
        """Parse a configuration from TOML text; raise ValueError if it is invalid."""
        try:
            data = tomllib.loads(text)
        except tomllib.TOMLDecodeError as exc:
            raise ValueError(f"Failed to parse agent config TOML: {exc}") from exc
        settings = _field(data, "settings", dict, "config")
        return cls(
            name=_field(data, "name", str, "config"),
            description=_field(data, "description", str, "config"),
            version=_field(data, "version", str, "config"),
            settings=AgentSettings._from_mapping(settings),
            instructions=_field(data, "instructions", str, "config"),
            examples=_string_list(data, "examples"),
            tags=_string_list(data, "tags"),
        )

    def to_toml(self) -> str:
        """Serialize the configuration to TOML text."""
        document = {
            "name": self.name,
            "description": self.description,
            "version": self.version,
            "settings": self.settings._to_mapping(),
            "instructions": self.instructions,
            "examples": list(self.examples),
            "tags": list(self.tags),
        }
        return tomli_w.dumps(document, multiline_strings=True)

    @classmethod
    def load(cls, path: str | Path) -> AgentConfig:
        """Read a configuration from a TOML file."""
        return cls.from_toml(Path(path).read_text(encoding="utf-8"))

    def save(self, path: str | Path) -> None:
        """Write the configuration to a TOML file, creating its directory."""
        target = Path(path)
        content = self.to_toml()
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")

    @staticmethod
    def default_config_dir() -> Path:
        """Directory that holds agent configuration files."""
        return platformdirs.user_config_path() / "robert" / "agents"

    @classmethod
    def config_path(cls, agent_name: str) -> Path:
        """Path of the configuration file for the named agent."""
        return cls.default_config_dir() / f"{agent_name}.toml"

    @classmethod
    def default_cdp_agent(cls) -> AgentConfig:
        """Default agent that generates CDP automation scripts."""
        return cls(
            name="cdp-generator",
            description="Generates CDP automation scripts from natural language requests",
            version="1.0.0",
            settings=AgentSettings(),
            instructions=_CDP_INSTRUCTIONS,
            examples=[],
            tags=["automation", "cdp"],
        )

    @classmethod
    def default_meta_agent(cls) -> AgentConfig:
        """Default agent that updates other agents' configurations."""
        return cls(
            name="meta-agent",
            description="Updates agent configurations and settings based on feedback",
            version="1.0.0",
            settings=AgentSettings(
                model="sonnet",
                include_screenshots=False,
                include_html=False,
                max_retries=2,
                temperature=0.3,
            ),
            instructions=_META_INSTRUCTIONS,
            examples=[],
            tags=["meta", "config"],
        )