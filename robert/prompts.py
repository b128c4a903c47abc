"""Prompt templates for the agent workflows."""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any


class PromptType(Enum):
    """Kind of prompt a template produces."""

    CDP_GENERATION = "CdpGeneration"
    CONFIG_UPDATE = "ConfigUpdate"


@dataclass
class PromptContext:
    """Values that fill in a prompt template."""

    user_request: str = ""
    current_url: str | None = None
    page_title: str | None = None
    agent_instructions: str = ""
    agent_name: str = ""
    current_config: str = ""
    user_feedback: str = ""
    failure_context: str | None = None


_SCALARS = (str, int, float, bool, type(None))


def _render(value: Any, level: int = 0, top: bool = True) -> str:
    """Render JSON with nested objects expanded and flat values kept inline."""
    pad = "  " * level
    if isinstance(value, dict):
        if not top and all(isinstance(v, _SCALARS) for v in value.values()):
            return json.dumps(value, ensure_ascii=False)
        items = [
            f"{pad}  {json.dumps(key)}: {_render(item, level + 1, False)}"
            for key, item in value.items()
        ]
        return "{\n" + ",\n".join(items) + f"\n{pad}}}"
    if isinstance(value, list):
        if all(isinstance(v, _SCALARS) for v in value):
            return json.dumps(value, ensure_ascii=False)
        items = [f"{pad}  {_render(item, level + 1, False)}" for item in value]
        return "[\n" + ",\n".join(items) + f"\n{pad}]"
    return json.dumps(value, ensure_ascii=False)


def _bullets(lines: tuple[str, ...]) -> str:
    return "\n".join(f"- {line}" for line in lines)


def _numbered(lines: tuple[str, ...]) -> str:
    return "\n".join(f"{number}. {line}" for number, line in enumerate(lines, start=1))


_HEADLESS_RULES = (
    "You are running in HEADLESS/NON-INTERACTIVE mode",
    "You MUST respond with a valid CDP JSON script",
    "DO NOT ask clarifying questions",
    "DO NOT request additional information",
    "Your response will be executed automatically without human review",
)

_COMMAND_EXAMPLES: tuple[tuple[str, str, dict[str, Any]], ...] = (
    ("Page.navigate", "Navigate to URL", {"params": {"url": "https://example.com"}}),
    (
        "Page.captureScreenshot",
        "Take screenshot",
        {
            "params": {"format": "png", "captureBeyondViewport": True},
            "save_as": "screenshot.png",
        },
    ),
    (
        "Runtime.evaluate",
        "Execute JavaScript",
        {
            "params": {"expression": "document.title", "returnByValue": True},
            "save_as": "result.json",
        },
    ),
    ("Input.insertText", "Type text", {"params": {"text": "Hello World"}}),
    (
        "Input.dispatchMouseEvent",
        "Mouse actions",
        {
            "params": {
                "type": "mousePressed",
                "x": 100,
                "y": 200,
                "button": "left",
                "clickCount": 1,
            }
        },
    ),
    (
        "Input.dispatchKeyEvent",
        "Keyboard actions",
        {"params": {"type": "keyDown", "key": "Enter"}},
    ),
)

_SCRIPT_EXAMPLE = {
    "name": "descriptive-name",
    "description": "What this script does",
    "cdp_commands": [
        {
            "method": "Page.navigate",
            "params": {"url": "..."},
            "description": "Navigate to page",
        },
        {
            "method": "Runtime.evaluate",
            "params": {"expression": "...", "returnByValue": True},
            "save_as": "optional-output.json",
            "description": "Perform action",
        },
    ],
}


def _command_reference() -> str:
    entries = [
        f"{number}. {method} - {summary}\n   "
        + json.dumps({"method": method, **example})
        for number, (method, summary, example) in enumerate(_COMMAND_EXAMPLES, start=1)
    ]
    return (
        "\nIMPORTANT INSTRUCTIONS:\n"
        + _bullets(_HEADLESS_RULES)
        + "\n\nUse the CDP command reference below:\n\nAVAILABLE CDP COMMANDS:\n\n"
        + "\n\n".join(entries)
        + "\n\nOUTPUT FORMAT (JSON only, no markdown, no explanations, no questions):\n\n"
        + _render(_SCRIPT_EXAMPLE)
        + "\n\nGenerate the CDP script now. Output ONLY valid JSON. "
        "Do not include any text before or after the JSON."
    )


_CDP_COMMANDS_REFERENCE = _command_reference()

_READY_EXAMPLE = {
    "response_type": "ready",
    "understanding": "Brief description of what you'll do",
    "next_step": "generate_script",
}

_CLARIFICATION_EXAMPLE = {
    "response_type": "clarification_needed",
    "questions": [
        {
            "question": "What specific action should I perform?",
            "options": ["option1", "option2", "option3"],
            "context": "Optional explanation of why this matters",
        }
    ],
    "understanding": "What I understand so far",
}

_PLANNING_GUIDELINES = (
    "Only ask for clarification if the request is genuinely ambiguous",
    "Keep questions concise and actionable",
    "Provide multiple choice options when possible",
    "Aim to proceed without clarification when reasonable assumptions can be made",
)

_PLANNING_TASK = (
    "TASK: Analyze if you can generate a CDP automation script for this request, "
    "or if you need clarification.\n\nRESPONSE FORMATS:\n\n"
    "If the request is CLEAR and you can proceed, respond with:\n"
    + _render(_READY_EXAMPLE)
    + "\n\nIf the request is AMBIGUOUS or you need clarification, respond with:\n"
    + _render(_CLARIFICATION_EXAMPLE)
    + "\n\nGUIDELINES:\n"
    + _bullets(_PLANNING_GUIDELINES)
    + "\n\nRespond with ONLY valid JSON in one of the above formats."
)

_CONFIG_UPDATE_STEPS = (
    "Analyze what went wrong based on the feedback",
    "Update the agent's instructions to fix the issue",
    "Output the COMPLETE updated TOML configuration",
)

_CONFIG_UPDATE_RULES = (
    "Keep all existing fields",
    "Only modify the 'instructions' field and 'settings' if necessary",
    "Make minimal, targeted changes",
    "Ensure the TOML is valid",
    "Add specific guidance to prevent this error in the future",
)

_CONFIG_UPDATE_TAIL = (
    "TASK:\n"
    + _numbered(_CONFIG_UPDATE_STEPS)
    + "\n\nRULES:\n"
    + _bullets(_CONFIG_UPDATE_RULES)
    + "\n\nOutput the updated TOML configuration now:"
)


def _page_context(current_url: str | None, page_title: str | None) -> str:
    if current_url is None or page_title is None:
        return ""
    return f"\nCURRENT PAGE:\n- URL: {current_url}\n- Title: {page_title}\n"


def _header(agent_instructions: str, context: str, user_request: str) -> str:
    return f"{agent_instructions}\n\n{context}\nUSER REQUEST: {user_request}\n\n"


@dataclass(frozen=True)
class PromptTemplate:
    """Builds prompt text for a given kind of workflow."""

    prompt_type: PromptType

    def build_planning_prompt(
        self,
        user_request: str,
        current_url: str | None,
        page_title: str | None,
        agent_instructions: str,
    ) -> str:
        """Prompt asking whether the request is clear enough to script."""
        context = _page_context(current_url, page_title)
        return _header(agent_instructions, context, user_request) + _PLANNING_TASK

    def build_cdp_prompt_with_clarification(
        self,
        user_request: str,
        clarification_answers: str,
        current_url: str | None,
        page_title: str | None,
        agent_instructions: str,
    ) -> str:
        """Script generation prompt that includes the user's clarifications."""
        context = _page_context(current_url, page_title)
        return (
            _header(agent_instructions, context, user_request)
            + f"CLARIFICATION PROVIDED:\n{clarification_answers}\n\n"
            + "Generate a JSON CDP script that accomplishes this task based on the "
            + "original request and the clarification provided.\n\n"
            + _CDP_COMMANDS_REFERENCE
        )

    def build_cdp_prompt(
        self,
        user_request: str,
        current_url: str | None,
        page_title: str | None,
        agent_instructions: str,
    ) -> str:
        """Prompt asking for a CDP script that fulfils the request."""
        context = _page_context(current_url, page_title)
        return (
            _header(agent_instructions, context, user_request)
            + "Generate a JSON CDP script that accomplishes this task.\n\n"
            + _CDP_COMMANDS_REFERENCE
        )

    def build_config_update_prompt(
        self,
        agent_name: str,
        current_config: str,
        user_feedback: str,
        failure_context: str | None,
    ) -> str:
        """Prompt asking for an updated agent configuration."""
        failure_section = (
            f"\nFAILURE CONTEXT:\n{failure_context}\n" if failure_context is not None else ""
        )
        return (
            f'You are updating the configuration for the "{agent_name}" agent '
            "based on user feedback.\n\n"
            f"CURRENT CONFIGURATION:\n```toml\n{current_config}\n```\n\n"
            f"USER FEEDBACK:\n{user_feedback}\n{failure_section}\n"
            + _CONFIG_UPDATE_TAIL
        )

    def build(self, context: PromptContext) -> str:
        """Build the prompt for this template's type from a context."""
        if self.prompt_type is PromptType.CDP_GENERATION:
            return self.build_cdp_prompt(
                context.user_request,
                context.current_url,
                context.page_title,
                context.agent_instructions,
            )
        return self.build_config_update_prompt(
            context.agent_name,
            context.current_config,
            context.user_feedback,
            context.failure_context,
        )