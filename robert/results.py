"""Planning responses and workflow results exchanged with the agent."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

_FENCE = "```"


class WorkflowType(Enum):
    """Kind of workflow an agent runs."""

    CDP_AUTOMATION = "cdp_automation"
    CONFIG_UPDATE = "config_update"


@dataclass
class ClarificationQuestion:
    """A question the agent needs answered before it can proceed."""

    question: str
    options: list[str] = field(default_factory=list)
    context: str | None = None

    def _to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"question": self.question, "options": list(self.options)}
        if self.context is not None:
            data["context"] = self.context
        return data


@dataclass
class ReadyPlan:
    """The agent understood the request and can generate a script."""

    understanding: str
    next_step: str


@dataclass
class ClarificationNeeded:
    """The agent needs answers to questions before it can proceed."""

    questions: list[ClarificationQuestion]
    understanding: str


def _strip_prefix_repeatedly(text: str, prefix: str) -> str:
    while prefix and text.startswith(prefix):
        text = text[len(prefix):]
    return text


def _strip_suffix_repeatedly(text: str, suffix: str) -> str:
    while suffix and text.endswith(suffix):
        text = text[: -len(suffix)]
    return text


def strip_code_fence(text: str, language: str | None) -> str:
    """Remove a surrounding markdown code fence, optionally tagged with a language."""
    stripped = text.strip()
    if language:
        tagged = f"{_FENCE}{language}"
        if stripped.startswith(tagged):
            body = _strip_prefix_repeatedly(stripped, tagged)
            return _strip_suffix_repeatedly(body, _FENCE).strip()
    if stripped.startswith(_FENCE):
        body = _strip_prefix_repeatedly(stripped, _FENCE)
        return _strip_suffix_repeatedly(body, _FENCE).strip()
    return stripped


def _require_str(data: dict[str, Any], key: str) -> str:
    if key not in data:
        raise ValueError(f"missing field `{key}`")
    value = data[key]
    if not isinstance(value, str):
        raise ValueError(f"invalid type for `{key}`: expected a string")
    return value


def _parse_question(item: Any) -> ClarificationQuestion:
    if not isinstance(item, dict):
        raise ValueError("invalid type for question: expected an object")
    if "options" not in item:
        raise ValueError("missing field `options`")
    options = item["options"]
    if not isinstance(options, list) or not all(isinstance(o, str) for o in options):
        raise ValueError("invalid type for `options`: expected a list of strings")
    context = item.get("context")
    if context is not None and not isinstance(context, str):
        raise ValueError("invalid type for `context`: expected a string")
    return ClarificationQuestion(
        question=_require_str(item, "question"),
        options=list(options),
        context=context,
    )


def parse_planning_response(text: str) -> ReadyPlan | ClarificationNeeded:
    """Parse the agent's planning JSON; raise ValueError if it does not match."""
    data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError("expected a JSON object")
    kind = _require_str(data, "response_type")
    if kind == "ready":
        return ReadyPlan(
            understanding=_require_str(data, "understanding"),
            next_step=_require_str(data, "next_step"),
        )
    if kind == "clarification_needed":
        if "questions" not in data:
            raise ValueError("missing field `questions`")
        questions = data["questions"]
        if not isinstance(questions, list):
            raise ValueError("invalid type for `questions`: expected a list")
        return ClarificationNeeded(
            questions=[_parse_question(item) for item in questions],
            understanding=_require_str(data, "understanding"),
        )
    raise ValueError(
        f"unknown variant `{kind}`, expected `ready` or `clarification_needed`"
    )


@dataclass
class WorkflowResult:
    """Outcome of running a workflow."""

    success: bool
    workflow_type: WorkflowType
    message: str
    cdp_script: str | None = None
    execution_report: Any = None
    error: str | None = None
    clarification: list[ClarificationQuestion] | None = None
    understanding: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready representation, leaving out fields that are not set."""
        data: dict[str, Any] = {
            "success": self.success,
            "workflow_type": self.workflow_type.value,
            "message": self.message,
        }
        if self.cdp_script is not None:
            data["cdp_script"] = self.cdp_script
        if self.execution_report is not None:
            data["execution_report"] = self.execution_report
        if self.error is not None:
            data["error"] = self.error
        if self.clarification is not None:
            data["clarification"] = [q._to_dict() for q in self.clarification]
        if self.understanding is not None:
            data["understanding"] = self.understanding
        return data