"""Agent workflows: planning a browser automation and updating agent configurations."""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Protocol

from .claude import ClaudeClient, ClaudeConfig, ClaudeInput, ClaudeResponse
from .config import AgentConfig
from .prompts import PromptContext, PromptTemplate, PromptType
from .results import (
    ClarificationNeeded,
    ReadyPlan,
    WorkflowResult,
    WorkflowType,
    parse_planning_response,
    strip_code_fence,
)

logger = logging.getLogger(__name__)


class _Client(Protocol):
    def execute(self, input: ClaudeInput) -> ClaudeResponse: ...


def _default_client(model: str | None) -> _Client:
    return ClaudeClient(ClaudeConfig(model=model, skip_permissions=True))


class WorkflowExecutor:
    """Runs agent workflows by prompting the Claude CLI."""

    def __init__(
        self,
        client_factory: Callable[[str | None], _Client] | None = None,
        config_dir: str | Path | None = None,
    ) -> None:
        self._client_factory = client_factory if client_factory is not None else _default_client
        self._config_dir = Path(config_dir) if config_dir is not None else None

    def _config_path(self, agent_name: str) -> Path:
        if self._config_dir is None:
            return AgentConfig.config_path(agent_name)
        return self._config_dir / f"{agent_name}.toml"

    def _call_claude(
        self,
        prompt: str,
        screenshot_path: str | Path | None,
        html_content: str | None,
        model: str | None,
    ) -> ClaudeResponse:
        images = [screenshot_path] if screenshot_path is not None else []
        client = self._client_factory(model)
        return client.execute(ClaudeInput(prompt=prompt, images=images, html=html_content))

    def plan(
        self,
        user_message: str,
        agent_config: AgentConfig,
        current_url: str | None = None,
        page_title: str | None = None,
        screenshot_path: str | Path | None = None,
        html_content: str | None = None,
    ) -> ReadyPlan | WorkflowResult:
        """Ask the agent whether the request is clear enough to script.

        Returns a ReadyPlan when the agent can proceed, otherwise a WorkflowResult
        explaining why it cannot (clarification needed or an unparsable reply).
        Errors from the CLI propagate.
        """
        template = PromptTemplate(PromptType.CDP_GENERATION)
        prompt = template.build_planning_prompt(
            user_message, current_url, page_title, agent_config.instructions
        )
        logger.info("Planning prompt created (%d chars)", len(prompt))

        try:
            response = self._call_claude(
                prompt, screenshot_path, html_content, agent_config.settings.model
            )
        except Exception:
            logger.error("Claude planning call failed")
            raise

        cleaned = strip_code_fence(response.text(), "json")
        logger.debug("Planning response: %s", cleaned)

        try:
            planning = parse_planning_response(cleaned)
        except ValueError as exc:
            logger.error("Failed to parse planning response as JSON: %s", exc)
            return WorkflowResult(
                success=False,
                workflow_type=WorkflowType.CDP_AUTOMATION,
                message="Failed to parse planning response",
                error=f"Parse error: {exc}",
            )

        if isinstance(planning, ClarificationNeeded):
            logger.info("Clarification needed: %s", planning.understanding)
            return WorkflowResult(
                success=False,
                workflow_type=WorkflowType.CDP_AUTOMATION,
                message="Need clarification before proceeding",
                clarification=planning.questions,
                understanding=planning.understanding,
            )

        logger.info("Ready to proceed: %s (next: %s)", planning.understanding, planning.next_step)
        return planning

    def execute_config_update(
        self, user_feedback: str, agent_config: AgentConfig
    ) -> WorkflowResult:
        """Ask the agent for an updated configuration and save it if it parses."""
        current_config = agent_config.to_toml()
        template = PromptTemplate(PromptType.CONFIG_UPDATE)
        prompt = template.build(
            PromptContext(
                agent_name=agent_config.name,
                current_config=current_config,
                user_feedback=user_feedback,
            )
        )

        response = self._call_claude(prompt, None, None, agent_config.settings.model)
        cleaned = strip_code_fence(response.text(), "toml")

        try:
            updated = AgentConfig.from_toml(cleaned)
        except ValueError as exc:
            return WorkflowResult(
                success=False,
                workflow_type=WorkflowType.CONFIG_UPDATE,
                message="Failed to parse updated configuration",
                error=f"Parse error: {exc}\n\nGenerated config:\n{cleaned}",
            )

        config_path = self._config_path(agent_config.name)
        updated.save(config_path)
        return WorkflowResult(
            success=True,
            workflow_type=WorkflowType.CONFIG_UPDATE,
            message=f"Successfully updated {agent_config.name} configuration",
            execution_report={
                "config_path": str(config_path),
                "updated_config": cleaned,
            },
        )