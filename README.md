# robert

Building blocks for an AI-assisted browser automation assistant. The package
keeps agent configurations in TOML files, builds the prompts that ask a model
to produce Chrome DevTools Protocol (CDP) scripts, and runs the Claude
command-line tool in headless mode.

## What is inside

- `robert.config` – `AgentConfig` and `AgentSettings`. Configurations are
  stored as `<user config dir>/robert/agents/<name>.toml`
  (`AgentConfig.default_config_dir()` and `AgentConfig.config_path(name)`).
  Two defaults are provided: `AgentConfig.default_cdp_agent()` (the
  `cdp-generator` agent) and `AgentConfig.default_meta_agent()` (the
  `meta-agent`, which rewrites other agents' instructions from user
  feedback). `from_toml`, `to_toml`, `load` and `save` read and write them;
  invalid TOML or missing fields raise `ValueError`.
- `robert.prompts` – `PromptType`, `PromptContext` and `PromptTemplate`, which
  build the planning prompt, the CDP generation prompt (with or without
  clarification answers) and the configuration update prompt.
- `robert.claude` – `ClaudeClient`, `ClaudeConfig`, `ClaudeInput`,
  `ClaudeResponse` and `ClaudeStreamChunk`, plus exceptions rooted at
  `ClaudeError` (`NotInstalledError`, `NotAuthenticatedError`,
  `PermissionDeniedError`, `RateLimitExceededError`,
  `ModelNotAvailableError`, `InvalidInputError`, `InvalidOutputFormatError`,
  `ClaudeTimeoutError`, `ProcessError`, `ClaudeParseError`,
  `CommandFailedError`). Failures of the CLI are classified from its JSON
  result and its stderr by `classify_error_from_result` and
  `classify_error`. `ClaudeClient.execute` runs the CLI once and returns the
  parsed response; `execute_streaming` passes each streamed chunk to a
  callback; `build_command` and `build_prompt` show what would be run.
  Page HTML is put ahead of the prompt and cut at 100,000 bytes; image paths
  are accepted but not sent, since the CLI's headless mode takes no images.
- `robert.health` – `ClaudeHealthCheck.check()` finds the Claude CLI, reads
  its version and checks whether it is authenticated, reporting a
  `HealthStatus` of healthy, warning or error together with issues and
  suggestions. `status_message()`, `setup_instructions()` and `to_dict()`
  present the result.
- `robert.results` – `WorkflowType`, `WorkflowResult`,
  `ClarificationQuestion`, and the planning answers `ReadyPlan` and
  `ClarificationNeeded`; `strip_code_fence` removes Markdown fences from
  model output and `parse_planning_response` reads a planning reply.
- `robert.workflow` – `WorkflowExecutor`. `plan(...)` asks the agent whether
  a request is clear enough to script and returns a `ReadyPlan`, or a
  `WorkflowResult` carrying clarification questions or a parse error.
  `execute_config_update(feedback, agent_config)` asks for an updated
  configuration and saves it when it parses. The executor takes an optional
  `client_factory` (given the model name, returns an object with `execute`)
  and an optional `config_dir` to save into instead of the default directory.

## Agent configurations

```python
from robert.config import AgentConfig

agent = AgentConfig.default_cdp_agent()
text = agent.to_toml()
same = AgentConfig.from_toml(text)
assert same.name == "cdp-generator"

print(AgentConfig.config_path("cdp-generator"))
```

Settings default to including screenshots and HTML, three retries and a
temperature of 0.7; the meta agent uses the `sonnet` model at 0.3 with two
retries and no screenshots or HTML.

## Prompts

```python
from robert.prompts import PromptContext, PromptTemplate, PromptType

template = PromptTemplate(PromptType.CDP_GENERATION)
prompt = template.build(
    PromptContext(
        user_request="Click the login button",
        current_url="https://example.com",
        page_title="Example Page",
        agent_instructions="You are an automation expert",
    )
)
```

The page context section is included only when both the URL and the title are
known. Configuration update prompts add a failure context section only when
one is given.

## Calling the CLI

```python
from robert.claude import ClaudeClient, ClaudeConfig, ClaudeInput, ClaudeError

client = ClaudeClient(ClaudeConfig(model="sonnet", skip_permissions=True))
try:
    response = client.execute(ClaudeInput(prompt="Say hello"))
    print(response.text())
except ClaudeError as exc:
    print("failed:", exc)
```

## What this package does not do

- It does not drive a browser. It has no CDP script type, validator or
  executor, so `WorkflowExecutor` stops after the planning phase: generating
  the script from a `ReadyPlan` and running it are left to the caller.
- It has no command-line entry point, no desktop interface and no user
  profiles or sessions; it is a library.

## Requirements

The Claude CLI must be installed and on the `PATH` (or at one of the usual
installation locations) for `ClaudeClient` and the workflows to reach a model.
Use `ClaudeHealthCheck.check()` to find out what is missing; its
`setup_instructions()` lists the steps to fix it.