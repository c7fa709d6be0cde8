"""Prompt templates sent to the OpenCode agent."""

from __future__ import annotations

from opencode_supervisor.supervisor.models import ToolAction

_INITIAL_PROMPT = """\
{task}

## CONTEXT
- Work directory: {working_directory}
- Credentials: {credentials_path} (read-only)

## REQUIREMENTS
1. Make actual changes to files (write/edit tools)
2. Run and test your changes
3. Fix any errors before finishing

Begin by exploring the project structure, then implement the changes."""

_TOOL_ERROR_PROMPT = """\
The command failed with exit code {exit_code}:
```
{output}
```

Please fix this error and continue."""

WRITES_WITHOUT_CHANGES_PROMPT = """\
You made write attempts but no files were changed.
Please verify your changes and try again."""

NO_CHANGES_PROMPT = """\
You haven't made any file changes yet.
Please use the write or edit tool to modify files.
Don't just read files - actually implement the changes."""

REQUEST_ERROR_PROMPT = "There was an error. Please continue with the task."


def build_initial_prompt(*, task: str, working_directory: str, credentials_path: str) -> str:
    return _INITIAL_PROMPT.format(
        task=task.strip(),
        working_directory=working_directory,
        credentials_path=credentials_path,
    )


def build_tool_error_prompt(action: ToolAction) -> str:
    """Quote the failing command output back to the agent."""

    output = action.output or "(no output)"
    if action.command:
        output = f"$ {action.command}\n{output}"
    return _TOOL_ERROR_PROMPT.format(exit_code=action.exit_code, output=output)


def build_no_changes_prompt(*, write_attempted: bool) -> str:
    return WRITES_WITHOUT_CHANGES_PROMPT if write_attempted else NO_CHANGES_PROMPT


def build_continue_prompt(finish: str | None) -> str:
    return f'The previous step ended with "{finish or "unknown"}". Please continue.'
