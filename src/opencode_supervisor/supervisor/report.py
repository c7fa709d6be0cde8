"""Markdown and JSON rendering of supervised task results."""

from __future__ import annotations

from dataclasses import asdict
from pathlib import Path
from typing import Any

from opencode_supervisor.supervisor.models import TaskResult, TaskStatus, ToolAction

STATUS_MESSAGES: dict[TaskStatus, str] = {
    TaskStatus.COMPLETED: "✅ Task completed successfully",
    TaskStatus.COMPLETED_NO_CHANGES: "⚠️ Task finished but no files were changed",
    TaskStatus.FAILED: "❌ Task failed due to errors",
    TaskStatus.MAX_ITERATIONS: "⏱️ Task stopped after max iterations",
}

_ERROR_PREVIEW_CHARS = 200


def render_task_report(result: TaskResult) -> str:
    """Render the operator-facing Markdown report for one task."""

    lines = [
        "## OpenCode Task Result",
        "",
        f"**Status:** {STATUS_MESSAGES[result.status]}",
        f"**Session:** {result.session_id}",
        f"**Iterations:** {result.iterations}",
        (
            f"**Files Changed:** {result.files_changed} "
            f"(+{result.additions}/-{result.deletions})"
        ),
    ]
    if result.error:
        lines.append(f"**Error:** {result.error}")

    lines.extend(["", "### File Changes"])
    if result.diffs:
        lines.extend(f"- {diff.path}: +{diff.additions}/-{diff.deletions}" for diff in result.diffs)
    else:
        lines.append("(no file changes)")

    actions = render_actions(result.actions)
    if actions:
        lines.extend(["", *actions])

    lines.extend(
        [
            "",
            "### Final Output",
            result.final_output or "(no output)",
            "",
            "<details>",
            "<summary>Execution Log</summary>",
            "",
            "```",
            *result.logs,
            "```",
            "</details>",
        ],
    )
    return "\n".join(lines)


def render_actions(actions: tuple[ToolAction, ...] | list[ToolAction]) -> list[str]:
    if not actions:
        return []

    lines = ["### Actions Performed"]
    for action in actions:
        mark = " ❌" if action.has_error else ""
        if action.tool == "bash" and action.command:
            lines.append(f"- **bash**: `{action.command}`{mark}")
            if action.has_error and action.output:
                lines.append(
                    f"  Error (exit {action.exit_code}): "
                    f"{action.output[:_ERROR_PREVIEW_CHARS]}",
                )
        elif action.tool in {"write", "edit"}:
            lines.append(f"- **{action.tool}**: `{action.path}`{mark}")
        elif action.tool == "read":
            lines.append(f"- **read**: `{action.path}`")
        else:
            target = f": `{action.path}`" if action.path else ""
            lines.append(f"- **{action.tool}**{target}{mark}")
    return lines


def result_to_payload(result: TaskResult, *, project_path: Path | None = None) -> dict[str, Any]:
    """Serialize a result into JSON-compatible primitives."""

    payload = asdict(result)
    payload["status"] = result.status.value
    payload["actions"] = [
        {**asdict(action), "has_error": action.has_error} for action in result.actions
    ]
    if project_path is not None:
        payload["project_path"] = str(project_path)
    return payload
