"""Pure projections over a raw OpenCode message response.

Functions here never raise on missing or malformed optional fields; an
absent field means "no information".
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from opencode_supervisor.supervisor.models import ToolAction

OUTPUT_PREVIEW_CHARS = 500
WRITE_TOOLS: frozenset[str] = frozenset({"write", "edit"})


def finish_reason(response: Mapping[str, Any]) -> str | None:
    """Return ``info.finish`` when the server reported one."""

    info = response.get("info")
    if not isinstance(info, Mapping):
        return None
    finish = info.get("finish")
    return finish if isinstance(finish, str) and finish else None


def extract_text(response: Mapping[str, Any]) -> str:
    """Join all text parts with newlines."""

    return "\n".join(
        part["text"]
        for part in _parts(response)
        if part.get("type") == "text" and isinstance(part.get("text"), str) and part["text"]
    )


def extract_tool_actions(
    response: Mapping[str, Any],
    *,
    max_output_chars: int = OUTPUT_PREVIEW_CHARS,
) -> list[ToolAction]:
    """Build one ToolAction per tool part that carries captured state."""

    actions: list[ToolAction] = []
    for part in _parts(response):
        if part.get("type") != "tool":
            continue
        state = part.get("state")
        if not isinstance(state, Mapping):
            continue
        actions.append(_tool_action(part, state, max_output_chars=max_output_chars))
    return actions


def find_tool_error(actions: Iterable[ToolAction]) -> ToolAction | None:
    """Return the first action with a non-zero exit code."""

    for action in actions:
        if action.has_error:
            return action
    return None


def has_write_actions(actions: Iterable[ToolAction]) -> bool:
    """Whether any write/edit tool was invoked.

    Only used to pick the corrective prompt; never a success signal.
    """

    return any(action.tool in WRITE_TOOLS for action in actions)


def _parts(response: Mapping[str, Any]) -> list[Mapping[str, Any]]:
    parts = response.get("parts")
    if not isinstance(parts, list):
        return []
    return [part for part in parts if isinstance(part, Mapping)]


def _tool_action(
    part: Mapping[str, Any],
    state: Mapping[str, Any],
    *,
    max_output_chars: int,
) -> ToolAction:
    raw_input = state.get("input")
    tool_input: Mapping[str, Any] = raw_input if isinstance(raw_input, Mapping) else {}
    raw_metadata = state.get("metadata")
    metadata: Mapping[str, Any] = raw_metadata if isinstance(raw_metadata, Mapping) else {}

    command = _str_or_none(tool_input.get("command"))
    output = _str_or_none(state.get("output")) or _str_or_none(metadata.get("output"))
    return ToolAction(
        tool=_str_or_none(part.get("tool")) or _str_or_none(state.get("tool")) or "unknown",
        status=_str_or_none(state.get("status")),
        exit_code=_exit_code(metadata.get("exit")),
        path=_str_or_none(tool_input.get("path")) or _str_or_none(tool_input.get("file_path")),
        command=command,
        description=_str_or_none(tool_input.get("description")) if command else None,
        output=output[:max_output_chars] if output else None,
    )


def _exit_code(value: object) -> int | None:
    # bool is an int subclass; a JSON true/false is not an exit code
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def _str_or_none(value: object) -> str | None:
    if isinstance(value, str) and value:
        return value
    return None
