"""Domain models for OpenCode sessions and supervised task results."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class TaskStatus(str, Enum):
    """Terminal outcome of one supervised task."""

    COMPLETED = "completed"
    COMPLETED_NO_CHANGES = "completed_no_changes"
    FAILED = "failed"
    MAX_ITERATIONS = "max_iterations"


@dataclass(slots=True, frozen=True)
class SessionSummary:
    """Change counters maintained by the OpenCode server for a session."""

    additions: int = 0
    deletions: int = 0
    files: int = 0


@dataclass(slots=True, frozen=True)
class Session:
    """One remote conversation with the coding agent."""

    id: str
    title: str | None = None
    directory: str | None = None
    summary: SessionSummary | None = None
    created_at: int | None = None
    updated_at: int | None = None

    @property
    def files_changed(self) -> int:
        return self.summary.files if self.summary is not None else 0


@dataclass(slots=True, frozen=True)
class FileDiff:
    """One changed file reported by the session diff endpoint."""

    path: str
    additions: int = 0
    deletions: int = 0
    status: str = "modified"


@dataclass(slots=True, frozen=True)
class ToolAction:
    """One tool invocation performed by the agent during a turn."""

    tool: str
    status: str | None = None
    exit_code: int | None = None
    path: str | None = None
    command: str | None = None
    description: str | None = None
    output: str | None = None

    @property
    def has_error(self) -> bool:
        """Non-zero exit code is the only failure signal."""

        return self.exit_code is not None and self.exit_code != 0


@dataclass(slots=True, frozen=True)
class TaskResult:
    """Final verified outcome of a supervised task."""

    status: TaskStatus
    session_id: str
    iterations: int
    files_changed: int
    additions: int
    deletions: int
    diffs: tuple[FileDiff, ...] = ()
    actions: tuple[ToolAction, ...] = ()
    logs: tuple[str, ...] = ()
    final_output: str = ""
    error: str | None = None


@dataclass(slots=True)
class TaskRequest:
    """Inputs for one engine run."""

    task: str
    working_directory: str
    credentials_path: str
    max_iterations: int
    continue_on_error: bool = True


def session_from_payload(payload: object) -> Session:
    """Build a Session from the server JSON, tolerating missing optional fields."""

    if not isinstance(payload, dict):
        raise TypeError("Expected session JSON object")
    session_id = payload.get("id")
    if not isinstance(session_id, str) or not session_id:
        raise ValueError("session.id must be a non-empty string")

    raw_summary = payload.get("summary")
    summary = None
    if isinstance(raw_summary, dict):
        summary = SessionSummary(
            additions=_as_int(raw_summary.get("additions")),
            deletions=_as_int(raw_summary.get("deletions")),
            files=_as_int(raw_summary.get("files")),
        )

    raw_time = payload.get("time")
    times = raw_time if isinstance(raw_time, dict) else {}
    return Session(
        id=session_id,
        title=_as_optional_str(payload.get("title")),
        directory=_as_optional_str(payload.get("directory")),
        summary=summary,
        created_at=_as_optional_int(times.get("created")),
        updated_at=_as_optional_int(times.get("updated")),
    )


def diffs_from_payload(payload: object) -> list[FileDiff]:
    """Build FileDiff entries from the diff endpoint, skipping entries without a path."""

    if not isinstance(payload, list):
        raise TypeError("Expected session diff JSON array")
    diffs: list[FileDiff] = []
    for item in payload:
        if not isinstance(item, dict):
            continue
        path = item.get("path") or item.get("file")
        if not isinstance(path, str) or not path:
            continue
        diffs.append(
            FileDiff(
                path=path,
                additions=_as_int(item.get("additions")),
                deletions=_as_int(item.get("deletions")),
                status=_as_optional_str(item.get("status")) or "modified",
            ),
        )
    return diffs


def _as_int(value: object) -> int:
    parsed = _as_optional_int(value)
    return parsed if parsed is not None else 0


def _as_optional_int(value: object) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def _as_optional_str(value: object) -> str | None:
    if isinstance(value, str) and value:
        return value
    return None
