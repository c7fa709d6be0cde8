"""Task execution loop that drives one OpenCode session to verified changes."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from opencode_supervisor.http.client import SessionClientError
from opencode_supervisor.supervisor.interpreter import (
    OUTPUT_PREVIEW_CHARS,
    extract_text,
    extract_tool_actions,
    find_tool_error,
    finish_reason,
    has_write_actions,
)
from opencode_supervisor.supervisor.models import (
    FileDiff,
    Session,
    SessionSummary,
    TaskRequest,
    TaskResult,
    TaskStatus,
    ToolAction,
)
from opencode_supervisor.supervisor.prompts import (
    REQUEST_ERROR_PROMPT,
    build_continue_prompt,
    build_initial_prompt,
    build_no_changes_prompt,
    build_tool_error_prompt,
)

logger = logging.getLogger(__name__)

FINISH_STOP = "stop"
DEFAULT_RETRY_BACKOFF_SECONDS = 2.0
DEFAULT_MAX_NO_PROGRESS = 3


class SessionApi(Protocol):
    """Remote calls the engine depends on."""

    def create_session(self) -> Session: ...

    def get_session(self, session_id: str) -> Session: ...

    def get_session_diff(self, session_id: str) -> list[FileDiff]: ...

    def send_message(self, session_id: str, text: str) -> dict[str, Any]: ...


class TaskSetupError(RuntimeError):
    """Session could not be created; the task never started."""


@dataclass(slots=True)
class _RunState:
    session_id: str
    prompt: str = ""
    iteration: int = 0
    no_progress: int = 0
    actions: list[ToolAction] = field(default_factory=list)
    logs: list[str] = field(default_factory=list)
    last_response: dict[str, Any] | None = None

    def log(self, line: str) -> None:
        self.logs.append(line)


class TaskEngine:
    """Runs the create -> iterate -> finalize loop for one task at a time.

    Instances hold configuration only; all per-task state lives inside
    :meth:`execute`, so one engine can serve independent tasks.
    """

    def __init__(
        self,
        *,
        client: SessionApi,
        retry_backoff_seconds: float = DEFAULT_RETRY_BACKOFF_SECONDS,
        max_no_progress: int = DEFAULT_MAX_NO_PROGRESS,
        output_preview_chars: int = OUTPUT_PREVIEW_CHARS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.client = client
        self.retry_backoff_seconds = retry_backoff_seconds
        self.max_no_progress = max_no_progress
        self.output_preview_chars = output_preview_chars
        self._sleep = sleep

    def execute(self, request: TaskRequest) -> TaskResult:
        """Run the task until verified changes, no progress, or budget exhaustion.

        Raises :class:`TaskSetupError` if the session cannot be created and
        re-raises :class:`SessionClientError` when a mid-loop request fails
        and no retry is allowed.
        """

        if request.max_iterations <= 0:
            raise ValueError("max_iterations must be > 0")

        run = self._create_session()
        run.prompt = build_initial_prompt(
            task=request.task,
            working_directory=request.working_directory,
            credentials_path=request.credentials_path,
        )

        while run.iteration < request.max_iterations:
            run.iteration += 1
            run.log(f"--- Iteration {run.iteration}/{request.max_iterations} ---")
            try:
                if self._iterate(run, continue_on_error=request.continue_on_error):
                    break
            except SessionClientError as exc:
                run.log(f"Request error: {exc}")
                logger.warning(
                    "Session %s iteration %d request failed: %s",
                    run.session_id,
                    run.iteration,
                    exc,
                )
                if request.continue_on_error and run.iteration < request.max_iterations:
                    self._sleep(self.retry_backoff_seconds)
                    run.prompt = REQUEST_ERROR_PROMPT
                    continue
                raise

        return self._finalize(run, max_iterations=request.max_iterations)

    def _create_session(self) -> _RunState:
        try:
            session = self.client.create_session()
        except SessionClientError as exc:
            raise TaskSetupError(f"Failed to create session: {exc}") from exc
        logger.info("Session created: %s", session.id)
        run = _RunState(session_id=session.id)
        run.log(f"Session created: {session.id}")
        return run

    def _iterate(self, run: _RunState, *, continue_on_error: bool) -> bool:
        """Execute one prompt/response turn; return True to stop the loop."""

        response = self.client.send_message(run.session_id, run.prompt)
        run.last_response = response

        finish = finish_reason(response)
        actions = extract_tool_actions(response, max_output_chars=self.output_preview_chars)
        run.actions.extend(actions)
        run.log(f"Finish: {finish or 'unknown'}")
        run.log(
            "Actions: " + (", ".join(action.tool for action in actions) if actions else "none"),
        )

        error_action = find_tool_error(actions)
        if error_action is not None:
            run.log(f"Tool error: {error_action.tool} exited with code {error_action.exit_code}")
            logger.info(
                "Session %s: %s exited with code %s",
                run.session_id,
                error_action.tool,
                error_action.exit_code,
            )
            if continue_on_error:
                run.prompt = build_tool_error_prompt(error_action)
                run.no_progress = 0
                return False

        files_changed = self.client.get_session(run.session_id).files_changed
        run.log(f"Files changed: {files_changed}")

        if finish == FINISH_STOP:
            if files_changed > 0:
                run.log("Task completed with file changes")
                return True
            run.no_progress += 1
            if run.no_progress >= self.max_no_progress:
                run.log(f"No progress after {run.no_progress} attempts - stopping")
                return True
            run.prompt = build_no_changes_prompt(write_attempted=has_write_actions(run.actions))
            return False

        run.log(f"Unexpected finish: {finish or 'unknown'}")
        if continue_on_error:
            run.prompt = build_continue_prompt(finish)
        return False

    def _finalize(self, run: _RunState, *, max_iterations: int) -> TaskResult:
        diffs: list[FileDiff] = []
        error: str | None = None
        try:
            summary = self.client.get_session(run.session_id).summary or SessionSummary()
            diffs = self.client.get_session_diff(run.session_id)
        except SessionClientError as exc:
            run.log(f"Failed to get final state: {exc}")
            logger.warning("Session %s final state unavailable: %s", run.session_id, exc)
            summary = SessionSummary()
            diffs = []
            error = f"Failed to get final state: {exc}"

        status = classify_task_status(
            files_changed=summary.files,
            iterations=run.iteration,
            max_iterations=max_iterations,
            actions=run.actions,
        )
        if error is None and status is TaskStatus.FAILED:
            failed = find_tool_error(run.actions)
            if failed is not None:
                error = f"{failed.tool} exited with code {failed.exit_code}"
        logger.info(
            "Session %s finished: status=%s iterations=%d files=%d",
            run.session_id,
            status.value,
            run.iteration,
            summary.files,
        )

        return TaskResult(
            status=status,
            session_id=run.session_id,
            iterations=run.iteration,
            files_changed=summary.files,
            additions=summary.additions,
            deletions=summary.deletions,
            diffs=tuple(diffs),
            actions=tuple(run.actions),
            logs=tuple(run.logs),
            final_output=extract_text(run.last_response) if run.last_response else "",
            error=error,
        )


def classify_task_status(
    *,
    files_changed: int,
    iterations: int,
    max_iterations: int,
    actions: Sequence[ToolAction],
) -> TaskStatus:
    """Map final counters to a terminal status.

    File changes outrank iteration and error bookkeeping.
    """

    if files_changed > 0:
        return TaskStatus.COMPLETED
    if iterations >= max_iterations:
        return TaskStatus.MAX_ITERATIONS
    if find_tool_error(actions) is not None:
        return TaskStatus.FAILED
    return TaskStatus.COMPLETED_NO_CHANGES
