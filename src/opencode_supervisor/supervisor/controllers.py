"""Controllers for supervisor CLI commands."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from opencode_supervisor.config import ApiSettings, Settings
from opencode_supervisor.http.client import SessionClient
from opencode_supervisor.supervisor.engine import TaskEngine
from opencode_supervisor.supervisor.models import TaskRequest, TaskResult
from opencode_supervisor.supervisor.report import render_task_report, result_to_payload

logger = logging.getLogger(__name__)

ClientFactory = Callable[[ApiSettings], SessionClient]


@dataclass(slots=True)
class RunTaskCommand:
    """CLI input for one supervised task."""

    task: str
    project_name: str | None = None
    max_iterations: int | None = None
    continue_on_error: bool | None = None
    output_json: bool = False


@dataclass(slots=True)
class AbortSessionCommand:
    """CLI input for session abort."""

    session_id: str


@dataclass(slots=True)
class InspectSessionCommand:
    """CLI input for session inspection."""

    session_id: str


@dataclass(slots=True)
class RunTaskOutcome:
    """Rendered report together with the structured result."""

    lines: list[str]
    result: TaskResult
    project_path: Path


class SupervisorCliController:
    """Builds client and engine from settings and runs CLI operations."""

    def __init__(
        self,
        *,
        settings_loader: Callable[[], Settings] = Settings.from_env,
        client_factory: ClientFactory = SessionClient.from_settings,
    ) -> None:
        self.settings_loader = settings_loader
        self.client_factory = client_factory

    def run_task(self, command: RunTaskCommand) -> RunTaskOutcome:
        if not command.task or not command.task.strip():
            raise ValueError("task is required")

        settings = self._settings()
        project_path = settings.project_path(command.project_name)
        request = TaskRequest(
            task=command.task,
            working_directory=str(project_path),
            credentials_path=str(settings.credentials_dir),
            max_iterations=command.max_iterations or settings.supervisor.max_iterations,
            continue_on_error=(
                settings.supervisor.continue_on_error
                if command.continue_on_error is None
                else command.continue_on_error
            ),
        )
        logger.info(
            "Running task in %s (max_iterations=%d, continue_on_error=%s)",
            project_path,
            request.max_iterations,
            request.continue_on_error,
        )

        with self.client_factory(settings.api) as client:
            engine = TaskEngine(
                client=client,
                retry_backoff_seconds=settings.supervisor.retry_backoff_seconds,
                max_no_progress=settings.supervisor.max_no_progress,
                output_preview_chars=settings.supervisor.output_preview_chars,
            )
            result = engine.execute(request)

        if command.output_json:
            payload = result_to_payload(result, project_path=project_path)
            lines = [json.dumps(payload, ensure_ascii=False, indent=2)]
        else:
            lines = render_task_report(result).splitlines()
        return RunTaskOutcome(lines=lines, result=result, project_path=project_path)

    def abort(self, command: AbortSessionCommand) -> tuple[list[str], bool]:
        settings = self._settings()
        with self.client_factory(settings.api) as client:
            aborted = client.abort_session(command.session_id)
        if aborted:
            return [f"Session aborted: {command.session_id}"], True
        return [f"Session abort failed: {command.session_id}"], False

    def inspect(self, command: InspectSessionCommand) -> list[str]:
        settings = self._settings()
        with self.client_factory(settings.api) as client:
            session = client.get_session(command.session_id)
            diffs = client.get_session_diff(command.session_id)

        summary = session.summary
        lines = [
            f"Session: {session.id}",
            f"Title: {session.title or '-'}",
            f"Directory: {session.directory or '-'}",
            (
                f"Files changed: {session.files_changed} "
                f"(+{summary.additions if summary else 0}/-{summary.deletions if summary else 0})"
            ),
        ]
        if diffs:
            lines.append("Diff:")
            lines.extend(
                f"  {diff.status} {diff.path}: +{diff.additions}/-{diff.deletions}"
                for diff in diffs
            )
        else:
            lines.append("Diff: none")
        return lines

    def _settings(self) -> Settings:
        settings = self.settings_loader()
        settings.validate()
        return settings
