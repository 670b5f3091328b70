import logging
import os
import shutil
import subprocess
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional

from hooklistener.core.exceptions import TaskExecutionError
from hooklistener.schemas.task import FailurePolicy, TaskResult

WORKSPACE_PREFIX = "WebhookListener."


class TaskRunner:
    """Runs task scripts one after another inside a throwaway workspace"""

    def __init__(
        self,
        cmdshell: str = "/bin/sh",
        keep: bool = False,
        timeout: Optional[float] = None,
        failure_policy: FailurePolicy = FailurePolicy.CONTINUE,
        base_dir: Optional[str] = None,
    ):
        self.cmdshell = cmdshell
        self.keep = keep
        self.timeout = timeout
        self.failure_policy = failure_policy
        self.base_dir = base_dir
        self.logger = logging.getLogger(__name__)

    @contextmanager
    def workspace(self) -> Iterator[Path]:
        """Create a unique working directory, removed on exit unless keep is set"""
        path = Path(tempfile.mkdtemp(prefix=WORKSPACE_PREFIX, dir=self.base_dir))
        self.logger.info(f"Tempdir: {path}")
        try:
            yield path
        finally:
            if self.keep:
                self.logger.info(f"Keep working directory: {path}")
            else:
                self.logger.info(f"Remove working directory: {path}")
                try:
                    shutil.rmtree(path)
                except OSError as e:
                    self.logger.error(f"Failed to remove working directory {path}: {e}")

    def run(self, commands: List[str]) -> List[TaskResult]:
        if not commands:
            self.logger.info("No commands to run")
            return []

        self.logger.info(f"cmds: {commands!r}")
        results = []
        with self.workspace() as path:
            for index, command in enumerate(commands):
                result = self.run_task(path, index, command)
                results.append(result)
                if not result.success and self.failure_policy == FailurePolicy.ABORT:
                    self.logger.error(
                        f"Aborting remaining {len(commands) - index - 1} task(s)"
                    )
                    break
        return results

    def run_task(self, workspace: Path, index: int, command: str) -> TaskResult:
        script = workspace / f"task-{index:03d}"
        try:
            script.write_text(command, encoding="utf-8", errors="surrogateescape")
            self.logger.info(f"File created: {script}")
            completed = self.execute(workspace, script)
        except (TaskExecutionError, OSError, ValueError) as e:
            self.logger.error(f"Exec error: {e}")
            return TaskResult(
                index=index,
                script=str(script),
                success=False,
                exit_code=getattr(e, "exit_code", None),
                error=str(e),
            )

        self.logger.info(f"Executed: {self.cmdshell} {script}")
        return TaskResult(
            index=index,
            script=str(script),
            success=True,
            exit_code=completed.returncode,
            stdout=completed.stdout,
            stderr=completed.stderr,
        )

    def execute(self, workspace: Path, script: Path) -> subprocess.CompletedProcess:
        """Run one script, raising TaskExecutionError on any kind of failure"""
        try:
            completed = subprocess.run(
                [self.cmdshell, str(script)],
                cwd=workspace,
                env=os.environ.copy(),
                capture_output=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise TaskExecutionError(f"{script} timed out after {e.timeout}s") from e
        except OSError as e:
            raise TaskExecutionError(f"Failed to start {self.cmdshell}: {e}") from e

        if completed.stdout:
            self.logger.info(completed.stdout.rstrip())
        if completed.stderr:
            self.logger.error(completed.stderr.rstrip())
        if completed.returncode != 0:
            raise TaskExecutionError(
                f"{self.cmdshell} {script} exited with status {completed.returncode}",
                exit_code=completed.returncode,
            )
        return completed
