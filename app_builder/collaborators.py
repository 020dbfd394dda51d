"""External tools the pipeline drives: the Rails generator, Bundler, rake and git.

Each call blocks the pipeline until the tool exits.  A non-zero exit (or a
timeout) raises ``CollaboratorError``, which the pipeline treats as fatal for
the step that made the call.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from app_builder.config import Config
from app_builder.utils import console, run_command


class CollaboratorError(Exception):
    """Raised when an external command fails."""

    def __init__(self, command: str, returncode: int, stderr: str = "") -> None:
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        message = f"Command failed (exit {returncode}): {command}"
        if stderr:
            message = f"{message}\n{stderr}"
        super().__init__(message)


class Collaborators(Protocol):
    """Blocking operations the pipeline delegates to external tools."""

    async def new_project(self) -> None:
        """Produce the initial application skeleton."""

    async def generate(self, *args: str) -> None:
        """Run a Rails generator (``rails generate <args>``)."""

    async def resolve_dependencies(self) -> None:
        """Install the gems listed in the Gemfile."""

    async def rake(self, task: str) -> None:
        """Run a rake task such as ``db:create``."""

    async def init_repository(self) -> None:
        """Initialise version control in the project root."""


class ShellCollaborators:
    """``Collaborators`` implemented with subprocesses.

    Generator output is not captured so the user sees the tools' own
    progress; only failures are reported through ``CollaboratorError``.
    """

    def __init__(self, config: Config) -> None:
        self.config = config

    async def new_project(self) -> None:
        self.config.output_dir.mkdir(parents=True, exist_ok=True)
        await self._run(
            [
                self.config.rails_command,
                "new",
                self.config.app_name,
                "--skip-bundle",
                "--skip-git",
                "--skip-test-unit",
                "--database=postgresql",
            ],
            cwd=self.config.output_dir,
        )

    async def generate(self, *args: str) -> None:
        await self._run([self.config.rails_command, "generate", *args])

    async def resolve_dependencies(self) -> None:
        await self._run(
            [self.config.bundle_command, "install"],
            timeout=self.config.install_timeout,
        )

    async def rake(self, task: str) -> None:
        await self._run([self.config.bundle_command, "exec", "rake", task])

    async def init_repository(self) -> None:
        await self._run([self.config.git_command, "init"])

    async def _run(
        self,
        cmd: list[str],
        cwd: Path | None = None,
        timeout: int | None = None,
    ) -> None:
        command = " ".join(cmd)
        console.print(f"  [dim]$ {command}[/dim]")
        returncode, _, stderr = await run_command(
            cmd,
            cwd=cwd or self.config.project_root,
            timeout=timeout or self.config.command_timeout,
            capture=False,
        )
        if returncode != 0:
            raise CollaboratorError(command, returncode, stderr)
