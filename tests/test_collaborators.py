"""Unit tests for the shell-backed collaborators (app_builder.collaborators).

``run_command`` is patched so no Rails, Bundler or git binary is needed;
the tests check the exact command lines, working directories and timeouts.
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from app_builder.collaborators import CollaboratorError, ShellCollaborators
from app_builder.config import Config


@pytest.fixture
def config(tmp_path: Path) -> Config:
    return Config(
        app_name="blog",
        output_dir=tmp_path,
        rails_command="rails",
        bundle_command="bundle",
        git_command="git",
        command_timeout=30,
        install_timeout=600,
    )


@pytest.fixture
def mock_run():
    with patch(
        "app_builder.collaborators.run_command",
        new=AsyncMock(return_value=(0, "", "")),
    ) as mock:
        yield mock


class TestCommands:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_new_project_runs_in_output_dir(self, config, mock_run, tmp_path):
        await ShellCollaborators(config).new_project()

        cmd = mock_run.call_args.args[0]
        assert cmd[:3] == ["rails", "new", "blog"]
        assert "--skip-bundle" in cmd
        assert "--database=postgresql" in cmd
        assert mock_run.call_args.kwargs["cwd"] == tmp_path

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_generate_runs_in_project_root(self, config, mock_run, tmp_path):
        await ShellCollaborators(config).generate("controller", "home", "index")

        mock_run.assert_awaited_once_with(
            ["rails", "generate", "controller", "home", "index"],
            cwd=tmp_path / "blog",
            timeout=30,
            capture=False,
        )

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_bundle_install_uses_install_timeout(self, config, mock_run):
        await ShellCollaborators(config).resolve_dependencies()

        assert mock_run.call_args.args[0] == ["bundle", "install"]
        assert mock_run.call_args.kwargs["timeout"] == 600

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_rake_and_git(self, config, mock_run):
        collaborators = ShellCollaborators(config)
        await collaborators.rake("db:migrate")
        await collaborators.init_repository()

        commands = [call.args[0] for call in mock_run.call_args_list]
        assert commands == [["bundle", "exec", "rake", "db:migrate"], ["git", "init"]]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_configured_binaries(self, tmp_path, mock_run):
        config = Config(app_name="blog", output_dir=tmp_path, rails_command="bin/rails")
        await ShellCollaborators(config).generate("devise:install")
        assert mock_run.call_args.args[0][0] == "bin/rails"


class TestFailures:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_nonzero_exit_raises(self, config):
        failing = AsyncMock(return_value=(5, "", "Could not find gem 'devise'"))
        with patch("app_builder.collaborators.run_command", new=failing):
            with pytest.raises(CollaboratorError) as exc_info:
                await ShellCollaborators(config).resolve_dependencies()

        err = exc_info.value
        assert err.command == "bundle install"
        assert err.returncode == 5
        assert "Could not find gem" in str(err)

    @pytest.mark.unit
    def test_error_message_without_stderr(self):
        err = CollaboratorError("git init", 127)
        assert str(err) == "Command failed (exit 127): git init"
