"""Application builder configuration.

Centralised, typed configuration for a build.  All settings use Pydantic v2
models so they can be validated at construction time and loaded from JSON or
environment variables without boiler-plate.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from app_builder.context import ProjectContext


class Config(BaseModel):
    """Global builder configuration.

    Instances are typically created once by the CLI entry point and then
    handed to the collaborators and used to seed the ``ProjectContext``.
    """

    app_name: str = Field(default="", description="Name of the Rails application to build")
    output_dir: Path = Field(default=Path("."), description="Directory the app folder is created in")
    existing_tree: bool = Field(
        default=False,
        description="Build over an already generated skeleton instead of running 'rails new'",
    )

    # Version pins written into the Gemfile and .rvmrc
    ruby_version: str = Field(default="2.0.0")
    ruby_patchlevel: int = Field(default=0, ge=0)
    jruby_version: str = Field(default="1.7.2")

    # External commands
    rails_command: str = Field(default="rails")
    bundle_command: str = Field(default="bundle")
    git_command: str = Field(default="git")
    command_timeout: int = Field(default=300, ge=10, description="Per-command timeout in seconds")
    install_timeout: int = Field(
        default=1800, ge=60, description="Timeout for 'bundle install' in seconds"
    )

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def project_root(self) -> Path:
        """Root of the generated application tree."""
        return self.output_dir / self.app_name

    def context(self) -> ProjectContext:
        """Create the ``ProjectContext`` a pipeline run starts from."""
        return ProjectContext(
            app_name=self.app_name,
            ruby_version=self.ruby_version,
            ruby_patchlevel=self.ruby_patchlevel,
            jruby_version=self.jruby_version,
        )

    # ------------------------------------------------------------------
    # Loading helpers
    # ------------------------------------------------------------------

    @classmethod
    def load(cls, path: Path) -> "Config":
        """Load a configuration from a JSON file."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            APP_BUILDER_APP_NAME, APP_BUILDER_OUTPUT_DIR, APP_BUILDER_RUBY_VERSION,
            APP_BUILDER_RUBY_PATCHLEVEL, APP_BUILDER_JRUBY_VERSION,
            APP_BUILDER_RAILS, APP_BUILDER_BUNDLE, APP_BUILDER_GIT,
            APP_BUILDER_COMMAND_TIMEOUT, APP_BUILDER_INSTALL_TIMEOUT.
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("APP_BUILDER_APP_NAME"):
            kwargs["app_name"] = os.environ["APP_BUILDER_APP_NAME"]
        if os.environ.get("APP_BUILDER_OUTPUT_DIR"):
            kwargs["output_dir"] = Path(os.environ["APP_BUILDER_OUTPUT_DIR"])
        if os.environ.get("APP_BUILDER_RUBY_VERSION"):
            kwargs["ruby_version"] = os.environ["APP_BUILDER_RUBY_VERSION"]
        if os.environ.get("APP_BUILDER_RUBY_PATCHLEVEL"):
            kwargs["ruby_patchlevel"] = int(os.environ["APP_BUILDER_RUBY_PATCHLEVEL"])
        if os.environ.get("APP_BUILDER_JRUBY_VERSION"):
            kwargs["jruby_version"] = os.environ["APP_BUILDER_JRUBY_VERSION"]
        if os.environ.get("APP_BUILDER_RAILS"):
            kwargs["rails_command"] = os.environ["APP_BUILDER_RAILS"]
        if os.environ.get("APP_BUILDER_BUNDLE"):
            kwargs["bundle_command"] = os.environ["APP_BUILDER_BUNDLE"]
        if os.environ.get("APP_BUILDER_GIT"):
            kwargs["git_command"] = os.environ["APP_BUILDER_GIT"]
        if os.environ.get("APP_BUILDER_COMMAND_TIMEOUT"):
            kwargs["command_timeout"] = int(os.environ["APP_BUILDER_COMMAND_TIMEOUT"])
        if os.environ.get("APP_BUILDER_INSTALL_TIMEOUT"):
            kwargs["install_timeout"] = int(os.environ["APP_BUILDER_INSTALL_TIMEOUT"])
        return cls(**kwargs)
