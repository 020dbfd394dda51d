"""Per-run project context shared by every pipeline step."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, PrivateAttr, field_validator


class DeploymentServer(str, Enum):
    """Application server the generated project is deployed with."""

    THIN = "thin"
    PUMA = "puma"


class ProjectContext(BaseModel):
    """What is being built and what the user chose along the way.

    The identity fields are fixed when the pipeline starts.  The answer
    fields start out as ``None`` and are filled in by the prompt controller
    through :meth:`record`, once per question.
    """

    app_name: str = Field(..., min_length=1)
    ruby_version: str = Field(default="2.0.0")
    ruby_patchlevel: int = Field(default=0, ge=0)
    jruby_version: str = Field(default="1.7.2")

    deployment_server: DeploymentServer | None = None
    generate_home_controller: bool | None = None
    home_controller: str | None = None
    devise_views: bool | None = None

    _answered: set[str] = PrivateAttr(default_factory=set)

    @field_validator("app_name")
    @classmethod
    def _app_name_is_usable(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Application name must not be blank")
        return value

    @property
    def answered(self) -> frozenset[str]:
        """Names of the questions that have been answered so far."""
        return frozenset(self._answered)

    def record(self, key: str, value: Any) -> None:
        """Store the answer to the question that fills *key*.

        Raises:
            ValueError: If *key* is not an answer field or was already answered.
        """
        if key not in _ANSWER_FIELDS:
            raise ValueError(f"'{key}' is not an answerable project option")
        if key in self._answered:
            raise ValueError(f"'{key}' has already been answered")
        if key == "deployment_server":
            value = DeploymentServer(value)
        setattr(self, key, value)
        self._answered.add(key)

    def template_vars(self) -> dict[str, Any]:
        """Variables available to rendered template payloads."""
        return {
            "app_name": self.app_name,
            "ruby_version": self.ruby_version,
            "ruby_patchlevel": self.ruby_patchlevel,
            "jruby_version": self.jruby_version,
            "server": self.deployment_server.value if self.deployment_server else None,
            "home_controller": self.home_controller,
        }


_ANSWER_FIELDS = frozenset(
    {"deployment_server", "generate_home_controller", "home_controller", "devise_views"}
)
