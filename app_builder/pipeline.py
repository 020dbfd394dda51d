"""Application builder pipeline orchestrator.

Runs the build in two phases:

Phase 1: GENERATE    -- Shape the fresh skeleton: docs, Gemfile, database
                        config, default-file cleanup, deployment server.
Gate:    bundle install must succeed before anything else runs.
Phase 2: POSTPROCESS -- Rewrite the files the generators and the gem install
                        produced: RSpec, database cleaner, Bootstrap, mailer,
                        Devise, migrations, version pin, git.

Usage::

    python -m app_builder.pipeline blog
    python -m app_builder.pipeline blog --output ~/code --existing
"""

from __future__ import annotations

import asyncio
import sys
import time
import traceback
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import ValidationError
from rich.panel import Panel

from app_builder.collaborators import CollaboratorError, Collaborators, ShellCollaborators
from app_builder.config import Config
from app_builder.context import ProjectContext
from app_builder.mutations import FileMutationEngine, MutationError
from app_builder.prompts import PromptController
from app_builder.templates import TemplateLibrary
from app_builder.utils import (
    PHASE_NAMES,
    console,
    format_duration,
    print_error,
    print_phase_header,
    print_success,
    print_summary_table,
)

# ---------------------------------------------------------------------------
# Pipeline model
# ---------------------------------------------------------------------------


class Phase(int, Enum):
    GENERATION = 1
    POSTPROCESS = 2


@dataclass
class BuildEnvironment:
    """Everything a step acts through besides the project context."""

    engine: FileMutationEngine
    templates: TemplateLibrary
    prompts: PromptController
    collaborators: Collaborators


StepAction = Callable[[ProjectContext, BuildEnvironment], Awaitable[None]]


@dataclass(frozen=True)
class Step:
    """A named unit of work bound to one phase."""

    name: str
    phase: Phase
    action: StepAction


DEPENDENCY_STEP = "bundle_install"

# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

FATAL_ERRORS = (MutationError, CollaboratorError)


class PipelineError(Exception):
    """Raised when a step fails and the remaining steps must not run."""

    def __init__(self, step: str, phase: Phase, cause: BaseException) -> None:
        self.step = step
        self.phase = phase
        self.cause = cause
        super().__init__(
            f"Step '{step}' (phase {phase.value} {PHASE_NAMES[phase.value]}) failed: {cause}"
        )


# ---------------------------------------------------------------------------
# Pipeline orchestrator
# ---------------------------------------------------------------------------


class StepPipeline:
    """Runs generation steps, the dependency gate, then postprocess steps.

    Steps run strictly one after another in list order.  The first failure
    stops the run; nothing already written is rolled back.

    Attributes:
        context: Project context passed to every step.
        env: Engine, templates, prompts and collaborators the steps use.
        state: Dictionary that accumulates progress and the outcome.
    """

    def __init__(
        self,
        steps: Sequence[Step],
        context: ProjectContext,
        env: BuildEnvironment,
    ) -> None:
        names = [step.name for step in steps]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Duplicate step names: {', '.join(duplicates)}")
        if DEPENDENCY_STEP in names:
            raise ValueError(f"'{DEPENDENCY_STEP}' is reserved for the dependency gate")

        self.steps: tuple[Step, ...] = tuple(steps)
        self.context = context
        self.env = env
        self.state: dict[str, Any] = {
            "started_at": datetime.now(timezone.utc).isoformat(),
            "steps_completed": [],
            "failed_step": None,
            "failed_phase": None,
            "error": None,
            "success": False,
        }

    def phase_steps(self, phase: Phase) -> list[Step]:
        """Steps of *phase* in execution order."""
        return [step for step in self.steps if step.phase is phase]

    async def run(self) -> dict[str, Any]:
        """Execute the pipeline.

        Returns:
            The final state dictionary, including a top-level ``success``
            boolean and, on failure, the failing step and phase.
        """
        pipeline_start = time.monotonic()

        console.print(
            Panel(
                f"[bold bright_cyan]Application Builder[/bold bright_cyan]\n"
                f"App    : {self.context.app_name}\n"
                f"Root   : {self.env.engine.root}\n"
                f"Steps  : {len(self.steps)} + {DEPENDENCY_STEP}",
                title="[bold]Pipeline Start[/bold]",
                border_style="bright_cyan",
            )
        )

        try:
            await self._run_phase(Phase.GENERATION)
            await self._resolve_dependencies()
            await self._run_phase(Phase.POSTPROCESS)
            self.state["success"] = True
        except PipelineError as exc:
            self._record_failure(exc.step, exc.phase, str(exc))
            print_error(str(exc))
        except Exception as exc:
            step, phase = self._current
            tb = traceback.format_exc()
            self._record_failure(step, phase, tb)
            print_error(f"Step '{step}' crashed: {exc}")
            console.print(f"[dim]{tb}[/dim]")

        total_elapsed = time.monotonic() - pipeline_start
        self.state["total_duration"] = format_duration(total_elapsed)
        self.state["finished_at"] = datetime.now(timezone.utc).isoformat()

        self._print_final_summary()
        return self.state

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    _current: tuple[str, Phase] = ("<start>", Phase.GENERATION)

    async def _run_phase(self, phase: Phase) -> None:
        print_phase_header(phase.value, PHASE_NAMES[phase.value])
        phase_start = time.monotonic()
        for step in self.phase_steps(phase):
            self._current = (step.name, phase)
            console.print(f"[bold]>> {step.name}[/bold]")
            try:
                await step.action(self.context, self.env)
            except FATAL_ERRORS as exc:
                raise PipelineError(step.name, phase, exc) from exc
            self.state["steps_completed"].append(step.name)
        elapsed = time.monotonic() - phase_start
        print_success(
            f"Phase {phase.value} ({PHASE_NAMES[phase.value]}) completed in "
            f"{format_duration(elapsed)}"
        )

    async def _resolve_dependencies(self) -> None:
        self._current = (DEPENDENCY_STEP, Phase.GENERATION)
        console.print(f"[bold]>> {DEPENDENCY_STEP}[/bold]")
        try:
            await self.env.collaborators.resolve_dependencies()
        except CollaboratorError as exc:
            raise PipelineError(DEPENDENCY_STEP, Phase.GENERATION, exc) from exc
        self.state["steps_completed"].append(DEPENDENCY_STEP)

    def _record_failure(self, step: str, phase: Phase, error: str) -> None:
        self.state["success"] = False
        self.state["failed_step"] = step
        self.state["failed_phase"] = phase.value
        self.state["error"] = error

    def _print_final_summary(self) -> None:
        summary = {
            "App": self.context.app_name,
            "Steps completed": str(len(self.state["steps_completed"])),
            "Duration": self.state.get("total_duration", "?"),
            "Result": "success" if self.state["success"] else "FAILED",
        }
        if self.state["failed_step"]:
            summary["Failed step"] = self.state["failed_step"]
        print_summary_table(summary, title="Build Summary")


# ---------------------------------------------------------------------------
# Construction helpers
# ---------------------------------------------------------------------------


def build_pipeline(
    config: Config,
    collaborators: Collaborators | None = None,
    reader: Callable[[str], str] | None = None,
    steps: Sequence[Step] | None = None,
) -> StepPipeline:
    """Wire a ``StepPipeline`` for *config* with the default step list."""
    from app_builder.steps import default_steps

    context = config.context()
    env = BuildEnvironment(
        engine=FileMutationEngine(config.project_root),
        templates=TemplateLibrary(),
        prompts=PromptController(context, reader=reader),
        collaborators=collaborators or ShellCollaborators(config),
    )
    if steps is None:
        steps = default_steps(include_skeleton=not config.existing_tree)
    return StepPipeline(steps, context, env)


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def main() -> None:
    """CLI entry point for ``python -m app_builder.pipeline``."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Application builder -- scaffold and customise a Rails app",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  python -m app_builder.pipeline blog\n"
            "  python -m app_builder.pipeline blog -o ~/code --ruby-version 2.0.0\n"
            "  python -m app_builder.pipeline blog --existing\n"
        ),
    )

    parser.add_argument("app_name", nargs="?", help="Name of the application to build")
    parser.add_argument("--output", "-o", default=None, help="Parent directory (default: .)")
    parser.add_argument("--config", "-c", default=None, help="JSON configuration file")
    parser.add_argument(
        "--existing",
        action="store_true",
        help="Build over an existing skeleton instead of running 'rails new'",
    )
    parser.add_argument("--ruby-version", default=None, help="Ruby version to pin")
    parser.add_argument("--ruby-patchlevel", type=int, default=None, help="Ruby patchlevel to pin")

    args = parser.parse_args()

    try:
        config = Config.load(Path(args.config)) if args.config else Config.from_env()
        overrides: dict[str, Any] = {}
        if args.app_name:
            overrides["app_name"] = args.app_name
        if args.output:
            overrides["output_dir"] = Path(args.output)
        if args.existing:
            overrides["existing_tree"] = True
        if args.ruby_version:
            overrides["ruby_version"] = args.ruby_version
        if args.ruby_patchlevel is not None:
            overrides["ruby_patchlevel"] = args.ruby_patchlevel
        config = Config.model_validate({**config.model_dump(), **overrides})
        pipeline = build_pipeline(config)
    except (OSError, ValidationError, ValueError) as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        sys.exit(1)

    if config.existing_tree and not config.project_root.is_dir():
        console.print(
            f"[bold red]Error:[/bold red] Project directory not found: {config.project_root}"
        )
        sys.exit(1)

    result = asyncio.run(pipeline.run())

    if result.get("success"):
        console.print("[bold green]Application built successfully![/bold green]")
    else:
        console.print("[bold red]Build failed.[/bold red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
