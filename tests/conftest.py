"""Shared pytest fixtures for the application builder test suite.

Provides reusable fixtures for:
- A fake Rails skeleton shaped like ``rails new`` output
- A recording collaborator double that deposits generator output
- Scripted answers for the prompt controller
- A ready-wired build environment
"""

from __future__ import annotations

import textwrap
from collections.abc import Callable
from pathlib import Path

import pytest

from app_builder.collaborators import CollaboratorError
from app_builder.context import ProjectContext
from app_builder.mutations import FileMutationEngine
from app_builder.pipeline import BuildEnvironment
from app_builder.prompts import PromptController
from app_builder.templates import TemplateLibrary


# ---------------------------------------------------------------------------
# Fake Rails skeleton
# ---------------------------------------------------------------------------

SKELETON_FILES: dict[str, str] = {
    "README.rdoc": "== Welcome to Rails\n",
    "Gemfile": "source 'https://rubygems.org'\n\ngem 'rails', '3.2.13'\n",
    "config/database.yml": "development:\n  adapter: sqlite3\n",
    "config/routes.rb": textwrap.dedent(
        """\
        Blog::Application.routes.draw do
          # The priority is based upon order of creation:
          # first created -> highest priority.

          # Sample of regular route:
          #   match 'products/:id' => 'catalog#view'

          # You can have the root of your site routed with "root"
          # just remember to delete public/index.html.
          # root :to => 'welcome#index'
        end
        """
    ),
    "config/application.rb": textwrap.dedent(
        """\
        require File.expand_path('../boot', __FILE__)

        require 'rails/all'

        module Blog
          class Application < Rails::Application
            config.encoding = "utf-8"

            config.active_record.whitelist_attributes = true

            # Enable the asset pipeline
            config.assets.enabled = true

            config.assets.version = '1.0'
          end
        end
        """
    ),
    "config/environments/development.rb": textwrap.dedent(
        """\
        Blog::Application.configure do
          config.cache_classes = false
        end
        """
    ),
    "config/environments/production.rb": textwrap.dedent(
        """\
        Blog::Application.configure do
          config.cache_classes = true
        end
        """
    ),
    "public/index.html": "<html><body>Welcome aboard</body></html>\n",
    "app/assets/images/rails.png": "PNG",
    "app/assets/stylesheets/application.css": "/*\n *= require_self\n *= require_tree .\n */\n",
    "app/assets/javascripts/application.js": (
        "//= require jquery\n//= require jquery_ujs\n//= require_tree .\n"
    ),
    "app/views/layouts/application.html.erb": "<html><%= yield %></html>\n",
}

SPEC_HELPER = textwrap.dedent(
    """\
    ENV["RAILS_ENV"] ||= 'test'
    require File.expand_path("../../config/environment", __FILE__)
    require 'rspec/rails'

    RSpec.configure do |config|
      config.fixture_path = "#{::Rails.root}/spec/fixtures"

      config.use_transactional_fixtures = true

      config.infer_base_class_for_anonymous_controllers = false
    end
    """
)


def write_tree(root: Path, files: dict[str, str]) -> None:
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")


@pytest.fixture
def rails_root(tmp_path: Path) -> Path:
    """A directory laid out like a freshly generated Rails 3.2 app named blog."""
    root = tmp_path / "blog"
    root.mkdir()
    write_tree(root, SKELETON_FILES)
    return root


# ---------------------------------------------------------------------------
# Collaborator double
# ---------------------------------------------------------------------------


class RecordingCollaborators:
    """In-memory stand-in for Rails, Bundler, rake and git.

    Every call is appended to ``events`` (shared with any other recorder the
    test passes in).  Generators that the steps depend on deposit the files
    the real ones would.  Names listed in ``fail_on`` raise
    ``CollaboratorError`` instead, e.g. ``"resolve_dependencies"`` or
    ``"rake db:create"``.
    """

    def __init__(
        self,
        root: Path,
        events: list[str] | None = None,
        fail_on: set[str] | None = None,
    ) -> None:
        self.root = root
        self.events = events if events is not None else []
        self.fail_on = fail_on or set()

    def _record(self, name: str) -> None:
        self.events.append(name)
        if name in self.fail_on:
            raise CollaboratorError(name, 1, "simulated failure")

    async def new_project(self) -> None:
        self._record("new_project")

    async def generate(self, *args: str) -> None:
        self._record("generate " + " ".join(args))
        if args[0] == "rspec:install":
            write_tree(self.root, {".rspec": "--color\n", "spec/spec_helper.rb": SPEC_HELPER})
        elif args[0] == "controller":
            name = args[1]
            write_tree(
                self.root,
                {f"app/controllers/{name}_controller.rb": f"class {name.title()}Controller\nend\n"},
            )
            routes = self.root / "config/routes.rb"
            text = routes.read_text(encoding="utf-8")
            head, sep, tail = text.partition("routes.draw do\n")
            routes.write_text(f'{head}{sep}  get "{name}/index"\n{tail}', encoding="utf-8")

    async def resolve_dependencies(self) -> None:
        self._record("resolve_dependencies")

    async def rake(self, task: str) -> None:
        self._record(f"rake {task}")

    async def init_repository(self) -> None:
        self._record("init_repository")


@pytest.fixture
def events() -> list[str]:
    """Shared, ordered log of step and collaborator activity."""
    return []


@pytest.fixture
def make_collaborators(
    rails_root: Path, events: list[str]
) -> Callable[..., RecordingCollaborators]:
    """Factory for collaborator doubles sharing the ``events`` log."""

    def _make(fail_on: set[str] | None = None) -> RecordingCollaborators:
        return RecordingCollaborators(rails_root, events, fail_on=fail_on)

    return _make


@pytest.fixture
def collaborators(make_collaborators) -> RecordingCollaborators:
    return make_collaborators()


# ---------------------------------------------------------------------------
# Scripted answers
# ---------------------------------------------------------------------------


class ScriptedReader:
    """Answers questions from a fixed list and remembers what was asked."""

    def __init__(self, answers: list[str]) -> None:
        self.answers = list(answers)
        self.questions: list[str] = []

    def __call__(self, question: str) -> str:
        self.questions.append(question)
        if not self.answers:
            raise AssertionError(f"Unexpected question: {question!r}")
        return self.answers.pop(0)


@pytest.fixture
def make_reader() -> Callable[..., ScriptedReader]:
    def _make(*answers: str) -> ScriptedReader:
        return ScriptedReader(list(answers))

    return _make


# ---------------------------------------------------------------------------
# Context & environment
# ---------------------------------------------------------------------------


@pytest.fixture
def context() -> ProjectContext:
    return ProjectContext(app_name="blog", ruby_version="2.0.0", ruby_patchlevel=195)


@pytest.fixture
def templates() -> TemplateLibrary:
    return TemplateLibrary()


@pytest.fixture
def make_env(
    rails_root: Path,
    context: ProjectContext,
    templates: TemplateLibrary,
    collaborators: RecordingCollaborators,
) -> Callable[..., BuildEnvironment]:
    """Build a ``BuildEnvironment`` over the fake skeleton answering *answers*."""

    def _make(*answers: str) -> BuildEnvironment:
        return BuildEnvironment(
            engine=FileMutationEngine(rails_root, quiet=True),
            templates=templates,
            prompts=PromptController(context, reader=ScriptedReader(list(answers))),
            collaborators=collaborators,
        )

    return _make
