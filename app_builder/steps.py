"""The build recipe: every step of both pipeline phases, in execution order.

Generation steps only touch files the skeleton generator produced.  The
postprocess steps edit files that the generators and ``bundle install``
create, so their order is load-bearing: ``rspec`` must run before
``database_cleaner`` (which edits ``spec/spec_helper.rb``), ``bootstrap``
before ``flash_messages`` (the layout renders the flash partial), and
``devise`` before ``db_migrate`` (which runs the users migration).
"""

from __future__ import annotations

import re

from app_builder.context import DeploymentServer, ProjectContext
from app_builder.mutations import block_anchor
from app_builder.pipeline import BuildEnvironment, Phase, Step
from app_builder.prompts import controller_name
from app_builder.utils import console

# ---------------------------------------------------------------------------
# Paths and anchors
# ---------------------------------------------------------------------------

GEMFILE = "Gemfile"
APPLICATION_RB = "config/application.rb"
ROUTES_RB = "config/routes.rb"
SPEC_HELPER = "spec/spec_helper.rb"
STYLES_DIR = "app/assets/stylesheets"
LAYOUT = "app/views/layouts/application.html.erb"
PARTIALS_DIR = "app/views/application"
ENVIRONMENTS = ("config/environments/development.rb", "config/environments/production.rb")

GEM_SOURCE_LINE = "source 'https://rubygems.org'\n"
JQUERY_GEM_LINE = "gem 'jquery-rails'"

# Greedy on purpose: runs from the draw line to the *last* "end" in the file,
# so the whole default routes block (comments and all) collapses.
ROUTES_BLOCK = block_anchor(r"Application\.routes\.draw do", r"end")
ROUTES_DRAW_LINE = re.compile(r"\.routes\.draw do[ \t]*\n")
GENERATED_ROUTE_LINE = re.compile(r"^[ \t]*get\s+[\"']\w+/\w+[\"'][ \t]*\n", re.MULTILINE)
APPLICATION_CLASS = re.compile(r"class [A-Za-z_:]+ < Rails::Application", re.IGNORECASE)
FILE_CLOSING_END = re.compile(r"^end", re.MULTILINE)

# ---------------------------------------------------------------------------
# Phase 1: GENERATE
# ---------------------------------------------------------------------------


async def skeleton(context: ProjectContext, env: BuildEnvironment) -> None:
    await env.collaborators.new_project()


async def readme(context: ProjectContext, env: BuildEnvironment) -> None:
    env.engine.create_file(
        "README.md",
        env.templates.render("README.md", context.template_vars()),
        overwrite=True,
    )


async def gemfile(context: ProjectContext, env: BuildEnvironment) -> None:
    env.engine.create_file(GEMFILE, env.templates.payload("Gemfile"), overwrite=True)


async def database_yml(context: ProjectContext, env: BuildEnvironment) -> None:
    env.engine.create_file(
        "config/database.yml",
        env.templates.render("config/database.yml", context.template_vars()),
        overwrite=True,
    )


async def remove_default_files(context: ProjectContext, env: BuildEnvironment) -> None:
    env.engine.remove_file("public/index.html")
    env.engine.remove_file("app/assets/images/rails.png")


async def clean_routes(context: ProjectContext, env: BuildEnvironment) -> None:
    env.engine.substitute(ROUTES_RB, ROUTES_BLOCK, "Application.routes.draw do\nend")


async def disable_initialize_on_precompile(
    context: ProjectContext, env: BuildEnvironment
) -> None:
    env.engine.inject_after(
        APPLICATION_RB,
        "config.assets.enabled = true",
        env.templates.payload("config/initialize_on_precompile.rb"),
    )


async def deployment_server(context: ProjectContext, env: BuildEnvironment) -> None:
    """Ask thin or puma and pin the matching Ruby and server gem."""
    choice = env.prompts.choose(
        "deployment_server",
        "which server do you prefer? enter 'thin' or 'puma'",
        [server.value for server in DeploymentServer],
        retry_message="please enter either 'thin' or 'puma'",
    )
    variables = context.template_vars()

    if choice == DeploymentServer.PUMA.value:
        console.print("  configuring puma jruby")
        ruby_directive = env.templates.render("gemfile/ruby_jruby", variables)
    else:
        console.print("  configuring thin server")
        ruby_directive = env.templates.render("gemfile/ruby_thin", variables)

    env.engine.inject_after(GEMFILE, GEM_SOURCE_LINE, ruby_directive)
    env.engine.inject_after(
        GEMFILE, JQUERY_GEM_LINE, env.templates.render("gemfile/server_gem", variables)
    )
    if choice == DeploymentServer.PUMA.value:
        env.engine.create_file("Procfile", env.templates.payload("Procfile"))


# ---------------------------------------------------------------------------
# Phase 2: POSTPROCESS
# ---------------------------------------------------------------------------


async def rspec(context: ProjectContext, env: BuildEnvironment) -> None:
    await env.collaborators.generate("rspec:install")
    env.engine.append_file(".rspec", env.templates.payload("rspec/profile"))
    env.engine.inject_after(
        APPLICATION_RB, APPLICATION_CLASS, env.templates.payload("rspec/generators.rb")
    )
    env.engine.inject_after(
        SPEC_HELPER,
        "RSpec.configure do |config|",
        env.templates.payload("rspec/expect_syntax.rb"),
    )
    env.engine.comment_out(SPEC_HELPER, re.compile(r"config\.fixture_path"))


async def database_cleaner(context: ProjectContext, env: BuildEnvironment) -> None:
    env.engine.substitute(
        SPEC_HELPER,
        "config.use_transactional_fixtures = true",
        "config.use_transactional_fixtures = false",
    )
    env.engine.create_file(
        "spec/support/database_cleaner.rb",
        env.templates.payload("spec/support/database_cleaner.rb"),
    )


async def strong_parameters(context: ProjectContext, env: BuildEnvironment) -> None:
    env.engine.substitute(
        APPLICATION_RB, re.compile(r"whitelist_attributes\s*=\s*true"), "whitelist_attributes = false"
    )
    env.engine.create_file(
        "config/initializers/strong_parameters.rb",
        env.templates.payload("config/initializers/strong_parameters.rb"),
    )


async def db_create(context: ProjectContext, env: BuildEnvironment) -> None:
    await env.collaborators.rake("db:create")


async def simple_form(context: ProjectContext, env: BuildEnvironment) -> None:
    await env.collaborators.generate("simple_form:install", "--bootstrap")


async def bootstrap(context: ProjectContext, env: BuildEnvironment) -> None:
    """Replace the default stylesheet and layout with Bootstrap ones."""
    engine, templates = env.engine, env.templates

    engine.remove_file(f"{STYLES_DIR}/application.css")
    engine.remove_file(LAYOUT)
    engine.create_file(
        f"{STYLES_DIR}/application.css.scss", templates.payload("stylesheets/application.css.scss")
    )
    engine.create_file(
        f"{STYLES_DIR}/bootstrap_overrides.css.scss",
        templates.payload("stylesheets/bootstrap_overrides.css.scss"),
    )
    engine.create_file(
        LAYOUT, templates.render("views/layouts/application.html.erb", context.template_vars())
    )
    for partial in ("_top_bar_links.html.erb", "_devise_links.html.erb"):
        engine.create_file(
            f"{PARTIALS_DIR}/{partial}", templates.payload(f"views/application/{partial}")
        )
    engine.inject_before(
        "app/assets/javascripts/application.js",
        "//= require_tree .",
        templates.payload("javascripts/require_bootstrap.js"),
    )


async def flash_messages(context: ProjectContext, env: BuildEnvironment) -> None:
    env.engine.empty_directory(PARTIALS_DIR)
    env.engine.create_file(
        f"{PARTIALS_DIR}/_flashes.html.erb",
        env.templates.payload("views/application/_flashes.html.erb"),
    )


async def action_mailer(context: ProjectContext, env: BuildEnvironment) -> None:
    development, production = ENVIRONMENTS
    base = env.templates.payload("mailer/base.rb")
    for path in ENVIRONMENTS:
        env.engine.inject_before(path, FILE_CLOSING_END, base)
    env.engine.inject_before(development, FILE_CLOSING_END, env.templates.payload("mailer/gmail.rb"))
    env.engine.inject_before(
        production, FILE_CLOSING_END, env.templates.payload("mailer/mandrill.rb")
    )


async def home_controller(context: ProjectContext, env: BuildEnvironment) -> None:
    """Optionally generate a home controller and make its index the root route."""
    if not env.prompts.confirm(
        "generate_home_controller", "Do you want to generate a home controller? (y/n)"
    ):
        return

    name = env.prompts.ask_text(
        "home_controller",
        "Supply the home controller name:",
        controller_name,
    )
    await env.collaborators.generate("controller", name, "index")
    env.engine.inject_after(
        ROUTES_RB,
        ROUTES_DRAW_LINE,
        env.templates.render("routes/root.rb", context.template_vars()),
    )
    env.engine.substitute(ROUTES_RB, GENERATED_ROUTE_LINE, "")


async def devise(context: ProjectContext, env: BuildEnvironment) -> None:
    await env.collaborators.generate("devise:install")
    if env.prompts.confirm(
        "devise_views", "Do you want to generate devise views for customization? (y/n)"
    ):
        await env.collaborators.generate("devise:views")
    await env.collaborators.generate("devise", "User")


async def db_migrate(context: ProjectContext, env: BuildEnvironment) -> None:
    await env.collaborators.rake("db:migrate")


async def rvm_gemset(context: ProjectContext, env: BuildEnvironment) -> None:
    env.engine.create_file(".rvmrc", env.templates.render("rvmrc", context.template_vars()))


async def git_init(context: ProjectContext, env: BuildEnvironment) -> None:
    await env.collaborators.init_repository()


# ---------------------------------------------------------------------------
# Step list
# ---------------------------------------------------------------------------

GENERATION_STEPS: tuple[Step, ...] = (
    Step("readme", Phase.GENERATION, readme),
    Step("gemfile", Phase.GENERATION, gemfile),
    Step("database_yml", Phase.GENERATION, database_yml),
    Step("remove_default_files", Phase.GENERATION, remove_default_files),
    Step("clean_routes", Phase.GENERATION, clean_routes),
    Step("disable_initialize_on_precompile", Phase.GENERATION, disable_initialize_on_precompile),
    Step("deployment_server", Phase.GENERATION, deployment_server),
)

POSTPROCESS_STEPS: tuple[Step, ...] = (
    Step("rspec", Phase.POSTPROCESS, rspec),
    Step("database_cleaner", Phase.POSTPROCESS, database_cleaner),
    Step("strong_parameters", Phase.POSTPROCESS, strong_parameters),
    Step("db_create", Phase.POSTPROCESS, db_create),
    Step("simple_form", Phase.POSTPROCESS, simple_form),
    Step("bootstrap", Phase.POSTPROCESS, bootstrap),
    Step("flash_messages", Phase.POSTPROCESS, flash_messages),
    Step("action_mailer", Phase.POSTPROCESS, action_mailer),
    Step("home_controller", Phase.POSTPROCESS, home_controller),
    Step("devise", Phase.POSTPROCESS, devise),
    Step("db_migrate", Phase.POSTPROCESS, db_migrate),
    Step("rvm_gemset", Phase.POSTPROCESS, rvm_gemset),
    Step("git_init", Phase.POSTPROCESS, git_init),
)


def default_steps(include_skeleton: bool = True) -> list[Step]:
    """The full recipe; the skeleton step is left out when building in place."""
    steps: list[Step] = []
    if include_skeleton:
        steps.append(Step("skeleton", Phase.GENERATION, skeleton))
    steps.extend(GENERATION_STEPS)
    steps.extend(POSTPROCESS_STEPS)
    return steps
