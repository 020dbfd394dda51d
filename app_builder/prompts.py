"""Interactive questions asked while the pipeline runs.

Each question is a ``Prompt``: the text to show, the ``ProjectContext`` field
its answer fills, and a validator that either returns the normalised value or
raises ``InvalidAnswerError``.  ``PromptController.ask`` keeps re-asking until
the validator accepts an answer; there is no retry limit.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from app_builder.context import ProjectContext
from app_builder.utils import console, print_warning, underscore

_YES = frozenset({"y", "yes"})
_NO = frozenset({"n", "no"})
_IDENTIFIER_RE = re.compile(r"^[a-z_][a-z0-9_]*(/[a-z_][a-z0-9_]*)*$")


class InvalidAnswerError(ValueError):
    """Raised by a prompt validator to reject an answer and re-ask."""


@dataclass(frozen=True)
class Prompt:
    """A question whose validated answer is recorded under ``key``."""

    key: str
    question: str
    validate: Callable[[str], Any]
    retry_message: str = ""


class PromptController:
    """Runs the ask / validate / retry loop and records accepted answers.

    Args:
        context: Project context the answers are written into.
        reader: Called with the question text; returns one line of input.
            Defaults to the shared Rich console's ``input``.
    """

    def __init__(
        self,
        context: ProjectContext,
        reader: Callable[[str], str] | None = None,
    ) -> None:
        self.context = context
        self.reader = reader or _console_reader

    def ask(self, prompt: Prompt) -> Any:
        """Ask *prompt* until its validator accepts, record and return the value."""
        while True:
            answer = self.reader(prompt.question)
            try:
                value = prompt.validate(answer)
            except InvalidAnswerError as exc:
                print_warning(prompt.retry_message or str(exc))
                continue
            self.context.record(prompt.key, value)
            return value

    def confirm(self, key: str, question: str) -> bool:
        """Ask a yes/no question."""
        return self.ask(
            Prompt(
                key=key,
                question=question,
                validate=parse_yes_no,
                retry_message="please answer 'y' or 'n'",
            )
        )

    def ask_text(
        self,
        key: str,
        question: str,
        validator: Callable[[str], Any],
        retry_message: str = "",
    ) -> Any:
        """Ask a free-text question checked by *validator*."""
        return self.ask(
            Prompt(key=key, question=question, validate=validator, retry_message=retry_message)
        )

    def choose(
        self,
        key: str,
        question: str,
        choices: Iterable[str],
        retry_message: str = "",
    ) -> str:
        """Ask until the answer is one of *choices* (case-insensitive)."""
        accepted = tuple(choice.lower() for choice in choices)

        def _validate(answer: str) -> str:
            normalised = answer.strip().lower()
            if normalised not in accepted:
                raise InvalidAnswerError(
                    f"please enter one of: {', '.join(repr(c) for c in accepted)}"
                )
            return normalised

        return self.ask(
            Prompt(key=key, question=question, validate=_validate, retry_message=retry_message)
        )


# ---------------------------------------------------------------------------
# Validators
# ---------------------------------------------------------------------------


def parse_yes_no(answer: str) -> bool:
    normalised = answer.strip().lower()
    if normalised in _YES:
        return True
    if normalised in _NO:
        return False
    raise InvalidAnswerError(f"not a yes/no answer: {answer!r}")


def controller_name(answer: str) -> str:
    """Normalise a controller name with Rails' underscore rules.

    ``"HomePage"`` becomes ``"home_page"``.  Blank input and names that are
    not valid Ruby identifiers afterwards are rejected.
    """
    name = underscore(answer)
    if not name:
        raise InvalidAnswerError("the controller name must not be empty")
    if not _IDENTIFIER_RE.match(name):
        raise InvalidAnswerError(f"{answer!r} is not a valid controller name")
    return name


def _console_reader(question: str) -> str:
    return console.input(f"[bold cyan]?[/bold cyan] {question} ")
