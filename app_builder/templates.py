"""Template payloads written into the generated application.

``TemplateLibrary`` loads every ``*.j2`` file under ``app_builder/templates/``
once, keyed by its path relative to that directory without the ``.j2``
extension (``"rspec/expect_syntax.rb"``, ``"Gemfile"``...).  Payloads are
available verbatim through :meth:`TemplateLibrary.payload`, or rendered with
Jinja2 against a project context through :meth:`TemplateLibrary.render`.
"""

from __future__ import annotations

from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

from jinja2 import DictLoader, Environment, StrictUndefined, select_autoescape


# ---------------------------------------------------------------------------
# Template directory discovery
# ---------------------------------------------------------------------------

_DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"
_SUFFIX = ".j2"


# ---------------------------------------------------------------------------
# TemplateLibrary
# ---------------------------------------------------------------------------


class TemplateLibrary:
    """Read-only collection of named template payloads.

    The payload text is read from disk when the library is constructed and
    never again, so every consumer sees the same bytes for the lifetime of a
    run.
    """

    def __init__(self, template_dir: str | Path | None = None) -> None:
        if template_dir is None:
            template_dir = _DEFAULT_TEMPLATE_DIR
        self.template_dir = Path(template_dir)
        self._payloads: Mapping[str, str] = MappingProxyType(_load_payloads(self.template_dir))
        self.env = Environment(
            loader=DictLoader(dict(self._payloads)),
            autoescape=select_autoescape([]),
            undefined=StrictUndefined,
            keep_trailing_newline=True,
        )

    @property
    def payloads(self) -> Mapping[str, str]:
        """Read-only ``{identifier: text}`` mapping of every payload."""
        return self._payloads

    def names(self) -> list[str]:
        """Sorted identifiers of all payloads."""
        return sorted(self._payloads)

    def payload(self, name: str) -> str:
        """Return the verbatim text of payload *name*.

        Raises:
            KeyError: If no payload has that identifier.
        """
        try:
            return self._payloads[name]
        except KeyError:
            raise KeyError(f"Unknown template payload: {name}") from None

    def render(self, name: str, context: Mapping[str, Any]) -> str:
        """Render payload *name* as a Jinja2 template with *context*."""
        self.payload(name)
        return self.env.get_template(name).render(**context)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _load_payloads(template_dir: Path) -> dict[str, str]:
    payloads: dict[str, str] = {}
    if not template_dir.is_dir():
        return payloads
    for template_file in sorted(template_dir.rglob(f"*{_SUFFIX}")):
        name = template_file.relative_to(template_dir).as_posix()[: -len(_SUFFIX)]
        payloads[name] = template_file.read_text(encoding="utf-8")
    return payloads
