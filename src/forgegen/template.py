"""Template rendering for every generator, built on Jinja2.

Templates use ``{{ value|filter }}`` placeholders, ``{% if %}`` /
``{% elif %}`` / ``{% else %}`` / ``{% endif %}`` conditionals,
``{% for item in sequence %}`` / ``{% endfor %}`` loops and ``{# comments #}``.
A block tag or comment that sits alone on its line removes that whole line
from the output, so templates can be indented naturally.
"""

from __future__ import annotations

import re
import traceback
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Mapping, MutableMapping

import jinja2

from .errors import TemplateError
from .naming import (
    normalize_module_name,
    pluralize,
    singularize,
    slugify,
    to_camel_case,
    to_kebab_case,
    to_pascal_case,
    to_screaming_snake_case,
    to_snake_case,
)

__all__ = [
    "TemplateError",
    "TemplateRenderer",
]


_UNDEFINED: Mapping[str, type[jinja2.Undefined]] = {
    "keep": jinja2.DebugUndefined,
    "empty": jinja2.ChainableUndefined,
    "error": jinja2.StrictUndefined,
}
_NAME_IN_MESSAGE = re.compile(r"'(?P<name>[^']+)' is undefined|has no attribute '(?P<attribute>[^']+)'")
_TAG_OPENING = re.compile(r"{{|{%|{#")


def _default_filters() -> dict[str, Callable[[Any], Any]]:
    return {
        "upper": lambda value: str(value).upper(),
        "lower": lambda value: str(value).lower(),
        "title": lambda value: str(value).title(),
        "strip": lambda value: str(value).strip(),
        "repr": lambda value: repr(value),
        "quote": lambda value: f'"{value}"',
        "slug": lambda value: slugify(str(value)),
        "module": lambda value: normalize_module_name(str(value)),
        "snake": lambda value: to_snake_case(str(value)),
        "camel": lambda value: to_camel_case(str(value)),
        "pascal": lambda value: to_pascal_case(str(value)),
        "kebab": lambda value: to_kebab_case(str(value)),
        "screaming": lambda value: to_screaming_snake_case(str(value)),
        "plural": lambda value: pluralize(str(value)),
        "singular": lambda value: singularize(str(value)),
    }


def _template_line(exc: BaseException) -> int | None:
    # Jinja rewrites the traceback so template frames carry template line numbers.
    line = None
    for frame, lineno in traceback.walk_tb(exc.__traceback__):
        if frame.f_globals.get("__jinja_exception__") is exc:
            line = lineno
    return line


def _locate(source: str, line: int | None, message: str) -> tuple[int | None, int | None]:
    lines = source.splitlines()
    match = _NAME_IN_MESSAGE.search(message)
    needle = (match.group("name") or match.group("attribute")) if match else None

    if line is None and needle:
        for number, text in enumerate(lines, start=1):
            if _TAG_OPENING.search(text) and needle in text:
                line = number
                break
    if line is None or not 0 < line <= len(lines):
        return line, None

    text = lines[line - 1]
    position = text.find(needle) if needle else -1
    openings = [found.start() for found in _TAG_OPENING.finditer(text)]
    if position >= 0:
        openings = [offset for offset in openings if offset <= position] or [position]
        return line, openings[-1] + 1
    if openings:
        return line, openings[0] + 1
    return line, None


@dataclass(slots=True)
class TemplateRenderer:
    """Render templates with placeholders, conditionals and loops."""

    filters: MutableMapping[str, Callable[[Any], Any]] = field(default_factory=dict)
    _environments: dict[str, jinja2.Environment] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self) -> None:
        if not self.filters:
            self.filters.update(_default_filters())

    def environment(self, missing: str = "error") -> jinja2.Environment:
        """Return the Jinja environment used for the ``missing`` policy."""

        if missing not in _UNDEFINED:
            raise ValueError("missing must be 'keep', 'empty', or 'error'")

        environment = self._environments.get(missing)
        if environment is None:
            environment = jinja2.Environment(
                autoescape=False,
                trim_blocks=True,
                lstrip_blocks=True,
                keep_trailing_newline=True,
                undefined=_UNDEFINED[missing],
            )
            self._environments[missing] = environment
        environment.filters.update(self.filters)
        return environment

    def render(
        self,
        template: str,
        context: Mapping[str, Any],
        *,
        name: str | None = None,
        missing: str = "error",
    ) -> str:
        """Render ``template`` using ``context``.

        Parameters
        ----------
        template:
            The template source.
        context:
            Mapping providing values for placeholders, conditions and loops.
        name:
            Identifier used in error locations, usually the template id.
        missing:
            Controls what happens when a value cannot be resolved. The
            supported policies are ``"keep"`` (leave the placeholder text in
            place), ``"empty"`` (replace with an empty string) and ``"error"``
            (raise :class:`TemplateError`). Under ``keep`` and ``empty`` an
            undefined value is false in conditions and empty in loops.
        """

        environment = self.environment(missing)
        try:
            compiled = environment.from_string(template)
        except jinja2.TemplateSyntaxError as exc:
            raise self._error(template, name, exc.message or str(exc), exc.lineno) from None

        try:
            return compiled.render(dict(context))
        except jinja2.TemplateError as exc:
            raise self._error(template, name, exc.message or str(exc), _template_line(exc)) from None
        except TypeError as exc:
            raise self._error(template, name, str(exc), _template_line(exc)) from None

    def render_file(
        self,
        template_path: str | Path,
        context: Mapping[str, Any],
        *,
        target: str | Path | None = None,
        encoding: str = "utf-8",
        missing: str = "error",
    ) -> str:
        """Render ``template_path`` and optionally write the result to ``target``."""

        template_path = Path(template_path)
        if not template_path.is_file():
            raise FileNotFoundError(template_path)

        text = template_path.read_text(encoding=encoding)
        rendered = self.render(text, context, name=str(template_path), missing=missing)

        if target is not None:
            target_path = Path(target)
            target_path.parent.mkdir(parents=True, exist_ok=True)
            target_path.write_text(rendered, encoding=encoding)

        return rendered

    @staticmethod
    def _error(source: str, name: str | None, message: str, line: int | None) -> TemplateError:
        line, column = _locate(source, line, message)
        return TemplateError(message, template_id=name, line=line, column=column)
