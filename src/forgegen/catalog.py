"""Generator catalogs: named, ordered lists of template jobs.

A catalog is an immutable mapping handed to :class:`forgegen.scaffold.Scaffolder`.
Catalogs can be assembled in code or loaded from a directory laid out as::

    templates/
        model/
            01_model.t
            02_register.t
        controller/
            ...

Each ``.t`` file starts with a YAML front matter block::

    ---
    to: app/models/{{ snake_case }}.py
    skip_exists: true
    message: "Model {{ pascal_case }} added"
    inject:
      anchor: models
      placement: after
      skip_if: '^from \\.{{ snake_case }} import'
    ---
    template body
"""

from __future__ import annotations

import re
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterable, Iterator, Mapping

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .errors import TemplateError, UnknownGenerator
from .injection import Placement

__all__ = [
    "GeneratorCatalog",
    "JobMode",
    "TemplateJob",
    "parse_template",
]


_FRONT_MATTER = re.compile(r"\A---[ \t]*\r?\n(?P<meta>.*?)^---[ \t]*(?:\r?\n|\Z)", re.DOTALL | re.MULTILINE)
_FRONT_MATTER_KEYS = {"to", "skip_exists", "message", "inject"}
_INJECT_KEYS = {"anchor", "placement", "index", "comment", "skip_if"}
TEMPLATE_SUFFIX = ".t"


class JobMode(str, Enum):
    CREATE = "create"
    INJECT = "inject"


class TemplateJob(BaseModel):
    """One step of a generator: render a template and create or inject it."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    template_id: str = Field(..., description="Identifier used in errors and reports.")
    template: str = Field(..., description="Template body.")
    destination: str = Field(..., description="Destination path template, relative to the app root.")
    mode: JobMode = Field(JobMode.CREATE, description="Create a new file or inject into an existing one.")
    anchor: str | None = Field(None, description="Anchor name for inject jobs.")
    placement: Placement | None = Field(None, description="Placement relative to the anchor.")
    anchor_index: int | None = Field(None, ge=0, description="Occurrence to use when an anchor repeats.")
    comment_prefix: str | None = Field(None, description="Comment prefix of the anchor line.")
    skip_if: str | None = Field(
        None, description="Pattern template; an inject job is skipped when the target file matches it."
    )
    skip_exists: bool = Field(False, description="Skip a create job whose destination already exists.")
    message: str | None = Field(None, description="Message template shown after the job ran.")

    @model_validator(mode="after")
    def _check_mode(self) -> TemplateJob:
        if self.mode is JobMode.INJECT:
            if not self.anchor or self.placement is None:
                raise ValueError("inject jobs require an anchor and a placement")
        elif self.anchor is not None or self.placement is not None or self.skip_if is not None:
            raise ValueError("create jobs cannot name an anchor, placement or skip_if pattern")
        return self

    @classmethod
    def create(
        cls,
        template_id: str,
        template: str,
        destination: str,
        *,
        skip_exists: bool = False,
        message: str | None = None,
    ) -> TemplateJob:
        return cls(
            template_id=template_id,
            template=template,
            destination=destination,
            skip_exists=skip_exists,
            message=message,
        )

    @classmethod
    def inject(
        cls,
        template_id: str,
        template: str,
        destination: str,
        anchor: str,
        placement: Placement | str = Placement.AFTER,
        *,
        index: int | None = None,
        comment_prefix: str | None = None,
        skip_if: str | None = None,
        message: str | None = None,
    ) -> TemplateJob:
        return cls(
            template_id=template_id,
            template=template,
            destination=destination,
            mode=JobMode.INJECT,
            anchor=anchor,
            placement=Placement(placement),
            anchor_index=index,
            comment_prefix=comment_prefix,
            skip_if=skip_if,
            message=message,
        )


def _front_matter_error(message: str, template_id: str, line: int = 1) -> TemplateError:
    return TemplateError(f"invalid front matter: {message}", template_id=template_id, line=line, column=1)


def parse_template(text: str, template_id: str) -> TemplateJob:
    """Build a :class:`TemplateJob` from a template file with front matter."""

    match = _FRONT_MATTER.match(text)
    if match is None:
        raise _front_matter_error("template must start with a '---' block", template_id)

    try:
        meta: Any = yaml.safe_load(match.group("meta")) or {}
    except yaml.YAMLError as exc:
        mark = getattr(exc, "problem_mark", None)
        line = mark.line + 2 if mark is not None else 1
        raise _front_matter_error(str(exc), template_id, line) from exc

    if not isinstance(meta, dict):
        raise _front_matter_error("expected a mapping", template_id)
    unknown = sorted(set(meta) - _FRONT_MATTER_KEYS)
    if unknown:
        raise _front_matter_error(f"unknown keys {', '.join(map(str, unknown))}", template_id)
    if not isinstance(meta.get("to"), str) or not meta["to"].strip():
        raise _front_matter_error("'to' must name the destination path", template_id)

    values: dict[str, Any] = {
        "template_id": template_id,
        "template": text[match.end() :],
        "destination": meta["to"],
        "skip_exists": meta.get("skip_exists", False),
        "message": meta.get("message"),
    }

    inject = meta.get("inject")
    if inject is not None:
        if not isinstance(inject, dict):
            raise _front_matter_error("'inject' must be a mapping", template_id)
        unknown = sorted(set(inject) - _INJECT_KEYS)
        if unknown:
            raise _front_matter_error(f"unknown inject keys {', '.join(map(str, unknown))}", template_id)
        values.update(
            mode=JobMode.INJECT,
            anchor=inject.get("anchor"),
            placement=inject.get("placement", Placement.AFTER.value),
            anchor_index=inject.get("index"),
            comment_prefix=inject.get("comment"),
            skip_if=inject.get("skip_if"),
        )

    try:
        return TemplateJob(**values)
    except ValidationError as exc:
        details = "; ".join(error["msg"] for error in exc.errors())
        raise _front_matter_error(details, template_id) from exc


class GeneratorCatalog(Mapping[str, tuple[TemplateJob, ...]]):
    """Immutable mapping of generator name to its ordered jobs."""

    def __init__(self, generators: Mapping[str, Iterable[TemplateJob]] | None = None) -> None:
        self._generators = MappingProxyType(
            {name: tuple(jobs) for name, jobs in (generators or {}).items()}
        )

    def __getitem__(self, name: str) -> tuple[TemplateJob, ...]:
        return self._generators[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._generators)

    def __len__(self) -> int:
        return len(self._generators)

    def __repr__(self) -> str:
        return f"GeneratorCatalog({sorted(self._generators)!r})"

    def jobs(self, name: str) -> tuple[TemplateJob, ...]:
        """Return the jobs for ``name`` or raise :class:`UnknownGenerator`."""

        try:
            return self._generators[name]
        except KeyError:
            known = ", ".join(sorted(self._generators)) or "none"
            raise UnknownGenerator(f"unknown generator `{name}` (available: {known})") from None

    def merged(self, other: Mapping[str, Iterable[TemplateJob]]) -> GeneratorCatalog:
        """Return a new catalog where generators from ``other`` win."""

        combined = dict(self._generators)
        combined.update({name: tuple(jobs) for name, jobs in other.items()})
        return GeneratorCatalog(combined)

    @classmethod
    def from_directory(cls, directory: str | Path, *, encoding: str = "utf-8") -> GeneratorCatalog:
        """Load one generator per sub-directory of ``directory``.

        Template files (``*.t``) run in file name order.
        """

        directory = Path(directory)
        if not directory.is_dir():
            raise FileNotFoundError(directory)

        generators: dict[str, list[TemplateJob]] = {}
        for generator_dir in sorted(path for path in directory.iterdir() if path.is_dir()):
            jobs = [
                parse_template(
                    template_path.read_text(encoding=encoding),
                    f"{generator_dir.name}/{template_path.name}",
                )
                for template_path in sorted(generator_dir.glob(f"*{TEMPLATE_SUFFIX}"))
            ]
            if jobs:
                generators[generator_dir.name] = jobs
        return cls(generators)
