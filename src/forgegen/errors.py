"""Exception types raised by the generator pipeline."""

from __future__ import annotations

from pathlib import Path

__all__ = [
    "AlreadyExists",
    "AmbiguousAnchor",
    "AnchorNotFound",
    "DuplicateField",
    "GeneratorError",
    "IOFailure",
    "InvalidField",
    "InvalidIdentifier",
    "MalformedBlock",
    "PlanConflict",
    "TargetNotFound",
    "TemplateError",
    "UnknownGenerator",
]


class GeneratorError(RuntimeError):
    """Base class for every error surfaced to the end user.

    Errors carry optional context (``path``, ``anchor`` and ``template_id``)
    which is appended to the message so it can be printed verbatim.
    """

    def __init__(
        self,
        message: str,
        *,
        path: str | Path | None = None,
        anchor: str | None = None,
        template_id: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.path = str(path) if path is not None else None
        self.anchor = anchor
        self.template_id = template_id

    def with_context(
        self,
        *,
        path: str | Path | None = None,
        anchor: str | None = None,
        template_id: str | None = None,
    ) -> GeneratorError:
        """Fill in context attributes that are not set yet and return ``self``."""

        if self.path is None and path is not None:
            self.path = str(path)
        if self.anchor is None and anchor is not None:
            self.anchor = anchor
        if self.template_id is None and template_id is not None:
            self.template_id = template_id
        return self

    def __str__(self) -> str:
        details = []
        if self.template_id:
            details.append(f"template={self.template_id}")
        if self.path:
            details.append(f"path={self.path}")
        if self.anchor:
            details.append(f"anchor={self.anchor}")
        if not details:
            return self.message
        return f"{self.message} ({', '.join(details)})"


class InvalidIdentifier(GeneratorError):
    """Raised when a raw name cannot be turned into identifier variants."""


class InvalidField(GeneratorError):
    """Raised for a field descriptor with an unknown type or bad parameters."""


class DuplicateField(GeneratorError):
    """Raised when two fields share a name, ignoring case."""


class TemplateError(GeneratorError):
    """Raised when a template cannot be parsed or evaluated."""

    def __init__(
        self,
        message: str,
        *,
        template_id: str | None = None,
        line: int | None = None,
        column: int | None = None,
        path: str | Path | None = None,
    ) -> None:
        super().__init__(message, template_id=template_id, path=path)
        self.line = line
        self.column = column

    @property
    def location(self) -> str:
        name = self.template_id or "<template>"
        if self.line is None:
            return name
        if self.column is None:
            return f"{name}:{self.line}"
        return f"{name}:{self.line}:{self.column}"

    def __str__(self) -> str:
        text = f"{self.location}: {self.message}"
        if self.path:
            text = f"{text} (path={self.path})"
        return text


class AnchorNotFound(GeneratorError):
    """Raised when a target file has no line carrying the requested anchor."""


class AmbiguousAnchor(GeneratorError):
    """Raised when an anchor appears more than once and no index was given."""


class MalformedBlock(GeneratorError):
    """Raised when a block anchor has no matching end marker."""


class AlreadyExists(GeneratorError):
    """Raised when a create job targets an existing file without overwrite."""


class TargetNotFound(GeneratorError):
    """Raised when an injection targets a file that does not exist."""


class PlanConflict(GeneratorError):
    """Raised when the job list cannot be applied consistently."""


class IOFailure(GeneratorError):
    """Raised when reading or writing a file fails."""


class UnknownGenerator(GeneratorError):
    """Raised when a catalog has no generator with the requested name."""
