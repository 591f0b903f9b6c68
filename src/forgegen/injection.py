"""Plan anchor based edits to existing files.

Scaffolded files carry sentinel comments such as::

    # loco:generator:routes

Later generator runs find the sentinel again and insert new content next to
it. A sentinel may also open a block that is closed by a matching
``loco:generator:<name>:end`` line; the interior of such a block can be
replaced as a whole. Planning is pure: it reads text and returns an
:class:`EditPlan` which :mod:`forgegen.materialize` applies.
"""

from __future__ import annotations

import hashlib
import logging
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterator

from .errors import AmbiguousAnchor, AnchorNotFound, MalformedBlock, PlanConflict, TemplateError

__all__ = [
    "ANCHOR_MARKER",
    "ALREADY_PRESENT",
    "AnchorLine",
    "EditPlan",
    "Placement",
    "content_digest",
    "find_anchors",
    "plan",
]


LOGGER = logging.getLogger(__name__)

ANCHOR_MARKER = "loco:generator:"
ALREADY_PRESENT = "already present"
NOTHING_TO_INSERT = "nothing to insert"


class Placement(str, Enum):
    """Where injected text goes relative to its anchor."""

    BEFORE = "before"
    AFTER = "after"
    REPLACE_BLOCK = "replace_block"


@dataclass(frozen=True, slots=True)
class AnchorLine:
    """A sentinel line found in a file.

    ``start`` and ``end`` are offsets of the whole line, including its line
    terminator ``eol`` (empty for a final line without one).
    """

    name: str
    line_number: int
    start: int
    end: int
    eol: str
    is_end: bool = False
    tag: str | None = None


def content_digest(contents: str) -> str:
    """Fingerprint of ``contents`` used to detect edits made after planning."""

    return hashlib.sha256(contents.encode("utf-8", "surrogatepass")).hexdigest()


@dataclass(frozen=True, slots=True)
class EditPlan:
    """Replace ``contents[start:end]`` with ``text``.

    A plan with a ``skip_reason`` is a no-op: the content is already where it
    would have been inserted.
    """

    path: Path | None
    anchor: str
    placement: Placement
    start: int
    end: int
    text: str
    source_digest: str
    skip_reason: str | None = None

    @property
    def is_noop(self) -> bool:
        return self.skip_reason is not None

    def matches(self, contents: str) -> bool:
        """Whether ``contents`` is the text this plan was computed against."""

        return content_digest(contents) == self.source_digest

    def apply(self, contents: str) -> str:
        """Return ``contents`` with the edit applied."""

        if self.is_noop:
            return contents
        if not 0 <= self.start <= self.end <= len(contents):
            raise PlanConflict(
                f"edit range {self.start}:{self.end} falls outside the file ({len(contents)} characters)",
                path=self.path,
                anchor=self.anchor,
            )
        return contents[: self.start] + self.text + contents[self.end :]


def _iter_lines(contents: str) -> Iterator[tuple[int, int, int]]:
    start = 0
    number = 1
    while start < len(contents):
        newline = contents.find("\n", start)
        end = len(contents) if newline == -1 else newline + 1
        yield number, start, end
        start = end
        number += 1


def _anchor_pattern(marker: str, comment_prefix: str | None) -> re.Pattern[str]:
    prefix = re.escape(comment_prefix) if comment_prefix else r"\S+?"
    return re.compile(
        rf"[ \t]*{prefix}[ \t]*{re.escape(marker)}"
        r"(?P<name>[A-Za-z0-9_\-]+)(?P<end>:end)?"
        r"(?:[ \t]+(?P<tag>(?!-->|\*/)\S+))?"
        r"(?:[ \t]*(?:-->|\*/))?[ \t]*"
    )


def find_anchors(
    contents: str,
    *,
    marker: str = ANCHOR_MARKER,
    comment_prefix: str | None = None,
) -> list[AnchorLine]:
    """Return every sentinel line in ``contents`` in file order.

    When ``comment_prefix`` is given only lines commented with that prefix
    qualify; otherwise any non-blank prefix is accepted.
    """

    pattern = _anchor_pattern(marker, comment_prefix)
    anchors: list[AnchorLine] = []
    for number, start, end in _iter_lines(contents):
        line = contents[start:end]
        body = line.rstrip("\r\n")
        match = pattern.fullmatch(body)
        if match is None:
            continue
        anchors.append(
            AnchorLine(
                name=match.group("name"),
                line_number=number,
                start=start,
                end=end,
                eol=line[len(body) :],
                is_end=match.group("end") is not None,
                tag=match.group("tag"),
            )
        )
    return anchors


def _detect_eol(contents: str) -> str:
    return "\r\n" if "\r\n" in contents else "\n"


def _normalize_block(text: str, eol: str) -> str:
    if not text:
        return ""
    if eol == "\r\n":
        text = re.sub(r"(?<!\r)\n", "\r\n", text)
    if not text.endswith("\n"):
        text += eol
    return text


def _skip_pattern(pattern: str, path: Path | None) -> re.Pattern[str]:
    try:
        return re.compile(pattern, re.MULTILINE)
    except re.error as exc:
        raise TemplateError(f"invalid skip_if pattern `{pattern}`: {exc}", path=path) from None


def _select_anchor(
    starts: list[AnchorLine],
    anchor_name: str,
    index: int | None,
    path: Path | None,
    marker: str,
) -> AnchorLine:
    label = f"{marker}{anchor_name}"
    if not starts:
        raise AnchorNotFound(f"anchor `{label}` not found", path=path, anchor=anchor_name)
    if index is None:
        if len(starts) > 1:
            lines = ", ".join(str(item.line_number) for item in starts)
            raise AmbiguousAnchor(
                f"anchor `{label}` appears {len(starts)} times (lines {lines}); choose one with an index",
                path=path,
                anchor=anchor_name,
            )
        return starts[0]
    if not 0 <= index < len(starts):
        raise AnchorNotFound(
            f"anchor `{label}` index {index} is out of range ({len(starts)} found)",
            path=path,
            anchor=anchor_name,
        )
    return starts[index]


def plan(
    contents: str,
    anchor_name: str,
    placement: Placement | str,
    insert_text: str,
    *,
    path: str | Path | None = None,
    index: int | None = None,
    comment_prefix: str | None = None,
    marker: str = ANCHOR_MARKER,
    skip_if: str | None = None,
) -> EditPlan:
    """Plan the insertion of ``insert_text`` at ``anchor_name`` in ``contents``.

    Parameters
    ----------
    contents:
        Current text of the target file.
    anchor_name:
        Name following the marker, e.g. ``"routes"`` for
        ``// loco:generator:routes``.
    placement:
        :attr:`Placement.AFTER` / :attr:`Placement.BEFORE` insert next to the
        anchor line; :attr:`Placement.REPLACE_BLOCK` replaces everything
        between the anchor and its ``:end`` marker.
    insert_text:
        Text to insert. It is terminated with the anchor's line ending if it
        does not end with a newline, and converted to CRLF in CRLF files.
    index:
        Which occurrence to use when the anchor appears more than once.
    skip_if:
        Regular expression searched in the whole of ``contents`` (multiline
        mode). A match means the snippet was injected by an earlier run, even
        if other snippets have been placed next to the anchor since.

    Raises :class:`AnchorNotFound`, :class:`AmbiguousAnchor` or
    :class:`MalformedBlock`. When ``insert_text`` already sits at the target
    location, or ``skip_if`` matches, the returned plan is a no-op whose
    ``skip_reason`` is ``"already present"``.
    """

    placement = Placement(placement)
    target = Path(path) if path is not None else None
    anchors = [
        item
        for item in find_anchors(contents, marker=marker, comment_prefix=comment_prefix)
        if item.name == anchor_name
    ]
    anchor = _select_anchor(
        [item for item in anchors if not item.is_end], anchor_name, index, target, marker
    )

    LOGGER.debug(
        "planning %s at anchor %s (line %s) in %s",
        placement.value,
        anchor_name,
        anchor.line_number,
        target or "<text>",
    )

    eol = anchor.eol or _detect_eol(contents)
    block = _normalize_block(insert_text, eol)
    digest = content_digest(contents)

    def build(start: int, end: int, text: str, skip_reason: str | None = None) -> EditPlan:
        return EditPlan(
            path=target,
            anchor=anchor_name,
            placement=placement,
            start=start,
            end=end,
            text=text,
            source_digest=digest,
            skip_reason=skip_reason,
        )

    if placement is Placement.REPLACE_BLOCK:
        following = [item for item in anchors if item.start >= anchor.end]
        if not following or not following[0].is_end:
            raise MalformedBlock(
                f"block `{marker}{anchor_name}` opened on line {anchor.line_number} has no "
                f"matching `{marker}{anchor_name}:end` marker",
                path=target,
                anchor=anchor_name,
            )
        closing = following[0]
        if skip_if is not None and _skip_pattern(skip_if, target).search(contents):
            return build(anchor.end, closing.start, contents[anchor.end : closing.start], ALREADY_PRESENT)
        if contents[anchor.end : closing.start] == block:
            return build(anchor.end, closing.start, block, ALREADY_PRESENT)
        return build(anchor.end, closing.start, block)

    if not block:
        return build(anchor.end, anchor.end, "", NOTHING_TO_INSERT)
    if skip_if is not None and _skip_pattern(skip_if, target).search(contents):
        return build(anchor.end, anchor.end, "", ALREADY_PRESENT)

    if placement is Placement.BEFORE:
        if contents[: anchor.start].endswith(block):
            return build(anchor.start, anchor.start, block, ALREADY_PRESENT)
        return build(anchor.start, anchor.start, block)

    if not anchor.eol:
        # The anchor is the final line and has no terminator of its own.
        return build(anchor.end, anchor.end, eol + block)
    if contents.startswith(block, anchor.end):
        return build(anchor.end, anchor.end, block, ALREADY_PRESENT)
    return build(anchor.end, anchor.end, block)
