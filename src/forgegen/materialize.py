"""Write generated content to disk, or describe what would be written."""

from __future__ import annotations

import difflib
import logging
import os
import stat
import tempfile
from pathlib import Path

from .errors import AlreadyExists, IOFailure, TargetNotFound
from .injection import ALREADY_PRESENT, EditPlan
from .report import ExecutionResult, Outcome

__all__ = ["FileMaterializer", "unified_diff"]


LOGGER = logging.getLogger(__name__)


def _diff_lines(text: str) -> list[str]:
    lines = text.splitlines(keepends=True)
    if lines and not lines[-1].endswith("\n"):
        lines[-1] += "\n\\ No newline at end of file\n"
    return lines


def unified_diff(path: str, old: str | None, new: str) -> str:
    """Unified diff between ``old`` and ``new``; ``old=None`` means a new file."""

    return "".join(
        difflib.unified_diff(
            _diff_lines(old or ""),
            _diff_lines(new),
            fromfile="/dev/null" if old is None else f"a/{path}",
            tofile=f"b/{path}",
        )
    )


class FileMaterializer:
    """Apply creates and edit plans to files below ``root``.

    Every write replaces the target atomically: the new content goes to a
    temporary file in the same directory which is then renamed over the
    target, so a file holds either its old or its new content. In dry-run
    mode nothing touches the disk; staged content is kept in memory so later
    jobs of the same invocation observe earlier ones.
    """

    def __init__(self, root: str | Path = ".", *, encoding: str = "utf-8") -> None:
        self.root = Path(root).expanduser().resolve()
        self.encoding = encoding
        self._staged: dict[Path, str] = {}

    def resolve(self, path: str | Path) -> Path:
        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = self.root / candidate
        return candidate

    def relative(self, path: str | Path) -> str:
        target = self.resolve(path)
        try:
            return target.relative_to(self.root).as_posix()
        except ValueError:
            return str(target)

    def read(self, path: str | Path) -> str | None:
        """Current content of ``path`` (staged content first), ``None`` if missing."""

        target = self.resolve(path)
        if target in self._staged:
            return self._staged[target]
        try:
            with open(target, encoding=self.encoding, newline="") as handle:
                return handle.read()
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise IOFailure(f"cannot read file: {exc}", path=self.relative(target)) from exc
        except UnicodeDecodeError as exc:
            raise IOFailure(
                f"cannot read file as {self.encoding}: {exc.reason} at byte {exc.start}",
                path=self.relative(target),
            ) from exc

    def create(
        self,
        path: str | Path,
        content: str,
        *,
        overwrite: bool = False,
        dry_run: bool = False,
    ) -> ExecutionResult:
        """Create ``path`` with ``content``.

        Raises :class:`AlreadyExists` when the file exists with different
        content and ``overwrite`` is false. Identical content is reported as
        skipped.
        """

        target = self.resolve(path)
        relative = self.relative(target)
        current = self.read(target)

        if current is not None:
            if current == content:
                return ExecutionResult(
                    path=relative, outcome=Outcome.SKIPPED, action="create", reason=ALREADY_PRESENT
                )
            if not overwrite:
                raise AlreadyExists("file already exists; pass overwrite to replace it", path=relative)

        action = "create" if current is None else "overwrite"
        if dry_run:
            self._staged[target] = content
            return ExecutionResult(
                path=relative,
                outcome=Outcome.WOULD_WRITE,
                action=action,
                diff=unified_diff(relative, current, content),
            )

        self._write(target, content)
        LOGGER.info("%s %s", action, relative)
        return ExecutionResult(path=relative, outcome=Outcome.WRITTEN, action=action)

    def apply_plan(self, plan: EditPlan, *, dry_run: bool = False) -> ExecutionResult:
        """Apply ``plan`` to its target file as a single all-or-nothing write."""

        if plan.path is None:
            raise TargetNotFound("edit plan has no target path", anchor=plan.anchor)

        target = self.resolve(plan.path)
        relative = self.relative(target)
        current = self.read(target)
        if current is None:
            raise TargetNotFound("cannot inject into a missing file", path=relative, anchor=plan.anchor)

        if plan.is_noop:
            return ExecutionResult(
                path=relative, outcome=Outcome.SKIPPED, action="inject", reason=plan.skip_reason
            )

        if not plan.matches(current):
            raise IOFailure(
                "file changed after the edit was planned", path=relative, anchor=plan.anchor
            )

        updated = plan.apply(current)
        if dry_run:
            self._staged[target] = updated
            return ExecutionResult(
                path=relative,
                outcome=Outcome.WOULD_WRITE,
                action="inject",
                diff=unified_diff(relative, current, updated),
            )

        self._write(target, updated)
        LOGGER.info("inject %s at %s", relative, plan.anchor)
        return ExecutionResult(path=relative, outcome=Outcome.WRITTEN, action="inject")

    def _write(self, target: Path, content: str) -> None:
        temp_path: Path | None = None
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            mode = stat.S_IMODE(target.stat().st_mode) if target.exists() else None
            with tempfile.NamedTemporaryFile(
                "w",
                encoding=self.encoding,
                newline="",
                dir=target.parent,
                prefix=f".{target.name}.",
                suffix=".tmp",
                delete=False,
            ) as handle:
                temp_path = Path(handle.name)
                handle.write(content)
                handle.flush()
                os.fsync(handle.fileno())
            if mode is not None:
                os.chmod(temp_path, mode)
            os.replace(temp_path, target)
        except OSError as exc:
            if temp_path is not None:
                temp_path.unlink(missing_ok=True)
            raise IOFailure(f"cannot write file: {exc}", path=self.relative(target)) from exc
