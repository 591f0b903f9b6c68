"""Per-job results and the invocation level report."""

from __future__ import annotations

from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field

__all__ = ["ExecutionResult", "InvocationReport", "Outcome"]


class Outcome(str, Enum):
    """Terminal outcome of a single job."""

    WRITTEN = "written"
    SKIPPED = "skipped"
    WOULD_WRITE = "would_write"
    FAILED = "failed"


class ExecutionResult(BaseModel):
    """What happened to one job's destination file."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    path: str = Field(..., description="Destination path relative to the application root.")
    outcome: Outcome = Field(..., description="Terminal outcome of the job.")
    action: str | None = Field(None, description="'create', 'overwrite' or 'inject'.")
    reason: str | None = Field(None, description="Why the job was skipped or failed.")
    diff: str | None = Field(None, description="Unified diff for dry-run results.")
    template_id: str | None = Field(None, description="Template that produced the content.")
    message: str | None = Field(None, description="Rendered message attached to the template.")

    def summary(self) -> str:
        """One human readable line describing the result."""

        label = self.outcome.value.replace("_", " ")
        text = f"{label:>11}  {self.path}"
        if self.action and self.outcome in {Outcome.WRITTEN, Outcome.WOULD_WRITE}:
            text = f"{text} ({self.action})"
        if self.reason:
            text = f"{text} ({self.reason})"
        return text


class InvocationReport(BaseModel):
    """Ordered results for every job of one generator invocation."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    generator: str = Field(..., description="Name of the generator that ran.")
    dry_run: bool = Field(False, description="Whether files were left untouched.")
    results: List[ExecutionResult] = Field(default_factory=list, description="One entry per job, in job order.")

    @property
    def ok(self) -> bool:
        return not self.failed

    @property
    def written(self) -> list[ExecutionResult]:
        return [result for result in self.results if result.outcome is Outcome.WRITTEN]

    @property
    def skipped(self) -> list[ExecutionResult]:
        return [result for result in self.results if result.outcome is Outcome.SKIPPED]

    @property
    def failed(self) -> list[ExecutionResult]:
        return [result for result in self.results if result.outcome is Outcome.FAILED]

    def diff(self) -> str:
        """Concatenated diffs of every would-be write."""

        return "".join(result.diff for result in self.results if result.diff)

    def summary_lines(self) -> list[str]:
        lines = [result.summary() for result in self.results]
        lines.extend(result.message for result in self.results if result.message)
        return lines
