"""Run a generator: render every job, validate the whole plan, then apply it."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Mapping, Sequence, Union

from .catalog import GeneratorCatalog, JobMode, TemplateJob
from .config import GeneratorConfig
from .context import RenderContext, build_context
from .errors import AlreadyExists, GeneratorError, PlanConflict, TargetNotFound
from .fields import FieldSpec, parse_fields
from .injection import ALREADY_PRESENT, EditPlan, plan
from .materialize import FileMaterializer
from .naming import resolve
from .report import ExecutionResult, InvocationReport, Outcome
from .template import TemplateRenderer

__all__ = ["JobRun", "JobState", "Scaffolder"]


LOGGER = logging.getLogger(__name__)

ABORTED = "aborted: an earlier write to this file failed"
EXISTS = "exists"


class JobState(str, Enum):
    PENDING = "pending"
    RENDERED = "rendered"
    PLANNED = "planned"
    APPLIED = "applied"
    SKIPPED = "skipped"
    FAILED = "failed"


_TRANSITIONS = MappingProxyType(
    {
        JobState.PENDING: frozenset({JobState.RENDERED, JobState.FAILED}),
        JobState.RENDERED: frozenset({JobState.PLANNED, JobState.APPLIED, JobState.SKIPPED, JobState.FAILED}),
        JobState.PLANNED: frozenset({JobState.APPLIED, JobState.SKIPPED, JobState.FAILED}),
        JobState.APPLIED: frozenset(),
        JobState.SKIPPED: frozenset(),
        JobState.FAILED: frozenset(),
    }
)


@dataclass(slots=True)
class JobRun:
    """Execution state of one :class:`TemplateJob` within an invocation."""

    job: TemplateJob
    state: JobState = JobState.PENDING
    path: Path | None = None
    relative: str = ""
    content: str = ""
    message: str | None = None
    skip_if: str | None = None
    plan: EditPlan | None = None
    action: str | None = None
    skip_reason: str | None = None

    def advance(self, state: JobState) -> None:
        if state not in _TRANSITIONS[self.state]:
            raise RuntimeError(
                f"job {self.job.template_id} cannot move from {self.state.value} to {state.value}"
            )
        LOGGER.debug("job %s: %s -> %s", self.job.template_id, self.state.value, state.value)
        self.state = state

    @property
    def target(self) -> Path:
        if self.path is None:
            raise RuntimeError(f"job {self.job.template_id} has no destination before it is rendered")
        return self.path


@dataclass(slots=True)
class Scaffolder:
    """Execute generators from ``catalog`` against the app described by ``config``."""

    catalog: GeneratorCatalog
    config: GeneratorConfig
    renderer: TemplateRenderer

    def __init__(
        self,
        catalog: GeneratorCatalog,
        config: GeneratorConfig,
        renderer: TemplateRenderer | None = None,
    ) -> None:
        self.catalog = catalog
        self.config = config
        self.renderer = renderer or TemplateRenderer()

    def run(
        self,
        generator: str,
        name: str,
        fields: Iterable[Union[str, FieldSpec]] = (),
        options: Mapping[str, str] | None = None,
        *,
        timestamp: datetime | None = None,
    ) -> InvocationReport:
        """Run the generator called ``generator`` for the identifier ``name``."""

        return self.execute(
            generator,
            self.catalog.jobs(generator),
            name,
            fields,
            options,
            timestamp=timestamp,
        )

    def execute(
        self,
        generator: str,
        jobs: Sequence[TemplateJob],
        name: str,
        fields: Iterable[Union[str, FieldSpec]] = (),
        options: Mapping[str, str] | None = None,
        *,
        timestamp: datetime | None = None,
    ) -> InvocationReport:
        """Execute ``jobs`` in order.

        Rendering and planning errors for any job abort the invocation before
        a single file is touched. Failures while writing are recorded in the
        report; later jobs that target a file whose write failed are aborted.
        """

        identifier = resolve(name)
        specs = parse_fields(fields)
        context = build_context(
            identifier,
            specs,
            {**self.config.options(), **(options or {})},
            timestamp=timestamp,
            features=self.config.features,
        )
        LOGGER.info("running generator %s for %s (%d jobs)", generator, identifier.raw, len(jobs))

        materializer = FileMaterializer(self.config.root)
        runs = [JobRun(job) for job in jobs]
        for run in runs:
            self._render(run, context, materializer)
        self._validate(runs, materializer)

        return InvocationReport(
            generator=generator,
            dry_run=self.config.dry_run,
            results=self._apply(runs, materializer),
        )

    def _render(self, run: JobRun, context: RenderContext, materializer: FileMaterializer) -> None:
        job = run.job
        try:
            destination = self.renderer.render(job.destination, context, name=f"{job.template_id}#to").strip()
            run.content = self.renderer.render(job.template, context, name=job.template_id)
            if job.message:
                run.message = self.renderer.render(job.message, context, name=f"{job.template_id}#message")
            if job.skip_if:
                run.skip_if = self.renderer.render(job.skip_if, context, name=f"{job.template_id}#skip_if")
        except GeneratorError as exc:
            raise exc.with_context(template_id=job.template_id)

        if not destination:
            raise PlanConflict("destination renders to an empty path", template_id=job.template_id)

        path = materializer.resolve(destination).resolve()
        if not path.is_relative_to(materializer.root):
            raise PlanConflict(
                "destination escapes the application root",
                path=destination,
                template_id=job.template_id,
            )

        run.path = path
        run.relative = materializer.relative(path)
        run.advance(JobState.RENDERED)

    def _validate(self, runs: Sequence[JobRun], materializer: FileMaterializer) -> None:
        creators: dict[Path, int] = {}
        for index, run in enumerate(runs):
            if run.job.mode is not JobMode.CREATE:
                continue
            if run.target in creators:
                first = runs[creators[run.target]].job.template_id
                raise PlanConflict(
                    f"jobs `{first}` and `{run.job.template_id}` both create this file",
                    path=run.relative,
                    template_id=run.job.template_id,
                )
            creators[run.target] = index

        snapshot: dict[Path, str | None] = {}
        for index, run in enumerate(runs):
            path = run.target
            try:
                current = snapshot[path] if path in snapshot else materializer.read(path)
                if run.job.mode is JobMode.CREATE:
                    updated = self._validate_create(run, current)
                else:
                    updated = self._validate_inject(run, index, current, creators, runs)
            except GeneratorError as exc:
                raise exc.with_context(path=run.relative, template_id=run.job.template_id)
            snapshot[path] = updated

    def _validate_create(self, run: JobRun, current: str | None) -> str | None:
        if current is None:
            run.action = "create"
            return run.content
        if current == run.content:
            self._skip(run, ALREADY_PRESENT)
            return current
        if run.job.skip_exists:
            self._skip(run, EXISTS)
            return current
        if not self.config.overwrite:
            raise AlreadyExists("file already exists; pass overwrite to replace it")
        run.action = "overwrite"
        return run.content

    def _validate_inject(
        self,
        run: JobRun,
        index: int,
        current: str | None,
        creators: Mapping[Path, int],
        runs: Sequence[JobRun],
    ) -> str:
        job = run.job
        if job.anchor is None or job.placement is None:
            raise PlanConflict("inject jobs require an anchor and a placement")
        if current is None:
            creator = creators.get(run.target)
            if creator is not None and creator > index:
                raise PlanConflict(
                    f"injects into a file that job `{runs[creator].job.template_id}` only creates later",
                    anchor=job.anchor,
                )
            raise TargetNotFound("cannot inject into a missing file", anchor=job.anchor)

        run.plan = plan(
            current,
            job.anchor,
            job.placement,
            run.content,
            path=run.relative,
            index=job.anchor_index,
            comment_prefix=job.comment_prefix or self.config.comment_prefix_for(run.relative),
            marker=self.config.anchor_marker,
            skip_if=run.skip_if,
        )
        run.action = "inject"
        run.advance(JobState.PLANNED)
        return run.plan.apply(current)

    def _skip(self, run: JobRun, reason: str) -> None:
        run.skip_reason = reason
        run.advance(JobState.SKIPPED)

    def _apply(self, runs: Sequence[JobRun], materializer: FileMaterializer) -> list[ExecutionResult]:
        failed_paths: set[Path] = set()
        results: list[ExecutionResult] = []

        for run in runs:
            job = run.job
            if run.state is JobState.SKIPPED:
                LOGGER.info("skip %s (%s)", run.relative, run.skip_reason)
                results.append(
                    ExecutionResult(
                        path=run.relative,
                        outcome=Outcome.SKIPPED,
                        action="create",
                        reason=run.skip_reason,
                        template_id=job.template_id,
                    )
                )
                continue

            if run.path in failed_paths:
                run.advance(JobState.FAILED)
                LOGGER.error("job %s aborted: %s", job.template_id, ABORTED)
                results.append(self._failure(run, ABORTED))
                continue

            try:
                if job.mode is JobMode.CREATE:
                    result = materializer.create(
                        run.target,
                        run.content,
                        overwrite=run.action == "overwrite",
                        dry_run=self.config.dry_run,
                    )
                elif run.plan is None:
                    raise RuntimeError(f"job {job.template_id} reached apply without an edit plan")
                else:
                    result = materializer.apply_plan(run.plan, dry_run=self.config.dry_run)
            except GeneratorError as exc:
                exc.with_context(path=run.relative, template_id=job.template_id)
                LOGGER.error("job %s failed: %s", job.template_id, exc)
                failed_paths.add(run.target)
                run.advance(JobState.FAILED)
                results.append(self._failure(run, exc.message))
                continue

            if result.outcome is Outcome.SKIPPED:
                run.advance(JobState.SKIPPED)
                results.append(result.model_copy(update={"template_id": job.template_id}))
            else:
                run.advance(JobState.APPLIED)
                results.append(
                    result.model_copy(update={"template_id": job.template_id, "message": run.message})
                )

        return results

    @staticmethod
    def _failure(run: JobRun, reason: str) -> ExecutionResult:
        return ExecutionResult(
            path=run.relative,
            outcome=Outcome.FAILED,
            action=run.action,
            reason=reason,
            template_id=run.job.template_id,
        )
