"""Template driven code generation for application codebases.

The package turns a single user supplied name into every lexical form a
template needs, renders Jinja2 templates, and either creates new
files or injects snippets next to ``loco:generator:<name>`` anchor comments in
existing files. Repeated runs are idempotent and a dry run reports unified
diffs instead of writing.
"""

from __future__ import annotations

from .builtins import builtin_catalog
from .catalog import GeneratorCatalog, JobMode, TemplateJob, parse_template
from .config import GeneratorConfig
from .context import RenderContext, build_context
from .errors import (
    AlreadyExists,
    AmbiguousAnchor,
    AnchorNotFound,
    DuplicateField,
    GeneratorError,
    InvalidField,
    InvalidIdentifier,
    IOFailure,
    MalformedBlock,
    PlanConflict,
    TargetNotFound,
    TemplateError,
    UnknownGenerator,
)
from .fields import FieldSpec, parse_fields
from .injection import EditPlan, Placement, find_anchors, plan
from .materialize import FileMaterializer
from .naming import Identifier, VariantKind, pluralize, resolve, singularize, slugify
from .report import ExecutionResult, InvocationReport, Outcome
from .scaffold import Scaffolder
from .template import TemplateRenderer

__all__ = [
    "AlreadyExists",
    "AmbiguousAnchor",
    "AnchorNotFound",
    "DuplicateField",
    "EditPlan",
    "ExecutionResult",
    "FieldSpec",
    "FileMaterializer",
    "GeneratorCatalog",
    "GeneratorConfig",
    "GeneratorError",
    "IOFailure",
    "Identifier",
    "InvalidField",
    "InvalidIdentifier",
    "InvocationReport",
    "JobMode",
    "MalformedBlock",
    "Outcome",
    "Placement",
    "PlanConflict",
    "RenderContext",
    "Scaffolder",
    "TargetNotFound",
    "TemplateError",
    "TemplateJob",
    "TemplateRenderer",
    "UnknownGenerator",
    "VariantKind",
    "build_context",
    "builtin_catalog",
    "find_anchors",
    "parse_fields",
    "parse_template",
    "plan",
    "pluralize",
    "resolve",
    "singularize",
    "slugify",
]

__version__ = "0.1.0"
