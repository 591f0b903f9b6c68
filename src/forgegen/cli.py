"""Command line interface for the forgegen generators."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Iterable, Sequence

from .builtins import builtin_catalog
from .catalog import GeneratorCatalog
from .config import GeneratorConfig
from .errors import GeneratorError
from .scaffold import Scaffolder
from .template import TemplateRenderer

LOGGER = logging.getLogger(__name__)


def _parse_key_value_pairs(pairs: Iterable[str]) -> dict[str, str]:
    context: dict[str, str] = {}
    for pair in pairs:
        if "=" not in pair:
            raise argparse.ArgumentTypeError(
                f"invalid key/value pair '{pair}'. Expected KEY=VALUE syntax."
            )
        key, value = pair.split("=", 1)
        key = key.strip()
        if not key:
            raise argparse.ArgumentTypeError("keys must not be empty")
        context[key] = value
    return context


def _load_catalog(templates: Path | None) -> GeneratorCatalog:
    catalog = builtin_catalog()
    if templates is not None:
        catalog = catalog.merged(GeneratorCatalog.from_directory(templates))
    return catalog


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("-v", "--verbose", action="store_true", help="Log every step of the run")

    parser = argparse.ArgumentParser(description="Generate and inject application code from templates")
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate_parser = subparsers.add_parser(
        "generate", parents=[common], help="run a generator against an application"
    )
    generate_parser.add_argument("generator", help="Generator name, e.g. model or scaffold")
    generate_parser.add_argument("name", help="Name of the entity to generate")
    generate_parser.add_argument(
        "fields",
        nargs="*",
        metavar="FIELD:TYPE",
        help="Fields such as title:string! or author:references",
    )
    generate_parser.add_argument(
        "-r",
        "--root",
        type=Path,
        default=Path.cwd(),
        help="Application root directory",
    )
    generate_parser.add_argument(
        "-n",
        "--dry-run",
        action="store_true",
        help="Print a diff of the changes instead of writing them",
    )
    generate_parser.add_argument(
        "-f",
        "--force",
        action="store_true",
        help="Overwrite existing files instead of failing",
    )
    generate_parser.add_argument(
        "-o",
        "--option",
        metavar="KEY=VALUE",
        action="append",
        default=[],
        help="Extra values exposed to the templates under 'options'",
    )
    generate_parser.add_argument(
        "--feature",
        action="append",
        default=[],
        help="Enable a feature flag visible to the templates",
    )
    generate_parser.add_argument("--templates", type=Path, help="Directory with custom generators")

    list_parser = subparsers.add_parser("list", parents=[common], help="list the available generators")
    list_parser.add_argument("--templates", type=Path, help="Directory with custom generators")

    render_parser = subparsers.add_parser(
        "render", parents=[common], help="render a template file with moustache style placeholders"
    )
    render_parser.add_argument("template", type=Path, help="Path to the template file")
    render_parser.add_argument(
        "-c",
        "--context",
        metavar="KEY=VALUE",
        action="append",
        default=[],
        help="Values exposed to the template renderer",
    )
    render_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        help="Write the rendered template to this path instead of stdout",
    )
    render_parser.add_argument(
        "--missing",
        choices=["keep", "empty", "error"],
        default="keep",
        help="Behaviour when a placeholder cannot be resolved",
    )

    return parser


def _handle_generate(args: argparse.Namespace) -> int:
    config = GeneratorConfig.from_root(
        args.root,
        overwrite=True if args.force else None,
        dry_run=args.dry_run,
        features=args.feature,
        templates_dir=args.templates,
    )
    scaffolder = Scaffolder(_load_catalog(config.templates_dir), config)
    report = scaffolder.run(
        args.generator,
        args.name,
        args.fields,
        _parse_key_value_pairs(args.option),
    )

    if report.dry_run:
        sys.stdout.write(report.diff())
    for line in report.summary_lines():
        print(line)
    return 0 if report.ok else 1


def _handle_list(args: argparse.Namespace) -> int:
    catalog = _load_catalog(args.templates)
    for name in sorted(catalog):
        jobs = catalog[name]
        print(f"{name:<12} {', '.join(job.template_id for job in jobs)}")
    return 0


def _handle_render(args: argparse.Namespace) -> int:
    renderer = TemplateRenderer()
    context = _parse_key_value_pairs(args.context)
    rendered = renderer.render_file(args.template, context, missing=args.missing)
    if args.output:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        args.output.write_text(rendered, encoding="utf-8")
    else:
        sys.stdout.write(rendered)
        if not rendered.endswith("\n"):
            sys.stdout.write("\n")
    return 0


_HANDLERS = {
    "generate": _handle_generate,
    "list": _handle_list,
    "render": _handle_render,
}


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    handler = _HANDLERS.get(args.command)
    if handler is None:
        parser.error("no command provided")
        return 2

    try:
        return handler(args)
    except argparse.ArgumentTypeError as exc:
        parser.error(str(exc))
        return 2
    except (GeneratorError, FileNotFoundError, ValueError) as exc:
        LOGGER.debug("%s failed", args.command, exc_info=True)
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
