"""Configuration shared by the scaffolder and the command line interface."""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from .injection import ANCHOR_MARKER
from .naming import normalize_module_name

__all__ = ["DEFAULT_COMMENT_PREFIXES", "GeneratorConfig"]


LOGGER = logging.getLogger(__name__)

DEFAULT_COMMENT_PREFIXES: Mapping[str, str] = MappingProxyType(
    {
        ".py": "#",
        ".rb": "#",
        ".sh": "#",
        ".toml": "#",
        ".yaml": "#",
        ".yml": "#",
        ".rs": "//",
        ".go": "//",
        ".js": "//",
        ".jsx": "//",
        ".ts": "//",
        ".tsx": "//",
        ".java": "//",
        ".c": "//",
        ".h": "//",
        ".css": "/*",
        ".sql": "--",
        ".html": "<!--",
        ".md": "<!--",
    }
)

_SETTINGS_KEYS = {"pkg_name", "overwrite", "features", "templates", "anchor_marker", "comment_prefixes"}


def _load_settings(root: Path) -> tuple[dict[str, Any], str | None]:
    """Return the ``[tool.forgegen]`` table and the project name of ``root``."""

    pyproject = root / "pyproject.toml"
    if not pyproject.is_file():
        return {}, None

    try:
        with pyproject.open("rb") as handle:
            data = tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"invalid {pyproject}: {exc}") from exc

    settings = dict(data.get("tool", {}).get("forgegen", {}))
    unknown = sorted(set(settings) - _SETTINGS_KEYS)
    if unknown:
        LOGGER.warning("ignoring unknown [tool.forgegen] keys in %s: %s", pyproject, ", ".join(unknown))
    project_name = data.get("project", {}).get("name")
    return settings, project_name


@dataclass(slots=True)
class GeneratorConfig:
    """Where and how generators write.

    Attributes
    ----------
    root:
        Application root; every destination path is relative to it.
    pkg_name:
        Python package name of the application, exposed to templates as
        ``options.pkg_name``.
    overwrite:
        Replace existing files targeted by create jobs instead of failing.
    dry_run:
        Report diffs instead of writing.
    features:
        Enabled feature flags, exposed to templates as ``features``.
    templates_dir:
        Optional directory of custom templates that override the built-ins.
    anchor_marker:
        Marker text that precedes anchor names in sentinel comments.
    comment_prefixes:
        File suffix to comment prefix used when matching anchor lines.
    """

    root: Path
    pkg_name: str
    overwrite: bool = False
    dry_run: bool = False
    features: frozenset[str] = frozenset()
    templates_dir: Path | None = None
    anchor_marker: str = ANCHOR_MARKER
    comment_prefixes: Mapping[str, str] = field(default_factory=lambda: dict(DEFAULT_COMMENT_PREFIXES))

    @classmethod
    def from_root(
        cls,
        root: str | Path = ".",
        *,
        pkg_name: str | None = None,
        overwrite: bool | None = None,
        dry_run: bool = False,
        features: Iterable[str] | None = None,
        templates_dir: str | Path | None = None,
    ) -> GeneratorConfig:
        """Build a config for the application at ``root``.

        Settings come from the optional ``[tool.forgegen]`` table of
        ``<root>/pyproject.toml``; explicit keyword arguments win. The package
        name falls back to the project name and then to the directory name.
        """

        root_path = Path(root).expanduser().resolve()
        settings, project_name = _load_settings(root_path)

        package = pkg_name or settings.get("pkg_name") or normalize_module_name(project_name or root_path.name)

        templates = templates_dir if templates_dir is not None else settings.get("templates")
        templates_path = None
        if templates is not None:
            templates_path = Path(templates).expanduser()
            if not templates_path.is_absolute():
                templates_path = root_path / templates_path

        prefixes = dict(DEFAULT_COMMENT_PREFIXES)
        prefixes.update(settings.get("comment_prefixes", {}))

        return cls(
            root=root_path,
            pkg_name=str(package),
            overwrite=bool(settings.get("overwrite", False) if overwrite is None else overwrite),
            dry_run=dry_run,
            features=frozenset(settings.get("features", ())) | frozenset(features or ()),
            templates_dir=templates_path,
            anchor_marker=str(settings.get("anchor_marker", ANCHOR_MARKER)),
            comment_prefixes=prefixes,
        )

    def comment_prefix_for(self, path: str | Path) -> str | None:
        """Comment prefix for anchors in ``path``, ``None`` to accept any."""

        return self.comment_prefixes.get(Path(path).suffix.lower())

    def options(self) -> dict[str, str]:
        """Default template options derived from the configuration."""

        return {"pkg_name": self.pkg_name}
