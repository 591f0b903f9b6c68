from __future__ import annotations

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


@pytest.fixture
def fixed_timestamp() -> datetime:
    return datetime(2024, 3, 1, 12, 30, 45, tzinfo=timezone.utc)


@pytest.fixture
def app_root(tmp_path: Path) -> Path:
    """A minimal application with every anchor the built-in generators use."""

    root = tmp_path / "blog"
    (root / "app" / "models").mkdir(parents=True)
    (root / "app" / "controllers").mkdir(parents=True)
    (root / "migrations").mkdir(parents=True)
    (root / "pyproject.toml").write_text('[project]\nname = "blog"\n', encoding="utf-8")
    (root / "app" / "models" / "__init__.py").write_text(
        "# loco:generator:models\n", encoding="utf-8"
    )
    (root / "app" / "controllers" / "__init__.py").write_text(
        "# loco:generator:controllers\n", encoding="utf-8"
    )
    (root / "app" / "routes.py").write_text(
        "from . import controllers\n\n\ndef register(app):\n    # loco:generator:routes\n    return app\n",
        encoding="utf-8",
    )
    (root / "migrations" / "__init__.py").write_text(
        "MIGRATIONS = [\n    # loco:generator:migrations\n]\n", encoding="utf-8"
    )
    return root
