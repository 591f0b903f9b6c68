"""Generators shipped with forgegen.

The templates target an application laid out as::

    app/
        models/__init__.py        # loco:generator:models
        controllers/__init__.py   # loco:generator:controllers
        routes.py                 # loco:generator:routes
    migrations/__init__.py        # loco:generator:migrations

Each entry of ``_TEMPLATES`` uses the same front matter format as template
files on disk, see :mod:`forgegen.catalog`.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

from .catalog import GeneratorCatalog, TemplateJob, parse_template

__all__ = ["BUILTIN_GENERATORS", "builtin_catalog"]


_TEMPLATES: Mapping[str, str] = MappingProxyType(
    {
        "model/model.t": '''---
to: app/models/{{ snake_case }}.py
message: "Model `{{ pascal_case }}` added, table `{{ plural_snake_case }}`"
---
from {{ options.pkg_name }}.db import Model, column, references


class {{ pascal_case }}(Model):
    __tablename__ = "{{ plural_snake_case }}"

{% for field in columns %}
    {{ field.column }}: {{ field.type }} = column("{{ field.column_type }}")
{% endfor %}
{% for field in references %}
    {{ field.column }} = references("{{ field.table }}"{% if field.nullable %}, nullable=True{% endif %})
{% endfor %}
''',
        "model/register.t": '''---
to: app/models/__init__.py
inject:
  anchor: models
  placement: before
  skip_if: '^from \\.{{ snake_case }} import {{ pascal_case }}$'
---
from .{{ snake_case }} import {{ pascal_case }}
''',
        "migration/migration.t": '''---
to: migrations/m{{ ts_compact }}_create_{{ plural_snake_case }}.py
message: "Migration for `{{ plural_snake_case }}` added"
---
from {{ options.pkg_name }}.db import schema

TABLE = "{{ plural_snake_case }}"


def up(manager):
    manager.create_table(
        TABLE,
{% for field in columns %}
        ("{{ field.column }}", "{{ field.column_type }}"),
{% endfor %}
{% for field in references %}
        ("{{ field.column }}", "{{ field.column_type }}", "{{ field.table }}"),
{% endfor %}
    )


def down(manager):
    manager.drop_table(TABLE)
''',
        "migration/register.t": '''---
to: migrations/__init__.py
inject:
  anchor: migrations
  placement: before
---
    "m{{ ts_compact }}_create_{{ plural_snake_case }}",
''',
        "controller/controller.t": '''---
to: app/controllers/{{ snake_case }}.py
message: "Controller for `/{{ plural_kebab_case }}` added"
---
from {{ options.pkg_name }}.app.models import {{ pascal_case }}
from {{ options.pkg_name }}.web import Router
{% if "auth" in features %}
from {{ options.pkg_name }}.auth import require_user
{% endif %}

router = Router(prefix="/{{ plural_kebab_case }}")


@router.get("/")
{% if "auth" in features %}
@require_user
{% endif %}
def list_{{ plural_snake_case }}(request):
    return {{ pascal_case }}.all()


@router.get("/{id}")
{% if "auth" in features %}
@require_user
{% endif %}
def get_{{ snake_case }}(request, id):
    return {{ pascal_case }}.get(id)
''',
        "controller/register.t": '''---
to: app/controllers/__init__.py
inject:
  anchor: controllers
  placement: before
  skip_if: '^from \\. import {{ snake_case }}$'
---
from . import {{ snake_case }}
''',
        "controller/routes.t": '''---
to: app/routes.py
inject:
  anchor: routes
  placement: after
  skip_if: 'app\\.mount\\("{{ plural_snake_case }}",'
---
    app.mount("{{ plural_snake_case }}", controllers.{{ snake_case }}.router)
''',
    }
)


def _jobs(*template_ids: str) -> tuple[TemplateJob, ...]:
    return tuple(parse_template(_TEMPLATES[template_id], template_id) for template_id in template_ids)


def _builtin_generators() -> dict[str, tuple[TemplateJob, ...]]:
    model = _jobs("model/model.t", "model/register.t")
    migration = _jobs("migration/migration.t", "migration/register.t")
    controller = _jobs("controller/controller.t", "controller/register.t", "controller/routes.t")
    return {
        "model": model,
        "migration": migration,
        "controller": controller,
        "scaffold": model + migration + controller,
    }


BUILTIN_GENERATORS = tuple(sorted(_builtin_generators()))


def builtin_catalog() -> GeneratorCatalog:
    """Return a fresh catalog holding the built-in generators."""

    return GeneratorCatalog(_builtin_generators())
