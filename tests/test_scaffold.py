from __future__ import annotations

from pathlib import Path

import pytest

from forgegen.builtins import builtin_catalog
from forgegen.catalog import GeneratorCatalog, TemplateJob
from forgegen.config import GeneratorConfig
from forgegen.errors import AlreadyExists, AnchorNotFound, IOFailure, PlanConflict, TemplateError, UnknownGenerator
from forgegen.materialize import FileMaterializer
from forgegen.report import Outcome
from forgegen.scaffold import JobRun, JobState, Scaffolder

EXPECTED_MODEL = (
    "from blog.db import Model, column, references\n"
    "\n"
    "\n"
    "class Post(Model):\n"
    '    __tablename__ = "posts"\n'
    "\n"
    '    title: string = column("string_null")\n'
    '    body: text = column("text_null")\n'
)


def _snapshot(root: Path) -> dict[str, bytes]:
    return {
        path.relative_to(root).as_posix(): path.read_bytes()
        for path in sorted(root.rglob("*"))
        if path.is_file()
    }


@pytest.fixture()
def scaffolder(app_root: Path) -> Scaffolder:
    return Scaffolder(builtin_catalog(), GeneratorConfig.from_root(app_root))


def test_scaffold_creates_and_injects(app_root: Path, scaffolder: Scaffolder, fixed_timestamp):
    report = scaffolder.run("scaffold", "post", ["title:string", "body:text"], timestamp=fixed_timestamp)

    assert report.ok
    assert [result.outcome for result in report.results] == [Outcome.WRITTEN] * 7
    assert [result.path for result in report.results] == [
        "app/models/post.py",
        "app/models/__init__.py",
        "migrations/m20240301_123045_create_posts.py",
        "migrations/__init__.py",
        "app/controllers/post.py",
        "app/controllers/__init__.py",
        "app/routes.py",
    ]

    assert (app_root / "app" / "models" / "post.py").read_text(encoding="utf-8") == EXPECTED_MODEL
    assert (app_root / "app" / "models" / "__init__.py").read_text(encoding="utf-8") == (
        "from .post import Post\n# loco:generator:models\n"
    )
    assert (app_root / "app" / "routes.py").read_text(encoding="utf-8") == (
        "from . import controllers\n"
        "\n"
        "\n"
        "def register(app):\n"
        "    # loco:generator:routes\n"
        '    app.mount("posts", controllers.post.router)\n'
        "    return app\n"
    )
    assert (app_root / "migrations" / "__init__.py").read_text(encoding="utf-8") == (
        'MIGRATIONS = [\n    "m20240301_123045_create_posts",\n    # loco:generator:migrations\n]\n'
    )

    migration = (app_root / "migrations" / "m20240301_123045_create_posts.py").read_text(encoding="utf-8")
    assert '        ("title", "string_null"),\n        ("body", "text_null"),\n' in migration

    controller = (app_root / "app" / "controllers" / "post.py").read_text(encoding="utf-8")
    assert 'router = Router(prefix="/posts")' in controller
    assert "require_user" not in controller

    assert "Model `Post` added, table `posts`" in report.summary_lines()


def test_second_run_changes_nothing(app_root: Path, scaffolder: Scaffolder, fixed_timestamp):
    scaffolder.run("scaffold", "post", ["title:string", "body:text"], timestamp=fixed_timestamp)
    before = _snapshot(app_root)

    report = scaffolder.run("scaffold", "post", ["title:string", "body:text"], timestamp=fixed_timestamp)

    assert _snapshot(app_root) == before
    assert report.ok
    assert all(result.outcome is Outcome.SKIPPED for result in report.results)
    assert {result.reason for result in report.results} == {"already present"}


def test_references_and_features(app_root: Path):
    config = GeneratorConfig.from_root(app_root, features=["auth"])
    Scaffolder(builtin_catalog(), config).run("model", "Comment", ["text:text!", "post:references"])
    Scaffolder(builtin_catalog(), config).run("controller", "Comment")

    model = (app_root / "app" / "models" / "comment.py").read_text(encoding="utf-8")
    assert '    text: text = column("text")\n' in model
    assert '    post_id = references("posts")\n' in model

    controller = (app_root / "app" / "controllers" / "comment.py").read_text(encoding="utf-8")
    assert "from blog.auth import require_user\n" in controller
    assert controller.count("@require_user\n") == 2


def test_dry_run_writes_nothing(app_root: Path, fixed_timestamp):
    before = _snapshot(app_root)
    config = GeneratorConfig.from_root(app_root, dry_run=True)

    report = Scaffolder(builtin_catalog(), config).run("scaffold", "post", ["title:string"], timestamp=fixed_timestamp)

    assert _snapshot(app_root) == before
    assert report.dry_run
    assert all(result.outcome is Outcome.WOULD_WRITE for result in report.results)
    diff = report.diff()
    assert "--- /dev/null\n+++ b/app/models/post.py\n" in diff
    assert '+    app.mount("posts", controllers.post.router)\n' in diff


def test_failed_validation_writes_nothing(app_root: Path, scaffolder: Scaffolder):
    (app_root / "app" / "routes.py").write_text("def register(app):\n    return app\n", encoding="utf-8")
    before = _snapshot(app_root)

    with pytest.raises(AnchorNotFound) as excinfo:
        scaffolder.run("scaffold", "post", ["title:string"])

    assert excinfo.value.template_id == "controller/routes.t"
    assert excinfo.value.path == "app/routes.py"
    assert _snapshot(app_root) == before


def test_existing_file_is_not_clobbered(app_root: Path, scaffolder: Scaffolder):
    model = app_root / "app" / "models" / "post.py"
    model.write_text("# hand written\n", encoding="utf-8")
    before = _snapshot(app_root)

    with pytest.raises(AlreadyExists) as excinfo:
        scaffolder.run("model", "post", ["title:string"])

    assert "path=app/models/post.py" in str(excinfo.value)
    assert _snapshot(app_root) == before


def test_overwrite_replaces_existing_file(app_root: Path):
    (app_root / "app" / "models" / "post.py").write_text("# hand written\n", encoding="utf-8")
    config = GeneratorConfig.from_root(app_root, overwrite=True)

    report = Scaffolder(builtin_catalog(), config).run("model", "post", ["title:string"])

    assert report.results[0].action == "overwrite"
    assert "class Post(Model)" in (app_root / "app" / "models" / "post.py").read_text(encoding="utf-8")


def _custom(app_root: Path, *jobs: TemplateJob) -> Scaffolder:
    return Scaffolder(GeneratorCatalog({"custom": jobs}), GeneratorConfig.from_root(app_root))


@pytest.mark.parametrize(
    "jobs",
    [
        (TemplateJob.create("a", "one\n", "out.txt"), TemplateJob.create("b", "two\n", "out.txt")),
        (
            TemplateJob.create("a", "one\n", "first.txt"),
            TemplateJob.inject("b", "two\n", "later.txt", "list"),
            TemplateJob.create("c", "# loco:generator:list\n", "later.txt"),
        ),
        (TemplateJob.create("a", "one\n", "../outside.txt"),),
    ],
)
def test_plan_conflicts_write_nothing(app_root: Path, jobs):
    before = _snapshot(app_root)
    with pytest.raises(PlanConflict):
        _custom(app_root, *jobs).run("custom", "post")
    assert _snapshot(app_root) == before
    assert not (app_root.parent / "outside.txt").exists()


def test_inject_into_file_created_earlier(app_root: Path):
    report = _custom(
        app_root,
        TemplateJob.create("list", "items = [\n    # loco:generator:items\n]\n", "lists/{{ snake_case }}.py"),
        TemplateJob.inject("item", '    "{{ plural }}",\n', "lists/{{ snake_case }}.py", "items", "before"),
    ).run("custom", "BlogPost")

    assert [result.outcome for result in report.results] == [Outcome.WRITTEN, Outcome.WRITTEN]
    assert (app_root / "lists" / "blog_post.py").read_text(encoding="utf-8") == (
        'items = [\n    "blog_posts",\n    # loco:generator:items\n]\n'
    )


def test_skip_exists(app_root: Path):
    (app_root / "README.md").write_text("mine\n", encoding="utf-8")
    job = TemplateJob(template_id="readme", template="generated\n", destination="README.md", skip_exists=True)

    report = _custom(app_root, job).run("custom", "post")

    assert report.results[0].outcome is Outcome.SKIPPED
    assert report.results[0].reason == "exists"
    assert (app_root / "README.md").read_text(encoding="utf-8") == "mine\n"


def test_write_failure_aborts_later_jobs_on_the_same_file(app_root: Path, monkeypatch: pytest.MonkeyPatch):
    original = FileMaterializer._write

    def flaky(self, target, content):
        if target.name == "a.txt":
            raise IOFailure("cannot write file: disk full")
        original(self, target, content)

    monkeypatch.setattr(FileMaterializer, "_write", flaky)
    report = _custom(
        app_root,
        TemplateJob.create("a", "# loco:generator:list\n", "a.txt"),
        TemplateJob.inject("a-item", "item\n", "a.txt", "list"),
        TemplateJob.create("b", "b\n", "b.txt"),
    ).run("custom", "post")

    assert not report.ok
    assert [result.outcome for result in report.results] == [Outcome.FAILED, Outcome.FAILED, Outcome.WRITTEN]
    assert report.results[0].reason == "cannot write file: disk full"
    assert report.results[1].reason.startswith("aborted")
    assert (app_root / "b.txt").read_text(encoding="utf-8") == "b\n"
    assert not (app_root / "a.txt").exists()


def test_template_errors_name_the_template(app_root: Path):
    with pytest.raises(TemplateError) as excinfo:
        _custom(app_root, TemplateJob.create("broken", "{{ nope }}", "x.txt")).run("custom", "post")
    assert excinfo.value.template_id == "broken"
    assert not (app_root / "x.txt").exists()


def test_unknown_generator(scaffolder: Scaffolder):
    with pytest.raises(UnknownGenerator):
        scaffolder.run("view", "post")


def test_job_states_only_move_forward():
    run = JobRun(TemplateJob.create("a", "", "a.txt"))
    run.advance(JobState.RENDERED)
    run.advance(JobState.APPLIED)
    with pytest.raises(RuntimeError):
        run.advance(JobState.PENDING)
    with pytest.raises(RuntimeError):
        JobRun(TemplateJob.create("b", "", "b.txt")).advance(JobState.APPLIED)


def test_rerun_after_another_generator_changes_nothing(app_root: Path, scaffolder: Scaffolder):
    scaffolder.run("controller", "post")
    scaffolder.run("controller", "comment")
    before = _snapshot(app_root)

    report = scaffolder.run("controller", "post")

    assert _snapshot(app_root) == before
    assert [result.outcome for result in report.results] == [Outcome.SKIPPED] * 3
    routes = (app_root / "app" / "routes.py").read_text(encoding="utf-8")
    assert routes.count('app.mount("posts"') == 1
    assert routes.count('app.mount("comments"') == 1
    controllers = (app_root / "app" / "controllers" / "__init__.py").read_text(encoding="utf-8")
    assert controllers == "from . import post\nfrom . import comment\n# loco:generator:controllers\n"


def test_undecodable_target_is_an_io_failure(app_root: Path, scaffolder: Scaffolder):
    (app_root / "app" / "routes.py").write_bytes(b"# \xff\n    # loco:generator:routes\n")
    before = _snapshot(app_root)

    with pytest.raises(IOFailure) as excinfo:
        scaffolder.run("controller", "post")

    assert excinfo.value.path == "app/routes.py"
    assert excinfo.value.template_id == "controller/routes.t"
    assert _snapshot(app_root) == before


def test_job_has_no_target_before_rendering():
    with pytest.raises(RuntimeError, match="before it is rendered"):
        JobRun(TemplateJob.create("a", "", "a.txt")).target
