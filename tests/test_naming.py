from __future__ import annotations

import pytest

from forgegen.errors import InvalidIdentifier
from forgegen.naming import (
    VariantKind,
    normalize_module_name,
    pluralize,
    resolve,
    singularize,
    slugify,
    split_words,
    to_camel_case,
    to_pascal_case,
)


@pytest.mark.parametrize(
    "value, expected",
    [
        ("My Project", "my-project"),
        ("   My    Project  ", "my-project"),
        ("Project! @ 2025", "project-2025"),
        ("Café ☕", "cafe"),
        (("alpha", "beta"), "alpha-beta"),
    ],
)
def test_slugify_basic(value, expected):
    assert slugify(value) == expected


@pytest.mark.parametrize(
    "value, expected",
    [
        ("My Project", "my_project"),
        ("123 invalid", "_123_invalid"),
        ("Symbols*&^%", "symbols"),
        ("", "app"),
    ],
)
def test_normalize_module_name(value, expected):
    assert normalize_module_name(value) == expected


def test_split_words_handles_camel_humps_and_acronyms():
    assert split_words("HTTPRequest handler") == ["http", "request", "handler"]
    assert to_pascal_case("blog_post") == "BlogPost"
    assert to_camel_case("Blog-Post") == "blogPost"


def test_resolve_exposes_every_variant():
    identifier = resolve("BlogPost")

    assert identifier.tokens == ("blog", "post")
    assert identifier.as_dict() == {
        "singular": "blog_post",
        "plural": "blog_posts",
        "snake_case": "blog_post",
        "camel_case": "blogPost",
        "pascal_case": "BlogPost",
        "kebab_case": "blog-post",
        "title_case": "Blog Post",
        "screaming_snake_case": "BLOG_POST",
        "plural_snake_case": "blog_posts",
        "plural_camel_case": "blogPosts",
        "plural_pascal_case": "BlogPosts",
        "plural_kebab_case": "blog-posts",
    }
    assert identifier[VariantKind.PLURAL_PASCAL_CASE] == "BlogPosts"
    assert identifier["kebab_case"] == "blog-post"


@pytest.mark.parametrize("raw", ["BlogPost", "blog_post", "blog-post", "blog_posts", "  BlogPosts "])
def test_spellings_of_one_name_agree(raw):
    identifier = resolve(raw)
    assert identifier.pascal_case == "BlogPost"
    assert identifier.plural == "blog_posts"


def test_resolve_trims_raw_name():
    assert resolve("  post ").raw == "post"


def test_variants_are_read_only():
    identifier = resolve("post")
    with pytest.raises(TypeError):
        identifier.variants[VariantKind.SINGULAR] = "other"  # type: ignore[index]


@pytest.mark.parametrize("raw", ["", "   ", "blog post", "café", "post!", "_", "--"])
def test_resolve_rejects_invalid_identifiers(raw):
    with pytest.raises(InvalidIdentifier):
        resolve(raw)


@pytest.mark.parametrize(
    "singular, plural",
    [
        ("post", "posts"),
        ("category", "categories"),
        ("day", "days"),
        ("box", "boxes"),
        ("church", "churches"),
        ("address", "addresses"),
        ("status", "statuses"),
        ("bus", "buses"),
        ("person", "people"),
        ("child", "children"),
        ("mouse", "mice"),
        ("leaf", "leaves"),
        ("analysis", "analyses"),
        ("quiz", "quizzes"),
        ("sheep", "sheep"),
        ("news", "news"),
        ("niche", "niches"),
        ("cliche", "cliches"),
        ("avalanche", "avalanches"),
        ("axe", "axes"),
        ("base", "bases"),
        ("tie", "ties"),
        ("coach", "coaches"),
    ],
)
def test_inflection_tables(singular, plural):
    assert pluralize(singular) == plural
    assert singularize(plural) == singular
    assert pluralize(plural) == plural
    assert singularize(singular) == singular


@pytest.mark.parametrize(
    "word",
    [
        "post",
        "posts",
        "category",
        "categories",
        "person",
        "people",
        "status",
        "statuses",
        "box",
        "fish",
        "base",
        "bases",
        "niches",
        "axe",
        "avalanche",
        "cliches",
    ],
)
def test_inflection_round_trip(word):
    assert singularize(pluralize(singularize(word))) == singularize(word)
    assert pluralize(singularize(pluralize(word))) == pluralize(word)


def test_inflection_keeps_case_shape_of_last_word():
    assert pluralize("BlogPost") == "BlogPosts"
    assert pluralize("POST") == "POSTS"
    assert singularize("Categories") == "Category"
    assert pluralize("v2") == "v2"
