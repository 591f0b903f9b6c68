"""Name resolution: lexical variants, casing and English inflection."""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Callable, Iterable, Mapping, Sequence

from .errors import InvalidIdentifier

__all__ = [
    "Identifier",
    "VariantKind",
    "normalize_module_name",
    "pluralize",
    "resolve",
    "singularize",
    "slugify",
    "split_words",
    "to_camel_case",
    "to_kebab_case",
    "to_pascal_case",
    "to_screaming_snake_case",
    "to_snake_case",
    "tokenize",
]


_IDENTIFIER_SAFE = re.compile(r"[A-Za-z0-9_\-]+")
_SEPARATORS = re.compile(r"[_\-\s]+")
_WORD = re.compile(r"[A-Z]+(?![a-z])|[A-Z]?[a-z]+|[0-9]+")
_LAST_WORD = re.compile(r"([A-Z]?[a-z]+|[A-Z]+)$")
_INVALID_MODULE_CHARS = re.compile(r"[^0-9a-zA-Z_]")
_MULTIPLE_UNDERSCORES = re.compile(r"_+")

_VOWELS = frozenset("aeiou")

_UNCOUNTABLE = frozenset(
    {
        "data",
        "deer",
        "equipment",
        "feedback",
        "fish",
        "information",
        "jeans",
        "metadata",
        "money",
        "news",
        "police",
        "rice",
        "series",
        "sheep",
        "software",
        "species",
    }
)

_IRREGULAR = MappingProxyType(
    {
        "analysis": "analyses",
        "cache": "caches",
        "child": "children",
        "cookie": "cookies",
        "crisis": "crises",
        "criterion": "criteria",
        "foot": "feet",
        "goose": "geese",
        "half": "halves",
        "knife": "knives",
        "leaf": "leaves",
        "life": "lives",
        "man": "men",
        "mouse": "mice",
        "movie": "movies",
        "ox": "oxen",
        "person": "people",
        "quiz": "quizzes",
        "thesis": "theses",
        "tooth": "teeth",
        "wife": "wives",
        "woman": "women",
        "zombie": "zombies",
    }
)
_IRREGULAR_PLURALS = MappingProxyType({plural: singular for singular, plural in _IRREGULAR.items()})

# Singular words ending in "e" whose plural would otherwise lose more than the "s".
_E_SINGULARS = frozenset(
    {
        "ache",
        "avalanche",
        "axe",
        "backache",
        "brownie",
        "calorie",
        "cliche",
        "creche",
        "die",
        "genie",
        "goalie",
        "headache",
        "hoodie",
        "lie",
        "microfiche",
        "moustache",
        "mustache",
        "niche",
        "pie",
        "psyche",
        "quiche",
        "rookie",
        "selfie",
        "tie",
        "toothache",
    }
)

# Singular words ending in a sibilant "s" that pluralize with "es".
_ES_SINGULARS = ("alias", "atlas", "bonus", "bus", "campus", "canvas", "census", "focus", "gas", "status", "virus")
_SIBILANT_SUFFIXES = ("s", "x", "z", "ch", "sh")
_SIBILANT_PLURAL_SUFFIXES = ("sses", "xes", "zzes", "ches", "shes")
_SINGULAR_SUFFIXES = ("ss", "us", "is")


def _singularize_word(word: str) -> str:
    if not word.isalpha() or word in _UNCOUNTABLE:
        return word
    if word in _IRREGULAR_PLURALS:
        return _IRREGULAR_PLURALS[word]
    if word in _IRREGULAR:
        return word
    if word in _E_SINGULARS:
        return word
    if word.endswith("s") and word[:-1] in _E_SINGULARS:
        return word[:-1]
    for stem in _ES_SINGULARS:
        if word.endswith(stem + "es"):
            return word[:-2]
        if word.endswith(stem):
            return word
    if word.endswith(_SINGULAR_SUFFIXES):
        return word
    if len(word) > 3 and word.endswith("ies") and word[-4] not in _VOWELS:
        return word[:-3] + "y"
    if word.endswith(_SIBILANT_PLURAL_SUFFIXES):
        return word[:-2]
    if len(word) > 1 and word.endswith("s"):
        return word[:-1]
    return word


def _pluralize_word(word: str) -> str:
    if not word.isalpha() or word in _UNCOUNTABLE:
        return word
    singular = _singularize_word(word)
    if singular in _IRREGULAR:
        return _IRREGULAR[singular]
    if len(singular) > 1 and singular.endswith("y") and singular[-2] not in _VOWELS:
        return singular[:-1] + "ies"
    if singular.endswith(_SIBILANT_SUFFIXES):
        return singular + "es"
    return singular + "s"


def _match_case(source: str, word: str) -> str:
    if len(source) > 1 and source.isupper():
        return word.upper()
    if source[:1].isupper():
        return word[:1].upper() + word[1:]
    return word


def _inflect_last_word(text: str, inflect: Callable[[str], str]) -> str:
    match = _LAST_WORD.search(text)
    if match is None:
        return text
    word = match.group(1)
    return text[: match.start(1)] + _match_case(word, inflect(word.lower()))


def pluralize(text: str) -> str:
    """Pluralize the last word of ``text``, keeping its case shape.

    ``pluralize("BlogPost") == "BlogPosts"`` and pluralizing an already plural
    word returns it unchanged.
    """

    return _inflect_last_word(str(text), _pluralize_word)


def singularize(text: str) -> str:
    """Singularize the last word of ``text``, keeping its case shape."""

    return _inflect_last_word(str(text), _singularize_word)


def split_words(text: str) -> list[str]:
    """Split arbitrary text into lowercase words on separators and camel humps."""

    words: list[str] = []
    for chunk in _SEPARATORS.split(str(text)):
        words.extend(word.lower() for word in _WORD.findall(chunk))
    return words


def tokenize(raw: str) -> tuple[str, ...]:
    """Return the canonical token sequence for an identifier-safe ``raw`` name."""

    tokens: list[str] = []
    for chunk in _SEPARATORS.split(raw):
        if not chunk:
            continue
        found = _WORD.findall(chunk)
        if "".join(found) != chunk:
            raise InvalidIdentifier(f"identifier {raw!r} contains unsupported characters")
        tokens.extend(word.lower() for word in found)
    return tuple(tokens)


def _join_snake(tokens: Sequence[str]) -> str:
    return "_".join(tokens)


def _join_kebab(tokens: Sequence[str]) -> str:
    return "-".join(tokens)


def _join_pascal(tokens: Sequence[str]) -> str:
    return "".join(token.capitalize() for token in tokens)


def _join_camel(tokens: Sequence[str]) -> str:
    if not tokens:
        return ""
    return tokens[0] + _join_pascal(tokens[1:])


def _join_title(tokens: Sequence[str]) -> str:
    return " ".join(token.capitalize() for token in tokens)


def _join_screaming(tokens: Sequence[str]) -> str:
    return "_".join(token.upper() for token in tokens)


def to_snake_case(text: str) -> str:
    return _join_snake(split_words(text))


def to_kebab_case(text: str) -> str:
    return _join_kebab(split_words(text))


def to_pascal_case(text: str) -> str:
    return _join_pascal(split_words(text))


def to_camel_case(text: str) -> str:
    return _join_camel(split_words(text))


def to_screaming_snake_case(text: str) -> str:
    return _join_screaming(split_words(text))


class VariantKind(str, Enum):
    """Lexical renderings of an identifier, keyed by their template name."""

    SINGULAR = "singular"
    PLURAL = "plural"
    SNAKE_CASE = "snake_case"
    CAMEL_CASE = "camel_case"
    PASCAL_CASE = "pascal_case"
    KEBAB_CASE = "kebab_case"
    TITLE_CASE = "title_case"
    SCREAMING_SNAKE_CASE = "screaming_snake_case"
    PLURAL_SNAKE_CASE = "plural_snake_case"
    PLURAL_CAMEL_CASE = "plural_camel_case"
    PLURAL_PASCAL_CASE = "plural_pascal_case"
    PLURAL_KEBAB_CASE = "plural_kebab_case"


# (use plural tokens, joiner) for every variant kind.
_VARIANT_RULES: Mapping[VariantKind, tuple[bool, Callable[[Sequence[str]], str]]] = MappingProxyType(
    {
        VariantKind.SINGULAR: (False, _join_snake),
        VariantKind.PLURAL: (True, _join_snake),
        VariantKind.SNAKE_CASE: (False, _join_snake),
        VariantKind.CAMEL_CASE: (False, _join_camel),
        VariantKind.PASCAL_CASE: (False, _join_pascal),
        VariantKind.KEBAB_CASE: (False, _join_kebab),
        VariantKind.TITLE_CASE: (False, _join_title),
        VariantKind.SCREAMING_SNAKE_CASE: (False, _join_screaming),
        VariantKind.PLURAL_SNAKE_CASE: (True, _join_snake),
        VariantKind.PLURAL_CAMEL_CASE: (True, _join_camel),
        VariantKind.PLURAL_PASCAL_CASE: (True, _join_pascal),
        VariantKind.PLURAL_KEBAB_CASE: (True, _join_kebab),
    }
)


@dataclass(frozen=True, slots=True)
class Identifier:
    """A user supplied name together with all of its lexical variants.

    Attributes
    ----------
    raw:
        The trimmed name exactly as the user typed it.
    tokens:
        The canonical lowercase token sequence, e.g. ``("blog", "post")`` for
        ``"BlogPost"``, ``"blog-post"`` or ``"blog_posts"``.
    variants:
        Read-only mapping of :class:`VariantKind` to the rendered string. Case
        variants render the singular tokens, ``plural_*`` kinds the plural ones.
    """

    raw: str
    tokens: tuple[str, ...]
    variants: Mapping[VariantKind, str] = field(compare=False, hash=False, repr=False)

    def __getitem__(self, kind: VariantKind | str) -> str:
        return self.variants[VariantKind(kind)]

    @property
    def singular(self) -> str:
        return self.variants[VariantKind.SINGULAR]

    @property
    def plural(self) -> str:
        return self.variants[VariantKind.PLURAL]

    @property
    def snake_case(self) -> str:
        return self.variants[VariantKind.SNAKE_CASE]

    @property
    def camel_case(self) -> str:
        return self.variants[VariantKind.CAMEL_CASE]

    @property
    def pascal_case(self) -> str:
        return self.variants[VariantKind.PASCAL_CASE]

    @property
    def kebab_case(self) -> str:
        return self.variants[VariantKind.KEBAB_CASE]

    def as_dict(self) -> dict[str, str]:
        """Return the variants keyed by their template names."""

        return {kind.value: value for kind, value in self.variants.items()}


def resolve(raw: str) -> Identifier:
    """Resolve ``raw`` into an :class:`Identifier`.

    Raises :class:`~forgegen.errors.InvalidIdentifier` when ``raw`` is empty
    after trimming or contains anything besides ASCII letters, digits,
    underscores and hyphens.
    """

    if not isinstance(raw, str):
        raise InvalidIdentifier(f"identifier must be a string, got {type(raw).__name__}")

    candidate = raw.strip()
    if not candidate:
        raise InvalidIdentifier("identifier must not be empty")
    if _IDENTIFIER_SAFE.fullmatch(candidate) is None:
        raise InvalidIdentifier(
            f"identifier {raw!r} may only contain letters, digits, '_' and '-'"
        )

    tokens = tokenize(candidate)
    if not tokens:
        raise InvalidIdentifier(f"identifier {raw!r} has no letters or digits")

    singular_tokens = tokens[:-1] + (_singularize_word(tokens[-1]),)
    plural_tokens = tokens[:-1] + (_pluralize_word(tokens[-1]),)

    variants = {
        kind: join(plural_tokens if plural else singular_tokens)
        for kind, (plural, join) in _VARIANT_RULES.items()
    }
    return Identifier(raw=candidate, tokens=tokens, variants=MappingProxyType(variants))


def slugify(value: str | Iterable[str], *, separator: str = "-") -> str:
    """Create an ASCII, URL friendly slug from ``value``."""

    if isinstance(value, Iterable) and not isinstance(value, (str, bytes)):
        value = " ".join(str(part) for part in value)

    text = unicodedata.normalize("NFKD", str(value))
    text = text.encode("ascii", "ignore").decode("ascii")
    return separator.join(split_words(text))


def normalize_module_name(name: str) -> str:
    """Return a valid Python module identifier from ``name``."""

    candidate = slugify(name, separator="_")
    candidate = _INVALID_MODULE_CHARS.sub("_", candidate)
    candidate = _MULTIPLE_UNDERSCORES.sub("_", candidate).strip("_")

    if not candidate:
        candidate = "app"

    if candidate[0].isdigit():
        candidate = f"_{candidate}"

    return candidate
