"""
Slug helpers shared by the models and the user mixin.

- slugify(): normalise a stored Role/Permission slug
- to_slug(): turn a method fragment such as ``ManageUsers`` into ``manage.users``
- parse_dynamic_call(): recognise ``is_editor`` / ``canManageUsers`` / ``allowedEditArticle``
- split_references() / same_identifier() / slug_matches(): membership matching
- identifier_of(): primary key of an attach/detach reference
"""
import functools
import re
from collections.abc import Iterable
from typing import Any, Optional

DYNAMIC_PREFIXES = ("allowed", "can", "is")

_CAMEL_BOUNDARY = re.compile(r"(.)(?=[A-Z])")
_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_LIST_SPLIT = re.compile(r" ?[,|] ?")


def slugify(value: str, separator: str = ".") -> str:
    """Lowercase *value* and collapse every run of other characters into *separator*."""
    return _NON_ALNUM.sub(separator, value.lower()).strip(separator)


def to_slug(name: str, separator: str = ".") -> str:
    """
    Convert a camel, Pascal or snake case fragment into a slug.

    >>> to_slug("ManageUsers", "_")
    'manage_users'
    >>> to_slug("manage_users", ".")
    'manage.users'
    """
    words = _CAMEL_BOUNDARY.sub(r"\1_", name).lower().split("_")
    return separator.join(word for word in words if word)


def parse_dynamic_call(name: str, separator: str = ".") -> Optional[tuple[str, str]]:
    """
    Split a sugar method name into (prefix, slug).

    The prefix must be followed by ``_`` or an uppercase letter, so
    ``is_editor`` and ``isEditor`` resolve while ``issue`` does not.
    Returns None for names that are not sugar calls.
    """
    for prefix in DYNAMIC_PREFIXES:
        if not name.startswith(prefix):
            continue
        rest = name[len(prefix):]
        if rest[:1] == "_" or rest[:1].isupper():
            slug = to_slug(rest, separator)
            if slug:
                return prefix, slug
        return None
    return None


def split_references(reference: Any) -> list[Any]:
    """Expand ``"a, b|c"``, an iterable or a single reference into a list."""
    if isinstance(reference, str):
        return _LIST_SPLIT.split(reference)
    if isinstance(reference, Iterable) and not isinstance(reference, bytes) and not hasattr(reference, "id"):
        return list(reference)
    return [reference]


def same_identifier(reference: Any, identifier: Any) -> bool:
    """Loose identifier comparison: ``"5"`` matches ``5``, a model matches by its id."""
    reference = getattr(reference, "id", reference)
    if reference is None or identifier is None or isinstance(reference, bool):
        return False
    return str(reference).strip() == str(identifier)


def identifier_of(reference: Any) -> int:
    """
    Primary key named by *reference*: a model, an int or a digit string.

    Raises:
        TypeError: for slugs, patterns and anything else without an id
    """
    value = getattr(reference, "id", reference)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    raise TypeError(f"expected an id or a model instance, got {reference!r}")


@functools.lru_cache(maxsize=256)
def _compile_pattern(pattern: str, case_sensitive: bool) -> re.Pattern:
    # Only "*" is special, every other character is literal
    expression = re.escape(pattern).replace(r"\*", ".*")
    return re.compile(expression, 0 if case_sensitive else re.IGNORECASE)


def slug_matches(pattern: Any, slug: Optional[str], case_sensitive: bool = True) -> bool:
    """Match *pattern* against a stored slug, where ``*`` matches any run of characters."""
    if not isinstance(pattern, str) or slug is None:
        return False
    if pattern == slug:
        return True
    return _compile_pattern(pattern, case_sensitive).fullmatch(slug) is not None
