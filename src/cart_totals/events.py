"""Platform-independent document write events and path patterns."""

from __future__ import annotations

import enum
import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

CARTS_COLLECTION = "carts"
ITEMS_COLLECTION = "items"

# Documents whose writes trigger a recalculation.
ITEM_DOCUMENT_PATTERN = f"{CARTS_COLLECTION}/{{userId}}/{ITEMS_COLLECTION}/{{itemId}}"

_WILDCARD_RE = re.compile(r"^\{(\w+)\}$")


class ChangeKind(enum.Enum):
    """Nature of a document write."""

    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


class DocumentWriteEvent(BaseModel):
    """One create, update or delete of a document matching a trigger pattern.

    ``before`` is None for creates and ``after`` is None for deletes.
    """

    model_config = ConfigDict(frozen=True)

    kind: ChangeKind
    path: str
    params: dict[str, str] = Field(default_factory=dict)
    before: dict[str, Any] | None = None
    after: dict[str, Any] | None = None


def change_kind(
    before: dict[str, Any] | None, after: dict[str, Any] | None
) -> ChangeKind:
    """Classify a write from the document contents around it."""
    if before is None and after is None:
        raise ValueError("A write needs a document before or after it")
    if before is None:
        return ChangeKind.CREATED
    if after is None:
        return ChangeKind.DELETED
    return ChangeKind.UPDATED


def match_document_path(pattern: str, path: str) -> dict[str, str] | None:
    """Match a document path against a pattern such as ``carts/{userId}``.

    Args:
        pattern: Slash separated segments, ``{name}`` segments are wildcards
            matching exactly one non-empty segment.
        path: Concrete document path.

    Returns:
        Mapping of wildcard names to segment values, or None when the path
        does not match.
    """
    pattern_parts = pattern.strip("/").split("/")
    path_parts = path.strip("/").split("/")
    if len(pattern_parts) != len(path_parts):
        return None

    params: dict[str, str] = {}
    for expected, actual in zip(pattern_parts, path_parts, strict=True):
        if not actual:
            return None
        wildcard = _WILDCARD_RE.match(expected)
        if wildcard:
            params[wildcard.group(1)] = actual
        elif expected != actual:
            return None
    return params


def cart_path(owner_id: str) -> str:
    return f"{CARTS_COLLECTION}/{owner_id}"


def items_path(owner_id: str) -> str:
    return f"{CARTS_COLLECTION}/{owner_id}/{ITEMS_COLLECTION}"
