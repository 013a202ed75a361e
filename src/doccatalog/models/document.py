"""Document entity models shared by the store, the fetch client and the channel.

Documents are immutable once built. Sequences are kept as tuples so a caller
holding a document returned by the store cannot reach back into it.
"""

from __future__ import annotations

import math
import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable, Mapping, Union

__all__ = [
    "Contributor",
    "Document",
    "DocumentDecodeError",
    "NumericVersion",
    "SemanticVersion",
    "SortField",
    "SortOrder",
    "Version",
    "ViewMode",
    "document_from_record",
    "document_to_record",
    "format_instant",
    "new_document",
    "parse_instant",
    "parse_version",
    "version_to_wire",
]

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def _utcnow() -> datetime:
    """Return current UTC time."""
    return datetime.now(timezone.utc)


class DocumentDecodeError(ValueError):
    """Raised when a raw record cannot be turned into a :class:`Document`."""


class SortField(str, Enum):
    """Keys the document collection can be ordered by."""

    TITLE = "title"
    VERSION = "version"
    CREATED_AT = "createdAt"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"

    def flipped(self) -> SortOrder:
        return SortOrder.DESC if self is SortOrder.ASC else SortOrder.ASC


class ViewMode(str, Enum):
    """Display preference for the catalog; has no bearing on entity semantics."""

    LIST = "list"
    GRID = "grid"


# ----------------------------------------------------------------------
# Versions
# ----------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class NumericVersion:
    """A bare integer version such as ``3``."""

    value: int

    @property
    def is_dotted(self) -> bool:
        return False

    def as_number(self) -> float:
        return float(self.value)

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True, slots=True)
class SemanticVersion:
    """A textual version, usually dotted (``"1.2.0"``).

    The text is kept verbatim so it round-trips unchanged; ``parts`` reads
    each dot-separated component's leading integer, ``0`` when it has none.
    """

    text: str

    @property
    def is_dotted(self) -> bool:
        return "." in self.text

    @property
    def parts(self) -> tuple[int, ...]:
        components: list[int] = []
        for chunk in self.text.split("."):
            match = _LEADING_INT.match(chunk)
            components.append(int(match.group(1)) if match else 0)
        return tuple(components)

    def as_number(self) -> float:
        """Coerce the whole text to a number; ``nan`` when it is not one."""
        stripped = self.text.strip()
        if not stripped:
            return 0.0
        if "_" in stripped:
            return math.nan
        try:
            return float(stripped)
        except ValueError:
            return math.nan

    def __str__(self) -> str:
        return self.text


Version = Union[NumericVersion, SemanticVersion]


def parse_version(raw: Any) -> Version:
    """Tag a wire version value without normalising it."""

    if isinstance(raw, (NumericVersion, SemanticVersion)):
        return raw
    if isinstance(raw, bool):
        raise DocumentDecodeError(f"Version must be an integer or string, not {raw!r}")
    if isinstance(raw, int):
        return NumericVersion(raw)
    if isinstance(raw, float) and raw.is_integer():
        return NumericVersion(int(raw))
    if isinstance(raw, str):
        return SemanticVersion(raw)
    raise DocumentDecodeError(f"Version must be an integer or string, not {raw!r}")


def version_to_wire(version: Version) -> int | str:
    if isinstance(version, NumericVersion):
        return version.value
    return version.text


# ----------------------------------------------------------------------
# Instants
# ----------------------------------------------------------------------


def parse_instant(value: Any) -> datetime:
    """Parse an ISO-8601 instant; naive values are taken as UTC."""

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError as exc:
            raise DocumentDecodeError(f"Invalid ISO-8601 instant: {value!r}") from exc
    else:
        raise DocumentDecodeError(f"Instant must be an ISO-8601 string, not {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_instant(value: datetime) -> str:
    text = value.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")


# ----------------------------------------------------------------------
# Entities
# ----------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Contributor:
    id: str
    name: str


@dataclass(frozen=True, slots=True)
class Document:
    """A catalog entry.

    Attributes:
        id: Opaque identity, unique across the store.
        title: Display title.
        contributors: Contributors in display order.
        version: Tagged integer or textual version.
        attachments: Attachment names.
        created_at: Creation instant; never changes once stored.
        updated_at: Last update instant.
    """

    id: str
    title: str
    contributors: tuple[Contributor, ...] = ()
    version: Version = field(default_factory=lambda: NumericVersion(1))
    attachments: tuple[str, ...] = ()
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        # Accept lists and raw versions from callers while keeping the entity frozen.
        object.__setattr__(self, "contributors", tuple(self.contributors))
        object.__setattr__(self, "attachments", tuple(self.attachments))
        object.__setattr__(self, "version", parse_version(self.version))


def new_document(
    title: str,
    contributor_names: Iterable[str] = (),
    version: int | str = "1.0.0",
    attachments: Iterable[str] = (),
    *,
    now: datetime | None = None,
) -> Document:
    """Build a locally created document with fresh identities."""

    stamp = now or _utcnow()
    contributors = tuple(
        Contributor(id=str(uuid.uuid4()), name=name.strip())
        for name in contributor_names
        if name and name.strip()
    )
    return Document(
        id=str(uuid.uuid4()),
        title=title,
        contributors=contributors,
        version=parse_version(version),
        attachments=tuple(attachments),
        created_at=stamp,
        updated_at=stamp,
    )


def document_from_record(record: Any) -> Document:
    """Convert a wire/persisted record (Pascal-case keys) into a document."""

    if not isinstance(record, Mapping):
        raise DocumentDecodeError(f"Document record must be an object, not {type(record).__name__}")
    try:
        contributors_payload = record.get("Contributors") or []
        contributors = tuple(
            Contributor(id=str(item["ID"]), name=str(item["Name"]))
            for item in contributors_payload
        )
        attachments = tuple(str(item) for item in record.get("Attachments") or [])
        return Document(
            id=str(record["ID"]),
            title=str(record["Title"]),
            contributors=contributors,
            version=parse_version(record.get("Version", 1)),
            attachments=attachments,
            created_at=parse_instant(record["CreatedAt"]),
            updated_at=parse_instant(record.get("UpdatedAt", record["CreatedAt"])),
        )
    except DocumentDecodeError:
        raise
    except (KeyError, TypeError) as exc:
        raise DocumentDecodeError(f"Malformed document record: {exc!r}") from exc


def document_to_record(document: Document) -> dict[str, Any]:
    return {
        "ID": document.id,
        "Title": document.title,
        "Contributors": [{"ID": c.id, "Name": c.name} for c in document.contributors],
        "Version": version_to_wire(document.version),
        "Attachments": list(document.attachments),
        "CreatedAt": format_instant(document.created_at),
        "UpdatedAt": format_instant(document.updated_at),
    }
