"""Sort engine: toggle policy and document comparators.

``toggle_sort`` decides the next sort state when a user picks a column;
``sort_documents`` orders a copy of a collection for a given state.
"""

from __future__ import annotations

import math
from functools import cmp_to_key, lru_cache
from typing import Callable, Iterable, NamedTuple

from pyuca import Collator

from ...models.document import Document, SemanticVersion, SortField, SortOrder, Version

__all__ = [
    "SortSelection",
    "compare_documents",
    "compare_versions",
    "sort_documents",
    "toggle_sort",
]

Comparator = Callable[[Document, Document], float]


class SortSelection(NamedTuple):
    field: SortField
    order: SortOrder


def toggle_sort(
    current_field: SortField,
    current_order: SortOrder,
    requested_field: SortField,
) -> SortSelection:
    """Return the sort state after the user requests ``requested_field``.

    Requesting the active field flips the order; any other field starts
    ascending regardless of the current order.
    """

    if requested_field == current_field:
        return SortSelection(SortField(current_field), SortOrder(current_order).flipped())
    return SortSelection(SortField(requested_field), SortOrder.ASC)


# ----------------------------------------------------------------------
# Comparators
# ----------------------------------------------------------------------


def compare_versions(a: Version, b: Version) -> float:
    """Compare two versions.

    Two dotted texts compare component by component, missing trailing
    components counting as ``0``. Every other pairing compares the numeric
    value of both sides; a side with no numeric value (``"1.0.0"`` against
    ``3``) leaves the pair unordered and the result is ``0``. That makes the
    relation non-transitive across mixed collections, so the resulting order
    depends on input order. Callers rely on that exact behaviour.
    """

    if _dotted(a) and _dotted(b):
        a_parts = a.parts  # type: ignore[union-attr]
        b_parts = b.parts  # type: ignore[union-attr]
        for index in range(max(len(a_parts), len(b_parts))):
            left = a_parts[index] if index < len(a_parts) else 0
            right = b_parts[index] if index < len(b_parts) else 0
            if left != right:
                return left - right
        return 0

    diff = a.as_number() - b.as_number()
    if math.isnan(diff):
        return 0
    return diff


def _dotted(version: Version) -> bool:
    return isinstance(version, SemanticVersion) and version.is_dotted


@lru_cache(maxsize=1)
def _collator() -> Collator:
    return Collator()


def _compare_titles(a: Document, b: Document) -> float:
    # Unicode collation: accents and case only break ties, lowercase first.
    key_a = _collator().sort_key(a.title)
    key_b = _collator().sort_key(b.title)
    if key_a == key_b:
        return 0
    return -1 if key_a < key_b else 1


def _compare_created(a: Document, b: Document) -> float:
    return a.created_at.timestamp() - b.created_at.timestamp()


def _compare_version_fields(a: Document, b: Document) -> float:
    return compare_versions(a.version, b.version)


_COMPARATORS: dict[SortField, Comparator] = {
    SortField.TITLE: _compare_titles,
    SortField.VERSION: _compare_version_fields,
    SortField.CREATED_AT: _compare_created,
}


def compare_documents(a: Document, b: Document, field: SortField, order: SortOrder) -> float:
    result = _COMPARATORS[SortField(field)](a, b)
    if SortOrder(order) is SortOrder.DESC:
        # Negating 0 must stay 0 so unordered pairs remain stable.
        return -result if result else 0
    return result


def sort_documents(
    documents: Iterable[Document],
    field: SortField,
    order: SortOrder,
) -> list[Document]:
    """Return a new list ordered by ``field``/``order``; the input is untouched.

    When the version comparator is not a total order for this collection the
    result follows a fixed sequence of comparisons: the leading run is
    detected (and reversed when strictly descending), then every remaining
    document is binary-inserted after the entries it does not precede.
    """

    items = list(documents)

    def compare(a: Document, b: Document) -> int:
        return _sign(compare_documents(a, b, field, order))

    if SortField(field) is SortField.VERSION and not _versions_totally_ordered(items):
        return _run_insertion_sort(items, compare)
    return sorted(items, key=cmp_to_key(compare))


def _versions_totally_ordered(documents: list[Document]) -> bool:
    dotted = [_dotted(doc.version) for doc in documents]
    if all(dotted):
        return True
    if any(dotted):
        return False
    return all(not math.isnan(doc.version.as_number()) for doc in documents)


def _run_insertion_sort(items: list[Document], compare: Callable[[Document, Document], int]) -> list[Document]:
    result = list(items)
    if len(result) < 2:
        return result
    for start in range(_make_leading_run(result, compare), len(result)):
        pivot = result[start]
        left, right = 0, start
        while left < right:
            mid = left + ((right - left) >> 1)
            if compare(pivot, result[mid]) < 0:
                right = mid
            else:
                left = mid + 1
        result[left + 1 : start + 1] = result[left:start]
        result[left] = pivot
    return result


def _make_leading_run(items: list[Document], compare: Callable[[Document, Document], int]) -> int:
    """Return the length of the run at the head of ``items``.

    A run is strictly descending when its second item precedes the first,
    otherwise non-descending. A descending run is reversed in place.
    """
    descending = compare(items[1], items[0]) < 0
    length = 2
    while length < len(items):
        order = compare(items[length], items[length - 1])
        if (order >= 0) if descending else (order < 0):
            break
        length += 1
    if descending:
        items[:length] = items[length - 1 :: -1]
    return length


def _sign(value: float) -> int:
    if value > 0:
        return 1
    if value < 0:
        return -1
    return 0
