"""
probe/snmp/walker.py - Walk several table columns in lock-step with GETBULK.

All columns that still have rows are fetched in one bulk request per page.
After every page an optional stop predicate sees the rows gathered so far, so
a caller that only needs to find a few rows can return before the table end.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Mapping, Sequence

from probe.snmp import InvalidArgument, ProtocolError, Session, normalize_oid

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10

StopPredicate = Callable[[Mapping[str, Sequence[str]]], bool]


@dataclass
class TableCursor:
    name: str
    base: str
    index: tuple[int, ...] = (0,)
    exhausted: bool = False
    seen: set[tuple[int, ...]] = field(default_factory=set)

    @property
    def next_oid(self) -> str:
        return f"{self.base}.{'.'.join(str(part) for part in self.index)}"

    def row_of(self, oid: str) -> tuple[int, ...] | None:
        """Row index of `oid` within this column, or None if it is outside it."""
        if not oid.startswith(self.base + "."):
            return None
        suffix = oid[len(self.base) + 1 :]
        try:
            return tuple(int(part) for part in suffix.split("."))
        except ValueError as exc:
            raise ProtocolError(f"malformed row index '{suffix}' under {self.base}") from exc


def _locate(cursors: list[TableCursor], oid: str) -> tuple[TableCursor | None, tuple[int, ...] | None]:
    # cursors are ordered longest base first, so nested bases resolve to the deepest match
    for cursor in cursors:
        row = cursor.row_of(oid)
        if row is not None:
            return cursor, row
    return None, None


def walk_tables(
    session: Session,
    tables: Mapping[str, str],
    stop: StopPredicate | None = None,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> dict[str, list[str]]:
    """Walk every column in `tables` ({table name: column OID}) and return its values.

    Values are listed per table in the order they were discovered. The walk
    ends when every column is exhausted or, if given, when `stop(results)`
    returns True after a page. Stopping early never changes the rows already
    returned, it only skips the pages that would follow.

    Raises InvalidArgument for a page_size below 1, TransportError when a page
    request fails and ProtocolError for an unparsable row index.
    """
    if page_size < 1:
        raise InvalidArgument(f"page_size must be >= 1, got {page_size}")

    cursors = [TableCursor(name, normalize_oid(base)) for name, base in tables.items()]
    by_depth = sorted(cursors, key=lambda c: len(c.base), reverse=True)
    results: dict[str, list[str]] = {cursor.name: [] for cursor in cursors}

    page = 0
    while True:
        active = [cursor for cursor in cursors if not cursor.exhausted]
        if not active:
            break

        bindings = session.get_bulk([cursor.next_oid for cursor in active], page_size)
        page += 1

        # Bindings may interleave tables in any order; only new rows keep a cursor alive
        progressed: set[str] = set()
        for binding in bindings:
            if binding.value is None:
                continue
            cursor, row = _locate(by_depth, normalize_oid(binding.oid))
            if cursor is None or cursor.exhausted or row in cursor.seen:
                continue
            cursor.seen.add(row)
            results[cursor.name].append(binding.value)
            progressed.add(cursor.name)
            if row > cursor.index:
                cursor.index = row

        for cursor in active:
            if cursor.name not in progressed:
                cursor.exhausted = True

        logger.debug(
            "walk page %d: %d binding(s), rows so far %s, exhausted %s",
            page,
            len(bindings),
            {name: len(values) for name, values in results.items()},
            sorted(cursor.name for cursor in cursors if cursor.exhausted),
        )

        if stop is not None and stop(results):
            logger.debug("walk stopped early after page %d", page)
            break

    return results
