"""Conversion between engine source spans and protocol ranges."""

from __future__ import annotations

from typing import TypeAlias

from lsprotocol.types import Location, Position, Range

from lspbridge.finding import SourceSpan

RangeKey: TypeAlias = tuple[int, int, int, int]


def to_position(line: int, column: int) -> Position:
    """Map a 1-based engine line and 0-based column to a protocol position."""
    return Position(line=max(0, line - 1), character=max(0, column))


def to_range(span: SourceSpan) -> Range:
    start = to_position(span.start_line, span.start_column)
    if span.end_line <= 0:
        return Range(start=start, end=start)
    end = to_position(span.end_line, span.end_column)
    if (end.line, end.character) < (start.line, start.character):
        end = start
    return Range(start=start, end=end)


def to_location(span: SourceSpan) -> Location:
    return Location(uri=span.uri, range=to_range(span))


def with_uri(span: SourceSpan, uri: str) -> SourceSpan:
    return span.with_uri(uri)


def position_key(position: Position) -> tuple[int, int]:
    return (position.line, position.character)


def range_key(range_: Range) -> RangeKey:
    return (
        range_.start.line,
        range_.start.character,
        range_.end.line,
        range_.end.character,
    )


def range_from_key(key: RangeKey) -> Range:
    return Range(
        start=Position(line=key[0], character=key[1]),
        end=Position(line=key[2], character=key[3]),
    )


def range_contains(range_: Range, position: Position) -> bool:
    point = position_key(position)
    return position_key(range_.start) <= point <= position_key(range_.end)


def ranges_overlap(left: Range, right: Range) -> bool:
    return position_key(left.start) <= position_key(right.end) and position_key(
        right.start
    ) <= position_key(left.end)
