"""Per-document indexed state answering protocol queries.

Every collection is keyed by the client-facing URI. Each document carries its
own lock; the store lock only guards document creation.
"""

from __future__ import annotations

import bisect
import threading
from dataclasses import dataclass, field
from typing import TypeAlias

from lsprotocol.types import CodeAction, CodeLens, Diagnostic, Hover, Position, Range

from lspbridge.positions import (
    RangeKey,
    position_key,
    range_contains,
    range_from_key,
    range_key,
    ranges_overlap,
)

DiagnosticKey: TypeAlias = tuple[str, RangeKey, int | None, str | None]
LensKey: TypeAlias = tuple[RangeKey, str | None, str | None, str]


def diagnostic_key(diagnostic: Diagnostic) -> DiagnosticKey:
    """Structural identity of a diagnostic: message, range, severity and code."""
    severity = int(diagnostic.severity) if diagnostic.severity is not None else None
    code = str(diagnostic.code) if diagnostic.code is not None else None
    return (diagnostic.message, range_key(diagnostic.range), severity, code)


def lens_key(lens: CodeLens) -> LensKey:
    """Range plus the command id, title and arguments a lens invokes."""
    command = lens.command
    if command is None:
        return (range_key(lens.range), None, None, "")
    return (range_key(lens.range), command.command, command.title, repr(command.arguments))


@dataclass
class DocumentState:
    uri: str
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False)
    _diagnostics: list[Diagnostic] = field(default_factory=list)
    _diagnostic_keys: set[DiagnosticKey] = field(default_factory=set)
    _hover_keys: list[RangeKey] = field(default_factory=list)
    _hovers: dict[RangeKey, Hover] = field(default_factory=dict)
    _code_lenses: list[CodeLens] = field(default_factory=list)
    _lens_keys: set[LensKey] = field(default_factory=set)
    _actions: dict[RangeKey, list[CodeAction]] = field(default_factory=dict)

    def add_diagnostic(self, diagnostic: Diagnostic) -> bool:
        key = diagnostic_key(diagnostic)
        with self.lock:
            if key in self._diagnostic_keys:
                return False
            self._diagnostic_keys.add(key)
            self._diagnostics.append(diagnostic)
            return True

    def diagnostics(self) -> tuple[Diagnostic, ...]:
        with self.lock:
            return tuple(self._diagnostics)

    def put_hover(self, range_: Range, hover: Hover) -> None:
        key = range_key(range_)
        with self.lock:
            if key not in self._hovers:
                bisect.insort(self._hover_keys, key)
            self._hovers[key] = hover

    def hover_at(self, position: Position) -> Hover | None:
        """Exact start match first, then the nearest preceding containing entry."""
        point = position_key(position)
        with self.lock:
            index = bisect.bisect_right(self._hover_keys, (point[0], point[1], 1 << 62, 1 << 62))
            for key in reversed(self._hover_keys[:index]):
                if key[:2] == point:
                    return self._hovers[key]
                if range_contains(range_from_key(key), position):
                    return self._hovers[key]
            return None

    def hovers(self) -> tuple[Hover, ...]:
        with self.lock:
            return tuple(self._hovers[key] for key in self._hover_keys)

    def add_code_lens(self, lens: CodeLens) -> bool:
        key = lens_key(lens)
        with self.lock:
            if key in self._lens_keys:
                return False
            self._lens_keys.add(key)
            self._code_lenses.append(lens)
            return True

    def code_lenses(self) -> tuple[CodeLens, ...]:
        with self.lock:
            return tuple(self._code_lenses)

    def add_code_action(self, range_: Range, action: CodeAction) -> bool:
        key = range_key(range_)
        with self.lock:
            bucket = self._actions.setdefault(key, [])
            if any(existing.title == action.title for existing in bucket):
                return False
            bucket.append(action)
            return True

    def code_actions(self, range_: Range | None = None) -> tuple[CodeAction, ...]:
        with self.lock:
            actions: list[CodeAction] = []
            for key, bucket in self._actions.items():
                if range_ is None or ranges_overlap(range_from_key(key), range_):
                    actions.extend(bucket)
            return tuple(actions)


class IndexStore:
    """Indexed state of one session, sharded by client-facing document URI."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._documents: dict[str, DocumentState] = {}

    def document(self, uri: str) -> DocumentState:
        with self._lock:
            state = self._documents.get(uri)
            if state is None:
                state = DocumentState(uri=uri)
                self._documents[uri] = state
            return state

    def get(self, uri: str) -> DocumentState | None:
        with self._lock:
            return self._documents.get(uri)

    def uris(self) -> tuple[str, ...]:
        with self._lock:
            return tuple(self._documents)

    def diagnostics(self, uri: str) -> tuple[Diagnostic, ...]:
        state = self.get(uri)
        return state.diagnostics() if state is not None else ()

    def hover(self, uri: str, position: Position) -> Hover | None:
        state = self.get(uri)
        return state.hover_at(position) if state is not None else None

    def hovers(self, uri: str) -> tuple[Hover, ...]:
        state = self.get(uri)
        return state.hovers() if state is not None else ()

    def code_lenses(self, uri: str) -> tuple[CodeLens, ...]:
        state = self.get(uri)
        return state.code_lenses() if state is not None else ()

    def code_actions(self, uri: str, range_: Range | None = None) -> tuple[CodeAction, ...]:
        state = self.get(uri)
        return state.code_actions(range_) if state is not None else ()
