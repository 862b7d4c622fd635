"""Findings reported by analysis engines, the unit of input to the bridge."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TypeAlias

from lsprotocol.types import Command, DiagnosticSeverity


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"
    HINT = "hint"

    def to_lsp(self) -> DiagnosticSeverity:
        return _SEVERITY_MAP[self]


_SEVERITY_MAP = {
    Severity.ERROR: DiagnosticSeverity.Error,
    Severity.WARNING: DiagnosticSeverity.Warning,
    Severity.INFO: DiagnosticSeverity.Information,
    Severity.HINT: DiagnosticSeverity.Hint,
}


@dataclass(frozen=True)
class SourceSpan:
    """A source span as an analysis engine reports it.

    Lines are 1-based and columns 0-based. An end line of 0 (or less) marks a
    point span that starts and ends at the start position.
    """

    uri: str
    start_line: int
    start_column: int = 0
    end_line: int = 0
    end_column: int = 0

    def with_uri(self, uri: str) -> SourceSpan:
        return replace(self, uri=uri)


@dataclass(frozen=True)
class RelatedInfo:
    span: SourceSpan
    message: str


@dataclass(frozen=True)
class FindingCommand:
    title: str
    command: str
    arguments: tuple[object, ...] = ()

    def to_lsp(self) -> Command:
        return Command(
            title=self.title,
            command=self.command,
            arguments=list(self.arguments) if self.arguments else None,
        )


@dataclass(frozen=True)
class Fix:
    """Literal text substitution that repairs a finding."""

    span: SourceSpan
    replacement: str


@dataclass(frozen=True)
class Commands:
    commands: tuple[FindingCommand, ...]


Remediation: TypeAlias = Fix | Commands


@dataclass(frozen=True)
class Finding:
    span: SourceSpan
    severity: Severity
    message: str
    markdown: str | None = None
    code: str | None = None
    related: tuple[RelatedInfo, ...] = ()
    repair: Fix | None = None
    commands: tuple[FindingCommand, ...] = field(default_factory=tuple)

    @property
    def uri(self) -> str:
        return self.span.uri

    def text(self, rich: bool = False) -> str:
        if rich and self.markdown:
            return self.markdown
        return self.message

    def remediation(self) -> Remediation | None:
        """Primary remediation path: the repair wins over commands."""
        if self.repair is not None:
            return self.repair
        if self.commands:
            return Commands(tuple(self.commands))
        return None
