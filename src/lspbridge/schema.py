from __future__ import annotations

from typing import Any, List, Literal, Optional

from pydantic import BaseModel, Field

from lspbridge.finding import (
    Finding,
    FindingCommand,
    Fix,
    RelatedInfo,
    Severity,
    SourceSpan,
)

SurfaceName = Literal["diagnostics", "hover", "codeLens"]


class SpanDTO(BaseModel):
    uri: str
    start_line: int
    start_column: int = 0
    end_line: int = 0
    end_column: int = 0

    def to_span(self) -> SourceSpan:
        return SourceSpan(
            uri=self.uri,
            start_line=self.start_line,
            start_column=self.start_column,
            end_line=self.end_line,
            end_column=self.end_column,
        )


class RelatedDTO(BaseModel):
    span: SpanDTO
    message: str


class RepairDTO(BaseModel):
    span: SpanDTO
    replacement: str


class CommandDTO(BaseModel):
    title: str
    command: str
    arguments: List[Any] = []

    def to_command(self) -> FindingCommand:
        return FindingCommand(
            title=self.title,
            command=self.command,
            arguments=tuple(self.arguments),
        )


class FindingDTO(BaseModel):
    span: SpanDTO
    severity: Severity = Severity.WARNING
    message: str
    markdown: Optional[str] = None
    code: Optional[str] = None
    related: List[RelatedDTO] = []
    repair: Optional[RepairDTO] = None
    commands: List[CommandDTO] = []

    def to_finding(self) -> Finding:
        repair = None
        if self.repair is not None:
            repair = Fix(span=self.repair.span.to_span(), replacement=self.repair.replacement)
        return Finding(
            span=self.span.to_span(),
            severity=self.severity,
            message=self.message,
            markdown=self.markdown,
            code=self.code,
            related=tuple(
                RelatedInfo(span=item.span.to_span(), message=item.message)
                for item in self.related
            ),
            repair=repair,
            commands=tuple(command.to_command() for command in self.commands),
        )


class PublishFindingsRequest(BaseModel):
    findings: List[FindingDTO]
    surfaces: List[SurfaceName] = Field(default_factory=lambda: ["diagnostics"])
    source: Optional[str] = None

    def to_findings(self) -> list[Finding]:
        return [item.to_finding() for item in self.findings]


class PublishFindingsResponse(BaseModel):
    exit_code: int
    published: List[str] = []
    errors: List[str] = []
