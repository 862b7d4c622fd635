from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
for entry in (ROOT, ROOT / "src"):
    if str(entry) not in sys.path:
        sys.path.insert(0, str(entry))


import pytest
from lsprotocol.types import (
    ClientCapabilities,
    HoverClientCapabilities,
    MarkupKind,
    TextDocumentClientCapabilities,
)

from lspbridge.config import BridgeConfig
from lspbridge.consumers import ResultConsumerFactory
from lspbridge.finding import Finding, FindingCommand, Fix, Severity, SourceSpan
from lspbridge.session import BridgeSession

DOC_A = "file:///work/src/a.c"


@pytest.fixture
def session() -> BridgeSession:
    return BridgeSession()


@pytest.fixture
def factory(session: BridgeSession) -> ResultConsumerFactory:
    return ResultConsumerFactory(session)


@pytest.fixture
def feedback_session() -> BridgeSession:
    return BridgeSession(
        config=BridgeConfig(report_false_positive=True, report_confusion=True)
    )


@pytest.fixture
def rich_capabilities() -> ClientCapabilities:
    return ClientCapabilities(
        text_document=TextDocumentClientCapabilities(
            hover=HoverClientCapabilities(content_format=[MarkupKind.Markdown])
        )
    )


@pytest.fixture
def make_finding():
    def _make(
        *,
        uri: str = DOC_A,
        line: int = 3,
        start_column: int = 4,
        end_column: int = 13,
        severity: Severity = Severity.ERROR,
        message: str = "null pointer",
        markdown: str | None = None,
        code: str | None = None,
        replacement: str | None = None,
        commands: tuple[FindingCommand, ...] = (),
    ) -> Finding:
        span = SourceSpan(uri, line, start_column, line, end_column)
        repair = Fix(span=span, replacement=replacement) if replacement is not None else None
        return Finding(
            span=span,
            severity=severity,
            message=message,
            markdown=markdown,
            code=code,
            repair=repair,
            commands=commands,
        )

    return _make
