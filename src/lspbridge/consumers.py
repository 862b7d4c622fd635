"""Sinks that turn findings into protocol records and indexed session state.

One sink per protocol surface. Each sink holds an explicit reference to the
owning session and its store; nothing is shared through closures. Every sink
is a one-shot synchronous transformation: a finding whose document URI does
not translate, or that breaks the lens contract, is logged and dropped
without touching any collection.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Mapping, MutableMapping
from enum import Enum
from typing import Protocol

from lsprotocol.types import (
    CodeAction,
    CodeLens,
    Command,
    Diagnostic,
    DiagnosticRelatedInformation,
    Hover,
    Location,
    MarkupContent,
    MarkupKind,
)

from lspbridge.actions import (
    REPORT_CONFUSION_COMMAND,
    REPORT_FALSE_POSITIVE_COMMAND,
    confusion_title,
    false_positive_title,
    fix_lens_command,
    fix_title,
    invoke_command,
    replace,
    wrap_command,
)
from lspbridge.config import DEFAULT_SOURCE
from lspbridge.exceptions import ContractViolation, MalformedUri
from lspbridge.finding import Commands, Finding, Fix
from lspbridge.invariants import never
from lspbridge.positions import to_range
from lspbridge.session import BridgeSession
from lspbridge.state import diagnostic_key

logger = logging.getLogger(__name__)


class Surface(str, Enum):
    DIAGNOSTICS = "diagnostics"
    HOVER = "hover"
    CODE_LENS = "codeLens"


class ResultSink(Protocol):
    def __call__(self, finding: Finding) -> None: ...


class _SessionSink:
    surface: Surface

    def __init__(self, session: BridgeSession) -> None:
        self.session = session
        self.store = session.store

    def __call__(self, finding: Finding) -> None:
        try:
            self.consume(finding)
        except MalformedUri as exc:
            logger.warning(
                "%s: dropped finding %r, uri %r does not translate (%s)",
                self.surface.value,
                finding.message,
                exc.uri,
                exc.reason,
            )
        except ContractViolation as exc:
            logger.warning(
                "%s: dropped finding %r: %s %s",
                self.surface.value,
                finding.message,
                exc.reason,
                exc.env,
            )

    def consume(self, finding: Finding) -> None:
        raise NotImplementedError


class DiagnosticSink(_SessionSink):
    surface = Surface.DIAGNOSTICS

    def __init__(
        self,
        session: BridgeSession,
        target: MutableMapping[str, list[Diagnostic]],
        existing: list[Diagnostic] | None = None,
        source: str | None = None,
    ) -> None:
        super().__init__(session)
        self.target = target
        self.existing = existing
        self.source = source or session.config.source or DEFAULT_SOURCE
        self._lock = threading.Lock()

    def consume(self, finding: Finding) -> None:
        client_uri = self.session.translate_uri(finding.uri)
        diagnostic = self.build(finding)
        document = self.store.document(client_uri)
        with document.lock:
            document.add_diagnostic(diagnostic)
            if self.existing is None:
                published = list(document.diagnostics())
            else:
                published = self._accumulate(diagnostic)
            for action in self.actions_for(finding, diagnostic, client_uri):
                self.session.add_code_action(client_uri, diagnostic.range, action)
            self.target[client_uri] = published

    def build(self, finding: Finding) -> Diagnostic:
        related = [
            DiagnosticRelatedInformation(
                location=Location(
                    uri=self.session.translate_uri(item.span.uri),
                    range=to_range(item.span),
                ),
                message=item.message,
            )
            for item in finding.related
        ]
        return Diagnostic(
            range=to_range(finding.span),
            message=finding.text(),
            severity=finding.severity.to_lsp(),
            code=finding.code,
            source=self.source,
            related_information=related or None,
        )

    def actions_for(
        self, finding: Finding, diagnostic: Diagnostic, client_uri: str
    ) -> list[CodeAction]:
        actions: list[CodeAction] = []
        remediation = finding.remediation()
        if isinstance(remediation, Fix):
            actions.append(
                replace(
                    fix_title(remediation.replacement),
                    to_range(remediation.span),
                    remediation.replacement,
                    client_uri,
                    diagnostic,
                )
            )
        elif isinstance(remediation, Commands):
            for command in remediation.commands:
                actions.append(wrap_command(command.to_lsp(), diagnostic))
        feedback = self.session.feedback_options()
        if feedback.report_false_positive:
            actions.append(
                invoke_command(
                    false_positive_title(diagnostic.message),
                    client_uri,
                    diagnostic,
                    REPORT_FALSE_POSITIVE_COMMAND,
                )
            )
        if feedback.report_confusion:
            actions.append(
                invoke_command(
                    confusion_title(diagnostic.message),
                    client_uri,
                    diagnostic,
                    REPORT_CONFUSION_COMMAND,
                )
            )
        return actions

    def _accumulate(self, diagnostic: Diagnostic) -> list[Diagnostic]:
        key = diagnostic_key(diagnostic)
        with self._lock:
            if all(diagnostic_key(item) != key for item in self.existing):
                self.existing.append(diagnostic)
            return list(self.existing)


class HoverSink(_SessionSink):
    surface = Surface.HOVER

    def consume(self, finding: Finding) -> None:
        client_uri = self.session.translate_uri(finding.uri)
        range_ = to_range(finding.span)
        if self.session.client_supports_rich_hover():
            contents: MarkupContent | list[str] = MarkupContent(
                kind=MarkupKind.Markdown, value=finding.text(rich=True)
            )
        else:
            # one block per line
            contents = finding.text().splitlines() or [""]
        self.store.document(client_uri).put_hover(range_, Hover(contents=contents, range=range_))


class CodeLensSink(_SessionSink):
    surface = Surface.CODE_LENS

    def consume(self, finding: Finding) -> None:
        client_uri = self.session.translate_uri(finding.uri)
        command = self.command_for(finding, client_uri)
        lens = CodeLens(range=to_range(finding.span), command=command)
        self.store.document(client_uri).add_code_lens(lens)

    def command_for(self, finding: Finding, client_uri: str) -> Command:
        remediation = finding.remediation()
        if isinstance(remediation, Fix):
            return fix_lens_command(
                client_uri, to_range(remediation.span), remediation.replacement
            )
        if isinstance(remediation, Commands):
            return remediation.commands[0].to_lsp()
        never(
            "code lens finding carries neither a repair nor commands",
            uri=finding.uri,
            code=finding.code,
        )


class ResultConsumerFactory:
    """Creates the per-surface sinks for one session."""

    def __init__(self, session: BridgeSession) -> None:
        if session is None:
            raise ValueError("ResultConsumerFactory requires a session")
        self.session = session

    def create_diagnostic_consumer(
        self,
        target: MutableMapping[str, list[Diagnostic]],
        existing: list[Diagnostic] | None = None,
        source: str | None = None,
    ) -> ResultSink:
        return DiagnosticSink(self.session, target, existing, source)

    def create_hover_consumer(self) -> ResultSink:
        return HoverSink(self.session)

    def create_code_lens_consumer(self) -> ResultSink:
        return CodeLensSink(self.session)

    def create_consumers(
        self,
        surfaces: Iterable[Surface | str],
        target: MutableMapping[str, list[Diagnostic]] | None = None,
        source: str | None = None,
    ) -> dict[Surface, ResultSink]:
        sinks: dict[Surface, ResultSink] = {}
        for surface in surfaces:
            surface = Surface(surface)
            if surface in sinks:
                continue
            if surface is Surface.DIAGNOSTICS:
                sinks[surface] = self.create_diagnostic_consumer(
                    target if target is not None else {}, source=source
                )
            elif surface is Surface.HOVER:
                sinks[surface] = self.create_hover_consumer()
            else:
                sinks[surface] = self.create_code_lens_consumer()
        return sinks


def feed(findings: Iterable[Finding], sinks: Mapping[Surface, ResultSink] | Iterable[ResultSink]) -> int:
    """Push findings through the sinks in arrival order; returns the count fed."""
    targets = list(sinks.values()) if isinstance(sinks, Mapping) else list(sinks)
    count = 0
    for finding in findings:
        for sink in targets:
            sink(finding)
        count += 1
    return count
