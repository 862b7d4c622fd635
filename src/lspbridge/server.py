from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

from pydantic import ValidationError
from pygls.lsp.server import LanguageServer
from lsprotocol.types import (
    INITIALIZE,
    TEXT_DOCUMENT_CODE_ACTION,
    TEXT_DOCUMENT_CODE_LENS,
    TEXT_DOCUMENT_DID_CLOSE,
    TEXT_DOCUMENT_DID_OPEN,
    TEXT_DOCUMENT_HOVER,
    ApplyWorkspaceEditParams,
    CodeAction,
    CodeActionParams,
    CodeLens,
    CodeLensParams,
    DidCloseTextDocumentParams,
    DidOpenTextDocumentParams,
    Hover,
    HoverParams,
    InitializeParams,
    LogMessageParams,
    MessageType,
    Position,
    PublishDiagnosticsParams,
    Range,
    ShowMessageParams,
    TextEdit,
    WorkspaceEdit,
)

from lspbridge import __version__
from lspbridge.actions import (
    FIX_COMMAND,
    OPEN_URL_COMMAND,
    PUBLISH_FINDINGS_COMMAND,
    REPORT_CONFUSION_COMMAND,
    REPORT_FALSE_POSITIVE_COMMAND,
)
from lspbridge.config import bridge_config
from lspbridge.consumers import ResultConsumerFactory, feed
from lspbridge.exceptions import ContractViolation, MalformedUri
from lspbridge.invariants import never, require
from lspbridge.opener import ContentOpener
from lspbridge.schema import PublishFindingsRequest, PublishFindingsResponse
from lspbridge.session import BridgeSession
from lspbridge.uris import uri_to_path

logger = logging.getLogger(__name__)

_MESSAGE_TYPES = {
    logging.CRITICAL: MessageType.Error,
    logging.ERROR: MessageType.Error,
    logging.WARNING: MessageType.Warning,
    logging.INFO: MessageType.Info,
}


class BridgeLanguageServer(LanguageServer):
    """Language server carrying the session the bridge publishes into."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.session = BridgeSession()


class ClientLogHandler(logging.Handler):
    """Forward log records to the client as ``window/logMessage``."""

    def __init__(self, ls: LanguageServer, level: int = logging.WARNING) -> None:
        super().__init__(level)
        self.ls = ls

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.ls.window_log_message(
                LogMessageParams(
                    type=_MESSAGE_TYPES.get(record.levelno, MessageType.Log),
                    message=self.format(record),
                )
            )
        except Exception:
            self.handleError(record)


server = BridgeLanguageServer("lspbridge", __version__)


def _error_response(errors: list[str]) -> dict:
    return PublishFindingsResponse(exit_code=2, errors=errors).model_dump()


def _validation_errors(exc: ValidationError) -> list[str]:
    return [
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    ]


@server.feature(INITIALIZE)
def initialize(ls: BridgeLanguageServer, params: InitializeParams) -> None:
    root = None
    if params.root_uri:
        root = uri_to_path(params.root_uri)
    elif params.root_path:
        root = Path(params.root_path)
    options = params.initialization_options
    ls.session.configure(
        bridge_config(root=root, overrides=options if isinstance(options, dict) else None)
    )
    ls.session.capabilities = params.capabilities


@server.feature(TEXT_DOCUMENT_DID_OPEN)
def did_open(ls: BridgeLanguageServer, params: DidOpenTextDocumentParams) -> None:
    uri = params.text_document.uri
    try:
        ls.session.open_document(uri)
    except MalformedUri as exc:
        logger.warning("not tracking document %r: %s", uri, exc.reason)


@server.feature(TEXT_DOCUMENT_DID_CLOSE)
def did_close(ls: BridgeLanguageServer, params: DidCloseTextDocumentParams) -> None:
    ls.session.close_document(params.text_document.uri)


@server.feature(TEXT_DOCUMENT_CODE_ACTION)
def code_action(ls: BridgeLanguageServer, params: CodeActionParams) -> list[CodeAction]:
    return list(ls.session.store.code_actions(params.text_document.uri, params.range))


@server.feature(TEXT_DOCUMENT_HOVER)
def hover(ls: BridgeLanguageServer, params: HoverParams) -> Hover | None:
    return ls.session.store.hover(params.text_document.uri, params.position)


@server.feature(TEXT_DOCUMENT_CODE_LENS)
def code_lens(ls: BridgeLanguageServer, params: CodeLensParams) -> list[CodeLens]:
    return list(ls.session.store.code_lenses(params.text_document.uri))


@server.command(PUBLISH_FINDINGS_COMMAND)
def publish_findings(ls: BridgeLanguageServer, payload: dict | None = None) -> dict:
    if not isinstance(payload, dict):
        return _error_response(["missing findings payload"])
    try:
        request = PublishFindingsRequest.model_validate(payload)
    except ValidationError as exc:
        return _error_response(_validation_errors(exc))
    target: dict[str, list] = {}
    factory = ResultConsumerFactory(ls.session)
    sinks = factory.create_consumers(request.surfaces, target, request.source)
    count = feed(request.to_findings(), sinks)
    for uri in sorted(target):
        ls.text_document_publish_diagnostics(
            PublishDiagnosticsParams(uri=uri, diagnostics=target[uri])
        )
    logger.info("fed %d findings, published diagnostics for %d documents", count, len(target))
    return PublishFindingsResponse(exit_code=0, published=sorted(target)).model_dump()


def _range_argument(value: object) -> Range:
    if isinstance(value, Range):
        return value
    if not isinstance(value, dict):
        never("fix range must be an object", range_type=type(value).__name__)
    try:
        return Range(
            start=Position(**value["start"]),
            end=Position(**value["end"]),
        )
    except (KeyError, TypeError) as exc:
        never("fix range is not a protocol range", detail=str(exc))


def _fix_edit(arguments: tuple[object, ...]) -> WorkspaceEdit:
    require(len(arguments) >= 3, "fix expects uri, range and replacement", count=len(arguments))
    uri, range_value, replacement = arguments[:3]
    require(isinstance(uri, str), "fix uri must be a string")
    require(isinstance(replacement, str), "fix replacement must be a string")
    edit = TextEdit(range=_range_argument(range_value), new_text=str(replacement))
    return WorkspaceEdit(changes={str(uri): [edit]})


@server.command(FIX_COMMAND)
def apply_fix(ls: BridgeLanguageServer, *arguments: object) -> dict:
    try:
        edit = _fix_edit(arguments)
    except ContractViolation as exc:
        logger.warning("rejected fix command: %s %s", exc.reason, exc.env)
        return {"exit_code": 2, "errors": [exc.reason]}
    ls.workspace_apply_edit(ApplyWorkspaceEditParams(edit=edit, label="fix"))
    return {"exit_code": 0}


def _feedback_message(arguments: tuple[object, ...]) -> tuple[str, str]:
    uri = str(arguments[0]) if arguments else ""
    message = ""
    if len(arguments) > 1:
        diagnostic = arguments[1]
        if isinstance(diagnostic, dict):
            message = str(diagnostic.get("message", ""))
        else:
            message = str(getattr(diagnostic, "message", ""))
    return uri, message


def _record_feedback(ls: BridgeLanguageServer, kind: str, arguments: tuple[object, ...]) -> dict:
    uri, message = _feedback_message(arguments)
    logger.info("feedback %s for %s: %s", kind, uri, message)
    ls.window_show_message(
        ShowMessageParams(type=MessageType.Info, message=f"Thanks, feedback recorded ({kind}).")
    )
    return {"exit_code": 0, "kind": kind, "uri": uri, "message": message}


@server.command(REPORT_FALSE_POSITIVE_COMMAND)
def report_false_positive(ls: BridgeLanguageServer, *arguments: object) -> dict:
    return _record_feedback(ls, "false-positive", arguments)


@server.command(REPORT_CONFUSION_COMMAND)
def report_confusion(ls: BridgeLanguageServer, *arguments: object) -> dict:
    return _record_feedback(ls, "confusion", arguments)


@server.command(OPEN_URL_COMMAND)
def open_url(ls: BridgeLanguageServer, *arguments: object) -> dict:
    if not arguments or not isinstance(arguments[0], str):
        return {"exit_code": 2, "errors": ["openURL expects a uri"]}
    opener = ContentOpener(ls.session, ls.protocol.notify)
    shown = opener.show(arguments[0])
    return {"exit_code": 0 if shown else 1}


def start(start_fn: Callable[[], None] | None = None) -> None:
    """Start the language server on stdio."""
    (start_fn or server.start_io)()


if __name__ == "__main__":  # pragma: no cover
    start()  # pragma: no cover
