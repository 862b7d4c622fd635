from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Optional

import typer
from lsprotocol import converters
from lsprotocol.types import (
    ClientCapabilities,
    HoverClientCapabilities,
    MarkupKind,
    TextDocumentClientCapabilities,
)
from pydantic import ValidationError

from lspbridge.config import bridge_config
from lspbridge.consumers import ResultConsumerFactory, feed
from lspbridge.schema import PublishFindingsRequest
from lspbridge.session import BridgeSession

app = typer.Typer(add_completion=False)

_LOG_FORMAT = "%(asctime)s [%(levelname)-8s] %(name)s - %(message)s"


def _configure_logging(level: str) -> None:
    logging.basicConfig(format=_LOG_FORMAT, level=level.upper())


def _rich_hover_capabilities() -> ClientCapabilities:
    return ClientCapabilities(
        text_document=TextDocumentClientCapabilities(
            hover=HoverClientCapabilities(content_format=[MarkupKind.Markdown])
        )
    )


def _load_request(input_path: Path) -> PublishFindingsRequest:
    try:
        loaded = json.loads(input_path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise typer.BadParameter(f"Unable to read findings: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise typer.BadParameter(f"Invalid JSON payload: {exc}") from exc
    if isinstance(loaded, list):
        loaded = {"findings": loaded}
    if not isinstance(loaded, dict):
        raise typer.BadParameter("Findings payload must be a JSON object or list.")
    try:
        return PublishFindingsRequest.model_validate(loaded)
    except ValidationError as exc:
        typer.echo(f"Invalid findings payload:\n{exc}", err=True)
        raise typer.Exit(code=2) from exc


def render_session(session: BridgeSession) -> dict[str, dict[str, object]]:
    converter = converters.get_converter()
    store = session.store
    rendered: dict[str, dict[str, object]] = {}
    for uri in sorted(store.uris()):
        rendered[uri] = {
            "diagnostics": converter.unstructure(list(store.diagnostics(uri))),
            "hovers": converter.unstructure(list(store.hovers(uri))),
            "codeLenses": converter.unstructure(list(store.code_lenses(uri))),
            "codeActions": converter.unstructure(list(store.code_actions(uri))),
        }
    return rendered


@app.command("serve")
def serve(
    root: Optional[Path] = typer.Option(None, "--root"),
    log_level: Optional[str] = typer.Option(None, "--log-level"),
) -> None:
    """Run the language server on stdio."""
    from lspbridge import server as bridge_server

    config = bridge_config(root=root)
    _configure_logging(log_level or config.log_level)
    bridge_server.server.session.configure(config)
    logging.getLogger("lspbridge").addHandler(
        bridge_server.ClientLogHandler(bridge_server.server)
    )
    bridge_server.start()


@app.command("render")
def render(
    input_path: Path = typer.Option(..., "--input", help="JSON findings payload."),
    surface: Optional[List[str]] = typer.Option(
        None, "--surface", help="Surface to populate; repeatable. Defaults to the payload's."
    ),
    rich_hover: bool = typer.Option(False, "--rich-hover"),
    report_false_positive: Optional[bool] = typer.Option(
        None, "--report-false-positive/--no-report-false-positive"
    ),
    report_confusion: Optional[bool] = typer.Option(
        None, "--report-confusion/--no-report-confusion"
    ),
    root: Optional[Path] = typer.Option(None, "--root"),
    output_path: Optional[Path] = typer.Option(
        None, "--output", help="Write JSON to file or '-' for stdout."
    ),
) -> None:
    """Render findings into protocol records without a client."""
    overrides = {
        "report_false_positive": report_false_positive,
        "report_confusion": report_confusion,
    }
    config = bridge_config(root=root, overrides=overrides)
    _configure_logging(config.log_level)
    request = _load_request(input_path)
    surfaces = surface or list(request.surfaces)
    session = BridgeSession(
        config=config,
        capabilities=_rich_hover_capabilities() if rich_hover else None,
    )
    factory = ResultConsumerFactory(session)
    try:
        sinks = factory.create_consumers(surfaces, {}, request.source)
    except ValueError as exc:
        raise typer.BadParameter(f"Unknown surface: {exc}") from exc
    feed(request.to_findings(), sinks)
    output = json.dumps(render_session(session), indent=2, sort_keys=True)
    if output_path is None or str(output_path) == "-":
        typer.echo(output)
    else:
        output_path.write_text(output + "\n", encoding="utf-8")


def main() -> None:  # pragma: no cover
    app()
