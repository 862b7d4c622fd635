from __future__ import annotations

import logging

from lsprotocol.types import MarkupContent, MarkupKind, Position, Range

from lspbridge.actions import FIX_COMMAND
from lspbridge.consumers import ResultConsumerFactory, Surface, feed
from lspbridge.finding import FindingCommand
from lspbridge.session import BridgeSession

DOC_A = "file:///work/src/a.c"
LINE_3 = Range(start=Position(line=2, character=4), end=Position(line=2, character=13))
PLAIN = "null pointer\nx may be null here\nsee NP01"


def test_hover_plain_text_one_block_per_line(factory, session, make_finding) -> None:
    factory.create_hover_consumer()(make_finding(message=PLAIN, markdown="**null** pointer"))
    [hover] = session.store.hovers(DOC_A)
    assert hover.contents == ["null pointer", "x may be null here", "see NP01"]
    assert hover.range == LINE_3


def test_hover_rich_markup_single_block(rich_capabilities, make_finding) -> None:
    session = BridgeSession(capabilities=rich_capabilities)
    ResultConsumerFactory(session).create_hover_consumer()(
        make_finding(message=PLAIN, markdown="**null** pointer")
    )
    hover = session.store.hover(DOC_A, Position(line=2, character=4))
    assert isinstance(hover.contents, MarkupContent)
    assert hover.contents.kind == MarkupKind.Markdown
    assert hover.contents.value == "**null** pointer"


def test_hover_rich_markup_falls_back_to_plain_message(rich_capabilities, make_finding) -> None:
    session = BridgeSession(capabilities=rich_capabilities)
    ResultConsumerFactory(session).create_hover_consumer()(make_finding(message="plain only"))
    [hover] = session.store.hovers(DOC_A)
    assert hover.contents.value == "plain only"


def test_hover_same_position_replaces_entry(factory, session, make_finding) -> None:
    consume = factory.create_hover_consumer()
    consume(make_finding(message="first"))
    consume(make_finding(message="second"))
    assert [hover.contents for hover in session.store.hovers(DOC_A)] == [["second"]]


def test_hover_keyed_by_client_uri(factory, session, make_finding) -> None:
    session.open_document("file:///client/A.java", "jar:file:///lib.jar!/A.java")
    factory.create_hover_consumer()(make_finding(uri="jar:file:///lib.jar!/A.java"))
    assert session.store.hovers("jar:file:///lib.jar!/A.java") == ()
    assert session.store.hover("file:///client/A.java", Position(line=2, character=6))


def test_hover_malformed_uri_is_dropped(factory, session, make_finding, caplog) -> None:
    with caplog.at_level(logging.WARNING, logger="lspbridge"):
        factory.create_hover_consumer()(make_finding(uri="file:///%zz"))
    assert session.store.uris() == ()
    assert "hover" in caplog.text


def test_lens_from_repair(factory, session, make_finding) -> None:
    factory.create_code_lens_consumer()(make_finding(replacement="if (x != null)"))
    [lens] = session.store.code_lenses(DOC_A)
    assert lens.range == LINE_3
    assert lens.command.title == "fix"
    assert lens.command.command == FIX_COMMAND
    assert lens.command.arguments == [DOC_A, LINE_3, "if (x != null)"]


def test_lens_from_first_command(factory, session, make_finding) -> None:
    commands = (
        FindingCommand("Explain", "engine.explain", ("NP",)),
        FindingCommand("Ignore", "engine.ignore"),
    )
    factory.create_code_lens_consumer()(make_finding(commands=commands))
    [lens] = session.store.code_lenses(DOC_A)
    assert lens.command.title == "Explain"
    assert lens.command.command == "engine.explain"
    assert lens.command.arguments == ["NP"]


def test_lens_without_remediation_is_rejected(factory, session, make_finding, caplog) -> None:
    with caplog.at_level(logging.WARNING, logger="lspbridge"):
        factory.create_code_lens_consumer()(make_finding())
    assert session.store.code_lenses(DOC_A) == ()
    assert session.store.uris() == ()
    assert "neither a repair nor commands" in caplog.text


def test_lens_entries_accumulate(factory, session, make_finding) -> None:
    consume = factory.create_code_lens_consumer()
    consume(make_finding(replacement="a"))
    consume(make_finding(line=5, replacement="b"))
    assert [lens.command.arguments[2] for lens in session.store.code_lenses(DOC_A)] == ["a", "b"]


def test_republished_finding_keeps_one_entry_per_surface(factory, session, make_finding) -> None:
    target: dict = {}
    sinks = factory.create_consumers(["diagnostics", "hover", "codeLens"], target)
    finding = make_finding(replacement="if (x != null)")
    feed([finding, finding], sinks)
    assert len(session.store.diagnostics(DOC_A)) == 1
    assert len(session.store.hovers(DOC_A)) == 1
    assert len(session.store.code_actions(DOC_A)) == 1
    assert len(session.store.code_lenses(DOC_A)) == 1


def test_create_consumers_and_feed(factory, session, make_finding) -> None:
    target: dict = {}
    sinks = factory.create_consumers(["diagnostics", Surface.HOVER, "codeLens"], target)
    assert set(sinks) == {Surface.DIAGNOSTICS, Surface.HOVER, Surface.CODE_LENS}
    count = feed([make_finding(replacement="y"), make_finding(line=8, message="m")], sinks)
    assert count == 2
    assert len(target[DOC_A]) == 2
    assert len(session.store.hovers(DOC_A)) == 2
    assert len(session.store.code_lenses(DOC_A)) == 1
