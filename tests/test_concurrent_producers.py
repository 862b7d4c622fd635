from __future__ import annotations

import threading

from lspbridge.finding import Finding, Fix, Severity, SourceSpan

DOCS = [f"file:///work/src/f{index}.c" for index in range(4)]


def _finding(uri: str, line: int) -> Finding:
    span = SourceSpan(uri, line, 0, line, 5)
    return Finding(
        span=span,
        severity=Severity.WARNING,
        message=f"issue at {line}",
        repair=Fix(span=span, replacement=f"fix{line}"),
    )


def test_concurrent_engines_interleaving_documents(factory, session) -> None:
    target: dict = {}
    diagnostics = factory.create_diagnostic_consumer(target)
    hovers = factory.create_hover_consumer()
    lenses = factory.create_code_lens_consumer()
    barrier = threading.Barrier(6)

    def _engine(offset: int) -> None:
        barrier.wait()
        for line in range(1, 51):
            for uri in DOCS:
                finding = _finding(uri, line)
                diagnostics(finding)
                hovers(finding)
                lenses(finding)
        # undecodable uri
        diagnostics(_finding("file:///work/%zz.c", offset + 1))

    threads = [threading.Thread(target=_engine, args=(index,)) for index in range(6)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(target) == sorted(DOCS)
    for uri in DOCS:
        assert len(session.store.diagnostics(uri)) == 50
        assert len(session.store.hovers(uri)) == 50
        assert len(session.store.code_lenses(uri)) == 50
        assert len(session.store.code_actions(uri)) == 50
        assert len(target[uri]) == 50


def test_fifo_order_per_engine(factory, session) -> None:
    consume = factory.create_diagnostic_consumer({})
    for line in (9, 2, 5):
        consume(_finding(DOCS[0], line))
    assert [item.message for item in session.store.diagnostics(DOCS[0])] == [
        "issue at 9",
        "issue at 2",
        "issue at 5",
    ]
