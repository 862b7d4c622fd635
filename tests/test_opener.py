from __future__ import annotations

import io
import logging

from lsprotocol.types import ClientCapabilities, MessageType

from lspbridge.opener import SHOW_HTML_NOTIFICATION, ContentOpener
from lspbridge.session import BridgeSession


class _Response(io.BytesIO):
    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def _html_session() -> BridgeSession:
    return BridgeSession(capabilities=ClientCapabilities(experimental={"supportsShowHTML": True}))


def test_show_in_client_forwards_fetched_content() -> None:
    sent: list = []
    opened: list = []

    def _urlopen(uri: str, timeout: float):
        opened.append((uri, timeout))
        return _Response(b"<h1>NP01</h1>")

    opener = ContentOpener(
        _html_session(), lambda method, params: sent.append((method, params)), urlopen_fn=_urlopen
    )
    assert opener.show("file:/docs/np01.html")
    assert opened[0][0] == "file:///docs/np01.html"
    [(method, params)] = sent
    assert method == SHOW_HTML_NOTIFICATION
    assert params.type == MessageType.Info
    assert params.message == "<h1>NP01</h1>"


def test_show_in_browser_when_client_cannot_render() -> None:
    browsed: list[str] = []

    def _browse(uri: str) -> bool:
        browsed.append(uri)
        return True

    opener = ContentOpener(BridgeSession(), lambda *_: None, browse_fn=_browse)
    assert opener.show("https://example.org/np01")
    assert browsed == ["https://example.org/np01"]


def test_fetch_failure_is_logged_not_raised(caplog) -> None:
    def _urlopen(uri: str, timeout: float):
        raise OSError("connection refused")

    opener = ContentOpener(_html_session(), lambda *_: None, urlopen_fn=_urlopen)
    with caplog.at_level(logging.WARNING, logger="lspbridge"):
        assert opener.show("https://example.org/np01") is False
    assert "connection refused" in caplog.text


def test_browser_refusal_is_logged(caplog) -> None:
    opener = ContentOpener(BridgeSession(), lambda *_: None, browse_fn=lambda uri: False)
    with caplog.at_level(logging.WARNING, logger="lspbridge"):
        assert opener.show("https://example.org/np01") is False
    assert "no browser accepted" in caplog.text


def test_malformed_uri_is_logged(caplog) -> None:
    opener = ContentOpener(BridgeSession(), lambda *_: None, browse_fn=lambda uri: True)
    with caplog.at_level(logging.WARNING, logger="lspbridge"):
        assert opener.show("https://example.org/%zz") is False
    assert "cannot open" in caplog.text
