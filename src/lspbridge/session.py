"""The per-client session the bridge publishes into."""

from __future__ import annotations

import threading
from dataclasses import replace

from lsprotocol.types import ClientCapabilities, CodeAction, MarkupKind, Range

from lspbridge.config import BridgeConfig, FeedbackOptions
from lspbridge.state import IndexStore
from lspbridge.uris import UriTranslator

SHOW_HTML_CAPABILITY = "supportsShowHTML"


class BridgeSession:
    """Indexed state plus the capability and URI services of one client."""

    def __init__(
        self,
        config: BridgeConfig | None = None,
        capabilities: ClientCapabilities | None = None,
    ) -> None:
        self._lock = threading.Lock()
        self._config = config or BridgeConfig()
        self._capabilities = capabilities
        self.store = IndexStore()
        self.uris = UriTranslator()

    @property
    def config(self) -> BridgeConfig:
        with self._lock:
            return self._config

    def configure(self, config: BridgeConfig) -> None:
        with self._lock:
            self._config = config

    def set_feedback(self, report_false_positive: bool, report_confusion: bool) -> None:
        with self._lock:
            self._config = replace(
                self._config,
                report_false_positive=report_false_positive,
                report_confusion=report_confusion,
            )

    @property
    def capabilities(self) -> ClientCapabilities | None:
        with self._lock:
            return self._capabilities

    @capabilities.setter
    def capabilities(self, value: ClientCapabilities | None) -> None:
        with self._lock:
            self._capabilities = value

    def open_document(self, client_uri: str, internal_uri: str | None = None) -> str:
        return self.uris.register(client_uri, internal_uri)

    def close_document(self, client_uri: str) -> None:
        self.uris.forget(client_uri)

    def translate_uri(self, internal_uri: str) -> str:
        return self.uris.translate(internal_uri)

    def client_supports_rich_hover(self) -> bool:
        capabilities = self.capabilities
        if capabilities is None or capabilities.text_document is None:
            return False
        hover = capabilities.text_document.hover
        if hover is None or not hover.content_format:
            return False
        return MarkupKind.Markdown in hover.content_format

    def client_supports_show_html(self) -> bool:
        capabilities = self.capabilities
        if capabilities is None or not isinstance(capabilities.experimental, dict):
            return False
        return bool(capabilities.experimental.get(SHOW_HTML_CAPABILITY, False))

    def feedback_options(self) -> FeedbackOptions:
        return self.config.feedback

    def add_code_action(self, uri: str, range_: Range, action: CodeAction) -> bool:
        return self.store.document(uri).add_code_action(range_, action)
