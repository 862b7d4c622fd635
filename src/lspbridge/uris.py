"""Translation between analysis-internal and client-facing document URIs."""

from __future__ import annotations

import re
import threading
from pathlib import Path
from urllib.parse import quote, unquote, urlsplit

from lspbridge.exceptions import MalformedUri

_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")
_PATH_SAFE = "/:@!$&'()*+,;="


def decode_uri(uri: str) -> str:
    """Percent-decode a URI, rejecting anything that does not decode cleanly."""
    if not isinstance(uri, str) or not uri.strip():
        raise MalformedUri(str(uri), "empty uri")
    if any(ord(ch) < 0x20 or ord(ch) == 0x7F for ch in uri):
        raise MalformedUri(uri, "control character")
    match = _BAD_ESCAPE.search(uri)
    if match is not None:
        raise MalformedUri(uri, f"invalid escape at offset {match.start()}")
    try:
        parts = urlsplit(uri)
        _ = parts.port
    except ValueError as exc:
        raise MalformedUri(uri, str(exc)) from exc
    if not parts.scheme:
        raise MalformedUri(uri, "missing scheme")
    try:
        return unquote(uri, errors="strict")
    except UnicodeDecodeError as exc:
        raise MalformedUri(uri, "escape is not valid utf-8") from exc


def check_uri(uri: str) -> str:
    """Normalize single-slash file URIs (``file:/x``) to ``file:///x``."""
    if uri.startswith("file:/") and not uri.startswith("file://"):
        return "file:///" + uri[len("file:/"):].lstrip("/")
    return uri


def to_internal_uri(client_uri: str) -> str:
    """Derive the identifier an analysis engine uses for a client document."""
    decode_uri(client_uri)
    uri = check_uri(client_uri)
    parts = urlsplit(uri)
    if parts.scheme != "file":
        return uri
    path = quote(unquote(parts.path), safe=_PATH_SAFE)
    return f"file://{parts.netloc}{path}"


def uri_to_path(uri: str) -> Path:
    parts = urlsplit(check_uri(uri))
    if parts.scheme == "file":
        return Path(unquote(parts.path))
    return Path(uri)


class UriTranslator:
    """Bidirectional mapping between internal and client-facing URIs.

    Mappings are registered by the transport layer when a document is opened.
    Lookups never invent a mapping: an unknown internal URI translates to
    itself, and whatever is returned has been validated by ``decode_uri``.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._client_by_internal: dict[str, str] = {}
        self._internal_by_client: dict[str, str] = {}

    def register(self, client_uri: str, internal_uri: str | None = None) -> str:
        internal = internal_uri or to_internal_uri(client_uri)
        with self._lock:
            self._client_by_internal[internal] = client_uri
            self._internal_by_client[client_uri] = internal
        return internal

    def forget(self, client_uri: str) -> None:
        with self._lock:
            internal = self._internal_by_client.pop(client_uri, None)
            if internal is not None and self._client_by_internal.get(internal) == client_uri:
                del self._client_by_internal[internal]

    def translate(self, internal_uri: str) -> str:
        with self._lock:
            client = self._client_by_internal.get(internal_uri)
            if client is None:
                client = self._client_by_internal.get(check_uri(internal_uri), internal_uri)
        decode_uri(client)
        return client

    def internal(self, client_uri: str) -> str:
        with self._lock:
            internal = self._internal_by_client.get(client_uri, client_uri)
        decode_uri(internal)
        return internal

    def mappings(self) -> dict[str, str]:
        with self._lock:
            return dict(self._client_by_internal)
