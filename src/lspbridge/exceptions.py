"""Error kinds raised inside the bridge."""

from __future__ import annotations

from collections.abc import Mapping


class BridgeError(RuntimeError):
    """Base class for errors raised by the result-to-protocol bridge."""


class MalformedUri(BridgeError, ValueError):
    """A document identifier could not be decoded or parsed."""

    def __init__(self, uri: str, reason: str = "") -> None:
        detail = f"malformed uri {uri!r}"
        if reason:
            detail = f"{detail}: {reason}"
        super().__init__(detail)
        self.uri = uri
        self.reason = reason


class ContractViolation(BridgeError):
    """A finding or payload broke a contract the bridge relies on.

    The env mapping is metadata only; it is carried along for logging.
    """

    def __init__(self, reason: str, *, env: Mapping[str, object] | None = None):
        super().__init__(reason or "contract violation")
        self.reason = reason
        self.env = dict(env or {})
