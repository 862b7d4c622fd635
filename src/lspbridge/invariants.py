"""Contract markers for the bridge."""

from __future__ import annotations

from typing import NoReturn

from lspbridge.exceptions import ContractViolation


def never(reason: str = "", **env: object) -> NoReturn:
    """Mark a code path that a well-formed input never reaches.

    The optional env payload is metadata only; it is attached to the raised
    ContractViolation so the boundary that catches it can log it.
    """
    raise ContractViolation(reason, env=env)


def require(condition: object, reason: str, **env: object) -> None:
    if not condition:
        never(reason, **env)
