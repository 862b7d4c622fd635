"""lspbridge package root."""

from lspbridge.exceptions import BridgeError, ContractViolation, MalformedUri
from lspbridge.invariants import never

__all__ = ["__version__", "BridgeError", "ContractViolation", "MalformedUri", "never"]

__version__ = "0.1.0"
