"""HTTP surface for the stock kernel: FastAPI app, Access Gate, CLI."""

from stock_api.access_gate import (
    AccessGate,
    DelegatedTokenGate,
    LocalTokenGate,
    RejectionReason,
    build_access_gate,
)
from stock_api.app import create_app

__all__ = [
    "AccessGate",
    "DelegatedTokenGate",
    "LocalTokenGate",
    "RejectionReason",
    "build_access_gate",
    "create_app",
]
