"""Ingestion module: trade buffer and HTTP endpoint."""

from .server import create_app
from .trade_buffer import Batch, TradeBuffer, TradeRecord

__all__ = ["Batch", "TradeBuffer", "TradeRecord", "create_app"]
