"""Application service helpers."""

from .pagination import Page, decode_cursor, encode_cursor
from .realtime import event_hub

__all__ = [
    "Page",
    "decode_cursor",
    "encode_cursor",
    "event_hub",
]
