"""Tools package — id generation and clock helpers."""

from tools.ids import IdGenerator, now_ms

__all__ = [
    "IdGenerator",
    "now_ms",
]
