"""Relational sink connectors."""

from .postgres_sink import PostgresCopySession, PostgresSink, PostgresSinkConnection

__all__ = [
    "PostgresCopySession",
    "PostgresSink",
    "PostgresSinkConnection",
]
