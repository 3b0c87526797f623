"""Ingestion layer.

Helpers that turn raw scan payloads and store records into normalized
values, and normalized values into store update-sets.
"""

__all__: list[str] = []
