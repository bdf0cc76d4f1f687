"""Ingestion layer.

Fetch coordinator steps: query the gateway, resolve secondary lookups,
and transform joined rows into domain models.
"""

__all__: list[str] = []
