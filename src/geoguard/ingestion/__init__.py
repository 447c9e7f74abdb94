"""Ingestion layer.

This package turns what a position source delivers (device JSON, simulated
steps) into validated :class:`~geoguard.models.PositionSample` values.
"""

__all__: list[str] = []
