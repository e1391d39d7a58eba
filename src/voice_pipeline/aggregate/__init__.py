"""Aggregation helpers.

This package turns parsed Bitable rows into rectangular row × entity
matrices: canonical entity sets and alias resolution, the ``Mon-YY``
month axis, the single parameterized aggregator, and the registry of
dashboard views built on it.
"""
