"""
Model Quality Monitor Package.

Read-only monitoring service for the trade-acceptance predictor. Computes
calibration quality, per-segment calibration drift, feature distribution
drift, ranking quality and generated-narrative integrity, each with
threshold-driven alerts, and serves them to the admin dashboard.

Subpackages:
    - api: FastAPI route handlers
    - core: Configuration, database, and dependencies
    - models: Pydantic schemas and enums
    - services: Analyzers, data access and dashboard aggregation
    - sql: Parameterized SQL queries
"""

__version__ = "1.0.0"
