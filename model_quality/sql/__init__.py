"""
SQL Query Module for the Model Quality Monitor.

Provides parameterized, read-only PostgreSQL queries for the Data Access Port
(model_quality.services.data_access). Keeping query text here separates the
data access from the analyzers, which only ever see in-memory records.

Submodules:
    monitoring_queries: Paired records, issued predictions, offer feature
                        snapshots, narrative validation logs and
                        drill-down sample offers.

Example usage:
    from model_quality.sql import get_paired_records_query

    rows = await conn.fetch(get_paired_records_query(), cutoff)
"""

# =============================================================================
# MONITORING QUERIES - Data Access Port
# =============================================================================

from model_quality.sql.monitoring_queries import (
    get_paired_records_query,
    get_issued_probabilities_query,
    get_offer_features_query,
    get_narrative_logs_query,
    get_segment_sample_offers_query,
    RESOLVED_OUTCOMES,
    SEGMENT_KEY_EXPRESSIONS,
    CASE_INSENSITIVE_KEYS,
)

# =============================================================================
# PUBLIC API - Explicit exports for clean API surface
# =============================================================================

__all__ = [
    'get_paired_records_query',
    'get_issued_probabilities_query',
    'get_offer_features_query',
    'get_narrative_logs_query',
    'get_segment_sample_offers_query',
    'RESOLVED_OUTCOMES',
    'SEGMENT_KEY_EXPRESSIONS',
    'CASE_INSENSITIVE_KEYS',
]
