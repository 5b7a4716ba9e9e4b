"""
Monitoring Queries Module for the Model Quality Monitor.

Provides parameterized PostgreSQL queries for the Data Access Port:
- Paired prediction/outcome records for a window
- Every issued prediction probability for a window (prediction-mass histogram)
- Feature snapshots of every offer issued in a window (feature drift)
- Narrative validation log entries for a window
- Most recent raw offers of one segment (drill-down audit sample)

Tables follow the platform's Prisma naming, so identifiers are double-quoted:
"TradeOfferEvent", "TradeOutcomeEvent" and "NarrativeValidationLog".

Every query takes the window cutoff as $1, a naive timestamp in UTC matching
the "timestamp without time zone" columns. The queries only read; nothing in
this module writes to the platform database.
"""

from model_quality.models.enums import SegmentKey, TradeOutcome


# =============================================================================
# CONSTANTS
# =============================================================================

# Outcomes that resolve an offer into a labelled pair; anything else is ignored
RESOLVED_OUTCOMES = (TradeOutcome.ACCEPTED.value, TradeOutcome.REJECTED.value)

# SQL expression per segment key, mirroring SegmentTags derivation so that the
# drill-down sample selects the same population the heatmap counts
SEGMENT_KEY_EXPRESSIONS = {
    SegmentKey.FORMAT: (
        "CASE WHEN o.\"isSuperFlex\" IS TRUE THEN 'SuperFlex' ELSE '1QB' END"
    ),
    SegmentKey.LEAGUE_FORMAT: "LOWER(COALESCE(o.\"leagueFormat\", 'unknown'))",
    SegmentKey.SCORING_TYPE: "LOWER(COALESCE(o.\"scoringType\", 'unknown'))",
    SegmentKey.MODE: "o.mode",
}

# Keys whose value is compared case-insensitively
CASE_INSENSITIVE_KEYS = {SegmentKey.LEAGUE_FORMAT, SegmentKey.SCORING_TYPE}


# =============================================================================
# PAIRED RECORDS
# =============================================================================

def get_paired_records_query() -> str:
    """
    Generate SQL joining resolved outcomes to the offers they resolve.

    Outcomes are windowed on their own createdAt (resolution time). When an
    offer was resolved more than once, the latest resolution wins. Offers
    without a stored acceptProb are excluded.

    Parameters:
        $1: window cutoff (naive UTC timestamp)

    Returns:
        Parameterized PostgreSQL query string. Rows carry id, "acceptProb",
        accepted, "featuresJson", "isSuperFlex", "leagueFormat",
        "scoringType", mode and "createdAt" (of the offer).
    """
    return f"""
    -- Paired prediction/outcome records for calibration, segment, feature and ranking analysis
    WITH latest_outcome AS (
        SELECT DISTINCT ON (oc."offerEventId")
            oc."offerEventId",
            oc.outcome
        FROM "TradeOutcomeEvent" oc
        WHERE oc."createdAt" >= $1
          AND oc."offerEventId" IS NOT NULL
          AND oc.outcome IN ('{RESOLVED_OUTCOMES[0]}', '{RESOLVED_OUTCOMES[1]}')
        ORDER BY oc."offerEventId", oc."createdAt" DESC
    )
    SELECT
        o.id,
        o."acceptProb",
        (lo.outcome = '{TradeOutcome.ACCEPTED.value}') AS accepted,
        o."featuresJson",
        o."isSuperFlex",
        o."leagueFormat",
        o."scoringType",
        o.mode,
        o."createdAt"
    FROM latest_outcome lo
    JOIN "TradeOfferEvent" o ON o.id = lo."offerEventId"
    WHERE o."acceptProb" IS NOT NULL
    ORDER BY o."createdAt" ASC, o.id ASC
    """


# =============================================================================
# ISSUED PREDICTIONS
# =============================================================================

def get_issued_probabilities_query() -> str:
    """
    Generate SQL selecting every prediction issued in the window.

    Resolution status is irrelevant here; the histogram built from these rows
    describes the shape of the predictor output.

    Parameters:
        $1: window cutoff (naive UTC timestamp)
    """
    return """
    -- All issued predictions (resolved or not) for the prediction-mass histogram
    SELECT o."acceptProb"
    FROM "TradeOfferEvent" o
    WHERE o."createdAt" >= $1
      AND o."acceptProb" IS NOT NULL
    """


# =============================================================================
# OFFER FEATURE SNAPSHOTS
# =============================================================================

def get_offer_features_query() -> str:
    """
    Generate SQL selecting the stored feature blob of every offer in the window.

    Unresolved offers are included: the most recent half of a window is mostly
    unresolved, and drift is a property of model inputs, not outcomes.

    Parameters:
        $1: window cutoff (naive UTC timestamp)
    """
    return """
    -- Feature snapshots of all issued offers (resolved or not) for feature drift
    SELECT
        o."featuresJson",
        o."createdAt"
    FROM "TradeOfferEvent" o
    WHERE o."createdAt" >= $1
      AND o."featuresJson" IS NOT NULL
    ORDER BY o."createdAt" ASC
    """


# =============================================================================
# NARRATIVE VALIDATION LOGS
# =============================================================================

def get_narrative_logs_query() -> str:
    """
    Generate SQL selecting narrative validation attempts in the window.

    Parameters:
        $1: window cutoff (naive UTC timestamp)
    """
    return """
    -- Narrative validation log entries, oldest first
    SELECT
        n.valid,
        n.violations,
        n."createdAt"
    FROM "NarrativeValidationLog" n
    WHERE n."createdAt" >= $1
    ORDER BY n."createdAt" ASC
    """


# =============================================================================
# DRILL-DOWN SAMPLE
# =============================================================================

def get_segment_sample_offers_query(segment_key: SegmentKey) -> str:
    """
    Generate SQL selecting the most recent offers of one segment value.

    Offers are included whether or not they have been resolved; the latest
    resolution (if any) is attached through a lateral join so an unresolved
    offer reports a NULL `accepted`.

    Args:
        segment_key: Segment dimension to filter on. Only the expressions in
            SEGMENT_KEY_EXPRESSIONS are ever interpolated.

    Parameters:
        $1: window cutoff (naive UTC timestamp)
        $2: segment value (lower-cased by the caller for case-insensitive keys)
        $3: row limit

    Raises:
        ValueError: If segment_key is not a known segment dimension.
    """
    try:
        key = SegmentKey(segment_key)
    except ValueError:
        raise ValueError(f"Unknown segment key: {segment_key}")

    expression = SEGMENT_KEY_EXPRESSIONS[key]

    return f"""
    -- Drill-down audit sample for segment {key.value}
    SELECT
        o.id,
        o."acceptProb",
        CASE
            WHEN lo.outcome IS NULL THEN NULL
            ELSE lo.outcome = '{TradeOutcome.ACCEPTED.value}'
        END AS accepted,
        o.mode,
        o."isSuperFlex",
        o."leagueFormat",
        o."scoringType",
        o."driversJson",
        o."createdAt"
    FROM "TradeOfferEvent" o
    LEFT JOIN LATERAL (
        SELECT oc.outcome
        FROM "TradeOutcomeEvent" oc
        WHERE oc."offerEventId" = o.id
          AND oc.outcome IN ('{RESOLVED_OUTCOMES[0]}', '{RESOLVED_OUTCOMES[1]}')
        ORDER BY oc."createdAt" DESC
        LIMIT 1
    ) lo ON TRUE
    WHERE o."createdAt" >= $1
      AND {expression} = $2
    ORDER BY o."createdAt" DESC
    LIMIT $3
    """
