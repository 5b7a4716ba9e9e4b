"""
Data Access Port for the model quality analyzers.

The only service module that touches the database. Each loader issues one
read-only query through the shared asyncpg pool and converts the rows into
the immutable input records the analyzers work on.

Loaders:
    load_paired_records          resolved offers with their outcome
    load_issued_probabilities    every issued acceptProb (prediction mass)
    load_offer_features          every issued offer's feature blob (drift)
    load_narrative_logs          narrative validation attempts
    load_segment_sample_offers   drill-down audit sample for one segment
    fetch_dashboard_inputs       the four window loaders as one join

Timestamps:
    Offer, outcome and log tables store naive UTC timestamps. Cutoffs are
    passed naive and rows are returned timezone-aware (UTC).

JSON Columns:
    featuresJson, driversJson and violations may be returned already decoded
    or as JSON text. Undecodable text is treated as an absent blob.

Errors:
    asyncpg.PostgresError and OSError propagate to the caller unchanged;
    there is no retry and no partial result.
"""

import asyncio
import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, List, Optional, Tuple

from model_quality.core.database import get_db_pool
from model_quality.models.enums import SegmentKey
from model_quality.models.schemas import (
    DrilldownOffer,
    NarrativeDriver,
    NarrativeValidationEntry,
    OfferFeatureSnapshot,
    PairedRecord,
)
from model_quality.sql.monitoring_queries import (
    CASE_INSENSITIVE_KEYS,
    get_issued_probabilities_query,
    get_narrative_logs_query,
    get_offer_features_query,
    get_paired_records_query,
    get_segment_sample_offers_query,
)

logger = logging.getLogger(__name__)


# Stored drivers shown per drill-down offer
DRILLDOWN_DRIVER_LIMIT: int = 5


# =============================================================================
# Helpers
# =============================================================================


def window_cutoff(days_back: int, now: Optional[datetime] = None) -> datetime:
    """
    Start of a days_back window ending at now, as a naive UTC timestamp.

    Raises:
        ValueError: If days_back is not positive.
    """
    if days_back < 1:
        raise ValueError(f"days_back must be a positive number of days, got {days_back}")

    now = now or datetime.now(timezone.utc)
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc).replace(tzinfo=None)

    return now - timedelta(days=days_back)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def decode_json(value: Any) -> Any:
    """Decode a JSON column that may arrive as text; None when undecodable."""
    if value is None or not isinstance(value, (str, bytes)):
        return value
    try:
        return json.loads(value)
    except ValueError:
        logger.warning("Ignoring undecodable JSON column value")
        return None


def _parse_drivers(value: Any) -> List[NarrativeDriver]:
    drivers = decode_json(value)
    if not isinstance(drivers, list):
        return []

    parsed = []
    for driver in drivers[:DRILLDOWN_DRIVER_LIMIT]:
        if not isinstance(driver, dict):
            continue
        driver_value = driver.get('value')
        parsed.append(NarrativeDriver(
            id=str(driver.get('id') or ''),
            direction=str(driver.get('direction') or ''),
            strength=str(driver.get('strength') or ''),
            value=float(driver_value) if isinstance(driver_value, (int, float)) and not isinstance(driver_value, bool) else 0.0,
        ))
    return parsed


# =============================================================================
# Window Loaders
# =============================================================================


async def load_paired_records(days_back: int, now: Optional[datetime] = None) -> List[PairedRecord]:
    """
    Load resolved prediction/outcome pairs for a window.

    Returns:
        PairedRecords ordered by offer createdAt ascending. Rows whose stored
        probability falls outside [0, 1] are skipped with a warning.
    """
    cutoff = window_cutoff(days_back, now)
    pool = await get_db_pool()

    async with pool.acquire() as conn:
        rows = await conn.fetch(get_paired_records_query(), cutoff)

    records: List[PairedRecord] = []
    for row in rows:
        probability = float(row['acceptProb'])
        if not 0.0 <= probability <= 1.0:
            logger.warning(f"Skipping offer {row['id']} with out-of-range acceptProb {probability}")
            continue

        snapshot = decode_json(row['featuresJson'])
        records.append(PairedRecord(
            id=str(row['id']),
            predictedProbability=probability,
            observedOutcome=bool(row['accepted']),
            featureSnapshot=snapshot if isinstance(snapshot, dict) else {},
            isSuperFlex=row['isSuperFlex'],
            leagueFormat=row['leagueFormat'],
            scoringType=row['scoringType'],
            mode=row['mode'],
            createdAt=_as_utc(row['createdAt']),
        ))

    logger.info(f"Loaded {len(records)} paired records for {days_back}-day window")
    return records


async def load_issued_probabilities(days_back: int, now: Optional[datetime] = None) -> List[float]:
    """Load acceptProb of every offer issued in the window, resolved or not."""
    cutoff = window_cutoff(days_back, now)
    pool = await get_db_pool()

    async with pool.acquire() as conn:
        rows = await conn.fetch(get_issued_probabilities_query(), cutoff)

    probabilities = [float(row['acceptProb']) for row in rows]

    logger.info(f"Loaded {len(probabilities)} issued predictions for {days_back}-day window")
    return probabilities


async def load_offer_features(
    days_back: int,
    now: Optional[datetime] = None,
) -> List[OfferFeatureSnapshot]:
    """
    Load the feature blob of every offer issued in the window, resolved or not.

    Rows whose blob is not a JSON object are skipped.
    """
    cutoff = window_cutoff(days_back, now)
    pool = await get_db_pool()

    async with pool.acquire() as conn:
        rows = await conn.fetch(get_offer_features_query(), cutoff)

    snapshots = []
    for row in rows:
        snapshot = decode_json(row['featuresJson'])
        if not isinstance(snapshot, dict):
            continue
        snapshots.append(OfferFeatureSnapshot(
            featureSnapshot=snapshot,
            createdAt=_as_utc(row['createdAt']),
        ))

    logger.info(f"Loaded {len(snapshots)} offer feature snapshots for {days_back}-day window")
    return snapshots


async def load_narrative_logs(
    days_back: int,
    now: Optional[datetime] = None,
) -> List[NarrativeValidationEntry]:
    """Load narrative validation attempts for the window, oldest first."""
    cutoff = window_cutoff(days_back, now)
    pool = await get_db_pool()

    async with pool.acquire() as conn:
        rows = await conn.fetch(get_narrative_logs_query(), cutoff)

    entries = []
    for row in rows:
        violations = decode_json(row['violations'])
        entries.append(NarrativeValidationEntry(
            valid=bool(row['valid']),
            violations=[str(v) for v in violations] if isinstance(violations, list) else [],
            createdAt=_as_utc(row['createdAt']),
        ))

    logger.info(f"Loaded {len(entries)} narrative validations for {days_back}-day window")
    return entries


async def fetch_dashboard_inputs(
    days_back: int,
    now: Optional[datetime] = None,
) -> Tuple[
    List[PairedRecord],
    List[float],
    List[OfferFeatureSnapshot],
    List[NarrativeValidationEntry],
]:
    """
    Issue the four window queries concurrently.

    Returns:
        (paired records, issued probabilities, offer feature snapshots,
        narrative log entries). Any failure fails the whole call; no partial
        inputs are returned.
    """
    paired, issued, features, logs = await asyncio.gather(
        load_paired_records(days_back, now),
        load_issued_probabilities(days_back, now),
        load_offer_features(days_back, now),
        load_narrative_logs(days_back, now),
    )
    return paired, issued, features, logs


# =============================================================================
# Drill-down Sample
# =============================================================================


async def load_segment_sample_offers(
    days_back: int,
    segment_key: SegmentKey,
    segment_value: str,
    limit: int,
    now: Optional[datetime] = None,
) -> List[DrilldownOffer]:
    """
    Load the most recent offers of one segment value, newest first.

    Offers are included whether or not they have been resolved; `accepted`
    is None for unresolved ones.

    Raises:
        ValueError: If segment_key is not a known segment dimension.
    """
    query = get_segment_sample_offers_query(segment_key)
    key = SegmentKey(segment_key)
    value = segment_value.lower() if key in CASE_INSENSITIVE_KEYS else segment_value

    cutoff = window_cutoff(days_back, now)
    pool = await get_db_pool()

    async with pool.acquire() as conn:
        rows = await conn.fetch(query, cutoff, value, limit)

    offers = [
        DrilldownOffer(
            id=str(row['id']),
            acceptProb=row['acceptProb'],
            accepted=row['accepted'],
            mode=row['mode'],
            isSuperFlex=row['isSuperFlex'],
            leagueFormat=row['leagueFormat'],
            scoringType=row['scoringType'],
            drivers=_parse_drivers(row['driversJson']),
            createdAt=_as_utc(row['createdAt']),
        )
        for row in rows
    ]

    logger.info(f"Loaded {len(offers)} sample offers for segment {key.value}={segment_value}")
    return offers
