"""
Segment Drift Analyzer Service.

Slices the paired-record population by four independent categorical keys and
recomputes calibration inside every (key, value) group, so a localized
calibration failure is visible even when the window-level ECE looks healthy.

Segment keys (SegmentTags):
    format        SuperFlex / 1QB (unknown superflex flag counts as 1QB)
    leagueFormat  raw league format or 'unknown'
    scoringType   raw scoring type or 'unknown'
    mode          offer generation mode

Outputs:
    heatmap        one SegmentMetric per observed group, grouped by key in the
                   order above, values in first-seen order
    worstSegments  top 10 groups by ECE, descending
    alerts         critical only when ECE > 0.15 AND the group has >= 200
                   samples; smaller groups stay in the heatmap but never alert
"""

import logging
from typing import Dict, List, Sequence

from model_quality.models.enums import SegmentKey
from model_quality.models.schemas import PairedRecord, SegmentDriftMetrics, SegmentMetric
from model_quality.services.alerts import segment_alert
from model_quality.services.calibration import compute_brier_score, compute_ece

logger = logging.getLogger(__name__)


# Number of entries in the worst-segments view
WORST_SEGMENT_LIMIT: int = 10


def group_by_segment(
    records: Sequence[PairedRecord],
    segment_key: SegmentKey,
) -> Dict[str, List[PairedRecord]]:
    """Group records by their tag value for one segment key (insertion ordered)."""
    groups: Dict[str, List[PairedRecord]] = {}
    for record in records:
        value = record.segmentTags.value_for(segment_key)
        groups.setdefault(value, []).append(record)
    return groups


def analyze_segment_drift(records: Sequence[PairedRecord]) -> SegmentDriftMetrics:
    """
    Run the Segment Drift Analyzer over one paired-record population.

    An empty population yields an empty heatmap, no worst segments and no
    alerts.
    """
    heatmap: List[SegmentMetric] = []
    alerts = []

    for segment_key in SegmentKey:
        for value, group in group_by_segment(records, segment_key).items():
            ece = compute_ece(group)
            metric = SegmentMetric(
                segmentKey=segment_key,
                segmentValue=value,
                ece=ece,
                brierScore=compute_brier_score(group),
                count=len(group),
            )
            heatmap.append(metric)

            alert = segment_alert(segment_key.value, value, ece, len(group))
            if alert is not None:
                alerts.append(alert)

    # sorted() is stable: equal ECEs keep heatmap order
    worst_segments = sorted(heatmap, key=lambda m: m.ece, reverse=True)[:WORST_SEGMENT_LIMIT]

    logger.info(
        f"Segment drift: {len(heatmap)} segments over {len(records)} paired, "
        f"{len(alerts)} alerts"
    )

    return SegmentDriftMetrics(
        heatmap=heatmap,
        worstSegments=worst_segments,
        alerts=alerts,
    )
