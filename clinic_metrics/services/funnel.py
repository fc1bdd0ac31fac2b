"""
Commercial funnel derivation.

Turns comercial_embudo rows (mes, origen, etapa, orden_etapa, cantidad) into
the ordered stage list shown in the funnel chart:

- counts are summed per stage name across months and channels
- stages keep the canonical order Lead -> Consulta -> Tratamiento -> Recurrente
- stages whose summed count is 0 are dropped
- percentage = count / first stage count * 100
- conversion = count / previous stage count * 100 (None for the first stage)
- loss = previous stage count - count (0 for the first stage)

Example:
    Counts [100, 80, 50, 10] give
    percentage [100, 80, 50, 10], conversion [None, 80, 62.5, 20],
    loss [0, 20, 30, 40].
"""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Sequence

from clinic_metrics.models.enums import FunnelStageName
from clinic_metrics.models.schemas import FunnelLoss, FunnelStage
from clinic_metrics.services.formatting import FUNNEL_CONVERSION_THRESHOLDS, classify_rate
from clinic_metrics.services.metrics import field, safe_percent

logger = logging.getLogger(__name__)

STAGE_ORDER: Dict[FunnelStageName, int] = {
    stage: position for position, stage in enumerate(FunnelStageName, start=1)
}


def funnel_stage_counts(
    rows: Iterable[Mapping[str, Any]],
    stage_field: str = "etapa",
    count_field: str = "cantidad",
) -> Dict[FunnelStageName, float]:
    """
    Sum counts per canonical stage. Unknown stage names are ignored.

    Returns:
        Dict with every FunnelStageName, in canonical order, including zeros.
    """
    totals: Dict[FunnelStageName, float] = {stage: 0.0 for stage in FunnelStageName}
    for row in rows:
        raw_stage = row.get(stage_field)
        try:
            stage = FunnelStageName(str(raw_stage).strip())
        except ValueError:
            logger.debug(f"Ignoring unknown funnel stage {raw_stage!r}")
            continue
        totals[stage] += field(row, count_field)
    return totals


def derive_funnel(
    rows: Iterable[Mapping[str, Any]],
    stage_field: str = "etapa",
    count_field: str = "cantidad",
) -> List[FunnelStage]:
    """
    Build the ordered, non-empty funnel stages.

    Args:
        rows: comercial_embudo rows. Not modified.
        stage_field: Column holding the stage name.
        count_field: Column holding the count.

    Returns:
        FunnelStage list in canonical order; empty when every stage is 0.
    """
    totals = funnel_stage_counts(rows, stage_field, count_field)
    present = [(stage, count) for stage, count in totals.items() if count > 0]
    if not present:
        return []

    first_count = present[0][1] or 1.0

    stages: List[FunnelStage] = []
    previous = None
    for stage, count in present:
        if previous is None:
            conversion = None
            loss = 0.0
            tag = None
        else:
            conversion = safe_percent(count, previous)
            loss = previous - count
            tag = classify_rate(conversion, FUNNEL_CONVERSION_THRESHOLDS)

        stages.append(
            FunnelStage(
                name=stage,
                order=STAGE_ORDER[stage],
                count=count,
                percentage=count / first_count * 100,
                conversion=conversion,
                loss=loss,
                tag=tag,
            )
        )
        previous = count

    return stages


def funnel_loss_summary(stages: Sequence[FunnelStage]) -> List[FunnelLoss]:
    """
    Drop-off between consecutive stages.

    loss_pct = 100 - conversion of the later stage.
    """
    return [
        FunnelLoss(
            from_stage=previous.name,
            to_stage=current.name,
            lost=current.loss,
            loss_pct=100.0 - (current.conversion or 0.0),
        )
        for previous, current in zip(stages, stages[1:])
    ]
