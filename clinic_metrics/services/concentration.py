"""
Concentration (Pareto) calculator.

Ranks keys by a measure and computes each key's share of the grand total and
the running cumulative share:

    share_i            = value_i / total * 100
    cumulative_share_i = sum(value_1..value_i) / total * 100

The cumulative share is non-decreasing for non-negative values and the last
row ends at exactly 100 (the total is the last running sum). A total <= 0
makes every share 0.

Rows are first aggregated by key (sum), so keys are unique in the output.
Ties on the measure are broken by key ascending.

Key Functions:
- compute_concentration(): ConcentrationSummary with per-key rows
- top_n_share(): share of the grand total held by the first n keys
- top_contributors(): top-N slice used for procedure/professional rankings
"""

from typing import Any, Iterable, List, Mapping, Sequence, Union

import numpy as np

from clinic_metrics.models.schemas import ConcentrationRow, ConcentrationSummary
from clinic_metrics.services.aggregation import RowKey, aggregate_by_key

PARETO_THRESHOLD_PCT = 80.0


def _rank_rows(
    rows: Iterable[Mapping[str, Any]],
    key: RowKey,
    measure: str,
    positive_only: bool,
) -> List[ConcentrationRow]:
    dimensions = aggregate_by_key(rows, key, [measure])
    if positive_only:
        dimensions = [dim for dim in dimensions if dim.measures[measure] > 0]
    if not dimensions:
        return []

    values = np.array([dim.measures[measure] for dim in dimensions], dtype=float)
    running = np.cumsum(values)
    total = float(running[-1])

    if total > 0:
        shares = values / total * 100
        cumulative = running / total * 100
    else:
        shares = np.zeros_like(values)
        cumulative = np.zeros_like(values)

    return [
        ConcentrationRow(
            key=dim.key,
            value=float(values[index]),
            share_pct=float(shares[index]),
            cumulative_share_pct=float(cumulative[index]),
            rank=index + 1,
        )
        for index, dim in enumerate(dimensions)
    ]


def top_n_share(rows: Sequence[ConcentrationRow], n: int) -> float:
    """
    Share of the grand total held by the first n ranked rows.

    Example:
        For values [50, 30, 20], top_n_share(rows, 1) == 50.0.
    """
    if n <= 0 or not rows:
        return 0.0
    return rows[min(n, len(rows)) - 1].cumulative_share_pct


def compute_concentration(
    rows: Iterable[Mapping[str, Any]],
    key: RowKey,
    measure: str,
    positive_only: bool = False,
) -> ConcentrationSummary:
    """
    Pareto view of a measure over keys.

    Args:
        rows: Input rows. Not modified.
        key: Field name or callable for the ranked dimension.
        measure: Numeric field ranked and summed.
        positive_only: Drop keys whose total is <= 0.

    Returns:
        ConcentrationSummary with ranked rows, top-3/top-10 shares and the
        number of keys needed to reach 80% of the total.
    """
    ranked = _rank_rows(rows, key, measure, positive_only)
    total = float(sum(row.value for row in ranked))

    keys_to_80 = 0
    for row in ranked:
        if row.cumulative_share_pct >= PARETO_THRESHOLD_PCT - 1e-9:
            keys_to_80 = row.rank
            break

    return ConcentrationSummary(
        total=total,
        rows=ranked,
        top3_share_pct=top_n_share(ranked, 3),
        top10_share_pct=top_n_share(ranked, 10),
        keys_to_80_pct=keys_to_80,
    )


def top_contributors(
    rows: Iterable[Mapping[str, Any]],
    key: Union[str, RowKey],
    measure: str,
    limit: int = 10,
    positive_only: bool = True,
) -> List[ConcentrationRow]:
    """
    First `limit` keys by measure with their share of the grand total.

    Shares are relative to the total of ALL keys, not only the returned slice.
    """
    return _rank_rows(rows, key, measure, positive_only)[:max(limit, 0)]
