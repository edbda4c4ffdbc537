"""Standings calculator with a fixed tie-breaking chain.

Records are ordered, best first, by:
1. Points
2. Wins
3. Game balance (games won - games lost)
4. Games won
5. Set balance (sets won - sets lost)

Records tied on all five keys keep their input order (stable sort).
"""

import logging
from dataclasses import replace
from typing import TYPE_CHECKING, Iterable, Union

from quadra.models import COUNTER_FIELDS, AggregateStanding, Stage, StatRecord

if TYPE_CHECKING:
    from quadra.ledger import StatsLedger

logger = logging.getLogger(__name__)

Rankable = Union[StatRecord, AggregateStanding]


def ranking_key(record: Rankable) -> tuple[int, int, int, int, int]:
    """Sort key for the tie-breaking chain (ascending sort = best first)."""
    return (
        -record.points,
        -record.wins,
        -record.game_balance,
        -record.games_won,
        -record.set_balance,
    )


def rank_group(records: list[StatRecord], qualify_count: int = 2) -> list[StatRecord]:
    """Rank the records of one group.

    Args:
        records: StatRecords of a single group
        qualify_count: How many of the top records qualify

    Returns:
        Ordered copies with rank_position 1..N and the top qualify_count
        marked as qualified. The input records are not modified.
    """
    if qualify_count < 0:
        raise ValueError(f"qualify_count cannot be negative, got {qualify_count}")

    ordered = sorted(records, key=ranking_key)
    return [
        replace(record, rank_position=position, qualified=position <= qualify_count)
        for position, record in enumerate(ordered, start=1)
    ]


def rank_global(records: list[Rankable]) -> list[Rankable]:
    """Rank records across a whole stage (or an aggregate).

    Returns:
        Ordered copies with rank_position 1..N; qualified flags are untouched
    """
    ordered = sorted(records, key=ranking_key)
    return [
        replace(record, rank_position=position)
        for position, record in enumerate(ordered, start=1)
    ]


def aggregate_across_stages(
    records: Iterable[StatRecord], stages: Iterable[Stage]
) -> list[AggregateStanding]:
    """Sum each entrant's stage totals and rank the sums.

    Only stage-global records (no group) are summed, because group records
    are already rolled up into them. Stages that do not count toward the
    ranking are skipped; stages with the flag unset count.

    Args:
        records: StatRecords from any number of stages
        stages: Stage definitions, used for the ranking flag

    Returns:
        Ranked AggregateStanding list
    """
    counting = {stage.id for stage in stages if stage.counts_for_ranking}

    totals: dict[str, AggregateStanding] = {}
    for record in records:
        if record.group_name is not None or record.stage_id not in counting:
            continue
        total = totals.setdefault(record.entrant_id, AggregateStanding(entrant_id=record.entrant_id))
        total.stages_played += 1
        for name in COUNTER_FIELDS:
            setattr(total, name, getattr(total, name) + getattr(record, name))

    logger.debug("Aggregated %d entrants over %d counting stages", len(totals), len(counting))
    return rank_global(list(totals.values()))


def select_qualifiers(ranked_groups: dict[str, list[StatRecord]]) -> list[StatRecord]:
    """Collect the qualified records of every group, keeping group order."""
    return [
        record
        for group_name in sorted(ranked_groups)
        for record in ranked_groups[group_name]
        if record.qualified
    ]


def refresh_group_standings(
    ledger: "StatsLedger",
    stage_id: str,
    group_names: Iterable[str],
    qualify_count: int = 2,
) -> dict[str, list[StatRecord]]:
    """Recompute standings once per affected group and store them in the ledger.

    Call this after a whole batch of results has been applied so that
    intermediate rankings are never stored.

    Returns:
        Dictionary mapping group name to its ranked records
    """
    ranked_groups = {}
    for group_name in sorted(set(group_names)):
        ranked = rank_group(ledger.snapshot(stage_id, group_name), qualify_count)
        ledger.record_standings(ranked)
        ranked_groups[group_name] = ranked
    logger.info("Refreshed standings of %d groups in stage %s", len(ranked_groups), stage_id)
    return ranked_groups
