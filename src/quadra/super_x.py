"""Fixed rotation tables for Super-X stages (Super 8 and Super 12).

In a Super-X stage every entrant partners every other entrant at most once.
The tables are plain data: each round is a tuple of fixtures, each fixture two
pairs of entrant indices (0..N-1). Indices are resolved to real entrants only
when fixtures are generated for a stage.

The Super 12 table is a circle-method 1-factorisation of 12 players: all 66
pairs partner exactly once over 11 rounds.

A Super-X stage is played as one group named after its table ("Super 8"),
so its results score group points like any other group.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Optional

from quadra.models import Fixture, IndexFixture, Round, Schedule
from quadra.validation import UnsupportedCohortSize, ValidationError

logger = logging.getLogger(__name__)

RawRound = tuple[tuple[tuple[int, int], tuple[int, int]], ...]

# 7 rounds x 2 fixtures
SUPER_8_SCHEDULE: tuple[RawRound, ...] = (
    (((0, 1), (2, 3)), ((4, 5), (6, 7))),
    (((0, 2), (1, 3)), ((4, 6), (5, 7))),
    (((0, 3), (1, 2)), ((4, 7), (5, 6))),
    (((0, 4), (1, 5)), ((2, 6), (3, 7))),
    (((0, 5), (1, 4)), ((2, 7), (3, 6))),
    (((0, 6), (1, 7)), ((2, 4), (3, 5))),
    (((0, 7), (1, 6)), ((2, 5), (3, 4))),
)

# 11 rounds x 3 fixtures
SUPER_12_SCHEDULE: tuple[RawRound, ...] = (
    (((0, 11), (1, 10)), ((2, 9), (3, 8)), ((4, 7), (5, 6))),
    (((1, 11), (0, 2)), ((3, 10), (4, 9)), ((5, 8), (6, 7))),
    (((2, 11), (1, 3)), ((0, 4), (5, 10)), ((6, 9), (7, 8))),
    (((3, 11), (2, 4)), ((1, 5), (0, 6)), ((7, 10), (8, 9))),
    (((4, 11), (3, 5)), ((2, 6), (1, 7)), ((0, 8), (9, 10))),
    (((5, 11), (4, 6)), ((3, 7), (2, 8)), ((1, 9), (0, 10))),
    (((6, 11), (5, 7)), ((4, 8), (3, 9)), ((2, 10), (0, 1))),
    (((7, 11), (6, 8)), ((5, 9), (4, 10)), ((0, 3), (1, 2))),
    (((8, 11), (7, 9)), ((6, 10), (0, 5)), ((1, 4), (2, 3))),
    (((9, 11), (8, 10)), ((0, 7), (1, 6)), ((2, 5), (3, 4))),
    (((10, 11), (0, 9)), ((1, 8), (2, 7)), ((3, 6), (4, 5))),
)

SUPER_X_SCHEDULES: dict[int, tuple[RawRound, ...]] = {
    8: SUPER_8_SCHEDULE,
    12: SUPER_12_SCHEDULE,
}


@dataclass
class ScheduleValidation:
    """Outcome of checking a rotation table."""

    valid: bool
    errors: list[str] = field(default_factory=list)


def _to_schedule(cohort_size: int, raw_rounds: tuple[RawRound, ...]) -> Schedule:
    rounds = tuple(
        Round(
            number=number,
            fixtures=tuple(IndexFixture(side_a=a, side_b=b) for a, b in raw_round),
        )
        for number, raw_round in enumerate(raw_rounds, start=1)
    )
    return Schedule(cohort_size=cohort_size, rounds=rounds)


def get_schedule(cohort_size: int) -> Schedule:
    """Return the rotation table for a Super-X cohort.

    Args:
        cohort_size: Number of entrants (8 or 12)

    Returns:
        Schedule with cohort_size - 1 rounds of cohort_size / 4 fixtures

    Raises:
        UnsupportedCohortSize: For any size other than 8 or 12
    """
    if cohort_size not in SUPER_X_SCHEDULES:
        raise UnsupportedCohortSize(
            f"Super-X supports 8 or 12 entrants, got {cohort_size}", field="cohort_size"
        )
    return _to_schedule(cohort_size, SUPER_X_SCHEDULES[cohort_size])


def super_x_group_name(cohort_size: int) -> str:
    """Name of the single group a Super-X stage is played in."""
    return f"Super {cohort_size}"


def total_fixtures(cohort_size: int) -> int:
    """Total fixtures of a Super-X stage.

    Examples:
        >>> total_fixtures(8)
        14
        >>> total_fixtures(12)
        33
    """
    return get_schedule(cohort_size).total_fixtures


def find_repeated_partners(rounds: tuple[Round, ...]) -> list[tuple[int, int]]:
    """Return the partner pairs used more than once in a table.

    Args:
        rounds: Rounds of a rotation table

    Returns:
        Sorted list of (low, high) index pairs that partner twice or more
    """
    seen = Counter(
        (min(pair), max(pair))
        for rnd in rounds
        for fixture in rnd.fixtures
        for pair in (fixture.side_a, fixture.side_b)
    )
    return sorted(pair for pair, count in seen.items() if count > 1)


def validate_schedule(
    cohort_size: int, rounds: Optional[tuple[Round, ...]] = None
) -> ScheduleValidation:
    """Check a rotation table.

    Checks:
    - Round count equals cohort_size - 1
    - Every round uses every index exactly once
    - Every index lies in [0, cohort_size)
    - No pair of indices partners more than once

    Args:
        cohort_size: Number of entrants (8 or 12)
        rounds: Replacement table to check (default: the built-in table)

    Returns:
        ScheduleValidation with valid flag and the list of problems found

    Raises:
        UnsupportedCohortSize: If no table is given and the size has none built in
    """
    if rounds is None:
        rounds = get_schedule(cohort_size).rounds

    errors = []
    expected_rounds = cohort_size - 1
    if len(rounds) != expected_rounds:
        errors.append(f"Expected {expected_rounds} rounds, found {len(rounds)}")

    for rnd in rounds:
        indices = [i for fixture in rnd.fixtures for i in fixture.indices]
        distinct = set(indices)

        if len(distinct) != cohort_size:
            errors.append(
                f"Round {rnd.number}: expected {cohort_size} entrants, found {len(distinct)}"
            )
        if len(indices) != len(distinct):
            doubled = sorted(i for i in distinct if indices.count(i) > 1)
            errors.append(f"Round {rnd.number}: indices used twice {doubled}")

        for index in sorted(distinct):
            if index < 0 or index >= cohort_size:
                errors.append(
                    f"Round {rnd.number}: invalid index {index} (must be 0-{cohort_size - 1})"
                )

    for low, high in find_repeated_partners(rounds):
        errors.append(f"Indices {low} and {high} partner more than once")

    return ScheduleValidation(valid=not errors, errors=errors)


def build_super_x_fixtures(entrant_ids: list[str]) -> list[Fixture]:
    """Resolve the rotation table to fixtures for concrete entrants.

    Index i of the table maps to entrant_ids[i], so the caller decides the
    draw order (shuffle the list beforehand for a random draw). Every fixture
    belongs to the single group of the stage (see super_x_group_name).

    Args:
        entrant_ids: Exactly 8 or 12 entrant ids

    Returns:
        Fixtures ordered by round, ids like "R3-2", group "Super 8" or "Super 12"

    Raises:
        UnsupportedCohortSize: If the number of entrants has no table
    """
    schedule = get_schedule(len(entrant_ids))
    if len(set(entrant_ids)) != len(entrant_ids):
        raise ValidationError("Entrant list contains duplicates", field="entrant_ids")

    group_name = super_x_group_name(schedule.cohort_size)
    fixtures = []
    ordinal = 1
    for rnd in schedule.rounds:
        for position, index_fixture in enumerate(rnd.fixtures, start=1):
            a1, a2 = index_fixture.side_a
            b1, b2 = index_fixture.side_b
            fixtures.append(
                Fixture(
                    id=f"R{rnd.number}-{position}",
                    side_a=(entrant_ids[a1], entrant_ids[a2]),
                    side_b=(entrant_ids[b1], entrant_ids[b2]),
                    ordinal=ordinal,
                    round_number=rnd.number,
                    group_name=group_name,
                )
            )
            ordinal += 1

    logger.info(
        "Generated Super %d: %d rounds, %d fixtures",
        schedule.cohort_size, len(schedule.rounds), len(fixtures),
    )
    return fixtures
