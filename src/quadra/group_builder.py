"""Group builder with seeded draw and partner-rotation fixtures."""

import logging
import random
from typing import Callable, Iterable, Optional, Union

from quadra.models import Entrant, Fixture, Group, StageFormat
from quadra.validation import (
    ImbalancedCohort,
    InvalidGroupSize,
    TooManySeeds,
    UnsupportedCohortSize,
)

logger = logging.getLogger(__name__)

GROUP_SIZE = 4
MIN_GROUPED_COHORT = 8
SUPER_X_COHORTS = (8, 12)
GROUP_LETTERS = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"

Shuffle = Callable[[list], None]


def validate_cohort_size(num_entrants: int, stage_format: StageFormat = StageFormat.GROUPED) -> None:
    """Check that a stage can start with this many entrants.

    Args:
        num_entrants: Confirmed entrants of the stage
        stage_format: GROUPED needs a multiple of 4 that is at least 8,
            SUPER_X needs exactly 8 or 12

    Raises:
        UnsupportedCohortSize: Super-X cohort other than 8 or 12
        ImbalancedCohort: Grouped cohort that cannot fill complete groups
    """
    if stage_format == StageFormat.SUPER_X:
        if num_entrants not in SUPER_X_COHORTS:
            raise UnsupportedCohortSize(
                f"Super-X needs 8 or 12 entrants, got {num_entrants}", field="cohort_size"
            )
        return

    if num_entrants < MIN_GROUPED_COHORT:
        raise ImbalancedCohort(
            f"At least {MIN_GROUPED_COHORT} entrants are needed, got {num_entrants}",
            field="cohort_size",
        )
    if num_entrants % GROUP_SIZE != 0:
        raise ImbalancedCohort(
            f"Entrants must be a multiple of {GROUP_SIZE}, got {num_entrants}",
            field="cohort_size",
        )


def generate_round_robin_fixtures(
    entrant_ids: list[str], group_name: Optional[str] = None
) -> list[Fixture]:
    """Generate the three partner rotations of a group of four.

    For entrants [A, B, C, D]:
        Fixture 1: A+B vs C+D
        Fixture 2: A+C vs B+D
        Fixture 3: A+D vs B+C

    These are the only ways to split four players into two pairs, so everybody
    partners everybody exactly once. The order never changes, which keeps
    fixture ids stable when a group is regenerated.

    Args:
        entrant_ids: Exactly four entrant ids, in group order
        group_name: Group name used for fixture ids (e.g. "A" gives "A-1")

    Returns:
        List of 3 Fixture objects

    Raises:
        InvalidGroupSize: If the group does not have exactly 4 entrants
    """
    if len(entrant_ids) != GROUP_SIZE:
        where = f"Group {group_name}" if group_name else "Group"
        raise InvalidGroupSize(
            f"{where} must have exactly {GROUP_SIZE} entrants, got {len(entrant_ids)}",
            field=group_name,
        )

    a, b, c, d = entrant_ids
    pairings = [
        ((a, b), (c, d)),
        ((a, c), (b, d)),
        ((a, d), (b, c)),
    ]
    prefix = group_name or "G"
    return [
        Fixture(
            id=f"{prefix}-{ordinal}",
            side_a=side_a,
            side_b=side_b,
            ordinal=ordinal,
            round_number=ordinal,
            group_name=group_name,
        )
        for ordinal, (side_a, side_b) in enumerate(pairings, start=1)
    ]


def form_groups(
    entrants: Union[list[Entrant], list[str]],
    seeded_ids: Iterable[str] = (),
    group_size: int = GROUP_SIZE,
    shuffle: Shuffle = random.shuffle,
) -> list[Group]:
    """Draw entrants into groups of four, at most one seed per group.

    Steps:
    1. Split entrants into seeded and unseeded pools
    2. Shuffle both pools independently
    3. Group i receives seed i (while seeds last)
    4. Unseeded entrants fill the groups cycling A, B, C... skipping full groups

    Args:
        entrants: Entrant objects or entrant ids
        seeded_ids: Ids of seeded entrants (ids not in entrants are ignored)
        group_size: Entrants per group (only 4 is supported)
        shuffle: In-place shuffle, e.g. random.Random(seed).shuffle for a
            reproducible draw

    Returns:
        List of Group objects named A, B, C... each with its 3 fixtures

    Raises:
        InvalidGroupSize: If group_size is not 4
        ImbalancedCohort: If entrants do not fill complete groups
        TooManySeeds: If there are more seeds than groups
    """
    if group_size != GROUP_SIZE:
        raise InvalidGroupSize(
            f"Group size must be {GROUP_SIZE}, got {group_size}", field="group_size"
        )

    entrant_ids = [e.id if isinstance(e, Entrant) else e for e in entrants]
    if not entrant_ids or len(entrant_ids) % group_size != 0:
        raise ImbalancedCohort(
            f"Cannot split {len(entrant_ids)} entrants into groups of {group_size}",
            field="entrants",
        )

    num_groups = len(entrant_ids) // group_size
    if num_groups > len(GROUP_LETTERS):
        raise ImbalancedCohort(
            f"At most {len(GROUP_LETTERS)} groups are supported, got {num_groups}",
            field="entrants",
        )

    seeded_set = set(seeded_ids)
    unknown = seeded_set.difference(entrant_ids)
    if unknown:
        logger.warning("Ignoring seeds that are not entrants: %s", sorted(unknown))

    seeded = [eid for eid in entrant_ids if eid in seeded_set]
    unseeded = [eid for eid in entrant_ids if eid not in seeded_set]

    if len(seeded) > num_groups:
        raise TooManySeeds(
            f"Number of seeds ({len(seeded)}) cannot exceed number of groups ({num_groups})",
            field="seeded_ids",
        )

    shuffle(seeded)
    shuffle(unseeded)

    members: list[list[str]] = [[] for _ in range(num_groups)]
    for group_idx, seed_id in enumerate(seeded):
        members[group_idx].append(seed_id)

    pending = list(unseeded)
    while pending:
        for group_idx in range(num_groups):
            if pending and len(members[group_idx]) < group_size:
                members[group_idx].append(pending.pop(0))

    # Fail closed: nothing dropped, nothing duplicated
    placed = [eid for group in members for eid in group]
    if sorted(placed) != sorted(entrant_ids) or any(len(m) != group_size for m in members):
        raise ImbalancedCohort("Group draw did not place every entrant exactly once", field="entrants")

    groups = []
    for group_idx, group_members in enumerate(members):
        name = GROUP_LETTERS[group_idx]
        groups.append(
            Group(
                name=name,
                entrant_ids=group_members,
                fixtures=generate_round_robin_fixtures(group_members, group_name=name),
            )
        )

    logger.info(
        "Formed %d groups from %d entrants (%d seeded)",
        len(groups), len(entrant_ids), len(seeded),
    )
    return groups


def create_groups(
    entrants: list[Entrant],
    seeded_ids: Iterable[str] = (),
    random_seed: Optional[int] = None,
    group_size: int = GROUP_SIZE,
) -> tuple[list[Group], list[Fixture]]:
    """Validate the cohort, draw groups and collect every fixture.

    Args:
        entrants: Confirmed entrants of the stage
        seeded_ids: Ids of seeded entrants
        random_seed: Optional random seed for a reproducible draw
        group_size: Entrants per group (only 4 is supported)

    Returns:
        Tuple of (groups, fixtures) with fixtures ordered by group then ordinal
    """
    validate_cohort_size(len(entrants), StageFormat.GROUPED)

    rng = random.Random(random_seed)
    groups = form_groups(entrants, seeded_ids, group_size=group_size, shuffle=rng.shuffle)
    fixtures = [fixture for group in groups for fixture in group.fixtures]
    return groups, fixtures
