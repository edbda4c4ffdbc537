"""Knockout bracket generator.

Qualified entrants are first formed into teams by one of three strategies,
then the ordered teams are placed in a single-elimination bracket using the
classic seed order. That order hands the byes to the top seeds, pairs the best
remaining seed with the weakest remaining one and keeps seeds 1 and 2 in
opposite halves so they can only meet in the final.
"""

import logging
import math
import random
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Optional, Union

from quadra.models import Confronto, ConfrontoStatus, RoundType, Seed, StatRecord
from quadra.standings import ranking_key
from quadra.validation import (
    ImbalancedCohort,
    InsufficientQualifiers,
    InvalidScore,
    ValidationError,
    validate_set_score,
)

logger = logging.getLogger(__name__)

MAX_DRAW_ATTEMPTS = 100

Shuffle = Callable[[list], None]


def next_power_of_2(n: int) -> int:
    """Return the next power of 2 >= n.

    Examples:
        >>> next_power_of_2(5)
        8
        >>> next_power_of_2(8)
        8
        >>> next_power_of_2(15)
        16
    """
    if n <= 0:
        return 1
    return 2 ** math.ceil(math.log2(n))


def get_round_type_for_size(bracket_size: int) -> RoundType:
    """Get the RoundType for a given bracket size.

    Args:
        bracket_size: Power of 2 (2, 4, 8, 16, 32)

    Returns:
        RoundType for the first round
    """
    if bracket_size == 2:
        return RoundType.FINAL
    elif bracket_size == 4:
        return RoundType.SEMIFINAL
    elif bracket_size == 8:
        return RoundType.QUARTERFINAL
    elif bracket_size == 16:
        return RoundType.ROUND_OF_16
    else:
        return RoundType.ROUND_OF_32


@dataclass(frozen=True)
class BracketSize:
    """Dimensions of an elimination bracket."""

    qualifiers: int
    bracket_size: int
    byes: int
    real_matches: int
    total_confrontos: int


def calculate_byes(num_qualifiers: int) -> BracketSize:
    """Compute bracket size, byes and first-round matches.

    Args:
        num_qualifiers: Number of qualified seeds (T)

    Returns:
        BracketSize with P = next power of 2 >= T, byes = P - T,
        real_matches = (T - byes) / 2 and P / 2 confrontos

    Raises:
        InsufficientQualifiers: If fewer than 2 qualifiers

    Examples:
        >>> calculate_byes(5)
        BracketSize(qualifiers=5, bracket_size=8, byes=3, real_matches=1, total_confrontos=4)
    """
    if num_qualifiers < 2:
        raise InsufficientQualifiers(
            f"An elimination bracket needs at least 2 qualifiers, got {num_qualifiers}",
            field="qualifiers",
        )
    bracket_size = next_power_of_2(num_qualifiers)
    byes = bracket_size - num_qualifiers
    return BracketSize(
        qualifiers=num_qualifiers,
        bracket_size=bracket_size,
        byes=byes,
        real_matches=(num_qualifiers - byes) // 2,
        total_confrontos=bracket_size // 2,
    )


def generate_bracket_order(bracket_size: int) -> list[int]:
    """Classic seed order for a bracket of the given size.

    Each level doubles the previous one by following every seed s with its
    opponent n + 1 - s, so slots (1, 2), (3, 4)... hold first-round pairings.

    Examples:
        >>> generate_bracket_order(4)
        [1, 4, 2, 3]
        >>> generate_bracket_order(8)
        [1, 8, 4, 5, 2, 7, 3, 6]
    """
    if bracket_size < 2 or bracket_size & (bracket_size - 1):
        raise ValueError(f"Bracket size must be a power of 2 >= 2, got {bracket_size}")

    order = [1]
    while len(order) < bracket_size:
        n = len(order) * 2
        order = [slot for seed in order for slot in (seed, n + 1 - seed)]
    return order


def seed_bracket(seeds: list[Seed]) -> list[Confronto]:
    """Place ranked seeds into the first round of the bracket.

    Seeds beyond the number of qualifiers are byes: the seed facing one
    advances immediately and the confronto never reaches the stats ledger.

    Real matches keep bracket slot order rather than seed order: with six
    seeds QF-2 is 4 v 5 and QF-4 is 3 v 6, so the best seed left without a
    bye still meets the weakest one, just not in the first real slot.

    Args:
        seeds: Seeds ordered by rank (index 0 is the strongest)

    Returns:
        P / 2 confrontos, ordinal 1 to P / 2, left to right

    Raises:
        InsufficientQualifiers: If fewer than 2 seeds
    """
    size = calculate_byes(len(seeds))
    order = generate_bracket_order(size.bracket_size)
    round_type = get_round_type_for_size(size.bracket_size)

    confrontos = []
    for ordinal in range(1, size.total_confrontos + 1):
        top = seeds[order[2 * ordinal - 2] - 1]
        bottom_rank = order[2 * ordinal - 1]

        if bottom_rank > size.qualifiers:
            confrontos.append(
                Confronto(
                    ordinal=ordinal,
                    round_type=round_type,
                    side_a=top,
                    status=ConfrontoStatus.BYE,
                    winner=top,
                )
            )
        else:
            confrontos.append(
                Confronto(
                    ordinal=ordinal,
                    round_type=round_type,
                    side_a=top,
                    side_b=seeds[bottom_rank - 1],
                )
            )

    logger.info(
        "Seeded %d qualifiers into a bracket of %d (%d byes, %d matches)",
        size.qualifiers, size.bracket_size, size.byes, size.real_matches,
    )
    return confrontos


def record_confronto_result(confronto: Confronto, games_a: int, games_b: int) -> Confronto:
    """Return a finished copy of a confronto with its single-set score.

    Raises:
        ValidationError: If the confronto is a bye
        InvalidScore: If the score is not a legal set
    """
    if confronto.side_b is None:
        raise ValidationError(f"Confronto {confronto.id} is a bye", field=confronto.id)

    is_valid, error_msg = validate_set_score(games_a, games_b)
    if not is_valid:
        raise InvalidScore(f"Confronto {confronto.id}: {error_msg}", field=confronto.id)

    winner = confronto.side_a if games_a > games_b else confronto.side_b
    return replace(
        confronto,
        status=ConfrontoStatus.FINISHED,
        winner=winner,
        games_a=games_a,
        games_b=games_b,
    )


def advance_round(confrontos: list[Confronto]) -> list[Confronto]:
    """Build the next round from the winners of the current one.

    Winners of ordinals (1, 2), (3, 4)... meet in the next round.

    Args:
        confrontos: Every confronto of the current round, ordered by ordinal

    Returns:
        Next-round confrontos, or an empty list once the final is decided

    Raises:
        ValidationError: If a confronto of the round has no winner yet
    """
    pending = [c.id for c in confrontos if not c.is_resolved]
    if pending:
        raise ValidationError(
            f"Round is not finished, pending confrontos: {', '.join(pending)}",
            field="confrontos",
        )

    if len(confrontos) <= 1:
        return []

    ordered = sorted(confrontos, key=lambda c: c.ordinal)
    round_type = get_round_type_for_size(len(ordered))
    next_round = [
        Confronto(
            ordinal=i // 2 + 1,
            round_type=round_type,
            side_a=ordered[i].winner,
            side_b=ordered[i + 1].winner,
        )
        for i in range(0, len(ordered), 2)
    ]
    logger.info("Advanced to %s with %d confrontos", round_type.value, len(next_round))
    return next_round


def champion(confrontos: list[Confronto]) -> Optional[Seed]:
    """Return the winner of a decided final, None otherwise."""
    if len(confrontos) == 1 and confrontos[0].round_type == RoundType.FINAL:
        return confrontos[0].winner
    return None


def consumed_rounds(rounds: list[list[Confronto]]) -> list[list[Confronto]]:
    """Rounds whose results are final: a later round was built from them, or the final is decided."""
    if rounds and champion(rounds[-1]) is not None:
        return list(rounds)
    return list(rounds[:-1])


# ============================================================================
# Team forming strategies
# ============================================================================


class BracketStrategy(str, Enum):
    """How group qualifiers are paired into teams for the bracket."""

    STRONGEST_PAIRED = "strongest_paired"  # group winners together
    CROSS_RANKED = "cross_ranked"  # i-th best winner with i-th best runner-up
    RANDOM_DRAW = "random_draw"  # random partners from different groups


Pairing = list[tuple[StatRecord, StatRecord]]


def _ordinal(n: Optional[int]) -> str:
    if n is None:
        return "-"
    suffix = {1: "st", 2: "nd", 3: "rd"}.get(n if n < 20 else n % 10, "th")
    return f"{n}{suffix}"


def order_qualifiers(qualifiers: list[StatRecord]) -> list[StatRecord]:
    """Order qualifiers by group position, then by the ranking chain.

    All group winners come first (best record first), then all runners-up.
    """
    return sorted(qualifiers, key=lambda q: ((q.rank_position or 0),) + ranking_key(q))


def _pair_strongest(ordered: list[StatRecord], shuffle: Shuffle) -> Pairing:
    # Leftover winner (odd group count) falls in with the best runner-up
    return [(ordered[i], ordered[i + 1]) for i in range(0, len(ordered), 2)]


def _pair_cross_ranked(ordered: list[StatRecord], shuffle: Shuffle) -> Pairing:
    half = len(ordered) // 2
    return list(zip(ordered[:half], ordered[half:]))


def _pair_across_groups(pool: list[StatRecord]) -> Optional[Pairing]:
    remaining = list(pool)
    pairs = []
    while remaining:
        first = remaining.pop(0)
        partner_idx = next(
            (i for i, q in enumerate(remaining) if q.group_name != first.group_name), None
        )
        if partner_idx is None:
            return None
        pairs.append((first, remaining.pop(partner_idx)))
    return pairs


def _pair_random(ordered: list[StatRecord], shuffle: Shuffle) -> Pairing:
    pool = list(ordered)
    for _ in range(MAX_DRAW_ATTEMPTS):
        shuffle(pool)
        pairs = _pair_across_groups(pool)
        if pairs is not None:
            return pairs
    raise ImbalancedCohort(
        f"Could not draw partners from different groups after {MAX_DRAW_ATTEMPTS} attempts",
        field="qualifiers",
    )


STRATEGIES: dict[BracketStrategy, Callable[[list[StatRecord], Shuffle], Pairing]] = {
    BracketStrategy.STRONGEST_PAIRED: _pair_strongest,
    BracketStrategy.CROSS_RANKED: _pair_cross_ranked,
    BracketStrategy.RANDOM_DRAW: _pair_random,
}


def form_teams(
    qualifiers: list[StatRecord],
    strategy: Union[BracketStrategy, str] = BracketStrategy.STRONGEST_PAIRED,
    shuffle: Shuffle = random.shuffle,
    names: Optional[dict[str, str]] = None,
) -> list[Seed]:
    """Pair individual qualifiers into bracket teams.

    Args:
        qualifiers: Qualified group records (rank_position set)
        strategy: Team forming strategy
        shuffle: In-place shuffle used by RANDOM_DRAW
        names: Optional entrant id -> display name mapping

    Returns:
        Team seeds ordered by strength, ready for seed_bracket

    Raises:
        ImbalancedCohort: Odd number of qualifiers, or no valid random draw
    """
    strategy = BracketStrategy(strategy)
    names = names or {}

    if len(qualifiers) % 2 != 0:
        raise ImbalancedCohort(
            f"Cannot pair an odd number of qualifiers ({len(qualifiers)})", field="qualifiers"
        )

    pairs = STRATEGIES[strategy](order_qualifiers(qualifiers), shuffle)

    seeds = []
    for first, second in pairs:
        seeds.append(
            Seed(
                id=f"{first.entrant_id}+{second.entrant_id}",
                name=f"{names.get(first.entrant_id, first.entrant_id)} / "
                     f"{names.get(second.entrant_id, second.entrant_id)}",
                origin=f"{_ordinal(first.rank_position)} {first.group_name or '-'} + "
                       f"{_ordinal(second.rank_position)} {second.group_name or '-'}",
                member_ids=(first.entrant_id, second.entrant_id),
            )
        )

    logger.info("Formed %d teams with strategy %s", len(seeds), strategy.value)
    return seeds


def build_bracket(
    qualifiers: list[StatRecord],
    strategy: Union[BracketStrategy, str] = BracketStrategy.STRONGEST_PAIRED,
    shuffle: Shuffle = random.shuffle,
    names: Optional[dict[str, str]] = None,
) -> list[Confronto]:
    """Form teams from group qualifiers and seed the first bracket round.

    Raises:
        ImbalancedCohort: If the qualifiers cannot be paired
        InsufficientQualifiers: If fewer than 2 teams result
    """
    return seed_bracket(form_teams(qualifiers, strategy, shuffle, names))
