"""Data models for quadra.

Domain model hierarchy:
- Stage contains Groups (round robin of pairs) or a Super-X Schedule
- Group contains four Entrants and three Fixtures
- Fixture is two pairs of entrants playing a single set
- StatRecord accumulates results per (entrant, stage) and per (entrant, stage, group)
- Confronto is a slot of the elimination bracket, played between two Seeds
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional


class RoundType(str, Enum):
    """Tournament round types."""

    ROUND_ROBIN = "RR"  # Group stage / Super-X
    ROUND_OF_32 = "R32"
    ROUND_OF_16 = "R16"
    QUARTERFINAL = "QF"
    SEMIFINAL = "SF"
    FINAL = "F"


class ConfrontoStatus(str, Enum):
    """Elimination bracket slot status."""

    SCHEDULED = "scheduled"
    BYE = "bye"  # Resolved without a match
    FINISHED = "finished"


class StageFormat(str, Enum):
    """How a stage arranges its entrants."""

    GROUPED = "grouped"  # Groups of 4, optional elimination bracket
    SUPER_X = "super_x"  # Fixed rotation table for 8 or 12 entrants


# ============================================================================
# Core Domain Models
# ============================================================================


@dataclass(frozen=True)
class Entrant:
    """Player admitted to a stage.

    Tier and category are display/grouping tags only.
    """

    id: str
    name: str
    tier: Optional[str] = None
    category: Optional[str] = None

    def __str__(self) -> str:
        """String representation."""
        tier_str = f" [{self.tier}]" if self.tier else ""
        return f"{self.name}{tier_str}"


@dataclass(frozen=True)
class IndexFixture:
    """Fixture of a Super-X table, expressed with entrant indices (0..N-1)."""

    side_a: tuple[int, int]
    side_b: tuple[int, int]

    @property
    def indices(self) -> tuple[int, int, int, int]:
        """All four indices, side A first."""
        return self.side_a + self.side_b


@dataclass(frozen=True)
class Round:
    """One round of a Super-X table."""

    number: int  # 1-based
    fixtures: tuple[IndexFixture, ...]


@dataclass(frozen=True)
class Schedule:
    """Complete Super-X rotation for a cohort size."""

    cohort_size: int
    rounds: tuple[Round, ...]

    @property
    def total_fixtures(self) -> int:
        """Number of fixtures across all rounds."""
        return sum(len(r.fixtures) for r in self.rounds)


@dataclass(frozen=True)
class Fixture:
    """A match between two pairs of entrants.

    Ids are stable across regenerations: the same group and ordinal always
    produce the same fixture id.
    """

    id: str
    side_a: tuple[str, str]
    side_b: tuple[str, str]
    ordinal: int
    round_number: Optional[int] = None
    group_name: Optional[str] = None

    @property
    def entrant_ids(self) -> tuple[str, str, str, str]:
        """All four entrant ids, side A first."""
        return self.side_a + self.side_b

    def __str__(self) -> str:
        """String representation."""
        return f"{self.id}: {' + '.join(self.side_a)} vs {' + '.join(self.side_b)}"


@dataclass
class Group:
    """Group of four entrants playing the three partner rotations."""

    name: str  # A, B, C, etc.
    entrant_ids: list[str]
    fixtures: list[Fixture] = field(default_factory=list)
    finished_fixture_ids: set[str] = field(default_factory=set)

    @property
    def complete(self) -> bool:
        """True once every fixture of the group has a recorded result."""
        return bool(self.fixtures) and all(
            f.id in self.finished_fixture_ids for f in self.fixtures
        )

    def mark_finished(self, fixture_id: str) -> None:
        """Register a finished fixture of this group.

        Raises:
            KeyError: If the fixture does not belong to the group
        """
        if fixture_id not in {f.id for f in self.fixtures}:
            raise KeyError(f"Fixture {fixture_id} does not belong to group {self.name}")
        self.finished_fixture_ids.add(fixture_id)


@dataclass(frozen=True)
class MatchResult:
    """Single-set result of a fixture.

    The set is the whole match: the side with more games wins it.
    """

    fixture: Fixture
    games_a: int
    games_b: int

    @property
    def winner_side(self) -> int:
        """Return 1 when side A won, 2 when side B won."""
        return 1 if self.games_a > self.games_b else 2

    @property
    def winners(self) -> tuple[str, str]:
        """Entrant ids of the winning pair."""
        return self.fixture.side_a if self.winner_side == 1 else self.fixture.side_b


@dataclass(frozen=True)
class Scope:
    """Where a result is accounted.

    With a group name the scope is stage+group (group play, Super-X); without
    one it is stage-global (elimination bracket).
    """

    stage_id: str
    group_name: Optional[str] = None

    @property
    def is_group(self) -> bool:
        """True for the stage+group scope."""
        return self.group_name is not None

    @property
    def stage_scope(self) -> "Scope":
        """The stage-global scope enclosing this one."""
        return Scope(self.stage_id)

    def __str__(self) -> str:
        """String representation."""
        if self.group_name is None:
            return f"stage {self.stage_id}"
        return f"stage {self.stage_id} / group {self.group_name}"


# Counter fields shared by StatRecord, StatDelta and AggregateStanding
COUNTER_FIELDS = (
    "matches_played",
    "wins",
    "losses",
    "points",
    "sets_won",
    "sets_lost",
    "games_won",
    "games_lost",
)


@dataclass
class StatRecord:
    """Cumulative counters of one entrant in one scope.

    Counters change only through StatsLedger increments.
    """

    entrant_id: str
    stage_id: str
    group_name: Optional[str] = None
    matches_played: int = 0
    wins: int = 0
    losses: int = 0
    points: int = 0
    sets_won: int = 0
    sets_lost: int = 0
    games_won: int = 0
    games_lost: int = 0
    rank_position: Optional[int] = None
    qualified: bool = False

    @property
    def scope(self) -> Scope:
        """Scope this record accounts for."""
        return Scope(self.stage_id, self.group_name)

    @property
    def key(self) -> tuple[str, str, Optional[str]]:
        """Identity of the record: (entrant, stage, group)."""
        return (self.entrant_id, self.stage_id, self.group_name)

    @property
    def set_balance(self) -> int:
        """Sets won minus sets lost."""
        return self.sets_won - self.sets_lost

    @property
    def game_balance(self) -> int:
        """Games won minus games lost."""
        return self.games_won - self.games_lost

    def counters(self) -> dict[str, int]:
        """Return the counter fields as a dictionary."""
        return {name: getattr(self, name) for name in COUNTER_FIELDS}

    def copy(self) -> "StatRecord":
        """Return an independent copy."""
        return replace(self)


@dataclass(frozen=True)
class StatDelta:
    """Signed increments for one entrant produced by one result."""

    entrant_id: str
    fixture_id: str
    scope: Scope
    matches_played: int = 0
    wins: int = 0
    losses: int = 0
    points: int = 0
    sets_won: int = 0
    sets_lost: int = 0
    games_won: int = 0
    games_lost: int = 0

    def increments(self) -> dict[str, int]:
        """Return the counter increments as a dictionary."""
        return {name: getattr(self, name) for name in COUNTER_FIELDS}

    def negated(self) -> "StatDelta":
        """Return the exact reversal of this delta."""
        return replace(self, **{name: -value for name, value in self.increments().items()})

    def targets(self) -> list[Scope]:
        """Scopes whose records receive this delta.

        Group results also roll up into the stage-global record.
        """
        if self.scope.is_group:
            return [self.scope, self.scope.stage_scope]
        return [self.scope]


@dataclass(frozen=True)
class Seed:
    """Bracket entry, ordered by rank when passed to the seeder.

    For pair formats a seed is a team of two qualified entrants.
    """

    id: str
    name: str
    origin: str = ""  # e.g. "1st Group A + 2nd Group C"
    member_ids: tuple[str, ...] = ()

    def __str__(self) -> str:
        """String representation."""
        return f"{self.name} ({self.origin})" if self.origin else self.name


@dataclass(frozen=True)
class Confronto:
    """Slot of the elimination bracket."""

    ordinal: int  # 1-based, left to right
    round_type: RoundType
    side_a: Seed
    side_b: Optional[Seed] = None  # None for a bye
    status: ConfrontoStatus = ConfrontoStatus.SCHEDULED
    winner: Optional[Seed] = None
    games_a: Optional[int] = None
    games_b: Optional[int] = None

    @property
    def id(self) -> str:
        """Stable identifier, e.g. QF-2."""
        return f"{self.round_type.value}-{self.ordinal}"

    @property
    def is_bye(self) -> bool:
        """True when the slot resolved without a match."""
        return self.status == ConfrontoStatus.BYE

    @property
    def is_resolved(self) -> bool:
        """True once the slot has a winner."""
        return self.winner is not None

    def to_fixture(self) -> Fixture:
        """Express a scheduled confronto as a fixture between two pairs.

        Raises:
            ValueError: If the confronto is a bye or a side is not a pair
        """
        if self.side_b is None:
            raise ValueError(f"Confronto {self.id} is a bye and has no fixture")
        if len(self.side_a.member_ids) != 2 or len(self.side_b.member_ids) != 2:
            raise ValueError(f"Confronto {self.id} is not played between two pairs")
        return Fixture(
            id=self.id,
            side_a=tuple(self.side_a.member_ids),
            side_b=tuple(self.side_b.member_ids),
            ordinal=self.ordinal,
        )

    def __str__(self) -> str:
        """String representation."""
        if self.side_b is None:
            return f"{self.id}: {self.side_a} - BYE"
        return f"{self.id}: {self.side_a} vs {self.side_b}"


@dataclass
class Stage:
    """Tournament stage.

    Stages created before the ranking flag existed carry None and count
    toward the cross-stage ranking.
    """

    id: str
    name: str
    format: StageFormat = StageFormat.GROUPED
    counts_toward_ranking: Optional[bool] = None

    @property
    def counts_for_ranking(self) -> bool:
        """Whether this stage is summed into the cross-stage ranking."""
        return True if self.counts_toward_ranking is None else self.counts_toward_ranking


@dataclass
class AggregateStanding:
    """Counters of one entrant summed over several stages."""

    entrant_id: str
    stages_played: int = 0
    matches_played: int = 0
    wins: int = 0
    losses: int = 0
    points: int = 0
    sets_won: int = 0
    sets_lost: int = 0
    games_won: int = 0
    games_lost: int = 0
    rank_position: Optional[int] = None

    @property
    def set_balance(self) -> int:
        """Sets won minus sets lost."""
        return self.sets_won - self.sets_lost

    @property
    def game_balance(self) -> int:
        """Games won minus games lost."""
        return self.games_won - self.games_lost
