"""Reversible statistics ledger.

Every result is turned into four StatDeltas (one per entrant of the two pairs)
and folded into StatRecords as increments. The deltas applied for a fixture are
kept, so reverting a result negates exactly what was applied instead of
recomputing from zero. Re-scoring a finished fixture is a revert followed by
an apply.

Scoring:
- Group play: win = 3 points
- Stage-global play (elimination bracket): no points, the win counter
  carries the result

A Super-X stage is one group, so its results score group points.

Group results also roll up into the entrant's stage-global record.
"""

import logging
import threading
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, Optional, Union

from quadra.models import (
    COUNTER_FIELDS,
    Confronto,
    Fixture,
    MatchResult,
    Scope,
    StatDelta,
    StatRecord,
)
from quadra.validation import (
    EditWindowClosed,
    InvalidScore,
    RevertWithoutApply,
    UnknownStatRecord,
    ValidationError,
    validate_set_score,
)

logger = logging.getLogger(__name__)

GROUP_WIN_POINTS = 3
STAGE_WIN_POINTS = 0

RecordKey = tuple[str, str, Optional[str]]
JournalKey = tuple[str, str]  # (stage_id, fixture_id)


def _record_key(entrant_id: str, scope: Scope) -> RecordKey:
    return (entrant_id, scope.stage_id, scope.group_name)


def _sort_key(key: RecordKey) -> tuple[str, str, str]:
    entrant_id, stage_id, group_name = key
    return (entrant_id, stage_id, group_name or "")


def build_deltas(
    result: MatchResult,
    scope: Scope,
    win_points: Optional[int] = None,
) -> list[StatDelta]:
    """Compute the four deltas of a result.

    Args:
        result: Single-set result of a two-pair fixture
        scope: Scope the result is accounted in
        win_points: Points per win (default 3 in group scope, 0 otherwise)

    Returns:
        Deltas for side A's entrants followed by side B's

    Raises:
        InvalidScore: If the set score is not legal
        ValidationError: If the fixture belongs to another group than the scope
    """
    fixture = result.fixture
    is_valid, error_msg = validate_set_score(result.games_a, result.games_b)
    if not is_valid:
        raise InvalidScore(f"Fixture {fixture.id}: {error_msg}", field=fixture.id)

    if scope.is_group and fixture.group_name and fixture.group_name != scope.group_name:
        raise ValidationError(
            f"Fixture {fixture.id} belongs to group {fixture.group_name}, not {scope.group_name}",
            field=fixture.id,
        )

    if win_points is None:
        win_points = GROUP_WIN_POINTS if scope.is_group else STAGE_WIN_POINTS

    deltas = []
    for side, own, opponent in (
        (fixture.side_a, result.games_a, result.games_b),
        (fixture.side_b, result.games_b, result.games_a),
    ):
        won = own > opponent
        for entrant_id in side:
            deltas.append(
                StatDelta(
                    entrant_id=entrant_id,
                    fixture_id=fixture.id,
                    scope=scope,
                    matches_played=1,
                    wins=1 if won else 0,
                    losses=0 if won else 1,
                    points=win_points if won else 0,
                    sets_won=1 if won else 0,
                    sets_lost=0 if won else 1,
                    games_won=own,
                    games_lost=opponent,
                )
            )
    return deltas


def affected_groups(deltas: Iterable[StatDelta]) -> set[str]:
    """Names of the groups touched by a set of deltas."""
    return {d.scope.group_name for d in deltas if d.scope.group_name is not None}


class StatsLedger:
    """In-memory ledger of StatRecords.

    Each record has its own lock; a fold takes the locks of the records it
    touches (in a fixed order), checks them and applies every increment, so
    batches on disjoint records run in parallel and a failed fold changes
    nothing. Apply and revert of the same fixture must not run concurrently.
    """

    def __init__(
        self,
        group_win_points: int = GROUP_WIN_POINTS,
        stage_win_points: int = STAGE_WIN_POINTS,
    ):
        self.group_win_points = group_win_points
        self.stage_win_points = stage_win_points
        self._records: dict[RecordKey, StatRecord] = {}
        self._locks: dict[RecordKey, threading.Lock] = {}
        self._registry_lock = threading.Lock()
        self._applied: dict[JournalKey, tuple[StatDelta, ...]] = {}
        self._journal_lock = threading.Lock()
        self._closed_group_phases: set[str] = set()
        self._locked_fixtures: set[JournalKey] = set()

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    def admit(self, entrant_id: str, scope: Scope) -> StatRecord:
        """Create zeroed records for an entrant entering a scope.

        Admission to a group also creates the stage-global record. Admitting
        twice keeps the existing counters.

        Returns:
            Copy of the record for the requested scope
        """
        scopes = [scope, scope.stage_scope] if scope.is_group else [scope]
        with self._registry_lock:
            for target in scopes:
                key = _record_key(entrant_id, target)
                if key not in self._records:
                    self._records[key] = StatRecord(
                        entrant_id=entrant_id,
                        stage_id=target.stage_id,
                        group_name=target.group_name,
                    )
                    self._locks[key] = threading.Lock()
        return self.get(entrant_id, scope)

    def load(
        self,
        records: Iterable[StatRecord],
        applied: Optional[dict[JournalKey, tuple[StatDelta, ...]]] = None,
        closed_group_phases: Iterable[str] = (),
        locked_fixtures: Iterable[JournalKey] = (),
    ) -> None:
        """Seed the ledger with persisted records, applied results and edit windows."""
        with self._registry_lock:
            for record in records:
                self._records[record.key] = record.copy()
                self._locks.setdefault(record.key, threading.Lock())
        with self._journal_lock:
            self._applied.update(applied or {})
        self._closed_group_phases.update(closed_group_phases)
        self._locked_fixtures.update(locked_fixtures)

    def get(self, entrant_id: str, scope: Scope) -> StatRecord:
        """Return a copy of one record.

        Raises:
            UnknownStatRecord: If the entrant was never admitted to the scope
        """
        key = _record_key(entrant_id, scope)
        record = self._records.get(key)
        if record is None:
            raise UnknownStatRecord(
                f"Entrant {entrant_id} was not admitted to {scope}", field=entrant_id
            )
        with self._locks[key]:
            return record.copy()

    def snapshot(self, stage_id: str, group_name: Optional[str] = None) -> list[StatRecord]:
        """Copies of the records of a group, or of the stage-global scope.

        Records keep their admission order.
        """
        with self._registry_lock:
            keys = [
                key for key in self._records
                if key[1] == stage_id and key[2] == group_name
            ]
        snapshot = []
        for key in keys:
            with self._locks[key]:
                snapshot.append(self._records[key].copy())
        return snapshot

    def record_standings(self, ranked: Iterable[StatRecord]) -> None:
        """Store rank positions and qualification computed by the ranking."""
        for record in ranked:
            key = record.key
            if key not in self._records:
                raise UnknownStatRecord(
                    f"Entrant {record.entrant_id} was not admitted to {record.scope}",
                    field=record.entrant_id,
                )
            with self._locks[key]:
                self._records[key].rank_position = record.rank_position
                self._records[key].qualified = record.qualified

    def reset_stage(self, stage_id: str) -> None:
        """Forget every record, result and edit lock of a cancelled stage."""
        with self._registry_lock:
            for key in [k for k in self._records if k[1] == stage_id]:
                del self._records[key]
                del self._locks[key]
        with self._journal_lock:
            for key in [k for k in self._applied if k[0] == stage_id]:
                del self._applied[key]
        self._locked_fixtures = {k for k in self._locked_fixtures if k[0] != stage_id}
        self._closed_group_phases.discard(stage_id)
        logger.info("Reset ledger of stage %s", stage_id)

    # ------------------------------------------------------------------
    # Edit windows
    # ------------------------------------------------------------------

    def close_group_phase(self, stage_id: str) -> None:
        """Reject further group results of a stage (its bracket exists)."""
        self._closed_group_phases.add(stage_id)

    def reopen_group_phase(self, stage_id: str) -> None:
        """Accept group results again (the bracket was cancelled)."""
        self._closed_group_phases.discard(stage_id)

    def lock_fixture(self, stage_id: str, fixture_id: str) -> None:
        """Reject further changes to one fixture."""
        self._locked_fixtures.add((stage_id, fixture_id))

    def lock_round(self, stage_id: str, confrontos: Iterable[Confronto]) -> None:
        """Lock the played confrontos of a bracket round the next round was built from."""
        for confronto in confrontos:
            if not confronto.is_bye:
                self.lock_fixture(stage_id, confronto.id)

    def is_group_phase_closed(self, stage_id: str) -> bool:
        return stage_id in self._closed_group_phases

    def _check_edit_window(self, fixture_id: str, scope: Scope) -> None:
        if scope.is_group and scope.stage_id in self._closed_group_phases:
            raise EditWindowClosed(
                f"Fixture {fixture_id} of group {scope.group_name} cannot change: "
                f"the group phase of stage {scope.stage_id} is closed",
                field=fixture_id,
            )
        if (scope.stage_id, fixture_id) in self._locked_fixtures:
            raise EditWindowClosed(
                f"Fixture {fixture_id} of stage {scope.stage_id} is locked", field=fixture_id
            )

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    def is_applied(self, fixture_id: str, stage_id: str) -> bool:
        return (stage_id, fixture_id) in self._applied

    def applied_deltas(self, fixture_id: str, stage_id: str) -> tuple[StatDelta, ...]:
        """Deltas currently applied for a fixture (empty if none)."""
        return self._applied.get((stage_id, fixture_id), ())

    def _win_points(self, scope: Scope) -> int:
        return self.group_win_points if scope.is_group else self.stage_win_points

    def _check_known(self, deltas: Iterable[StatDelta]) -> None:
        for delta in deltas:
            for target in delta.targets():
                if _record_key(delta.entrant_id, target) not in self._records:
                    raise UnknownStatRecord(
                        f"Fixture {delta.fixture_id}: entrant {delta.entrant_id} "
                        f"was not admitted to {target}",
                        field=delta.entrant_id,
                    )

    def _fold(self, deltas: list[StatDelta]) -> None:
        """Add deltas to their records as one all-or-nothing step."""
        self._check_known(deltas)

        increments: dict[RecordKey, dict[str, int]] = defaultdict(lambda: defaultdict(int))
        for delta in deltas:
            for target in delta.targets():
                totals = increments[_record_key(delta.entrant_id, target)]
                for name, value in delta.increments().items():
                    totals[name] += value

        keys = sorted(increments, key=_sort_key)
        locks = [self._locks[key] for key in keys]
        for lock in locks:
            lock.acquire()
        try:
            for key in keys:
                record = self._records[key]
                for name, value in increments[key].items():
                    if getattr(record, name) + value < 0:
                        raise ValidationError(
                            f"Counter {name} of entrant {key[0]} would drop below zero",
                            field=key[0],
                        )
            for key in keys:
                record = self._records[key]
                for name in COUNTER_FIELDS:
                    value = increments[key].get(name, 0)
                    if value:
                        setattr(record, name, getattr(record, name) + value)
        finally:
            for lock in reversed(locks):
                lock.release()

    def apply(self, result: MatchResult, scope: Scope) -> list[StatDelta]:
        """Fold a result into the ledger.

        Applying the same score twice changes nothing. Applying a different
        score to a fixture that already has one reverts the old deltas and
        applies the new ones in a single step.

        Returns:
            The four deltas now applied for the fixture

        Raises:
            EditWindowClosed: If the fixture can no longer change
            InvalidScore: If the set score is not legal
            UnknownStatRecord: If an entrant was never admitted to the scope
        """
        fixture_id = result.fixture.id
        self._check_edit_window(fixture_id, scope)
        deltas = build_deltas(result, scope, self._win_points(scope))

        journal_key = (scope.stage_id, fixture_id)
        previous = self._applied.get(journal_key)
        if previous is not None and previous == tuple(deltas):
            logger.debug("Fixture %s already applied with the same score", fixture_id)
            return list(previous)

        to_fold = list(deltas)
        if previous is not None:
            logger.info("Re-scoring fixture %s in %s", fixture_id, scope)
            to_fold = [d.negated() for d in previous] + to_fold

        self._fold(to_fold)
        with self._journal_lock:
            self._applied[journal_key] = tuple(deltas)

        logger.debug(
            "Applied fixture %s (%d-%d) in %s",
            fixture_id, result.games_a, result.games_b, scope,
        )
        return deltas

    def revert(self, result: Union[MatchResult, Fixture], scope: Scope) -> list[StatDelta]:
        """Undo the result applied for a fixture.

        Returns:
            The negated deltas that were folded

        Raises:
            RevertWithoutApply: If the fixture has no applied result
            EditWindowClosed: If the fixture can no longer change
        """
        fixture = result.fixture if isinstance(result, MatchResult) else result
        self._check_edit_window(fixture.id, scope)

        journal_key = (scope.stage_id, fixture.id)
        previous = self._applied.get(journal_key)
        if previous is None:
            raise RevertWithoutApply(
                f"Fixture {fixture.id} has no applied result in {scope}", field=fixture.id
            )

        reversal = [d.negated() for d in previous]
        self._fold(reversal)
        with self._journal_lock:
            del self._applied[journal_key]

        logger.debug("Reverted fixture %s in %s", fixture.id, scope)
        return reversal

    def edit(self, result: MatchResult, scope: Scope) -> list[StatDelta]:
        """Re-score a finished fixture (revert, then apply the new score).

        Raises:
            RevertWithoutApply: If the fixture has no applied result
        """
        if not self.is_applied(result.fixture.id, scope.stage_id):
            raise RevertWithoutApply(
                f"Fixture {result.fixture.id} has no applied result in {scope}",
                field=result.fixture.id,
            )
        return self.apply(result, scope)

    def apply_batch(
        self,
        results: list[MatchResult],
        scope: Scope,
        max_workers: Optional[int] = None,
    ) -> list[StatDelta]:
        """Apply many results of one scope.

        The whole batch is validated before anything is folded. Each fixture
        is then folded as an independent task; with max_workers the tasks run
        on a thread pool.

        Returns:
            Deltas of every result, in input order

        Raises:
            ValidationError: Duplicate fixture in the batch, or any error
                apply would raise for one of the results
        """
        seen = set()
        for result in results:
            fixture_id = result.fixture.id
            if fixture_id in seen:
                raise ValidationError(
                    f"Fixture {fixture_id} appears twice in the batch", field=fixture_id
                )
            seen.add(fixture_id)
            self._check_edit_window(fixture_id, scope)
            self._check_known(build_deltas(result, scope, self._win_points(scope)))

        if max_workers:
            with ThreadPoolExecutor(max_workers=max_workers) as executor:
                per_fixture = list(executor.map(lambda r: self.apply(r, scope), results))
        else:
            per_fixture = [self.apply(result, scope) for result in results]

        logger.info("Applied batch of %d results in %s", len(results), scope)
        return [delta for deltas in per_fixture for delta in deltas]
