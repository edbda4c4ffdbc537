"""Tests for the reversible stats ledger."""

import pytest

from quadra.bracket import record_confronto_result, seed_bracket
from quadra.group_builder import generate_round_robin_fixtures
from quadra.ledger import StatsLedger, affected_groups, build_deltas
from quadra.models import Fixture, MatchResult, Scope, Seed, StatDelta, StatRecord
from quadra.super_x import build_super_x_fixtures
from quadra.validation import (
    EditWindowClosed,
    InvalidScore,
    RevertWithoutApply,
    UnknownStatRecord,
    ValidationError,
)

GROUP_A = Scope("s1", "A")
STAGE = Scope("s1")
PLAYERS = ["p1", "p2", "p3", "p4"]


@pytest.fixture
def fixtures():
    """A-1: p1+p2 v p3+p4, A-2: p1+p3 v p2+p4, A-3: p1+p4 v p2+p3."""
    return generate_round_robin_fixtures(PLAYERS, group_name="A")


@pytest.fixture
def ledger():
    ledger = StatsLedger()
    for entrant_id in PLAYERS:
        ledger.admit(entrant_id, GROUP_A)
    return ledger


def play_group(ledger, fixtures):
    """p1 wins all three fixtures: 6-3, 6-4, 6-2."""
    for fixture, score in zip(fixtures, [(6, 3), (6, 4), (6, 2)]):
        ledger.apply(MatchResult(fixture, *score), GROUP_A)


def by_id(records):
    return {r.entrant_id: r for r in records}


def test_build_deltas(fixtures):
    deltas = build_deltas(MatchResult(fixtures[0], 6, 3), GROUP_A)

    assert [d.entrant_id for d in deltas] == ["p1", "p2", "p3", "p4"]
    winner, loser = deltas[0], deltas[2]
    assert (winner.wins, winner.losses, winner.points) == (1, 0, 3)
    assert (winner.sets_won, winner.games_won, winner.games_lost) == (1, 6, 3)
    assert (loser.wins, loser.losses, loser.points) == (0, 1, 0)
    assert (loser.sets_lost, loser.games_won, loser.games_lost) == (1, 3, 6)
    assert all(d.matches_played == 1 and d.fixture_id == "A-1" for d in deltas)


def test_stage_scope_scores_no_points(fixtures):
    deltas = build_deltas(MatchResult(fixtures[0], 6, 3), STAGE)
    assert deltas[0].wins == 1
    assert deltas[0].points == 0


def test_build_deltas_rejects_illegal_score(fixtures):
    with pytest.raises(InvalidScore) as exc_info:
        build_deltas(MatchResult(fixtures[0], 4, 4), GROUP_A)
    assert "A-1" in str(exc_info.value)

    with pytest.raises(InvalidScore):
        build_deltas(MatchResult(fixtures[0], -1, 6), GROUP_A)


def test_build_deltas_rejects_other_group(fixtures):
    with pytest.raises(ValidationError):
        build_deltas(MatchResult(fixtures[0], 6, 3), Scope("s1", "B"))


def test_delta_negation_and_targets():
    delta = StatDelta("p1", "A-1", GROUP_A, matches_played=1, wins=1, points=3, games_won=6)

    negated = delta.negated()
    assert (negated.matches_played, negated.wins, negated.points, negated.games_won) == (-1, -1, -3, -6)
    assert negated.negated() == delta
    assert delta.targets() == [GROUP_A, STAGE]
    assert StatDelta("p1", "R1-1", STAGE).targets() == [STAGE]


def test_affected_groups(fixtures):
    deltas = build_deltas(MatchResult(fixtures[0], 6, 3), GROUP_A)
    assert affected_groups(deltas) == {"A"}
    assert affected_groups(build_deltas(MatchResult(fixtures[0], 6, 3), STAGE)) == set()


def test_group_of_four_scenario(ledger, fixtures):
    """Counters after a full group where p1 wins every fixture."""
    play_group(ledger, fixtures)
    records = by_id(ledger.snapshot("s1", "A"))

    p1, p2, p3, p4 = (records[p] for p in PLAYERS)
    assert (p1.matches_played, p1.wins, p1.losses, p1.points) == (3, 3, 0, 9)
    assert (p1.games_won, p1.games_lost, p1.game_balance) == (18, 9, 9)
    assert (p2.wins, p2.points, p2.game_balance) == (1, 3, -3)
    assert (p3.wins, p3.points, p3.game_balance) == (1, 3, -5)
    assert (p4.wins, p4.points, p4.game_balance) == (1, 3, -1)
    assert all(r.matches_played == 3 for r in records.values())
    assert sum(r.wins for r in records.values()) == 6
    assert sum(r.sets_won for r in records.values()) == sum(r.sets_lost for r in records.values())


def test_group_results_roll_up_to_stage(ledger, fixtures):
    play_group(ledger, fixtures)

    stage_records = by_id(ledger.snapshot("s1"))
    group_records = by_id(ledger.snapshot("s1", "A"))

    assert set(stage_records) == set(PLAYERS)
    for entrant_id in PLAYERS:
        assert stage_records[entrant_id].counters() == group_records[entrant_id].counters()
        assert stage_records[entrant_id].group_name is None


def test_stage_global_results_do_not_touch_groups(ledger, fixtures):
    play_group(ledger, fixtures)
    bracket_fixture = Fixture(id="F-1", side_a=("p1", "p2"), side_b=("p3", "p4"), ordinal=1)

    ledger.apply(MatchResult(bracket_fixture, 6, 4), STAGE)

    assert ledger.get("p1", STAGE).wins == 4
    assert ledger.get("p1", STAGE).points == 9
    assert ledger.get("p1", GROUP_A).wins == 3


def test_revert_restores_records(ledger, fixtures):
    play_group(ledger, fixtures[:2])
    before = ledger.snapshot("s1", "A") + ledger.snapshot("s1")

    result = MatchResult(fixtures[2], 2, 6)
    ledger.apply(result, GROUP_A)
    assert ledger.is_applied("A-3", "s1")

    reversal = ledger.revert(result, GROUP_A)

    assert len(reversal) == 4
    assert ledger.snapshot("s1", "A") + ledger.snapshot("s1") == before
    assert not ledger.is_applied("A-3", "s1")


def test_revert_by_fixture(ledger, fixtures):
    ledger.apply(MatchResult(fixtures[0], 6, 3), GROUP_A)
    ledger.revert(fixtures[0], GROUP_A)

    assert all(r.matches_played == 0 for r in ledger.snapshot("s1", "A"))


def test_revert_without_apply(ledger, fixtures):
    with pytest.raises(RevertWithoutApply):
        ledger.revert(fixtures[0], GROUP_A)

    ledger.apply(MatchResult(fixtures[0], 6, 3), GROUP_A)
    ledger.revert(fixtures[0], GROUP_A)
    with pytest.raises(RevertWithoutApply):
        ledger.revert(fixtures[0], GROUP_A)


def test_apply_same_score_twice_is_a_no_op(ledger, fixtures):
    result = MatchResult(fixtures[0], 6, 3)
    ledger.apply(result, GROUP_A)
    once = ledger.snapshot("s1", "A")

    ledger.apply(result, GROUP_A)

    assert ledger.snapshot("s1", "A") == once


def test_apply_new_score_rescores(ledger, fixtures):
    ledger.apply(MatchResult(fixtures[0], 6, 3), GROUP_A)
    ledger.apply(MatchResult(fixtures[0], 3, 6), GROUP_A)

    p1 = ledger.get("p1", GROUP_A)
    p3 = ledger.get("p3", GROUP_A)
    assert (p1.matches_played, p1.wins, p1.losses, p1.points) == (1, 0, 1, 0)
    assert (p3.matches_played, p3.wins, p3.points, p3.games_won) == (1, 1, 3, 6)
    assert ledger.get("p3", STAGE).points == 3


def test_edit(ledger, fixtures):
    with pytest.raises(RevertWithoutApply):
        ledger.edit(MatchResult(fixtures[0], 6, 3), GROUP_A)

    ledger.apply(MatchResult(fixtures[0], 6, 3), GROUP_A)
    ledger.edit(MatchResult(fixtures[0], 7, 5), GROUP_A)

    assert ledger.get("p1", GROUP_A).games_won == 7
    assert ledger.applied_deltas("A-1", "s1")[0].games_won == 7


def test_closed_group_phase(ledger, fixtures):
    result = MatchResult(fixtures[0], 6, 3)
    ledger.apply(result, GROUP_A)
    ledger.close_group_phase("s1")

    assert ledger.is_group_phase_closed("s1")
    with pytest.raises(EditWindowClosed):
        ledger.apply(MatchResult(fixtures[1], 6, 3), GROUP_A)
    with pytest.raises(EditWindowClosed):
        ledger.revert(result, GROUP_A)

    # Bracket results of the same stage are still accepted
    bracket_fixture = Fixture(id="SF-1", side_a=("p1", "p2"), side_b=("p3", "p4"), ordinal=1)
    ledger.apply(MatchResult(bracket_fixture, 6, 1), STAGE)

    ledger.reopen_group_phase("s1")
    ledger.revert(result, GROUP_A)
    assert ledger.get("p1", GROUP_A).matches_played == 0


def test_locked_fixture(ledger, fixtures):
    ledger.apply(MatchResult(fixtures[0], 6, 3), GROUP_A)
    ledger.lock_fixture("s1", "A-1")

    with pytest.raises(EditWindowClosed):
        ledger.edit(MatchResult(fixtures[0], 3, 6), GROUP_A)
    ledger.apply(MatchResult(fixtures[1], 6, 3), GROUP_A)


def test_lock_round_freezes_played_confrontos():
    """Once the next round is built, the confrontos it came from cannot be re-scored."""
    seeds = [Seed(id=f"t{i}", name=f"Team {i}", member_ids=(f"t{i}a", f"t{i}b")) for i in range(1, 6)]
    ledger = StatsLedger()
    for seed in seeds:
        for entrant_id in seed.member_ids:
            ledger.admit(entrant_id, STAGE)
    first_round = seed_bracket(seeds)
    played = first_round[1].to_fixture()
    ledger.apply(MatchResult(played, 6, 4), STAGE)

    ledger.lock_round("s1", [c if c.is_bye else record_confronto_result(c, 6, 4) for c in first_round])

    with pytest.raises(EditWindowClosed, match="QF-2"):
        ledger.edit(MatchResult(played, 4, 6), STAGE)
    assert ledger.get("t4a", STAGE).wins == 1

    restored = StatsLedger()
    restored.load(ledger.snapshot("s1"), locked_fixtures=[("s1", "QF-2")])
    with pytest.raises(EditWindowClosed):
        restored.apply(MatchResult(played, 4, 6), STAGE)


def test_unknown_entrant_changes_nothing(ledger):
    stranger = Fixture(id="A-9", side_a=("p1", "p2"), side_b=("p3", "p9"), ordinal=9, group_name="A")
    before = ledger.snapshot("s1", "A")

    with pytest.raises(UnknownStatRecord):
        ledger.apply(MatchResult(stranger, 6, 3), GROUP_A)

    assert ledger.snapshot("s1", "A") == before
    assert not ledger.is_applied("A-9", "s1")


def test_failed_fold_is_all_or_nothing(fixtures):
    """A revert that would drive a counter negative leaves every record untouched."""
    stale = tuple(build_deltas(MatchResult(fixtures[0], 6, 3), GROUP_A))
    records = [StatRecord(entrant_id=p, stage_id="s1", group_name=g) for p in PLAYERS for g in ("A", None)]
    records[0].matches_played = 1  # p1 / A only

    ledger = StatsLedger()
    ledger.load(records, applied={("s1", "A-1"): stale})

    with pytest.raises(ValidationError):
        ledger.revert(fixtures[0], GROUP_A)

    assert ledger.get("p1", GROUP_A).matches_played == 1
    assert ledger.is_applied("A-1", "s1")


def test_get_unknown_record(ledger):
    with pytest.raises(UnknownStatRecord):
        ledger.get("p1", Scope("s1", "B"))
    with pytest.raises(UnknownStatRecord):
        ledger.get("p9", GROUP_A)


def test_admit_twice_keeps_counters(ledger, fixtures):
    ledger.apply(MatchResult(fixtures[0], 6, 3), GROUP_A)
    record = ledger.admit("p1", GROUP_A)
    assert record.wins == 1


def test_snapshot_keeps_admission_order(ledger):
    assert [r.entrant_id for r in ledger.snapshot("s1", "A")] == PLAYERS
    assert ledger.snapshot("s2") == []


def test_record_standings(ledger):
    ranked = [StatRecord("p2", "s1", "A", rank_position=1, qualified=True)]
    ledger.record_standings(ranked)

    assert ledger.get("p2", GROUP_A).rank_position == 1
    assert ledger.get("p2", GROUP_A).qualified

    with pytest.raises(UnknownStatRecord):
        ledger.record_standings([StatRecord("p9", "s1", "A", rank_position=1)])


def test_reset_stage(ledger, fixtures):
    play_group(ledger, fixtures)
    ledger.close_group_phase("s1")
    ledger.admit("p1", Scope("s2"))

    ledger.reset_stage("s1")

    assert ledger.snapshot("s1", "A") == []
    assert ledger.snapshot("s1") == []
    assert not ledger.is_applied("A-1", "s1")
    assert not ledger.is_group_phase_closed("s1")
    assert ledger.get("p1", Scope("s2")).matches_played == 0


def test_apply_batch(ledger, fixtures):
    results = [MatchResult(f, *s) for f, s in zip(fixtures, [(6, 3), (6, 4), (6, 2)])]

    deltas = ledger.apply_batch(results, GROUP_A)

    assert len(deltas) == 12
    assert ledger.get("p1", GROUP_A).points == 9


def test_apply_batch_validates_before_folding(ledger, fixtures):
    good = MatchResult(fixtures[0], 6, 3)

    with pytest.raises(ValidationError):
        ledger.apply_batch([good, MatchResult(fixtures[0], 6, 4)], GROUP_A)
    with pytest.raises(InvalidScore):
        ledger.apply_batch([good, MatchResult(fixtures[1], 5, 5)], GROUP_A)

    stranger = Fixture(id="A-9", side_a=("p1", "p2"), side_b=("p3", "p9"), ordinal=9)
    with pytest.raises(UnknownStatRecord):
        ledger.apply_batch([good, MatchResult(stranger, 6, 0)], GROUP_A)

    assert not ledger.is_applied("A-1", "s1")
    assert all(r.matches_played == 0 for r in ledger.snapshot("s1", "A"))


def test_parallel_batch_matches_sequential():
    """A Super 8 stage folded on a thread pool ends like a sequential fold."""
    entrant_ids = [f"p{i}" for i in range(1, 9)]
    fixtures = build_super_x_fixtures(entrant_ids)
    results = [MatchResult(f, 6, i % 6) if i % 2 else MatchResult(f, i % 6, 6) for i, f in enumerate(fixtures)]
    scope = Scope("super", fixtures[0].group_name)

    sequential = StatsLedger()
    parallel = StatsLedger()
    for entrant_id in entrant_ids:
        sequential.admit(entrant_id, scope)
        parallel.admit(entrant_id, scope)

    sequential.apply_batch(results, scope)
    parallel.apply_batch(results, scope, max_workers=4)

    assert parallel.snapshot("super", "Super 8") == sequential.snapshot("super", "Super 8")
    assert parallel.snapshot("super") == sequential.snapshot("super")
    assert sum(r.matches_played for r in parallel.snapshot("super")) == 4 * len(fixtures)
    assert sum(r.points for r in parallel.snapshot("super")) == 2 * 3 * len(fixtures)


def test_fold_order_does_not_matter(fixtures):
    """Results applied in any order give the same records."""
    results = [MatchResult(f, *s) for f, s in zip(fixtures, [(6, 3), (4, 6), (7, 5)])]
    forward, backward = StatsLedger(), StatsLedger()
    for entrant_id in PLAYERS:
        forward.admit(entrant_id, GROUP_A)
        backward.admit(entrant_id, GROUP_A)

    for result in results:
        forward.apply(result, GROUP_A)
    for result in reversed(results):
        backward.apply(result, GROUP_A)

    assert forward.snapshot("s1", "A") == backward.snapshot("s1", "A")
    assert forward.snapshot("s1") == backward.snapshot("s1")
