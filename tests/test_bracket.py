"""Tests for knockout bracket generation."""

import random

import pytest

from quadra.bracket import (
    BracketStrategy,
    advance_round,
    build_bracket,
    calculate_byes,
    champion,
    consumed_rounds,
    form_teams,
    generate_bracket_order,
    get_round_type_for_size,
    next_power_of_2,
    order_qualifiers,
    record_confronto_result,
    seed_bracket,
)
from quadra.models import ConfrontoStatus, RoundType, Seed, StatRecord
from quadra.validation import (
    ImbalancedCohort,
    InsufficientQualifiers,
    InvalidScore,
    ValidationError,
)


def make_seeds(n):
    """Seeds s1..sn, strongest first."""
    return [Seed(id=f"s{r}", name=f"Team {r}", member_ids=(f"p{r}a", f"p{r}b")) for r in range(1, n + 1)]


def rank_of(seed):
    return int(seed.id[1:])


def play_round(confrontos):
    """Resolve every scheduled confronto with the better seed winning 6-2."""
    played = []
    for c in confrontos:
        if c.is_resolved:
            played.append(c)
        elif rank_of(c.side_a) < rank_of(c.side_b):
            played.append(record_confronto_result(c, 6, 2))
        else:
            played.append(record_confronto_result(c, 2, 6))
    return played


def qualifier(entrant_id, group, position, points, games_won=0, games_lost=0):
    return StatRecord(
        entrant_id=entrant_id,
        stage_id="s1",
        group_name=group,
        points=points,
        wins=points // 3,
        games_won=games_won,
        games_lost=games_lost,
        rank_position=position,
        qualified=True,
    )


@pytest.fixture
def qualifiers():
    """Top two of four groups, listed group by group."""
    return [
        qualifier("a1", "A", 1, 9),
        qualifier("a2", "A", 2, 3),
        qualifier("b1", "B", 1, 6, games_won=20, games_lost=15),
        qualifier("b2", "B", 2, 6),
        qualifier("c1", "C", 1, 6, games_won=18, games_lost=16),
        qualifier("c2", "C", 2, 0),
        qualifier("d1", "D", 1, 3),
        qualifier("d2", "D", 2, 4),
    ]


def test_next_power_of_2():
    assert next_power_of_2(1) == 1
    assert next_power_of_2(2) == 2
    assert next_power_of_2(5) == 8
    assert next_power_of_2(8) == 8
    assert next_power_of_2(9) == 16


def test_round_type_for_size():
    assert get_round_type_for_size(2) == RoundType.FINAL
    assert get_round_type_for_size(4) == RoundType.SEMIFINAL
    assert get_round_type_for_size(8) == RoundType.QUARTERFINAL
    assert get_round_type_for_size(16) == RoundType.ROUND_OF_16
    assert get_round_type_for_size(32) == RoundType.ROUND_OF_32


@pytest.mark.parametrize("qualifiers_count,size,byes,matches,confrontos", [
    (2, 2, 0, 1, 1),
    (3, 4, 1, 1, 2),
    (5, 8, 3, 1, 4),
    (6, 8, 2, 2, 4),
    (8, 8, 0, 4, 4),
    (12, 16, 4, 4, 8),
])
def test_calculate_byes(qualifiers_count, size, byes, matches, confrontos):
    result = calculate_byes(qualifiers_count)

    assert result.bracket_size == size
    assert result.byes == byes
    assert result.real_matches == matches
    assert result.total_confrontos == confrontos
    # Every seed is either in a real match or facing a bye
    assert 2 * result.real_matches + result.byes == qualifiers_count


@pytest.mark.parametrize("count", [0, 1])
def test_too_few_qualifiers(count):
    with pytest.raises(InsufficientQualifiers):
        calculate_byes(count)
    with pytest.raises(InsufficientQualifiers):
        seed_bracket(make_seeds(count))


def test_bracket_order():
    assert generate_bracket_order(2) == [1, 2]
    assert generate_bracket_order(4) == [1, 4, 2, 3]
    assert generate_bracket_order(8) == [1, 8, 4, 5, 2, 7, 3, 6]

    order = generate_bracket_order(16)
    assert sorted(order) == list(range(1, 17))
    # First-round pairings always add up to P + 1
    assert all(order[i] + order[i + 1] == 17 for i in range(0, 16, 2))


@pytest.mark.parametrize("size", [0, 1, 6, 12])
def test_bracket_order_rejects_non_power_of_2(size):
    with pytest.raises(ValueError):
        generate_bracket_order(size)


def test_five_qualifiers():
    """T=5: three byes, one real match, top seeds get the byes."""
    confrontos = seed_bracket(make_seeds(5))

    assert len(confrontos) == 4
    assert [c.id for c in confrontos] == ["QF-1", "QF-2", "QF-3", "QF-4"]
    assert [c.status for c in confrontos] == [
        ConfrontoStatus.BYE,
        ConfrontoStatus.SCHEDULED,
        ConfrontoStatus.BYE,
        ConfrontoStatus.BYE,
    ]
    assert sum(1 for c in confrontos if c.is_bye) == 3

    real = confrontos[1]
    assert (real.side_a.id, real.side_b.id) == ("s4", "s5")

    byes = {c.side_a.id for c in confrontos if c.is_bye}
    assert byes == {"s1", "s2", "s3"}
    assert all(c.winner == c.side_a and c.side_b is None for c in confrontos if c.is_bye)



def test_six_qualifiers_keep_slot_order():
    """T=6: byes for seeds 1 and 2, real matches in slot order (4 v 5 before 3 v 6)."""
    confrontos = seed_bracket(make_seeds(6))

    assert [c.is_bye for c in confrontos] == [True, False, True, False]
    assert (confrontos[1].side_a.id, confrontos[1].side_b.id) == ("s4", "s5")
    assert (confrontos[3].side_a.id, confrontos[3].side_b.id) == ("s3", "s6")
    assert {c.side_a.id for c in confrontos if c.is_bye} == {"s1", "s2"}

@pytest.mark.parametrize("count", [2, 3, 4, 5, 6, 7, 8, 11, 16])
def test_top_two_seeds_only_meet_in_final(count):
    confrontos = seed_bracket(make_seeds(count))

    half = len(confrontos) // 2 or 1
    top_half = {c.side_a.id for c in confrontos[:half]} | {
        c.side_b.id for c in confrontos[:half] if c.side_b
    }
    assert "s1" in top_half
    if count > 2:
        assert "s2" not in top_half

    real_matches = 0
    while True:
        real_matches += sum(1 for c in confrontos if not c.is_resolved)
        confrontos = play_round(confrontos)
        if len(confrontos) == 1:
            break
        confrontos = advance_round(confrontos)

    final = confrontos[0]
    assert final.round_type == RoundType.FINAL
    assert {final.side_a.id, final.side_b.id} == {"s1", "s2"}
    assert champion(confrontos).id == "s1"
    # A single-elimination bracket always plays T - 1 real matches
    assert real_matches == count - 1


def test_advance_round_pairs_neighbours():
    first_round = play_round(seed_bracket(make_seeds(5)))

    semis = advance_round(first_round)

    assert [c.id for c in semis] == ["SF-1", "SF-2"]
    assert (semis[0].side_a.id, semis[0].side_b.id) == ("s1", "s4")
    assert (semis[1].side_a.id, semis[1].side_b.id) == ("s2", "s3")
    assert all(c.status == ConfrontoStatus.SCHEDULED for c in semis)


def test_advance_round_requires_finished_round():
    confrontos = seed_bracket(make_seeds(5))

    with pytest.raises(ValidationError) as exc_info:
        advance_round(confrontos)
    assert "QF-2" in str(exc_info.value)


def test_advance_after_final_returns_nothing():
    final = play_round(seed_bracket(make_seeds(2)))

    assert advance_round(final) == []
    assert champion(final).id == "s1"


def test_consumed_rounds():
    first_round = play_round(seed_bracket(make_seeds(4)))
    final = advance_round(first_round)

    assert consumed_rounds([first_round]) == []
    assert consumed_rounds([first_round, final]) == [first_round]
    decided = play_round(final)
    assert consumed_rounds([first_round, decided]) == [first_round, decided]
    assert consumed_rounds([]) == []


def test_champion_undecided():
    assert champion(seed_bracket(make_seeds(2))) is None
    assert champion(play_round(seed_bracket(make_seeds(4)))) is None


def test_record_confronto_result():
    confronto = seed_bracket(make_seeds(2))[0]

    finished = record_confronto_result(confronto, 4, 6)

    assert finished.status == ConfrontoStatus.FINISHED
    assert finished.winner.id == "s2"
    assert (finished.games_a, finished.games_b) == (4, 6)
    # Input confronto is untouched
    assert confronto.winner is None


def test_record_confronto_result_rejects_bye_and_tie():
    confrontos = seed_bracket(make_seeds(3))

    with pytest.raises(ValidationError):
        record_confronto_result(confrontos[0], 6, 2)
    with pytest.raises(InvalidScore):
        record_confronto_result(confrontos[1], 5, 5)


def test_confronto_to_fixture():
    confronto = seed_bracket(make_seeds(2))[0]

    fixture = confronto.to_fixture()

    assert fixture.id == "F-1"
    assert fixture.side_a == ("p1a", "p1b")
    assert fixture.side_b == ("p2a", "p2b")
    assert fixture.group_name is None

    with pytest.raises(ValueError):
        seed_bracket(make_seeds(3))[0].to_fixture()


def test_order_qualifiers(qualifiers):
    """Group winners first (by record), then runners-up."""
    ordered = order_qualifiers(qualifiers)
    assert [q.entrant_id for q in ordered] == ["a1", "b1", "c1", "d1", "b2", "d2", "a2", "c2"]


def test_strongest_paired(qualifiers):
    seeds = form_teams(qualifiers, BracketStrategy.STRONGEST_PAIRED)

    assert [s.member_ids for s in seeds] == [
        ("a1", "b1"), ("c1", "d1"), ("b2", "d2"), ("a2", "c2"),
    ]
    assert seeds[0].id == "a1+b1"
    assert seeds[0].origin == "1st A + 1st B"
    assert seeds[2].origin == "2nd B + 2nd D"


def test_cross_ranked(qualifiers):
    seeds = form_teams(qualifiers, "cross_ranked")

    assert [s.member_ids for s in seeds] == [
        ("a1", "b2"), ("b1", "d2"), ("c1", "a2"), ("d1", "c2"),
    ]


def test_team_names(qualifiers):
    names = {"a1": "Ana", "b1": "Bia"}
    seeds = form_teams(qualifiers, BracketStrategy.STRONGEST_PAIRED, names=names)

    assert seeds[0].name == "Ana / Bia"
    assert seeds[1].name == "c1 / d1"


@pytest.mark.parametrize("seed", range(10))
def test_random_draw_partners_come_from_different_groups(qualifiers, seed):
    groups = {q.entrant_id: q.group_name for q in qualifiers}

    seeds = form_teams(qualifiers, BracketStrategy.RANDOM_DRAW, shuffle=random.Random(seed).shuffle)

    assert len(seeds) == 4
    assert sorted(m for s in seeds for m in s.member_ids) == sorted(groups)
    assert all(groups[s.member_ids[0]] != groups[s.member_ids[1]] for s in seeds)


def test_random_draw_is_reproducible(qualifiers):
    first = form_teams(qualifiers, BracketStrategy.RANDOM_DRAW, shuffle=random.Random(5).shuffle)
    second = form_teams(qualifiers, BracketStrategy.RANDOM_DRAW, shuffle=random.Random(5).shuffle)
    assert first == second


def test_random_draw_gives_up_when_all_from_one_group():
    same_group = [qualifier(f"a{i}", "A", i, 9 - i) for i in range(1, 5)]
    calls = []

    with pytest.raises(ImbalancedCohort):
        form_teams(same_group, BracketStrategy.RANDOM_DRAW, shuffle=calls.append)
    assert len(calls) == 100


def test_odd_number_of_qualifiers(qualifiers):
    with pytest.raises(ImbalancedCohort):
        form_teams(qualifiers[:7])


def test_unknown_strategy(qualifiers):
    with pytest.raises(ValueError):
        form_teams(qualifiers, "alphabetical")


def test_build_bracket(qualifiers):
    """Eight qualifiers make four teams and a two-semifinal bracket."""
    confrontos = build_bracket(qualifiers, BracketStrategy.STRONGEST_PAIRED)

    assert [c.id for c in confrontos] == ["SF-1", "SF-2"]
    assert (confrontos[0].side_a.id, confrontos[0].side_b.id) == ("a1+b1", "a2+c2")
    assert (confrontos[1].side_a.id, confrontos[1].side_b.id) == ("c1+d1", "b2+d2")
