"""
Checks for manual swaps within a round.
"""
import pytest

from league_scheduler import Game, Round, Schedule, generate_schedule
from schedule_swap import (
    SAME_PLAYER_ERROR,
    SAME_TEAM_ERROR,
    PlayerPosition,
    SwapSelection,
    check_swap_violations,
    find_player_position,
    get_valid_swap_targets,
    handle_swap_click,
    perform_swap,
    swap_players,
    validate_swap,
)


@pytest.fixture
def games():
    return [
        Game(1, ("a", "b"), ("c", "d"), id="R1-C1"),
        Game(2, ("e", "f"), ("g", "h"), id="R1-C2"),
    ]


@pytest.fixture
def byes():
    return ["i", "j"]


# --- validate_swap ---

def test_rejects_swapping_player_with_themselves():
    pos = PlayerPosition("a", "R1-C1", 1, 1)
    assert validate_swap(pos, pos) == (False, SAME_PLAYER_ERROR)


def test_rejects_swapping_teammates():
    valid, error = validate_swap(PlayerPosition("a", "R1-C1", 1, 1), PlayerPosition("b", "R1-C1", 1, 2))
    assert not valid
    assert error == "Cannot swap players on the same team in the same game"


@pytest.mark.parametrize("other", [
    PlayerPosition("c", "R1-C1", 2, 1),  # opponent in the same game
    PlayerPosition("e", "R1-C2", 1, 1),  # another game
    PlayerPosition("i"),  # bye
])
def test_allows_other_swaps(other):
    assert validate_swap(PlayerPosition("a", "R1-C1", 1, 1), other) == (True, None)


def test_allows_swapping_two_bye_players():
    assert validate_swap(PlayerPosition("i"), PlayerPosition("j")) == (True, None)


# --- find_player_position ---

def test_finds_player_in_team_one_slot_one(games, byes):
    assert find_player_position("a", games, byes) == PlayerPosition("a", "R1-C1", 1, 1)


def test_finds_player_in_team_two_slot_two(games, byes):
    assert find_player_position("h", games, byes) == PlayerPosition("h", "R1-C2", 2, 2)


def test_finds_player_on_bye(games, byes):
    pos = find_player_position("j", games, byes)
    assert pos.is_bye
    assert pos.player_id == "j"


def test_unknown_player_is_not_found(games, byes):
    assert find_player_position("zz", games, byes) is None


# --- perform_swap ---

def _swap(p1, p2, games, byes):
    return perform_swap(find_player_position(p1, games, byes),
                        find_player_position(p2, games, byes), games, byes)


def test_swaps_players_in_different_games(games, byes):
    result = _swap("a", "g", games, byes)

    assert result.success
    assert result.games[0].team1 == ("g", "b")
    assert result.games[1].team2 == ("a", "h")
    assert result.byes == ["i", "j"]


def test_swaps_game_player_with_bye_player(games, byes):
    result = _swap("d", "i", games, byes)

    assert result.games[0].team2 == ("c", "i")
    assert result.byes == ["d", "j"]


def test_swaps_opponents_in_same_game(games, byes):
    result = _swap("b", "c", games, byes)

    assert result.games[0].team1 == ("a", "c")
    assert result.games[0].team2 == ("b", "d")


def test_swaps_two_bye_players(games, byes):
    result = _swap("i", "j", games, byes)

    assert result.success
    assert result.byes == ["j", "i"]


def test_swap_does_not_mutate_inputs(games, byes):
    _swap("a", "i", games, byes)

    assert games[0].team1 == ("a", "b")
    assert byes == ["i", "j"]


def test_swap_then_swap_back_restores_round(games, byes):
    first = _swap("a", "h", games, byes)
    back = _swap("h", "a", first.games, first.byes)

    assert back.games == games
    assert back.byes == byes


def test_swap_fails_for_teammates(games, byes):
    result = _swap("e", "f", games, byes)

    assert not result.success
    assert result.error == SAME_TEAM_ERROR
    assert result.games == []


# --- get_valid_swap_targets ---

def test_targets_exclude_self_and_teammate(games, byes):
    targets = get_valid_swap_targets("a", games, byes)
    assert sorted(targets) == ["c", "d", "e", "f", "g", "h", "i", "j"]


def test_bye_player_can_target_everyone_else(games, byes):
    targets = get_valid_swap_targets("i", games, byes)
    assert sorted(targets) == ["a", "b", "c", "d", "e", "f", "g", "h", "j"]


# --- check_swap_violations ---

def test_no_violations_for_untouched_schedule():
    ids = [f"player-{i + 1}" for i in range(24)]
    schedule = generate_schedule(ids, 6, seed=9)
    all_games = [g for r in schedule.rounds for g in r.games]

    assert check_swap_violations(all_games, ids) == []


def test_reports_repeat_partnerships_with_names():
    all_games = [
        Game(1, ("a", "b"), ("c", "d")),
        Game(1, ("b", "a"), ("e", "f")),
    ]
    warnings = check_swap_violations(all_games, list("abcdef"), {"a": "Ann", "b": "Bob"}, games_range=(1, 2))

    assert warnings == ["Ann and Bob are partnered 2 times"]


def test_reports_game_count_violations():
    warnings = check_swap_violations([Game(1, ("a", "b"), ("c", "d"))], ["a", "b", "c", "d", "e"])

    assert "a has 1 games (expected 8)" in warnings
    assert "e has 0 games (expected 8)" in warnings
    assert len(warnings) == 5


# --- two-click interaction ---

def test_first_click_selects(games, byes):
    selection, result = handle_swap_click(None, 1, "a", games, byes)

    assert selection == SwapSelection(1, "a")
    assert result is None


def test_clicking_same_player_deselects(games, byes):
    selection, result = handle_swap_click(SwapSelection(1, "a"), 1, "a", games, byes)

    assert selection is None
    assert result is None


def test_clicking_teammate_is_rejected(games, byes):
    selection, result = handle_swap_click(SwapSelection(1, "a"), 1, "b", games, byes)

    assert selection is None
    assert not result.success
    assert result.error == SAME_TEAM_ERROR


def test_clicking_in_another_round_reselects(games, byes):
    selection, result = handle_swap_click(SwapSelection(1, "a"), 2, "c", games, byes)

    assert selection == SwapSelection(2, "c")
    assert result is None


def test_second_click_swaps(games, byes):
    selection, result = handle_swap_click(SwapSelection(1, "a"), 1, "i", games, byes)

    assert selection is None
    assert result.success
    assert result.games[0].team1 == ("i", "b")


# --- swap_players ---

@pytest.fixture(scope="module")
def schedule_with_byes():
    ids = [f"player-{i + 1}" for i in range(24)]
    return ids, generate_schedule(ids, 4, seed=6)


def test_swap_with_bye_player_flags_game_counts(schedule_with_byes):
    ids, schedule = schedule_with_byes
    first = schedule.rounds[0]
    in_game = first.games[0].team1[0]
    on_bye = first.byes[0]

    updated, result, warnings = swap_players(schedule, 1, in_game, on_bye, ids)

    assert result.success
    assert on_bye in updated.rounds[0].games[0].players
    assert f"{on_bye} has 9 games (expected 8)" in warnings
    assert f"{in_game} has 7 games (expected 8)" in warnings
    # Input schedule is left alone
    assert in_game in schedule.rounds[0].games[0].players


def test_swap_unknown_player_fails(schedule_with_byes):
    ids, schedule = schedule_with_byes
    updated, result, warnings = swap_players(schedule, 1, "nobody", ids[0], ids)

    assert updated is None
    assert result.error == "Player nobody not found in round 1"
    assert warnings == []


def test_swap_unknown_round_fails(schedule_with_byes):
    ids, schedule = schedule_with_byes
    updated, result, _ = swap_players(schedule, 99, ids[0], ids[1], ids)

    assert updated is None
    assert result.error == "Round 99 not found"


def test_swap_players_uses_schedule_roster_by_default():
    schedule = Schedule(rounds=[Round(1, [Game(1, ("a", "b"), ("c", "d"), id="R1-C1")], ["e"])],
                        games_range=(0, 1))

    updated, result, warnings = swap_players(schedule, 1, "a", "e")

    assert result.success
    assert updated.rounds[0].byes == ["a"]
    assert warnings == []
