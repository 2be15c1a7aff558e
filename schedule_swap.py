"""
Manual swaps within a generated schedule.

An operator picks two players in the same round and exchanges their places
(game slot or bye). Every function works on copies: inputs are never
mutated. Swap rejections come back as SwapResult values rather than
exceptions, since they happen routinely during interactive use.
"""

import copy
from collections import defaultdict
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, Optional, Tuple

from league_scheduler import (
    GAMES_PER_PLAYER,
    Game,
    Round,
    Schedule,
    collect_player_ids,
    format_games_range,
    partnership_key,
    split_partnership_key,
)

SAME_PLAYER_ERROR = "Cannot swap a player with themselves"
SAME_TEAM_ERROR = "Cannot swap players on the same team in the same game"


@dataclass
class PlayerPosition:
    player_id: str
    game_id: Optional[str] = None  # None when the player has a bye
    team: Optional[int] = None  # 1 or 2
    slot: Optional[int] = None  # 1 or 2

    @property
    def is_bye(self) -> bool:
        return self.game_id is None


@dataclass
class SwapResult:
    success: bool
    error: Optional[str] = None
    games: List[Game] = field(default_factory=list)
    byes: List[str] = field(default_factory=list)


@dataclass
class SwapSelection:
    """First click of a two-step swap: a player picked in a round."""
    round_number: int
    player_id: str


def find_player_position(player_id: str, games: List[Game], byes: List[str]) -> Optional[PlayerPosition]:
    """Locate a player within one round. Returns None if the player is not in it."""
    if player_id in byes:
        return PlayerPosition(player_id)

    for game in games:
        for team_num, team in ((1, game.team1), (2, game.team2)):
            for slot, occupant in enumerate(team, 1):
                if occupant == player_id:
                    return PlayerPosition(player_id, game_id=game.id, team=team_num, slot=slot)

    return None


def validate_swap(pos1: PlayerPosition, pos2: PlayerPosition) -> Tuple[bool, Optional[str]]:
    """
    Check that two positions in the same round can be exchanged.
    Returns (valid, error_message).
    Cross-round consequences are not checked here; see check_swap_violations.
    """
    if pos1.player_id == pos2.player_id:
        return False, SAME_PLAYER_ERROR

    if not pos1.is_bye and not pos2.is_bye:
        # Exchanging partners just reorders the team
        if pos1.game_id == pos2.game_id and pos1.team == pos2.team:
            return False, SAME_TEAM_ERROR

    return True, None


def perform_swap(pos1: PlayerPosition, pos2: PlayerPosition,
                 games: List[Game], byes: List[str]) -> SwapResult:
    """
    Exchange two players and return the round's new games and byes.
    The given lists are copied, never modified.
    """
    valid, error = validate_swap(pos1, pos2)
    if not valid:
        return SwapResult(False, error)

    updated_games = [replace(g) for g in games]
    updated_byes = list(byes)
    game_index = {g.id: i for i, g in enumerate(updated_games)}

    # Resolve both slots before writing so two byes can trade places
    targets = []
    for pos, incoming in ((pos1, pos2.player_id), (pos2, pos1.player_id)):
        if pos.is_bye:
            if pos.player_id not in updated_byes:
                return SwapResult(False, f"Player {pos.player_id} is not on bye in this round")
            targets.append((pos, updated_byes.index(pos.player_id), incoming))
        else:
            if pos.game_id not in game_index:
                return SwapResult(False, f"Game {pos.game_id} not found in this round")
            targets.append((pos, game_index[pos.game_id], incoming))

    for pos, index, incoming in targets:
        if pos.is_bye:
            updated_byes[index] = incoming
            continue
        game = updated_games[index]
        team = list(game.team1 if pos.team == 1 else game.team2)
        team[pos.slot - 1] = incoming
        if pos.team == 1:
            updated_games[index] = replace(game, team1=tuple(team))
        else:
            updated_games[index] = replace(game, team2=tuple(team))

    return SwapResult(True, None, updated_games, updated_byes)


def get_valid_swap_targets(selected_player_id: str, games: List[Game], byes: List[str]) -> List[str]:
    """
    Everyone in the round except the selected player and their teammate.
    Bye players are always valid targets.
    """
    selected = find_player_position(selected_player_id, games, byes)

    targets = [p for p in byes if p != selected_player_id]

    for game in games:
        for team_num, team in ((1, game.team1), (2, game.team2)):
            for player in team:
                if player == selected_player_id:
                    continue
                if selected is not None and selected.game_id == game.id and selected.team == team_num:
                    continue
                targets.append(player)

    return targets


def check_swap_violations(all_games: Iterable[Game], player_ids: Iterable[str],
                          player_names: Optional[Dict[str, str]] = None,
                          games_range: Tuple[int, int] = (GAMES_PER_PLAYER, GAMES_PER_PLAYER)) -> List[str]:
    """
    Rescan a whole week of games after a swap.
    Returns readable warnings for repeat partnerships and players whose game
    count is off. Advisory only: a swap is never undone because of these.
    """
    names = player_names or {}
    partnerships = defaultdict(int)
    games_per_player = {p: 0 for p in player_ids}

    for game in all_games:
        for player in game.players:
            games_per_player[player] = games_per_player.get(player, 0) + 1
        partnerships[partnership_key(*game.team1)] += 1
        partnerships[partnership_key(*game.team2)] += 1

    warnings = []
    for key, count in partnerships.items():
        if count > 1:
            p1, p2 = split_partnership_key(key)
            warnings.append(f"{names.get(p1, p1)} and {names.get(p2, p2)} are partnered {count} times")

    min_games, max_games = games_range
    expected = format_games_range(games_range)
    for player_id, count in games_per_player.items():
        if count < min_games or count > max_games:
            warnings.append(f"{names.get(player_id, player_id)} has {count} games (expected {expected})")

    return warnings


def handle_swap_click(selection: Optional[SwapSelection], round_number: int, player_id: str,
                      games: List[Game], byes: List[str]) -> Tuple[Optional[SwapSelection], Optional[SwapResult]]:
    """
    Advance the two-click swap interaction.

    No selection (or a selection in another round) -> the clicked player is
    selected. Clicking the selected player again cancels. Clicking another
    player in the same round attempts the swap. Returns (new selection,
    swap result or None when no swap was attempted).
    """
    if selection is None or selection.round_number != round_number:
        return SwapSelection(round_number, player_id), None

    if selection.player_id == player_id:
        return None, None

    pos1 = find_player_position(selection.player_id, games, byes)
    pos2 = find_player_position(player_id, games, byes)
    for pos, pid in ((pos1, selection.player_id), (pos2, player_id)):
        if pos is None:
            return None, SwapResult(False, f"Player {pid} not found in round {round_number}")

    return None, perform_swap(pos1, pos2, games, byes)


def swap_players(schedule: Schedule, round_number: int, player1_id: str, player2_id: str,
                 player_ids: Optional[Iterable[str]] = None,
                 player_names: Optional[Dict[str, str]] = None) -> Tuple[Optional[Schedule], SwapResult, List[str]]:
    """
    Swap two players in one round of a schedule.
    Returns (new schedule or None on rejection, swap result, week-wide warnings).
    """
    target = next((r for r in schedule.rounds if r.round_number == round_number), None)
    if target is None:
        return None, SwapResult(False, f"Round {round_number} not found"), []

    pos1 = find_player_position(player1_id, target.games, target.byes)
    pos2 = find_player_position(player2_id, target.games, target.byes)
    for pos, pid in ((pos1, player1_id), (pos2, player2_id)):
        if pos is None:
            return None, SwapResult(False, f"Player {pid} not found in round {round_number}"), []

    result = perform_swap(pos1, pos2, target.games, target.byes)
    if not result.success:
        return None, result, []

    rounds = []
    for rnd in schedule.rounds:
        if rnd is target:
            rounds.append(Round(round_number=rnd.round_number, games=result.games, byes=result.byes))
        else:
            rounds.append(copy.deepcopy(rnd))
    updated = Schedule(rounds=rounds, warnings=list(schedule.warnings), games_range=schedule.games_range)

    roster = list(player_ids) if player_ids is not None else collect_player_ids(schedule)
    all_games = [g for rnd in rounds for g in rnd.games]
    warnings = check_swap_violations(all_games, roster, player_names, schedule.games_range)
    return updated, result, warnings
