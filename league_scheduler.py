"""
Doubles league schedule generation.

Assigns players to doubles games across courts and rounds for a league night.
Each player should get the same number of games, nobody should partner the
same player twice, and byes should be spread evenly. The search shuffles and
retries; when the strict rules cannot be met it relaxes the partnership rule
and finally falls back to the best partial schedule, describing every
compromise as a warning instead of failing.
"""

import logging
import math
import random
import sys
import time
from dataclasses import dataclass, field, asdict
from typing import Dict, Iterable, List, Optional, Set, Tuple

logger = logging.getLogger(__name__)

GAMES_PER_PLAYER = 8  # Target games per player when rounds are auto-calculated
MAX_ATTEMPTS = 100  # Shuffle/retry attempts per phase
MIN_PLAYERS = 24
MAX_PLAYERS = 32
MIN_COURTS = 4
MAX_COURTS = 8
MAX_ROUNDS_PER_WEEK = 20
PLAYERS_PER_GAME = 4
MAX_BYE_SPREAD = 2  # Acceptable max-min byes per player over the night
PARTNERSHIP_DELIMITER = "|"  # Player ids are UUIDs, which contain hyphens


@dataclass
class Game:
    court: int
    team1: Tuple[str, str]
    team2: Tuple[str, str]
    id: str = ""  # Assigned once the game is placed in a round

    @property
    def players(self) -> List[str]:
        return [*self.team1, *self.team2]


@dataclass
class Round:
    round_number: int
    games: List[Game] = field(default_factory=list)
    byes: List[str] = field(default_factory=list)


@dataclass
class Schedule:
    rounds: List[Round] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    games_range: Tuple[int, int] = (GAMES_PER_PLAYER, GAMES_PER_PLAYER)


@dataclass
class GenerationState:
    """Bookkeeping owned by a single generation attempt."""
    partnerships: Set[str] = field(default_factory=set)
    games_played: Dict[str, int] = field(default_factory=dict)
    bye_count: Dict[str, int] = field(default_factory=dict)
    opponents: Dict[str, Set[str]] = field(default_factory=dict)
    rounds: List[Round] = field(default_factory=list)

    @classmethod
    def for_players(cls, player_ids: Iterable[str]) -> "GenerationState":
        state = cls()
        for player_id in player_ids:
            state.games_played[player_id] = 0
            state.bye_count[player_id] = 0
            state.opponents[player_id] = set()
        return state


@dataclass
class AttemptResult:
    success: bool
    state: GenerationState
    repeat_partnerships: List[str] = field(default_factory=list)


@dataclass
class ByeStats:
    min: int
    max: int
    variance: float

    @property
    def spread(self) -> int:
        return self.max - self.min


def partnership_key(a: str, b: str) -> str:
    """
    Order-independent identity for two players on the same team.
    partnership_key(a, b) == partnership_key(b, a).
    """
    return PARTNERSHIP_DELIMITER.join(sorted((a, b)))


def split_partnership_key(key: str) -> Tuple[str, str]:
    first, second = key.split(PARTNERSHIP_DELIMITER, 1)
    return first, second


def game_id(round_number: int, court: int) -> str:
    return f"R{round_number}-C{court}"


def calculate_expected_rounds(num_players: int, num_courts: int,
                              games_per_player: int = GAMES_PER_PLAYER) -> int:
    players_per_round = num_courts * PLAYERS_PER_GAME
    return math.ceil((num_players * games_per_player) / players_per_round)


def calculate_byes_per_round(num_players: int, num_courts: int) -> int:
    return max(0, num_players - num_courts * PLAYERS_PER_GAME)


def calculate_expected_games_per_player(num_players: int, num_courts: int,
                                        num_rounds: int) -> Tuple[int, int]:
    """
    Games per player reachable with a fixed number of rounds.
    Returns (min, max); equal when the slots divide evenly.
    """
    full_games = num_players - num_players % PLAYERS_PER_GAME
    players_per_round = min(num_courts * PLAYERS_PER_GAME, full_games)
    total_slots = players_per_round * num_rounds
    return total_slots // num_players, math.ceil(total_slots / num_players)


def format_games_range(games_range: Tuple[int, int]) -> str:
    low, high = games_range
    return f"{low}" if low == high else f"{low}-{high}"


def get_bye_stats(bye_count: Dict[str, int]) -> ByeStats:
    counts = list(bye_count.values())
    if not counts:
        return ByeStats(0, 0, 0.0)

    mean = sum(counts) / len(counts)
    variance = sum((c - mean) ** 2 for c in counts) / len(counts)
    return ByeStats(min(counts), max(counts), variance)


def count_games_per_player(rounds: Iterable[Round], player_ids: Iterable[str]) -> Dict[str, int]:
    games_played = {player_id: 0 for player_id in player_ids}
    for rnd in rounds:
        for game in rnd.games:
            for player in game.players:
                games_played[player] = games_played.get(player, 0) + 1
    return games_played


def collect_player_ids(schedule: Schedule) -> List[str]:
    """All player ids seen in a schedule, in order of first appearance."""
    seen = {}
    for rnd in schedule.rounds:
        for game in rnd.games:
            for player in game.players:
                seen.setdefault(player, None)
        for player in rnd.byes:
            seen.setdefault(player, None)
    return list(seen)


def validate_inputs(player_ids: List[str], num_courts: int,
                    rounds_per_week: Optional[int] = None):
    """Raises ValueError for a configuration the scheduler does not support."""
    if len(player_ids) < MIN_PLAYERS:
        raise ValueError(f"Need at least {MIN_PLAYERS} players, got {len(player_ids)}")
    if len(player_ids) > MAX_PLAYERS:
        raise ValueError(f"Maximum {MAX_PLAYERS} players allowed, got {len(player_ids)}")
    if num_courts < MIN_COURTS or num_courts > MAX_COURTS:
        raise ValueError(f"Courts must be {MIN_COURTS}-{MAX_COURTS}, got {num_courts}")
    if not all(isinstance(p, str) for p in player_ids):
        raise ValueError("Player ids must be strings")
    if len(set(player_ids)) != len(player_ids):
        raise ValueError("Player ids must be unique")
    bad_ids = [p for p in player_ids if PARTNERSHIP_DELIMITER in p]
    if bad_ids:
        raise ValueError(f"Player ids must not contain '{PARTNERSHIP_DELIMITER}': {', '.join(bad_ids)}")
    if rounds_per_week is not None and not 1 <= rounds_per_week <= MAX_ROUNDS_PER_WEEK:
        raise ValueError(f"Rounds per week must be between 1 and {MAX_ROUNDS_PER_WEEK}, got {rounds_per_week}")


def select_active_players(player_ids: List[str], state: GenerationState, active_count: int,
                          target_games: int = GAMES_PER_PLAYER) -> Tuple[List[str], List[str]]:
    """
    Pick who plays this round.
    Players needing the most games go first; among equals, those who have sat
    out least. Players already at the target never play.
    Returns (active, byes).
    """
    ordered = sorted(
        player_ids,
        key=lambda p: (-(target_games - state.games_played.get(p, 0)), state.bye_count.get(p, 0)),
    )
    eligible = [p for p in ordered if state.games_played.get(p, 0) < target_games]

    active = eligible[:active_count]
    active_set = set(active)
    byes = [p for p in player_ids if p not in active_set]
    return active, byes


def form_teams(players: List[str], partnerships: Set[str], rng: random.Random,
               allow_repeat_partnerships: bool = False) -> Optional[Tuple[List[Tuple[str, str]], List[str]]]:
    """
    Pair players into two-person teams without repeating a partnership.
    Returns (teams, repeat_keys), or None when strict pairing is impossible
    for this shuffle. With allow_repeat_partnerships the first available
    player is taken instead and the repeated key is recorded.
    """
    available = list(players)
    rng.shuffle(available)

    teams = []
    repeat_partnerships = []

    while len(available) >= 2:
        player1 = available.pop(0)

        partner_idx = next(
            (i for i, p in enumerate(available) if partnership_key(player1, p) not in partnerships),
            -1,
        )
        if partner_idx == -1:
            if not allow_repeat_partnerships:
                return None
            partner_idx = 0
            repeat_partnerships.append(partnership_key(player1, available[0]))

        player2 = available.pop(partner_idx)
        teams.append((player1, player2))

    return teams, repeat_partnerships


def count_new_opponents(team1: Tuple[str, str], team2: Tuple[str, str],
                        opponents: Dict[str, Set[str]]) -> int:
    return sum(1 for p1 in team1 for p2 in team2 if p2 not in opponents.get(p1, ()))


def match_teams(teams: List[Tuple[str, str]], opponents: Dict[str, Set[str]], num_courts: int,
                rng: random.Random) -> List[Game]:
    """
    Pair teams into games, one per court, favouring opponents not yet faced.
    Teams left over once the courts run out are not placed.
    """
    available = list(teams)
    rng.shuffle(available)

    games = []
    court = 1
    while len(available) >= 2 and len(games) < num_courts:
        team1 = available.pop(0)

        best_idx = 0
        best_score = -1
        for i, candidate in enumerate(available):
            score = count_new_opponents(team1, candidate, opponents)
            if score > best_score:
                best_score = score
                best_idx = i

        team2 = available.pop(best_idx)
        games.append(Game(court=court, team1=team1, team2=team2))
        court += 1

    return games


def update_state(state: GenerationState, games: List[Game], byes: List[str], round_number: int):
    """Record a finished round in the attempt's bookkeeping."""
    placed = [
        Game(court=g.court, team1=g.team1, team2=g.team2, id=game_id(round_number, g.court))
        for g in games
    ]
    state.rounds.append(Round(round_number=round_number, games=placed, byes=list(byes)))

    for game in placed:
        for player in game.players:
            state.games_played[player] = state.games_played.get(player, 0) + 1

        state.partnerships.add(partnership_key(*game.team1))
        state.partnerships.add(partnership_key(*game.team2))

        for p1 in game.team1:
            for p2 in game.team2:
                state.opponents.setdefault(p1, set()).add(p2)
                state.opponents.setdefault(p2, set()).add(p1)

    for player in byes:
        state.bye_count[player] = state.bye_count.get(player, 0) + 1


def attempt_generation(player_ids: List[str], num_courts: int, num_rounds: int,
                       games_range: Tuple[int, int], rng: random.Random,
                       allow_repeat_partnerships: bool = False) -> AttemptResult:
    """
    Build rounds one after another until num_rounds is reached or no round
    can be formed. Success means every player ended inside games_range.
    """
    min_games, max_games = games_range
    players_per_round = num_courts * PLAYERS_PER_GAME

    state = GenerationState.for_players(player_ids)
    repeat_partnerships = []

    for round_number in range(1, num_rounds + 1):
        active, _ = select_active_players(player_ids, state, players_per_round, max_games)
        if len(active) < PLAYERS_PER_GAME:
            # Not enough players left who need games
            break

        formed = form_teams(active, state.partnerships, rng, allow_repeat_partnerships)
        if formed is None:
            return AttemptResult(False, state, repeat_partnerships)

        teams, repeats = formed
        repeat_partnerships.extend(repeats)

        games = match_teams(teams, state.opponents, num_courts, rng)

        # Active players whose team did not get a court sit out as well
        in_games = {p for g in games for p in g.players}
        byes = [p for p in player_ids if p not in in_games]

        update_state(state, games, byes, round_number)

    success = all(min_games <= state.games_played[p] <= max_games for p in player_ids)
    return AttemptResult(success, state, repeat_partnerships)


def _partial_rank(result: AttemptResult) -> Tuple[int, float]:
    return len(result.state.rounds), -get_bye_stats(result.state.bye_count).variance


def _run_phase(player_ids: List[str], num_courts: int, num_rounds: int,
               games_range: Tuple[int, int], rng: random.Random, max_attempts: int,
               allow_repeat_partnerships: bool) -> Tuple[Optional[AttemptResult], Optional[AttemptResult]]:
    """
    Run up to max_attempts attempts in one mode.
    Returns (best successful attempt, best partial attempt); either may be None.
    """
    mode = "relaxed" if allow_repeat_partnerships else "strict"
    best = None
    best_variance = math.inf
    best_partial = None

    for attempt in range(1, max_attempts + 1):
        result = attempt_generation(player_ids, num_courts, num_rounds, games_range, rng,
                                    allow_repeat_partnerships)

        if result.success:
            stats = get_bye_stats(result.state.bye_count)
            if stats.spread <= MAX_BYE_SPREAD:
                logger.debug("%s attempt %d accepted (byes %d-%d)", mode, attempt, stats.min, stats.max)
                return result, best_partial
            if stats.variance < best_variance:
                best_variance = stats.variance
                best = result
        elif best_partial is None or _partial_rank(result) > _partial_rank(best_partial):
            best_partial = result

    if best is not None:
        logger.debug("%s phase kept best of %d attempts (bye variance %.2f)", mode, max_attempts, best_variance)
    return best, best_partial


def _describe_relaxations(result: AttemptResult, player_ids: List[str],
                          games_range: Tuple[int, int]) -> List[str]:
    warnings = []
    min_games, max_games = games_range

    counts = [result.state.games_played.get(p, 0) for p in player_ids]
    low, high = min(counts), max(counts)
    if low < min_games or high > max_games:
        target = format_games_range(games_range)
        qualifier = "exactly " if min_games == max_games else ""
        warnings.append(
            f"Could not achieve {qualifier}{target} games per player (range: {low}-{high} games)"
        )

    repeats = len(result.repeat_partnerships)
    if repeats:
        warnings.append(
            f"Some players are paired with the same partner more than once "
            f"({repeats} repeat partnership{'s' if repeats > 1 else ''})"
        )

    stats = get_bye_stats(result.state.bye_count)
    if stats.spread > MAX_BYE_SPREAD:
        warnings.append(f"Bye distribution is uneven ({stats.min}-{stats.max} byes per player)")

    return warnings


def _schedule_from_result(result: AttemptResult, player_ids: List[str],
                          games_range: Tuple[int, int]) -> Schedule:
    return Schedule(
        rounds=result.state.rounds,
        warnings=_describe_relaxations(result, player_ids, games_range),
        games_range=games_range,
    )


def _best_effort_schedule(partials: List[Optional[AttemptResult]], player_ids: List[str],
                          games_range: Tuple[int, int]) -> Schedule:
    """Fallback when no attempt in any phase met the games target."""
    candidates = [p for p in partials if p is not None]
    best = max(candidates, key=_partial_rank)
    logger.warning("No complete schedule found; returning best partial (%d rounds)", len(best.state.rounds))
    return _schedule_from_result(best, player_ids, games_range)


def generate_schedule(player_ids: Iterable[str], num_courts: int, rounds_per_week: Optional[int] = None,
                      rng: Optional[random.Random] = None, seed: Optional[int] = None,
                      max_attempts: int = MAX_ATTEMPTS) -> Schedule:
    """
    Generate a league night schedule.

    Phase 1 (strict) forbids repeat partnerships. Phase 2 (relaxed) allows
    them and only runs when phase 1 found nothing that meets the games
    target. If neither phase succeeds, the best partial schedule is returned.
    All compromises end up in Schedule.warnings.

    With rounds_per_week unset the round count is derived so that every
    player gets exactly GAMES_PER_PLAYER games. With a fixed round count the
    target becomes the (min, max) range those rounds allow.

    Randomness comes only from rng (or a new random.Random(seed)), so equal
    inputs and seed give equal schedules.

    Raises ValueError for unsupported player or court counts.
    """
    player_ids = list(player_ids)
    validate_inputs(player_ids, num_courts, rounds_per_week)
    if max_attempts < 1:
        raise ValueError(f"Attempts must be at least 1, got {max_attempts}")

    if rng is None:
        rng = random.Random(seed)

    if rounds_per_week is None:
        num_rounds = calculate_expected_rounds(len(player_ids), num_courts)
        games_range = (GAMES_PER_PLAYER, GAMES_PER_PLAYER)
    else:
        num_rounds = rounds_per_week
        games_range = calculate_expected_games_per_player(len(player_ids), num_courts, num_rounds)

    logger.info("Generating %d rounds for %d players on %d courts (%s games each)",
                num_rounds, len(player_ids), num_courts, format_games_range(games_range))

    strict, strict_partial = _run_phase(player_ids, num_courts, num_rounds, games_range, rng,
                                        max_attempts, allow_repeat_partnerships=False)
    if strict is not None:
        return _schedule_from_result(strict, player_ids, games_range)

    logger.warning("Strict mode failed after %d attempts; allowing repeat partnerships", max_attempts)
    relaxed, relaxed_partial = _run_phase(player_ids, num_courts, num_rounds, games_range, rng,
                                          max_attempts, allow_repeat_partnerships=True)
    if relaxed is not None:
        return _schedule_from_result(relaxed, player_ids, games_range)

    return _best_effort_schedule([strict_partial, relaxed_partial], player_ids, games_range)


def validate_schedule_constraints(schedule: Schedule, player_ids: Iterable[str],
                                  games_range: Optional[Tuple[int, int]] = None) -> List[str]:
    """
    Re-check a schedule (e.g. after manual edits) against the hard rules.
    Returns violation messages; an empty list means the schedule is valid.
    """
    player_ids = list(player_ids)
    min_games, max_games = games_range or schedule.games_range

    violations = []
    partnerships = set()
    games_played = {p: 0 for p in player_ids}

    for rnd in schedule.rounds:
        placed = set()
        for game in rnd.games:
            players = game.players
            if len(set(players)) != len(players):
                violations.append(
                    f"Game on court {game.court} in round {rnd.round_number} lists a player more than once"
                )

            for player in dict.fromkeys(players):
                if player in placed:
                    violations.append(f"Player {player} appears more than once in round {rnd.round_number}")
                placed.add(player)
            for player in players:
                games_played[player] = games_played.get(player, 0) + 1

            for team in (game.team1, game.team2):
                key = partnership_key(*team)
                if key in partnerships:
                    violations.append(
                        f"Duplicate partnership in round {rnd.round_number}: {team[0]} and {team[1]}"
                    )
                partnerships.add(key)

        for player in rnd.byes:
            if player in placed:
                violations.append(f"Player {player} appears more than once in round {rnd.round_number}")
            placed.add(player)

    expected = format_games_range((min_games, max_games))
    for player_id in player_ids:
        games = games_played.get(player_id, 0)
        if games < min_games or games > max_games:
            violations.append(f"Player {player_id} has {games} games (expected {expected})")

    return violations


def schedule_summary(schedule: Schedule, player_ids: Iterable[str]) -> Dict[str, object]:
    games_played = count_games_per_player(schedule.rounds, player_ids)
    counts = list(games_played.values())
    low = min(counts) if counts else 0
    high = max(counts) if counts else 0
    return {
        "total_rounds": len(schedule.rounds),
        "total_games": sum(len(r.games) for r in schedule.rounds),
        "games_per_player": format_games_range((low, high)),
    }


def schedule_to_dict(schedule: Schedule) -> Dict:
    return asdict(schedule)


def schedule_from_dict(data: Dict) -> Schedule:
    """Rebuild a Schedule from schedule_to_dict output (or its JSON form)."""
    rounds = []
    for r_data in data.get('rounds', []):
        round_number = int(r_data['round_number'])
        games = []
        for g_data in r_data.get('games', []):
            team1 = tuple(g_data['team1'])
            team2 = tuple(g_data['team2'])
            if len(team1) != 2 or len(team2) != 2:
                raise ValueError(
                    f"Game on court {g_data['court']} in round {round_number} must have two players per team"
                )
            court = int(g_data['court'])
            games.append(Game(court=court, team1=team1, team2=team2,
                              id=g_data.get('id') or game_id(round_number, court)))
        rounds.append(Round(round_number=round_number, games=games, byes=list(r_data.get('byes', []))))

    games_range = tuple(data.get('games_range', (GAMES_PER_PLAYER, GAMES_PER_PLAYER)))
    return Schedule(rounds=rounds, warnings=list(data.get('warnings', [])), games_range=games_range)


def main():
    from league_utils import (create_base_parser, add_schedule_args, add_common_args,
                              add_runs_arg, print_generation_header, print_progress)

    parser = create_base_parser("Benchmark doubles schedule generation over many seeds.")
    add_schedule_args(parser)
    add_runs_arg(parser)
    add_common_args(parser)
    parser.add_argument("--debug", action="store_true", help="Log every attempt")

    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.debug else logging.WARNING)

    NUM_PLAYERS = args.players
    NUM_COURTS = args.courts
    NUM_RUNS = args.runs
    BASE_SEED = args.seed if args.seed is not None else 0

    player_ids = [f"player-{i + 1}" for i in range(NUM_PLAYERS)]

    print_generation_header(NUM_PLAYERS, NUM_COURTS, NUM_RUNS, args.rounds_per_week)

    warning_runs = 0
    slowest = 0.0
    warning_counts = {}

    for i in range(NUM_RUNS):
        print_progress(i, NUM_RUNS)
        started = time.perf_counter()
        try:
            schedule = generate_schedule(player_ids, NUM_COURTS, rounds_per_week=args.rounds_per_week,
                                         seed=BASE_SEED + i, max_attempts=args.attempts)
        except ValueError as e:
            print(f"Error: {e}")
            sys.exit(1)
        elapsed = time.perf_counter() - started
        slowest = max(slowest, elapsed)

        if schedule.warnings:
            warning_runs += 1
            for w in schedule.warnings:
                warning_counts[w] = warning_counts.get(w, 0) + 1

        if i == 0:
            summary = schedule_summary(schedule, player_ids)
            print(f"Seed {BASE_SEED}: {summary['total_rounds']} rounds, {summary['total_games']} games, "
                  f"{summary['games_per_player']} games per player")

    print(f"\nRuns with warnings: {warning_runs}/{NUM_RUNS}")
    print(f"Slowest run: {slowest:.3f}s")
    if warning_counts:
        print("Warning | Runs")
        print("--------|-----")
        for w, count in sorted(warning_counts.items(), key=lambda item: -item[1]):
            print(f"{w} | {count}")


if __name__ == "__main__":
    main()
