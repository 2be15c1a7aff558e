"""
Common argument parsing and printing helpers for the league scheduler scripts.
"""

import argparse


def create_base_parser(description):
    """Create a base argument parser with common arguments."""
    parser = argparse.ArgumentParser(description=description)
    return parser


def add_common_args(parser):
    """Add generation tuning arguments to a parser."""
    parser.add_argument("--rounds-per-week", type=int, default=None,
                        help="Fixed number of rounds (default: auto, 8 games per player)")
    parser.add_argument("--seed", type=int, default=None,
                        help="Random seed for reproducible schedules")
    parser.add_argument("--attempts", type=int, default=100,
                        help="Shuffle attempts per phase (default: 100)")
    return parser


def add_schedule_args(parser):
    """Add league night configuration arguments."""
    parser.add_argument("players", type=int, help="Number of available players")
    parser.add_argument("courts", type=int, help="Number of courts")
    return parser


def add_runs_arg(parser, default=20):
    """Add runs argument."""
    parser.add_argument("runs", type=int, nargs='?', default=default,
                        help=f"Number of schedules to generate (default: {default})")
    return parser


def print_generation_header(num_players, num_courts, num_runs, rounds_per_week=None, extra_info=""):
    """Print standard benchmark header."""
    print(f"Generating {num_runs} schedules for {num_players} players on {num_courts} courts...")
    if extra_info:
        print(extra_info)
    if rounds_per_week:
        print(f"Rounds: fixed at {rounds_per_week}")
    else:
        print("Rounds: auto (8 games per player)")
    print()


def print_progress(current, total, interval=10):
    """Print benchmark progress."""
    if (current + 1) % interval == 0:
        print(f"Completed {current + 1}/{total} schedules...", end='\r')


def display_name(player_id, player_names=None):
    if player_names:
        return player_names.get(player_id, player_id)
    return player_id


def format_round(rnd, player_names=None):
    """Render one round as printable lines."""
    lines = [f"Round {rnd.round_number}"]
    for game in rnd.games:
        t1 = " & ".join(display_name(p, player_names) for p in game.team1)
        t2 = " & ".join(display_name(p, player_names) for p in game.team2)
        lines.append(f"  Court {game.court}: {t1} vs {t2}")
    if rnd.byes:
        lines.append(f"  Byes: {', '.join(display_name(p, player_names) for p in rnd.byes)}")
    return lines
