#!/usr/bin/env python3
"""
League Manager for doubles league nights.

This script generates and adjusts the schedule for one league night.
It keeps the roster and schedule in a JSON week file.

Subcommands:
  init      Create a week file with a roster and court count
  generate  Generate the schedule
  show      Display the schedule
  validate  Re-check the schedule against the hard rules
  targets   List valid swap targets for a player in a round
  swap      Swap two players within a round
  export    Write a printable pairings sheet
"""

import argparse
import json
import os
import sys
import threading
from typing import Dict, List, Tuple

from league_scheduler import (
    generate_schedule,
    schedule_from_dict,
    schedule_summary,
    schedule_to_dict,
    validate_inputs,
    validate_schedule_constraints,
)
from league_utils import display_name, format_round
from schedule_swap import get_valid_swap_targets, swap_players

WEEK_FILE = os.environ.get("LEAGUE_WEEK_FILE", "week.json")
# Global threading lock for safe concurrent writes
_week_lock = threading.Lock()


def load_week(path) -> Dict:
    """Loads the week file."""
    if not os.path.exists(path):
        print(f"Error: {path} not found. Run 'init' first.")
        sys.exit(1)

    with open(path, 'r') as f:
        return json.load(f)


def save_week(path, data):
    _week_lock.acquire()
    try:
        with open(path, 'w') as f:
            json.dump(data, f, indent=2)
    finally:
        _week_lock.release()


def roster(data) -> Tuple[List[str], Dict[str, str]]:
    """Returns (player ids in roster order, id -> name)."""
    player_ids = [p['id'] for p in data['players']]
    names = {p['id']: p['name'] for p in data['players']}
    return player_ids, names


def load_schedule(data):
    if not data.get('schedule'):
        print("Error: No schedule generated yet. Run 'generate' first.")
        sys.exit(1)
    return schedule_from_dict(data['schedule'])


def resolve_player(data, token) -> str:
    """Find a player by id or (case-insensitive) name."""
    for p in data['players']:
        if p['id'] == token:
            return p['id']
    matches = [p['id'] for p in data['players'] if p['name'].lower() == token.lower()]
    if len(matches) == 1:
        return matches[0]
    if len(matches) > 1:
        print(f"Error: Name '{token}' is ambiguous. Use the player id instead.")
    else:
        print(f"Error: Player '{token}' not found in roster.")
    sys.exit(1)


def cmd_init(args):
    if os.path.exists(args.file) and not args.force:
        print(f"Error: {args.file} already exists. Use --force to overwrite.")
        sys.exit(1)

    names = []
    if args.names:
        with open(args.names, 'r') as f:
            names = [line.strip() for line in f if line.strip()]

        if len(names) != args.players:
            print(f"Warning: Number of names ({len(names)}) does not match number of players ({args.players}).")

    players = []
    for i in range(args.players):
        name = names[i] if i < len(names) else f"Player {i+1}"
        players.append({"id": f"p{i+1}", "name": name})

    try:
        validate_inputs([p['id'] for p in players], args.courts, args.rounds_per_week)
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)

    data = {
        "config": {
            "num_players": args.players,
            "num_courts": args.courts,
            "rounds_per_week": args.rounds_per_week,
        },
        "players": players,
        "schedule": None,
        "seed": None,
    }

    save_week(args.file, data)
    print(f"Initialized league night with {args.players} players on {args.courts} courts.")


def cmd_generate(args):
    data = load_week(args.file)

    if data.get('schedule') and not args.force:
        print("Error: Schedule already generated. Use --force to regenerate.")
        sys.exit(1)

    player_ids, names = roster(data)
    config = data['config']

    print(f"Generating schedule for {len(player_ids)} players on {config['num_courts']} courts...")
    try:
        schedule = generate_schedule(player_ids, config['num_courts'],
                                     rounds_per_week=config.get('rounds_per_week'),
                                     seed=args.seed)
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)

    data['schedule'] = schedule_to_dict(schedule)
    data['seed'] = args.seed
    save_week(args.file, data)

    summary = schedule_summary(schedule, player_ids)
    print(f"Generated {summary['total_rounds']} rounds, {summary['total_games']} games, "
          f"{summary['games_per_player']} games per player.")
    for w in schedule.warnings:
        print(f"Warning: {w}")


def cmd_show(args):
    data = load_week(args.file)
    schedule = load_schedule(data)
    player_ids, names = roster(data)

    rounds = schedule.rounds
    if args.round is not None:
        rounds = [r for r in rounds if r.round_number == args.round]
        if not rounds:
            print(f"Error: Round {args.round} does not exist.")
            sys.exit(1)

    for rnd in rounds:
        print("\n".join(format_round(rnd, names)))
        print()

    summary = schedule_summary(schedule, player_ids)
    print(f"{summary['total_rounds']} rounds, {summary['total_games']} games, "
          f"{summary['games_per_player']} games per player")
    for w in schedule.warnings:
        print(f"Warning: {w}")


def cmd_validate(args):
    data = load_week(args.file)
    schedule = load_schedule(data)
    player_ids, _ = roster(data)

    violations = validate_schedule_constraints(schedule, player_ids)
    if not violations:
        print("Schedule is valid.")
        return

    print(f"Found {len(violations)} violation{'s' if len(violations) != 1 else ''}:")
    for v in violations:
        print(f"  - {v}")
    sys.exit(1)


def _find_round(schedule, round_num):
    rnd = next((r for r in schedule.rounds if r.round_number == round_num), None)
    if rnd is None:
        print(f"Error: Round {round_num} does not exist.")
        sys.exit(1)
    return rnd


def cmd_targets(args):
    data = load_week(args.file)
    schedule = load_schedule(data)
    _, names = roster(data)

    rnd = _find_round(schedule, args.round)
    player_id = resolve_player(data, args.player)

    targets = get_valid_swap_targets(player_id, rnd.games, rnd.byes)
    print(f"Valid swap targets for {display_name(player_id, names)} in Round {args.round}:")
    for t in targets:
        print(f"  {t}: {display_name(t, names)}")


def cmd_swap(args):
    data = load_week(args.file)
    schedule = load_schedule(data)
    player_ids, names = roster(data)

    _find_round(schedule, args.round)
    player1 = resolve_player(data, args.player1)
    player2 = resolve_player(data, args.player2)

    updated, result, warnings = swap_players(schedule, args.round, player1, player2, player_ids, names)
    if not result.success:
        print(f"Error: {result.error}")
        sys.exit(1)

    data['schedule'] = schedule_to_dict(updated)
    save_week(args.file, data)

    print(f"Swapped {display_name(player1, names)} and {display_name(player2, names)} in Round {args.round}.")
    for w in warnings:
        print(f"Warning: {w}")


def cmd_export(args):
    data = load_week(args.file)
    schedule = load_schedule(data)
    player_ids, names = roster(data)

    output_file = args.output if args.output else "schedule_export.txt"
    summary = schedule_summary(schedule, player_ids)

    with open(output_file, 'w') as f:
        f.write("# League Night Pairings\n")
        f.write(f"# {len(player_ids)} players, {data['config']['num_courts']} courts, "
                f"{summary['total_rounds']} rounds, {summary['games_per_player']} games per player\n")
        for w in schedule.warnings:
            f.write(f"# Warning: {w}\n")

        for rnd in schedule.rounds:
            f.write(f"\n{'='*70}\n")
            f.write("\n".join(format_round(rnd, names)))
            f.write("\n")

    print(f"Exported {summary['total_rounds']} rounds to {output_file}")


def main():
    parser = argparse.ArgumentParser(description="Doubles League Manager")
    parser.add_argument("--file", "-f", type=str, default=WEEK_FILE,
                        help=f"Week file (default: {WEEK_FILE})")
    subparsers = parser.add_subparsers(dest="command", help="Subcommands")

    # Init
    parser_init = subparsers.add_parser("init", help="Initialize league night")
    parser_init.add_argument('players', type=int, help='Number of available players')
    parser_init.add_argument('courts', type=int, help='Number of courts')
    parser_init.add_argument('--rounds-per-week', type=int, default=None,
                             help='Fixed number of rounds (default: auto, 8 games per player)')
    parser_init.add_argument('--names', type=str, help='File containing player names (one per line)')
    parser_init.add_argument('--force', action='store_true', help='Overwrite existing week file')

    # Generate
    parser_generate = subparsers.add_parser("generate", help="Generate the schedule")
    parser_generate.add_argument("--seed", type=int, default=None, help="Random seed for a reproducible schedule")
    parser_generate.add_argument("--force", action="store_true", help="Replace an existing schedule")

    # Show
    parser_show = subparsers.add_parser("show", help="Show the schedule")
    parser_show.add_argument("round", type=int, nargs='?', help="Show a single round (optional)")

    # Validate
    subparsers.add_parser("validate", help="Check the schedule for rule violations")

    # Targets
    parser_targets = subparsers.add_parser("targets", help="List valid swap targets")
    parser_targets.add_argument("round", type=int, help="Round number")
    parser_targets.add_argument("player", type=str, help="Player id or name")

    # Swap
    parser_swap = subparsers.add_parser("swap", help="Swap two players within a round")
    parser_swap.add_argument("round", type=int, help="Round number")
    parser_swap.add_argument("player1", type=str, help="First player id or name")
    parser_swap.add_argument("player2", type=str, help="Second player id or name")

    # Export
    parser_export = subparsers.add_parser("export", help="Export pairings to file")
    parser_export.add_argument("--output", "-o", type=str, help="Output file (default: schedule_export.txt)")

    args = parser.parse_args()

    if args.command == "init":
        cmd_init(args)
    elif args.command == "generate":
        cmd_generate(args)
    elif args.command == "show":
        cmd_show(args)
    elif args.command == "validate":
        cmd_validate(args)
    elif args.command == "targets":
        cmd_targets(args)
    elif args.command == "swap":
        cmd_swap(args)
    elif args.command == "export":
        cmd_export(args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
