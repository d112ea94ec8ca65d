import argparse
import asyncio
import json
import logging

from algorithms import MathTools, WeightConverter
from rest_api import FitnessAPI
from seed_sample_data import seed


def _print(data) -> None:
    print(json.dumps(data, indent=2, default=str))


async def run_command(api: FitnessAPI, args: argparse.Namespace):
    if args.cmd == "scores":
        return await api.cache.fetch_scores(args.user, force=args.force)
    if args.cmd == "goals":
        return await api.goals.fetch_daily_goals(args.user)
    if args.cmd == "streak":
        return await api.gamification.workout_streak(args.user)
    if args.cmd == "frequency":
        return await api.statistics.training_frequency(args.user)
    if args.cmd == "window":
        return await api.statistics.window_summary(args.user, args.days)
    if args.cmd == "demo":
        inserted = await seed(api.db_path, args.user)
        return {"inserted": inserted}
    raise ValueError(f"unknown command {args.cmd}")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Workout analytics commands")
    parser.add_argument("--db", default=None)
    parser.add_argument("--yaml", default="settings.yaml")
    parser.add_argument("--verbose", action="store_true")
    sub = parser.add_subparsers(dest="cmd", required=True)

    for name in ("scores", "goals", "streak", "frequency", "window", "demo"):
        cmd = sub.add_parser(name)
        cmd.add_argument("--user", default="demo")
        if name == "scores":
            cmd.add_argument("--force", action="store_true")
        if name == "window":
            cmd.add_argument("--days", type=int, choices=[7, 14, 60], default=14)

    e1rm = sub.add_parser("e1rm")
    e1rm.add_argument("--weight", type=float, required=True)
    e1rm.add_argument("--reps", type=int, required=True)

    conv = sub.add_parser("convert")
    conv.add_argument("--weight", type=float, required=True)
    conv.add_argument("--unit", choices=["kg", "lb"], required=True)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.cmd == "e1rm":
        print(f"{round(MathTools.brzycki_1rm(args.weight, args.reps), 2)}")
    elif args.cmd == "convert":
        if args.unit == "kg":
            print(f"{args.weight} kg = {WeightConverter.kg_to_lb(args.weight)} lb")
        else:
            print(f"{args.weight} lb = {WeightConverter.lb_to_kg(args.weight)} kg")
    else:
        api = FitnessAPI(db_path=args.db, yaml_path=args.yaml)
        _print(asyncio.run(run_command(api, args)))


if __name__ == "__main__":
    main()
