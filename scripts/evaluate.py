#!/usr/bin/env python3
"""
评估脚本

Usage:
    python scripts/evaluate.py --strategies random points --games 100
    python scripts/evaluate.py --compare --strategy1 action --strategy2 points
    python scripts/evaluate.py --tournament --strategies random action points --workers 4
"""
import argparse
import logging
import sys
from pathlib import Path
import json

# 添加项目根目录到路径
ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT))

from engine import GameConfig
from evaluation import (
    Evaluator,
    Arena,
    ParallelArena,
    LeaderBoard,
    bot_seat,
)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger(__name__)

# 批量评估时每局的默认轮数上限
DEFAULT_MAX_ROUNDS = 50

STRATEGIES = ["random", "action", "points"]


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="UNO Bot Evaluation")

    # 模式
    parser.add_argument("--compare", action="store_true", help="Compare two strategies")
    parser.add_argument("--tournament", action="store_true", help="Run round-robin tournament")

    # 策略
    parser.add_argument("--strategies", nargs="+", type=str, choices=STRATEGIES,
                        default=["random", "points"], help="Bot strategies (seat order)")
    parser.add_argument("--strategy1", type=str, choices=STRATEGIES, default="action")
    parser.add_argument("--strategy2", type=str, choices=STRATEGIES, default="points")

    # 评估参数
    parser.add_argument("--games", type=int, default=100, help="Number of games")
    parser.add_argument("--players-per-game", type=int, default=2, help="Seats per tournament game")
    parser.add_argument(
        "--variant",
        type=str,
        default=None,
        choices=["standard", "special rules", "quick game"],
    )
    parser.add_argument("--win-threshold", type=int, default=None, help="Override winning score")
    parser.add_argument("--max-rounds", type=int, default=None,
                        help=f"Round limit per game (default {DEFAULT_MAX_ROUNDS})")

    # 其他
    parser.add_argument("--config", type=str, help="JSON config file")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--workers", type=int, default=1, help="Parallel workers for tournament")
    parser.add_argument("--output", type=str, help="Output file for results")
    parser.add_argument("--verbose", action="store_true", help="Verbose output")

    return parser.parse_args(argv)


def build_config(args) -> GameConfig:
    """由命令行参数构造游戏配置"""
    config = GameConfig.from_json(args.config) if args.config else GameConfig()
    if args.variant is not None:
        config.variant = args.variant
    if args.max_rounds is not None:
        config.max_rounds = args.max_rounds
    elif config.max_rounds is None:
        config.max_rounds = DEFAULT_MAX_ROUNDS
    if args.win_threshold is not None:
        config.win_threshold = args.win_threshold
    return config


def unique_seats(strategies):
    """同一策略出现多次时加序号区分座位名"""
    seats = []
    for i, strategy in enumerate(strategies):
        name = strategy if strategies.count(strategy) == 1 else f"{strategy}_{i}"
        seats.append(bot_seat(strategy, name=name))
    return seats


def evaluate_strategies(args, config: GameConfig):
    """固定座位评估一组策略"""
    seats = unique_seats(args.strategies)
    logger.info(f"Evaluating seats: {[name for name, _ in seats]}")

    evaluator = Evaluator(config)
    result = evaluator.evaluate(seats, n_games=args.games, seed=args.seed, verbose=args.verbose)

    logger.info("=" * 50)
    logger.info("Evaluation Results")
    logger.info("=" * 50)
    for name, rate in result.win_rates.items():
        logger.info(
            f"{name}: win rate {rate:.2%}, avg score {result.avg_scores[name]:.1f}, "
            f"disqualified {result.disqualifications[name]}"
        )
    logger.info(f"Draw Rate: {result.draw_rate:.2%}")
    logger.info(f"Average Rounds: {result.avg_rounds:.1f}")
    logger.info(f"Average Turns: {result.avg_turns:.1f}")
    logger.info("=" * 50)

    if args.output:
        with open(args.output, "w") as f:
            json.dump({
                "games_played": result.games_played,
                "win_rates": result.win_rates,
                "draw_rate": result.draw_rate,
                "avg_rounds": result.avg_rounds,
                "avg_turns": result.avg_turns,
                "avg_scores": result.avg_scores,
                "disqualifications": result.disqualifications,
            }, f, indent=2)
        logger.info(f"Results saved to {args.output}")

    return result


def compare_strategies(args, config: GameConfig):
    """比较两个策略"""
    name1 = args.strategy1
    name2 = args.strategy2 if args.strategy2 != args.strategy1 else f"{args.strategy2}_b"
    logger.info(f"Comparing strategies: {name1} vs {name2}")

    evaluator = Evaluator(config)
    result = evaluator.compare(
        bot_seat(args.strategy1, name=name1),
        bot_seat(args.strategy2, name=name2),
        n_games=args.games,
        seed=args.seed,
    )

    logger.info("=" * 50)
    logger.info("Comparison Results")
    logger.info("=" * 50)
    logger.info(f"{name1} wins: {result[f'{name1}_wins']} ({result[f'{name1}_win_rate']:.2%})")
    logger.info(f"{name2} wins: {result[f'{name2}_wins']} ({result[f'{name2}_win_rate']:.2%})")
    logger.info(f"Draws: {result['draws']}")
    logger.info("=" * 50)

    if args.output:
        with open(args.output, "w") as f:
            json.dump(result, f, indent=2)

    return result


def run_tournament(args, config: GameConfig):
    """运行循环赛"""
    seats = unique_seats(args.strategies)
    logger.info(f"Running tournament with {len(seats)} seats")

    if args.workers > 1:
        arena = ParallelArena(config, n_workers=args.workers)
    else:
        arena = Arena(config)

    perms = max(len(seats) * (len(seats) - 1), 1)
    result = arena.round_robin(
        seats,
        games_per_match=max(args.games // perms, 1),
        players_per_game=min(args.players_per_game, len(seats)),
        seed=args.seed,
    )

    logger.info("=" * 50)
    logger.info("Tournament Results")
    logger.info("=" * 50)

    ranking = result.get_ranking()
    for i, (name, win_rate) in enumerate(ranking):
        logger.info(f"{i+1}. {name}: {win_rate:.2%}")

    logger.info("=" * 50)

    board = LeaderBoard()
    board.update(result)
    logger.info(repr(board))

    if args.output:
        with open(args.output, "w") as f:
            json.dump({
                "rankings": ranking,
                "total_games": result.total_games,
                "standings": result.standings,
            }, f, indent=2)

    return result


def main():
    args = parse_args()
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    config = build_config(args)

    if args.tournament:
        if len(args.strategies) < 2:
            logger.error("Tournament needs at least two strategies")
            sys.exit(1)
        run_tournament(args, config)
    elif args.compare:
        compare_strategies(args, config)
    else:
        if len(args.strategies) < 2:
            logger.error("Evaluation needs at least two strategies")
            sys.exit(1)
        evaluate_strategies(args, config)


if __name__ == "__main__":
    main()
