#!/usr/bin/env python3
"""
对战脚本

Usage:
    python scripts/play.py --mode watch                 # 观看机器人对战
    python scripts/play.py --mode play --name Alice     # 与机器人对战
    python scripts/play.py --humans 2 --bots 2 --bot-strategy points
"""
import argparse
import logging
import sys
import time
from pathlib import Path
from typing import List

# 添加项目根目录到路径
ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT))

import numpy as np

from core.cards import card_to_str
from core.state import Participant, ParticipantKind
from engine import (
    ConsoleInteractionPort,
    EventKind,
    GameConfig,
    GameEvent,
    GameListener,
    GameResultRecord,
    HumanPolicy,
    RoundScoreRecord,
    TurnController,
    generate_bot_name,
    make_bot,
)

logging.basicConfig(
    level=logging.WARNING,
    format="%(message)s",
)
logger = logging.getLogger(__name__)

MAX_PLAYERS = 4


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="UNO Play")

    parser.add_argument(
        "--mode",
        type=str,
        default="play",
        choices=["watch", "play"],
        help="Mode: watch bots or play against bots",
    )
    parser.add_argument("--name", type=str, nargs="+", default=["Player"], help="Human player names")
    parser.add_argument("--humans", type=int, default=None, help="Number of human players")
    parser.add_argument("--bots", type=int, default=None, help="Number of bots (default: fill up to 4)")
    parser.add_argument(
        "--bot-strategy",
        type=str,
        default="random",
        choices=["random", "action", "points"],
        help="Bot strategy",
    )
    parser.add_argument(
        "--variant",
        type=str,
        default=None,
        choices=["standard", "special rules", "quick game"],
        help="Scoring variant (default: from --config, else standard)",
    )
    parser.add_argument("--config", type=str, help="JSON config file")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--delay", type=float, default=0.0, help="Delay between bot moves")
    parser.add_argument("--verbose", action="store_true", help="Verbose logging")

    return parser.parse_args(argv)


class ConsoleListener(GameListener):
    """在控制台展示游戏事件"""

    def __init__(self, port: ConsoleInteractionPort, delay: float = 0.0):
        self.port = port
        self.delay = delay

    def on_event(self, event: GameEvent) -> None:
        who = event.participant or ""
        card = card_to_str(event.card) if event.card is not None else ""
        kind = event.kind

        if kind == EventKind.ROUND_START:
            self.port.show(f"\n{'=' * 60}\n{event.detail.title()} - {who} plays first\n{'=' * 60}")
        elif kind == EventKind.START_CARD:
            self.port.show(f"Starting card: {card or 'none'}")
        elif kind == EventKind.PLAY:
            self.port.show(f"{who} plays: {card}")
            if self.delay:
                time.sleep(self.delay)
        elif kind == EventKind.REJECTED:
            self.port.show(event.detail)
        elif kind == EventKind.DRAW:
            self.port.show(f"{who} draws a card." if event.card is not None else f"{who}: {event.detail}")
        elif kind == EventKind.PENALTY:
            self.port.show(f"{who} receives a penalty ({event.detail})")
        elif kind == EventKind.DECLARE:
            self.port.show(f"{who} calls: UNO!")
        elif kind == EventKind.DECLARATION_MISSED:
            self.port.show(f"{who} forgot to call UNO!")
        elif kind == EventKind.COLOR_CHOSEN:
            self.port.show(f"{who} chooses {event.detail}")
        elif kind == EventKind.SKIP:
            self.port.show(f"{who} must skip their turn!")
        elif kind == EventKind.REVERSE:
            self.port.show("Play direction is reversed!")
        elif kind == EventKind.FORCED_DRAW:
            self.port.show(f"{who} {event.detail} cards")
        elif kind == EventKind.CHALLENGE:
            self.port.show(f"{who} challenges {event.detail}")
        elif kind == EventKind.DISQUALIFIED:
            self.port.show(f"{who} is disqualified ({event.detail})!")
        elif kind == EventKind.ROUND_END:
            self.port.show(f"\n{who} has won the round! ({event.detail} points)")
        elif kind == EventKind.ROUND_DRAW:
            self.port.show(f"\nThe round ends in a draw: {event.detail}")

    def on_round_scores(self, records: List[RoundScoreRecord]) -> None:
        self.port.show("\n=== CURRENT SCORES ===")
        for r in sorted(records, key=lambda r: r.cumulative_score, reverse=True):
            self.port.show(f"{r.participant_name}: {r.cumulative_score} points")

    def on_game_result(self, record: GameResultRecord) -> None:
        self.port.show("\n" + "=" * 60)
        if record.winner == "draw":
            self.port.show(f"Game over after {record.total_rounds} rounds, no winner.")
        else:
            self.port.show(f"{record.winner} has won the entire game after {record.total_rounds} rounds!")
        self.port.show("=" * 60)


def create_participants(args, port: ConsoleInteractionPort, config: GameConfig):
    """创建参与者"""
    n_humans = 0 if args.mode == "watch" else (args.humans or len(args.name))
    names = list(args.name) + [f"Player {i + 1}" for i in range(len(args.name), n_humans)]
    n_bots = args.bots if args.bots is not None else max(MAX_PLAYERS - n_humans, 0)

    seeds = np.random.SeedSequence(args.seed).spawn(max(n_bots, 1))
    participants = [
        Participant(names[i], policy=HumanPolicy(port, max_retries=config.max_retries, name=names[i]))
        for i in range(n_humans)
    ]
    for i in range(n_bots):
        name = generate_bot_name(i)
        bot = make_bot(args.bot_strategy, name=name, rng=np.random.default_rng(seeds[i]))
        participants.append(Participant(name, policy=bot))

    for p in participants:
        kind = "Human" if p.kind == ParticipantKind.HUMAN else "Bot"
        port.show(f"   {kind}: {p.name}")
    return participants


def build_config(args) -> GameConfig:
    """配置文件为基础，只覆盖命令行显式给出的参数"""
    config = GameConfig.from_json(args.config) if args.config else GameConfig()
    if args.variant is not None:
        config.variant = args.variant
    if args.seed is not None:
        config.seed = args.seed
    return config


def main():
    args = parse_args()
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    config = build_config(args)

    port = ConsoleInteractionPort()
    port.show("Welcome to UNO!")
    participants = create_participants(args, port, config)

    controller = TurnController(
        participants,
        config=config,
        listeners=[ConsoleListener(port, args.delay)],
    )
    try:
        result = controller.run_game()
    except KeyboardInterrupt:
        port.show("\nGame aborted.")
        return 1

    logger.info(f"Final scores: {result.scores}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
