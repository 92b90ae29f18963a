"""
评估器

让机器人策略进行多局完全隔离的对局并统计表现
"""
from typing import Callable, Dict, List, Optional, Sequence, Tuple
from dataclasses import dataclass, field
import logging

import numpy as np

from core.state import Participant
from engine.bots import make_bot
from engine.config import GameConfig
from engine.policy import DecisionPolicy
from engine.run import GameResult, TurnController

logger = logging.getLogger(__name__)

PolicyFactory = Callable[[np.random.Generator], DecisionPolicy]
Seat = Tuple[str, PolicyFactory]


def bot_seat(strategy: str, name: Optional[str] = None, **kwargs) -> Seat:
    """
    创建机器人座位

    Args:
        strategy: "random" / "action" / "points"
        name: 座位名 (默认为策略名)
        **kwargs: 传给机器人构造函数

    Returns:
        (名字, 策略工厂)
    """
    seat_name = name or strategy

    def factory(rng: np.random.Generator) -> DecisionPolicy:
        return make_bot(strategy, name=seat_name, rng=rng, **kwargs)

    return seat_name, factory


def play_game(
    seats: Sequence[Seat],
    config: Optional[GameConfig] = None,
    seed: Optional[int] = None,
) -> GameResult:
    """
    进行一局游戏

    每局使用全新的参与者、策略与随机数生成器，不与其他对局共享可变状态。

    Args:
        seats: 座位列表 (出牌顺序)
        config: 游戏配置
        seed: 本局随机种子

    Returns:
        GameResult
    """
    seq = np.random.SeedSequence(seed)
    game_seq, *policy_seqs = seq.spawn(len(seats) + 1)
    participants = [
        Participant(name=name, policy=factory(np.random.default_rng(s)))
        for (name, factory), s in zip(seats, policy_seqs)
    ]
    controller = TurnController(
        participants,
        config=config,
        rng=np.random.default_rng(game_seq),
    )
    return controller.run_game()


@dataclass
class EvalResult:
    """评估结果"""
    games_played: int
    wins: Dict[str, int]
    draws: int
    avg_rounds: float
    avg_turns: float
    disqualifications: Dict[str, int] = field(default_factory=dict)
    avg_scores: Dict[str, float] = field(default_factory=dict)

    @property
    def win_rates(self) -> Dict[str, float]:
        if self.games_played == 0:
            return {name: 0.0 for name in self.wins}
        return {name: w / self.games_played for name, w in self.wins.items()}

    @property
    def draw_rate(self) -> float:
        return self.draws / self.games_played if self.games_played else 0.0

    def __repr__(self) -> str:
        rates = ", ".join(f"{n}={r:.2%}" for n, r in self.win_rates.items())
        return f"EvalResult({rates}, draws={self.draws}, games={self.games_played})"


class Evaluator:
    """
    评估器

    固定座位顺序进行多局对局
    """

    def __init__(self, config: Optional[GameConfig] = None):
        self.config = config or GameConfig()

    def evaluate(
        self,
        seats: Sequence[Seat],
        n_games: int = 100,
        seed: Optional[int] = None,
        verbose: bool = False,
    ) -> EvalResult:
        """
        评估一组座位

        Args:
            seats: 座位列表
            n_games: 对局数
            seed: 随机种子 (为 None 时每次不同)
            verbose: 是否输出进度

        Returns:
            评估结果
        """
        names = [name for name, _ in seats]
        wins = {name: 0 for name in names}
        disqualifications = {name: 0 for name in names}
        scores: Dict[str, List[int]] = {name: [] for name in names}
        rounds: List[int] = []
        turns: List[int] = []
        draws = 0

        game_seeds = np.random.SeedSequence(seed).generate_state(n_games)
        for game_idx in range(n_games):
            result = play_game(seats, self.config, seed=int(game_seeds[game_idx]))

            if result.winner is None:
                draws += 1
            else:
                wins[result.winner] += 1
            for name in result.disqualified:
                disqualifications[name] += 1
            for name, score in result.scores.items():
                scores[name].append(score)
            rounds.append(result.rounds)
            turns.append(result.total_turns)

            if verbose and (game_idx + 1) % 10 == 0:
                logger.info(f"Game {game_idx + 1}/{n_games}, wins: {wins}")

        return EvalResult(
            games_played=n_games,
            wins=wins,
            draws=draws,
            avg_rounds=float(np.mean(rounds)) if rounds else 0.0,
            avg_turns=float(np.mean(turns)) if turns else 0.0,
            disqualifications=disqualifications,
            avg_scores={n: float(np.mean(s)) if s else 0.0 for n, s in scores.items()},
        )

    def compare(
        self,
        seat1: Seat,
        seat2: Seat,
        n_games: int = 100,
        seed: Optional[int] = None,
    ) -> Dict[str, float]:
        """
        两个座位对战，每局交换先后手

        Returns:
            对比结果
        """
        name1, name2 = seat1[0], seat2[0]
        if name1 == name2:
            raise ValueError("Seats must have different names")

        wins = {name1: 0, name2: 0}
        draws = 0
        game_seeds = np.random.SeedSequence(seed).generate_state(n_games)

        for game_idx in range(n_games):
            seats = [seat1, seat2] if game_idx % 2 == 0 else [seat2, seat1]
            result = play_game(seats, self.config, seed=int(game_seeds[game_idx]))
            if result.winner is None:
                draws += 1
            else:
                wins[result.winner] += 1

        return {
            f"{name1}_wins": wins[name1],
            f"{name2}_wins": wins[name2],
            "draws": draws,
            f"{name1}_win_rate": wins[name1] / n_games if n_games else 0.0,
            f"{name2}_win_rate": wins[name2] / n_games if n_games else 0.0,
        }
