"""
评估指标

定义和计算对局统计指标
"""
from typing import Dict, List, Optional, Sequence, Tuple
from dataclasses import dataclass, field
from collections import defaultdict
import numpy as np
from enum import Enum

from engine.run import GameResult


class MetricType(Enum):
    """指标类型"""
    WIN_RATE = "win_rate"
    DRAW_RATE = "draw_rate"
    ROUNDS = "rounds"
    TURNS = "turns"
    SCORE = "score"
    DISQUALIFICATION_RATE = "disqualification_rate"


@dataclass
class GameMetrics:
    """单局游戏指标"""
    seats: Tuple[str, ...]
    winner: Optional[str]
    rounds: int
    turns: int
    scores: Dict[str, int] = field(default_factory=dict)
    disqualified: Tuple[str, ...] = ()

    @classmethod
    def from_result(cls, seats: Sequence[str], result: GameResult) -> 'GameMetrics':
        return cls(
            seats=tuple(seats),
            winner=result.winner,
            rounds=result.rounds,
            turns=result.total_turns,
            scores=dict(result.scores),
            disqualified=tuple(result.disqualified),
        )


class MetricsCollector:
    """
    指标收集器

    收集和计算游戏指标
    """

    def __init__(self):
        self.games: List[GameMetrics] = []
        self._stats: Dict[str, Dict] = defaultdict(lambda: defaultdict(list))

    def add_game(self, metrics: GameMetrics):
        """添加游戏指标"""
        self.games.append(metrics)

        for seat_idx, player in enumerate(metrics.seats):
            stats = self._stats[player]
            stats["games"].append(1)
            stats["wins"].append(1 if metrics.winner == player else 0)
            stats["first_seat"].append(1 if seat_idx == 0 else 0)
            stats["rounds"].append(metrics.rounds)
            stats["turns"].append(metrics.turns)
            stats["scores"].append(metrics.scores.get(player, 0))
            stats["disqualified"].append(1 if player in metrics.disqualified else 0)

    def compute_metrics(self, player: Optional[str] = None) -> Dict[str, float]:
        """
        计算指标

        Args:
            player: 指定玩家，None 表示全局

        Returns:
            指标字典
        """
        if player is not None:
            stats = self._stats[player]
            n_games = len(stats["games"])

            if n_games == 0:
                return {}

            return {
                "games": n_games,
                "win_rate": float(np.mean(stats["wins"])),
                "avg_score": float(np.mean(stats["scores"])),
                "avg_rounds": float(np.mean(stats["rounds"])),
                "disqualification_rate": float(np.mean(stats["disqualified"])),
            }

        n_games = len(self.games)
        if n_games == 0:
            return {}

        return {
            "total_games": n_games,
            "draw_rate": float(np.mean([1 if g.winner is None else 0 for g in self.games])),
            "first_seat_win_rate": float(np.mean([
                1 if g.winner is not None and g.winner == g.seats[0] else 0
                for g in self.games
            ])),
            "avg_rounds": float(np.mean([g.rounds for g in self.games])),
            "avg_turns": float(np.mean([g.turns for g in self.games])),
        }

    def reset(self):
        """重置"""
        self.games.clear()
        self._stats.clear()


class RunningStats:
    """
    运行时统计

    在线计算均值和方差 (Welford)
    """

    def __init__(self):
        self.n = 0
        self.mean = 0.0
        self.M2 = 0.0
        self.min_val = float('inf')
        self.max_val = float('-inf')

    def update(self, x: float):
        """更新统计"""
        self.n += 1
        delta = x - self.mean
        self.mean += delta / self.n
        self.M2 += delta * (x - self.mean)
        self.min_val = min(self.min_val, x)
        self.max_val = max(self.max_val, x)

    @property
    def variance(self) -> float:
        """样本方差"""
        if self.n < 2:
            return 0.0
        return self.M2 / (self.n - 1)

    @property
    def std(self) -> float:
        return float(np.sqrt(self.variance))

    def to_dict(self) -> Dict[str, float]:
        return {
            "count": self.n,
            "mean": self.mean,
            "std": self.std,
            "min": self.min_val if self.n > 0 else 0.0,
            "max": self.max_val if self.n > 0 else 0.0,
        }


class MetricsAggregator:
    """
    指标聚合器

    按名字聚合多局的数值指标
    """

    def __init__(self):
        self.metrics: Dict[str, RunningStats] = defaultdict(RunningStats)

    def add(self, name: str, value: float):
        self.metrics[name].update(value)

    def add_game(self, result: GameResult):
        """记录一局的轮数、回合数与各参与者得分"""
        self.add(MetricType.ROUNDS.value, result.rounds)
        self.add(MetricType.TURNS.value, result.total_turns)
        for name, score in result.scores.items():
            self.add(f"{MetricType.SCORE.value}/{name}", score)

    def get(self, name: str) -> Dict[str, float]:
        if name in self.metrics:
            return self.metrics[name].to_dict()
        return {}

    def get_means(self) -> Dict[str, float]:
        return {name: stats.mean for name, stats in self.metrics.items()}

    def reset(self):
        self.metrics.clear()


def chi_square_uniformity(counts: Sequence[float]) -> float:
    """
    卡方统计量: 观测计数与均匀分布的偏差

    用于检查洗牌等随机过程是否均匀

    Args:
        counts: 各类别的观测次数

    Returns:
        卡方统计量 (自由度为类别数 - 1)
    """
    observed = np.asarray(counts, dtype=np.float64)
    total = observed.sum()
    if total == 0 or observed.size == 0:
        return 0.0
    expected = total / observed.size
    return float(np.sum((observed - expected) ** 2 / expected))
