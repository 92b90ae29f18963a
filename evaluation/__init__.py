"""
Evaluation Layer - 机器人对战评估

Modules:
    evaluator: 对局与评估器
    arena: 对战竞技场
    metrics: 评估指标
"""
from .evaluator import (
    Seat,
    bot_seat,
    play_game,
    EvalResult,
    Evaluator,
)
from .arena import (
    MatchResult,
    TournamentResult,
    Arena,
    ParallelArena,
    LeaderBoard,
    compute_standings,
)
from .metrics import (
    MetricType,
    GameMetrics,
    MetricsCollector,
    RunningStats,
    MetricsAggregator,
    chi_square_uniformity,
)

__all__ = [
    # evaluator
    "Seat",
    "bot_seat",
    "play_game",
    "EvalResult",
    "Evaluator",
    # arena
    "MatchResult",
    "TournamentResult",
    "Arena",
    "ParallelArena",
    "LeaderBoard",
    "compute_standings",
    # metrics
    "MetricType",
    "GameMetrics",
    "MetricsCollector",
    "RunningStats",
    "MetricsAggregator",
    "chi_square_uniformity",
]
