"""
对战竞技场

组织多种机器人策略之间的对战
"""
from typing import Dict, List, Optional, Tuple
from dataclasses import dataclass, field
from collections import defaultdict
from itertools import permutations
import numpy as np
import logging
from concurrent.futures import ThreadPoolExecutor

from engine.config import GameConfig
from engine.run import GameResult
from .evaluator import Seat, play_game

logger = logging.getLogger(__name__)


@dataclass
class MatchResult:
    """对局结果"""
    seats: Tuple[str, ...]  # 出牌顺序
    winner: Optional[str]   # None 表示无人获胜
    rounds: int
    turns: int
    scores: Dict[str, int] = field(default_factory=dict)
    disqualified: Tuple[str, ...] = ()

    @classmethod
    def from_game(cls, seats: Tuple[str, ...], result: GameResult) -> 'MatchResult':
        return cls(
            seats=seats,
            winner=result.winner,
            rounds=result.rounds,
            turns=result.total_turns,
            scores=dict(result.scores),
            disqualified=tuple(result.disqualified),
        )


@dataclass
class TournamentResult:
    """锦标赛结果"""
    standings: Dict[str, Dict[str, float]]
    total_games: int
    matches: List[MatchResult]

    def get_ranking(self) -> List[Tuple[str, float]]:
        """获取排名"""
        return sorted(
            [(name, stats.get("win_rate", 0.0)) for name, stats in self.standings.items()],
            key=lambda x: x[1],
            reverse=True,
        )

    def __repr__(self) -> str:
        ranking = self.get_ranking()
        lines = [f"Tournament Results ({self.total_games} games):"]
        for i, (name, win_rate) in enumerate(ranking):
            lines.append(f"  {i+1}. {name}: {win_rate:.2%}")
        return "\n".join(lines)


def compute_standings(matches: List[MatchResult]) -> Dict[str, Dict[str, float]]:
    """由对局结果统计各座位战绩"""
    standings: Dict[str, Dict[str, float]] = defaultdict(lambda: defaultdict(float))
    for match in matches:
        for seat_idx, name in enumerate(match.seats):
            stats = standings[name]
            stats["games"] += 1
            stats["total_score"] += match.scores.get(name, 0)
            if seat_idx == 0:
                stats["first_seat_games"] += 1
            if match.winner == name:
                stats["wins"] += 1
                if seat_idx == 0:
                    stats["first_seat_wins"] += 1
            if name in match.disqualified:
                stats["disqualified"] += 1
        if match.winner is None:
            for name in match.seats:
                standings[name]["draws"] += 1

    for stats in standings.values():
        if stats["games"] > 0:
            stats["win_rate"] = stats["wins"] / stats["games"]
            stats["avg_score"] = stats["total_score"] / stats["games"]
        if stats["first_seat_games"] > 0:
            stats["first_seat_win_rate"] = stats["first_seat_wins"] / stats["first_seat_games"]

    return {name: dict(stats) for name, stats in standings.items()}


class Arena:
    """
    对战竞技场

    组织座位之间的对战，每局完全隔离
    """

    def __init__(self, config: Optional[GameConfig] = None):
        self.config = config or GameConfig()

    def _game_seeds(self, n_games: int, seed: Optional[int]) -> List[int]:
        return [int(s) for s in np.random.SeedSequence(seed).generate_state(n_games)]

    def _play_single_match(self, seats: List[Seat], seed: Optional[int]) -> MatchResult:
        """单场对局"""
        result = play_game(seats, self.config, seed=seed)
        return MatchResult.from_game(tuple(name for name, _ in seats), result)

    def play_match(
        self,
        seats: List[Seat],
        n_games: int = 1,
        seed: Optional[int] = None,
    ) -> List[MatchResult]:
        """
        进行对局

        Args:
            seats: 座位列表 (至少 2 个)
            n_games: 对局数
            seed: 随机种子

        Returns:
            对局结果列表
        """
        assert len(seats) >= 2
        return [self._play_single_match(seats, s) for s in self._game_seeds(n_games, seed)]

    def round_robin(
        self,
        seats: List[Seat],
        games_per_match: int = 10,
        players_per_game: int = 2,
        seed: Optional[int] = None,
    ) -> TournamentResult:
        """
        循环赛

        每种座位排列 (含先后手) 都对战

        Args:
            seats: 座位列表
            games_per_match: 每种排列的对局数
            players_per_game: 每局人数
            seed: 随机种子

        Returns:
            锦标赛结果
        """
        all_matches: List[MatchResult] = []
        perms = list(permutations(range(len(seats)), players_per_game))
        match_seeds = np.random.SeedSequence(seed).spawn(len(perms))

        for perm, match_seed in zip(perms, match_seeds):
            match_seats = [seats[i] for i in perm]
            sub_seed = int(match_seed.generate_state(1)[0])
            all_matches.extend(self.play_match(match_seats, games_per_match, seed=sub_seed))

        logger.info(f"Round robin finished: {len(all_matches)} games")
        return TournamentResult(
            standings=compute_standings(all_matches),
            total_games=len(all_matches),
            matches=all_matches,
        )

    def tournament(
        self,
        seats: List[Seat],
        n_rounds: int = 100,
        players_per_game: int = 4,
        seed: Optional[int] = None,
    ) -> TournamentResult:
        """
        锦标赛

        每轮随机抽取座位与顺序进行一局

        Args:
            seats: 座位列表
            n_rounds: 轮数
            players_per_game: 每局人数 (不超过座位数)
            seed: 随机种子

        Returns:
            锦标赛结果
        """
        rng = np.random.default_rng(seed)
        k = min(players_per_game, len(seats))
        all_matches = []

        for _ in range(n_rounds):
            selected = rng.choice(len(seats), k, replace=False)
            match_seats = [seats[i] for i in selected]
            all_matches.extend(self.play_match(match_seats, 1, seed=int(rng.integers(2**31))))

        return TournamentResult(
            standings=compute_standings(all_matches),
            total_games=len(all_matches),
            matches=all_matches,
        )


class ParallelArena(Arena):
    """
    并行对战竞技场

    使用多线程同时进行多局；每局拥有独立的牌堆、参与者与随机数生成器
    """

    def __init__(self, config: Optional[GameConfig] = None, n_workers: int = 4):
        super().__init__(config)
        self.n_workers = n_workers

    def play_match(
        self,
        seats: List[Seat],
        n_games: int = 1,
        seed: Optional[int] = None,
    ) -> List[MatchResult]:
        """并行对局 (结果按对局顺序返回)"""
        if n_games <= self.n_workers:
            return super().play_match(seats, n_games, seed)

        with ThreadPoolExecutor(max_workers=self.n_workers) as executor:
            futures = [
                executor.submit(self._play_single_match, seats, s)
                for s in self._game_seeds(n_games, seed)
            ]
            return [future.result() for future in futures]


class LeaderBoard:
    """
    排行榜

    追踪各座位历史表现
    """

    def __init__(self):
        self.records: Dict[str, Dict[str, float]] = {}
        self.history: List[Dict] = []

    def update(self, tournament_result: TournamentResult):
        """更新排行榜"""
        for name, stats in tournament_result.standings.items():
            if name not in self.records:
                self.records[name] = defaultdict(float)

            self.records[name]["total_games"] += stats.get("games", 0)
            self.records[name]["total_wins"] += stats.get("wins", 0)

            if self.records[name]["total_games"] > 0:
                self.records[name]["overall_win_rate"] = (
                    self.records[name]["total_wins"] /
                    self.records[name]["total_games"]
                )

        self.history.append({
            "standings": tournament_result.standings,
            "total_games": tournament_result.total_games,
        })

    def get_ranking(self) -> List[Tuple[str, float, int]]:
        """获取排名 (名称, 胜率, 总场次)"""
        return sorted(
            [
                (name, stats.get("overall_win_rate", 0.0), int(stats.get("total_games", 0)))
                for name, stats in self.records.items()
            ],
            key=lambda x: (x[1], x[2]),
            reverse=True,
        )

    def __repr__(self) -> str:
        ranking = self.get_ranking()
        lines = ["Leaderboard:"]
        for i, (name, win_rate, games) in enumerate(ranking):
            lines.append(f"  {i+1}. {name}: {win_rate:.2%} ({games} games)")
        return "\n".join(lines)
