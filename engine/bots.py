"""
机器人策略

三种难度，与人类决策共用同一接口:
- RandomBot: 随机选择合法牌 (偶尔忘喊"最后一张")
- ActionCardBot: 优先功能牌
- PointsBot: 优先高分牌
"""
from enum import Enum
from typing import List, Optional

import numpy as np

from core.actions import Action
from core.cards import Card, Color, PLAYABLE_COLORS, count_colors
from core.rules import RuleEngine
from .policy import DecisionPolicy

BOT_NAMES = ("Bot-Alpha", "Bot-Beta", "Bot-Gamma", "Bot-Delta")


def generate_bot_name(index: int) -> str:
    """按序号生成机器人名字"""
    name = BOT_NAMES[index % len(BOT_NAMES)]
    if index >= len(BOT_NAMES):
        name = f"{name}-{index // len(BOT_NAMES) + 1}"
    return name


class BotStrategy(Enum):
    """机器人策略"""
    RANDOM = "random"
    ACTION_FIRST = "action"
    MAX_POINTS = "points"


class BotPolicy(DecisionPolicy):
    """
    机器人基类

    子类只需实现 select_index
    """

    strategy: BotStrategy = BotStrategy.RANDOM

    def __init__(
        self,
        name: str = "bot",
        rng: Optional[np.random.Generator] = None,
        seed: Optional[int] = None,
        forget_probability: float = 0.0,
        play_drawn_probability: float = 1.0,
        challenge_probability: float = 0.0,
    ):
        """
        Args:
            name: 名字
            rng: 随机数生成器 (优先)
            seed: 随机种子
            forget_probability: 忘喊"最后一张"的概率
            play_drawn_probability: 摸到可出的牌时立即打出的概率
            challenge_probability: 质疑万能+4 的概率
        """
        super().__init__(name)
        self.rng = rng if rng is not None else np.random.default_rng(seed)
        self.forget_probability = forget_probability
        self.play_drawn_probability = play_drawn_probability
        self.challenge_probability = challenge_probability

    def _chance(self, p: float) -> bool:
        if p <= 0.0:
            return False
        if p >= 1.0:
            return True
        return bool(self.rng.random() < p)

    def select_index(self, hand: List[Card], legal: List[int]) -> int:
        """从合法位置中选一个"""
        raise NotImplementedError

    def choose_action(self, hand: List[Card], top_card: Card) -> Action:
        legal = RuleEngine.legal_indices(hand, top_card)
        if not legal:
            return Action.draw()
        return Action.play_at(self.select_index(hand, legal))

    def choose_color(self, hand: List[Card]) -> Color:
        """手中最多的颜色 (平局按红黄绿蓝顺序)，无彩色牌时随机"""
        counts = count_colors(hand)
        if not counts:
            return PLAYABLE_COLORS[int(self.rng.integers(len(PLAYABLE_COLORS)))]
        return max(PLAYABLE_COLORS, key=lambda c: counts.get(c, 0))

    def decide_declare_last(self, hand_size_after_play: int) -> bool:
        return not self._chance(self.forget_probability)

    def confirm_challenge(self, hand: List[Card], accused_name: str) -> bool:
        return self._chance(self.challenge_probability)

    def play_drawn_card(self, card: Card, top_card: Card) -> bool:
        return self._chance(self.play_drawn_probability)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name})"


class RandomBot(BotPolicy):
    """随机机器人 (简单)"""

    strategy = BotStrategy.RANDOM

    def __init__(
        self,
        name: str = "random",
        rng: Optional[np.random.Generator] = None,
        seed: Optional[int] = None,
        forget_probability: float = 0.1,
        play_drawn_probability: float = 0.7,
        challenge_probability: float = 0.0,
    ):
        super().__init__(
            name,
            rng=rng,
            seed=seed,
            forget_probability=forget_probability,
            play_drawn_probability=play_drawn_probability,
            challenge_probability=challenge_probability,
        )

    def select_index(self, hand: List[Card], legal: List[int]) -> int:
        return legal[int(self.rng.integers(len(legal)))]


class ActionCardBot(BotPolicy):
    """功能牌优先 (中等)"""

    strategy = BotStrategy.ACTION_FIRST

    def select_index(self, hand: List[Card], legal: List[int]) -> int:
        for i in legal:
            if hand[i].is_action:
                return i
        return legal[int(self.rng.integers(len(legal)))]


class PointsBot(BotPolicy):
    """高分牌优先 (困难)，同分取最先找到的"""

    strategy = BotStrategy.MAX_POINTS

    def select_index(self, hand: List[Card], legal: List[int]) -> int:
        best = legal[0]
        for i in legal:
            if hand[i].points > hand[best].points:
                best = i
        return best


_BOT_CLASSES = {
    BotStrategy.RANDOM: RandomBot,
    BotStrategy.ACTION_FIRST: ActionCardBot,
    BotStrategy.MAX_POINTS: PointsBot,
}


def make_bot(strategy, name: Optional[str] = None, **kwargs) -> BotPolicy:
    """
    按策略创建机器人

    Args:
        strategy: BotStrategy 或其字符串值 ("random" / "action" / "points")
        name: 名字，默认为策略名
        **kwargs: 传给构造函数

    Returns:
        BotPolicy
    """
    strategy = BotStrategy(strategy)
    return _BOT_CLASSES[strategy](name=name or strategy.value, **kwargs)
