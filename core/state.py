"""
游戏状态定义

- Participant: 手牌、总分、罚牌次数、是否已喊"最后一张"
- GameState: 参与者环、当前行动位置、方向、轮次
"""
from dataclasses import dataclass, field
from typing import List, Optional, Any, Iterable
from enum import Enum

from .cards import Card, hand_points

# 规则常量
WIN_THRESHOLD = 500
HAND_SIZE = 7
DISQUALIFY_THRESHOLD = 3
MIN_PARTICIPANTS = 2

CLOCKWISE = 1
COUNTER_CLOCKWISE = -1


class InvalidSetupError(ValueError):
    """开局配置非法 (参与者不足、配置错误等)，必须在任何回合开始前拒绝"""


class Phase(Enum):
    """回合控制阶段"""
    AWAITING_START_EFFECT = "awaiting_start_effect"  # 起始牌效果待处理
    ACTIVE = "active"                                # 回合进行中
    ROUND_END = "round_end"                          # 有人出完牌
    DRAW = "draw"                                    # 牌堆耗尽，本轮平局
    GAME_END = "game_end"                            # 游戏结束


class ParticipantKind(Enum):
    """参与者类型"""
    HUMAN = "human"
    AUTOMATED = "automated"


class Variant(Enum):
    """
    计分变体 (只影响计分，不影响出牌规则)

    standard: 不变; special rules: ×2; quick game: ÷2 (整除)
    """
    STANDARD = "standard"
    SPECIAL_RULES = "special rules"
    QUICK_GAME = "quick game"

    @classmethod
    def parse(cls, name: str) -> 'Variant':
        """大小写不敏感解析，"-"/"_" 视同空格"""
        key = name.strip().lower().replace("_", " ").replace("-", " ")
        for variant in cls:
            if variant.value == key:
                return variant
        raise ValueError(f"Unknown variant: {name!r}")

    def apply(self, score: int) -> int:
        if self == Variant.SPECIAL_RULES:
            return score * 2
        if self == Variant.QUICK_GAME:
            return score // 2
        return score


@dataclass(eq=False)
class Participant:
    """
    游戏参与者

    人类与机器人共用同一结构，行为差异全部由 policy (决策接口) 提供。

    Attributes:
        name: 名字
        policy: 决策策略 (需提供 choose_action / choose_color 等方法)
        hand: 手牌
        total_score: 跨轮累计得分
        penalty_count: 本轮罚牌次数
        declared_last: 是否已喊"最后一张"
    """
    name: str
    policy: Any = None
    hand: List[Card] = field(default_factory=list)
    total_score: int = 0
    penalty_count: int = 0
    declared_last: bool = False

    def __post_init__(self):
        if self.name is None or not self.name.strip():
            raise ValueError("Participant name cannot be empty")
        self.name = self.name.strip()

    @property
    def kind(self) -> ParticipantKind:
        return getattr(self.policy, "kind", ParticipantKind.AUTOMATED)

    @property
    def hand_size(self) -> int:
        return len(self.hand)

    @property
    def has_won_round(self) -> bool:
        return not self.hand

    def add_card(self, card: Card) -> None:
        """加入手牌，手牌超过 1 张时清除喊牌标记"""
        if card is None:
            raise ValueError("Cannot add None to hand")
        self.hand.append(card)
        if len(self.hand) > 1:
            self.declared_last = False

    def add_cards(self, cards: Iterable[Card]) -> None:
        for card in cards:
            self.add_card(card)

    def remove_card(self, index: int) -> Card:
        """取出指定位置的手牌"""
        if index < 0 or index >= len(self.hand):
            raise IndexError(f"Invalid card index: {index}")
        return self.hand.pop(index)

    def index_of(self, card: Card) -> int:
        """按对象身份查找手牌位置"""
        for i, c in enumerate(self.hand):
            if c is card:
                return i
        raise ValueError(f"{card!r} is not in {self.name}'s hand")

    def declare_last(self) -> bool:
        """喊"最后一张"，仅在手牌恰为 1 张时生效"""
        if len(self.hand) == 1:
            self.declared_last = True
        return self.declared_last

    def add_penalty(self) -> None:
        self.penalty_count += 1

    def add_score(self, points: int) -> None:
        if points > 0:
            self.total_score += points

    def clear_hand(self) -> List[Card]:
        """清空手牌 (新一轮)，返回原手牌"""
        cards, self.hand = self.hand, []
        self.declared_last = False
        return cards

    def reset_penalties(self) -> None:
        self.penalty_count = 0

    def calculate_hand_points(self) -> int:
        return hand_points(self.hand)

    def __repr__(self) -> str:
        return f"Participant({self.name}, cards={len(self.hand)}, score={self.total_score})"


@dataclass
class GameState:
    """
    可变游戏状态 (由回合控制器独占)

    参与者环只会因取消资格而移除成员，turn_index 始终指向存活成员。

    Attributes:
        participants: 参与者环 (出牌顺序)
        turn_index: 当前行动者在环中的位置
        direction: 方向 (+1 / -1)
        round_number: 当前轮次 (从 1 开始)
        variant: 计分变体
        phase: 当前阶段
        turn_count: 本轮已进行的回合数
    """
    participants: List[Participant]
    turn_index: int = 0
    direction: int = CLOCKWISE
    round_number: int = 1
    variant: Variant = Variant.STANDARD
    phase: Phase = Phase.AWAITING_START_EFFECT
    turn_count: int = 0

    @property
    def ring_size(self) -> int:
        return len(self.participants)

    @property
    def current(self) -> Participant:
        return self.participants[self.turn_index]

    def next_index(self, steps: int = 1) -> int:
        """沿当前方向前进 steps 步后的位置 (双向回绕)"""
        return (self.turn_index + self.direction * steps) % len(self.participants)

    @property
    def next_participant(self) -> Participant:
        return self.participants[self.next_index()]

    def advance(self, steps: int = 1) -> Participant:
        """移动到下一个行动者"""
        self.turn_index = self.next_index(steps)
        return self.current

    def reverse(self) -> int:
        self.direction *= -1
        return self.direction

    def remove_participants(self, removed: List[Participant]) -> None:
        """
        从环中移除参与者，并保持 turn_index 指向本应行动的存活成员

        若当前行动者被移除，行动权沿当前方向交给下一个存活成员。
        """
        if not removed:
            return
        removed_ids = {id(p) for p in removed}
        survivors = [p for p in self.participants if id(p) not in removed_ids]
        if not survivors:
            self.participants = []
            self.turn_index = 0
            return

        # 沿方向找到第一个存活的成员 (从当前行动者开始)
        n = len(self.participants)
        target = None
        for step in range(n):
            candidate = self.participants[(self.turn_index + self.direction * step) % n]
            if id(candidate) not in removed_ids:
                target = candidate
                break

        self.participants = survivors
        self.turn_index = next(i for i, p in enumerate(survivors) if p is target)

    def find(self, name: str) -> Optional[Participant]:
        for p in self.participants:
            if p.name == name:
                return p
        return None
