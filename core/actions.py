"""
动作类型定义

一个回合中玩家只能摸牌或打出某个位置的手牌
"""
from enum import IntEnum, Enum
from dataclasses import dataclass
from typing import List, Optional

from .cards import Card, card_to_str


class ActionType(IntEnum):
    """动作类型"""
    DRAW = 0  # 摸牌
    PLAY = 1  # 出牌


@dataclass(frozen=True, slots=True)
class Action:
    """
    不可变动作表示

    Attributes:
        action_type: 动作类型
        index: 出牌时的手牌位置 (摸牌时为 None)
    """
    action_type: ActionType
    index: Optional[int] = None

    @classmethod
    def draw(cls) -> 'Action':
        """创建摸牌动作"""
        return cls(action_type=ActionType.DRAW)

    @classmethod
    def play_at(cls, index: int) -> 'Action':
        """创建出牌动作"""
        return cls(action_type=ActionType.PLAY, index=index)

    @property
    def is_draw(self) -> bool:
        return self.action_type == ActionType.DRAW

    @property
    def is_play(self) -> bool:
        return self.action_type == ActionType.PLAY

    def is_valid_for(self, hand_size: int) -> bool:
        """语法检查: 出牌位置是否在手牌范围内"""
        if self.is_draw:
            return True
        return self.index is not None and 0 <= self.index < hand_size

    def __repr__(self) -> str:
        if self.is_draw:
            return "Action(draw)"
        return f"Action(play_at={self.index})"


class RejectReason(Enum):
    """出牌被拒原因"""
    NO_MATCH = "no_match"            # 颜色与牌面都不匹配
    INVALID_INDEX = "invalid_index"  # 手牌位置越界
    NO_TOP_CARD = "no_top_card"      # 弃牌堆为空


@dataclass(frozen=True)
class PlayResult:
    """
    出牌校验结果

    被拒时带上出的牌与顶牌，便于界面给出提示

    Attributes:
        accepted: 是否接受
        card: 尝试打出的牌
        top_card: 当时的顶牌
        reason: 被拒原因
        penalty_cards: 因被拒而罚摸的牌
    """
    accepted: bool
    card: Optional[Card] = None
    top_card: Optional[Card] = None
    reason: Optional[RejectReason] = None
    penalty_cards: tuple = ()

    @classmethod
    def accept(cls, card: Card, top_card: Optional[Card]) -> 'PlayResult':
        return cls(accepted=True, card=card, top_card=top_card)

    @classmethod
    def reject(
        cls,
        reason: RejectReason,
        card: Optional[Card] = None,
        top_card: Optional[Card] = None,
        penalty_cards: tuple = (),
    ) -> 'PlayResult':
        return cls(
            accepted=False,
            card=card,
            top_card=top_card,
            reason=reason,
            penalty_cards=penalty_cards,
        )

    @property
    def message(self) -> str:
        """可直接展示给玩家的说明"""
        if self.accepted:
            return f"{card_to_str(self.card)} accepted"
        if self.reason == RejectReason.INVALID_INDEX:
            return "Invalid card choice"
        if self.reason == RejectReason.NO_TOP_CARD:
            return "No card on the discard pile"
        return (
            f"Invalid card! {card_to_str(self.card)} cannot be played on "
            f"{card_to_str(self.top_card)}"
        )


class ChallengeOutcome(Enum):
    """万能+4 质疑结果"""
    BLUFF_CONFIRMED = "bluff_confirmed"  # 出牌者确实手里有同色牌
    BLUFF_DENIED = "bluff_denied"        # 出牌者合规


def legal_actions(hand: List[Card], top_card: Optional[Card]) -> List[Action]:
    """
    当前所有合法动作 (摸牌始终合法)

    Args:
        hand: 手牌
        top_card: 弃牌堆顶牌

    Returns:
        动作列表，第一个为摸牌
    """
    from .rules import RuleEngine
    actions = [Action.draw()]
    actions.extend(Action.play_at(i) for i in RuleEngine.legal_indices(hand, top_card))
    return actions
