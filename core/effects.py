"""
功能牌效果解析

纯函数: 由打出的牌与当前方向计算需要执行的后续动作，
实际摸牌、跳过、选色由回合控制器执行。
"""
from dataclasses import dataclass

from .cards import Card, Rank, card_to_str


@dataclass(frozen=True)
class Effect:
    """
    功能牌效果

    Attributes:
        direction: 执行后的方向
        target_draw: 下一位参与者需摸的张数
        skip_next: 是否跳过下一位参与者
        choose_color: 出牌者是否需要选色
        challengeable: 下一位参与者能否质疑 (万能+4)
    """
    direction: int
    target_draw: int = 0
    skip_next: bool = False
    choose_color: bool = False
    challengeable: bool = False

    @property
    def is_noop(self) -> bool:
        return not (self.target_draw or self.skip_next or self.choose_color)


def is_special(card: Card) -> bool:
    """是否为有效果的功能牌"""
    return card.rank.is_action


def resolve_effect(card: Card, direction: int) -> Effect:
    """
    解析打出功能牌后的效果

    | 牌面 | 效果 |
    | +2 | 下家摸 2 张并跳过 |
    | 反转 | 方向取反 |
    | 跳过 | 跳过下家 |
    | 万能 | 出牌者选色 |
    | 万能+4 | 出牌者选色；下家可质疑，否则摸 4 张并跳过 |

    两人对局时跳过下家即回到出牌者，由环形前进自然得到，无需特殊处理。

    Args:
        card: 打出的牌
        direction: 当前方向

    Returns:
        Effect (数字牌返回空效果)
    """
    rank = card.rank
    if rank == Rank.DRAW_TWO:
        return Effect(direction=direction, target_draw=2, skip_next=True)
    if rank == Rank.REVERSE:
        return Effect(direction=-direction)
    if rank == Rank.SKIP:
        return Effect(direction=direction, skip_next=True)
    if rank == Rank.WILD:
        return Effect(direction=direction, choose_color=True)
    if rank == Rank.WILD_DRAW_FOUR:
        return Effect(
            direction=direction,
            target_draw=4,
            skip_next=True,
            choose_color=True,
            challengeable=True,
        )
    return Effect(direction=direction)


def resolve_start_effect(card: Card, direction: int) -> Effect:
    """
    起始牌效果，作用于第一位参与者本人

    - +2: 第一位摸 2 张并被跳过
    - 跳过: 第一位被跳过
    - 反转: 初始方向取反
    - 万能: 第一位选色

    Raises:
        ValueError: 起始牌为万能+4 (牌堆保证不会出现)
    """
    if card.rank == Rank.WILD_DRAW_FOUR:
        raise ValueError(f"{card_to_str(card)} is not allowed as the starting card")
    return resolve_effect(card, direction)
