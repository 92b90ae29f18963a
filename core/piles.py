"""
牌堆管理 - 摸牌堆 / 弃牌堆

摸牌堆列表末尾为堆顶 (后进先出)，弃牌堆列表末尾为当前顶牌。
两个牌堆与所有手牌合起来始终是完整的 108 张牌。
"""
from typing import List, Optional, Iterable
import logging

import numpy as np

from .cards import Card, Rank, build_deck, card_to_str

logger = logging.getLogger(__name__)


class PileManager:
    """
    摸牌堆与弃牌堆

    每局游戏拥有独立的随机数生成器，多局模拟之间不共享任何可变状态。
    不做出牌合法性检查 (由规则引擎负责)。
    """

    def __init__(
        self,
        rng: Optional[np.random.Generator] = None,
        seed: Optional[int] = None,
        cards: Optional[List[Card]] = None,
        shuffle: bool = True,
    ):
        """
        Args:
            rng: 随机数生成器 (优先)
            seed: 随机种子 (rng 为 None 时使用)
            cards: 初始摸牌堆，默认一副完整新牌
            shuffle: 是否立即洗牌
        """
        self.rng = rng if rng is not None else np.random.default_rng(seed)
        self._draw_pile: List[Card] = list(cards) if cards is not None else build_deck()
        self._discard_pile: List[Card] = []
        if shuffle:
            self.shuffle()

    # ------------------------------------------------------------------
    # 查询
    # ------------------------------------------------------------------
    @property
    def draw_pile_size(self) -> int:
        return len(self._draw_pile)

    @property
    def discard_pile_size(self) -> int:
        return len(self._discard_pile)

    @property
    def total_cards(self) -> int:
        return len(self._draw_pile) + len(self._discard_pile)

    @property
    def is_exhausted(self) -> bool:
        """摸牌堆已空且弃牌堆无可洗回的牌"""
        return not self._draw_pile and len(self._discard_pile) <= 1

    @property
    def draw_pile(self) -> List[Card]:
        """摸牌堆副本 (末尾为堆顶)"""
        return list(self._draw_pile)

    @property
    def discard_pile(self) -> List[Card]:
        """弃牌堆副本 (末尾为顶牌)"""
        return list(self._discard_pile)

    def top_card(self) -> Optional[Card]:
        """查看弃牌堆顶牌，不修改牌堆"""
        return self._discard_pile[-1] if self._discard_pile else None

    # ------------------------------------------------------------------
    # 洗牌
    # ------------------------------------------------------------------
    def shuffle(self) -> None:
        """摸牌堆均匀随机重排"""
        order = self.rng.permutation(len(self._draw_pile))
        self._draw_pile = [self._draw_pile[i] for i in order]

    def reshuffle(self) -> bool:
        """
        将弃牌堆 (保留顶牌) 洗回摸牌堆

        万能牌的颜色重置为黑色。弃牌堆不足 2 张时不做任何事。

        Returns:
            是否发生了洗牌
        """
        if len(self._discard_pile) <= 1:
            return False

        top = self._discard_pile.pop()
        for card in self._discard_pile:
            card.reset_color()
        self._draw_pile.extend(self._discard_pile)
        self._discard_pile = [top]
        self.shuffle()

        logger.info(f"Draw pile exhausted, reshuffled {len(self._draw_pile)} discarded cards")
        return True

    # ------------------------------------------------------------------
    # 摸牌 / 出牌
    # ------------------------------------------------------------------
    def draw(self) -> Optional[Card]:
        """
        摸一张牌

        摸牌堆为空时先尝试洗回弃牌堆。

        Returns:
            摸到的牌，两个牌堆都耗尽时返回 None
        """
        if not self._draw_pile:
            self.reshuffle()
        if not self._draw_pile:
            return None
        return self._draw_pile.pop()

    def draw_many(self, count: int) -> List[Card]:
        """
        连续摸 count 张牌，牌堆耗尽时提前停止

        Returns:
            实际摸到的牌
        """
        cards = []
        for _ in range(count):
            card = self.draw()
            if card is None:
                logger.warning(f"Both piles exhausted after drawing {len(cards)}/{count} cards")
                break
            cards.append(card)
        return cards

    def play(self, card: Card) -> None:
        """将牌放到弃牌堆顶"""
        self._discard_pile.append(card)

    def return_cards(self, cards: Iterable[Card]) -> None:
        """将牌 (如被取消资格玩家的手牌) 放回摸牌堆底部"""
        returned = list(cards)
        for card in returned:
            card.reset_color()
        self._draw_pile[:0] = returned

    def setup_initial_card(self) -> Optional[Card]:
        """
        翻开第一张牌

        翻到万能+4 时放回摸牌堆底部并重新洗牌，直到翻到其他牌。

        Returns:
            翻开的牌，没有牌可翻时返回 None
        """
        while True:
            card = self.draw()
            if card is None:
                logger.warning("No card available for the starting card")
                return None
            if card.rank != Rank.WILD_DRAW_FOUR:
                break
            self._draw_pile.insert(0, card)
            if all(c.rank == Rank.WILD_DRAW_FOUR for c in self._draw_pile):
                logger.warning("Only Wild Draw Four cards left, cannot reveal a starting card")
                return None
            self.shuffle()

        self.play(card)
        logger.debug(f"Starting card: {card_to_str(card)}")
        return card

    def __repr__(self) -> str:
        top = self.top_card()
        return (
            f"PileManager(draw={self.draw_pile_size}, "
            f"discard={self.discard_pile_size}, "
            f"top={card_to_str(top) if top else None})"
        )
