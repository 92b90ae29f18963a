"""
规则引擎 - 合法性校验、质疑裁决、罚牌、取消资格、计分

RuleEngine 只包含纯函数；Referee 负责带副作用的判罚 (罚摸牌、加分)
"""
from typing import List, Optional
import logging

from .cards import Card, Color, hand_points
from .actions import PlayResult, RejectReason, ChallengeOutcome
from .piles import PileManager
from .state import (
    Participant,
    Variant,
    WIN_THRESHOLD,
    DISQUALIFY_THRESHOLD,
)

logger = logging.getLogger(__name__)

ILLEGAL_PLAY_PENALTY = 1
DECLARATION_PENALTY = 2
CHALLENGE_BLUFF_DRAW = 4
CHALLENGE_FAILED_DRAW = 6


class RuleEngine:
    """
    UNO 规则引擎

    所有方法都是静态方法，无状态、无副作用
    """

    @staticmethod
    def can_play_on(card: Card, top_card: Optional[Card]) -> bool:
        """
        检查一张牌能否打在顶牌上

        万能牌总能尝试打出；否则颜色或牌面相同即可

        Args:
            card: 要打出的牌
            top_card: 弃牌堆顶牌

        Returns:
            是否合法
        """
        if card.is_wild:
            return True
        if top_card is None:
            return False
        return card.color == top_card.color or card.rank == top_card.rank

    @staticmethod
    def validate_play(card: Card, top_card: Optional[Card], hand: Optional[List[Card]] = None) -> PlayResult:
        """
        校验出牌 (不修改任何状态，重复调用结果一致)

        万能+4 的"手中无同色牌"限制不在此处拦截，只在被质疑时追溯检查。

        Args:
            card: 要打出的牌
            top_card: 弃牌堆顶牌
            hand: 出牌者手牌 (仅用于接口一致，不影响结果)

        Returns:
            PlayResult
        """
        if top_card is None and not card.is_wild:
            return PlayResult.reject(RejectReason.NO_TOP_CARD, card, top_card)
        if RuleEngine.can_play_on(card, top_card):
            return PlayResult.accept(card, top_card)
        return PlayResult.reject(RejectReason.NO_MATCH, card, top_card)

    @staticmethod
    def legal_indices(hand: List[Card], top_card: Optional[Card]) -> List[int]:
        """可以打出的手牌位置"""
        return [i for i, card in enumerate(hand) if RuleEngine.can_play_on(card, top_card)]

    @staticmethod
    def has_playable_card(hand: List[Card], top_card: Optional[Card]) -> bool:
        return any(RuleEngine.can_play_on(card, top_card) for card in hand)

    @staticmethod
    def has_matching_color(hand: List[Card], color: Color) -> bool:
        """手牌中是否有指定颜色的牌 (未选色的黑色牌不算)"""
        if color == Color.BLACK:
            return False
        return any(card.color == color for card in hand)

    @staticmethod
    def is_bluff(hand_after_play: List[Card], color_before_wild: Color) -> bool:
        """
        打出万能+4 时是否"虚张声势"

        Args:
            hand_after_play: 打出万能+4 之后的手牌 (不含该牌)
            color_before_wild: 打出前顶牌的颜色

        Returns:
            手中是否仍有与原顶牌同色的牌
        """
        return RuleEngine.has_matching_color(hand_after_play, color_before_wild)

    @staticmethod
    def check_declaration_violation(participant: Participant) -> bool:
        """手牌只剩 1 张却没有喊"最后一张" """
        return participant.hand_size == 1 and not participant.declared_last

    @staticmethod
    def is_disqualified(participant: Participant, threshold: int = DISQUALIFY_THRESHOLD) -> bool:
        return participant.penalty_count >= threshold

    @staticmethod
    def calculate_hand_points(hand: List[Card]) -> int:
        return hand_points(hand)

    @staticmethod
    def round_points(winner: Participant, participants: List[Participant]) -> int:
        """
        本轮赢家应得的基础分 (其余参与者手牌分之和，不含变体倍率)

        Args:
            winner: 本轮赢家
            participants: 仍在环中的参与者 (已取消资格者不在其中)

        Returns:
            基础分
        """
        return sum(p.calculate_hand_points() for p in participants if p is not winner)

    @staticmethod
    def check_game_winner(
        participants: List[Participant],
        threshold: int = WIN_THRESHOLD,
    ) -> Optional[Participant]:
        """按顺序返回第一个累计分达到阈值的参与者"""
        for p in participants:
            if p.total_score >= threshold:
                return p
        return None


class Referee:
    """
    裁判 - 执行判罚

    只持有牌堆，不持有任何交互接口
    """

    def __init__(
        self,
        piles: PileManager,
        disqualify_threshold: int = DISQUALIFY_THRESHOLD,
        illegal_play_penalty: int = ILLEGAL_PLAY_PENALTY,
        declaration_penalty: int = DECLARATION_PENALTY,
        bluff_draw: int = CHALLENGE_BLUFF_DRAW,
        failed_challenge_draw: int = CHALLENGE_FAILED_DRAW,
    ):
        self.piles = piles
        self.disqualify_threshold = disqualify_threshold
        self.illegal_play_penalty = illegal_play_penalty
        self.declaration_penalty = declaration_penalty
        self.bluff_draw = bluff_draw
        self.failed_challenge_draw = failed_challenge_draw

    def submit_play(self, participant: Participant, index: int, top_card: Optional[Card]) -> PlayResult:
        """
        提交出牌请求

        越界位置直接拒绝 (不罚)；不合法的牌罚摸并记一次罚牌，调用方不得执行出牌。
        合法时不修改任何状态，由调用方完成出牌。

        Args:
            participant: 出牌者
            index: 手牌位置
            top_card: 当前顶牌

        Returns:
            PlayResult
        """
        if index is None or index < 0 or index >= participant.hand_size:
            return PlayResult.reject(RejectReason.INVALID_INDEX, top_card=top_card)

        card = participant.hand[index]
        result = RuleEngine.validate_play(card, top_card, participant.hand)
        if result.accepted:
            return result

        logger.debug(f"{participant.name}: {result.message}")
        drawn = self.apply_penalty(participant, self.illegal_play_penalty)
        return PlayResult.reject(result.reason, card, top_card, penalty_cards=tuple(drawn))

    def apply_penalty(self, participant: Participant, card_count: int) -> List[Card]:
        """
        罚摸 card_count 张牌，罚牌次数 +1 (与张数无关)

        Returns:
            实际摸到的牌
        """
        drawn = self.piles.draw_many(card_count)
        participant.add_cards(drawn)
        participant.add_penalty()
        logger.info(
            f"{participant.name} receives a penalty: draws {len(drawn)} card(s) "
            f"(penalties: {participant.penalty_count})"
        )
        return drawn

    def penalize_declaration(self, participant: Participant) -> List[Card]:
        """忘喊"最后一张"的罚牌"""
        return self.apply_penalty(participant, self.declaration_penalty)

    def resolve_challenge(
        self,
        challenger: Participant,
        accused: Participant,
        color_before_wild: Color,
        hand_after_play: Optional[List[Card]] = None,
    ) -> ChallengeOutcome:
        """
        裁决万能+4 质疑

        - 确认虚张: accused 摸 4 张并记罚，challenger 不再被跳过
        - 质疑失败: challenger 摸 6 张 (4 + 2) 并记罚，跳过照常

        Args:
            challenger: 质疑者
            accused: 打出万能+4 的参与者
            color_before_wild: 出牌前顶牌的颜色
            hand_after_play: 打出万能+4 那一刻的剩余手牌；出牌后又摸过牌
                (例如忘喊罚牌) 时必须传入，缺省为 accused 当前手牌

        Returns:
            裁决结果
        """
        hand = accused.hand if hand_after_play is None else hand_after_play
        if RuleEngine.is_bluff(hand, color_before_wild):
            logger.info(f"{challenger.name} challenges {accused.name}: bluff confirmed")
            self.apply_penalty(accused, self.bluff_draw)
            return ChallengeOutcome.BLUFF_CONFIRMED

        logger.info(f"{challenger.name} challenges {accused.name}: no bluff")
        self.apply_penalty(challenger, self.failed_challenge_draw)
        return ChallengeOutcome.BLUFF_DENIED

    def is_disqualified(self, participant: Participant) -> bool:
        return RuleEngine.is_disqualified(participant, self.disqualify_threshold)

    def check_disqualifications(self, participants: List[Participant]) -> List[Participant]:
        """罚牌次数达到阈值的参与者"""
        disqualified = [p for p in participants if self.is_disqualified(p)]
        for p in disqualified:
            logger.info(f"{p.name} is disqualified due to too many penalties")
        return disqualified

    def score_round(
        self,
        winner: Participant,
        participants: List[Participant],
        variant: Variant = Variant.STANDARD,
    ) -> int:
        """
        本轮计分: 赢家获得其余参与者手牌分之和 (按变体调整)，输家分数不变

        Returns:
            赢家本轮所得分
        """
        base = RuleEngine.round_points(winner, participants)
        awarded = variant.apply(base)
        winner.add_score(awarded)
        logger.info(
            f"{winner.name} scores {awarded} points "
            f"(base {base}, {variant.value}), total {winner.total_score}"
        )
        return awarded
