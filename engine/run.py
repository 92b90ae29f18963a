"""
回合控制器

阶段: AWAITING_START_EFFECT -> ACTIVE -> {ACTIVE, ROUND_END, DRAW, GAME_END}

每回合:
1. 检查取消资格 (不足两人则游戏结束)
2. 两个牌堆都耗尽则本轮平局
3. 向当前参与者的决策策略请求动作 (摸牌 / 出牌)
4. 出牌交给裁判校验；接受后执行出牌、喊牌检查、功能牌效果
5. 手牌出完则本轮结束并计分
"""
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional
import logging
import uuid

import numpy as np

from core.actions import Action, ChallengeOutcome
from core.cards import Card, Color, PLAYABLE_COLORS, card_to_str
from core.effects import is_special, resolve_effect, resolve_start_effect
from core.piles import PileManager
from core.rules import Referee, RuleEngine
from core.state import (
    GameState,
    InvalidSetupError,
    Participant,
    Phase,
    MIN_PARTICIPANTS,
    CLOCKWISE,
)
from .config import GameConfig
from .events import (
    DRAW_RESULT,
    EventBus,
    EventKind,
    GameEvent,
    GameListener,
    GameResultRecord,
    RoundScoreRecord,
)
from .policy import DEFAULT_ACTION, DEFAULT_COLOR

logger = logging.getLogger(__name__)

TERMINAL_PHASES = (Phase.ROUND_END, Phase.DRAW, Phase.GAME_END)


@dataclass
class RoundResult:
    """一轮的结果 (平局时 winner 为 None)"""
    round_number: int
    winner: Optional[str]
    awarded: int
    turns: int
    disqualified: List[str] = field(default_factory=list)

    @property
    def is_draw(self) -> bool:
        return self.winner is None


@dataclass
class GameResult:
    """整局结果 (无人获胜时 winner 为 None)"""
    session_id: str
    winner: Optional[str]
    rounds: int
    scores: Dict[str, int]
    round_results: List[RoundResult]
    disqualified: List[str]

    @property
    def is_draw(self) -> bool:
        return self.winner is None

    @property
    def total_turns(self) -> int:
        return sum(r.turns for r in self.round_results)


class TurnController:
    """
    回合控制器

    独占牌堆与所有手牌，只通过 DecisionPolicy 与参与者交互
    """

    def __init__(
        self,
        participants: List[Participant],
        config: Optional[GameConfig] = None,
        listeners: Iterable[GameListener] = (),
        session_id: Optional[str] = None,
        rng: Optional[np.random.Generator] = None,
    ):
        """
        Args:
            participants: 参与者 (出牌顺序)
            config: 游戏配置
            listeners: 事件监听者
            session_id: 会话 ID，默认随机生成
            rng: 随机数生成器 (洗牌、发现忘喊、随机起始)，默认由 config.seed 生成

        Raises:
            InvalidSetupError: 参与者不足、重名或配置非法
        """
        self.config = config or GameConfig()
        participants = list(participants)
        self._validate_setup(participants)

        self.rng = rng if rng is not None else np.random.default_rng(self.config.seed)
        self.session_id = session_id or uuid.uuid4().hex
        self.variant = self.config.game_variant
        self.bus = EventBus(list(listeners))

        self.all_participants: List[Participant] = participants
        self.state = GameState(participants=list(participants), variant=self.variant)
        self.piles: Optional[PileManager] = None
        self.referee: Optional[Referee] = None

        self.round_results: List[RoundResult] = []
        self.disqualified: List[str] = []
        self.winner: Optional[Participant] = None

        self._skip_next = False
        self._round_disqualified: List[str] = []

    def _validate_setup(self, participants: List[Participant]) -> None:
        if len(participants) < MIN_PARTICIPANTS:
            raise InvalidSetupError(
                f"At least {MIN_PARTICIPANTS} participants are required, got {len(participants)}"
            )
        names = [p.name for p in participants]
        if len(set(names)) != len(names):
            raise InvalidSetupError(f"Participant names must be unique: {names}")
        for p in participants:
            if p.policy is None:
                raise InvalidSetupError(f"{p.name} has no decision policy")
        self.config.validate(len(participants))

    # ------------------------------------------------------------------
    # 生命周期
    # ------------------------------------------------------------------
    @property
    def phase(self) -> Phase:
        return self.state.phase

    def start_game(self) -> None:
        """开始游戏: 清零分数并开始第一轮"""
        for p in self.all_participants:
            p.total_score = 0
        self.state.round_number = 1
        first = 0
        if self.config.random_start:
            first = int(self.rng.integers(len(self.state.participants)))
        logger.info(
            f"Game {self.session_id} starts with {len(self.state.participants)} participants "
            f"({self.variant.value})"
        )
        self.start_round(first)

    def start_round(self, first_index: int = 0) -> None:
        """
        开始新一轮: 新牌、每人发牌、翻开起始牌并立即执行其效果

        Args:
            first_index: 第一位行动者在环中的位置
        """
        state = self.state
        for p in state.participants:
            p.clear_hand()
            p.reset_penalties()
            p.policy.reset()

        self.piles = PileManager(rng=self.rng)
        self.referee = Referee(
            self.piles,
            disqualify_threshold=self.config.disqualify_threshold,
            illegal_play_penalty=self.config.illegal_play_penalty,
            declaration_penalty=self.config.declaration_penalty,
            bluff_draw=self.config.bluff_draw,
            failed_challenge_draw=self.config.failed_challenge_draw,
        )

        for _ in range(self.config.hand_size):
            for p in state.participants:
                p.add_card(self.piles.draw())

        state.direction = CLOCKWISE
        state.turn_index = first_index % state.ring_size
        state.turn_count = 0
        state.phase = Phase.AWAITING_START_EFFECT
        self._skip_next = False
        self._round_disqualified = []

        logger.info(f"Round {state.round_number} starts, {state.current.name} plays first")
        self._emit(EventKind.ROUND_START, state.current, detail=f"round {state.round_number}")

        top = self.piles.setup_initial_card()
        self._emit(EventKind.START_CARD, card=top)
        if top is not None:
            self._apply_start_effect(top)
        state.phase = Phase.ACTIVE

    def next_round(self) -> None:
        """上一轮结束后开始下一轮，第一位行动者回到环首"""
        if self.state.phase == Phase.GAME_END:
            raise RuntimeError("Game is over")
        self.state.round_number += 1
        self.start_round(0)

    def run_round(self) -> RoundResult:
        """进行回合直到本轮结束 (出完牌 / 平局 / 游戏结束)"""
        while self.state.phase not in TERMINAL_PHASES:
            self.play_turn()
        return self.round_results[-1] if self.round_results else self._partial_round_result()

    def run_game(self) -> GameResult:
        """从开局进行到游戏结束"""
        self.start_game()
        while True:
            self.run_round()
            if self.state.phase == Phase.GAME_END:
                break
            self.next_round()
        return self.result()

    def result(self) -> GameResult:
        return GameResult(
            session_id=self.session_id,
            winner=self.winner.name if self.winner else None,
            rounds=self.state.round_number,
            scores={p.name: p.total_score for p in self.all_participants},
            round_results=list(self.round_results),
            disqualified=list(self.disqualified),
        )

    def _partial_round_result(self) -> RoundResult:
        return RoundResult(
            round_number=self.state.round_number,
            winner=None,
            awarded=0,
            turns=self.state.turn_count,
            disqualified=list(self._round_disqualified),
        )

    # ------------------------------------------------------------------
    # 回合
    # ------------------------------------------------------------------
    def play_turn(self) -> Phase:
        """
        进行一个回合

        Returns:
            回合结束后的阶段
        """
        state = self.state
        if state.phase in TERMINAL_PHASES:
            return state.phase
        if state.phase != Phase.ACTIVE:
            raise RuntimeError(f"Cannot play a turn in phase {state.phase.value}")

        if self._remove_disqualified():
            return state.phase

        top = self.piles.top_card()
        if self.piles.is_exhausted or top is None:
            self._end_round_draw("both piles exhausted")
            return state.phase

        limit = self.config.max_turns_per_round
        if limit is not None and state.turn_count >= limit:
            self._end_round_draw(f"turn limit {limit} reached")
            return state.phase

        participant = state.current
        state.turn_count += 1
        self._skip_next = False

        action = self._request_action(participant, top)
        if action.is_draw:
            self._handle_draw(participant, top)
        else:
            self._handle_play(participant, action.index, top)

        if state.phase == Phase.ACTIVE:
            state.advance(2 if self._skip_next else 1)
        return state.phase

    def _request_action(self, participant: Participant, top: Card) -> Action:
        """请求动作并做语法校验，越界时重新请求，重试耗尽则摸牌"""
        for attempt in range(1, self.config.max_retries + 1):
            action = participant.policy.choose_action(list(participant.hand), top)
            if isinstance(action, Action) and action.is_valid_for(participant.hand_size):
                return action
            logger.warning(f"{participant.name} returned malformed action {action!r} (attempt {attempt})")
        logger.warning(f"{participant.name}: no valid action, defaulting to draw")
        return DEFAULT_ACTION

    def _handle_draw(self, participant: Participant, top: Card) -> None:
        card = self.piles.draw()
        if card is None:
            self._emit(EventKind.DRAW, participant, detail="no cards left")
            return
        participant.add_card(card)
        self._emit(EventKind.DRAW, participant, card=card)

        # 摸到的牌可以立即打出 (本回合唯一可能的第二次牌移动)
        if RuleEngine.can_play_on(card, top) and participant.policy.play_drawn_card(card, top):
            self._handle_play(participant, participant.index_of(card), top)

    def _handle_play(self, participant: Participant, index: int, top: Card) -> None:
        result = self.referee.submit_play(participant, index, top)
        if not result.accepted:
            self._emit(EventKind.REJECTED, participant, result.card, top, detail=result.message)
            if result.penalty_cards:
                self._emit(
                    EventKind.PENALTY, participant,
                    detail=f"illegal play, drew {len(result.penalty_cards)}",
                )
            return

        color_before = top.color
        card = participant.remove_card(index)
        hand_after_play = list(participant.hand)
        self.piles.play(card)
        self._emit(EventKind.PLAY, participant, card, top)

        if participant.hand_size == 0:
            self._finish_round(participant)
            return

        if participant.hand_size == 1:
            self._declaration_step(participant)

        if is_special(card):
            self._apply_effect(participant, card, color_before, hand_after_play)

    # ------------------------------------------------------------------
    # 喊牌
    # ------------------------------------------------------------------
    def _declaration_step(self, participant: Participant) -> None:
        if participant.policy.decide_declare_last(participant.hand_size):
            participant.declare_last()
            self._emit(EventKind.DECLARE, participant)

        if RuleEngine.check_declaration_violation(participant):
            self._emit(EventKind.DECLARATION_MISSED, participant)
            if self._violation_detected():
                drawn = self.referee.penalize_declaration(participant)
                self._emit(EventKind.PENALTY, participant, detail=f"missed declaration, drew {len(drawn)}")

    def _violation_detected(self) -> bool:
        p = self.config.detection_probability
        if p >= 1.0:
            return True
        if p <= 0.0:
            return False
        return bool(self.rng.random() < p)

    # ------------------------------------------------------------------
    # 功能牌
    # ------------------------------------------------------------------
    def _choose_color(self, participant: Participant, card: Card) -> None:
        color = participant.policy.choose_color(list(participant.hand))
        if color not in PLAYABLE_COLORS:
            logger.warning(f"{participant.name} chose invalid color {color!r}, using {DEFAULT_COLOR.value}")
            color = DEFAULT_COLOR
        card.set_color(color)
        self._emit(EventKind.COLOR_CHOSEN, participant, card, detail=color.value)

    def _apply_start_effect(self, card: Card) -> None:
        """起始牌效果作用于第一位参与者"""
        if not is_special(card):
            return
        state = self.state
        first = state.current
        effect = resolve_start_effect(card, state.direction)

        if effect.choose_color:
            self._choose_color(first, card)
        if effect.direction != state.direction:
            state.direction = effect.direction
            self._emit(EventKind.REVERSE, detail=f"direction {state.direction:+d}")
        if effect.target_draw:
            drawn = self.piles.draw_many(effect.target_draw)
            first.add_cards(drawn)
            self._emit(EventKind.FORCED_DRAW, first, detail=f"drew {len(drawn)}")
        if effect.skip_next:
            self._emit(EventKind.SKIP, first)
            state.advance()

    def _apply_effect(
        self,
        participant: Participant,
        card: Card,
        color_before: Color,
        hand_after_play: List[Card],
    ) -> None:
        """执行功能牌效果；质疑按出牌那一刻的手牌裁决，不计之后的罚牌"""
        state = self.state
        effect = resolve_effect(card, state.direction)

        if effect.choose_color:
            self._choose_color(participant, card)
        if effect.direction != state.direction:
            state.direction = effect.direction
            self._emit(EventKind.REVERSE, participant, detail=f"direction {state.direction:+d}")

        victim = state.next_participant
        if effect.challengeable and victim.policy.confirm_challenge(list(victim.hand), participant.name):
            outcome = self.referee.resolve_challenge(victim, participant, color_before, hand_after_play)
            self._emit(EventKind.CHALLENGE, victim, card, detail=f"{participant.name}: {outcome.value}")
            if outcome == ChallengeOutcome.BLUFF_CONFIRMED:
                return
            # 质疑失败: 质疑者已摸 6 张，仍被跳过
            self._skip_next = True
            self._emit(EventKind.SKIP, victim)
            return

        if effect.target_draw:
            drawn = self.piles.draw_many(effect.target_draw)
            victim.add_cards(drawn)
            self._emit(EventKind.FORCED_DRAW, victim, card, detail=f"drew {len(drawn)}")
        if effect.skip_next:
            self._skip_next = True
            self._emit(EventKind.SKIP, victim)

    # ------------------------------------------------------------------
    # 取消资格 / 轮次结束
    # ------------------------------------------------------------------
    def _remove_disqualified(self) -> bool:
        """
        移除罚牌过多的参与者，手牌放回摸牌堆底部

        Returns:
            游戏是否因此结束
        """
        state = self.state
        removed = self.referee.check_disqualifications(state.participants)
        if not removed:
            return False

        for p in removed:
            self.piles.return_cards(p.clear_hand())
            self.disqualified.append(p.name)
            self._round_disqualified.append(p.name)
            self._emit(EventKind.DISQUALIFIED, p, detail=f"{p.penalty_count} penalties")
        state.remove_participants(removed)

        if state.ring_size < MIN_PARTICIPANTS:
            logger.info("Not enough participants remaining, game ends without a winner")
            self._close_round_without_winner()
            self._end_game(None)
            return True
        return False

    def _finish_round(self, winner: Participant) -> None:
        state = self.state
        state.phase = Phase.ROUND_END
        awarded = self.referee.score_round(winner, state.participants, self.variant)
        self._emit(EventKind.ROUND_END, winner, detail=f"+{awarded}")

        self.bus.round_scores([
            RoundScoreRecord(
                session_id=self.session_id,
                participant_name=p.name,
                round_number=state.round_number,
                round_score=awarded if p is winner else 0,
                cumulative_score=p.total_score,
                variant=self.variant.value,
            )
            for p in state.participants
        ])
        self.round_results.append(RoundResult(
            round_number=state.round_number,
            winner=winner.name,
            awarded=awarded,
            turns=state.turn_count,
            disqualified=list(self._round_disqualified),
        ))

        game_winner = RuleEngine.check_game_winner(state.participants, self.config.win_threshold)
        if game_winner is not None:
            self._end_game(game_winner)
        else:
            self._check_round_limit()

    def _end_round_draw(self, reason: str) -> None:
        state = self.state
        state.phase = Phase.DRAW
        logger.info(f"Round {state.round_number} ends in a draw: {reason}")
        self._emit(EventKind.ROUND_DRAW, detail=reason)

        self._close_round_without_winner()
        self._check_round_limit()

    def _close_round_without_winner(self) -> None:
        """无人得分地结束本轮: 发出零分记录并登记轮次结果"""
        state = self.state
        self.bus.round_scores([
            RoundScoreRecord(
                session_id=self.session_id,
                participant_name=p.name,
                round_number=state.round_number,
                round_score=0,
                cumulative_score=p.total_score,
                variant=self.variant.value,
            )
            for p in state.participants
        ])
        self.round_results.append(self._partial_round_result())

    def _check_round_limit(self) -> None:
        limit = self.config.max_rounds
        if limit is not None and self.state.round_number >= limit:
            logger.info(f"Round limit {limit} reached, game ends without a winner")
            self._end_game(None)

    def _end_game(self, winner: Optional[Participant]) -> None:
        self.state.phase = Phase.GAME_END
        self.winner = winner
        name = winner.name if winner else DRAW_RESULT
        logger.info(f"Game {self.session_id} over after {self.state.round_number} rounds: {name}")
        self._emit(EventKind.GAME_END, winner, detail=name)
        self.bus.game_result(GameResultRecord(
            session_id=self.session_id,
            winner=name,
            total_rounds=self.state.round_number,
        ))

    def _emit(
        self,
        kind: EventKind,
        participant: Optional[Participant] = None,
        card: Optional[Card] = None,
        top_card: Optional[Card] = None,
        detail: str = "",
    ) -> None:
        if logger.isEnabledFor(logging.DEBUG):
            who = participant.name if participant else "-"
            shown = card_to_str(card) if card is not None else ""
            logger.debug(f"[{kind.value}] {who} {shown} {detail}".rstrip())
        self.bus.emit(GameEvent(
            kind=kind,
            participant=participant.name if participant else None,
            card=card,
            top_card=top_card,
            detail=detail,
        ))
