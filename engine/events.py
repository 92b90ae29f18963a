"""
游戏事件与计分通知

核心不依赖持久化: 每轮结束发出各参与者的计分记录，游戏结束发出结果记录，
监听者失败只记录日志，不影响游戏。
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional
import logging

from core.cards import Card, card_to_str

logger = logging.getLogger(__name__)

DRAW_RESULT = "draw"


class EventKind(Enum):
    """事件类型"""
    ROUND_START = "round_start"
    START_CARD = "start_card"
    PLAY = "play"
    REJECTED = "rejected"
    DRAW = "draw"
    PENALTY = "penalty"
    DECLARE = "declare"
    DECLARATION_MISSED = "declaration_missed"
    COLOR_CHOSEN = "color_chosen"
    SKIP = "skip"
    REVERSE = "reverse"
    FORCED_DRAW = "forced_draw"
    CHALLENGE = "challenge"
    DISQUALIFIED = "disqualified"
    ROUND_END = "round_end"
    ROUND_DRAW = "round_draw"
    GAME_END = "game_end"


@dataclass(frozen=True)
class GameEvent:
    """
    一条游戏事件

    Attributes:
        kind: 事件类型
        participant: 相关参与者名字
        card: 相关的牌
        top_card: 当时的顶牌
        detail: 附加说明
    """
    kind: EventKind
    participant: Optional[str] = None
    card: Optional[Card] = None
    top_card: Optional[Card] = None
    detail: str = ""

    def __str__(self) -> str:
        parts = [self.kind.value]
        if self.participant:
            parts.append(self.participant)
        if self.card is not None:
            parts.append(card_to_str(self.card))
        if self.top_card is not None:
            parts.append(f"on {card_to_str(self.top_card)}")
        if self.detail:
            parts.append(self.detail)
        return " | ".join(parts)


@dataclass(frozen=True)
class RoundScoreRecord:
    """每轮每位参与者的计分记录"""
    session_id: str
    participant_name: str
    round_number: int
    round_score: int
    cumulative_score: int
    variant: str


@dataclass(frozen=True)
class GameResultRecord:
    """整局结果记录 (无人获胜时 winner 为 "draw")"""
    session_id: str
    winner: str
    total_rounds: int


class GameListener:
    """监听者基类 (默认忽略一切)"""

    def on_event(self, event: GameEvent) -> None:
        pass

    def on_round_scores(self, records: List[RoundScoreRecord]) -> None:
        pass

    def on_game_result(self, record: GameResultRecord) -> None:
        pass


class ScoreLog(GameListener):
    """内存中的计分记录"""

    def __init__(self, keep_events: bool = False):
        self.keep_events = keep_events
        self.events: List[GameEvent] = []
        self.round_scores: List[RoundScoreRecord] = []
        self.results: List[GameResultRecord] = []

    def on_event(self, event: GameEvent) -> None:
        if self.keep_events:
            self.events.append(event)

    def on_round_scores(self, records: List[RoundScoreRecord]) -> None:
        self.round_scores.extend(records)

    def on_game_result(self, record: GameResultRecord) -> None:
        self.results.append(record)

    def scores_by_round(self, session_id: str) -> Dict[int, Dict[str, int]]:
        """轮次 -> {名字: 本轮得分}"""
        table: Dict[int, Dict[str, int]] = {}
        for r in self.round_scores:
            if r.session_id == session_id:
                table.setdefault(r.round_number, {})[r.participant_name] = r.round_score
        return table

    def events_of(self, kind: EventKind) -> List[GameEvent]:
        return [e for e in self.events if e.kind == kind]


class LoggingListener(GameListener):
    """把事件写入日志"""

    def __init__(self, level: int = logging.DEBUG):
        self.level = level

    def on_event(self, event: GameEvent) -> None:
        logger.log(self.level, str(event))

    def on_round_scores(self, records: List[RoundScoreRecord]) -> None:
        for r in records:
            logger.info(
                f"Round {r.round_number}: {r.participant_name} +{r.round_score} "
                f"(total {r.cumulative_score}, {r.variant})"
            )

    def on_game_result(self, record: GameResultRecord) -> None:
        logger.info(f"Game {record.session_id} over: {record.winner} after {record.total_rounds} rounds")


@dataclass
class EventBus:
    """把通知分发给所有监听者"""
    listeners: List[GameListener] = field(default_factory=list)

    def _dispatch(self, method: str, payload) -> None:
        for listener in self.listeners:
            try:
                getattr(listener, method)(payload)
            except Exception:  # noqa: BLE001 - fire-and-forget notification
                logger.exception(f"Listener {listener!r} failed in {method}")

    def emit(self, event: GameEvent) -> None:
        self._dispatch("on_event", event)

    def round_scores(self, records: List[RoundScoreRecord]) -> None:
        self._dispatch("on_round_scores", records)

    def game_result(self, record: GameResultRecord) -> None:
        self._dispatch("on_game_result", record)
