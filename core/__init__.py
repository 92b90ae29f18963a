"""
Core Layer - 纯游戏逻辑 (无 I/O)

Modules:
    cards: 牌定义与编码
    piles: 摸牌堆 / 弃牌堆
    actions: 动作类型与校验结果
    rules: 规则引擎与裁判
    effects: 功能牌效果解析
    state: 参与者与游戏状态
"""
from .cards import (
    Color,
    Rank,
    Card,
    PLAYABLE_COLORS,
    DECK_COMPOSITION,
    DECK_SIZE,
    build_deck,
    hand_points,
    count_colors,
    card_to_str,
    cards_to_str,
    parse_card,
    parse_cards,
    parse_color,
)

from .piles import PileManager

from .actions import (
    ActionType,
    Action,
    RejectReason,
    PlayResult,
    ChallengeOutcome,
    legal_actions,
)

from .rules import RuleEngine, Referee

from .effects import Effect, is_special, resolve_effect, resolve_start_effect

from .state import (
    Phase,
    ParticipantKind,
    Variant,
    Participant,
    GameState,
    InvalidSetupError,
    WIN_THRESHOLD,
    HAND_SIZE,
    DISQUALIFY_THRESHOLD,
    MIN_PARTICIPANTS,
)

__all__ = [
    # cards
    "Color",
    "Rank",
    "Card",
    "PLAYABLE_COLORS",
    "DECK_COMPOSITION",
    "DECK_SIZE",
    "build_deck",
    "hand_points",
    "count_colors",
    "card_to_str",
    "cards_to_str",
    "parse_card",
    "parse_cards",
    "parse_color",
    # piles
    "PileManager",
    # actions
    "ActionType",
    "Action",
    "RejectReason",
    "PlayResult",
    "ChallengeOutcome",
    "legal_actions",
    # rules
    "RuleEngine",
    "Referee",
    # effects
    "Effect",
    "is_special",
    "resolve_effect",
    "resolve_start_effect",
    # state
    "Phase",
    "ParticipantKind",
    "Variant",
    "Participant",
    "GameState",
    "InvalidSetupError",
    "WIN_THRESHOLD",
    "HAND_SIZE",
    "DISQUALIFY_THRESHOLD",
    "MIN_PARTICIPANTS",
]
