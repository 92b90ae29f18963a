"""
Engine Layer - 回合编排与决策接口

Modules:
    config: 游戏配置
    policy: 决策接口与人类决策
    bots: 机器人策略
    events: 事件与计分通知
    run: 回合控制器
"""
from .config import GameConfig

from .policy import (
    DecisionPolicy,
    HumanPolicy,
    PromptResult,
    InteractionPort,
    ConsoleInteractionPort,
    ScriptedInteractionPort,
    DEFAULT_ACTION,
    DEFAULT_COLOR,
)

from .bots import (
    BotStrategy,
    BotPolicy,
    RandomBot,
    ActionCardBot,
    PointsBot,
    make_bot,
    generate_bot_name,
)

from .events import (
    EventKind,
    GameEvent,
    RoundScoreRecord,
    GameResultRecord,
    GameListener,
    ScoreLog,
    LoggingListener,
    EventBus,
)

from .run import TurnController, RoundResult, GameResult

__all__ = [
    # config
    "GameConfig",
    # policy
    "DecisionPolicy",
    "HumanPolicy",
    "PromptResult",
    "InteractionPort",
    "ConsoleInteractionPort",
    "ScriptedInteractionPort",
    "DEFAULT_ACTION",
    "DEFAULT_COLOR",
    # bots
    "BotStrategy",
    "BotPolicy",
    "RandomBot",
    "ActionCardBot",
    "PointsBot",
    "make_bot",
    "generate_bot_name",
    # events
    "EventKind",
    "GameEvent",
    "RoundScoreRecord",
    "GameResultRecord",
    "GameListener",
    "ScoreLog",
    "LoggingListener",
    "EventBus",
    # run
    "TurnController",
    "RoundResult",
    "GameResult",
]
