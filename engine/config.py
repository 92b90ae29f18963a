"""
游戏配置

定义规则常量、判罚张数与模拟相关的可调参数
"""
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Optional, Union
import json

from core.cards import DECK_SIZE
from core.state import (
    Variant,
    InvalidSetupError,
    WIN_THRESHOLD,
    HAND_SIZE,
    DISQUALIFY_THRESHOLD,
)
from core.rules import (
    ILLEGAL_PLAY_PENALTY,
    DECLARATION_PENALTY,
    CHALLENGE_BLUFF_DRAW,
    CHALLENGE_FAILED_DRAW,
)


@dataclass
class GameConfig:
    """
    游戏配置

    Attributes:
        win_threshold: 获胜所需累计分
        hand_size: 每轮发牌张数
        disqualify_threshold: 取消资格的罚牌次数
        illegal_play_penalty: 出错牌罚摸张数
        declaration_penalty: 忘喊"最后一张"罚摸张数
        bluff_draw: 质疑成立时出牌者摸牌数
        failed_challenge_draw: 质疑失败时质疑者摸牌数
        detection_probability: 忘喊被发现的概率 (1.0 = 总被发现)
        variant: 计分变体名
        max_retries: 决策无效时的最大重试次数
        random_start: 第一轮是否随机选择起始参与者
        max_turns_per_round: 单轮回合上限 (超过判平局，None 不限)
        max_rounds: 轮数上限 (超过则无人获胜，None 不限)
        seed: 随机种子
    """
    # 规则
    win_threshold: int = WIN_THRESHOLD
    hand_size: int = HAND_SIZE
    disqualify_threshold: int = DISQUALIFY_THRESHOLD

    # 判罚
    illegal_play_penalty: int = ILLEGAL_PLAY_PENALTY
    declaration_penalty: int = DECLARATION_PENALTY
    bluff_draw: int = CHALLENGE_BLUFF_DRAW
    failed_challenge_draw: int = CHALLENGE_FAILED_DRAW
    detection_probability: float = 1.0

    # 计分
    variant: str = Variant.STANDARD.value

    # 流程
    max_retries: int = 3
    random_start: bool = False
    max_turns_per_round: Optional[int] = None
    max_rounds: Optional[int] = None

    # 随机
    seed: Optional[int] = None

    @property
    def game_variant(self) -> Variant:
        return Variant.parse(self.variant)

    def validate(self, n_participants: Optional[int] = None) -> 'GameConfig':
        """
        检查配置是否可用于开局

        Args:
            n_participants: 参与者数量 (用于检查牌是否够发)

        Raises:
            InvalidSetupError: 配置非法
        """
        if self.win_threshold <= 0:
            raise InvalidSetupError(f"win_threshold must be positive, got {self.win_threshold}")
        if self.hand_size <= 0:
            raise InvalidSetupError(f"hand_size must be positive, got {self.hand_size}")
        if self.disqualify_threshold <= 0:
            raise InvalidSetupError("disqualify_threshold must be positive")
        if not 0.0 <= self.detection_probability <= 1.0:
            raise InvalidSetupError(
                f"detection_probability must be in [0, 1], got {self.detection_probability}"
            )
        if self.max_retries < 1:
            raise InvalidSetupError("max_retries must be at least 1")
        try:
            Variant.parse(self.variant)
        except ValueError as exc:
            raise InvalidSetupError(str(exc)) from exc
        if n_participants is not None and n_participants * self.hand_size >= DECK_SIZE:
            raise InvalidSetupError(
                f"Cannot deal {self.hand_size} cards to {n_participants} participants "
                f"from a {DECK_SIZE}-card deck"
            )
        return self

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict) -> 'GameConfig':
        valid_keys = cls.__dataclass_fields__.keys()
        filtered = {k: v for k, v in d.items() if k in valid_keys}
        return cls(**filtered)

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> 'GameConfig':
        with open(path, "r", encoding="utf-8") as f:
            return cls.from_dict(json.load(f))

    def save(self, path: Union[str, Path]) -> None:
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2)
