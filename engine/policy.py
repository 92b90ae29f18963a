"""
决策策略接口

回合控制器只依赖 DecisionPolicy，不关心参与者是人类还是机器人。
人类决策经由注入的 InteractionPort 转达，核心层从不接触它。
"""
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Deque, Generic, Iterable, List, Optional, TypeVar
import logging

from core.actions import Action
from core.cards import Card, Color, PLAYABLE_COLORS, card_to_str, parse_color
from core.state import ParticipantKind

logger = logging.getLogger(__name__)

T = TypeVar("T")

# 重试耗尽时的默认值
DEFAULT_ACTION = Action.draw()
DEFAULT_COLOR = Color.RED

_YES = {"y", "yes", "j", "ja"}
_NO = {"n", "no", "nein"}


class DecisionPolicy:
    """决策策略基类"""

    kind = ParticipantKind.AUTOMATED

    def __init__(self, name: str = "policy"):
        self.name = name

    def choose_action(self, hand: List[Card], top_card: Card) -> Action:
        """选择摸牌或打出某张手牌"""
        raise NotImplementedError

    def choose_color(self, hand: List[Card]) -> Color:
        """万能牌选色"""
        raise NotImplementedError

    def decide_declare_last(self, hand_size_after_play: int) -> bool:
        """是否喊"最后一张" """
        raise NotImplementedError

    def confirm_challenge(self, hand: List[Card], accused_name: str) -> bool:
        """是否质疑上家的万能+4"""
        return False

    def play_drawn_card(self, card: Card, top_card: Card) -> bool:
        """摸到可出的牌时是否立即打出"""
        return False

    def reset(self):
        """重置状态 (新一轮)"""
        pass


@dataclass(frozen=True)
class PromptResult(Generic[T]):
    """
    一次带重试的询问结果

    Attributes:
        value: 最终值 (失败时为默认值)
        ok: 是否得到有效回答
        attempts: 询问次数
    """
    value: T
    ok: bool
    attempts: int


class InteractionPort(ABC):
    """与外部 (控制台、界面) 交互的端口"""

    @abstractmethod
    def ask(self, prompt: str) -> str:
        """提出问题并阻塞等待回答"""

    @abstractmethod
    def show(self, message: str) -> None:
        """展示一条消息"""


class ConsoleInteractionPort(InteractionPort):
    """标准输入输出"""

    def __init__(
        self,
        input_fn: Callable[[str], str] = input,
        output_fn: Callable[[str], Any] = print,
    ):
        self._input = input_fn
        self._output = output_fn

    def ask(self, prompt: str) -> str:
        try:
            return self._input(prompt)
        except EOFError:
            return ""

    def show(self, message: str) -> None:
        self._output(message)


class ScriptedInteractionPort(InteractionPort):
    """
    预设回答的端口 (用于测试与回放)

    回答用完后返回空字符串
    """

    def __init__(self, answers: Iterable[str] = ()):
        self.answers: Deque[str] = deque(answers)
        self.prompts: List[str] = []
        self.messages: List[str] = []

    def feed(self, *answers: str) -> None:
        self.answers.extend(answers)

    def ask(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.answers.popleft() if self.answers else ""

    def show(self, message: str) -> None:
        self.messages.append(message)


def parse_yes_no(text: str) -> Optional[bool]:
    key = text.strip().lower()
    if key in _YES:
        return True
    if key in _NO:
        return False
    return None


class HumanPolicy(DecisionPolicy):
    """
    人类决策 (经由交互端口)

    每个问题最多询问 max_retries 次，仍无效时使用默认值:
    摸牌 / 红色 / 不喊 / 不质疑 / 不打出摸到的牌
    """

    kind = ParticipantKind.HUMAN

    def __init__(self, port: InteractionPort, max_retries: int = 3, name: str = "human"):
        super().__init__(name)
        self.port = port
        self.max_retries = max_retries
        self.last_result: Optional[PromptResult] = None

    def ask_with_retries(
        self,
        prompt: str,
        parser: Callable[[str], Optional[T]],
        default: T,
    ) -> PromptResult[T]:
        """
        有限次重试的询问

        Args:
            prompt: 问题
            parser: 解析函数，无效回答返回 None
            default: 重试耗尽时的默认值

        Returns:
            PromptResult
        """
        for attempt in range(1, self.max_retries + 1):
            value = parser(self.port.ask(prompt))
            if value is not None:
                result = PromptResult(value=value, ok=True, attempts=attempt)
                break
            self.port.show("Invalid input, please try again.")
        else:
            logger.warning(f"{self.name}: no valid answer after {self.max_retries} attempts, using default")
            result = PromptResult(value=default, ok=False, attempts=self.max_retries)
        self.last_result = result
        return result

    def choose_action(self, hand: List[Card], top_card: Card) -> Action:
        self.port.show(f"\nTop card: {card_to_str(top_card)}")
        self.port.show(f"{self.name}'s cards:")
        for i, card in enumerate(hand):
            self.port.show(f"{i + 1}. {card_to_str(card)}")
        self.port.show("0. Draw a card")

        def parse(text: str) -> Optional[Action]:
            try:
                choice = int(text.strip())
            except ValueError:
                return None
            if choice == 0:
                return Action.draw()
            if 1 <= choice <= len(hand):
                return Action.play_at(choice - 1)
            return None

        return self.ask_with_retries(f"Your choice (0-{len(hand)}): ", parse, DEFAULT_ACTION).value

    def choose_color(self, hand: List[Card]) -> Color:
        names = "/".join(c.value for c in PLAYABLE_COLORS)
        return self.ask_with_retries(f"Choose a color ({names}): ", parse_color, DEFAULT_COLOR).value

    def decide_declare_last(self, hand_size_after_play: int) -> bool:
        return self.ask_with_retries("Do you want to call your last card? (y/n): ", parse_yes_no, False).value

    def confirm_challenge(self, hand: List[Card], accused_name: str) -> bool:
        prompt = f"{accused_name} played Wild Draw Four. Challenge? (y/n): "
        return self.ask_with_retries(prompt, parse_yes_no, False).value

    def play_drawn_card(self, card: Card, top_card: Card) -> bool:
        prompt = f"The drawn card ({card_to_str(card)}) can be played! Play it? (y/n): "
        return self.ask_with_retries(prompt, parse_yes_no, False).value
