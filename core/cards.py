"""
牌的定义与编码

UNO 使用 108 张牌：
- 红/黄/绿/蓝 四色，每色 1 张 0，1-9 各 2 张
- 每色 +2 / 反转 / 跳过 各 2 张
- 黑色 万能牌 与 万能+4 各 4 张
"""
from enum import Enum
from dataclasses import dataclass
from typing import List, Tuple, Dict, Optional
from collections import Counter


class Color(Enum):
    """牌的颜色 (BLACK 仅用于未选色的万能牌)"""
    RED = "Red"
    YELLOW = "Yellow"
    GREEN = "Green"
    BLUE = "Blue"
    BLACK = "Black"


# 可选/可出的四种颜色
PLAYABLE_COLORS: Tuple[Color, ...] = (Color.RED, Color.YELLOW, Color.GREEN, Color.BLUE)


class Rank(Enum):
    """牌面"""
    ZERO = "0"
    ONE = "1"
    TWO = "2"
    THREE = "3"
    FOUR = "4"
    FIVE = "5"
    SIX = "6"
    SEVEN = "7"
    EIGHT = "8"
    NINE = "9"
    DRAW_TWO = "Draw Two"
    REVERSE = "Reverse"
    SKIP = "Skip"
    WILD = "Wild"
    WILD_DRAW_FOUR = "Wild Draw Four"

    @property
    def is_number(self) -> bool:
        return self.value.isdigit()

    @property
    def is_action(self) -> bool:
        """非数字牌都算功能牌 (含黑色牌)"""
        return not self.is_number

    @property
    def is_black(self) -> bool:
        return self in (Rank.WILD, Rank.WILD_DRAW_FOUR)


NUMBER_RANKS: Tuple[Rank, ...] = tuple(r for r in Rank if r.is_number)
COLORED_ACTION_RANKS: Tuple[Rank, ...] = (Rank.DRAW_TWO, Rank.REVERSE, Rank.SKIP)
BLACK_RANKS: Tuple[Rank, ...] = (Rank.WILD, Rank.WILD_DRAW_FOUR)

# 计分
COLORED_ACTION_POINTS = 20
BLACK_POINTS = 50

# 每种牌面在单一颜色中的张数
COPIES_PER_COLOR: Dict[Rank, int] = {
    **{r: 2 for r in NUMBER_RANKS},
    Rank.ZERO: 1,
    **{r: 2 for r in COLORED_ACTION_RANKS},
}
BLACK_COPIES = 4

# (颜色, 牌面) -> 张数
DECK_COMPOSITION: Dict[Tuple[Color, Rank], int] = {
    **{(c, r): n for c in PLAYABLE_COLORS for r, n in COPIES_PER_COLOR.items()},
    **{(Color.BLACK, r): BLACK_COPIES for r in BLACK_RANKS},
}

DECK_SIZE: int = sum(DECK_COMPOSITION.values())  # 108


def rank_points(rank: Rank) -> int:
    """牌面分值: 数字牌为面值，彩色功能牌 20，黑色牌 50"""
    if rank.is_number:
        return int(rank.value)
    if rank.is_black:
        return BLACK_POINTS
    return COLORED_ACTION_POINTS


@dataclass(eq=False)
class Card:
    """
    一张实体牌

    同色同面的两张牌是不同的实体，因此按对象身份比较。
    只有万能牌的颜色可变 (出牌选色时设置一次)。

    Attributes:
        color: 颜色
        rank: 牌面
        points: 分值 (构造时计算)
    """
    color: Color
    rank: Rank
    points: int = 0

    def __post_init__(self):
        if self.rank.is_black and self.color != Color.BLACK:
            raise ValueError(f"{self.rank.value} must be created black")
        if not self.rank.is_black and self.color == Color.BLACK:
            raise ValueError(f"{self.rank.value} cannot be black")
        self.points = rank_points(self.rank)

    @property
    def is_wild(self) -> bool:
        return self.rank.is_black

    @property
    def is_action(self) -> bool:
        return self.rank.is_action

    @property
    def is_special(self) -> bool:
        """有出牌效果的牌 (与 is_action 相同集合)"""
        return self.rank.is_action

    @property
    def color_chosen(self) -> bool:
        return self.color != Color.BLACK

    def set_color(self, color: Color) -> None:
        """万能牌选色"""
        if not self.is_wild:
            raise ValueError(f"Cannot change color of {card_to_str(self)}")
        if color not in PLAYABLE_COLORS:
            raise ValueError(f"Invalid color choice: {color}")
        self.color = color

    def reset_color(self) -> None:
        """万能牌回到黑色 (洗回牌堆时)"""
        if self.is_wild:
            self.color = Color.BLACK

    def same_face(self, other: 'Card') -> bool:
        return self.color == other.color and self.rank == other.rank

    def __repr__(self) -> str:
        return f"Card({self.color.value}, {self.rank.value})"

    def __str__(self) -> str:
        return card_to_str(self)


def build_deck() -> List[Card]:
    """
    生成一副完整的 108 张牌 (未洗)

    Returns:
        牌列表
    """
    deck = []
    for (color, rank), count in DECK_COMPOSITION.items():
        deck.extend(Card(color, rank) for _ in range(count))
    return deck


def hand_points(cards: List[Card]) -> int:
    """手牌总分"""
    return sum(card.points for card in cards)


def count_colors(cards: List[Card]) -> Counter:
    """统计非黑色牌的颜色数量"""
    return Counter(card.color for card in cards if card.color != Color.BLACK)


def card_to_str(card: Card) -> str:
    """
    牌转为可读字符串

    未选色的黑色牌只显示牌面，如 "Wild"；其他如 "Red 5"、"Blue Wild"
    """
    if card.color == Color.BLACK:
        return card.rank.value
    return f"{card.color.value} {card.rank.value}"


def cards_to_str(cards: List[Card]) -> str:
    return ", ".join(card_to_str(c) for c in cards)


_COLOR_BY_NAME: Dict[str, Color] = {c.value.lower(): c for c in Color}
_RANK_BY_NAME: Dict[str, Rank] = {r.value.lower(): r for r in Rank}


def parse_color(s: str) -> Optional[Color]:
    """
    解析颜色名 (大小写不敏感，支持首字母缩写 r/y/g/b)

    Returns:
        可出的颜色，无法解析时返回 None
    """
    s = s.strip().lower()
    if not s:
        return None
    color = _COLOR_BY_NAME.get(s)
    if color is None and len(s) == 1:
        color = next((c for c in PLAYABLE_COLORS if c.value[0].lower() == s), None)
    if color == Color.BLACK:
        return None
    return color


def parse_card(s: str) -> Card:
    """
    将字符串转换为一张新牌

    Args:
        s: 如 "Red 5"、"Blue Draw Two"、"Wild"、"Wild Draw Four"、"Green Wild"

    Returns:
        新建的 Card (指定颜色的万能牌会先建成黑色再选色)
    """
    text = " ".join(s.split()).lower()
    rank = _RANK_BY_NAME.get(text)
    if rank is not None:
        if not rank.is_black:
            raise ValueError(f"Missing color in card: {s!r}")
        return Card(Color.BLACK, rank)

    color_name, _, rank_name = text.partition(" ")
    color = _COLOR_BY_NAME.get(color_name)
    rank = _RANK_BY_NAME.get(rank_name)
    if color is None or rank is None or color == Color.BLACK:
        raise ValueError(f"Cannot parse card: {s!r}")

    if rank.is_black:
        card = Card(Color.BLACK, rank)
        card.set_color(color)
        return card
    return Card(color, rank)


def parse_cards(s: str) -> List[Card]:
    """逗号分隔的牌串，如 "Red 5, Blue 5" """
    return [parse_card(part) for part in s.split(",") if part.strip()]
