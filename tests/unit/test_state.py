"""状态测试"""
import pytest

from core.cards import parse_card, parse_cards
from core.state import (
    GameState,
    Participant,
    ParticipantKind,
    Phase,
    Variant,
    CLOCKWISE,
    COUNTER_CLOCKWISE,
)
from engine.bots import RandomBot
from engine.policy import HumanPolicy, ScriptedInteractionPort


def ring(*names):
    return GameState(participants=[Participant(n) for n in names])


class TestParticipant:
    """Participant 测试"""

    def test_empty_name(self):
        with pytest.raises(ValueError):
            Participant("  ")

    def test_name_stripped(self):
        assert Participant(" Alice ").name == "Alice"

    def test_add_card(self):
        p = Participant("A")
        p.add_card(parse_card("Red 1"))
        assert p.hand_size == 1
        with pytest.raises(ValueError):
            p.add_card(None)

    def test_declare_only_with_one_card(self):
        p = Participant("A")
        p.add_cards(parse_cards("Red 1, Red 2"))
        assert not p.declare_last()

        p.remove_card(0)
        assert p.declare_last()
        assert p.declared_last

    def test_draw_clears_declaration(self):
        p = Participant("A")
        p.add_card(parse_card("Red 1"))
        p.declare_last()
        p.add_card(parse_card("Red 2"))
        assert not p.declared_last

    def test_remove_card(self):
        p = Participant("A")
        cards = parse_cards("Red 1, Blue 2")
        p.add_cards(cards)
        assert p.remove_card(1) is cards[1]
        with pytest.raises(IndexError):
            p.remove_card(1)
        with pytest.raises(IndexError):
            p.remove_card(-1)

    def test_index_of_uses_identity(self):
        p = Participant("A")
        first, second = parse_cards("Red 1, Red 1")
        p.add_cards([first, second])
        assert p.index_of(second) == 1
        with pytest.raises(ValueError):
            p.index_of(parse_card("Red 1"))

    def test_add_score(self):
        p = Participant("A")
        p.add_score(30)
        p.add_score(0)
        p.add_score(-5)
        assert p.total_score == 30

    def test_clear_hand(self):
        p = Participant("A")
        cards = parse_cards("Red 1, Wild")
        p.add_cards(cards)
        assert p.calculate_hand_points() == 51
        assert p.clear_hand() == cards
        assert p.hand == []
        assert p.has_won_round

    def test_kind(self):
        assert Participant("A", policy=RandomBot(seed=0)).kind == ParticipantKind.AUTOMATED
        human = HumanPolicy(ScriptedInteractionPort())
        assert Participant("B", policy=human).kind == ParticipantKind.HUMAN


class TestRing:
    """参与者环测试"""

    def test_next_index_wraps(self):
        state = ring("A", "B", "C")
        state.turn_index = 2
        assert state.next_index() == 0
        state.direction = COUNTER_CLOCKWISE
        state.turn_index = 0
        assert state.next_index() == 2
        assert state.next_index(2) == 1

    def test_advance(self):
        state = ring("A", "B", "C")
        assert state.advance().name == "B"
        assert state.advance(2).name == "A"

    def test_reverse(self):
        state = ring("A", "B", "C")
        assert state.reverse() == COUNTER_CLOCKWISE
        assert state.next_participant.name == "C"
        assert state.reverse() == CLOCKWISE

    def test_two_participant_skip(self):
        state = ring("A", "B")
        assert state.advance(2).name == "A"

    def test_initial_phase(self):
        assert ring("A", "B").phase == Phase.AWAITING_START_EFFECT

    def test_find(self):
        state = ring("A", "B")
        assert state.find("B") is state.participants[1]
        assert state.find("Z") is None


class TestRemoveParticipants:
    """移除参与者测试"""

    def test_remove_current_clockwise(self):
        state = ring("A", "B", "C", "D")
        state.turn_index = 1
        state.remove_participants([state.participants[1]])
        assert [p.name for p in state.participants] == ["A", "C", "D"]
        assert state.current.name == "C"

    def test_remove_current_counter_clockwise(self):
        state = ring("A", "B", "C", "D")
        state.turn_index = 1
        state.direction = COUNTER_CLOCKWISE
        state.remove_participants([state.participants[1]])
        assert state.current.name == "A"

    def test_remove_before_current(self):
        state = ring("A", "B", "C", "D")
        state.turn_index = 2
        state.remove_participants([state.participants[0]])
        assert state.current.name == "C"
        assert state.turn_index == 1

    def test_remove_after_current(self):
        state = ring("A", "B", "C", "D")
        state.turn_index = 1
        state.remove_participants([state.participants[2]])
        assert state.current.name == "B"

    def test_remove_wraps(self):
        state = ring("A", "B", "C")
        state.turn_index = 2
        state.remove_participants([state.participants[2]])
        assert state.current.name == "A"

    def test_remove_several(self):
        state = ring("A", "B", "C", "D")
        state.turn_index = 1
        state.remove_participants([state.participants[1], state.participants[2]])
        assert [p.name for p in state.participants] == ["A", "D"]
        assert state.current.name == "D"

    def test_remove_nothing(self):
        state = ring("A", "B")
        state.remove_participants([])
        assert state.ring_size == 2


class TestVariant:
    """计分变体测试"""

    @pytest.mark.parametrize("name, variant", [
        ("standard", Variant.STANDARD),
        ("Special Rules", Variant.SPECIAL_RULES),
        ("quick-game", Variant.QUICK_GAME),
        ("QUICK_GAME", Variant.QUICK_GAME),
    ])
    def test_parse(self, name, variant):
        assert Variant.parse(name) == variant

    def test_parse_unknown(self):
        with pytest.raises(ValueError):
            Variant.parse("speed")

    def test_apply(self):
        assert Variant.STANDARD.apply(75) == 75
        assert Variant.SPECIAL_RULES.apply(75) == 150
        assert Variant.QUICK_GAME.apply(75) == 37
