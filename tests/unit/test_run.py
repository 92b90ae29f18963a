"""回合控制器测试"""
from collections import deque

import pytest

import engine.run as run_module
from core.actions import Action
from core.cards import Card, Color, Rank, parse_card, parse_cards
from core.piles import PileManager
from core.state import InvalidSetupError, Participant, Phase, COUNTER_CLOCKWISE
from engine.config import GameConfig
from engine.events import EventKind, ScoreLog
from engine.policy import DecisionPolicy, HumanPolicy, ScriptedInteractionPort
from engine.run import TurnController


class ScriptedPolicy(DecisionPolicy):
    """按预设顺序出牌的策略，预设用完后摸牌"""

    def __init__(self, actions=(), color=Color.RED, declare=True, challenge=False, play_drawn=False):
        super().__init__("scripted")
        self.actions = deque(actions)
        self.color = color
        self.declare = declare
        self.challenge = challenge
        self.play_drawn = play_drawn
        self.challenged = []

    def choose_action(self, hand, top_card):
        return self.actions.popleft() if self.actions else Action.draw()

    def choose_color(self, hand):
        return self.color

    def decide_declare_last(self, hand_size_after_play):
        return self.declare

    def confirm_challenge(self, hand, accused_name):
        self.challenged.append(accused_name)
        return self.challenge

    def play_drawn_card(self, card, top_card):
        return self.play_drawn


def filler(n=20):
    return [Card(Color.GREEN, Rank.ONE) for _ in range(n)]


def make_game(policies, config=None, keep_events=True):
    names = "ABCDEFGH"
    participants = [Participant(names[i], policy=p) for i, p in enumerate(policies)]
    log = ScoreLog(keep_events=keep_events)
    controller = TurnController(participants, config=config, listeners=[log], session_id="test")
    return controller, log


def rig(controller, hands, top, draw_cards=None):
    """开局后替换为指定的手牌、顶牌与摸牌堆 (堆顶在列表末尾)"""
    controller.start_game()
    piles = PileManager(cards=filler() if draw_cards is None else draw_cards, shuffle=False)
    piles.play(parse_card(top))
    controller.piles = piles
    controller.referee.piles = piles

    state = controller.state
    for p, hand in zip(state.participants, hands):
        p.clear_hand()
        p.add_cards(parse_cards(hand))
        p.reset_penalties()
    state.turn_index = 0
    state.direction = 1
    state.phase = Phase.ACTIVE
    return piles


def forced_start(monkeypatch, rank):
    """让起始牌固定为指定牌面"""

    class ForcedPiles(PileManager):
        def setup_initial_card(self):
            card = next(c for c in self._draw_pile if c.rank == rank)
            self._draw_pile.remove(card)
            self.play(card)
            return card

    monkeypatch.setattr(run_module, "PileManager", ForcedPiles)


class TestSetup:
    """开局校验测试"""

    def test_too_few_participants(self):
        with pytest.raises(InvalidSetupError):
            make_game([ScriptedPolicy()])

    def test_duplicate_names(self):
        participants = [Participant("A", policy=ScriptedPolicy()), Participant("A", policy=ScriptedPolicy())]
        with pytest.raises(InvalidSetupError):
            TurnController(participants)

    def test_missing_policy(self):
        with pytest.raises(InvalidSetupError):
            TurnController([Participant("A", policy=ScriptedPolicy()), Participant("B")])

    def test_cannot_deal(self):
        with pytest.raises(InvalidSetupError):
            make_game([ScriptedPolicy() for _ in range(8)], config=GameConfig(hand_size=14))

    def test_invalid_config(self):
        with pytest.raises(InvalidSetupError):
            make_game([ScriptedPolicy(), ScriptedPolicy()], config=GameConfig(variant="speed"))

    def test_deal(self):
        controller, log = make_game([ScriptedPolicy() for _ in range(4)], config=GameConfig(seed=1))
        controller.start_game()
        state = controller.state
        assert state.phase == Phase.ACTIVE
        assert controller.piles.top_card().rank != Rank.WILD_DRAW_FOUR
        in_hands = sum(p.hand_size for p in state.participants)
        assert in_hands + controller.piles.total_cards == 108
        assert log.events_of(EventKind.ROUND_START)
        assert log.events_of(EventKind.START_CARD)


class TestStartCard:
    """起始牌效果测试"""

    def test_draw_two(self, monkeypatch):
        forced_start(monkeypatch, Rank.DRAW_TWO)
        controller, _ = make_game([ScriptedPolicy() for _ in range(3)])
        controller.start_game()
        state = controller.state
        assert state.participants[0].hand_size == 9
        assert state.turn_index == 1

    def test_skip(self, monkeypatch):
        forced_start(monkeypatch, Rank.SKIP)
        controller, _ = make_game([ScriptedPolicy() for _ in range(3)])
        controller.start_game()
        assert controller.state.participants[0].hand_size == 7
        assert controller.state.turn_index == 1

    def test_reverse(self, monkeypatch):
        forced_start(monkeypatch, Rank.REVERSE)
        controller, _ = make_game([ScriptedPolicy() for _ in range(3)])
        controller.start_game()
        assert controller.state.direction == COUNTER_CLOCKWISE
        assert controller.state.turn_index == 0

    def test_wild(self, monkeypatch):
        forced_start(monkeypatch, Rank.WILD)
        controller, log = make_game([ScriptedPolicy(color=Color.GREEN), ScriptedPolicy(color=Color.BLUE)])
        controller.start_game()
        assert controller.piles.top_card().color == Color.GREEN
        assert controller.state.turn_index == 0
        assert log.events_of(EventKind.COLOR_CHOSEN)[0].participant == "A"

    def test_number(self, monkeypatch):
        forced_start(monkeypatch, Rank.FIVE)
        controller, _ = make_game([ScriptedPolicy(), ScriptedPolicy()])
        controller.start_game()
        assert controller.state.turn_index == 0
        assert controller.state.participants[0].hand_size == 7


class TestPlays:
    """出牌与摸牌测试"""

    def test_number_card_advances(self):
        controller, log = make_game([ScriptedPolicy([Action.play_at(0)]), ScriptedPolicy()])
        rig(controller, ["Red 5, Blue 5", "Blue 1"], "Red 7")

        assert controller.play_turn() == Phase.ACTIVE
        assert controller.piles.top_card().rank == Rank.FIVE
        assert controller.state.current.name == "B"
        assert log.events_of(EventKind.PLAY)[-1].card.color == Color.RED

    def test_illegal_play(self):
        controller, log = make_game([ScriptedPolicy([Action.play_at(1)]), ScriptedPolicy()])
        rig(controller, ["Red 5, Blue 5", "Blue 1"], "Red 7")
        a = controller.state.participants[0]

        controller.play_turn()
        assert a.hand_size == 3
        assert a.penalty_count == 1
        assert controller.piles.top_card().rank == Rank.SEVEN
        assert controller.state.current.name == "B"

        rejected = log.events_of(EventKind.REJECTED)[-1]
        assert rejected.detail == "Invalid card! Blue 5 cannot be played on Red 7"
        assert rejected.card.color == Color.BLUE
        assert rejected.top_card.rank == Rank.SEVEN
        assert log.events_of(EventKind.PENALTY)

    def test_malformed_index_defaults_to_draw(self):
        bad = [Action.play_at(10)] * 3
        controller, _ = make_game([ScriptedPolicy(bad), ScriptedPolicy()])
        rig(controller, ["Red 5, Blue 5", "Blue 1"], "Red 7")
        a = controller.state.participants[0]

        controller.play_turn()
        assert a.hand_size == 3
        assert a.penalty_count == 0
        assert not a.policy.actions

    def test_malformed_then_valid(self):
        policy = ScriptedPolicy([Action.play_at(10), Action.play_at(0)])
        controller, _ = make_game([policy, ScriptedPolicy()])
        rig(controller, ["Red 5, Blue 5", "Blue 1"], "Red 7")

        controller.play_turn()
        assert controller.state.participants[0].hand_size == 1

    def test_draw(self):
        controller, log = make_game([ScriptedPolicy(), ScriptedPolicy()])
        piles = rig(controller, ["Blue 1, Blue 2", "Blue 3"], "Red 7")
        before = piles.draw_pile_size

        controller.play_turn()
        assert controller.state.participants[0].hand_size == 3
        assert piles.draw_pile_size == before - 1
        assert controller.state.current.name == "B"
        assert log.events_of(EventKind.DRAW)

    def test_play_drawn_card(self):
        controller, _ = make_game([ScriptedPolicy(play_drawn=True), ScriptedPolicy()])
        rig(controller, ["Blue 1, Blue 2", "Blue 3"], "Red 7", draw_cards=filler() + [parse_card("Red 5")])

        controller.play_turn()
        assert controller.state.participants[0].hand_size == 2
        top = controller.piles.top_card()
        assert (top.color, top.rank) == (Color.RED, Rank.FIVE)

    def test_keep_drawn_card(self):
        controller, _ = make_game([ScriptedPolicy(play_drawn=False), ScriptedPolicy()])
        rig(controller, ["Blue 1, Blue 2", "Blue 3"], "Red 7", draw_cards=filler() + [parse_card("Red 5")])

        controller.play_turn()
        assert controller.state.participants[0].hand_size == 3
        assert controller.piles.top_card().rank == Rank.SEVEN

    def test_human_policy(self):
        port = ScriptedInteractionPort()
        controller, _ = make_game([HumanPolicy(port, name="A"), ScriptedPolicy()])
        rig(controller, ["Red 5, Blue 5", "Blue 1"], "Red 7")
        port.feed("1", "y")

        controller.play_turn()
        assert controller.state.participants[0].hand_size == 1
        assert controller.piles.top_card().rank == Rank.FIVE


class TestSpecialCards:
    """功能牌测试"""

    def test_draw_two_two_participants(self):
        controller, log = make_game([ScriptedPolicy([Action.play_at(0)]), ScriptedPolicy()])
        rig(controller, ["Red Draw Two, Red 3, Red 4", "Blue 1, Blue 2"], "Red 9")
        a, b = controller.state.participants

        controller.play_turn()
        assert b.hand_size == 4
        assert controller.state.current is a
        assert log.events_of(EventKind.SKIP)[-1].participant == "B"
        assert log.events_of(EventKind.FORCED_DRAW)[-1].participant == "B"

    def test_skip(self):
        controller, _ = make_game([ScriptedPolicy([Action.play_at(0)]), ScriptedPolicy(), ScriptedPolicy()])
        rig(controller, ["Red Skip, Red 3", "Blue 1", "Blue 2"], "Red 9")

        controller.play_turn()
        assert controller.state.current.name == "C"
        assert controller.state.participants[1].hand_size == 1

    def test_reverse(self):
        controller, log = make_game([ScriptedPolicy([Action.play_at(0)]), ScriptedPolicy(), ScriptedPolicy()])
        rig(controller, ["Red Reverse, Red 3, Red 4", "Blue 1", "Blue 2"], "Red 9")

        controller.play_turn()
        assert controller.state.direction == COUNTER_CLOCKWISE
        assert controller.state.current.name == "C"
        assert log.events_of(EventKind.REVERSE)

    def test_wild_color(self):
        policy = ScriptedPolicy([Action.play_at(0)], color=Color.YELLOW)
        controller, _ = make_game([policy, ScriptedPolicy()])
        rig(controller, ["Wild, Red 3, Red 4", "Blue 1"], "Red 9")

        controller.play_turn()
        top = controller.piles.top_card()
        assert top.rank == Rank.WILD
        assert top.color == Color.YELLOW
        assert controller.state.current.name == "B"

    def test_invalid_color_defaults_to_red(self):
        policy = ScriptedPolicy([Action.play_at(0)], color=Color.BLACK)
        controller, _ = make_game([policy, ScriptedPolicy()])
        rig(controller, ["Wild, Blue 3, Blue 4", "Blue 1"], "Red 9")

        controller.play_turn()
        assert controller.piles.top_card().color == Color.RED

    def test_wild_draw_four_unchallenged(self):
        policies = [ScriptedPolicy([Action.play_at(0)], color=Color.BLUE), ScriptedPolicy(), ScriptedPolicy()]
        controller, _ = make_game(policies)
        rig(controller, ["Wild Draw Four, Red 3, Red 4", "Blue 1", "Blue 2"], "Red 9")
        a, b, c = controller.state.participants

        controller.play_turn()
        assert b.hand_size == 5
        assert b.penalty_count == 0
        assert b.policy.challenged == ["A"]
        assert controller.state.current is c
        assert controller.piles.top_card().color == Color.BLUE

    def test_challenge_bluff_confirmed(self):
        policies = [
            ScriptedPolicy([Action.play_at(0)], color=Color.BLUE),
            ScriptedPolicy(challenge=True),
            ScriptedPolicy(),
        ]
        controller, log = make_game(policies)
        rig(controller, ["Wild Draw Four, Red 3, Red 4", "Blue 1", "Blue 2"], "Red 9")
        a, b, c = controller.state.participants

        controller.play_turn()
        assert a.hand_size == 6
        assert a.penalty_count == 1
        assert b.hand_size == 1
        assert controller.state.current is b
        assert "bluff_confirmed" in log.events_of(EventKind.CHALLENGE)[-1].detail

    def test_challenge_bluff_denied(self):
        policies = [
            ScriptedPolicy([Action.play_at(0)], color=Color.GREEN),
            ScriptedPolicy(challenge=True),
            ScriptedPolicy(),
        ]
        controller, log = make_game(policies)
        rig(controller, ["Wild Draw Four, Blue 3, Blue 4", "Blue 1", "Blue 2"], "Red 9")
        a, b, c = controller.state.participants

        controller.play_turn()
        assert a.hand_size == 2
        assert a.penalty_count == 0
        assert b.hand_size == 7
        assert b.penalty_count == 1
        assert controller.state.current is c
        assert controller.piles.top_card().color == Color.GREEN
        assert "bluff_denied" in log.events_of(EventKind.CHALLENGE)[-1].detail

    def test_challenge_uses_color_before_play(self):
        # 原顶牌为绿色万能牌，出牌者手中有绿色牌
        policies = [ScriptedPolicy([Action.play_at(0)], color=Color.RED), ScriptedPolicy(challenge=True)]
        controller, _ = make_game(policies)
        rig(controller, ["Wild Draw Four, Green 3, Blue 4", "Blue 1"], "Green Wild")

        controller.play_turn()
        assert controller.state.participants[0].penalty_count == 1

    def test_challenge_ignores_declaration_penalty_cards(self):
        # 忘喊罚摸到的红牌不算作出牌时的手牌
        policies = [
            ScriptedPolicy([Action.play_at(0)], color=Color.BLUE, declare=False),
            ScriptedPolicy(challenge=True),
        ]
        controller, log = make_game(policies)
        rig(
            controller,
            ["Wild Draw Four, Blue 3", "Blue 1, Blue 2"],
            "Red 7",
            draw_cards=filler() + parse_cards("Red 8, Red 9"),
        )
        a, b = controller.state.participants

        controller.play_turn()
        assert a.hand_size == 3
        assert a.penalty_count == 1
        assert b.hand_size == 2 + 6
        assert b.penalty_count == 1
        assert controller.state.current is a
        assert "bluff_denied" in log.events_of(EventKind.CHALLENGE)[-1].detail


class TestDeclaration:
    """喊"最后一张"测试"""

    def test_declared(self):
        controller, log = make_game([ScriptedPolicy([Action.play_at(0)]), ScriptedPolicy()])
        rig(controller, ["Red 3, Red 4", "Blue 1"], "Red 9")
        a = controller.state.participants[0]

        controller.play_turn()
        assert a.hand_size == 1
        assert a.declared_last
        assert a.penalty_count == 0
        assert log.events_of(EventKind.DECLARE)

    def test_missed_declaration_penalty(self):
        controller, log = make_game([ScriptedPolicy([Action.play_at(0)], declare=False), ScriptedPolicy()])
        rig(controller, ["Red 3, Red 4", "Blue 1"], "Red 9")
        a = controller.state.participants[0]

        controller.play_turn()
        assert a.hand_size == 3
        assert a.penalty_count == 1
        assert log.events_of(EventKind.DECLARATION_MISSED)

    def test_undetected_declaration(self):
        config = GameConfig(detection_probability=0.0)
        controller, log = make_game(
            [ScriptedPolicy([Action.play_at(0)], declare=False), ScriptedPolicy()], config=config
        )
        rig(controller, ["Red 3, Red 4", "Blue 1"], "Red 9")
        a = controller.state.participants[0]

        controller.play_turn()
        assert a.hand_size == 1
        assert a.penalty_count == 0
        assert log.events_of(EventKind.DECLARATION_MISSED)


class TestRoundEnd:
    """轮次结束与计分测试"""

    @pytest.mark.parametrize("variant, expected", [
        ("standard", 75),
        ("special rules", 150),
        ("quick game", 37),
    ])
    def test_round_win_scoring(self, variant, expected):
        controller, log = make_game(
            [ScriptedPolicy([Action.play_at(0)]), ScriptedPolicy()],
            config=GameConfig(variant=variant),
        )
        rig(controller, ["Red 3", "Blue Draw Two, Wild, Yellow 5"], "Red 9")
        a, b = controller.state.participants

        assert controller.play_turn() == Phase.ROUND_END
        assert a.total_score == expected
        assert b.total_score == 0
        assert controller.round_results[-1].winner == "A"
        assert controller.round_results[-1].awarded == expected
        assert log.scores_by_round("test") == {1: {"A": expected, "B": 0}}
        assert all(r.variant == variant for r in log.round_scores)

    def test_last_card_effect_not_applied(self):
        controller, _ = make_game([ScriptedPolicy([Action.play_at(0)]), ScriptedPolicy()])
        rig(controller, ["Red Draw Two", "Blue 1"], "Red 9")
        b = controller.state.participants[1]

        controller.play_turn()
        assert controller.phase == Phase.ROUND_END
        assert b.hand_size == 1
        assert controller.state.direction == 1

    def test_game_winner(self):
        controller, log = make_game(
            [ScriptedPolicy([Action.play_at(0)]), ScriptedPolicy()],
            config=GameConfig(win_threshold=50),
        )
        rig(controller, ["Red 3", "Blue Draw Two, Wild, Yellow 5"], "Red 9")

        assert controller.play_turn() == Phase.GAME_END
        result = controller.result()
        assert result.winner == "A"
        assert result.scores == {"A": 75, "B": 0}
        assert log.results[-1].winner == "A"
        assert log.results[-1].session_id == "test"

    def test_turn_on_finished_round(self):
        controller, _ = make_game([ScriptedPolicy([Action.play_at(0)]), ScriptedPolicy()])
        rig(controller, ["Red 3", "Blue 1"], "Red 9")
        controller.play_turn()
        assert controller.play_turn() == Phase.ROUND_END

    def test_next_round(self):
        controller, _ = make_game([ScriptedPolicy([Action.play_at(0)]), ScriptedPolicy()])
        rig(controller, ["Red 3", "Blue 1"], "Red 9")
        controller.play_turn()

        controller.next_round()
        state = controller.state
        assert state.round_number == 2
        assert state.phase == Phase.ACTIVE
        assert state.participants[0].total_score == 1
        assert all(p.hand_size >= 7 for p in state.participants)
        assert sum(p.hand_size for p in state.participants) + controller.piles.total_cards == 108


class TestDrawnRound:
    """牌堆耗尽测试"""

    def test_exhausted_piles(self):
        controller, log = make_game([ScriptedPolicy(), ScriptedPolicy()])
        rig(controller, ["Blue 1", "Blue 2"], "Red 9", draw_cards=[])

        assert controller.play_turn() == Phase.DRAW
        assert controller.round_results[-1].is_draw
        assert log.scores_by_round("test") == {1: {"A": 0, "B": 0}}
        assert log.events_of(EventKind.ROUND_DRAW)

    def test_round_limit(self):
        config = GameConfig(max_rounds=1)
        controller, log = make_game([ScriptedPolicy(), ScriptedPolicy()], config=config)
        rig(controller, ["Blue 1", "Blue 2"], "Red 9", draw_cards=[])

        assert controller.play_turn() == Phase.GAME_END
        assert controller.result().winner is None
        assert log.results[-1].winner == "draw"

    def test_turn_limit(self):
        config = GameConfig(max_turns_per_round=2)
        controller, _ = make_game([ScriptedPolicy(), ScriptedPolicy()], config=config)
        rig(controller, ["Blue 1", "Blue 2"], "Red 9")

        controller.play_turn()
        controller.play_turn()
        assert controller.play_turn() == Phase.DRAW
        assert controller.round_results[-1].turns == 2


class TestDisqualification:
    """取消资格测试"""

    def test_two_participants_game_ends(self):
        controller, log = make_game([ScriptedPolicy(), ScriptedPolicy()])
        piles = rig(controller, ["Blue 1", "Blue 2, Blue 3"], "Red 9")
        a, b = controller.state.participants
        a.total_score = 40
        b.penalty_count = 3
        before = piles.draw_pile_size

        assert controller.play_turn() == Phase.GAME_END
        result = controller.result()
        assert result.winner is None
        assert result.disqualified == ["B"]
        assert result.scores == {"A": 40, "B": 0}
        assert b.hand_size == 0
        assert piles.draw_pile_size == before + 2
        assert log.results[-1].winner == "draw"
        assert log.events_of(EventKind.DISQUALIFIED)[-1].participant == "B"

    def test_game_end_emits_round_scores(self):
        controller, log = make_game([ScriptedPolicy(), ScriptedPolicy()])
        rig(controller, ["Blue 1", "Blue 2, Blue 3"], "Red 9")
        a, b = controller.state.participants
        a.total_score = 40
        b.penalty_count = 3

        controller.play_turn()
        assert log.scores_by_round("test") == {1: {"A": 0}}
        assert log.round_scores[-1].cumulative_score == 40
        assert controller.round_results[-1].is_draw
        assert controller.round_results[-1].disqualified == ["B"]

    def test_three_participants_continue(self):
        controller, _ = make_game([ScriptedPolicy(), ScriptedPolicy(), ScriptedPolicy()])
        rig(controller, ["Blue 1", "Blue 2", "Blue 3"], "Red 9")
        a, b, c = controller.state.participants
        a.penalty_count = 3

        assert controller.play_turn() == Phase.ACTIVE
        assert controller.state.participants == [b, c]
        # B 接替被移除的 A 行动 (摸了一张)，之后轮到 C
        assert b.hand_size == 2
        assert controller.state.current is c

    def test_penalties_reach_threshold(self):
        policy = ScriptedPolicy([Action.play_at(0)] * 3)
        controller, _ = make_game([policy, ScriptedPolicy()])
        rig(controller, ["Blue 1", "Blue 2"], "Red 9")

        for _ in range(5):
            controller.play_turn()
        assert controller.state.participants[0].penalty_count == 3
        assert controller.play_turn() == Phase.GAME_END
        assert controller.result().disqualified == ["A"]


class TestRunGame:
    """完整对局测试"""

    def test_run_game_with_bots(self):
        from engine.bots import PointsBot, RandomBot

        participants = [
            Participant("A", policy=PointsBot(seed=1)),
            Participant("B", policy=RandomBot(seed=2)),
        ]
        config = GameConfig(win_threshold=100, seed=3, max_rounds=50, max_turns_per_round=2000)
        result = TurnController(participants, config=config).run_game()

        assert result.rounds >= 1
        assert result.rounds == len(result.round_results)
        if result.winner is not None:
            assert result.scores[result.winner] >= 100
        assert result.total_turns > 0
