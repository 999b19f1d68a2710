"""
Legal-move rules for a Klaverjas trick: follow suit, trump when void, overtrump
"""

from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence, Union

from .cards import card_index
from .constants import card_suit, is_empty_slot, non_trump_rank_index, trump_rank_index


@dataclass(frozen=True)
class Play:
    """One seat slot of the table; ``card`` is None/"-" while the seat has not played"""
    player: Optional[int] = None
    card: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return is_empty_slot(self.card)

    @classmethod
    def from_dict(cls, data: Mapping) -> "Play":
        return cls(player=data.get("player"), card=data.get("card"))


TableSlot = Union[Play, Mapping, None]


def as_play(slot: TableSlot) -> Play:
    if slot is None:
        return Play()
    if isinstance(slot, Play):
        return slot
    return Play.from_dict(slot)


def actual_plays(table: Optional[Sequence[TableSlot]]) -> List[Play]:
    """Non-empty plays in table order"""
    plays = []
    for slot in table or []:
        play = as_play(slot)
        if not play.is_empty:
            card_index(play.card)
            plays.append(play)
    return plays


def beats(a: str, b: str, led_suit: str, trump: str) -> bool:
    """Whether card ``a`` beats card ``b`` in a trick led with ``led_suit``"""
    a_trump = card_suit(a) == trump
    b_trump = card_suit(b) == trump
    if a_trump and not b_trump:
        return True
    if b_trump and not a_trump:
        return False
    if a_trump:
        return trump_rank_index(a) < trump_rank_index(b)

    a_led = card_suit(a) == led_suit
    b_led = card_suit(b) == led_suit
    if a_led and not b_led:
        return True
    if b_led and not a_led:
        return False
    if a_led:
        return non_trump_rank_index(a) < non_trump_rank_index(b)
    # off-suit discards never win
    return False


def current_winner(plays: Sequence[Play], led_suit: str, trump: str) -> Play:
    best = plays[0]
    for play in plays[1:]:
        if beats(play.card, best.card, led_suit, trump):
            best = play
    return best


def legal_cards(hand: Sequence[str],
                table: Optional[Sequence[TableSlot]],
                trump: str,
                partner_position: Optional[int],
                leader_position: Optional[int] = None) -> List[str]:
    """
    Cards from ``hand`` that may be played on the given table.

    Args:
        hand: cards held by the player to move
        table: seat slots of the current trick (Play, {"player", "card"} or None)
        trump: trump suit letter
        partner_position: seat of the player's partner
        leader_position: seat that led the trick; not needed by the rules

    Returns:
        Legal cards in hand order. The whole hand when nothing has been played.
    """
    for c in hand:
        card_index(c)
    trump = trump.upper()
    plays = actual_plays(table)
    if not plays:
        return list(hand)

    led_suit = card_suit(plays[0].card)
    follow = [c for c in hand if card_suit(c) == led_suit]
    if follow:
        return follow

    # Void in the led suit
    winner = current_winner(plays, led_suit, trump)
    if winner.player is not None and winner.player == partner_position:
        non_trump = [c for c in hand if card_suit(c) != trump]
        return non_trump if non_trump else list(hand)

    trumps = [c for c in hand if card_suit(c) == trump]
    if not trumps:
        return list(hand)

    trump_on_table = any(card_suit(p.card) == trump for p in plays)
    if not trump_on_table:
        return trumps

    if card_suit(winner.card) == trump:
        win_rank = trump_rank_index(winner.card)
        over = [c for c in trumps if trump_rank_index(c) < win_rank]
        if over:
            return over
    return trumps
