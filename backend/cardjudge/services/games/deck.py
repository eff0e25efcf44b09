"""Card pool handling: shuffling, cutting, seeding and drawing card ids.

A game's pool is two ordered lists of card ids (prompts and responses)
stored in `card_pool` rows. Drawing pops from the front of the list
while the pool row is locked, so two draws can never hand out the same
card. Draws don't commit; they are part of the caller's transaction.
"""
from flask import current_app

from cardjudge import db
from cardjudge.errors import PoolExhausted
from cardjudge.models import (
    CardPool, DRAW_2_PICK_3, PICK_2, PROMPTS, RESPONSES, get_special,
)
from cardjudge.store import lock_pool
from .catalog import get_prompt_card


def get_rng():
    return current_app.extensions['cardjudge.rng']


def cut(cards, rng, variance=10):
    """Split the deck near the middle and put the top half under the bottom.

    Returns a new list; the input is left alone.
    """
    if not cards:
        return []
    cv = min(len(cards), variance)
    position = rng.randrange(cv) + (len(cards) - cv) // 2
    return cards[position:] + cards[:position]


def shuffle_deck(cards, rng, passes=3, variance=10):
    """Fisher-Yates shuffle followed by a cut, repeated `passes` times."""
    deck = list(cards)
    for _ in range(max(1, passes)):
        rng.shuffle(deck)
        deck = cut(deck, rng, variance)
    return deck


def seed_sizes(num_players, prizes_to_win):
    """How many prompt and response cards a game is seeded with."""
    prompts = max(num_players * 12, 200)
    responses = max(
        num_players * 10  # initial deal
        + num_players * prizes_to_win * num_players  # one refill per player per turn
        + num_players * 10,  # hand re-deals
        200,
    )
    return prompts, responses


def seed(game_id, prompt_ids, response_ids):
    """Store (or replace) both pools of a game."""
    for kind, cards in ((PROMPTS, prompt_ids), (RESPONSES, response_ids)):
        pool = CardPool.query.filter_by(game_id=game_id, kind=kind).first()
        if pool is None:
            db.session.add(CardPool(game_id=game_id, kind=kind, cards=list(cards)))
        else:
            pool.cards = list(cards)
    current_app.logger.info(
        f"[seed] game={game_id} prompts={len(prompt_ids)} responses={len(response_ids)}"
    )


def draw_n(game_id, kind, count):
    """Remove and return the first `count` ids of a pool.

    Returns fewer ids when the pool runs short; nothing refills it.
    """
    if count <= 0:
        return []
    pool = lock_pool(game_id, kind)
    cards = list(pool.cards or [])
    drawn, rest = cards[:count], cards[count:]
    pool.cards = rest
    if len(drawn) < count:
        current_app.logger.warning(
            f"[pool-short] game={game_id} kind={kind} wanted={count} drew={len(drawn)}"
        )
    return drawn


def draw_one(game_id, kind):
    drawn = draw_n(game_id, kind, 1)
    return drawn[0] if drawn else None


def remaining(game_id, kind):
    pool = CardPool.query.filter_by(game_id=game_id, kind=kind).first()
    return len(pool.cards or []) if pool else 0


def pick_count(special):
    """Number of response cards a prompt asks for."""
    special = get_special(special)
    if special == DRAW_2_PICK_3:
        return 3
    if special == PICK_2:
        return 2
    return 1


def deal_count(previous_special, next_special):
    """Cards each player is refilled with once a turn is judged.

    Players get back what the judged prompt made them play (the extra two
    of a DRAW 2, PICK 3 were already dealt when it came up), plus two
    more when the new prompt is a DRAW 2, PICK 3.
    """
    count = 1
    if get_special(previous_special) == PICK_2:
        count += 1
    if get_special(next_special) == DRAW_2_PICK_3:
        count += 2
    return count


def is_allowed(game, special):
    special = get_special(special)
    if special == PICK_2 and not game.pick2_enabled:
        return False
    if special == DRAW_2_PICK_3 and not game.draw2_pick3_enabled:
        return False
    return True


def draw_prompt(game):
    """Draw the next prompt the game's rules allow.

    Prompts with a disabled special are discarded as they come up. An
    empty pool raises PoolExhausted and aborts the surrounding command.
    """
    while True:
        cid = draw_one(game.id, PROMPTS)
        if cid is None:
            raise PoolExhausted(game.id, PROMPTS)
        card = get_prompt_card(cid)
        if is_allowed(game, card.special):
            return card
        current_app.logger.info(f"[prompt-skip] game={game.id} prompt={cid} special={card.special}")


def draw_responses(game_id, count):
    return draw_n(game_id, RESPONSES, count)
