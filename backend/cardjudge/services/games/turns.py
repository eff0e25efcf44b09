"""Turn engine: response submission, judging and dealing.

A turn moves from collecting responses, to ready for judgment (every
active non-judge player has answered), to judged. Judging either starts
the next turn with the next judge in the rotation or completes the game.
"""
from flask import current_app

from cardjudge import db
from cardjudge.errors import (
    FailedPrecondition, InvalidArgument, PermissionDenied, PlayerNotFound,
)
from cardjudge.models import COMPLETED, IN_PROGRESS, RESPONSES, RANDO_CARDRISSIAN, Turn
from cardjudge.services import push
from cardjudge.store import find_game, lock_game, lock_players, transactional
from . import deck, rotation
from .catalog import get_response_cards


def _active_bot(players):
    return next((p for p in players if p.is_rando_cardrissian and not p.is_inactive), None)


def begin_turn(game, judge_id, players, winner=None):
    """Draw a prompt and make it the game's current turn.

    `winner` is the record of the turn judged just before, if any. The
    bot, when playing, answers immediately with as many cards as the
    prompt asks for.
    """
    prompt = deck.draw_prompt(game)
    turn = Turn(game_id=game.id, judge_id=judge_id, prompt_card=prompt, prompt_card_id=prompt.cid,
                responses={}, downvotes=[], winner=winner)
    if _active_bot(players):
        turn.responses = {RANDO_CARDRISSIAN: deck.draw_n(game.id, RESPONSES, deck.pick_count(prompt.special))}
    db.session.add(turn)
    game.current_turn = turn
    current_app.logger.info(f"[turn] game={game.id} judge={judge_id} prompt={prompt.cid} special={prompt.special}")
    return turn


def redraw_prompt(game, turn, players):
    """Swap the current prompt for a fresh one, re-dealing the bot."""
    prompt = deck.draw_prompt(game)
    turn.prompt_card = prompt
    turn.prompt_card_id = prompt.cid
    responses = {}
    if _active_bot(players):
        responses[RANDO_CARDRISSIAN] = deck.draw_n(game.id, RESPONSES, deck.pick_count(prompt.special))
    turn.responses = responses
    turn.downvotes = []
    turn.notified_judge_id = None
    return prompt


def return_responses(turn, players, player_ids=None):
    """Put submitted response cards back in their owners' hands.

    Only the given players' submissions are returned when `player_ids`
    is set. The bot has no hand; its cards are discarded.
    """
    by_id = {p.user_id: p for p in players}
    responses = dict(turn.responses or {})
    for player_id in list(responses):
        if player_ids is not None and player_id not in player_ids:
            continue
        cards = responses.pop(player_id)
        player = by_id.get(player_id)
        if player is not None and not player.is_rando_cardrissian:
            player.hand = list(player.hand or []) + [cid for cid in cards if cid not in (player.hand or [])]
    turn.responses = responses


def responses_complete(turn, players):
    """True once every active, non-judge, non-bot player has answered."""
    if turn is None:
        return False
    expected = [p.user_id for p in players if p.is_active_human and p.user_id != turn.judge_id]
    submitted = turn.responses or {}
    return bool(expected) and all(pid in submitted for pid in expected)


def claim_judge_notification(turn, players):
    """The judge to tell that every response is in, or None.

    Each judge is told at most once per prompt, however often the turn
    drops out of and back into completeness through joins and leaves.
    """
    if turn is None or not responses_complete(turn, players):
        return None
    if turn.notified_judge_id == turn.judge_id:
        return None
    turn.notified_judge_id = turn.judge_id
    return turn.judge_id


def require_turn(game):
    if game.state != IN_PROGRESS:
        raise FailedPrecondition(f"Game {game.gid} is not in progress")
    if game.current_turn is None:
        raise FailedPrecondition(f"Game {game.gid} has no active turn")
    return game.current_turn


# ============ Submit responses ============

@transactional
def _submit_responses(game_id, player_id, card_ids):
    game = lock_game(game_id)
    turn = require_turn(game)
    players = lock_players(game.id)
    player = next((p for p in players if p.user_id == player_id and not p.is_inactive), None)
    if player is None:
        raise PlayerNotFound(player_id, 'Unable to find this player in this game')
    if player.is_rando_cardrissian:
        raise PermissionDenied('Rando Cardrissian answers on his own')
    if player_id == turn.judge_id:
        raise FailedPrecondition("The judge can't submit a response")
    if player_id in (turn.responses or {}):
        raise FailedPrecondition('You already submitted a response for this turn')

    hand = list(player.hand or [])
    missing = [cid for cid in card_ids if cid not in hand]
    if missing:
        raise FailedPrecondition(f"Cards not in your hand: {', '.join(missing)}")

    player.hand = [cid for cid in hand if cid not in card_ids]
    turn.responses = {**(turn.responses or {}), player_id: list(card_ids)}
    judge_to_notify = claim_judge_notification(turn, players)

    current_app.logger.info(
        f"[submit] game={game.id} player={player_id} cards={len(card_ids)} "
        f"submitted={len(turn.responses)} notify={judge_to_notify}"
    )
    return judge_to_notify


def submit_responses(game_id, player_id, card_ids):
    card_ids = list(card_ids or [])
    if not card_ids:
        raise InvalidArgument('You must submit valid responses')
    if len(set(card_ids)) != len(card_ids):
        raise InvalidArgument('The same card was submitted twice')

    judge_to_notify = _submit_responses(game_id, player_id, card_ids)
    game = find_game(game_id=game_id)
    push.broadcast_state(game)
    if judge_to_notify:
        notify_all_responses_in(game, judge_to_notify)
    return {'game_id': game_id, 'success': True}


def notify_all_responses_in(game, judge_id):
    push.notify([judge_id], push.ALL_RESPONSES, {
        'game_id': game.id,
        'title': f"Time to judge - {game.gid}",
        'body': 'All responses are in. Choose a winner!',
    })


# ============ Pick winner ============

@transactional
def _pick_winner(game_id, judge_id, winning_player_id):
    game = lock_game(game_id)
    turn = require_turn(game)
    if turn.judge_id != judge_id:
        raise PermissionDenied('Only the judge can pick a winner for the turn')

    players = lock_players(game.id)
    by_id = {p.user_id: p for p in players}
    winner = by_id.get(winning_player_id)
    if winner is None:
        raise PlayerNotFound(winning_player_id)
    response = (turn.responses or {}).get(winning_player_id)
    if not response:
        raise FailedPrecondition("Couldn't find that player's response")

    prompt = turn.prompt_card
    record = {
        'player_id': winner.user_id,
        'player_name': winner.name,
        'player_avatar_url': winner.avatar_url,
        'is_rando_cardrissian': winner.is_rando_cardrissian,
        'prompt_card': prompt.to_dict(),
        'response': [c.to_dict() for c in get_response_cards(response)],
    }
    turn.winner_id = winner.user_id

    # The bot takes no part in prize accounting
    if not winner.is_rando_cardrissian:
        winner.prizes = list(winner.prizes or []) + [prompt.cid]
    game.round += 1

    champion = next(
        (p for p in players if not p.is_rando_cardrissian and len(p.prizes or []) >= game.prizes_to_win),
        None,
    )
    if champion is not None:
        game.winner_id = champion.user_id
        game.transition_to(COMPLETED)
        current_app.logger.info(
            f"[finish] game={game.id} winner={champion.user_id} round={game.round}"
        )
        return {
            'game_over': True,
            'champion_id': champion.user_id,
            'champion_name': champion.name,
            'champion_avatar_url': champion.avatar_url,
            'player_ids': [p.user_id for p in players if p.is_active_human],
        }

    next_judge_id = rotation.next_judge(game.judge_rotation, turn.judge_id)
    new_turn = begin_turn(game, next_judge_id, players, winner=record)

    count = deck.deal_count(prompt.special, new_turn.prompt_card.special)
    for player in players:
        if not player.is_active_human or player.user_id == turn.judge_id:
            continue
        dealt = deck.draw_n(game.id, RESPONSES, count)
        player.hand = list(player.hand or []) + dealt
    current_app.logger.info(
        f"[pick-winner] game={game.id} judge={judge_id} winner={winner.user_id} "
        f"round={game.round} next_judge={next_judge_id} dealt={count}"
    )
    return {
        'game_over': False,
        'round': game.round,
        'winner_id': winner.user_id,
        'next_judge_id': next_judge_id,
        'prompt_text': new_turn.prompt_card.text,
        'won_prompt_text': prompt.text,
        'player_ids': [p.user_id for p in players if p.is_active_human],
    }


def pick_winner(game_id, judge_id, winning_player_id):
    if not winning_player_id:
        raise InvalidArgument('You must specify the winning player')

    outcome = _pick_winner(game_id, judge_id, winning_player_id)
    game = find_game(game_id=game_id)
    push.broadcast_state(game)
    if outcome['game_over']:
        push.notify(outcome['player_ids'], push.GAME_OVER, {
            'game_id': game.id,
            'title': f"Game Over - {game.gid}",
            'body': f"The winner was {outcome['champion_name']}",
            'image_url': outcome['champion_avatar_url'] or None,
        })
    else:
        _notify_new_round(game, outcome)
    return {'game_id': game_id, 'success': True}


def _notify_new_round(game, outcome):
    judge_id = outcome['next_judge_id']
    winner_id = outcome['winner_id']
    push.notify([judge_id], push.NEW_JUDGE, {
        'game_id': game.id,
        'title': f"Game - {game.gid}",
        'body': 'You are now the judge!',
    })
    if winner_id != judge_id:
        push.notify([winner_id], push.NEW_WINNER, {
            'game_id': game.id,
            'title': f"You won! - {game.gid}",
            'body': f"\"{outcome['won_prompt_text']}\"",
        })
    others = [pid for pid in outcome['player_ids'] if pid not in (judge_id, winner_id)]
    push.notify(others, push.NEW_ROUND, {
        'game_id': game.id,
        'title': f"Next Round #{outcome['round']} - {game.gid}",
        'body': f"\"{outcome['prompt_text']}\"",
    })


# ============ Re-deal hand ============

@transactional
def _re_deal_hand(game_id, player_id):
    game = lock_game(game_id)
    if game.state != IN_PROGRESS:
        raise FailedPrecondition(f"Game {game.gid} is not in progress")
    players = lock_players(game.id)
    player = next((p for p in players if p.user_id == player_id and not p.is_inactive), None)
    if player is None or player.is_rando_cardrissian:
        raise PlayerNotFound(player_id, 'Unable to find you as a valid player for this game')
    prizes = list(player.prizes or [])
    if not prizes:
        raise FailedPrecondition("You don't have enough prizes to re-deal your hand")

    cost = prizes.pop()
    player.prizes = prizes
    player.hand = deck.draw_n(game.id, RESPONSES, current_app.config.get('HAND_SIZE', 10))
    current_app.logger.info(f"[re-deal] game={game.id} player={player_id} cost={cost} hand={len(player.hand)}")


def re_deal_hand(game_id, player_id):
    _re_deal_hand(game_id, player_id)
    push.broadcast_state(find_game(game_id=game_id))
    return {'game_id': game_id, 'success': True}
