"""Downvotes on the current prompt and the monitor that vetoes it.

A vote only updates the tally (`turn.downvotes`). The reaction happens
in `on_tally_changed`, subscribed to the `tally_changed` signal: once at
least two thirds of the active players have voted against the prompt,
the turn is reset with a fresh prompt and the same judge.
"""
from collections import namedtuple

from flask import current_app

from cardjudge import db
from cardjudge.errors import FailedPrecondition, PermissionDenied, PlayerNotFound
from cardjudge.events import dispatch, tally_changed
from cardjudge.models import VetoedPrompt
from cardjudge.services import push
from cardjudge.store import find_game, lock_game, lock_players, transactional
from .turns import require_turn, redraw_prompt, return_responses

# The prompt identifies the turn: a reset keeps the judge but swaps the prompt
TallySnapshot = namedtuple('TallySnapshot', ['prompt_card_id', 'votes'])


def veto_threshold(active_players):
    """Votes needed to veto a prompt: two thirds of the active players, rounded down."""
    return active_players * 2 // 3


def _active_voters(players):
    return [p for p in players if p.is_active_human]


@transactional
def _cast_downvote(game_id, voter_id, prompt_card_id):
    game = lock_game(game_id)
    turn = require_turn(game)
    if prompt_card_id and prompt_card_id != turn.prompt_card_id:
        raise FailedPrecondition('That prompt is no longer in play')
    players = lock_players(game.id)
    voter = next((p for p in players if p.user_id == voter_id and not p.is_inactive), None)
    if voter is None:
        raise PlayerNotFound(voter_id, 'Unable to find this player in this game')
    if voter.is_rando_cardrissian:
        raise PermissionDenied("Rando Cardrissian doesn't vote")

    before = TallySnapshot(turn.prompt_card_id, tuple(turn.downvotes or []))
    if voter_id not in before.votes:
        turn.downvotes = list(before.votes) + [voter_id]
    after = TallySnapshot(turn.prompt_card_id, tuple(turn.downvotes))
    current_app.logger.info(
        f"[downvote] game={game.id} voter={voter_id} prompt={turn.prompt_card_id} votes={len(after.votes)}"
    )
    return before, after


def cast_downvote(game_id, voter_id, prompt_card_id=None):
    before, after = _cast_downvote(game_id, voter_id, prompt_card_id)
    push.broadcast_state(find_game(game_id=game_id))
    if after != before:
        dispatch(tally_changed, game_id, before=before, after=after)
    return {'game_id': game_id, 'success': True}


@tally_changed.connect
def on_tally_changed(game_id, before, after):
    """Reset the turn when a new vote pushes the tally over the threshold."""
    if before.prompt_card_id != after.prompt_card_id:
        current_app.logger.info(f"[downvote-skip] game={game_id} reason=prompt-changed")
        return False
    if len(after.votes) <= len(before.votes):
        return False
    return reset_turn(game_id, after.prompt_card_id, len(after.votes))


@transactional
def _reset_turn(game_id, prompt_card_id, votes):
    game = lock_game(game_id)
    turn = game.current_turn
    # A reset or a new round may have landed since the vote was counted
    if turn is None or turn.prompt_card_id != prompt_card_id:
        current_app.logger.info(f"[downvote-skip] game={game_id} reason=stale-prompt prompt={prompt_card_id}")
        return None
    players = lock_players(game.id)
    threshold = veto_threshold(len(_active_voters(players)))
    if votes < threshold:
        return None

    db.session.add(VetoedPrompt(game_id=game.id, prompt_card_id=prompt_card_id))
    return_responses(turn, players)
    prompt = redraw_prompt(game, turn, players)
    current_app.logger.info(
        f"[turn-reset] game={game.id} vetoed={prompt_card_id} votes={votes} threshold={threshold} "
        f"prompt={prompt.cid} judge={turn.judge_id}"
    )
    return {
        'prompt_text': prompt.text,
        'player_ids': [p.user_id for p in _active_voters(players)],
    }


def reset_turn(game_id, prompt_card_id, votes):
    outcome = _reset_turn(game_id, prompt_card_id, votes)
    if outcome is None:
        return False
    game = find_game(game_id=game_id)
    push.broadcast_state(game)
    push.notify(outcome['player_ids'], push.TURN_RESET, {
        'game_id': game.id,
        'title': f"Game - {game.gid}",
        'body': f"The prompt has been voted out, picking a new prompt! \"{outcome['prompt_text']}\"",
    })
    return True
