from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from cardjudge.errors import InvalidArgument, PermissionDenied
from cardjudge.models import PROMPTS, RESPONSES
from cardjudge.services.games import deck, downvotes, lobby, turns
from cardjudge.services.games.catalog import get_response_cards
from cardjudge.store import find_game


games = Blueprint('games', __name__)


def _json_body():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidArgument('Expected a JSON object')
    return data


def _int_or_none(value, field):
    if value is None or value == '':
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidArgument(f"{field} must be a number")


def _game_payload(game, viewer_id):
    """Game state as seen by one player: only their own hand is revealed."""
    payload = game.to_dict()
    players = []
    for player in game.players:
        own = player.user_id == viewer_id
        data = player.to_dict(include_hand=own)
        if own:
            data['hand'] = [c.to_dict() for c in get_response_cards(data['hand'])]
        players.append(data)
    payload['players'] = players
    payload['pool'] = {
        PROMPTS: deck.remaining(game.id, PROMPTS),
        RESPONSES: deck.remaining(game.id, RESPONSES),
    }
    return payload


def _require_player(game, user_id):
    if not any(p.user_id == user_id for p in game.players):
        raise PermissionDenied('You are not a player in this game')


@games.route('/create', methods=['POST'])
@login_required
def create_game():
    data = _json_body()
    card_sets = data.get('card_sets')
    if card_sets is not None and not isinstance(card_sets, list):
        raise InvalidArgument('card_sets must be a list of card set ids')
    game = lobby.create_game(
        owner_id=current_user.player_id,
        name=data.get('name') or current_user.name or current_user.username,
        avatar_url=data.get('avatar_url', current_user.avatar_url),
        prizes_to_win=_int_or_none(data.get('prizes_to_win'), 'prizes_to_win'),
        player_limit=_int_or_none(data.get('player_limit'), 'player_limit'),
        card_sets=card_sets,
        pick2_enabled=data.get('pick2_enabled', True),
        draw2_pick3_enabled=data.get('draw2_pick3_enabled', True),
        rando_cardrissian=data.get('rando_cardrissian', False),
    )
    return jsonify(_game_payload(game, current_user.player_id)), 201


@games.route('/join', methods=['POST'])
@login_required
def join_game():
    data = _json_body()
    game = lobby.join_game(
        user_id=current_user.player_id,
        name=data.get('name') or current_user.name or current_user.username,
        avatar_url=data.get('avatar_url', current_user.avatar_url),
        gid=data.get('gid'),
        game_id=_int_or_none(data.get('game_id'), 'game_id'),
    )
    return jsonify(_game_payload(game, current_user.player_id))


@games.route('/<int:game_id>/state', methods=['GET'])
@login_required
def get_game_state(game_id):
    game = find_game(game_id=game_id)
    _require_player(game, current_user.player_id)
    return jsonify(_game_payload(game, current_user.player_id))


@games.route('/<int:game_id>/start', methods=['POST'])
@login_required
def start_game(game_id):
    return jsonify(lobby.start_game(game_id, current_user.player_id))


@games.route('/<int:game_id>/responses', methods=['POST'])
@login_required
def submit_responses(game_id):
    data = _json_body()
    card_ids = data.get('card_ids')
    if not isinstance(card_ids, list) or not all(isinstance(c, str) for c in card_ids):
        raise InvalidArgument('You must submit valid responses')
    return jsonify(turns.submit_responses(game_id, current_user.player_id, card_ids))


@games.route('/<int:game_id>/winner', methods=['POST'])
@login_required
def pick_winner(game_id):
    data = _json_body()
    return jsonify(turns.pick_winner(game_id, current_user.player_id, data.get('player_id')))


@games.route('/<int:game_id>/redeal', methods=['POST'])
@login_required
def re_deal_hand(game_id):
    return jsonify(turns.re_deal_hand(game_id, current_user.player_id))


@games.route('/<int:game_id>/leave', methods=['POST'])
@login_required
def leave_game(game_id):
    return jsonify(lobby.leave_game(game_id, current_user.player_id))


@games.route('/<int:game_id>/kick', methods=['POST'])
@login_required
def kick_player(game_id):
    data = _json_body()
    return jsonify(lobby.kick_player(game_id, current_user.player_id, data.get('player_id')))


@games.route('/<int:game_id>/wave', methods=['POST'])
@login_required
def wave(game_id):
    data = _json_body()
    return jsonify(lobby.wave(game_id, current_user.player_id, data.get('player_id'), data.get('message')))


@games.route('/<int:game_id>/downvote', methods=['POST'])
@login_required
def downvote_prompt(game_id):
    data = _json_body()
    return jsonify(downvotes.cast_downvote(game_id, current_user.player_id, data.get('prompt_card_id')))
