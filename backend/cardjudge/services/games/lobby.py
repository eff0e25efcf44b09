"""Game lifecycle: creating, joining, starting, leaving, kicking and waving."""
from flask import current_app

from cardjudge import db
from cardjudge.errors import (
    FailedPrecondition, GameFull, GameStarting, InvalidArgument, PermissionDenied, PlayerNotFound,
)
from cardjudge.models import (
    COMPLETED, IN_PROGRESS, RANDO_CARDRISSIAN, RANDO_CARDRISSIAN_NAME, RESPONSES, STARTING,
    WAITING_ROOM, Game, Player,
)
from cardjudge.services import push
from cardjudge.store import find_game, lock_game, lock_players, transactional
from . import catalog, deck, rotation, turns


# ============ Create ============

@transactional
def _create_game(owner_id, name, avatar_url, prizes_to_win, player_limit, card_sets,
                 pick2_enabled, draw2_pick3_enabled, rando_cardrissian):
    catalog.get_card_sets(card_sets)
    game = Game(
        owner_id=owner_id,
        prizes_to_win=prizes_to_win,
        player_limit=player_limit,
        pick2_enabled=pick2_enabled,
        draw2_pick3_enabled=draw2_pick3_enabled,
        card_sets=list(dict.fromkeys(card_sets)),
    )
    db.session.add(game)
    db.session.flush()
    db.session.add(Player(game_id=game.id, user_id=owner_id, name=name, avatar_url=avatar_url))
    if rando_cardrissian:
        db.session.add(Player(game_id=game.id, user_id=RANDO_CARDRISSIAN,
                              name=RANDO_CARDRISSIAN_NAME, is_rando_cardrissian=True))
    current_app.logger.info(f"[create] game={game.id} gid={game.gid} owner={owner_id} sets={len(game.card_sets)}")
    return game.id


def create_game(owner_id, name, avatar_url=None, prizes_to_win=None, player_limit=None,
                card_sets=None, pick2_enabled=True, draw2_pick3_enabled=True, rando_cardrissian=False):
    cfg = current_app.config
    prizes_to_win = int(prizes_to_win or cfg.get('DEFAULT_PRIZES_TO_WIN', 7))
    player_limit = int(player_limit or cfg.get('DEFAULT_PLAYER_LIMIT', 30))
    if not name:
        raise InvalidArgument('You must send a valid user name to create a game with')
    if prizes_to_win < 1:
        raise InvalidArgument('prizes_to_win must be at least 1')
    if player_limit < 2:
        raise InvalidArgument('player_limit must be at least 2')
    if not card_sets:
        raise InvalidArgument('You must pick at least one card set')

    game_id = _create_game(owner_id, name, avatar_url, prizes_to_win, player_limit, list(card_sets),
                           bool(pick2_enabled), bool(draw2_pick3_enabled), bool(rando_cardrissian))
    return find_game(game_id=game_id)


# ============ Join ============

@transactional
def _join_game(game_id, user_id, name, avatar_url):
    game = lock_game(game_id)
    if game.state == STARTING:
        raise GameStarting(game.gid)
    if game.state == COMPLETED:
        raise FailedPrecondition(f"Game {game.gid} is already over")

    players = lock_players(game.id)
    existing = next((p for p in players if p.user_id == user_id), None)
    if existing is not None and existing.is_kicked:
        raise PermissionDenied('You have been kicked from this game')
    if existing is not None and not existing.is_inactive:
        existing.name = name
        existing.avatar_url = avatar_url
        return {'joined': False, 'owner_id': game.owner_id}

    active = [p for p in players if not p.is_inactive]
    if len(active) >= game.player_limit:
        raise GameFull(game.gid)

    if existing is not None:
        player = existing
        player.is_inactive = False
        player.name = name
        player.avatar_url = avatar_url
    else:
        player = Player(game_id=game.id, user_id=user_id, name=name, avatar_url=avatar_url)
        db.session.add(player)

    if game.state == IN_PROGRESS:
        game.judge_rotation = rotation.with_player(game.judge_rotation, user_id)
        missing = current_app.config.get('HAND_SIZE', 10) - len(player.hand or [])
        if missing > 0:
            player.hand = list(player.hand or []) + deck.draw_n(game.id, RESPONSES, missing)

    current_app.logger.info(f"[join] game={game.id} player={user_id} state={game.state} players={len(active) + 1}")
    return {'joined': True, 'owner_id': game.owner_id}


def join_game(user_id, name, avatar_url=None, gid=None, game_id=None):
    if not gid and game_id is None:
        raise InvalidArgument('You must specify a valid game code')
    if not name:
        raise InvalidArgument('You must send a valid user name to join with')

    game = find_game(game_id=game_id, gid=gid)
    outcome = _join_game(game.id, user_id, name, avatar_url)
    game = find_game(game_id=game.id)
    push.broadcast_state(game)
    if outcome['joined'] and outcome['owner_id'] != user_id:
        push.notify([outcome['owner_id']], push.PLAYER_JOINED, {
            'game_id': game.id,
            'title': f"Player Joined - {game.gid}",
            'body': f"{name} has joined your game!",
        })
    return game


# ============ Start ============

@transactional
def _start_game(game_id, user_id):
    game = lock_game(game_id)
    if game.owner_id != user_id:
        raise PermissionDenied('Only the owner of a game can start it')
    if game.state != WAITING_ROOM:
        raise FailedPrecondition(f"Unable to start game {game.gid}, it is not in the waiting room")

    players = [p for p in lock_players(game.id) if not p.is_inactive]
    min_players = current_app.config.get('MIN_PLAYERS', 2)
    if len(players) < min_players:
        raise FailedPrecondition(
            "There aren't enough players in this game to start, try inviting Rando Cardrissian."
        )
    card_sets = catalog.get_card_sets(game.card_sets)
    if not card_sets:
        raise FailedPrecondition('This game was setup with an invalid number of card sets')

    game.transition_to(STARTING)
    db.session.flush()

    cfg = current_app.config
    rng = deck.get_rng()
    passes = cfg.get('SHUFFLE_PASSES', 3)
    variance = cfg.get('CUT_VARIANCE', 10)
    prompt_ids = deck.shuffle_deck(catalog.prompt_ids(card_sets), rng, passes, variance)
    response_ids = deck.shuffle_deck(catalog.response_ids(card_sets), rng, passes, variance)
    prompt_count, response_count = deck.seed_sizes(len(players), game.prizes_to_win)
    deck.seed(game.id, prompt_ids[:prompt_count], response_ids[:response_count])

    hand_size = cfg.get('HAND_SIZE', 10)
    for player in players:
        if player.is_rando_cardrissian:
            continue
        player.hand = deck.draw_n(game.id, RESPONSES, hand_size)
        player.prizes = []

    game.judge_rotation = rotation.build(players, rng)
    first_turn = turns.begin_turn(game, game.judge_rotation[0], players)
    game.transition_to(IN_PROGRESS)
    current_app.logger.info(
        f"[start] game={game.id} players={len(players)} judge={first_turn.judge_id} "
        f"prompts={len(prompt_ids[:prompt_count])} responses={len(response_ids[:response_count])}"
    )
    return {
        'judge_id': first_turn.judge_id,
        'player_ids': [p.user_id for p in players if p.is_active_human],
    }


def start_game(game_id, user_id):
    outcome = _start_game(game_id, user_id)
    game = find_game(game_id=game_id)
    push.broadcast_state(game)
    judge = next((p for p in game.players if p.user_id == outcome['judge_id']), None)
    push.notify(outcome['player_ids'], push.GAME_STARTED, {
        'game_id': game.id,
        'title': f"Game Started - {game.gid}",
        'body': f"First judge is {judge.name if judge else 'unknown'}",
        'image_url': judge.avatar_url if judge else None,
    })
    return {'game_id': game_id, 'success': True}


# ============ Leave / kick ============

def _remove_player(game, player, players):
    """Take a player out of a game's play.

    In a running game their submitted response goes back to their hand,
    they leave the judge rotation, and if they were judging the next
    player in the rotation takes over the turn. Returns the judge id to
    notify when the responses are now complete and that judge has not
    been told yet for this prompt.
    """
    player.is_inactive = True
    if game.state != IN_PROGRESS:
        return None

    turn = game.current_turn
    if turn is not None and player.user_id == turn.judge_id:
        successor = rotation.next_judge(game.judge_rotation, player.user_id)
        if successor and successor != player.user_id:
            turns.return_responses(turn, players, player_ids={successor})
            turn.judge_id = successor
            current_app.logger.info(f"[judge-handover] game={game.id} from={player.user_id} to={successor}")
    game.judge_rotation = rotation.without_player(game.judge_rotation, player.user_id)
    if turn is not None:
        turns.return_responses(turn, players, player_ids={player.user_id})

    return turns.claim_judge_notification(turn, players)


@transactional
def _leave_game(game_id, user_id):
    game = lock_game(game_id)
    if game.state == STARTING:
        raise GameStarting(game.gid)
    if game.state == COMPLETED:
        return None
    players = lock_players(game.id)
    player = next((p for p in players if p.user_id == user_id and not p.is_inactive), None)
    if player is None:
        raise PlayerNotFound(user_id, 'You are not playing in this game')
    judge_to_notify = _remove_player(game, player, players)
    current_app.logger.info(f"[leave] game={game.id} player={user_id} state={game.state}")
    return judge_to_notify


def leave_game(game_id, user_id):
    judge_to_notify = _leave_game(game_id, user_id)
    game = find_game(game_id=game_id)
    push.broadcast_state(game)
    if judge_to_notify:
        turns.notify_all_responses_in(game, judge_to_notify)
    return {'game_id': game_id, 'success': True}


@transactional
def _kick_player(game_id, owner_id, player_id):
    game = lock_game(game_id)
    if game.owner_id != owner_id:
        raise PermissionDenied('Only the owner of a game can kick a player')
    if player_id == owner_id:
        raise InvalidArgument("You can't kick yourself, leave the game instead")
    if game.state == STARTING:
        raise GameStarting(game.gid)
    if game.state == COMPLETED:
        raise FailedPrecondition(f"Game {game.gid} is already over")
    players = lock_players(game.id)
    player = next((p for p in players if p.user_id == player_id), None)
    if player is None:
        raise PlayerNotFound(player_id)
    judge_to_notify = None
    if not player.is_inactive:
        judge_to_notify = _remove_player(game, player, players)
    player.is_kicked = True
    current_app.logger.info(f"[kick] game={game.id} player={player_id} by={owner_id}")
    return judge_to_notify


def kick_player(game_id, owner_id, player_id):
    if not player_id:
        raise InvalidArgument('You must specify the player you want to kick')
    judge_to_notify = _kick_player(game_id, owner_id, player_id)
    game = find_game(game_id=game_id)
    push.broadcast_state(game)
    if judge_to_notify:
        turns.notify_all_responses_in(game, judge_to_notify)
    return {'game_id': game_id, 'success': True}


# ============ Wave ============

def wave(game_id, from_id, to_id, message=None):
    if not to_id:
        raise InvalidArgument('You must submit a valid player id')
    game = find_game(game_id=game_id)
    sender = Player.query.filter_by(game_id=game.id, user_id=from_id).first()
    if sender is None:
        raise PlayerNotFound(from_id, 'Unable to find the player who is sending the wave')
    target = Player.query.filter_by(game_id=game.id, user_id=to_id).first()
    if target is None:
        raise PlayerNotFound(to_id, 'Unable to find the player for the provided game')

    push.notify([target.user_id], push.WAVE, {
        'game_id': game.id,
        'title': f"{sender.name} waved at you - {game.gid}",
        'body': message or '👋',
        'from_id': sender.user_id,
    })
    current_app.logger.info(f"[wave] game={game.id} from={from_id} to={to_id}")
    return {'game_id': game_id, 'success': True}
