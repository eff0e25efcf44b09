"""
Transactional coordination for game state

Every multi-entity mutation (card pool draws, judge advance + turn
creation + prize award + re-deal, downvote resets, joins and leaves)
runs inside one @transactional function so partial writes are never
visible. Rows are read with SELECT ... FOR UPDATE, always the game row
first, so concurrent activations against the same game serialize.

Write conflicts surface as OperationalError (serialization failure,
deadlock, "database is locked") or IntegrityError (two inserts racing on
a unique key). The whole function is retried from the top; callers must
therefore keep transactional functions free of side effects other than
database writes.
"""
from functools import wraps

from flask import current_app
from sqlalchemy.exc import IntegrityError, OperationalError

from cardjudge import db
from cardjudge.errors import Aborted, GameNotFound, NotFound
from cardjudge.models import CardPool, Game, Player

_CONFLICTS = (OperationalError, IntegrityError)


def transactional(func):
    """
    Run func as one atomic unit: commit on success, rollback on failure.

    GameErrors and any other exception roll back and propagate untouched.
    Conflicts are retried up to TRANSACTION_RETRIES times, then reported
    to the caller as Aborted so the client can retry later.
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        attempts = max(1, int(current_app.config.get('TRANSACTION_RETRIES', 3)))
        for attempt in range(1, attempts + 1):
            try:
                result = func(*args, **kwargs)
                db.session.commit()
                return result
            except _CONFLICTS as exc:
                db.session.rollback()
                if attempt >= attempts:
                    current_app.logger.error(
                        f"[txn-failed] {func.__name__} gave up after {attempt} attempts: {exc}", exc_info=True
                    )
                    raise Aborted(f"{func.__name__} conflicted with another update, please retry") from exc
                current_app.logger.warning(f"[txn-retry] {func.__name__} attempt={attempt} conflict={exc.__class__.__name__}")
            except Exception:
                db.session.rollback()
                raise

    return wrapper


def find_game(game_id=None, gid=None):
    """Unlocked lookup by id or invite code, for validation before a transaction."""
    if game_id is not None:
        game = Game.query.filter_by(id=game_id).first()
    elif gid:
        game = Game.query.filter_by(gid=gid.strip().upper()).first()
    else:
        game = None
    if game is None:
        raise GameNotFound(game_id if game_id is not None else gid)
    return game


def lock_game(game_id):
    """
    Lock a game row for the rest of the transaction.

    populate_existing makes sure a game already sitting in the session is
    refreshed with the locked row instead of a stale earlier read.
    """
    game = (
        Game.query.filter_by(id=game_id)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if game is None:
        raise GameNotFound(game_id)
    return game


def lock_players(game_id):
    """Lock every player record of a game, in join order."""
    return (
        Player.query.filter_by(game_id=game_id)
        .order_by(Player.id)
        .with_for_update()
        .populate_existing()
        .all()
    )


def lock_pool(game_id, kind):
    pool = (
        CardPool.query.filter_by(game_id=game_id, kind=kind)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if pool is None:
        raise NotFound(f"Game {game_id} has no {kind} pool, has it been started?")
    return pool
