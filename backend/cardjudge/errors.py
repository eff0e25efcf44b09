"""
Game errors

Every rule violation raised by the game services is a GameError. The
API layer renders them as {"error": message, "code": code} with the
matching HTTP status, so services never deal with responses.
"""


class GameError(Exception):
    """Base class for all game errors"""
    code = 'internal'
    status = 500

    def __init__(self, message):
        self.message = message
        super().__init__(message)

    def to_dict(self):
        return {'error': self.message, 'code': self.code}


class Unauthenticated(GameError):
    code = 'unauthenticated'
    status = 401


class InvalidArgument(GameError):
    code = 'invalid-argument'
    status = 400


class NotFound(GameError):
    code = 'not-found'
    status = 404


class FailedPrecondition(GameError):
    code = 'failed-precondition'
    status = 400


class PermissionDenied(GameError):
    code = 'permission-denied'
    status = 403


class Unavailable(GameError):
    code = 'unavailable'
    status = 503


class Cancelled(GameError):
    code = 'cancelled'
    status = 499


class Aborted(GameError):
    """A transaction kept conflicting with concurrent writers"""
    code = 'aborted'
    status = 409


# ============ Lookups ============

class GameNotFound(NotFound):
    def __init__(self, game_ref):
        self.game_ref = game_ref
        super().__init__(f"Unable to find a game for {game_ref}")


class PlayerNotFound(NotFound):
    def __init__(self, player_id, message=None):
        self.player_id = player_id
        super().__init__(message or f"Unable to find player {player_id} in this game")


class CardSetNotFound(NotFound):
    def __init__(self, set_ids):
        self.set_ids = list(set_ids)
        super().__init__(f"Unknown card sets: {', '.join(self.set_ids)}")


# ============ Game state ============

class InvalidStateTransition(FailedPrecondition):
    def __init__(self, current, requested):
        self.current = current
        self.requested = requested
        super().__init__(f"A game can't move from {current} to {requested}")


class PoolExhausted(FailedPrecondition):
    def __init__(self, game_id, kind):
        self.game_id = game_id
        self.kind = kind
        super().__init__(f"The {kind} pool for game {game_id} has run out of cards")


class GameFull(Unavailable):
    def __init__(self, gid):
        super().__init__(f"This Game, {gid}, is already full. Cannot join.")


class GameStarting(Unavailable):
    def __init__(self, gid):
        super().__init__(f"Game {gid} is starting, try again in a moment")
