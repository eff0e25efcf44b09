from cardjudge import db, bcrypt
from cardjudge.errors import InvalidStateTransition
from flask_login import UserMixin
from datetime import datetime, timezone
import hashlib
import string
import random

# Sentinel player id for the automated bot player
RANDO_CARDRISSIAN = 'rando-cardrissian'
RANDO_CARDRISSIAN_NAME = 'Rando Cardrissian'

PICK_2 = 'PICK 2'
DRAW_2_PICK_3 = 'DRAW 2, PICK 3'

WAITING_ROOM = 'waiting_room'
STARTING = 'starting'
IN_PROGRESS = 'in_progress'
COMPLETED = 'completed'
# A game only ever moves forward, one step at a time
_NEXT_STATE = {
    WAITING_ROOM: STARTING,
    STARTING: IN_PROGRESS,
    IN_PROGRESS: COMPLETED,
}

PROMPTS = 'prompts'
RESPONSES = 'responses'


def utcnow():
    return datetime.now(timezone.utc)


def get_special(text):
    """Normalize a prompt's special marker to PICK_2, DRAW_2_PICK_3 or None."""
    if text:
        upper = text.strip().upper()
        if upper == PICK_2:
            return PICK_2
        if upper in ('DRAW 2 PICK 3', DRAW_2_PICK_3):
            return DRAW_2_PICK_3
    return None


def card_id(set_id, text):
    """Content-derived card id, stable across reseeds of the same set."""
    return hashlib.sha256(f"{set_id}:{text}".encode('utf-8')).hexdigest()


class User(UserMixin, db.Model):
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)
    name = db.Column(db.String(64), nullable=True)
    avatar_url = db.Column(db.String(512), nullable=True)

    @property
    def player_id(self):
        return str(self.id)

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        return bcrypt.check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.player_id,
            'username': self.username,
            'name': self.name,
            'avatar_url': self.avatar_url,
        }


class CardSet(db.Model):
    __tablename__ = 'card_set'
    id = db.Column(db.String(64), primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    prompts = db.relationship('PromptCard', back_populates='card_set', lazy='dynamic')
    responses = db.relationship('ResponseCard', back_populates='card_set', lazy='dynamic')

    @property
    def prompt_count(self):
        return self.prompts.count()

    @property
    def response_count(self):
        return self.responses.count()

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'prompts': self.prompt_count,
            'responses': self.response_count,
        }


class PromptCard(db.Model):
    __tablename__ = 'prompt_card'
    cid = db.Column(db.String(64), primary_key=True)
    text = db.Column(db.Text, nullable=False)
    special = db.Column(db.String(32), nullable=True)
    set_id = db.Column(db.String(64), db.ForeignKey('card_set.id'), nullable=False, index=True)
    source = db.Column(db.String(128), nullable=True)
    card_set = db.relationship('CardSet', back_populates='prompts')

    def to_dict(self):
        return {
            'cid': self.cid,
            'text': self.text,
            'special': self.special,
            'set': self.set_id,
            'source': self.source,
        }


class ResponseCard(db.Model):
    __tablename__ = 'response_card'
    cid = db.Column(db.String(64), primary_key=True)
    text = db.Column(db.Text, nullable=False)
    set_id = db.Column(db.String(64), db.ForeignKey('card_set.id'), nullable=False, index=True)
    source = db.Column(db.String(128), nullable=True)
    card_set = db.relationship('CardSet', back_populates='responses')

    def to_dict(self):
        return {
            'cid': self.cid,
            'text': self.text,
            'set': self.set_id,
            'source': self.source,
        }


def generate_game_code(length=5):
    """Generate a unique, short game code."""
    while True:
        code = ''.join(random.choices(string.ascii_uppercase + string.digits, k=length))
        if not Game.query.filter_by(gid=code).first():
            return code


class Game(db.Model):
    __tablename__ = 'game'
    id = db.Column(db.Integer, primary_key=True)
    gid = db.Column(db.String(5), unique=True, index=True)
    owner_id = db.Column(db.String(64), nullable=False)
    state = db.Column(db.String(32), nullable=False, default=WAITING_ROOM)
    round = db.Column(db.Integer, nullable=False, default=0)
    prizes_to_win = db.Column(db.Integer, nullable=False, default=7)
    player_limit = db.Column(db.Integer, nullable=False, default=30)
    pick2_enabled = db.Column(db.Boolean, nullable=False, default=True)
    draw2_pick3_enabled = db.Column(db.Boolean, nullable=False, default=True)
    judge_rotation = db.Column(db.JSON, nullable=False, default=list)  # player ids, never the bot
    card_sets = db.Column(db.JSON, nullable=False, default=list)
    winner_id = db.Column(db.String(64), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    current_turn_id = db.Column(db.Integer, db.ForeignKey('turn.id', name='fk_game_current_turn_id', use_alter=True), nullable=True)

    players = db.relationship('Player', back_populates='game', order_by='Player.id')
    turns = db.relationship('Turn', foreign_keys='Turn.game_id', back_populates='game', lazy='dynamic')
    current_turn = db.relationship('Turn', foreign_keys=[current_turn_id], post_update=True)

    def __init__(self, **kwargs):
        super(Game, self).__init__(**kwargs)
        if not self.gid:
            self.gid = generate_game_code()
        if self.state is None:
            self.state = WAITING_ROOM
        if self.round is None:
            self.round = 0
        if self.judge_rotation is None:
            self.judge_rotation = []
        if self.card_sets is None:
            self.card_sets = []

    def transition_to(self, state):
        if _NEXT_STATE.get(self.state) != state:
            raise InvalidStateTransition(self.state, state)
        self.state = state

    def to_dict(self):
        return {
            'id': self.id,
            'gid': self.gid,
            'owner_id': self.owner_id,
            'state': self.state,
            'round': self.round,
            'prizes_to_win': self.prizes_to_win,
            'player_limit': self.player_limit,
            'pick2_enabled': self.pick2_enabled,
            'draw2_pick3_enabled': self.draw2_pick3_enabled,
            'judge_rotation': list(self.judge_rotation or []),
            'card_sets': list(self.card_sets or []),
            'winner_id': self.winner_id,
            'turn': self.current_turn.to_dict() if self.current_turn else None,
        }


class Player(db.Model):
    __tablename__ = 'player'
    __table_args__ = (db.UniqueConstraint('game_id', 'user_id', name='uq_player_game_user'),)
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id'), nullable=False, index=True)
    user_id = db.Column(db.String(64), nullable=False, index=True)
    name = db.Column(db.String(64), nullable=False)
    avatar_url = db.Column(db.String(512), nullable=True)
    is_rando_cardrissian = db.Column(db.Boolean, default=False, nullable=False)
    is_inactive = db.Column(db.Boolean, default=False, nullable=False)
    is_kicked = db.Column(db.Boolean, default=False, nullable=False)
    hand = db.Column(db.JSON, nullable=False, default=list)  # response card ids
    prizes = db.Column(db.JSON, nullable=False, default=list)  # prompt card ids
    game = db.relationship('Game', back_populates='players')

    def __init__(self, **kwargs):
        super(Player, self).__init__(**kwargs)
        if self.hand is None:
            self.hand = []
        if self.prizes is None:
            self.prizes = []
        if self.is_rando_cardrissian is None:
            self.is_rando_cardrissian = False
        if self.is_inactive is None:
            self.is_inactive = False
        if self.is_kicked is None:
            self.is_kicked = False

    @property
    def is_active_human(self):
        return not self.is_inactive and not self.is_rando_cardrissian

    def to_dict(self, include_hand=False):
        data = {
            'id': self.user_id,
            'name': self.name,
            'avatar_url': self.avatar_url,
            'is_rando_cardrissian': self.is_rando_cardrissian,
            'is_inactive': self.is_inactive,
            'prizes': list(self.prizes or []),
            'hand_size': len(self.hand or []),
        }
        if include_hand:
            data['hand'] = list(self.hand or [])
        return data


class Turn(db.Model):
    __tablename__ = 'turn'
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id'), nullable=False, index=True)
    judge_id = db.Column(db.String(64), nullable=False)
    prompt_card_id = db.Column(db.String(64), db.ForeignKey('prompt_card.cid'), nullable=False)
    responses = db.Column(db.JSON, nullable=False, default=dict)  # player id -> response card ids
    downvotes = db.Column(db.JSON, nullable=False, default=list)  # voter ids
    # Winner record of the turn judged just before this one, if any
    winner = db.Column(db.JSON, nullable=True)
    # Set once this turn has been judged
    winner_id = db.Column(db.String(64), nullable=True)
    # Judge already told that every response is in for the current prompt
    notified_judge_id = db.Column(db.String(64), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    game = db.relationship('Game', foreign_keys=[game_id], back_populates='turns')
    prompt_card = db.relationship('PromptCard')

    def __init__(self, **kwargs):
        super(Turn, self).__init__(**kwargs)
        if self.responses is None:
            self.responses = {}
        if self.downvotes is None:
            self.downvotes = []

    @property
    def special(self):
        return get_special(self.prompt_card.special) if self.prompt_card else None

    def to_dict(self):
        responses = dict(self.responses or {})
        cids = [cid for cards in responses.values() for cid in cards]
        cards = {c.cid: c.to_dict() for c in ResponseCard.query.filter(ResponseCard.cid.in_(cids)).all()} if cids else {}
        return {
            'judge_id': self.judge_id,
            'prompt_card': self.prompt_card.to_dict() if self.prompt_card else None,
            'responses': {pid: [cards.get(cid, {'cid': cid}) for cid in ids] for pid, ids in responses.items()},
            'downvotes': list(self.downvotes or []),
            'winner': self.winner,
        }


class CardPool(db.Model):
    __tablename__ = 'card_pool'
    __table_args__ = (db.UniqueConstraint('game_id', 'kind', name='uq_card_pool_game_kind'),)
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id'), nullable=False, index=True)
    kind = db.Column(db.String(16), nullable=False)  # PROMPTS or RESPONSES
    cards = db.Column(db.JSON, nullable=False, default=list)


class VetoedPrompt(db.Model):
    __tablename__ = 'vetoed_prompt'
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id'), nullable=False, index=True)
    prompt_card_id = db.Column(db.String(64), db.ForeignKey('prompt_card.cid'), nullable=False)
    vetoed_at = db.Column(db.DateTime(timezone=True), default=utcnow)
