import os
import sys
import pytest

# Ensure the backend root (containing the `cardjudge` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from cardjudge import create_app, db, socketio
from cardjudge.services import push


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    WTF_CSRF_ENABLED = False
    BCRYPT_LOG_ROUNDS = 4
    RANDOM_SEED = 1234


@pytest.fixture()
def flask_app():
    # Requests push their own app context; keeping one open here would
    # share `g` (and the signed-in user) between test clients.
    application = create_app(TestConfig)
    with application.app_context():
        import cardjudge.models  # noqa: F401
        db.create_all()
    yield application
    with application.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass


@pytest.fixture()
def pushes(monkeypatch):
    """Records every push as (player_id, message) instead of emitting it."""
    sent = []
    monkeypatch.setattr(push, 'deliver', lambda player_id, message: sent.append((player_id, message)))
    return sent


def pushes_of(sent, kind):
    return [(pid, msg) for pid, msg in sent if msg['kind'] == kind]


# ---- Players ----

def register(flask_app, username, name=None):
    """A test client signed in as a freshly registered user."""
    player = flask_app.test_client()
    res = player.post('/register', json={
        'username': username,
        'password': 'password',
        'name': name or username.title(),
    })
    assert res.status_code == 201, res.get_json()
    player.player_id = res.get_json()['user']['id']
    player.username = username
    return player


@pytest.fixture()
def make_players(flask_app):
    def _make(count, prefix='player'):
        return [register(flask_app, f"{prefix}{i}") for i in range(1, count + 1)]
    return _make


# ---- Cards ----

def build_prompts(count, special=None, prefix='Prompt'):
    return [{'text': f"{prefix} {i}: ____.", 'special': special} for i in range(count)]


def build_responses(count, prefix='Response'):
    return [f"{prefix} {i}." for i in range(count)]


@pytest.fixture()
def seed_cards(flask_app):
    from cardjudge.services.games.catalog import seed_card_set

    def _seed(name='Basics', prompts=None, responses=None):
        with flask_app.app_context():
            card_set = seed_card_set(
                name,
                build_prompts(40) if prompts is None else prompts,
                build_responses(300) if responses is None else responses,
            )
            db.session.commit()
            return card_set.id
    return _seed


@pytest.fixture()
def basic_set(seed_cards):
    return seed_cards()


# ---- Games ----

def create_game(owner, card_sets, **options):
    res = owner.post('/api/games/create', json={'card_sets': card_sets, **options})
    assert res.status_code == 201, res.get_json()
    return res.get_json()


def join(player, gid):
    res = player.post('/api/games/join', json={'gid': gid})
    assert res.status_code == 200, res.get_json()
    return res.get_json()


def state(player, game_id):
    res = player.get(f'/api/games/{game_id}/state')
    assert res.status_code == 200, res.get_json()
    return res.get_json()


def start_game(players, card_sets, **options):
    """Owner (first player) creates the game, the rest join, then it starts."""
    owner = players[0]
    game = create_game(owner, card_sets, **options)
    for player in players[1:]:
        join(player, game['gid'])
    res = owner.post(f"/api/games/{game['id']}/start")
    assert res.status_code == 200, res.get_json()
    return game['id']


def my_hand(player, game_id):
    me = next(p for p in state(player, game_id)['players'] if p['id'] == player.player_id)
    return [c['cid'] for c in me['hand']]


def current_judge(players, game_id):
    judge_id = state(players[0], game_id)['turn']['judge_id']
    return next(p for p in players if p.player_id == judge_id)


def submit(player, game_id, count=1):
    cards = my_hand(player, game_id)[:count]
    res = player.post(f'/api/games/{game_id}/responses', json={'card_ids': cards})
    assert res.status_code == 200, res.get_json()
    return cards


def play_turn(players, game_id, winner=None, count=1):
    """Every non-judge answers, then the judge picks `winner` (or the first answer)."""
    judge = current_judge(players, game_id)
    answering = [p for p in players if p is not judge]
    for player in answering:
        submit(player, game_id, count)
    winner = winner or answering[0]
    res = judge.post(f'/api/games/{game_id}/winner', json={'player_id': winner.player_id})
    assert res.status_code == 200, res.get_json()
    return judge, winner
