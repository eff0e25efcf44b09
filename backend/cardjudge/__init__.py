from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import json
import random
import click
from config import Config

db = SQLAlchemy()
bcrypt = Bcrypt()
login_manager = LoginManager()
migrate = Migrate()
allowed_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:5174",
    "http://127.0.0.1:5174",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Shuffling and dealing all draw from this source so a seeded config replays a game
    flask_app.extensions['cardjudge.rng'] = random.Random(flask_app.config.get('RANDOM_SEED'))

    from cardjudge.errors import GameError, Unauthenticated

    @flask_app.errorhandler(GameError)
    def handle_game_error(exc):
        return jsonify(exc.to_dict()), exc.status

    from cardjudge.main import main
    flask_app.register_blueprint(main)

    from cardjudge.api.games import games
    flask_app.register_blueprint(games, url_prefix='/api/games')

    # Event subscribers (downvote monitor, profile fan-out) connect on import
    import cardjudge.services.games.downvotes  # noqa: F401
    import cardjudge.services.games.profiles  # noqa: F401

    from cardjudge.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    from cardjudge.models import User

    @login_manager.user_loader
    def load_user(user_id):
        return User.query.filter_by(id=int(user_id)).first()

    @login_manager.unauthorized_handler
    def unauthorized():
        raise Unauthenticated('You must be signed-in to perform this action')

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        from cardjudge.services.games.catalog import seed_card_set
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            users = ['testuser1', 'testuser2', 'testuser3']
            for u in users:
                user = User(username=u, name=u)
                user.set_password('password')
                db.session.add(user)

            seed_card_set(
                'Starter',
                prompts=[
                    {'text': 'What ended my last relationship? ____.'},
                    {'text': 'Next season on reality TV: ____.'},
                    {'text': '____ + ____ = a perfect Tuesday.', 'special': 'PICK 2'},
                    {'text': 'Step 1: ____. Step 2: ____. Step 3: ____.', 'special': 'DRAW 2, PICK 3'},
                ],
                responses=['A disappointing birthday party.', 'Tax fraud.', 'Free samples.',
                           'An awkward silence.', 'Grandma.', 'Bees?'],
            )
            db.session.commit()
            click.echo('Database has been reset and seeded!')

    @click.command('seed-cards')
    @click.argument('path', type=click.Path(exists=True, dir_okay=False))
    def seed_cards_command(path):
        """Loads a card set from a JSON file: {"name", "prompts", "responses"}."""
        from cardjudge.services.games.catalog import seed_card_set
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        with flask_app.app_context():
            card_set = seed_card_set(data['name'], data.get('prompts', []), data.get('responses', []))
            db.session.commit()
            click.echo(f"Seeded card set {card_set.name} ({card_set.prompt_count} prompts, "
                       f"{card_set.response_count} responses)")

    flask_app.cli.add_command(db_reset_command)
    flask_app.cli.add_command(seed_cards_command)

    return flask_app
