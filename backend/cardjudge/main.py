from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required, login_user, logout_user

from cardjudge import db
from cardjudge.errors import InvalidArgument, Unauthenticated
from cardjudge.events import dispatch, profile_changed
from cardjudge.models import User

main = Blueprint('main', __name__)


@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the card judge game server!'})


@main.route('/register', methods=['POST'])
def register():
    data = request.get_json(silent=True) or {}
    username = (data.get('username') or '').strip()
    password = data.get('password') or ''
    if not username or not password:
        raise InvalidArgument('Missing username or password')
    if User.query.filter_by(username=username).first():
        raise InvalidArgument('Username already exists')

    user = User(username=username, name=data.get('name') or username, avatar_url=data.get('avatar_url'))
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    login_user(user)
    current_app.logger.info(f"[register] user={user.id}")
    return jsonify({'success': True, 'user': user.to_dict()}), 201


@main.route('/login', methods=['POST'])
def login():
    data = request.get_json(silent=True) or {}
    user = User.query.filter_by(username=data.get('username')).first()
    if user is None or not user.check_password(data.get('password') or ''):
        raise Unauthenticated('Invalid credentials')
    login_user(user)
    return jsonify({'success': True, 'user': user.to_dict()})


@main.route('/logout', methods=['POST'])
@login_required
def logout():
    logout_user()
    return jsonify({'success': True})


@main.route('/profile', methods=['PATCH'])
@login_required
def update_profile():
    data = request.get_json(silent=True) or {}
    if 'name' not in data and 'avatar_url' not in data:
        raise InvalidArgument('Nothing to update')
    if 'name' in data and not data['name']:
        raise InvalidArgument('Name can not be empty')

    user = current_user._get_current_object()
    user.name = data.get('name', user.name)
    user.avatar_url = data.get('avatar_url', user.avatar_url)
    db.session.commit()
    dispatch(profile_changed, user.player_id, name=user.name, avatar_url=user.avatar_url)
    return jsonify({'success': True, 'user': user.to_dict()})
