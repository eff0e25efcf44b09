"""Keeps the player records of a user in line with their profile."""
from flask import current_app

from cardjudge.events import profile_changed
from cardjudge.models import Player
from cardjudge.store import transactional


@transactional
def _update_players(user_id, name, avatar_url):
    players = Player.query.filter_by(user_id=user_id).with_for_update().all()
    changed = 0
    for player in players:
        if player.name == name and player.avatar_url == avatar_url:
            continue
        player.name = name
        player.avatar_url = avatar_url
        changed += 1
    return changed


@profile_changed.connect
def on_profile_changed(user_id, name, avatar_url):
    changed = _update_players(str(user_id), name, avatar_url)
    current_app.logger.info(f"[profile-sync] user={user_id} players={changed}")
    return changed
