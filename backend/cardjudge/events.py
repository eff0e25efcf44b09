"""Change notifications between game services.

Some reactions don't belong to the command that caused them: a new
downvote may reset the turn, a profile edit must reach every player
record of that user. The command publishes a signal after its
transaction commits; subscribers connect with `@signal.connect`.
"""
from blinker import Namespace
from flask import current_app

from cardjudge import socketio

_signals = Namespace()

# sender: game id; kwargs: before, after (TallySnapshot)
tally_changed = _signals.signal('tally-changed')
# sender: user id; kwargs: name, avatar_url
profile_changed = _signals.signal('profile-changed')


def dispatch(signal, sender, **kwargs):
    """Publish a signal outside the caller's request.

    Runs subscribers in a background task; in TESTING they run inline so
    tests see their effects deterministically.
    """
    app = current_app._get_current_object()
    if app.config.get('TESTING') and not app.config.get('ASYNC_TRIGGERS_IN_TESTS'):
        _send(app, signal, sender, kwargs)
        return
    socketio.start_background_task(_deliver, app, signal, sender, kwargs)


def _deliver(app, signal, sender, kwargs):
    with app.app_context():
        _send(app, signal, sender, kwargs)


def _send(app, signal, sender, kwargs):
    try:
        signal.send(sender, **kwargs)
    except Exception:
        app.logger.exception(f"[trigger-failed] signal={signal.name} sender={sender}")
