from cardjudge import socketio

from conftest import create_game, join, register


def test_socket_connect_and_join(sio_client):
    # Ensure we are connected to /ws
    if not sio_client.is_connected('/ws'):
        sio_client.connect(namespace='/ws')
    assert sio_client.is_connected('/ws')

    received = sio_client.get_received('/ws')
    connected = [pkt for pkt in received if pkt['name'] == 'connected']
    assert connected and connected[0]['args'][0]['player_id'] is None

    # Join a room and expect a joined ack
    sio_client.emit('join_game', {'game_id': 7}, namespace='/ws')
    received = sio_client.get_received('/ws')
    assert any(pkt['name'] == 'joined' and pkt['args'][0]['room'] == 'game:7' for pkt in received)

    sio_client.emit('join_game', {}, namespace='/ws')
    received = sio_client.get_received('/ws')
    assert any(pkt['name'] == 'error' for pkt in received)


def test_ping(sio_client):
    sio_client.get_received('/ws')
    sio_client.emit('ping', {'n': 1}, namespace='/ws')
    received = sio_client.get_received('/ws')
    assert any(pkt['name'] == 'pong' and pkt['args'][0] == {'n': 1} for pkt in received)


def test_game_room_gets_state_updates(flask_app, sio_client, basic_set):
    alice = register(flask_app, 'alice')
    bob = register(flask_app, 'bob')
    game = create_game(alice, [basic_set])
    sio_client.emit('join_game', {'game_id': game['id']}, namespace='/ws')
    sio_client.get_received('/ws')  # flush

    join(bob, game['gid'])
    updates = [pkt for pkt in sio_client.get_received('/ws') if pkt['name'] == 'state_update']
    assert updates and updates[0]['args'][0]['game_id'] == game['id']

    sio_client.emit('leave_game', {'game_id': game['id']}, namespace='/ws')
    sio_client.get_received('/ws')
    bob.post(f"/api/games/{game['id']}/leave")
    assert not any(pkt['name'] == 'state_update' for pkt in sio_client.get_received('/ws'))


def test_signed_in_socket_gets_pushes(flask_app, basic_set):
    alice = register(flask_app, 'alice')
    bob = register(flask_app, 'bob')
    game = create_game(alice, [basic_set])
    join(bob, game['gid'])

    bob_socket = socketio.test_client(flask_app, flask_test_client=bob, namespace='/ws')
    try:
        connected = [pkt for pkt in bob_socket.get_received('/ws') if pkt['name'] == 'connected']
        assert connected[0]['args'][0]['player_id'] == bob.player_id

        res = alice.post(f"/api/games/{game['id']}/wave", json={'player_id': bob.player_id})
        assert res.status_code == 200
        pushed = [pkt['args'][0] for pkt in bob_socket.get_received('/ws') if pkt['name'] == 'push']
        assert len(pushed) == 1
        assert pushed[0]['kind'] == 'wave'
        assert pushed[0]['from_id'] == alice.player_id
    finally:
        bob_socket.disconnect(namespace='/ws')
