from conftest import (
    create_game, current_judge, join, my_hand, play_turn, pushes_of, register, start_game, state, submit,
)


def test_owner_is_told_when_someone_joins(flask_app, basic_set, pushes):
    alice = register(flask_app, 'alice')
    bob = register(flask_app, 'bob')
    game = create_game(alice, [basic_set])
    join(bob, game['gid'])
    joined = pushes_of(pushes, 'player-joined')
    assert [pid for pid, _ in joined] == [alice.player_id]
    assert joined[0][1]['body'] == 'Bob has joined your game!'
    assert joined[0][1]['title'] == f"Player Joined - {game['gid']}"


def test_leave_and_rejoin_waiting_room(flask_app, basic_set):
    alice = register(flask_app, 'alice')
    bob = register(flask_app, 'bob')
    game = create_game(alice, [basic_set])
    join(bob, game['gid'])

    res = bob.post(f"/api/games/{game['id']}/leave")
    assert res.status_code == 200
    players = {p['id']: p for p in state(alice, game['id'])['players']}
    assert players[bob.player_id]['is_inactive'] is True
    # Leaving twice finds nobody to remove
    assert bob.post(f"/api/games/{game['id']}/leave").status_code == 404

    join(bob, game['gid'])
    players = {p['id']: p for p in state(alice, game['id'])['players']}
    assert players[bob.player_id]['is_inactive'] is False
    assert len(players) == 2


def test_leaving_returns_a_submitted_response(make_players, basic_set, pushes):
    players = make_players(4)
    game_id = start_game(players, [basic_set])
    judge = current_judge(players, game_id)
    answering = [p for p in players if p is not judge]
    submit(answering[0], game_id)
    submit(answering[1], game_id)
    leaver = answering[2]
    submit(leaver, game_id)
    assert len(pushes_of(pushes, 'all-responses')) == 1

    res = leaver.post(f'/api/games/{game_id}/leave')
    assert res.status_code == 200
    data = state(players[0], game_id)
    assert leaver.player_id not in data['judge_rotation']
    assert leaver.player_id not in data['turn']['responses']
    me = next(p for p in data['players'] if p['id'] == leaver.player_id)
    assert me['is_inactive'] is True
    assert me['hand_size'] == 10
    # Still complete, so no second notification
    assert len(pushes_of(pushes, 'all-responses')) == 1


def test_leaving_can_complete_the_responses(make_players, basic_set, pushes):
    players = make_players(4)
    game_id = start_game(players, [basic_set])
    judge = current_judge(players, game_id)
    answering = [p for p in players if p is not judge]
    submit(answering[0], game_id)
    submit(answering[1], game_id)
    assert pushes_of(pushes, 'all-responses') == []

    assert answering[2].post(f'/api/games/{game_id}/leave').status_code == 200
    assert [pid for pid, _ in pushes_of(pushes, 'all-responses')] == [judge.player_id]


def test_kicking_can_complete_the_responses(make_players, basic_set, pushes):
    players = make_players(4)
    game_id = start_game(players, [basic_set], prizes_to_win=10)
    owner = players[0]
    judge = current_judge(players, game_id)
    answering = [p for p in players if p is not judge]
    target = next(p for p in answering if p is not owner)
    for player in answering:
        if player is not target:
            submit(player, game_id)
    assert pushes_of(pushes, 'all-responses') == []

    res = owner.post(f'/api/games/{game_id}/kick', json={'player_id': target.player_id})
    assert res.status_code == 200
    assert [pid for pid, _ in pushes_of(pushes, 'all-responses')] == [judge.player_id]


def test_judge_leaving_hands_over_the_turn(make_players, basic_set):
    players = make_players(4)
    game_id = start_game(players, [basic_set])
    data = state(players[0], game_id)
    rotation = data['judge_rotation']
    prompt_id = data['turn']['prompt_card']['cid']
    judge = next(p for p in players if p.player_id == rotation[0])
    successor = next(p for p in players if p.player_id == rotation[1])
    submit(successor, game_id)

    assert judge.post(f'/api/games/{game_id}/leave').status_code == 200
    data = state(players[0], game_id)
    assert data['turn']['judge_id'] == successor.player_id
    assert data['turn']['prompt_card']['cid'] == prompt_id
    assert data['judge_rotation'] == rotation[1:]
    assert successor.player_id not in data['turn']['responses']
    assert len(my_hand(successor, game_id)) == 10

    # The new judge can finish the turn
    play_turn([p for p in players if p is not judge], game_id)
    assert state(players[0], game_id)['round'] == 1


def test_joining_a_running_game(flask_app, make_players, basic_set):
    players = make_players(3)
    game_id = start_game(players, [basic_set], prizes_to_win=10)
    gid = state(players[0], game_id)['gid']
    late = register(flask_app, 'late')
    join(late, gid)

    data = state(late, game_id)
    assert data['judge_rotation'][-1] == late.player_id
    assert len(my_hand(late, game_id)) == 10

    # The newcomer answers right away
    everyone = players + [late]
    play_turn(everyone, game_id)
    assert state(late, game_id)['round'] == 1


def test_late_answer_does_not_notify_the_judge_twice(flask_app, make_players, basic_set, pushes):
    players = make_players(3)
    game_id = start_game(players, [basic_set], prizes_to_win=10)
    judge = current_judge(players, game_id)
    for player in players:
        if player is not judge:
            submit(player, game_id)
    assert len(pushes_of(pushes, 'all-responses')) == 1

    late = register(flask_app, 'late')
    join(late, state(players[0], game_id)['gid'])
    submit(late, game_id)
    assert len(state(late, game_id)['turn']['responses']) == 3
    assert len(pushes_of(pushes, 'all-responses')) == 1


def test_leave_and_rejoin_running_game(make_players, basic_set):
    players = make_players(3)
    game_id = start_game(players, [basic_set], prizes_to_win=10)
    data = state(players[0], game_id)
    leaver = next(p for p in players if p.player_id == data['judge_rotation'][1])
    assert leaver.post(f'/api/games/{game_id}/leave').status_code == 200
    join(leaver, data['gid'])

    data = state(leaver, game_id)
    assert data['judge_rotation'][-1] == leaver.player_id
    assert len(data['judge_rotation']) == 3
    assert len(my_hand(leaver, game_id)) == 10


def test_kick_rules(make_players, basic_set):
    alice, bob, cara = make_players(3)
    game = create_game(alice, [basic_set])
    join(bob, game['gid'])
    join(cara, game['gid'])

    res = bob.post(f"/api/games/{game['id']}/kick", json={'player_id': cara.player_id})
    assert res.status_code == 403
    res = alice.post(f"/api/games/{game['id']}/kick", json={'player_id': alice.player_id})
    assert res.status_code == 400
    res = alice.post(f"/api/games/{game['id']}/kick", json={})
    assert res.status_code == 400
    res = alice.post(f"/api/games/{game['id']}/kick", json={'player_id': 'nobody'})
    assert res.status_code == 404

    res = alice.post(f"/api/games/{game['id']}/kick", json={'player_id': cara.player_id})
    assert res.status_code == 200
    players = {p['id']: p for p in state(alice, game['id'])['players']}
    assert players[cara.player_id]['is_inactive'] is True

    res = cara.post('/api/games/join', json={'gid': game['gid']})
    assert res.status_code == 403
    assert res.get_json()['code'] == 'permission-denied'


def test_kick_during_play(make_players, basic_set):
    players = make_players(3)
    game_id = start_game(players, [basic_set], prizes_to_win=10)
    owner = players[0]
    target = next(p for p in players if p is not owner and p is not current_judge(players, game_id))
    submit(target, game_id)

    assert owner.post(f'/api/games/{game_id}/kick', json={'player_id': target.player_id}).status_code == 200
    data = state(owner, game_id)
    assert target.player_id not in data['judge_rotation']
    assert target.player_id not in data['turn']['responses']


def test_completed_games_refuse_joins(flask_app, make_players, basic_set):
    players = make_players(2)
    game_id = start_game(players, [basic_set], prizes_to_win=1)
    play_turn(players, game_id)
    data = state(players[0], game_id)
    assert data['state'] == 'completed'

    late = register(flask_app, 'late')
    res = late.post('/api/games/join', json={'gid': data['gid']})
    assert res.status_code == 400
    # Leaving a finished game is a no-op
    assert players[1].post(f'/api/games/{game_id}/leave').status_code == 200


def test_redeal_costs_a_prize(make_players, basic_set):
    players = make_players(2)
    game_id = start_game(players, [basic_set], prizes_to_win=10)
    res = players[0].post(f'/api/games/{game_id}/redeal')
    assert res.status_code == 400
    assert "enough prizes" in res.get_json()['error']

    _, winner = play_turn(players, game_id)
    hand_before = my_hand(winner, game_id)
    res = winner.post(f'/api/games/{game_id}/redeal')
    assert res.status_code == 200

    me = next(p for p in state(winner, game_id)['players'] if p['id'] == winner.player_id)
    assert me['prizes'] == []
    assert len(me['hand']) == 10
    assert not set(hand_before) & {c['cid'] for c in me['hand']}


def test_wave(make_players, basic_set, pushes):
    alice, bob = make_players(2)
    game = create_game(alice, [basic_set])
    join(bob, game['gid'])

    res = alice.post(f"/api/games/{game['id']}/wave", json={'player_id': bob.player_id, 'message': 'hurry up'})
    assert res.status_code == 200
    waves = pushes_of(pushes, 'wave')
    assert [pid for pid, _ in waves] == [bob.player_id]
    assert waves[0][1]['body'] == 'hurry up'
    assert waves[0][1]['from_id'] == alice.player_id

    res = alice.post(f"/api/games/{game['id']}/wave", json={'player_id': 'nobody'})
    assert res.status_code == 404
    res = alice.post(f"/api/games/{game['id']}/wave", json={})
    assert res.status_code == 400


def test_profile_changes_reach_every_game(make_players, basic_set):
    alice, bob = make_players(2)
    first = create_game(alice, [basic_set])
    second = create_game(alice, [basic_set])
    join(bob, first['gid'])

    res = alice.patch('/profile', json={'name': 'Queen Alice', 'avatar_url': 'https://example.com/a.png'})
    assert res.status_code == 200
    assert res.get_json()['user']['name'] == 'Queen Alice'

    for game in (first, second):
        me = next(p for p in state(alice, game['id'])['players'] if p['id'] == alice.player_id)
        assert me['name'] == 'Queen Alice'
        assert me['avatar_url'] == 'https://example.com/a.png'
    other = next(p for p in state(bob, first['id'])['players'] if p['id'] == bob.player_id)
    assert other['name'] == 'Player2'

    assert alice.patch('/profile', json={}).status_code == 400
    assert alice.patch('/profile', json={'name': ''}).status_code == 400
