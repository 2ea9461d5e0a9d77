def _start_game(admin_client):
    res = admin_client.post('/api/game/start')
    assert res.status_code == 200
    assert res.get_json()['game']['status'] == 'active'


def _send(client, content='Hello from A1', from_table='A1', to_table='B2', **extra):
    payload = {'content': content, 'from_table': from_table, 'to_table': to_table}
    payload.update(extra)
    return client.post('/api/messages', json=payload)


def _create_staff(admin_client, permissions=None):
    payload = {
        'first_name': 'Sam', 'last_name': 'Staff', 'password': 'staffpass', 'table_code': 'S01',
    }
    if permissions is not None:
        payload['permissions'] = permissions
    res = admin_client.post('/api/admin/staff', json=payload)
    assert res.status_code == 201
    return res.get_json()['staff']


def _staff_login(web_app):
    staff_client = web_app.test_client()
    res = staff_client.post('/api/staff/login', json={
        'first_name': 'sam', 'last_name': 'STAFF', 'table_code': 's01', 'password': 'staffpass',
    })
    assert res.status_code == 200
    return staff_client


def test_health(client):
    assert client.get('/api/health').get_json() == {'status': 'ok'}


def test_message_rejected_before_game_starts(client):
    res = _send(client)
    assert res.status_code == 403
    assert 'error' in res.get_json()


def test_send_list_and_react(client, admin_client):
    _start_game(admin_client)
    res = _send(client, sender_name='Alice')
    assert res.status_code == 201
    message_id = res.get_json()['message_id']

    listing = client.get('/api/messages/b2').get_json()['messages']
    assert [m['id'] for m in listing] == [message_id]
    assert listing[0]['public_sender_name'] == 'Alice'
    assert listing[0]['user_reaction'] is None
    assert 'sender_name' not in listing[0]

    res = client.post(f'/api/messages/{message_id}/reactions', json={'table_id': 'B2', 'reaction': 'heart'})
    assert res.status_code == 200
    body = res.get_json()
    assert body['reactions']['heart'] == 1
    assert body['user_reaction'] == 'heart'

    listing = client.get('/api/messages/B2').get_json()['messages']
    assert listing[0]['user_reaction'] == 'heart'

    res = client.post(f'/api/messages/{message_id}/reactions', json={'table_id': 'B2', 'reaction': 'heart'})
    assert res.get_json()['reactions']['heart'] == 0
    assert res.get_json()['user_reaction'] is None


def test_message_errors(client, admin_client):
    _start_game(admin_client)
    assert _send(client, to_table='A1').status_code == 400
    assert _send(client, content='x').status_code == 400
    assert _send(client, to_table='Z9').status_code == 404


def test_reaction_errors(client):
    res = client.post('/api/messages/msg_missing/reactions', json={'table_id': 'B2', 'reaction': 'heart'})
    assert res.status_code == 404
    res = client.post('/api/messages/msg_missing/reactions', json={'table_id': 'B2', 'reaction': 'wow'})
    assert res.status_code == 400


def test_leaderboard(client, admin_client):
    _start_game(admin_client)
    message_id = _send(client).get_json()['message_id']
    _send(client, from_table='C3', to_table='A1')
    client.post(f'/api/messages/{message_id}/reactions', json={'table_id': 'B2', 'reaction': 'fire'})

    board = client.get('/api/leaderboard/tv').get_json()['leaderboard']
    assert board == [{'table_id': 'A1', 'points': 2.0}, {'table_id': 'C3', 'points': 0.5}]

    board = admin_client.get('/api/admin/leaderboard?limit=1').get_json()['leaderboard']
    assert board == [{'table_id': 'A1', 'points': 2.0}]
    assert admin_client.get('/api/admin/leaderboard?limit=0').status_code == 400


def test_admin_routes_require_login(client):
    assert client.get('/api/admin/messages').status_code == 401
    assert client.post('/api/game/start').status_code == 401
    assert client.post('/api/challenges', json={}).status_code == 401


def test_admin_setup_only_once(admin_client, client):
    assert client.get('/api/admin/exists').get_json() == {'exists': True}
    res = client.post('/api/admin/setup', json={
        'first_name': 'Eve', 'last_name': 'Other', 'password': 'secret123',
    })
    assert res.status_code == 409


def test_admin_login(admin_client, web_app):
    fresh = web_app.test_client()
    bad = fresh.post('/api/admin/login', json={
        'first_name': 'Ada', 'last_name': 'Admin', 'table_code': '001', 'password': 'wrong-pass',
    })
    assert bad.status_code == 401
    assert bad.get_json()['error'] == 'Invalid credentials'

    res = fresh.post('/api/admin/login', json={
        'first_name': 'ada', 'last_name': 'admin', 'table_code': '001', 'password': 'secret123',
    })
    assert res.status_code == 200
    assert fresh.get('/api/me').get_json()['role'] == 'admin'

    assert fresh.post('/api/logout').status_code == 200
    assert fresh.get('/api/me').status_code == 401


def test_challenge_flow(client, admin_client):
    _start_game(admin_client)
    res = admin_client.post('/api/challenges', json={
        'title': 'Chatterbox', 'description': 'Most messages wins', 'type': 'most_messages',
        'duration_minutes': 5, 'badge_name': 'Chatterbox', 'badge_emoji': '💬',
    })
    assert res.status_code == 201
    challenge = res.get_json()['challenge']
    assert challenge['active'] is True

    active = client.get('/api/challenges/active').get_json()['challenges']
    assert [c['id'] for c in active] == [challenge['id']]

    _send(client)
    _send(client, content='Another one')
    _send(client, from_table='C3', to_table='B2')

    res = admin_client.post(f"/api/challenges/{challenge['id']}/end")
    assert res.status_code == 200
    assert res.get_json()['winner'] == 'A1'
    assert res.get_json()['results'] == {'A1': 2, 'C3': 1}

    assert client.get('/api/challenges/active').get_json()['challenges'] == []
    fetched = client.get(f"/api/challenges/{challenge['id']}").get_json()['challenge']
    assert fetched['winner'] == 'A1'
    assert fetched['participants'] == ['A1', 'C3']

    badges = client.get('/api/tables/a1/badges').get_json()
    assert badges['table_id'] == 'A1'
    assert [b['name'] for b in badges['badges']] == ['Chatterbox']

    assert admin_client.post(f"/api/challenges/{challenge['id']}/end").status_code == 409
    assert client.get('/api/challenges/challenge_missing').status_code == 404


def test_challenge_validation(admin_client):
    res = admin_client.post('/api/challenges', json={
        'title': 'Too long', 'type': 'speed', 'duration_minutes': 90,
        'badge_name': 'Rocket', 'badge_emoji': '🚀',
    })
    assert res.status_code == 400


def test_staff_capabilities(admin_client, web_app):
    staff = _create_staff(admin_client)
    staff_client = _staff_login(web_app)

    # Defaults: read-only access
    assert staff_client.get('/api/admin/leaderboard').status_code == 200
    assert staff_client.get('/api/admin/messages').status_code == 200
    res = staff_client.post('/api/challenges', json={
        'title': 'Speedy', 'type': 'speed', 'duration_minutes': 5,
        'badge_name': 'Rocket', 'badge_emoji': '🚀',
    })
    assert res.status_code == 403
    assert staff_client.post('/api/game/reset').status_code == 403
    assert staff_client.get('/api/admin/staff').status_code == 403

    res = admin_client.put(f"/api/admin/staff/{staff['id']}/permissions", json={
        'permissions': {'manage_challenges': True},
    })
    assert res.status_code == 200
    assert res.get_json()['permissions']['manage_challenges'] is True

    res = staff_client.post('/api/challenges', json={
        'title': 'Speedy', 'type': 'speed', 'duration_minutes': 5,
        'badge_name': 'Rocket', 'badge_emoji': '🚀',
    })
    assert res.status_code == 201


def test_deactivated_staff_cannot_log_in(admin_client, web_app):
    staff = _create_staff(admin_client)
    res = admin_client.put(f"/api/admin/staff/{staff['id']}", json={'is_active': False})
    assert res.status_code == 200

    res = web_app.test_client().post('/api/staff/login', json={
        'first_name': 'Sam', 'last_name': 'Staff', 'table_code': 'S01', 'password': 'staffpass',
    })
    assert res.status_code == 401


def test_staff_code_must_be_unique(admin_client):
    _create_staff(admin_client)
    res = admin_client.post('/api/admin/staff', json={
        'first_name': 'Other', 'last_name': 'Person', 'password': 'staffpass', 'table_code': 'ALPHA01',
    })
    assert res.status_code == 400
    res = admin_client.put('/api/admin/staff/1/permissions', json={'permissions': {'fly': True}})
    assert res.status_code == 400


def test_table_management(admin_client, client):
    res = admin_client.post('/api/admin/tables', json={'table_id': 'd4', 'code': 'delta04'})
    assert res.status_code == 201
    assert res.get_json()['table']['table_id'] == 'D4'
    assert client.get('/api/tables').get_json()['table_ids'] == ['A1', 'B2', 'C3', 'D4']

    assert client.post('/api/tables/validate-code', json={'code': 'Delta04'}).get_json()['table_id'] == 'D4'
    assert client.post('/api/tables/validate-code', json={'code': 'nope'}).status_code == 404

    assert admin_client.post('/api/admin/tables', json={'table_id': 'E5', 'code': 'DELTA04'}).status_code == 400
    assert admin_client.delete('/api/admin/tables/D4').status_code == 200
    assert admin_client.delete('/api/admin/tables/D4').status_code == 404


def test_presence_endpoints(client, admin_client):
    person = {'first_name': 'Alice', 'last_name': 'Smith'}
    assert client.post('/api/tables/A1/join', json=person).status_code == 200
    users = client.get('/api/tables/A1/users').get_json()
    assert users['user_count'] == 1

    assert client.post('/api/tables/A1/heartbeat', json=person).get_json()['known'] is True
    overview = admin_client.get('/api/admin/tables').get_json()['tables']
    assert {t['table_id']: t['user_count'] for t in overview}['A1'] == 1

    assert client.post('/api/tables/A1/leave', json=person).status_code == 200
    assert client.get('/api/tables/A1/users').get_json()['user_count'] == 0
    assert client.post('/api/tables/Z9/join', json=person).status_code == 404


def test_game_controls(admin_client, client):
    assert client.get('/api/game/status').get_json()['status'] == 'not_started'
    assert admin_client.post('/api/game/pause').status_code == 409
    _start_game(admin_client)
    assert admin_client.post('/api/game/start').status_code == 409
    assert admin_client.post('/api/game/pause').get_json()['game']['status'] == 'paused'
    assert _send(client).status_code == 403
    assert admin_client.post('/api/game/resume').get_json()['game']['status'] == 'active'
    assert _send(client).status_code == 201

    res = admin_client.post('/api/game/reset')
    assert res.get_json()['game']['status'] == 'not_started'
    assert client.get('/api/messages/B2').get_json()['messages'] == []


def test_broadcast_and_countdown(admin_client, client):
    res = admin_client.post('/api/messages/broadcast', json={'content': 'Dessert time'})
    assert res.get_json()['table_count'] == 3
    listing = client.get('/api/messages/C3').get_json()['messages']
    assert listing[0]['is_broadcast'] is True

    res = admin_client.post('/api/game/countdown', json={'minutes': 10, 'message': 'Last call'})
    assert res.get_json()['countdown']['active'] is True
    assert client.get('/api/game/countdown').get_json()['message'] == 'Last call'
    assert admin_client.post('/api/game/countdown', json={'minutes': 0}).status_code == 400
    assert admin_client.post('/api/game/countdown/stop').get_json()['countdown']['active'] is False


def test_admin_profile_and_code_rotation(admin_client, web_app):
    profile = admin_client.get('/api/admin/profile').get_json()['profile']
    assert profile['secret_table_code'] == '001'

    # Codes are shared with tables and staff
    res = admin_client.put('/api/admin/secret-code', json={'new_code': 'ALPHA01'})
    assert res.status_code == 400
    assert admin_client.put('/api/admin/secret-code', json={'new_code': 'no spaces'}).status_code == 400
    assert admin_client.put('/api/admin/secret-code', json={}).status_code == 400

    res = admin_client.put('/api/admin/secret-code', json={'new_code': 'boss7'})
    assert res.status_code == 200
    assert res.get_json()['secret_table_code'] == 'BOSS7'

    fresh = web_app.test_client()
    credentials = {'first_name': 'Ada', 'last_name': 'Admin', 'password': 'secret123'}
    assert fresh.post('/api/admin/login', json=dict(credentials, table_code='001')).status_code == 401
    assert fresh.post('/api/admin/login', json=dict(credentials, table_code='BOSS7')).status_code == 200

    # The old code is free again
    staff = admin_client.post('/api/admin/staff', json={
        'first_name': 'Sam', 'last_name': 'Staff', 'password': 'staffpass', 'table_code': '001',
    })
    assert staff.status_code == 201


def test_profile_is_admin_only(admin_client, web_app, client):
    _create_staff(admin_client)
    staff_client = _staff_login(web_app)
    assert staff_client.get('/api/admin/profile').status_code == 403
    assert staff_client.put('/api/admin/secret-code', json={'new_code': 'MINE1'}).status_code == 403
    assert client.get('/api/admin/profile').status_code == 401


def test_check_code_type(admin_client, client):
    _create_staff(admin_client)

    def code_type(first, last, code):
        res = client.post('/api/check-code-type', json={
            'first_name': first, 'last_name': last, 'table_code': code,
        })
        return res.get_json()['code_type']

    assert code_type('ada', 'ADMIN', '001') == 'admin'
    assert code_type('Sam', 'Staff', 's01') == 'staff'
    assert code_type('Sam', 'Staff', 'ALPHA01') == 'game'
    # A known code with the wrong name does not give the role away
    assert code_type('Eve', 'Other', '001') == 'game'
    assert code_type('', 'Admin', '001') == 'game'


def test_messages_and_reactions_share_a_rate_limit(limited_client):
    for _ in range(3):
        # Still counted while the game has not started
        assert _send(limited_client).status_code == 403
    res = _send(limited_client)
    assert res.status_code == 429
    assert 'error' in res.get_json()
    res = limited_client.post('/api/messages/msg_any/reactions', json={'table_id': 'B2', 'reaction': 'heart'})
    assert res.status_code == 429
    # Reading the board is not limited by the anti-spam guard
    assert limited_client.get('/api/messages/B2').status_code == 200


def test_only_failed_logins_are_rate_limited(limited_client):
    res = limited_client.post('/api/admin/setup', json={
        'first_name': 'Ada', 'last_name': 'Admin', 'password': 'secret123',
    })
    assert res.status_code == 201
    good = {'first_name': 'Ada', 'last_name': 'Admin', 'table_code': '001', 'password': 'secret123'}
    bad = dict(good, password='wrong-pass')

    for _ in range(3):
        assert limited_client.post('/api/admin/login', json=good).status_code == 200
    assert limited_client.post('/api/admin/login', json=bad).status_code == 401
    assert limited_client.post('/api/staff/login', json=bad).status_code == 401
    assert limited_client.post('/api/admin/login', json=good).status_code == 429
