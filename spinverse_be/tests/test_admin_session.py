import json

from spinverse_be.client.session import AdminSession, TOKEN_KEY, USER_KEY

ADMIN = {'id': 1, 'username': 'admin', 'email': 'admin@example.com', 'role': 'admin', 'lastLogin': None}


def test_login_persists_token_and_user():
    storage = {}
    session = AdminSession(storage)
    session.login('tok', ADMIN)

    assert session.is_authenticated
    assert storage[TOKEN_KEY] == 'tok'
    assert json.loads(storage[USER_KEY]) == ADMIN
    assert session.auth_headers() == {'Authorization': 'Bearer tok'}


def test_restore_from_storage():
    storage = {TOKEN_KEY: 'tok', USER_KEY: json.dumps(ADMIN)}
    session = AdminSession(storage)
    assert session.restore() is True
    assert session.admin == ADMIN
    assert session.token == 'tok'


def test_restore_with_nothing_stored():
    session = AdminSession({})
    assert session.restore() is False
    assert not session.is_authenticated
    assert session.auth_headers() == {}


def test_corrupt_record_clears_both_keys():
    storage = {TOKEN_KEY: 'tok', USER_KEY: '{not json'}
    session = AdminSession(storage)
    assert session.restore() is False
    assert storage == {}
    assert not session.is_authenticated


def test_logout_removes_keys():
    storage = {'unrelated': 'x'}
    session = AdminSession(storage)
    session.login('tok', ADMIN)
    session.logout()
    assert storage == {'unrelated': 'x'}
    assert session.admin is None
    assert not session.is_authenticated
