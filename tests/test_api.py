"""
End-to-end tests of the Quart API with a fake search provider.
"""

import runpy

import pytest
from quart import Quart

import api.app
from api.app import app, get_services, init_services
from core.errors import UpstreamUnavailable
from services.config import Config


@pytest.fixture
async def client(tmp_path, provider):
    config = Config(DATABASE_PATH=str(tmp_path / "api.db"), TOKEN_SECRET="test-secret")
    init_services(config, provider=provider)
    async with app.test_app() as test_app:
        yield test_app.test_client()


async def register(client, username):
    resp = await client.post('/register', json={'username': username, 'password': f'{username}-pw'})
    assert resp.status_code == 201
    return (await resp.get_json())['token']


def auth(token):
    return {'Authorization': f'Bearer {token}'}


async def test_ping(client):
    resp = await client.get('/ping')
    assert (await resp.get_json()) == {'message': 'pong'}


# ==================== Auth ====================

async def test_register_twice_conflicts(client):
    first = await client.post('/register', json={'username': 'alice', 'password': 'pw'})
    second = await client.post('/register', json={'username': 'alice', 'password': 'other'})

    assert first.status_code == 201
    body = await first.get_json()
    assert body['username'] == 'alice'
    assert body['token']

    assert second.status_code == 409
    assert (await second.get_json())['error'] == 'conflict'

    async with get_services().database.connect() as conn:
        cursor = await conn.execute("SELECT COUNT(*) FROM users WHERE username = ?", ('alice',))
        assert (await cursor.fetchone())[0] == 1


@pytest.mark.parametrize("body", [{}, {'username': 'alice'}, {'password': 'pw'}, {'username': '  ', 'password': 'pw'}])
async def test_register_requires_fields(client, body):
    resp = await client.post('/register', json=body)
    assert resp.status_code == 400
    assert (await resp.get_json())['error'] == 'invalid_argument'


async def test_login(client):
    await register(client, 'alice')

    ok = await client.post('/login', json={'username': 'alice', 'password': 'alice-pw'})
    wrong = await client.post('/login', json={'username': 'alice', 'password': 'nope'})
    unknown = await client.post('/login', json={'username': 'carol', 'password': 'alice-pw'})

    assert ok.status_code == 200
    assert (await ok.get_json())['username'] == 'alice'
    assert wrong.status_code == 401
    assert unknown.status_code == 401
    assert (await wrong.get_json()) == (await unknown.get_json())


# ==================== Ratings ====================

async def test_rate_requires_token(client):
    missing = await client.post('/rate', json={'itemId': '100', 'rating': 4})
    invalid = await client.post('/rate', json={'itemId': '100', 'rating': 4}, headers=auth('garbage'))

    assert missing.status_code == 401
    assert invalid.status_code == 401
    assert (await invalid.get_json())['error'] == 'unauthenticated'


async def test_rate_create_then_update(client):
    token = await register(client, 'alice')

    created = await client.post('/rate', json={'itemId': '100', 'rating': 2}, headers=auth(token))
    updated = await client.post('/rate', json={'itemId': '100', 'rating': 5}, headers=auth(token))

    assert created.status_code == 201
    assert updated.status_code == 200
    assert (await updated.get_json())['rating']['rating'] == 5

    ratings = await (await client.get('/ratings/100')).get_json()
    assert [(r['username'], r['rating']) for r in ratings] == [('alice', 5)]


@pytest.mark.parametrize("rating", [0, 6, 'five', None, True, '3', 3.0])
async def test_rate_rejects_bad_values(client, rating):
    token = await register(client, 'alice')
    resp = await client.post('/rate', json={'itemId': '100', 'rating': rating}, headers=auth(token))
    assert resp.status_code == 400


async def test_rate_ignores_identity_in_body(client):
    alice = await register(client, 'alice')
    await register(client, 'bob')
    bob_id = get_services().tokens.verify(
        (await (await client.post('/login', json={'username': 'bob', 'password': 'bob-pw'})).get_json())['token']
    ).user_id

    resp = await client.post(
        '/rate',
        json={'itemId': '100', 'rating': 1, 'userId': bob_id, 'username': 'bob'},
        headers=auth(alice),
    )

    assert resp.status_code == 201
    assert (await resp.get_json())['rating']['userId'] != bob_id
    ratings = await (await client.get('/ratings/100')).get_json()
    assert [r['username'] for r in ratings] == ['alice']


async def test_delete_rating_is_idempotent(client):
    token = await register(client, 'alice')
    await client.post('/rate', json={'itemId': '100', 'rating': 3}, headers=auth(token))

    first = await client.delete('/rate/100', headers=auth(token))
    second = await client.delete('/rate/100', headers=auth(token))

    assert first.status_code == 200
    assert second.status_code == 200
    assert (await (await client.get('/ratings/100')).get_json()) == []


# ==================== Comments ====================

async def test_comment_lifecycle_and_ownership(client):
    alice = await register(client, 'alice')
    bob = await register(client, 'bob')

    created = await client.post('/comments', json={'itemId': '100', 'text': 'hello'}, headers=auth(alice))
    assert created.status_code == 201
    comment = await created.get_json()
    assert comment['username'] == 'alice'
    comment_id = comment['_id']

    blank = await client.post('/comments', json={'itemId': '100', 'text': '   '}, headers=auth(alice))
    assert blank.status_code == 400

    listed = await (await client.get('/comments/100')).get_json()
    assert [(c['_id'], c['text'], c['username']) for c in listed] == [(comment_id, 'hello', 'alice')]

    not_owner = await client.put(f'/comments/{comment_id}', json={'text': 'mine now'}, headers=auth(bob))
    missing = await client.put('/comments/999999', json={'text': 'mine now'}, headers=auth(bob))
    bogus = await client.put('/comments/abc', json={'text': 'mine now'}, headers=auth(bob))
    assert not_owner.status_code == missing.status_code == bogus.status_code == 404
    assert (await not_owner.get_json()) == (await missing.get_json()) == (await bogus.get_json())

    edited = await client.put(f'/comments/{comment_id}', json={'text': 'hello again'}, headers=auth(alice))
    assert edited.status_code == 200
    assert (await edited.get_json())['comment']['text'] == 'hello again'

    not_owner = await client.delete(f'/comments/{comment_id}', headers=auth(bob))
    missing = await client.delete('/comments/999999', headers=auth(bob))
    assert not_owner.status_code == missing.status_code == 404
    assert (await not_owner.get_json()) == (await missing.get_json())

    deleted = await client.delete(f'/comments/{comment_id}', headers=auth(alice))
    assert deleted.status_code == 200
    assert (await (await client.get('/comments/100')).get_json()) == []


# ==================== Search ====================

async def test_search_recent_is_anonymous(client, provider):
    token = await register(client, 'alice')
    await client.post('/rate', json={'itemId': '101', 'rating': 4}, headers=auth(token))

    resp = await client.get('/search')
    body = await resp.get_json()

    assert resp.status_code == 200
    assert provider.calls[-1] == (None, 0, 20)
    assert [r['id'] for r in body['results']] == ['100', '101', '102']
    assert all(r['viewerRating'] is None for r in body['results'])
    assert body['results'][1]['rating'] == {'average': 4.0, 'count': 1}
    assert (body['page'], body['totalPages'], body['totalResults']) == (0, 7, 140)


async def test_search_with_viewer(client, provider):
    token = await register(client, 'alice')
    await client.post('/rate', json={'itemId': '102', 'rating': 2}, headers=auth(token))
    await client.post('/comments', json={'itemId': '102', 'text': 'meh'}, headers=auth(token))

    resp = await client.get('/search?q=rust&page=2&limit=10', headers=auth(token))
    body = await resp.get_json()

    assert provider.calls[-1] == ('rust', 2, 10)
    item = body['results'][2]
    assert item['viewerRating'] == 2
    assert [c['text'] for c in item['comments']] == ['meh']


async def test_search_ignores_bad_token(client, provider):
    resp = await client.get('/search?q=rust', headers=auth('garbage'))
    assert resp.status_code == 200


async def test_search_rejects_negative_page(client):
    resp = await client.get('/search?page=-1')
    assert resp.status_code == 400


async def test_search_zero_limit_uses_default_page_size(client, provider):
    zero = await client.get('/search?q=rust&limit=0')
    negative = await client.get('/search?q=rust&limit=-5')

    assert zero.status_code == 200
    assert provider.calls == [('rust', 0, 20)]
    assert negative.status_code == 400


async def test_search_upstream_unavailable(client, provider):
    provider.error = UpstreamUnavailable()

    resp = await client.get('/search?q=rust&page=2&limit=10')
    body = await resp.get_json()

    assert resp.status_code == 502
    assert body['error'] == 'upstream_unavailable'
    assert 'results' not in body


async def test_unknown_route_is_json_404(client):
    resp = await client.get('/nope')
    assert resp.status_code == 404
    assert (await resp.get_json())['error'] == 'not_found'


def test_app_module_does_not_start_a_server_when_run(monkeypatch):
    # the server is started by api.run_api, which puts src/ on sys.path first
    monkeypatch.setattr(Quart, 'run', lambda *args, **kwargs: pytest.fail('app module started a server'))

    namespace = runpy.run_path(api.app.__file__, run_name='__main__')

    assert 'run_app' not in namespace
