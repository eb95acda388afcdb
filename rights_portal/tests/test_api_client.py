"""
Tests for the portal HTTP client using a stub requests session.
"""

from __future__ import annotations

import json

import pytest
import requests

from rights_portal.frontend.api import ApiError, PortalClient


class StubResponse:
    def __init__(self, status_code=200, body=None, content=b'', headers=None):
        self.status_code = status_code
        self.ok = status_code < 400
        self._body = body
        self.content = content if body is None else json.dumps(body).encode()
        self.headers = headers or {}

    def json(self):
        if self._body is None:
            raise ValueError('No JSON body')
        return self._body


class StubSession:
    """Records requests and replays queued responses."""

    def __init__(self, *responses):
        self.headers = {}
        self.calls = []
        self.responses = list(responses)

    def request(self, method, url, timeout=None, **kwargs):
        self.calls.append((method, url, kwargs))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def test_client_headers_and_search() -> None:
    session = StubSession(StubResponse(body={
        'success': True,
        'data': [{'id': 1, 'name': 'ADEYEMI JOHN'}],
        'pagination': {'page': 1, 'limit': 10, 'total': 1, 'totalPages': 1},
    }))
    client = PortalClient(base_url='http://api.test/', token='s3cret', session=session)
    assert session.headers['Authorization'] == 'Bearer s3cret'
    assert session.headers['Cache-Control'] == 'no-cache, no-store, must-revalidate'
    body = client.search_shareholders('adeyemi')
    assert body['pagination']['total'] == 1
    method, url, kwargs = session.calls[0]
    assert (method, url) == ('GET', 'http://api.test/api/shareholders/search')
    assert kwargs['params']['name'] == 'adeyemi'
    assert '_t' in kwargs['params']


def test_client_unwraps_data_and_binary_responses() -> None:
    session = StubSession(
        StubResponse(body={'success': True, 'data': {'id': 4, 'status': 'completed'}}),
        StubResponse(content=b'%PDF-1.4', headers={'content-type': 'application/pdf'}),
        StubResponse(content=b'\x89PNG', headers={'content-type': 'image/png'}),
    )
    client = PortalClient(base_url='http://api.test', token='', session=session)
    assert 'Authorization' not in session.headers
    assert client.update_submission_status(4, 'completed') == {'id': 4, 'status': 'completed'}
    assert session.calls[0][2]['json'] == {'status': 'completed'}
    assert client.download_basic_pdf({'reg_account_number': '1001', 'name': 'X', 'extra': 1}) == b'%PDF-1.4'
    assert 'extra' not in session.calls[1][2]['json']
    assert client.stream_file('a' * 32 + '.png') == (b'\x89PNG', 'image/png')


def test_client_errors() -> None:
    session = StubSession(
        StubResponse(status_code=400, body={'success': False, 'message': 'Please enter at least 2 characters to search'}),
        StubResponse(status_code=401, body={'success': False, 'message': 'Unauthorized'}),
        StubResponse(status_code=500, content=b'<html>oops</html>'),
        StubResponse(body={'success': False, 'message': 'Nope'}),
        requests.ConnectionError('connection refused'),
    )
    client = PortalClient(base_url='http://api.test', token='', session=session)
    with pytest.raises(ApiError) as excinfo:
        client.search_shareholders('a')
    assert excinfo.value.status_code == 400
    assert excinfo.value.message == 'Please enter at least 2 characters to search'
    with pytest.raises(ApiError) as excinfo:
        client.get_dashboard()
    assert excinfo.value.status_code == 401
    with pytest.raises(ApiError) as excinfo:
        client.export_submissions_csv()
    assert excinfo.value.message == 'Request failed with status 500'
    with pytest.raises(ApiError, match='Nope'):
        client.get_offer()
    with pytest.raises(ApiError, match='Could not reach the portal service'):
        client.get_stockbrokers()


def test_client_never_inherits_admin_token(monkeypatch) -> None:
    """Only an explicitly supplied token authenticates; the server secret is not read."""
    monkeypatch.setenv('RIGHTS_API_URL', 'https://portal.example.com/')
    monkeypatch.setenv('ADMIN_TOKEN', 'server-secret')
    session = StubSession()
    client = PortalClient(session=session)
    assert client.base_url == 'https://portal.example.com'
    assert client.token is None
    assert 'Authorization' not in session.headers
    admin_session = StubSession()
    PortalClient(token='typed-by-admin', session=admin_session)
    assert admin_session.headers['Authorization'] == 'Bearer typed-by-admin'
