"""
HTTP client for the rights issue portal API.

The Streamlit pages never talk to the database directly; every read and
write goes through :class:`PortalClient`, which wraps a
``requests.Session`` configured with no-cache headers and, for admin
calls, a bearer token entered by the signed-in admin user.  Failed calls raise :class:`ApiError` carrying
the server's message and status code so the pages can show a friendly
error instead of a traceback.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional, Tuple

import requests

from ..config import get_api_url

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = 30

NO_CACHE_HEADERS = {
    'Cache-Control': 'no-cache, no-store, must-revalidate',
    'Pragma': 'no-cache',
    'Expires': '0',
}


class ApiError(Exception):
    """Raised when the portal API returns an error or cannot be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class PortalClient:
    """Thin wrapper around the portal REST API."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: int = _DEFAULT_TIMEOUT,
    ) -> None:
        self.base_url = (base_url or get_api_url()).rstrip('/')
        self.token = token
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(NO_CACHE_HEADERS)
        if self.token:
            self.session.headers['Authorization'] = f"Bearer {self.token}"

    def _request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.error(f"{method} {path} failed: {e}")
            raise ApiError(f"Could not reach the portal service: {e}") from e
        if response.status_code == 401:
            logger.error('Unauthorized access - please log in')
        if not response.ok:
            message = f"Request failed with status {response.status_code}"
            try:
                body = response.json()
                message = body.get('message') or body.get('detail') or message
            except ValueError:
                pass
            raise ApiError(str(message), response.status_code)
        return response

    def _json(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        response = self._request(method, path, **kwargs)
        try:
            body = response.json()
        except ValueError as e:
            raise ApiError('Invalid response from the portal service', response.status_code) from e
        if not body.get('success', False):
            raise ApiError(body.get('message') or 'Request was not successful', response.status_code)
        return body

    # Public pages

    def search_shareholders(self, name: str, page: int = 1, limit: int = 10) -> Dict[str, Any]:
        """Search the register; returns ``data`` and ``pagination``."""
        params = {
            'name': name,
            'page': page,
            'limit': limit,
            '_t': int(time.time() * 1000),
        }
        return self._json('GET', '/api/shareholders/search', params=params)

    def get_shareholder_by_id(self, shareholder_id: int) -> Dict[str, Any]:
        return self._json('GET', f'/api/shareholders/{shareholder_id}')['data']

    def get_stockbrokers(self) -> list:
        return self._json('GET', '/api/stockbrokers')['data']

    def get_offer(self) -> Dict[str, Any]:
        return self._json('GET', '/api/offer')['data']

    def download_basic_pdf(self, shareholder: Dict[str, Any]) -> bytes:
        payload = {
            key: shareholder.get(key)
            for key in ('reg_account_number', 'name', 'holdings', 'rights_issue', 'amount_due', 'chn')
        }
        return self._request('POST', '/api/forms/basic-pdf', json=payload).content

    def preview_rights_form(self, form: Dict[str, Any]) -> bytes:
        return self._request('POST', '/api/forms/preview', json=form).content

    def submit_rights_form(
        self,
        data: Dict[str, str],
        files: Dict[str, Tuple[str, bytes, str]],
    ) -> Dict[str, Any]:
        """Post a multipart submission built by ``wizard.build_submission``."""
        return self._json('POST', '/api/forms/rights-submission', data=data, files=files)['data']

    # Admin pages

    def get_dashboard(self) -> Dict[str, Any]:
        return self._json('GET', '/api/admin/dashboard')['data']

    def list_submissions(
        self,
        page: int = 1,
        limit: int = 10,
        search: Optional[str] = None,
        status: Optional[str] = None,
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {'page': page, 'limit': limit}
        if search:
            params['search'] = search
        if status:
            params['status'] = status
        return self._json('GET', '/api/admin/submissions', params=params)

    def get_rights_submission_by_id(self, submission_id: int) -> Dict[str, Any]:
        return self._json('GET', f'/api/admin/rights-submissions/{submission_id}')['data']

    def update_submission_status(self, submission_id: int, status: str) -> Dict[str, Any]:
        return self._json(
            'PATCH', f'/api/admin/rights-submissions/{submission_id}/status', json={'status': status}
        )['data']

    def export_submissions_csv(self) -> bytes:
        return self._request('GET', '/api/admin/export', params={'format': 'csv'}).content

    def download_file(self, file_id: str, filename: Optional[str] = None) -> bytes:
        params: Dict[str, Any] = {'download': 'true'}
        if filename:
            params['filename'] = filename
        return self._request('GET', f'/api/files/{file_id}', params=params).content

    def stream_file(self, file_id: str) -> Tuple[bytes, str]:
        """Fetch a stored file for inline viewing; returns (content, media type)."""
        response = self._request('GET', f'/api/files/{file_id}')
        return response.content, response.headers.get('content-type', 'application/octet-stream')
