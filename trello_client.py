"""Trello REST API client: the single point of contact with the network."""

import logging
import threading
import time
from typing import Any, Dict, List, Optional
from urllib.parse import urljoin, urlparse

import requests
import urllib3

from errors import FetchError
from models import Blob

logger = logging.getLogger('trello_attachments_exporter.client')

DEFAULT_API_BASE_URL = 'https://trello.com/1/'


class TrelloClient:
    """Trello REST API client issuing single-attempt GET requests.

    The session is assumed to be established already: an optional API key and
    token are attached to every API request as query parameters. Attachment
    downloads go through a separate bare session that carries no credentials
    and no referrer.
    """

    def __init__(
        self,
        api_base_url: str = DEFAULT_API_BASE_URL,
        api_key: Optional[str] = None,
        token: Optional[str] = None,
        verify_ssl: bool = True,
        timeout: float = 30,
        rate_limit: float = 0.0,
        forward_credentials_to_downloads: bool = False
    ):
        """
        Initialize the client.

        Args:
            api_base_url: Base URL for relative API endpoints
            api_key: Optional Trello API key
            token: Optional Trello token
            verify_ssl: Whether to verify SSL certificates
            timeout: HTTP request timeout in seconds
            rate_limit: Minimum seconds between requests (0.0 = no rate limiting)
            forward_credentials_to_downloads: Send key/token with binary downloads too
        """
        self.api_base_url = api_base_url.rstrip('/') + '/'
        self.timeout = timeout
        self.rate_limit = rate_limit
        self.last_request_time = 0.0
        self._rate_lock = threading.Lock()

        self.session = requests.Session()
        self.session.headers['Accept'] = 'application/json'
        if api_key and token:
            self.session.params = {'key': api_key, 'token': token}
            logger.info(f"Initialized Trello client with API key/token for {self.api_base_url}")
        else:
            logger.info(f"Initialized Trello client using the ambient session for {self.api_base_url}")

        if forward_credentials_to_downloads:
            self.download_session = self.session
        else:
            self.download_session = requests.Session()

        self.session.verify = verify_ssl
        self.download_session.verify = verify_ssl
        if not verify_ssl:
            logger.warning("SSL verification disabled - this is insecure!")
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

        logger.debug(f"Client configured with timeout={timeout}s, rate_limit={rate_limit}s")

    def _enforce_rate_limit(self) -> None:
        """Enforce rate limiting if configured."""
        if self.rate_limit <= 0:
            return

        with self._rate_lock:
            time_since_last = time.time() - self.last_request_time
            if time_since_last < self.rate_limit:
                sleep_time = self.rate_limit - time_since_last
                logger.debug(f"Rate limiting: sleeping for {sleep_time:.2f}s")
                time.sleep(sleep_time)
            self.last_request_time = time.time()

    def _resolve_url(self, url_or_endpoint: str) -> str:
        """Join relative endpoints to the API base URL; absolute URLs pass through."""
        if urlparse(url_or_endpoint).scheme:
            return url_or_endpoint
        return urljoin(self.api_base_url, url_or_endpoint.lstrip('/'))

    def _get(
        self,
        session: requests.Session,
        url: str,
        params: Optional[Dict[str, Any]] = None
    ) -> requests.Response:
        """
        Issue one GET request and map every failure onto FetchError.

        Args:
            session: Session to send the request with
            url: Absolute URL
            params: Optional query parameters

        Returns:
            Response object with a 2xx status

        Raises:
            FetchError: On timeout, connection failure or non-2xx status
        """
        self._enforce_rate_limit()

        start_time = time.time()
        logger.debug(f"API Request: GET {url}")

        try:
            response = session.get(url, params=params, timeout=self.timeout)
            elapsed = time.time() - start_time
            logger.debug(f"API Response: {response.status_code} {url} ({elapsed:.3f}s)")
            response.raise_for_status()
            return response

        except requests.exceptions.Timeout as e:
            logger.error(f"Request timeout after {self.timeout}s: GET {url}")
            raise FetchError(f"Request timeout after {self.timeout}s: {url}", url=url) from e

        except requests.exceptions.HTTPError as e:
            status_code = e.response.status_code if e.response is not None else None
            logger.error(f"HTTP Error {status_code}: GET {url}")
            if e.response is not None:
                logger.debug(f"Error response: {e.response.text[:500]}")
            raise FetchError(f"HTTP Error {status_code}: {url}", url=url, status_code=status_code) from e

        except requests.exceptions.RequestException as e:
            logger.error(f"Request error: GET {url} - {str(e)}")
            raise FetchError(f"Request error: {url} - {str(e)}", url=url) from e

    def fetch_json(self, url_or_endpoint: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        Fetch a JSON document.

        The API may answer 200 for some error conditions, so callers still
        have to check the shape of what comes back.

        Args:
            url_or_endpoint: Absolute URL or endpoint relative to the API base
            params: Optional query parameters

        Returns:
            Parsed JSON data

        Raises:
            FetchError: On network failure, non-2xx status or a non-JSON body
        """
        url = self._resolve_url(url_or_endpoint)
        response = self._get(self.session, url, params=params)
        try:
            return response.json()
        except ValueError as e:
            logger.error(f"Response is not valid JSON: {url}")
            raise FetchError(f"Response is not valid JSON: {url}", url=url,
                             status_code=response.status_code) from e

    def fetch_binary(self, url: str) -> Blob:
        """
        Download a binary payload without credentials or referrer.

        Args:
            url: Full download URL

        Returns:
            Blob with the raw content and its content type

        Raises:
            FetchError: On network failure or non-2xx status
        """
        if not url:
            raise FetchError("Attachment has no download URL", url=url)

        response = self._get(self.download_session, url)
        content_type = response.headers.get('Content-Type') or 'application/octet-stream'
        # Drop parameters such as charset; the data URL only carries the media type
        content_type = content_type.split(';')[0].strip() or 'application/octet-stream'
        logger.debug(f"Downloaded {len(response.content)} bytes ({content_type}) from {url}")
        return Blob(content=response.content, content_type=content_type)

    def get_boards(self) -> List[Dict[str, Any]]:
        """Fetch the boards accessible to the current session."""
        return self.fetch_json('members/me/boards', params={'fields': 'id,shortLink,url,shortUrl'})

    def get_board_cards(self, board_id: str) -> List[Dict[str, Any]]:
        """Fetch every card on a board (open and closed)."""
        return self.fetch_json(
            f'boards/{board_id}/cards/all',
            params={'fields': 'id,name,idShort,url'}
        )

    def get_card_attachments(self, board_id: str, card_id: str) -> Dict[str, Any]:
        """Fetch a card together with its full attachment metadata."""
        return self.fetch_json(
            f'boards/{board_id}/cards/{card_id}',
            params={'fields': 'id,name', 'attachments': 'true', 'checkItemStates': 'false'}
        )

    def get_board_export(self, export_url: str) -> Dict[str, Any]:
        """Fetch the bulk JSON export of a board."""
        return self.fetch_json(export_url)

    def close(self) -> None:
        """Close the underlying HTTP sessions."""
        self.session.close()
        if self.download_session is not self.session:
            self.download_session.close()

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'TrelloClient':
        """
        Initialize Trello client from configuration dictionary.

        Args:
            config: Configuration dictionary with trello and advanced settings

        Returns:
            TrelloClient instance
        """
        trello_config = config.get('trello', {})
        advanced_config = config.get('advanced', {})

        return cls(
            api_base_url=trello_config.get('api_base_url') or DEFAULT_API_BASE_URL,
            api_key=trello_config.get('api_key') or None,
            token=trello_config.get('token') or None,
            verify_ssl=trello_config.get('verify_ssl', True),
            timeout=advanced_config.get('request_timeout', 30),
            rate_limit=advanced_config.get('rate_limit', 0.0),
            forward_credentials_to_downloads=trello_config.get('forward_credentials_to_downloads', False)
        )


__all__ = ['TrelloClient', 'DEFAULT_API_BASE_URL']
