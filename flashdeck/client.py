"""
API Client for the FlashDeck backend

Wraps the HTTP endpoints used by review and practice sessions.
"""

import logging
from typing import Dict, List, Any, Optional

import requests

from flashdeck.exceptions import APIError

logger = logging.getLogger(__name__)


class FlashDeckAPIClient:
    """HTTP client for the FlashDeck REST API"""

    def __init__(self, base_url: str = "http://localhost:8000", token: Optional[str] = None,
                 timeout: Optional[float] = 30):
        """
        Initialize API client

        Args:
            base_url: Base URL of the API server
            token: Bearer token sent with every request, if set
            timeout: Per-request timeout in seconds (None waits indefinitely)
        """
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({
            'Content-Type': 'application/json',
            'Accept': 'application/json'
        })
        self.set_token(token)

    def set_token(self, token: Optional[str]):
        """Set or clear the bearer token"""
        if token:
            self.session.headers['Authorization'] = f"Bearer {token}"
        else:
            self.session.headers.pop('Authorization', None)

    def _request(self, method: str, endpoint: str, data: Optional[Dict[str, Any]] = None) -> Any:
        """
        Make a request to the API

        Returns:
            Decoded JSON body, or None for 204 responses

        Raises:
            APIError: On transport failure or a non-2xx response
        """
        url = f"{self.base_url}{endpoint}"
        try:
            response = self.session.request(method, url, json=data, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.error(f"API request failed: {method} {endpoint}: {e}")
            raise APIError(str(e)) from e

        if response.status_code == 204:
            return None

        try:
            body = response.json()
        except ValueError:
            body = None

        if not response.ok:
            detail = body.get('detail') if isinstance(body, dict) else None
            message = detail if isinstance(detail, str) and detail else 'An error occurred'
            logger.error(f"API request failed: {method} {endpoint}: {response.status_code} {message}")
            raise APIError(message, status_code=response.status_code)

        return body

    def _get(self, endpoint: str) -> Any:
        return self._request('GET', endpoint)

    def _post(self, endpoint: str, data: Dict[str, Any]) -> Any:
        return self._request('POST', endpoint, data)

    def _patch(self, endpoint: str, data: Dict[str, Any]) -> Any:
        return self._request('PATCH', endpoint, data)

    def _delete(self, endpoint: str) -> Any:
        return self._request('DELETE', endpoint)

    # Health check
    def health_check(self) -> Dict[str, Any]:
        """Check if server is healthy"""
        return self._get('/health')

    # Decks
    def get_decks(self) -> List[Dict[str, Any]]:
        """Get all decks for the authenticated user"""
        return self._get('/decks/') or []

    def get_deck(self, deck_id: str) -> Dict[str, Any]:
        return self._get(f'/decks/{deck_id}')

    # Review and practice batches
    def get_deck_review_cards(self, deck_id: str) -> Dict[str, Any]:
        """Get the next page of due cards for a deck"""
        return self._get(f'/decks/{deck_id}/review-cards')

    def get_deck_practice_cards(self, deck_id: str) -> Dict[str, Any]:
        """Get a page of practice cards for a deck (no due-date filtering)"""
        return self._get(f'/decks/{deck_id}/practice-cards')

    def submit_card_review(self, topic_id: str, card_index: int, base_score: int) -> Dict[str, Any]:
        """Submit a recall score (0-3 for Again/Hard/Good/Easy) for one card"""
        return self._post(
            f'/review/topics/{topic_id}/cards/{card_index}/submit-review',
            {'base_score': base_score}
        )

    # Topics and their cards
    def get_topic(self, topic_id: str) -> Dict[str, Any]:
        return self._get(f'/topics/{topic_id}')

    def update_topic_card(self, topic_id: str, card_index: int, data: Dict[str, Any]) -> Dict[str, Any]:
        """Apply a partial update to the card at card_index within a topic"""
        return self._patch(f'/topics/{topic_id}/cards/{card_index}', data)

    def delete_topic_card(self, topic_id: str, card_index: int) -> None:
        return self._delete(f'/topics/{topic_id}/cards/{card_index}')
