"""
Chatwoot API client: status checks, opening and team assignment.

Each call is a single attempt with an explicit timeout. Failures never
propagate to callers; they come back as ``None``/``False`` and are logged
with the upstream status and body when there is one.
"""

import logging

import httpx

from escalator.config.settings import get_settings

logger = logging.getLogger(__name__)


class ChatwootAPIError(Exception):
    """Raised internally when a Chatwoot request fails."""

    def __init__(self, message: str, status_code: int | None = None, body: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class ChatwootClient:

    def __init__(
        self,
        base_url: str,
        account_id: str,
        api_key: str,
        team_id: str | None = None,
        timeout: float = 10.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.account_id = account_id
        self.api_key = api_key
        self.team_id = team_id
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings=None) -> "ChatwootClient":
        settings = settings or get_settings()
        return cls(
            base_url=settings.chatwoot_base_url,
            account_id=settings.chatwoot_account_id,
            api_key=settings.chatwoot_api_key,
            team_id=settings.chatwoot_team_id,
            timeout=settings.chatwoot_timeout_seconds,
        )

    def _conversation_url(self, conversation_id: int, suffix: str = "") -> str:
        return f"{self.base_url}/accounts/{self.account_id}/conversations/{conversation_id}{suffix}"

    @property
    def _headers(self) -> dict:
        return {
            "Content-Type": "application/json",
            "api_access_token": self.api_key,
        }

    async def _request(self, method: str, url: str, payload: dict | None = None) -> httpx.Response:
        logger.debug("Chatwoot request: %s %s", method, url)
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.request(method, url, headers=self._headers, json=payload)
                resp.raise_for_status()
                return resp
        except httpx.HTTPStatusError as exc:
            raise ChatwootAPIError(
                f"HTTP {exc.response.status_code}",
                status_code=exc.response.status_code,
                body=exc.response.text,
            ) from exc
        except httpx.HTTPError as exc:
            raise ChatwootAPIError(f"{type(exc).__name__}: {exc}") from exc

    @staticmethod
    def _log_failure(operation: str, conversation_id: int, exc: ChatwootAPIError) -> None:
        logger.error("Chatwoot %s failed for conversation %s: %s", operation, conversation_id, exc)
        if exc.status_code is not None:
            logger.error("API response: %s - %s", exc.status_code, exc.body)

    async def fetch_status(self, conversation_id: int) -> str | None:
        """Current remote status of a conversation, or None if it can't be determined."""
        try:
            resp = await self._request("GET", self._conversation_url(conversation_id))
            data = resp.json()
        except ChatwootAPIError as exc:
            self._log_failure("status check", conversation_id, exc)
            return None
        except ValueError:
            logger.error("Chatwoot returned non-JSON body for conversation %s", conversation_id)
            return None

        status = data.get("status") if isinstance(data, dict) else None
        if not isinstance(status, str) or not status:
            logger.error("Chatwoot response for conversation %s has no status: %s", conversation_id, data)
            return None

        logger.info("Conversation %s status: %s", conversation_id, status)
        return status

    async def open_conversation(self, conversation_id: int) -> bool:
        try:
            resp = await self._request(
                "POST",
                self._conversation_url(conversation_id, "/toggle_status"),
                {"status": "open"},
            )
        except ChatwootAPIError as exc:
            self._log_failure("open", conversation_id, exc)
            return False

        logger.info("Conversation %s opened. Response: %s", conversation_id, resp.text)
        return True

    async def assign_to_team(self, conversation_id: int, team_id: str | None = None) -> bool:
        team_id = team_id or self.team_id
        try:
            resp = await self._request(
                "POST",
                self._conversation_url(conversation_id, "/assignments"),
                {"team_id": team_id},
            )
        except ChatwootAPIError as exc:
            self._log_failure(f"assignment to team {team_id}", conversation_id, exc)
            return False

        logger.info("Conversation %s assigned to team %s. Response: %s", conversation_id, team_id, resp.text)
        return True
