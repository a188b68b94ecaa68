"""HTTP client for interacting with Slack Web API."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

SLACK_API_BASE = "https://slack.com/api"
# chat.postMessage rejects messages with more blocks than this
MAX_BLOCKS_PER_MESSAGE = 50

logger = logging.getLogger(__name__)


class SlackApiError(RuntimeError):
    """Raised when Slack returns an error response."""

    def __init__(self, method: str, error: str) -> None:
        super().__init__(f"Slack API error for {method}: {error}")
        self.method = method
        self.error = error


class SlackClient:
    """Simple async wrapper around the Slack Web API endpoints used by the bot."""

    def __init__(
        self,
        token: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=SLACK_API_BASE,
            headers={"Authorization": f"Bearer {token}"},
            timeout=timeout,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    @staticmethod
    def _check(method: str, response: httpx.Response) -> Dict[str, Any]:
        response.raise_for_status()
        data = response.json()
        if not data.get("ok"):
            raise SlackApiError(method, data.get("error", "unknown_error"))
        return data

    async def users_info(self, user_id: str) -> Dict[str, Any]:
        method = "users.info"
        response = await self._client.get(method, params={"user": user_id})
        return self._check(method, response).get("user", {})

    async def fetch_users(self) -> List[Dict[str, Any]]:
        """Return every non-deleted workspace member, following pagination."""

        method = "users.list"
        users: List[Dict[str, Any]] = []
        cursor: Optional[str] = None
        while True:
            params: Dict[str, Any] = {"limit": 200}
            if cursor:
                params["cursor"] = cursor
            response = await self._client.get(method, params=params)
            data = self._check(method, response)
            users.extend(member for member in data.get("members", []) if not member.get("deleted"))
            cursor = data.get("response_metadata", {}).get("next_cursor")
            if not cursor:
                break
        return users

    async def post_message(
        self,
        channel: str,
        text: str,
        blocks: Optional[List[Dict[str, Any]]] = None,
        thread_ts: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Post a message; block lists over Slack's limit continue in the thread."""

        method = "chat.postMessage"
        chunks: List[Optional[List[Dict[str, Any]]]] = [None]
        if blocks:
            chunks = [
                blocks[start : start + MAX_BLOCKS_PER_MESSAGE]
                for start in range(0, len(blocks), MAX_BLOCKS_PER_MESSAGE)
            ]
        first: Dict[str, Any] = {}
        for chunk in chunks:
            payload: Dict[str, Any] = {"channel": channel, "text": text}
            if chunk:
                payload["blocks"] = chunk
            if thread_ts:
                payload["thread_ts"] = thread_ts
                payload["reply_broadcast"] = False
            response = await self._client.post(method, json=payload)
            data = self._check(method, response)
            if not first:
                first = data
                thread_ts = thread_ts or data.get("ts")
        return first


class UserDirectory:
    """Slack members indexed by username and profile email, fetched at most once per instance."""

    def __init__(self, client: SlackClient) -> None:
        self._client = client
        self._by_alias: Optional[Dict[str, Dict[str, Any]]] = None

    async def _load(self) -> Dict[str, Dict[str, Any]]:
        if self._by_alias is None:
            members = await self._client.fetch_users()
            self._by_alias = {}
            for member in members:
                email = member.get("profile", {}).get("email")
                if email:
                    self._by_alias[email.lower()] = member
            # usernames win over an identical email on another member
            for member in members:
                if member.get("name"):
                    self._by_alias[member["name"].lower()] = member
            logger.debug("Loaded %s Slack members", len(members))
        return self._by_alias

    async def find(self, alias: Optional[str]) -> Optional[Dict[str, Any]]:
        if not alias:
            return None
        by_alias = await self._load()
        return by_alias.get(alias.strip().lower())


def display_name(member: Dict[str, Any], default: str = "Usuario") -> str:
    profile = member.get("profile", {})
    return member.get("real_name") or profile.get("real_name") or member.get("name") or default


def member_aliases(member: Dict[str, Any]) -> List[str]:
    """Candidate directory aliases for a Slack member: username, then profile email."""

    aliases = []
    if member.get("name"):
        aliases.append(member["name"])
    email = member.get("profile", {}).get("email")
    if email:
        aliases.append(email)
    return aliases


__all__ = [
    "SlackClient",
    "SlackApiError",
    "UserDirectory",
    "display_name",
    "member_aliases",
    "MAX_BLOCKS_PER_MESSAGE",
]
