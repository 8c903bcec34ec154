# oboerukun - LINE List & Reminder Bot
# Copyright (c) 2025-2026 Slash Daemon slashdaemon@protonmail.com
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, version 3 of the License.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program. If not, see <https://www.gnu.org/licenses/>.
#
# Commercial licensing: [slashdaemon@protonmail.com]

"""
LINE Messaging API Client

Handles all communication with the LINE platform:
- Verifying webhook signatures
- Sending replies and push messages
- Building the button templates attached to reminders and cleanup notices
"""

import base64
import hashlib
import hmac
import logging
from typing import Any, Optional
from urllib.parse import parse_qsl

import httpx

logger = logging.getLogger("oboerukun.line_client")

# Snooze choices offered under a delivered reminder: (label, minutes)
SNOOZE_OPTIONS = [
    ("⏰ 30分後", 30),
    ("⏰ 1時間後", 60),
    ("⏰ 3時間後", 180),
]


def verify_signature(channel_secret: str, body: bytes, signature: Optional[str]) -> bool:
    """
    Check the x-line-signature header of a webhook request.

    Args:
        channel_secret: LINE channel secret
        body: Raw request body
        signature: Header value (base64 HMAC-SHA256 of the body)

    Returns:
        True if the signature matches
    """
    if not channel_secret or not signature:
        return False

    digest = hmac.new(
        channel_secret.encode("utf-8"),
        body,
        hashlib.sha256,
    ).digest()
    expected = base64.b64encode(digest).decode("utf-8")
    return hmac.compare_digest(expected, signature)


def text_message(text: str) -> dict[str, Any]:
    return {"type": "text", "text": text}


def _postback(label: str, **params: Any) -> dict[str, Any]:
    data = "&".join(f"{key}={value}" for key, value in params.items())
    return {"type": "postback", "label": label, "data": data}


def _ids(values: list[int]) -> str:
    return ",".join(str(v) for v in values)


def snooze_template(reminder_id: int) -> dict[str, Any]:
    """Buttons shown under a delivered reminder."""
    actions = [
        _postback(label, action="snooze", reminder_id=reminder_id, minutes=minutes)
        for label, minutes in SNOOZE_OPTIONS
    ]
    actions.append(_postback("✅ 完了", action="complete", reminder_id=reminder_id))
    return {
        "type": "template",
        "altText": "スヌーズしますか?",
        "template": {
            "type": "buttons",
            "text": "このリマインダーをスヌーズしますか?",
            "actions": actions,
        },
    }


def cleanup_template(reminder_ids: list[int], list_ids: list[int]) -> dict[str, Any]:
    """Buttons shown under a stale-data notice."""
    params = {"reminder_ids": _ids(reminder_ids), "list_ids": _ids(list_ids)}
    return {
        "type": "template",
        "altText": "クリーンアップを実行しますか？",
        "template": {
            "type": "buttons",
            "text": "次のアクションを選んでください",
            "actions": [
                _postback("🗑️ すべて削除", action="cleanup_all", **params),
                _postback("📝 選んで削除", action="cleanup_select", **params),
                _postback("⏰ 1ヶ月保留", action="cleanup_postpone", **params),
            ],
        },
    }


def parse_postback(data: str) -> dict[str, str]:
    """Parse postback data ("action=snooze&reminder_id=3&minutes=30")."""
    return dict(parse_qsl(data or "", keep_blank_values=True))


def parse_id_list(value: Optional[str]) -> list[int]:
    """Parse a comma-separated ID list from postback data."""
    ids = []
    for part in (value or "").split(","):
        part = part.strip()
        if part.isdigit():
            ids.append(int(part))
    return ids


class LineClient:
    """Client for the LINE Messaging API"""

    def __init__(
        self,
        access_token: Optional[str] = None,
        base_url: str = "https://api.line.me/v2/bot",
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.access_token = access_token

        if not self.access_token:
            logger.warning(
                "LINE_CHANNEL_ACCESS_TOKEN not set - API calls will fail authentication"
            )

        self._client = http_client or httpx.AsyncClient(
            base_url=base_url,
            headers={"Authorization": f"Bearer {self.access_token}"},
            timeout=10.0,
        )

    async def close(self) -> None:
        """Close the HTTP client"""
        await self._client.aclose()

    async def reply(self, reply_token: str, messages: list[dict[str, Any]]) -> bool:
        """Answer a webhook event with its reply token"""
        try:
            response = await self._client.post(
                "/message/reply",
                json={"replyToken": reply_token, "messages": messages},
            )
            response.raise_for_status()
            logger.debug(f"LINE reply sent: {response.status_code}")
            return True
        except httpx.HTTPError as e:
            logger.error(f"Failed to send LINE reply: {e}")
            return False

    async def push(self, to: str, messages: list[dict[str, Any]]) -> bool:
        """Send messages to a room without a reply token"""
        try:
            response = await self._client.post(
                "/message/push",
                json={"to": to, "messages": messages},
            )
            response.raise_for_status()
            return True
        except httpx.HTTPError as e:
            logger.error(f"Failed to push LINE message to {to}: {e}")
            return False
