# zapflow/adapters/mailbox.py
from __future__ import annotations

import base64
import logging
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Collection, Dict, List, Optional

import requests

from zapflow import conf
from zapflow.adapters.base import SignalAdapter
from zapflow.adapters.models import MailboxTriggerConfig
from zapflow.exceptions import AdapterError
from zapflow.models import RawSignal, TriggerType

logger = logging.getLogger(__name__)


def build_search_query(config: MailboxTriggerConfig) -> str:
    """Gmail search query: label filter + unread filter + criteria term."""
    query = f"label:{config.label} is:unread"
    if config.criteria == "subject":
        query += f" subject:{config.value}"
    elif config.criteria == "from":
        query += f" from:{config.value}"
    else:
        query += f" {config.value}"
    return query


def _decode_body(data: Optional[str]) -> str:
    if not data:
        return ""
    padded = data + "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(padded.encode()).decode("utf-8", errors="replace")


def extract_plain_text(payload: Dict[str, Any]) -> str:
    """Return the text/plain body of a Gmail message payload, searching nested parts."""
    parts = payload.get("parts")
    if parts:
        for part in parts:
            if part.get("mimeType") == "text/plain" and part.get("body", {}).get("data"):
                return _decode_body(part["body"]["data"])
        for part in parts:
            if part.get("parts"):
                text = extract_plain_text(part)
                if text:
                    return text
        return ""
    return _decode_body(payload.get("body", {}).get("data"))


def _parse_date(value: Optional[str]) -> datetime:
    if value:
        try:
            parsed = parsedate_to_datetime(value)
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=timezone.utc)
            return parsed
        except (TypeError, ValueError):
            logger.debug("Unparseable Date header %r, using now", value)
    return datetime.now(timezone.utc)


class MailboxSearchAdapter(SignalAdapter):
    """Searches a Gmail inbox for unread messages matching a zap's criteria."""

    trigger_type = TriggerType.GMAIL
    config_model = MailboxTriggerConfig

    def __init__(
        self,
        session: requests.Session | None = None,
        api_base_url: str | None = None,
        timeout: float | None = None,
        max_results: int | None = None,
    ):
        self.session = session or requests.Session()
        self.api_base_url = (api_base_url or conf.GMAIL_API_BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else conf.MAILBOX_TIMEOUT_S
        self.max_results = max_results or conf.MAILBOX_MAX_RESULTS

    def _request(self, method: str, path: str, access_token: str, **kwargs) -> Dict[str, Any]:
        url = f"{self.api_base_url}{path}"
        try:
            response = self.session.request(
                method,
                url,
                headers={"Authorization": f"Bearer {access_token}"},
                timeout=self.timeout,
                **kwargs,
            )
        except requests.RequestException as e:
            raise AdapterError(f"Gmail API unreachable: {e}") from e

        if response.status_code != 200:
            raise AdapterError(f"Gmail API error: {response.status_code}")
        try:
            return response.json()
        except ValueError as e:
            raise AdapterError("Gmail API returned malformed JSON") from e

    def list_message_ids(self, query: str, access_token: str) -> List[str]:
        data = self._request(
            "GET",
            "/users/me/messages",
            access_token,
            params={"q": query, "maxResults": self.max_results},
        )
        return [m["id"] for m in data.get("messages") or [] if m.get("id")]

    def fetch_message(self, message_id: str, access_token: str) -> RawSignal:
        """Fetch a full message and turn it into a RawSignal."""
        msg = self._request("GET", f"/users/me/messages/{message_id}", access_token, params={"format": "full"})
        payload = msg.get("payload") or {}
        headers = {h.get("name", "").lower(): h.get("value", "") for h in payload.get("headers") or []}

        timestamp = _parse_date(headers.get("date"))
        email = {
            "id": message_id,
            "from": headers.get("from") or "Unknown",
            "subject": headers.get("subject") or "No Subject",
            "body": extract_plain_text(payload),
            "timestamp": timestamp.isoformat(),
        }
        return RawSignal(external_id=message_id, observed_at=timestamp, payload={"email": email})

    def mark_read(self, message_id: str, access_token: str) -> None:
        self._request(
            "POST",
            f"/users/me/messages/{message_id}/modify",
            access_token,
            json={"removeLabelIds": ["UNREAD"]},
        )

    def scan(
        self,
        config: MailboxTriggerConfig,  # type: ignore[override]
        credentials: Optional[Dict[str, Any]] = None,
        known_ids: Collection[str] = (),
    ) -> List[RawSignal]:
        """
        List matching unread messages and fetch the ones not in `known_ids`.

        Messages are marked read only after they were turned into a signal, so
        a failure on one message leaves it unread for the next scan.

        Raises:
            AdapterError: If credentials are missing or the listing call fails
        """
        access_token = (credentials or {}).get("access_token")
        if not access_token:
            raise AdapterError("No mailbox credentials for zap owner")

        query = build_search_query(config)
        message_ids = self.list_message_ids(query, access_token)

        signals: List[RawSignal] = []
        for message_id in message_ids:
            if message_id in known_ids:
                continue

            try:
                signal = self.fetch_message(message_id, access_token)
            except AdapterError as e:
                logger.warning("Skipping message %s: %s", message_id, e)
                continue
            except Exception as e:
                # Undecodable message; leave it unread and keep the signals gathered so far
                logger.error("Skipping malformed message %s: %s", message_id, e, exc_info=True)
                continue
            signals.append(signal)

            if config.mark_read:
                try:
                    self.mark_read(message_id, access_token)
                except AdapterError as e:
                    logger.warning("Could not mark message %s as read: %s", message_id, e)

        logger.info("Mailbox scan '%s' → %d new message(s)", query, len(signals))
        return signals
