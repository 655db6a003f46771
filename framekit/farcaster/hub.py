"""Hub capability used to validate signed frame actions.

The pipeline never verifies signatures itself. It forwards the decoded
envelope to a :class:`HubService` and maps the answer. :class:`HttpHubService`
talks to a hub HTTP API; tests and alternative deployments can plug in any
object implementing the protocol.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass
from typing import Any, Protocol

import requests
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    stop_when_event_set,
    wait_exponential,
)

from framekit.core.errors import HubRequestAbortedError, HubServiceError

logger = logging.getLogger(__name__)

FRAME_ACTION_MESSAGE_TYPES = frozenset({"MESSAGE_TYPE_FRAME_ACTION", 13})
USER_DATA_ADD_MESSAGE_TYPES = frozenset({"MESSAGE_TYPE_USER_DATA_ADD", 11})

_USER_DATA_FIELDS = {
    "USER_DATA_TYPE_PFP": "profile_image",
    "USER_DATA_TYPE_DISPLAY": "display_name",
    "USER_DATA_TYPE_BIO": "bio",
    "USER_DATA_TYPE_USERNAME": "username",
}

_RETRYABLE = (requests.ConnectionError, requests.Timeout)


@dataclass(frozen=True, slots=True)
class HubValidationResult:
    valid: bool
    # JSON form of the validated message, as returned by the hub
    message: dict[str, Any] | None = None

    @property
    def is_frame_action(self) -> bool:
        if not self.valid or not isinstance(self.message, dict):
            return False
        data = self.message.get("data")
        return isinstance(data, dict) and data.get("type") in FRAME_ACTION_MESSAGE_TYPES


@dataclass(frozen=True, slots=True)
class UserData:
    profile_image: str | None = None
    display_name: str | None = None
    username: str | None = None
    bio: str | None = None


class HubService(Protocol):
    """External capability able to validate a signed message envelope.

    ``abort_event`` is set once the request needing the answer went away;
    implementations should stop issuing calls when it is set.
    """

    async def validate_message(
        self, message_bytes: bytes, *, abort_event: threading.Event | None = None
    ) -> HubValidationResult:
        """Validate the serialized envelope and return the hub verdict."""


class HubContextService(HubService, Protocol):
    """Hub that also answers social-graph lookups used for hub context."""

    async def is_following(
        self, fid: int, target_fid: int, *, abort_event: threading.Event | None = None
    ) -> bool: ...

    async def has_reacted(
        self,
        fid: int,
        reaction_type: int,
        target_fid: int,
        target_hash: str,
        *,
        abort_event: threading.Event | None = None,
    ) -> bool: ...

    async def get_verified_addresses(
        self, fid: int, *, abort_event: threading.Event | None = None
    ) -> list[str]: ...

    async def get_user_data(
        self, fid: int, *, abort_event: threading.Event | None = None
    ) -> UserData | None: ...


def _retrying(abort_event: threading.Event | None) -> Retrying:
    stop = stop_after_attempt(3)
    options: dict[str, Any] = {}
    if abort_event is not None:
        stop = stop | stop_when_event_set(abort_event)
        # Backoff wakes up as soon as the request is aborted
        options["sleep"] = abort_event.wait
    return Retrying(
        stop=stop,
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        retry=retry_if_exception_type(_RETRYABLE),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
        **options,
    )


class HttpHubService:
    """Hub HTTP API client.

    Blocking ``requests`` calls run in a worker thread so the event loop stays
    free; connection errors and timeouts are retried with exponential backoff.
    Cancelling the awaiting task does not stop the worker thread, so every
    call takes the request ``abort_event`` and no attempt starts once it is set.
    """

    def __init__(
        self,
        hub_http_url: str,
        *,
        api_key: str | None = None,
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ) -> None:
        self._base_url = hub_http_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._session = session or requests.Session()

    @property
    def base_url(self) -> str:
        return self._base_url

    def _headers(self, extra: dict[str, str] | None = None) -> dict[str, str]:
        headers = dict(extra or {})
        if self._api_key:
            headers["api_key"] = self._api_key
        return headers

    def _send(
        self, method: str, url: str, abort_event: threading.Event | None, **kwargs: Any
    ) -> requests.Response:
        if abort_event is not None and abort_event.is_set():
            raise HubRequestAbortedError(f"Hub request {method} {url} aborted")
        logger.debug("Hub request %s %s", method, url)
        return self._session.request(method, url, timeout=self._timeout, **kwargs)

    def _request(
        self,
        method: str,
        path: str,
        *,
        abort_event: threading.Event | None = None,
        **kwargs: Any,
    ) -> requests.Response:
        url = f"{self._base_url}{path}"
        return _retrying(abort_event)(self._send, method, url, abort_event, **kwargs)

    def _validate_message_sync(
        self, message_bytes: bytes, abort_event: threading.Event | None = None
    ) -> HubValidationResult:
        response = self._request(
            "POST",
            "/v1/validateMessage",
            abort_event=abort_event,
            data=message_bytes,
            headers=self._headers({"Content-Type": "application/octet-stream"}),
        )
        if response.status_code >= 500:
            raise HubServiceError(
                f"Hub validateMessage failed with status {response.status_code}"
            )
        try:
            payload = response.json()
        except ValueError:
            logger.warning(
                "Hub returned non-JSON validateMessage response (status %d)", response.status_code
            )
            return HubValidationResult(valid=False)

        if response.status_code >= 400 or not isinstance(payload, dict):
            logger.warning("Hub rejected message: status=%d body=%s", response.status_code, payload)
            return HubValidationResult(valid=False)

        message = payload.get("message")
        return HubValidationResult(
            valid=payload.get("valid") is True,
            message=message if isinstance(message, dict) else None,
        )

    async def validate_message(
        self, message_bytes: bytes, *, abort_event: threading.Event | None = None
    ) -> HubValidationResult:
        return await asyncio.to_thread(self._validate_message_sync, message_bytes, abort_event)

    def _get_json(
        self, path: str, params: dict[str, Any], abort_event: threading.Event | None = None
    ) -> tuple[int, Any]:
        response = self._request(
            "GET", path, abort_event=abort_event, params=params, headers=self._headers()
        )
        try:
            return response.status_code, response.json()
        except ValueError:
            return response.status_code, None

    async def is_following(
        self, fid: int, target_fid: int, *, abort_event: threading.Event | None = None
    ) -> bool:
        status, _ = await asyncio.to_thread(
            self._get_json,
            "/v1/linkById",
            {"fid": fid, "target_fid": target_fid, "link_type": "follow"},
            abort_event,
        )
        return status == 200

    async def has_reacted(
        self,
        fid: int,
        reaction_type: int,
        target_fid: int,
        target_hash: str,
        *,
        abort_event: threading.Event | None = None,
    ) -> bool:
        status, _ = await asyncio.to_thread(
            self._get_json,
            "/v1/reactionById",
            {
                "fid": fid,
                "reaction_type": reaction_type,
                "target_fid": target_fid,
                "target_hash": target_hash,
            },
            abort_event,
        )
        return status == 200

    async def get_verified_addresses(
        self, fid: int, *, abort_event: threading.Event | None = None
    ) -> list[str]:
        status, payload = await asyncio.to_thread(
            self._get_json, "/v1/verificationsByFid", {"fid": fid}, abort_event
        )
        if status != 200 or not isinstance(payload, dict):
            return []
        addresses: list[str] = []
        for message in payload.get("messages") or []:
            body = (message.get("data") or {}).get("verificationAddAddressBody") or (
                message.get("data") or {}
            ).get("verificationAddEthAddressBody")
            if body and body.get("address"):
                addresses.append(body["address"])
        return addresses

    async def get_user_data(
        self, fid: int, *, abort_event: threading.Event | None = None
    ) -> UserData | None:
        status, payload = await asyncio.to_thread(
            self._get_json, "/v1/userDataByFid", {"fid": fid}, abort_event
        )
        if status != 200 or not isinstance(payload, dict):
            return None
        messages = payload.get("messages") or []
        if not messages:
            return None

        latest: dict[str, tuple[int, str]] = {}
        for message in messages:
            data = message.get("data") or {}
            if data.get("type") not in USER_DATA_ADD_MESSAGE_TYPES:
                continue
            body = data.get("userDataBody") or {}
            field_name = _USER_DATA_FIELDS.get(body.get("type"))
            if field_name is None:
                continue
            timestamp = int(data.get("timestamp") or 0)
            if field_name not in latest or latest[field_name][0] <= timestamp:
                latest[field_name] = (timestamp, body.get("value"))

        return UserData(**{name: value for name, (_, value) in latest.items()})


__all__ = [
    "FRAME_ACTION_MESSAGE_TYPES",
    "HttpHubService",
    "HubContextService",
    "HubService",
    "HubValidationResult",
    "UserData",
]
