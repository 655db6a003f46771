from __future__ import annotations

from dataclasses import dataclass

from framekit.core.types import JsonValue
from framekit.farcaster.hub import HttpHubService, HubService
from framekit.settings import Settings, get_settings


@dataclass(slots=True)
class FramesConfig:
    """Explicit configuration of a frames pipeline.

    Built once and passed to :func:`framekit.dispatcher.create_frames`; the
    pipeline never reads environment settings on its own.
    """

    hub: HubService | None = None
    validate_messages: bool = True
    # Public origin, used instead of the request origin when set
    base_url: str | None = None
    base_path: str = "/"
    initial_state: JsonValue = None
    state_signing_secret: str | None = None
    images_secret: str | None = None
    debug: bool = False

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        *,
        initial_state: JsonValue = None,
        hub: HubService | None = None,
    ) -> FramesConfig:
        settings = settings or get_settings()
        if hub is None and settings.hub_enabled:
            hub = HttpHubService(
                settings.hub_http_url or "",
                api_key=settings.hub_api_key,
                timeout=settings.hub_timeout_seconds,
            )
        return cls(
            hub=hub,
            validate_messages=settings.validate_messages,
            base_url=settings.base_url,
            base_path=settings.base_path,
            initial_state=initial_state,
            state_signing_secret=settings.state_signing_secret,
            images_secret=settings.images_secret,
            debug=settings.development_mode,
        )


__all__ = ["FramesConfig"]
