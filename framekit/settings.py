from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    # Hub used to validate signed frame actions
    hub_http_url: str | None = Field(default="https://hub.pinata.cloud", alias="FRAMES_HUB_HTTP_URL")
    hub_api_key: str | None = Field(default=None, alias="FRAMES_HUB_API_KEY")
    hub_timeout_seconds: float = Field(default=10.0, alias="FRAMES_HUB_TIMEOUT_SECONDS")
    validate_messages: bool = Field(default=True, alias="FRAMES_VALIDATE_MESSAGES")
    # Public origin of the frames server, when it differs from the request URL (proxies)
    base_url: str | None = Field(default=None, alias="FRAMES_BASE_URL")
    # All relative frame targets resolve against this path
    base_path: str = Field(default="/", alias="FRAMES_BASE_PATH")
    state_signing_secret: str | None = Field(default=None, alias="FRAMES_STATE_SIGNING_SECRET")
    images_secret: str | None = Field(default=None, alias="FRAMES_IMAGES_SECRET")
    development_mode: bool = Field(default=False, alias="DEVELOPMENT_MODE")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def hub_enabled(self) -> bool:
        """Hub validation needs both the flag and a hub URL."""
        return self.validate_messages and bool((self.hub_http_url or "").strip())


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()  # type: ignore[call-arg]


def is_development_mode() -> bool:
    """True only when ``DEVELOPMENT_MODE=true`` is set."""
    return bool(get_settings().development_mode)
