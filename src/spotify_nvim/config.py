"""Bridge configuration via pydantic-settings."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings


def _default_token_file() -> str:
    return str(Path.home() / ".spotify_nvim_tokens")


def _default_log_file() -> str:
    return str(Path.home() / ".cache" / "spotify-nvim" / "spotify-nvim.log")


class BridgeSettings(BaseSettings):
    # Token cache (overridable per session by the `config` notification)
    token_file_path: str = Field(default_factory=_default_token_file)

    # Spotify OAuth app settings
    redirect_uri: str = "http://localhost:8888/callback"
    scope: str = "user-modify-playback-state"
    http_timeout: float = 30.0

    # Logging. stdout carries the RPC stream, so logs go to a file.
    log_level: str = "WARNING"
    log_file: str | None = Field(default_factory=_default_log_file)

    model_config = {"env_prefix": "SPOTIFY_NVIM_", "env_file": ".env", "extra": "ignore"}

    @property
    def token_path(self) -> Path:
        return Path(self.token_file_path).expanduser()

    @property
    def scopes(self) -> list[str]:
        return [s for s in self.scope.split() if s]


settings = BridgeSettings()
