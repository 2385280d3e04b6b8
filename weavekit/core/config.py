"""Configuration management for weavekit."""

from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ApiSettings(BaseSettings):
    """Remote weave service settings."""

    base_url: str = Field(default="http://localhost:8000/api/v1", alias="WEAVE_API_URL")
    timeout: float = Field(default=30.0, alias="WEAVE_API_TIMEOUT")
    connect_timeout: float = Field(default=10.0, alias="WEAVE_API_CONNECT_TIMEOUT")
    token: Optional[str] = Field(default=None, alias="WEAVE_API_TOKEN")

    @property
    def headers(self) -> dict[str, str]:
        """Default request headers."""
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers


class GraphSettings(BaseSettings):
    """Graph cache, focus and viewport tuning."""

    clustering_enabled: bool = Field(default=True, alias="WEAVE_CLUSTERING_ENABLED")

    # Camera focus (distance units of the rendering scene)
    focus_min_radius: float = Field(default=20.0, alias="WEAVE_FOCUS_MIN_RADIUS")
    focus_padding: float = Field(default=1.6, alias="WEAVE_FOCUS_PADDING")
    focus_default_radius: float = Field(default=80.0, alias="WEAVE_FOCUS_DEFAULT_RADIUS")
    focus_empty_radius: float = Field(default=60.0, alias="WEAVE_FOCUS_EMPTY_RADIUS")
    composer_radius_scale: float = Field(default=18.0, alias="WEAVE_COMPOSER_RADIUS_SCALE")

    # Fraction of the last sampled radius the camera may drift before a new segment is loaded
    segment_reload_ratio: float = Field(default=0.5, alias="WEAVE_SEGMENT_RELOAD_RATIO")


class Settings(BaseSettings):
    """Main weavekit settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Sub-settings
    api: ApiSettings = Field(default_factory=ApiSettings)
    graph: GraphSettings = Field(default_factory=GraphSettings)

    # Paths
    project_root: Path = Field(default_factory=lambda: Path(__file__).parent.parent.parent)

    @property
    def config_dir(self) -> Path:
        """Get config directory."""
        return self.project_root / "config"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


DEFAULT_SEGMENT_PRESETS: dict[str, Any] = {
    "viewport": {"limit": 400, "depth": 1},
}


def load_segment_presets(path: Optional[Path] = None) -> dict[str, Any]:
    """
    Load segment query presets from YAML.

    Args:
        path: Preset file (defaults to config/segment-presets.yaml)

    Returns:
        Mapping of preset name to query option defaults. Built-in defaults
        are used for any preset the file does not define, or when the file
        does not exist.
    """
    if path is None:
        path = get_settings().config_dir / "segment-presets.yaml"

    presets = {name: dict(values) for name, values in DEFAULT_SEGMENT_PRESETS.items()}
    try:
        with open(path) as f:
            loaded = yaml.safe_load(f) or {}
    except FileNotFoundError:
        return presets

    for name, values in (loaded.get("presets") or {}).items():
        presets.setdefault(name, {}).update(values or {})
    return presets
