"""
Configuration schema using Pydantic.

Configuration is loaded from a YAML file, with environment variable
overrides for the most commonly tweaked values.
"""

import os
from pathlib import Path
from typing import Optional, List, Dict, Any

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator


class ConfigurationError(Exception):
    """Raised when configuration is invalid or a required value is missing."""

    def __init__(self, message: str, field: Optional[str] = None, suggestions: Optional[List[str]] = None):
        self.message = message
        self.field = field
        self.suggestions = suggestions or []
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        lines = [self.message]
        if self.field:
            lines.append(f"  Field: {self.field}")
        if self.suggestions:
            lines.append("  Suggestions:")
            for s in self.suggestions:
                lines.append(f"    - {s}")
        return "\n".join(lines)


class SurfaceSettings(BaseModel):
    """Game window surface: size and optional on-screen origin."""

    width: int = Field(default=1024, ge=320, le=7680)
    height: int = Field(default=768, ge=240, le=4320)
    x: Optional[int] = Field(default=None, description="Window X position (auto if unset)")
    y: Optional[int] = Field(default=None, description="Window Y position (auto if unset)")
    auto_detect: bool = Field(default=True, description="Look for the game window by title")

    @model_validator(mode="after")
    def validate_origin(self) -> "SurfaceSettings":
        if (self.x is None) != (self.y is None):
            raise ValueError("surface.x and surface.y must be set together")
        return self

    @property
    def has_origin(self) -> bool:
        return self.x is not None and self.y is not None


class OCRSettings(BaseModel):
    """Text recognizer configuration."""

    lang: str = Field(default="chi_sim+eng", description="Tesseract language(s)")
    tesseract_path: Optional[str] = Field(default=None, description="Path to tesseract executable")
    config: str = Field(default="--oem 3 --psm 7", description="Tesseract config (single text line)")
    timeout_seconds: float = Field(default=5.0, gt=0, le=60)


class DebugSettings(BaseModel):
    """Session recording configuration."""

    enabled: bool = Field(default=False)
    output_dir: str = Field(default="./debug")
    save_region_crops: bool = Field(default=False)

    @model_validator(mode="after")
    def region_crops_imply_enabled(self) -> "DebugSettings":
        if self.save_region_crops:
            self.enabled = True
        return self

    @property
    def output_path(self) -> Path:
        return Path(self.output_dir).expanduser()


class HotkeySettings(BaseModel):
    """Global hotkey bindings."""

    capture: str = Field(default="F3")

    @field_validator("capture")
    @classmethod
    def validate_accelerator(cls, value: str) -> str:
        modifiers = {"ctrl", "control", "alt", "shift"}
        keys = [p for p in value.split("+") if p and p.lower() not in modifiers]
        if not keys:
            raise ValueError(f"hotkey '{value}' has no non-modifier key")
        return value


class ScoutConfig(BaseModel):
    """Root configuration for TFT Scout."""

    surface: SurfaceSettings = Field(default_factory=SurfaceSettings)
    ocr: OCRSettings = Field(default_factory=OCRSettings)
    debug: DebugSettings = Field(default_factory=DebugSettings)
    hotkeys: HotkeySettings = Field(default_factory=HotkeySettings)
    log_level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR)$")


def get_default_config_path() -> Path:
    """Get default config file path."""
    return Path.home() / ".tft-scout" / "config.yaml"


def load_config(config_path: Optional[str] = None) -> ScoutConfig:
    """
    Load configuration from YAML file.

    Falls back to defaults if the default file doesn't exist.
    Environment variables override file values.

    Args:
        config_path: Path to config file (optional)

    Returns:
        Loaded configuration

    Raises:
        ConfigurationError: If the config file is missing or invalid
    """
    if config_path:
        path = Path(config_path)
        if not path.exists():
            raise ConfigurationError(
                f"Config file not found: {path}",
                suggestions=[
                    f"Create the config file at {path}",
                    "Or run without --config to use defaults",
                ]
            )
    else:
        path = get_default_config_path()

    data: Dict[str, Any] = {}

    if path.exists():
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            mark = getattr(e, "problem_mark", None)
            raise ConfigurationError(
                f"Invalid YAML in config file: {path}",
                suggestions=[
                    f"Check syntax at line {mark.line + 1 if mark else 'unknown'}",
                    "Use a YAML validator to check your config",
                ]
            ) from e

    data = _deep_merge(data, _get_env_overrides())

    try:
        return ScoutConfig(**data)
    except Exception as e:
        raise ConfigurationError(
            f"Invalid configuration: {e}",
            suggestions=["Check field names and values in your config"],
        ) from e


def _get_env_overrides() -> Dict[str, Any]:
    """Get configuration overrides from environment variables."""
    overrides: Dict[str, Any] = {}

    env_mappings = {
        "TFT_SCOUT_WIDTH": ("surface", "width"),
        "TFT_SCOUT_HEIGHT": ("surface", "height"),
        "TFT_SCOUT_OCR_LANG": ("ocr", "lang"),
        "TFT_SCOUT_TESSERACT": ("ocr", "tesseract_path"),
        "TFT_SCOUT_DEBUG_DIR": ("debug", "output_dir"),
        "TFT_SCOUT_HOTKEY": ("hotkeys", "capture"),
    }

    for env_key, (section, field) in env_mappings.items():
        value: Any = os.environ.get(env_key)
        if value:
            if value.isdigit():
                value = int(value)
            overrides.setdefault(section, {})[field] = value

    return overrides


def _deep_merge(base: Dict, overlay: Dict) -> Dict:
    """Deep merge two dictionaries."""
    result = base.copy()
    for key, value in overlay.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def save_config(config: ScoutConfig, config_path: Optional[str] = None) -> Path:
    """Save configuration to YAML file."""
    path = Path(config_path) if config_path else get_default_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(config.model_dump(), f, default_flow_style=False)

    return path
