"""Configuration management for segmentation replay."""

import os
from dataclasses import dataclass


# Label groups drawn on the overlay
TRAFFIC_LIGHT_LABELS = {"traffic light", "traffic_light"}
VEHICLE_LABELS = {"car", "truck", "bus", "motorcycle", "bicycle"}

# Analysis constants
DEFAULT_CROP_FRACTION = 0.20
DEFAULT_MODEL_INPUT_WIDTH = 640
DEFAULT_SAMPLING_INTERVAL = 0.2
DEFAULT_DURATION_CAP = 15.0
SAMPLING_EPSILON = 0.1

# Playback cadence (one tick per display refresh at 60Hz)
DEFAULT_TICK_INTERVAL = 1.0 / 60.0

DEFAULT_MODEL_ID = "nvidia/segformer-b1-finetuned-cityscapes-1024-1024"


def _get_bool_env(key: str, default: bool = False) -> bool:
    """Get boolean from environment variable."""
    val = os.environ.get(key, str(default)).lower()
    return val in ("true", "1", "yes", "on")


def _get_int_env(key: str, default: int) -> int:
    """Get integer from environment variable."""
    try:
        return int(os.environ.get(key, str(default)))
    except ValueError:
        return default


def _get_optional_int_env(key: str) -> int | None:
    """Get optional integer from environment variable (unset or invalid -> None)."""
    raw = os.environ.get(key)
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def _get_float_env(key: str, default: float) -> float:
    """Get float from environment variable."""
    try:
        return float(os.environ.get(key, str(default)))
    except ValueError:
        return default


@dataclass
class ReplayConfig:
    """Configuration for one analysis + playback session."""
    # Analysis
    crop_fraction: float = DEFAULT_CROP_FRACTION
    model_input_width: int = DEFAULT_MODEL_INPUT_WIDTH
    sampling_interval: float = DEFAULT_SAMPLING_INTERVAL
    duration_cap: float = DEFAULT_DURATION_CAP
    epsilon: float = SAMPLING_EPSILON
    max_consecutive_failures: int | None = None

    # Playback
    tick_interval: float = DEFAULT_TICK_INTERVAL
    auto_play: bool = True

    # Segmenter
    model_id: str = DEFAULT_MODEL_ID
    device: str = "auto"
    segmenter_url: str | None = None
    segmenter_timeout_seconds: float = 30.0

    @classmethod
    def from_env(cls) -> "ReplayConfig":
        """Load configuration from environment variables."""
        # Try to load .env file if python-dotenv is available
        try:
            from dotenv import load_dotenv
            load_dotenv()
        except ImportError:
            pass

        return cls(
            # Analysis
            crop_fraction=_get_float_env("SEGMENT_REPLAY_CROP_FRACTION", DEFAULT_CROP_FRACTION),
            model_input_width=_get_int_env("SEGMENT_REPLAY_MODEL_INPUT_WIDTH", DEFAULT_MODEL_INPUT_WIDTH),
            sampling_interval=_get_float_env("SEGMENT_REPLAY_SAMPLING_INTERVAL", DEFAULT_SAMPLING_INTERVAL),
            duration_cap=_get_float_env("SEGMENT_REPLAY_DURATION_CAP", DEFAULT_DURATION_CAP),
            max_consecutive_failures=_get_optional_int_env("SEGMENT_REPLAY_MAX_CONSECUTIVE_FAILURES"),

            # Playback
            tick_interval=_get_float_env("SEGMENT_REPLAY_TICK_INTERVAL", DEFAULT_TICK_INTERVAL),
            auto_play=_get_bool_env("SEGMENT_REPLAY_AUTO_PLAY", True),

            # Segmenter
            model_id=os.environ.get("SEGMENT_REPLAY_MODEL_ID", DEFAULT_MODEL_ID),
            device=os.environ.get("SEGMENT_REPLAY_DEVICE", "auto"),
            segmenter_url=os.environ.get("SEGMENT_REPLAY_SEGMENTER_URL") or None,
            segmenter_timeout_seconds=_get_float_env("SEGMENT_REPLAY_SEGMENTER_TIMEOUT", 30.0),
        )

    def validate(self) -> list[str]:
        """Validate configuration and return list of errors."""
        errors = []

        if not 0.0 <= self.crop_fraction < 1.0:
            errors.append(f"Invalid crop fraction: {self.crop_fraction}")

        if self.model_input_width <= 0:
            errors.append(f"Invalid model input width: {self.model_input_width}")

        if self.sampling_interval <= 0:
            errors.append(f"Invalid sampling interval: {self.sampling_interval}")

        if self.duration_cap <= 0:
            errors.append(f"Invalid duration cap: {self.duration_cap}")

        if self.tick_interval <= 0:
            errors.append(f"Invalid tick interval: {self.tick_interval}")

        if self.max_consecutive_failures is not None and self.max_consecutive_failures < 1:
            errors.append(f"Invalid max consecutive failures: {self.max_consecutive_failures}")

        return errors

    def print_config(self) -> None:
        """Print current configuration."""
        print("\n" + "=" * 60)
        print("Segment Replay Configuration")
        print("=" * 60)
        print(f"  Crop Fraction:    {self.crop_fraction}")
        print(f"  Model Width:      {self.model_input_width}")
        print(f"  Interval:         {self.sampling_interval}s")
        print(f"  Duration Cap:     {self.duration_cap}s")
        print()
        print("Segmenter:")
        if self.segmenter_url:
            print(f"  Remote URL:       {self.segmenter_url}")
        else:
            print(f"  Model:            {self.model_id}")
            print(f"  Device:           {self.device}")
        print("=" * 60 + "\n")


def get_device(preference: str = "auto") -> str:
    """Determine device to use based on preference and availability."""
    if preference == "auto":
        try:
            import torch
            return "cuda" if torch.cuda.is_available() else "cpu"
        except ImportError:
            return "cpu"
    return preference


# Global config instance (lazy loaded)
_config: ReplayConfig | None = None


def get_config() -> ReplayConfig:
    """Get global configuration instance."""
    global _config
    if _config is None:
        _config = ReplayConfig.from_env()
    return _config


def reload_config() -> ReplayConfig:
    """Reload configuration from environment."""
    global _config
    _config = ReplayConfig.from_env()
    return _config
