"""
Configuration management for the mood stabilizer.

This module provides the StabilizerConfig dataclass plus configuration
file loading and saving, supporting YAML and JSON formats.
"""

import json
import logging
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .expression import FacePolicy

logger = logging.getLogger(__name__)

# Default config file locations
DEFAULT_CONFIG_PATHS = [
    Path("mood_stabilizer.yaml"),
    Path("mood_stabilizer.json"),
    Path.home() / ".config" / "mood_stabilizer" / "config.yaml",
    Path.home() / ".config" / "mood_stabilizer" / "config.json",
]


@dataclass
class StabilizerConfig:
    """Runtime settings.

    Attributes:
        camera_id: Camera device ID
        frame_width: Requested capture width
        frame_height: Requested capture height
        canvas_width: Window width used until the window reports its size
        canvas_height: Window height used until the window reports its size
        max_faces: Maximum faces tracked by the landmarker
        refine_landmarks: Refined lip/iris landmarks (always on; false logs a warning)
        mirror_input: Flip frames horizontally before tracking
        min_detection_confidence: Face detection threshold [0, 1]
        model_path: Path to face_landmarker.task (downloaded if None)
        messages_path: Message file (bundled set if None)
        min_interval_ms: Minimum delay between posted messages
        max_interval_ms: Maximum delay between posted messages
        feed_capacity: Maximum number of messages kept in the feed
        clamp_expression: Limit the expression index to [-0.9, 0.9]
        face_policy: "first", "last" or "average" when several faces are seen
        window_half_width: Half width of the sentiment window
        target_fps: Target frames per second for the display loop
        window_name: Title of the display window
        username: Header text drawn at the top of the overlay
        seed: Random seed for the post scheduler (None = nondeterministic)
    """
    camera_id: int = 0
    frame_width: int = 1280
    frame_height: int = 720
    canvas_width: int = 1280
    canvas_height: int = 720
    max_faces: int = 1
    refine_landmarks: bool = True
    mirror_input: bool = False
    min_detection_confidence: float = 0.5
    model_path: Optional[str] = None
    messages_path: Optional[str] = None
    min_interval_ms: float = 500.0
    max_interval_ms: float = 2500.0
    feed_capacity: int = 100
    clamp_expression: bool = True
    face_policy: str = FacePolicy.FIRST.value
    window_half_width: float = 0.1
    target_fps: float = 30.0
    window_name: str = "Mood Stabilizer"
    username: str = "Username"
    seed: Optional[int] = None

    def __post_init__(self) -> None:
        # Validates and normalizes (raises ValueError on unknown policy)
        self.face_policy = FacePolicy(self.face_policy).value
        if self.min_interval_ms > self.max_interval_ms:
            raise ValueError(
                f"min_interval_ms {self.min_interval_ms} exceeds "
                f"max_interval_ms {self.max_interval_ms}"
            )
        if self.feed_capacity < 1:
            raise ValueError(f"feed_capacity must be >= 1, got {self.feed_capacity}")
        if self.target_fps <= 0:
            raise ValueError(f"target_fps must be > 0, got {self.target_fps}")


def load_config(
    config_path: Optional[Union[str, Path]] = None
) -> StabilizerConfig:
    """
    Load configuration from file.

    Supports YAML and JSON formats. If no path is specified, searches
    default locations.

    Args:
        config_path: Path to config file, or None to search defaults

    Returns:
        StabilizerConfig instance

    Raises:
        FileNotFoundError: If an explicit config path does not exist
        ValueError: If config file is invalid
    """
    if config_path is not None:
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
    else:
        path = None
        for default_path in DEFAULT_CONFIG_PATHS:
            if default_path.exists():
                path = default_path
                break

        if path is None:
            logger.info("No config file found, using defaults")
            return StabilizerConfig()

    logger.info(f"Loading config from {path}")

    try:
        with open(path, 'r') as f:
            if path.suffix in ('.yaml', '.yml'):
                try:
                    import yaml
                except ImportError:
                    raise ImportError(
                        "PyYAML not installed. Install with: pip install pyyaml"
                    )
                data = yaml.safe_load(f)
            else:
                data = json.load(f)
    except ImportError:
        raise
    except Exception as e:
        raise ValueError(f"Failed to parse config file: {e}")

    return _dict_to_config(data or {})


def save_config(
    config: StabilizerConfig,
    config_path: Union[str, Path],
    format: str = "auto"
) -> None:
    """
    Save configuration to file.

    Args:
        config: Configuration to save
        config_path: Output file path
        format: "yaml", "json", or "auto" (detect from extension)
    """
    path = Path(config_path)

    if format == "auto":
        if path.suffix in ('.yaml', '.yml'):
            format = "yaml"
        else:
            format = "json"

    data = _config_to_dict(config)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, 'w') as f:
        if format == "yaml":
            try:
                import yaml
            except ImportError:
                raise ImportError(
                    "PyYAML not installed. Install with: pip install pyyaml"
                )
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
        else:
            json.dump(data, f, indent=2)

    logger.info(f"Saved config to {path}")


def _dict_to_config(data: Dict[str, Any]) -> StabilizerConfig:
    """Convert dictionary to StabilizerConfig, ignoring unknown keys."""
    if not isinstance(data, dict):
        raise ValueError(f"Config must be a mapping, got {type(data).__name__}")

    known = {f.name for f in fields(StabilizerConfig)}
    unknown = set(data) - known
    if unknown:
        logger.warning(f"Ignoring unknown config keys: {sorted(unknown)}")

    return StabilizerConfig(**{k: v for k, v in data.items() if k in known})


def _config_to_dict(config: StabilizerConfig) -> Dict[str, Any]:
    """Convert StabilizerConfig to dictionary."""
    return asdict(config)


def create_default_config(output_path: Union[str, Path]) -> None:
    """
    Create a default configuration file with comments.

    Args:
        output_path: Path to write the config file
    """
    path = Path(output_path)

    if path.suffix in ('.yaml', '.yml'):
        content = """# Mood Stabilizer Configuration
# =============================

# Camera device ID (usually 0 for built-in camera)
camera_id: 0

# Requested capture size
frame_width: 1280
frame_height: 720

# Window size used until the window reports its own
canvas_width: 1280
canvas_height: 720

# Face tracking
max_faces: 1
# The Tasks landmarker always returns the refined 478-point mesh;
# false only logs a warning
refine_landmarks: true
mirror_input: false
min_detection_confidence: 0.5

# Path to face_landmarker.task (null = download on first run)
model_path: null

# Message file, JSON or YAML list of {text, sentiment} (null = bundled set)
messages_path: null

# Delay between posted messages, drawn uniformly (milliseconds)
min_interval_ms: 500.0
max_interval_ms: 2500.0

# Messages kept in the feed before the oldest is dropped
feed_capacity: 100

# Limit the expression index to [-0.9, 0.9]
clamp_expression: true

# Multiple faces: first, last or average
face_policy: first

# Half width of the accepted sentiment band
window_half_width: 0.1

# Display loop
target_fps: 30.0
window_name: Mood Stabilizer
username: Username

# Random seed for message timing and picks (null = random)
seed: null
"""
    else:
        content = json.dumps(_config_to_dict(StabilizerConfig()), indent=2)

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        f.write(content)

    logger.info(f"Created default config at {path}")
