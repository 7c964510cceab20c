"""
Configuration module for kapture export.

Handles loading and validation of export options from YAML files.
"""

import yaml
from pathlib import Path
from dataclasses import dataclass, field
from typing import Optional, Tuple
import logging

logger = logging.getLogger(__name__)

KAPTURE_FORMAT_VERSION = "1.0"


@dataclass
class FormatOptions:
    """
    Text formatting of the kapture files.

    Both options are passed to every writer explicitly so the output does
    not depend on locale or interpreter state.
    """
    separator: str = ", "  # Field separator, kapture 1.0 uses comma-space
    precision: Optional[int] = None  # Digits after the decimal point, None for shortest round-trip


@dataclass
class ExportConfig:
    """
    Main configuration class for kapture export.

    Attributes:
        format: Text formatting options
        colorize_points: Sample landmark colors from the source images
        default_point_color: RGB color used when a landmark cannot be sampled
        show_progress: Display progress bars while writing
    """
    format: FormatOptions = field(default_factory=FormatOptions)
    colorize_points: bool = True
    default_point_color: Tuple[int, int, int] = (255, 255, 255)
    show_progress: bool = True

    def __post_init__(self):
        if not self.format.separator:
            raise ValueError("Field separator must not be empty")
        if self.format.precision is not None and self.format.precision < 0:
            raise ValueError(f"Precision must be non-negative, got {self.format.precision}")
        color = tuple(int(c) for c in self.default_point_color)
        if len(color) != 3 or not all(0 <= c <= 255 for c in color):
            raise ValueError(f"Default point color must be three values in [0, 255], got {color}")
        self.default_point_color = color

    @classmethod
    def from_yaml(cls, config_path: str) -> "ExportConfig":
        """
        Load configuration from a YAML file.

        Args:
            config_path: Path to the YAML configuration file

        Returns:
            ExportConfig object with loaded parameters

        Example YAML structure:
            format:
              separator: ", "
              precision: 12
            colorize_points: true
            default_point_color: [255, 255, 255]
            show_progress: false
        """
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(path, 'r') as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ValueError(f"Configuration file {config_path} must contain a mapping")

        logger.info(f"Loading configuration from {config_path}")

        fmt_data = data.get('format', {}) or {}
        fmt = FormatOptions(
            separator=fmt_data.get('separator', ", "),
            precision=fmt_data.get('precision'),
        )

        return cls(
            format=fmt,
            colorize_points=bool(data.get('colorize_points', True)),
            default_point_color=tuple(data.get('default_point_color', (255, 255, 255))),
            show_progress=bool(data.get('show_progress', True)),
        )

    def to_yaml(self, config_path: str) -> None:
        """Save configuration to a YAML file."""
        data = {
            'format': {
                'separator': self.format.separator,
                'precision': self.format.precision,
            },
            'colorize_points': self.colorize_points,
            'default_point_color': list(self.default_point_color),
            'show_progress': self.show_progress,
        }

        with open(config_path, 'w') as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

        logger.info(f"Configuration saved to {config_path}")
