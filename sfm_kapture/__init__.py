"""
SfM to kapture export package

A Python package to export a completed Structure-from-Motion reconstruction
(openMVG scene) to the kapture directory-based text format used by visual
localization toolkits.

Export Chain:
    sfm_data.json → SceneData → {camera models, quaternions, colors} → kapture files

Conventions:
    - Poses are world-to-camera, exported unchanged as quaternion + translation
    - Quaternions are scalar-first (qw, qx, qy, qz)
    - View ids are used as record timestamps

Supported Camera Models:
    - pinhole            → SIMPLE_PINHOLE
    - pinhole_radial_k1  → SIMPLE_RADIAL
    - pinhole_radial_k3  → FULL_OPENCV
    - fisheye            → OPENCV_FISHEYE
"""

from .config import ExportConfig, FormatOptions
from .errors import (
    KaptureExportError,
    SceneLoadError,
    UnsupportedCameraModel,
    DanglingIntrinsicReference,
    FileWriteError,
    DirectoryAccessError,
    ColorizationError,
)
from .scene import (
    SceneData,
    Intrinsic,
    PinholeIntrinsic,
    PinholeRadialK1Intrinsic,
    PinholeRadialK3Intrinsic,
    PinholeFisheyeIntrinsic,
    UnsupportedIntrinsic,
    View,
    Pose,
    Landmark,
    Observation,
)
from .camera_models import CameraParameters, translate_intrinsic
from .transforms import rotation_matrix_to_quaternion, quaternion_to_rotation_matrix
from .colorization import TrackColorizer, ConstantColorizer
from .kapture_writer import KaptureWriter, format_number
from .sfm_data_loader import SfMDataLoader, load_sfm_data
from .exporter import KaptureExporter, ExportReport, run_export

__version__ = "1.0.0"
__all__ = [
    "ExportConfig",
    "FormatOptions",
    "KaptureExportError",
    "SceneLoadError",
    "UnsupportedCameraModel",
    "DanglingIntrinsicReference",
    "FileWriteError",
    "DirectoryAccessError",
    "ColorizationError",
    "SceneData",
    "Intrinsic",
    "PinholeIntrinsic",
    "PinholeRadialK1Intrinsic",
    "PinholeRadialK3Intrinsic",
    "PinholeFisheyeIntrinsic",
    "UnsupportedIntrinsic",
    "View",
    "Pose",
    "Landmark",
    "Observation",
    "CameraParameters",
    "translate_intrinsic",
    "rotation_matrix_to_quaternion",
    "quaternion_to_rotation_matrix",
    "TrackColorizer",
    "ConstantColorizer",
    "KaptureWriter",
    "format_number",
    "SfMDataLoader",
    "load_sfm_data",
    "KaptureExporter",
    "ExportReport",
    "run_export",
]
