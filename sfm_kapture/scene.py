"""
Scene model for a completed Structure-from-Motion reconstruction.

The scene is a read-only snapshot holding:
    - Camera intrinsics, keyed by intrinsic id
    - Views (one per image), keyed by view id
    - Poses (world-to-camera rigid transforms), keyed by pose id
    - Landmarks (triangulated 3D points with their image observations)

Intrinsic Families:
    Intrinsics form a closed family of dataclasses, one per supported
    source camera model plus a catch-all for every other model:

        PinholeIntrinsic            f, cx, cy
        PinholeRadialK1Intrinsic    f, cx, cy, k1
        PinholeRadialK3Intrinsic    f, cx, cy, k1, k2, k3
        PinholeFisheyeIntrinsic     f, cx, cy, k1, k2, k3, k4
        UnsupportedIntrinsic        source model name and raw parameters

Pose Convention:
    X_camera = R @ X_world + t

    The source stores the camera center C instead of t; the two are
    related by t = -R @ C.
"""

import numpy as np
from typing import Dict, List, Optional, Tuple
from dataclasses import dataclass, field
import logging

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Intrinsic:
    """Common part of every camera intrinsic."""
    id: int
    width: int  # Image width in pixels
    height: int  # Image height in pixels

    MODEL_NAME = "unknown"

    @property
    def model_name(self) -> str:
        """Name of the camera model in the source scene."""
        return type(self).MODEL_NAME


@dataclass(frozen=True)
class PinholeIntrinsic(Intrinsic):
    """Pinhole camera with a single focal length and no distortion."""
    focal: float  # Focal length in pixels
    cx: float  # Principal point x (pixels)
    cy: float  # Principal point y (pixels)

    MODEL_NAME = "pinhole"


@dataclass(frozen=True)
class PinholeRadialK1Intrinsic(PinholeIntrinsic):
    """Pinhole camera with one radial distortion coefficient."""
    k1: float

    MODEL_NAME = "pinhole_radial_k1"


@dataclass(frozen=True)
class PinholeRadialK3Intrinsic(PinholeIntrinsic):
    """Pinhole camera with three radial distortion coefficients."""
    k1: float
    k2: float
    k3: float

    MODEL_NAME = "pinhole_radial_k3"


@dataclass(frozen=True)
class PinholeFisheyeIntrinsic(PinholeIntrinsic):
    """Pinhole camera with the four-coefficient fisheye distortion model."""
    k1: float
    k2: float
    k3: float
    k4: float

    MODEL_NAME = "fisheye"


@dataclass(frozen=True)
class UnsupportedIntrinsic(Intrinsic):
    """Any camera model outside the supported families."""
    source_model: str
    params: Tuple[float, ...] = ()

    @property
    def model_name(self) -> str:
        return self.source_model


@dataclass(frozen=True, eq=False)
class Pose:
    """
    World-to-camera rigid transform.

    Attributes:
        rotation: 3x3 orthonormal rotation matrix R
        translation: Translation vector t, so that X_cam = R @ X_world + t
    """
    rotation: np.ndarray
    translation: np.ndarray

    def __post_init__(self):
        rotation = np.asarray(self.rotation, dtype=np.float64)
        translation = np.asarray(self.translation, dtype=np.float64).reshape(3)
        if rotation.shape != (3, 3):
            raise ValueError(f"Rotation must be 3x3, got shape {rotation.shape}")
        object.__setattr__(self, 'rotation', rotation)
        object.__setattr__(self, 'translation', translation)

    @classmethod
    def from_center(cls, rotation: np.ndarray, center: np.ndarray) -> "Pose":
        """Build a pose from a rotation and the camera center in world frame."""
        rotation = np.asarray(rotation, dtype=np.float64)
        center = np.asarray(center, dtype=np.float64).reshape(3)
        return cls(rotation=rotation, translation=-rotation @ center)

    @property
    def center(self) -> np.ndarray:
        """Camera center in world coordinates (C = -R^T @ t)."""
        return -self.rotation.T @ self.translation


@dataclass(frozen=True)
class View:
    """One captured image with its camera reference and optional pose."""
    id: int
    intrinsic_id: Optional[int]
    image_path: str  # Relative to the scene root path
    pose_id: Optional[int] = None
    width: int = 0
    height: int = 0


@dataclass(frozen=True)
class Observation:
    """Measurement of a landmark in one view."""
    feature_id: int
    x: float  # Pixel coordinate (origin top-left)
    y: float


@dataclass(frozen=True, eq=False)
class Landmark:
    """A triangulated 3D point and the views that observe it."""
    id: int
    position: np.ndarray
    observations: Dict[int, Observation] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(
            self, 'position', np.asarray(self.position, dtype=np.float64).reshape(3)
        )


@dataclass
class SceneData:
    """
    Read-only accessor over a loaded reconstruction.

    Collections are plain dictionaries keyed by id. Iteration helpers
    return entities in ascending id order so exports are deterministic.
    """
    root_path: str = ""
    intrinsics: Dict[int, Intrinsic] = field(default_factory=dict)
    views: Dict[int, View] = field(default_factory=dict)
    poses: Dict[int, Pose] = field(default_factory=dict)
    landmarks: Dict[int, Landmark] = field(default_factory=dict)

    def sorted_intrinsics(self) -> List[Intrinsic]:
        return [self.intrinsics[k] for k in sorted(self.intrinsics)]

    def sorted_views(self) -> List[View]:
        return [self.views[k] for k in sorted(self.views)]

    def sorted_landmarks(self) -> List[Landmark]:
        return [self.landmarks[k] for k in sorted(self.landmarks)]

    def get_intrinsic(self, view: View) -> Optional[Intrinsic]:
        """Get the intrinsic referenced by a view, if it exists."""
        if view.intrinsic_id is None:
            return None
        return self.intrinsics.get(view.intrinsic_id)

    def is_pose_defined(self, view: View) -> bool:
        """True if both the pose and the intrinsic of the view exist."""
        return (
            view.pose_id is not None
            and view.pose_id in self.poses
            and self.get_intrinsic(view) is not None
        )

    def get_pose(self, view: View) -> Pose:
        """
        Get the pose of a view.

        Raises:
            KeyError: If the view has no defined pose
        """
        if view.pose_id is None or view.pose_id not in self.poses:
            raise KeyError(f"View {view.id} has no pose")
        return self.poses[view.pose_id]

    def image_path(self, view: View) -> str:
        """Image path of a view prefixed with the scene root path."""
        return self.root_path + view.image_path

    def find_dangling_references(self) -> List[View]:
        """Views whose intrinsic reference is undefined or missing."""
        return [v for v in self.sorted_views() if self.get_intrinsic(v) is None]

    def get_statistics(self) -> Dict[str, int]:
        """Get summary statistics about the scene."""
        return {
            'num_intrinsics': len(self.intrinsics),
            'num_views': len(self.views),
            'num_poses': len(self.poses),
            'num_posed_views': sum(1 for v in self.views.values() if self.is_pose_defined(v)),
            'num_landmarks': len(self.landmarks),
        }
