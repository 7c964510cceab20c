"""
Loader for openMVG scene files (sfm_data.json).

openMVG serializes its scene with cereal. The parts used here are:

    {
      "sfm_data_version": "0.3",
      "root_path": "/data/images/",
      "views": [
        {"key": 0, "value": {"polymorphic_id": 1073741824,
                             "ptr_wrapper": {"id": 2147483649, "data": {
                                 "local_path": "", "filename": "a.jpg",
                                 "width": 1920, "height": 1080,
                                 "id_view": 0, "id_intrinsic": 0, "id_pose": 0}}}}
      ],
      "intrinsics": [
        {"key": 0, "value": {"polymorphic_id": 2147483649,
                             "polymorphic_name": "pinhole_radial_k3",
                             "ptr_wrapper": {"id": 2147483650, "data": {
                                 "width": 1920, "height": 1080,
                                 "focal_length": 1000.0,
                                 "principal_point": [960.0, 540.0],
                                 "disto_k3": [0.01, -0.002, 0.0001]}}}}
      ],
      "extrinsics": [
        {"key": 0, "value": {"rotation": [[...], [...], [...]], "center": [...]}}
      ],
      "structure": [
        {"key": 0, "value": {"X": [x, y, z],
                             "observations": [{"key": 0, "value": {"id_feat": 12, "x": [u, v]}}]}}
      ]
    }

Cereal Conventions:
    - A polymorphic type name is written only on its first occurrence, with
      the high bit set in polymorphic_id. Later entries of the same type
      carry only the id (without the high bit).
    - A shared pointer is written in full the first time (high bit set in
      ptr_wrapper.id); later references carry only the id.
"""

import json
import numpy as np
from pathlib import Path
from typing import Any, Dict, List, Optional
import logging

from .camera_models import is_supported
from .errors import SceneLoadError
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
from .transforms import validate_rotation_matrix

logger = logging.getLogger(__name__)

UNDEFINED_INDEX = 4294967295  # std::numeric_limits<uint32_t>::max()
CEREAL_NEW_FLAG = 0x80000000
CEREAL_ID_MASK = 0x7FFFFFFF

# Keys holding the distortion coefficients of each intrinsic family
_DISTORTION_KEYS = ('disto_k1', 'disto_k3', 'disto_t2', 'fisheye', 'disto_k4')


def _optional_index(value: Any) -> Optional[int]:
    if value is None:
        return None
    value = int(value)
    return None if value == UNDEFINED_INDEX else value


def _join_image_path(local_path: str, filename: str) -> str:
    if not local_path:
        return filename
    if local_path.endswith('/') or local_path.endswith('\\'):
        return local_path + filename
    return local_path + '/' + filename


class SfMDataLoader:
    """
    Loads an openMVG sfm_data.json file into a SceneData snapshot.

    Intrinsic types outside the supported families are loaded as
    UnsupportedIntrinsic; rejecting them is left to the camera translation.
    """

    def __init__(self):
        self._type_names: Dict[int, str] = {}
        self._pointers: Dict[int, Dict[str, Any]] = {}

    def load(self, filepath: str) -> SceneData:
        """
        Load a scene file.

        Args:
            filepath: Path to an openMVG sfm_data.json file

        Returns:
            SceneData with intrinsics, views, poses and landmarks

        Raises:
            FileNotFoundError: If the file does not exist
            SceneLoadError: If the file is not a valid openMVG JSON scene
        """
        path = Path(filepath)
        if not path.exists():
            raise FileNotFoundError(f"Scene file not found: {filepath}")
        if path.suffix.lower() != '.json':
            raise SceneLoadError(
                f"Unsupported scene file format '{path.suffix}': only openMVG .json files can be read"
            )

        try:
            with open(path, 'r') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise SceneLoadError(f"The input scene file {filepath} cannot be read: {e}") from e

        scene = self.parse(data)

        stats = scene.get_statistics()
        logger.info(
            f"Loaded scene from {filepath}: {stats['num_intrinsics']} intrinsics, "
            f"{stats['num_views']} views, {stats['num_poses']} poses, "
            f"{stats['num_landmarks']} landmarks"
        )
        for intrinsic in scene.sorted_intrinsics():
            if not is_supported(intrinsic):
                logger.warning(
                    f"Camera {intrinsic.id} uses model '{intrinsic.model_name}', "
                    f"which has no kapture equivalent; the export will fail"
                )
        return scene

    def parse(self, data: Dict[str, Any]) -> SceneData:
        """Build a SceneData from already decoded JSON content."""
        self._type_names = {}
        self._pointers = {}

        if not isinstance(data, dict):
            raise SceneLoadError("Scene root must be a JSON object")

        try:
            scene = SceneData(
                root_path=data.get('root_path', ''),
                intrinsics=self._parse_intrinsics(data.get('intrinsics', [])),
                views=self._parse_views(data.get('views', [])),
                poses=self._parse_extrinsics(data.get('extrinsics', [])),
                landmarks=self._parse_structure(data.get('structure', [])),
            )
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise SceneLoadError(f"Malformed scene data: {e!r}") from e

        version = data.get('sfm_data_version')
        logger.debug(f"sfm_data_version: {version}, root_path: '{scene.root_path}'")
        return scene

    def _resolve_pointer(self, value: Dict[str, Any]) -> Dict[str, Any]:
        """Return the pointee of a cereal ptr_wrapper, following back-references."""
        wrapper = value['ptr_wrapper']
        pointer_id = int(wrapper['id'])
        if 'data' in wrapper:
            self._pointers[pointer_id & CEREAL_ID_MASK] = wrapper['data']
            return wrapper['data']
        return self._pointers[pointer_id & CEREAL_ID_MASK]

    def _resolve_type_name(self, value: Dict[str, Any]) -> str:
        """Return the registered polymorphic type name of an entry."""
        type_id = int(value['polymorphic_id'])
        if 'polymorphic_name' in value:
            self._type_names[type_id & CEREAL_ID_MASK] = value['polymorphic_name']
            return value['polymorphic_name']
        return self._type_names[type_id & CEREAL_ID_MASK]

    def _parse_intrinsics(self, entries: List[Dict[str, Any]]) -> Dict[int, Intrinsic]:
        intrinsics: Dict[int, Intrinsic] = {}
        for entry in entries:
            intrinsic_id = int(entry['key'])
            value = entry['value']
            type_name = self._resolve_type_name(value)
            data = self._resolve_pointer(value)
            intrinsics[intrinsic_id] = self._build_intrinsic(intrinsic_id, type_name, data)
        return intrinsics

    @staticmethod
    def _build_intrinsic(intrinsic_id: int, type_name: str, data: Dict[str, Any]) -> Intrinsic:
        width = int(data['width'])
        height = int(data['height'])

        if type_name not in ('pinhole', 'pinhole_radial_k1', 'pinhole_radial_k3', 'fisheye'):
            params: List[float] = []
            if 'focal_length' in data:
                params.append(float(data['focal_length']))
                params.extend(float(v) for v in data.get('principal_point', []))
            for key in _DISTORTION_KEYS:
                params.extend(float(v) for v in data.get(key, []))
            return UnsupportedIntrinsic(
                id=intrinsic_id, width=width, height=height,
                source_model=type_name, params=tuple(params),
            )

        focal = float(data['focal_length'])
        cx, cy = (float(v) for v in data['principal_point'])

        if type_name == 'pinhole':
            return PinholeIntrinsic(intrinsic_id, width, height, focal, cx, cy)
        if type_name == 'pinhole_radial_k1':
            (k1,) = data['disto_k1']
            return PinholeRadialK1Intrinsic(intrinsic_id, width, height, focal, cx, cy, float(k1))
        if type_name == 'pinhole_radial_k3':
            k1, k2, k3 = data['disto_k3']
            return PinholeRadialK3Intrinsic(
                intrinsic_id, width, height, focal, cx, cy,
                float(k1), float(k2), float(k3),
            )
        k1, k2, k3, k4 = data['fisheye']
        return PinholeFisheyeIntrinsic(
            intrinsic_id, width, height, focal, cx, cy,
            float(k1), float(k2), float(k3), float(k4),
        )

    def _parse_views(self, entries: List[Dict[str, Any]]) -> Dict[int, View]:
        views: Dict[int, View] = {}
        for entry in entries:
            data = self._resolve_pointer(entry['value'])
            view_id = int(data.get('id_view', entry['key']))
            views[view_id] = View(
                id=view_id,
                intrinsic_id=_optional_index(data.get('id_intrinsic')),
                image_path=_join_image_path(data.get('local_path', ''), data['filename']),
                pose_id=_optional_index(data.get('id_pose')),
                width=int(data.get('width', 0)),
                height=int(data.get('height', 0)),
            )
        return views

    @staticmethod
    def _parse_extrinsics(entries: List[Dict[str, Any]]) -> Dict[int, Pose]:
        poses: Dict[int, Pose] = {}
        for entry in entries:
            value = entry['value']
            rotation = np.array(value['rotation'], dtype=np.float64)
            if not validate_rotation_matrix(rotation):
                raise SceneLoadError(
                    f"Pose {entry['key']} rotation is not a proper rotation matrix"
                )
            center = np.array(value['center'], dtype=np.float64)
            poses[int(entry['key'])] = Pose.from_center(rotation, center)
        return poses

    @staticmethod
    def _parse_structure(entries: List[Dict[str, Any]]) -> Dict[int, Landmark]:
        landmarks: Dict[int, Landmark] = {}
        for entry in entries:
            landmark_id = int(entry['key'])
            value = entry['value']
            observations = {}
            for obs in value.get('observations', []):
                x, y = obs['value']['x']
                observations[int(obs['key'])] = Observation(
                    feature_id=int(obs['value'].get('id_feat', 0)),
                    x=float(x),
                    y=float(y),
                )
            landmarks[landmark_id] = Landmark(
                id=landmark_id,
                position=np.array(value['X'], dtype=np.float64),
                observations=observations,
            )
        return landmarks


def load_sfm_data(filepath: str) -> SceneData:
    """
    Convenience function to load an openMVG scene file.

    Args:
        filepath: Path to sfm_data.json

    Returns:
        Loaded SceneData
    """
    return SfMDataLoader().load(filepath)
