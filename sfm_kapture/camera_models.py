"""
Camera model translation from the source intrinsic families to kapture.

kapture identifies camera models by the number and layout of their
parameters, so every translation yields a fixed, positional parameter list.
Slots the source model does not estimate are filled with 0.0.

Mapping:
    pinhole            -> SIMPLE_PINHOLE   w, h, f, cx, cy
    pinhole_radial_k1  -> SIMPLE_RADIAL    w, h, f, cx, cy, k1
    pinhole_radial_k3  -> FULL_OPENCV      w, h, fx, fy, cx, cy, k1, k2, p1, p2, k3, k4, k5, k6
    fisheye            -> OPENCV_FISHEYE   w, h, fx, fy, cx, cy, k1, k2, k3, k4

Any other model raises UnsupportedCameraModel.
"""

from typing import Callable, Dict, List, Type, Union
from dataclasses import dataclass
import logging

from .errors import UnsupportedCameraModel
from .scene import (
    Intrinsic,
    PinholeIntrinsic,
    PinholeRadialK1Intrinsic,
    PinholeRadialK3Intrinsic,
    PinholeFisheyeIntrinsic,
)

logger = logging.getLogger(__name__)

Number = Union[int, float]

SIMPLE_PINHOLE = "SIMPLE_PINHOLE"
SIMPLE_RADIAL = "SIMPLE_RADIAL"
FULL_OPENCV = "FULL_OPENCV"
OPENCV_FISHEYE = "OPENCV_FISHEYE"


@dataclass(frozen=True)
class CameraParameters:
    """A camera expressed in the kapture vocabulary."""
    model_name: str
    params: List[Number]


def _simple_pinhole(cam: PinholeIntrinsic) -> CameraParameters:
    return CameraParameters(
        SIMPLE_PINHOLE,
        [cam.width, cam.height, cam.focal, cam.cx, cam.cy],
    )


def _simple_radial(cam: PinholeRadialK1Intrinsic) -> CameraParameters:
    return CameraParameters(
        SIMPLE_RADIAL,
        [cam.width, cam.height, cam.focal, cam.cx, cam.cy, cam.k1],
    )


def _full_opencv(cam: PinholeRadialK3Intrinsic) -> CameraParameters:
    # Tangential terms (p1, p2) and the rational terms (k4, k5, k6) are zero
    return CameraParameters(
        FULL_OPENCV,
        [
            cam.width, cam.height,
            cam.focal, cam.focal,
            cam.cx, cam.cy,
            cam.k1, cam.k2,
            0.0, 0.0,
            cam.k3,
            0.0, 0.0, 0.0,
        ],
    )


def _opencv_fisheye(cam: PinholeFisheyeIntrinsic) -> CameraParameters:
    return CameraParameters(
        OPENCV_FISHEYE,
        [
            cam.width, cam.height,
            cam.focal, cam.focal,
            cam.cx, cam.cy,
            cam.k1, cam.k2, cam.k3, cam.k4,
        ],
    )


# Keyed on the exact class: the radial and fisheye families subclass
# PinholeIntrinsic and must not fall back to SIMPLE_PINHOLE.
_TRANSLATORS: Dict[Type[Intrinsic], Callable[..., CameraParameters]] = {
    PinholeIntrinsic: _simple_pinhole,
    PinholeRadialK1Intrinsic: _simple_radial,
    PinholeRadialK3Intrinsic: _full_opencv,
    PinholeFisheyeIntrinsic: _opencv_fisheye,
}


def translate_intrinsic(intrinsic: Intrinsic) -> CameraParameters:
    """
    Translate a source intrinsic into a kapture camera model.

    Args:
        intrinsic: Camera intrinsic from the scene

    Returns:
        CameraParameters with the kapture model name and ordered parameters

    Raises:
        UnsupportedCameraModel: If the intrinsic family has no kapture equivalent
    """
    translator = _TRANSLATORS.get(type(intrinsic))
    if translator is None:
        raise UnsupportedCameraModel(intrinsic.id, intrinsic.model_name)

    camera = translator(intrinsic)
    logger.debug(
        f"Camera {intrinsic.id}: {intrinsic.model_name} -> {camera.model_name} "
        f"({len(camera.params)} params)"
    )
    return camera


def is_supported(intrinsic: Intrinsic) -> bool:
    """True if the intrinsic can be translated to a kapture camera model."""
    return type(intrinsic) in _TRANSLATORS
