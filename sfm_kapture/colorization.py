"""
Landmark colorization from the source images.

Each landmark receives the RGB value of one of its observations. To read
every image at most once, views are processed greedily: the view that
observes the largest number of still-uncolored landmarks is loaded next,
and all of those landmarks are sampled from it. Ties go to the lowest view
id. Observations are sampled at the pixel that contains them (coordinates
truncated, then clamped to the image).

Output:
    Two order-aligned arrays, one row per landmark in ascending landmark id:
        positions: Nx3 float64 (X, Y, Z)
        colors:    Nx3 uint8   (R, G, B)
"""

import numpy as np
import heapq
from collections import defaultdict
from typing import Callable, Dict, List, Optional, Tuple
from PIL import Image
from tqdm import tqdm
import logging

from .errors import ColorizationError
from .scene import SceneData

logger = logging.getLogger(__name__)

ImageReader = Callable[[str], np.ndarray]


def read_rgb_image(path: str) -> np.ndarray:
    """Read an image as an HxWx3 uint8 RGB array."""
    with Image.open(path) as img:
        return np.asarray(img.convert('RGB'))


def _landmark_positions(scene: SceneData) -> np.ndarray:
    landmarks = scene.sorted_landmarks()
    if not landmarks:
        return np.zeros((0, 3), dtype=np.float64)
    return np.array([lm.position for lm in landmarks], dtype=np.float64)


class ConstantColorizer:
    """Assigns the same color to every landmark, without reading images."""

    def __init__(self, color: Tuple[int, int, int] = (255, 255, 255)):
        self.color = np.array(color, dtype=np.uint8)

    def colorize(self, scene: SceneData) -> Tuple[np.ndarray, np.ndarray]:
        positions = _landmark_positions(scene)
        colors = np.tile(self.color, (len(positions), 1))
        return positions, colors


class TrackColorizer:
    """
    Samples a representative color for every landmark from the images.

    Landmarks without any observation keep the default color.
    """

    def __init__(
        self,
        default_color: Tuple[int, int, int] = (255, 255, 255),
        image_reader: Optional[ImageReader] = None,
        show_progress: bool = False,
    ):
        """
        Initialize the colorizer.

        Args:
            default_color: Color for landmarks that cannot be sampled
            image_reader: Callable returning an HxWx3 uint8 array for a path
            show_progress: Display a progress bar
        """
        self.default_color = np.array(default_color, dtype=np.uint8)
        self.image_reader = image_reader or read_rgb_image
        self.show_progress = show_progress

    def colorize(self, scene: SceneData) -> Tuple[np.ndarray, np.ndarray]:
        """
        Compute landmark positions and colors.

        Args:
            scene: Scene with landmarks and views

        Returns:
            Tuple of (positions Nx3, colors Nx3 uint8)

        Raises:
            ColorizationError: If an observing view is missing or its image
                cannot be read
        """
        landmarks = scene.sorted_landmarks()
        positions = _landmark_positions(scene)
        colors = np.tile(self.default_color, (len(landmarks), 1))

        # Landmark indices observed by each view
        tracks_per_view: Dict[int, List[int]] = defaultdict(list)
        for idx, landmark in enumerate(landmarks):
            for view_id in landmark.observations:
                tracks_per_view[view_id].append(idx)

        colored = [not lm.observations for lm in landmarks]
        num_pending = sum(1 for done in colored if not done)
        unobserved = len(landmarks) - num_pending
        if unobserved:
            logger.warning(f"{unobserved} landmarks have no observation; using default color")

        # Uncolored tracks per view; heap entries go stale when a count drops
        remaining = {view_id: len(tracks) for view_id, tracks in tracks_per_view.items()}
        heap = [(-count, view_id) for view_id, count in remaining.items()]
        heapq.heapify(heap)

        with tqdm(total=num_pending, desc="Colorizing", unit="point",
                  disable=not self.show_progress) as pbar:
            while num_pending:
                neg_count, view_id = heapq.heappop(heap)
                if remaining.get(view_id) != -neg_count:
                    continue
                del remaining[view_id]

                indices = [idx for idx in tracks_per_view.pop(view_id) if not colored[idx]]
                image = self._load_view_image(scene, view_id)
                height, width = image.shape[:2]
                for idx in indices:
                    obs = landmarks[idx].observations[view_id]
                    # Truncate to the pixel containing the observation
                    col = min(max(int(obs.x), 0), width - 1)
                    row = min(max(int(obs.y), 0), height - 1)
                    colors[idx] = image[row, col, :3]
                    colored[idx] = True

                    for other in landmarks[idx].observations:
                        if other in remaining:
                            remaining[other] -= 1
                            heapq.heappush(heap, (-remaining[other], other))

                num_pending -= len(indices)
                pbar.update(len(indices))

        logger.info(f"Colorized {len(landmarks) - unobserved} of {len(landmarks)} landmarks")
        return positions, colors

    def _load_view_image(self, scene: SceneData, view_id: int) -> np.ndarray:
        view = scene.views.get(view_id)
        if view is None:
            raise ColorizationError(f"Observation references unknown view {view_id}")

        path = scene.image_path(view)
        logger.debug(f"Reading image of view {view_id}: {path}")
        try:
            image = self.image_reader(path)
        except (OSError, ValueError) as e:
            raise ColorizationError(
                f"Cannot read image of view {view_id} ({path}): {e}"
            ) from e

        image = np.asarray(image)
        if image.ndim == 2:
            image = np.stack([image] * 3, axis=-1)
        if image.ndim != 3 or image.shape[2] < 3:
            raise ColorizationError(
                f"Image of view {view_id} ({path}) has unexpected shape {image.shape}"
            )
        return image.astype(np.uint8, copy=False)
