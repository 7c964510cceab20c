"""
Writers for the kapture text files.

Output Layout:
    <outdir>/sensors/sensors.txt
    <outdir>/sensors/records_camera.txt
    <outdir>/sensors/trajectories.txt
    <outdir>/reconstruction/points3d.txt

File Schemas (kapture format 1.0):
    sensors.txt:         sensor_id, name, sensor_type, [sensor_params]+
    records_camera.txt:  timestamp, device_id, image_path
    trajectories.txt:    timestamp, device_id, qw, qx, qy, qz, tx, ty, tz
    points3d.txt:        X, Y, Z, [R, G, B]

Every file starts with two comment lines: the format version and the
column layout. Numbers are written in plain decimal notation, never in
exponent form.
"""

import numpy as np
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Sequence, Union
import logging

from tqdm import tqdm

from .camera_models import CameraParameters, translate_intrinsic
from .config import FormatOptions, KAPTURE_FORMAT_VERSION
from .errors import DanglingIntrinsicReference, FileWriteError
from .scene import SceneData, View
from .transforms import rotation_matrix_to_quaternion

logger = logging.getLogger(__name__)

SENSORS_DIR = "sensors"
RECONSTRUCTION_DIR = "reconstruction"

SENSORS_FILE = "sensors.txt"
RECORDS_CAMERA_FILE = "records_camera.txt"
TRAJECTORIES_FILE = "trajectories.txt"
POINTS3D_FILE = "points3d.txt"

VERSION_HEADER = f"# kapture format: {KAPTURE_FORMAT_VERSION}"
SENSORS_HEADER = "# sensor_id, name, sensor_type, [sensor_params]+"
RECORDS_CAMERA_HEADER = "# timestamp, device_id, image_path"
TRAJECTORIES_HEADER = "# timestamp, device_id, qw, qx, qy, qz, tx, ty, tz"
POINTS3D_HEADER = "# X, Y, Z, [R, G, B]"


def format_number(value: Union[int, float], precision: Optional[int] = None) -> str:
    """
    Render a number in plain decimal form.

    Integers are written as-is. Floats use the shortest representation
    that round-trips (or a fixed number of decimals when precision is
    given), with trailing zeros and a trailing decimal point removed.

    Examples:
        1000.0 -> "1000", -0.002 -> "-0.002", 1e-4 -> "0.0001"
    """
    if isinstance(value, (int, np.integer)) and not isinstance(value, (bool, np.bool_)):
        return str(int(value))

    value = float(value)
    if not np.isfinite(value):
        raise ValueError(f"Cannot write non-finite value {value}")
    if value == 0.0:
        value = 0.0  # drop the sign of -0.0

    if precision is None:
        return np.format_float_positional(value, trim='-')
    return np.format_float_positional(
        value, precision=precision, unique=False, fractional=True, trim='-'
    )


def camera_name(camera_id: int) -> str:
    """Label used as the sensor name of a camera."""
    return f"cam_{camera_id}"


class KaptureWriter:
    """
    Writes the four kapture files of a scene.

    Each write_* method creates (or overwrites) one file and returns the
    number of records written.
    """

    def __init__(self, format_options: Optional[FormatOptions] = None, show_progress: bool = False):
        """
        Initialize the writer.

        Args:
            format_options: Separator and numeric precision
            show_progress: Display progress bars while writing
        """
        self.format = format_options or FormatOptions()
        self.show_progress = show_progress

    def _join(self, fields: Iterable[Union[int, float, str]]) -> str:
        rendered = [
            f if isinstance(f, str) else format_number(f, self.format.precision)
            for f in fields
        ]
        return self.format.separator.join(rendered)

    def sensor_line(self, camera_id: int, camera: CameraParameters) -> str:
        """Format one sensors.txt record."""
        return self._join([camera_id, camera_name(camera_id), camera.model_name, *camera.params])

    def _write_file(
        self,
        path: Union[str, Path],
        column_header: str,
        lines: Iterator[str],
        total: int,
        desc: str,
        stage: str,
    ) -> int:
        count = 0
        try:
            with open(path, 'w', newline='\n') as f:
                f.write(VERSION_HEADER + "\n")
                f.write(column_header + "\n")
                for line in tqdm(lines, total=total, desc=desc, unit="rec",
                                 disable=not self.show_progress):
                    f.write(line + "\n")
                    count += 1
        except OSError as e:
            raise FileWriteError(str(path), str(e), stage=stage) from e

        logger.info(f"Wrote {count} records to {path}")
        return count

    def write_sensors(self, scene: SceneData, path: Union[str, Path]) -> int:
        """
        Write sensors.txt with one record per camera intrinsic.

        All cameras are translated before the file is opened, so an
        unsupported camera leaves no sensors file behind.

        Raises:
            UnsupportedCameraModel: If any camera cannot be translated
            FileWriteError: If the file cannot be written
        """
        lines: List[str] = []
        for intrinsic in scene.sorted_intrinsics():
            camera = translate_intrinsic(intrinsic)
            lines.append(self.sensor_line(intrinsic.id, camera))

        return self._write_file(
            path, SENSORS_HEADER, iter(lines), len(lines), "Sensors", "sensors"
        )

    def write_records(self, scene: SceneData, path: Union[str, Path]) -> int:
        """
        Write records_camera.txt with one record per view.

        The view id is used as timestamp. Image paths are the scene root
        path concatenated with the view image path.

        Raises:
            DanglingIntrinsicReference: If a view references no existing camera
            FileWriteError: If the file cannot be written
        """
        dangling = scene.find_dangling_references()
        if dangling:
            raise DanglingIntrinsicReference(dangling[0].id, dangling[0].intrinsic_id)

        views = scene.sorted_views()
        lines = (
            self._join([view.id, view.intrinsic_id, scene.image_path(view)])
            for view in views
        )
        return self._write_file(
            path, RECORDS_CAMERA_HEADER, lines, len(views), "Records", "records"
        )

    def trajectory_line(self, scene: SceneData, view: View) -> str:
        """Format one trajectories.txt record for a posed view."""
        pose = scene.get_pose(view)
        qw, qx, qy, qz = rotation_matrix_to_quaternion(pose.rotation)
        tx, ty, tz = pose.translation
        return self._join([view.id, view.intrinsic_id, qw, qx, qy, qz, tx, ty, tz])

    def write_trajectories(self, scene: SceneData, path: Union[str, Path]) -> int:
        """
        Write trajectories.txt with one record per posed view.

        Views without a pose are skipped.

        Raises:
            FileWriteError: If the file cannot be written
        """
        views = [v for v in scene.sorted_views() if scene.is_pose_defined(v)]
        skipped = len(scene.views) - len(views)
        if skipped:
            logger.info(f"Skipping {skipped} views without pose")

        lines = (self.trajectory_line(scene, view) for view in views)
        return self._write_file(
            path, TRAJECTORIES_HEADER, lines, len(views), "Trajectories", "trajectories"
        )

    def write_points(
        self,
        positions: Sequence,
        colors: Sequence,
        path: Union[str, Path],
    ) -> int:
        """
        Write points3d.txt from order-aligned position and color arrays.

        Nothing is written when there are no points.

        Args:
            positions: Nx3 landmark positions
            colors: Nx3 RGB colors
            path: Destination file

        Returns:
            Number of points written (0 if the file was not created)

        Raises:
            ValueError: If positions and colors differ in length
            FileWriteError: If the file cannot be written
        """
        if len(positions) != len(colors):
            raise ValueError(
                f"Positions ({len(positions)}) and colors ({len(colors)}) must have the same length"
            )
        if len(positions) == 0:
            logger.info("No 3D points to export; points3d file not created")
            return 0

        lines = (
            self._join([*position, *color])
            for position, color in zip(positions, colors)
        )
        return self._write_file(
            path, POINTS3D_HEADER, lines, len(positions), "Points3D", "points"
        )
