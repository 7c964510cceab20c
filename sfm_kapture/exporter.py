"""
Kapture export orchestration.

This is the main module that sequences the export of one scene:
    1. Check that every view references an existing camera
    2. Create the output directory tree
    3. Write sensors/sensors.txt
    4. Write sensors/records_camera.txt
    5. Write sensors/trajectories.txt
    6. Colorize landmarks and write reconstruction/points3d.txt

The first failure aborts the export. Files written by earlier steps are
left on disk.
"""

from pathlib import Path
from typing import Dict, Optional, Union
from dataclasses import dataclass, field
import logging

from .colorization import ConstantColorizer, TrackColorizer
from .config import ExportConfig
from .errors import DanglingIntrinsicReference, DirectoryAccessError
from .kapture_writer import (
    KaptureWriter,
    SENSORS_DIR,
    RECONSTRUCTION_DIR,
    SENSORS_FILE,
    RECORDS_CAMERA_FILE,
    TRAJECTORIES_FILE,
    POINTS3D_FILE,
)
from .scene import SceneData
from .sfm_data_loader import load_sfm_data

logger = logging.getLogger(__name__)


@dataclass
class ExportReport:
    """Summary of a completed export."""
    output_dir: str = ""
    num_cameras: int = 0
    num_records: int = 0
    num_trajectories: int = 0
    num_points: int = 0

    # Written files, keyed by file name
    files: Dict[str, str] = field(default_factory=dict)


def ensure_directory(path: Path) -> None:
    """
    Create a directory (and its parents) if it does not exist.

    Raises:
        DirectoryAccessError: If the directory cannot be created or the path
            exists but is not a directory
    """
    if path.is_dir():
        return
    logger.info(f"Creating kapture directory in: {path}")
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise DirectoryAccessError(str(path), str(e)) from e
    if not path.is_dir():
        raise DirectoryAccessError(str(path), "not a directory")


class KaptureExporter:
    """
    Exports a SceneData snapshot to a kapture directory.

    Example usage:
        scene = load_sfm_data("sfm_data.json")
        exporter = KaptureExporter(ExportConfig())
        report = exporter.export(scene, "kapture_out")
    """

    def __init__(self, config: Optional[ExportConfig] = None, colorizer=None):
        """
        Initialize the exporter.

        Args:
            config: Export configuration (defaults are used if omitted)
            colorizer: Object with a colorize(scene) method returning
                (positions, colors); built from the configuration if omitted
        """
        self.config = config or ExportConfig()
        self.writer = KaptureWriter(self.config.format, show_progress=self.config.show_progress)

        if colorizer is not None:
            self.colorizer = colorizer
        elif self.config.colorize_points:
            self.colorizer = TrackColorizer(
                default_color=self.config.default_point_color,
                show_progress=self.config.show_progress,
            )
        else:
            self.colorizer = ConstantColorizer(self.config.default_point_color)

    @staticmethod
    def check_references(scene: SceneData) -> None:
        """
        Verify that every view references an existing intrinsic.

        Raises:
            DanglingIntrinsicReference: For the first offending view
        """
        dangling = scene.find_dangling_references()
        if dangling:
            for view in dangling:
                logger.error(f"View {view.id} references undefined intrinsic {view.intrinsic_id}")
            raise DanglingIntrinsicReference(dangling[0].id, dangling[0].intrinsic_id)

    @staticmethod
    def prepare_directories(output_dir: Union[str, Path]) -> Dict[str, Path]:
        """Create the output root and its sensors/reconstruction subdirectories."""
        root = Path(output_dir)
        dirs = {
            'root': root,
            SENSORS_DIR: root / SENSORS_DIR,
            RECONSTRUCTION_DIR: root / RECONSTRUCTION_DIR,
        }
        for path in dirs.values():
            ensure_directory(path)
        return dirs

    def export(self, scene: SceneData, output_dir: Union[str, Path]) -> ExportReport:
        """
        Run the full export.

        Args:
            scene: Loaded reconstruction
            output_dir: Root of the kapture directory to write

        Returns:
            ExportReport with record counts and written file paths

        Raises:
            KaptureExportError: On the first failing step
        """
        stats = scene.get_statistics()
        logger.info(
            f"Exporting {stats['num_intrinsics']} cameras, {stats['num_views']} views "
            f"({stats['num_posed_views']} posed), {stats['num_landmarks']} landmarks"
        )

        self.check_references(scene)
        dirs = self.prepare_directories(output_dir)
        report = ExportReport(output_dir=str(output_dir))

        sensors_path = dirs[SENSORS_DIR] / SENSORS_FILE
        report.num_cameras = self.writer.write_sensors(scene, sensors_path)
        report.files[SENSORS_FILE] = str(sensors_path)

        records_path = dirs[SENSORS_DIR] / RECORDS_CAMERA_FILE
        report.num_records = self.writer.write_records(scene, records_path)
        report.files[RECORDS_CAMERA_FILE] = str(records_path)

        trajectories_path = dirs[SENSORS_DIR] / TRAJECTORIES_FILE
        report.num_trajectories = self.writer.write_trajectories(scene, trajectories_path)
        report.files[TRAJECTORIES_FILE] = str(trajectories_path)

        if scene.landmarks:
            positions, colors = self.colorizer.colorize(scene)
            points_path = dirs[RECONSTRUCTION_DIR] / POINTS3D_FILE
            report.num_points = self.writer.write_points(positions, colors, points_path)
            report.files[POINTS3D_FILE] = str(points_path)
        else:
            logger.info("Scene has no landmarks; skipping points3d file")

        logger.info(f"Export to {output_dir} complete")
        return report


def run_export(
    sfm_data_path: str,
    output_dir: str,
    config: Optional[ExportConfig] = None,
) -> ExportReport:
    """
    Convenience function to export an openMVG scene file to kapture.

    Args:
        sfm_data_path: Path to sfm_data.json
        output_dir: Output kapture directory
        config: Optional export configuration

    Returns:
        ExportReport with results
    """
    scene = load_sfm_data(sfm_data_path)
    exporter = KaptureExporter(config)
    return exporter.export(scene, output_dir)
