"""
Tests for the kapture file writers.
"""

import pytest
import numpy as np
from numpy.testing import assert_allclose

from sfm_kapture.config import FormatOptions
from sfm_kapture.errors import (
    DanglingIntrinsicReference,
    FileWriteError,
    UnsupportedCameraModel,
)
from sfm_kapture.kapture_writer import KaptureWriter, format_number, camera_name
from sfm_kapture.scene import (
    SceneData,
    PinholeIntrinsic,
    PinholeRadialK3Intrinsic,
    UnsupportedIntrinsic,
    View,
    Pose,
)

ROT_Z_90 = np.array([
    [0, -1, 0],
    [1, 0, 0],
    [0, 0, 1]
], dtype=np.float64)


def read_records(path):
    """Return the non-comment lines of a kapture file."""
    with open(path) as f:
        lines = f.read().splitlines()
    assert lines[0] == "# kapture format: 1.0"
    assert lines[1].startswith("# ")
    return lines[2:]


class TestFormatNumber:
    """Tests for plain-decimal number formatting."""

    @pytest.mark.parametrize("value, expected", [
        (1920, "1920"),
        (np.uint8(255), "255"),
        (np.int64(-3), "-3"),
        (1000.0, "1000"),
        (960.5, "960.5"),
        (0.01, "0.01"),
        (-0.002, "-0.002"),
        (0.0001, "0.0001"),
        (1e-7, "0.0000001"),
        (1e20, "100000000000000000000"),
        (0.0, "0"),
        (-0.0, "0"),
        (np.float64(0.1), "0.1"),
    ])
    def test_shortest_representation(self, value, expected):
        assert format_number(value) == expected

    def test_never_exponential(self):
        for value in [1e-12, 3.5e-8, 2.5e15, -7e-10]:
            assert "e" not in format_number(value).lower()

    @pytest.mark.parametrize("value, precision, expected", [
        (0.12345, 3, "0.123"),
        (2.0, 3, "2"),
        (-1.5, 2, "-1.5"),
    ])
    def test_fixed_precision(self, value, precision, expected):
        assert format_number(value, precision) == expected

    def test_non_finite_rejected(self):
        with pytest.raises(ValueError):
            format_number(float('nan'))


class TestSensorsWriter:
    """Tests for sensors.txt."""

    def test_pinhole_line(self, tmp_path):
        scene = SceneData(intrinsics={
            0: PinholeIntrinsic(0, 1920, 1080, 1000.0, 960.0, 540.0),
        })
        path = tmp_path / "sensors.txt"

        count = KaptureWriter().write_sensors(scene, path)

        assert count == 1
        assert read_records(path) == ["0, cam_0, SIMPLE_PINHOLE, 1920, 1080, 1000, 960, 540"]

    def test_cameras_in_ascending_id_order(self, tmp_path):
        scene = SceneData(intrinsics={
            3: PinholeIntrinsic(3, 10, 10, 1.0, 5.0, 5.0),
            1: PinholeIntrinsic(1, 10, 10, 1.0, 5.0, 5.0),
        })
        path = tmp_path / "sensors.txt"

        KaptureWriter().write_sensors(scene, path)

        ids = [line.split(", ")[0] for line in read_records(path)]
        assert ids == ["1", "3"]

    def test_unsupported_camera_writes_no_file(self, tmp_path):
        scene = SceneData(intrinsics={
            0: PinholeIntrinsic(0, 10, 10, 1.0, 5.0, 5.0),
            1: UnsupportedIntrinsic(1, 10, 10, "spherical"),
        })
        path = tmp_path / "sensors.txt"

        with pytest.raises(UnsupportedCameraModel):
            KaptureWriter().write_sensors(scene, path)

        assert not path.exists()

    def test_custom_separator(self, tmp_path):
        scene = SceneData(intrinsics={
            4: PinholeRadialK3Intrinsic(4, 100, 50, 80.0, 50.0, 25.0, 0.1, 0.2, 0.3),
        })
        path = tmp_path / "sensors.txt"

        KaptureWriter(FormatOptions(separator=" ")).write_sensors(scene, path)

        fields = read_records(path)[0].split(" ")
        assert fields[:3] == ["4", "cam_4", "FULL_OPENCV"]
        assert len(fields) == 3 + 14

    def test_camera_name(self):
        assert camera_name(12) == "cam_12"


class TestRecordsWriter:
    """Tests for records_camera.txt."""

    @pytest.fixture
    def scene(self):
        views = {
            i: View(id=i, intrinsic_id=0, image_path=f"img_{i:03d}.jpg",
                    pose_id=i if i % 2 == 0 else None)
            for i in range(5)
        }
        return SceneData(
            root_path="/data/",
            intrinsics={0: PinholeIntrinsic(0, 10, 10, 1.0, 5.0, 5.0)},
            views=views,
            poses={i: Pose(np.eye(3), np.zeros(3)) for i in (0, 2, 4)},
        )

    def test_one_line_per_view(self, scene, tmp_path):
        path = tmp_path / "records_camera.txt"

        count = KaptureWriter().write_records(scene, path)

        records = read_records(path)
        assert count == 5
        assert len(records) == 5
        assert records[1] == "1, 0, /data/img_001.jpg"

    def test_root_path_is_a_prefix(self, tmp_path):
        scene = SceneData(
            root_path="/data/",
            intrinsics={0: PinholeIntrinsic(0, 10, 10, 1.0, 5.0, 5.0)},
            views={7: View(id=7, intrinsic_id=0, image_path="images/foo.jpg")},
        )
        path = tmp_path / "records_camera.txt"

        KaptureWriter().write_records(scene, path)

        assert read_records(path) == ["7, 0, /data/images/foo.jpg"]

    def test_dangling_intrinsic_rejected(self, tmp_path):
        scene = SceneData(
            intrinsics={0: PinholeIntrinsic(0, 10, 10, 1.0, 5.0, 5.0)},
            views={0: View(id=0, intrinsic_id=9, image_path="a.jpg")},
        )

        with pytest.raises(DanglingIntrinsicReference) as excinfo:
            KaptureWriter().write_records(scene, tmp_path / "records_camera.txt")

        assert excinfo.value.view_id == 0
        assert excinfo.value.intrinsic_id == 9


class TestTrajectoriesWriter:
    """Tests for trajectories.txt."""

    def test_only_posed_views(self, tmp_path):
        views = {
            i: View(id=i, intrinsic_id=0, image_path=f"{i}.jpg",
                    pose_id=i if i < 3 else None)
            for i in range(8)
        }
        scene = SceneData(
            intrinsics={0: PinholeIntrinsic(0, 10, 10, 1.0, 5.0, 5.0)},
            views=views,
            poses={i: Pose(np.eye(3), np.zeros(3)) for i in range(3)},
        )
        path = tmp_path / "trajectories.txt"

        count = KaptureWriter().write_trajectories(scene, path)

        records = read_records(path)
        assert count == 3
        assert [r.split(", ")[0] for r in records] == ["0", "1", "2"]

    def test_pose_values(self, tmp_path):
        scene = SceneData(
            intrinsics={2: PinholeIntrinsic(2, 10, 10, 1.0, 5.0, 5.0)},
            views={5: View(id=5, intrinsic_id=2, image_path="a.jpg", pose_id=11)},
            poses={11: Pose(ROT_Z_90, np.array([1.5, -2.0, 0.25]))},
        )
        path = tmp_path / "trajectories.txt"

        KaptureWriter().write_trajectories(scene, path)

        fields = read_records(path)[0].split(", ")
        assert fields[:2] == ["5", "2"]
        values = np.array([float(v) for v in fields[2:]])
        s = np.sqrt(0.5)
        assert_allclose(values[:4], [s, 0, 0, s], atol=1e-12)
        assert_allclose(values[4:], [1.5, -2.0, 0.25])

    def test_pose_from_center(self, tmp_path):
        """Translation is written as t = -R @ C."""
        center = np.array([1.0, 2.0, 3.0])
        scene = SceneData(
            intrinsics={0: PinholeIntrinsic(0, 10, 10, 1.0, 5.0, 5.0)},
            views={0: View(id=0, intrinsic_id=0, image_path="a.jpg", pose_id=0)},
            poses={0: Pose.from_center(ROT_Z_90, center)},
        )
        path = tmp_path / "trajectories.txt"

        KaptureWriter().write_trajectories(scene, path)

        values = [float(v) for v in read_records(path)[0].split(", ")[6:]]
        assert_allclose(values, -ROT_Z_90 @ center)

    def test_view_without_intrinsic_skipped(self, tmp_path):
        scene = SceneData(
            views={0: View(id=0, intrinsic_id=None, image_path="a.jpg", pose_id=0)},
            poses={0: Pose(np.eye(3), np.zeros(3))},
        )
        path = tmp_path / "trajectories.txt"

        assert KaptureWriter().write_trajectories(scene, path) == 0
        assert read_records(path) == []


class TestPointsWriter:
    """Tests for points3d.txt."""

    def test_empty_writes_nothing(self, tmp_path):
        path = tmp_path / "points3d.txt"

        count = KaptureWriter().write_points(np.zeros((0, 3)), np.zeros((0, 3)), path)

        assert count == 0
        assert not path.exists()

    def test_one_line_per_point(self, tmp_path):
        positions = np.array([[1.0, 2.0, 3.0], [-0.5, 0.25, 10.0]])
        colors = np.array([[255, 0, 0], [10, 20, 30]], dtype=np.uint8)
        path = tmp_path / "points3d.txt"

        count = KaptureWriter().write_points(positions, colors, path)

        assert count == 2
        assert read_records(path) == [
            "1, 2, 3, 255, 0, 0",
            "-0.5, 0.25, 10, 10, 20, 30",
        ]

    def test_length_mismatch_rejected(self, tmp_path):
        with pytest.raises(ValueError):
            KaptureWriter().write_points(
                np.zeros((2, 3)), np.zeros((1, 3), dtype=np.uint8), tmp_path / "p.txt"
            )

    def test_unwritable_destination(self, tmp_path):
        path = tmp_path / "points3d.txt"
        path.mkdir()

        with pytest.raises(FileWriteError) as excinfo:
            KaptureWriter().write_points(
                np.ones((1, 3)), np.ones((1, 3), dtype=np.uint8), path
            )

        assert excinfo.value.stage == "points"
        assert excinfo.value.path == str(path)
