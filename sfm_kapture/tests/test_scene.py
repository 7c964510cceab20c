"""
Tests for the scene model.
"""

import pytest
import numpy as np
from numpy.testing import assert_allclose

from sfm_kapture.scene import (
    SceneData,
    PinholeIntrinsic,
    PinholeFisheyeIntrinsic,
    UnsupportedIntrinsic,
    View,
    Pose,
)


class TestPose:
    """Tests for pose construction."""

    def test_center_round_trip(self):
        R = np.array([[0, -1, 0], [1, 0, 0], [0, 0, 1]], dtype=np.float64)
        center = np.array([3.0, -1.0, 2.0])

        pose = Pose.from_center(R, center)

        assert_allclose(pose.center, center)
        assert_allclose(R @ center + pose.translation, np.zeros(3), atol=1e-12)

    def test_rejects_bad_rotation_shape(self):
        with pytest.raises(ValueError):
            Pose(np.eye(2), np.zeros(3))


class TestIntrinsic:
    """Tests for intrinsic model names."""

    def test_model_names(self):
        assert PinholeIntrinsic(0, 1, 1, 1.0, 0.5, 0.5).model_name == "pinhole"
        assert PinholeFisheyeIntrinsic(0, 1, 1, 1.0, 0.5, 0.5, 0, 0, 0, 0).model_name == "fisheye"
        assert UnsupportedIntrinsic(0, 1, 1, "spherical").model_name == "spherical"


class TestSceneData:
    """Tests for scene accessors."""

    @pytest.fixture
    def scene(self):
        return SceneData(
            root_path="/r/",
            intrinsics={0: PinholeIntrinsic(0, 10, 10, 1.0, 5.0, 5.0)},
            views={
                2: View(id=2, intrinsic_id=0, image_path="b.jpg", pose_id=0),
                1: View(id=1, intrinsic_id=0, image_path="a.jpg"),
                3: View(id=3, intrinsic_id=5, image_path="c.jpg", pose_id=0),
                4: View(id=4, intrinsic_id=None, image_path="d.jpg"),
            },
            poses={0: Pose(np.eye(3), np.zeros(3))},
        )

    def test_sorted_views(self, scene):
        assert [v.id for v in scene.sorted_views()] == [1, 2, 3, 4]

    def test_pose_defined_requires_intrinsic(self, scene):
        assert scene.is_pose_defined(scene.views[2])
        assert not scene.is_pose_defined(scene.views[1])
        assert not scene.is_pose_defined(scene.views[3])

    def test_get_pose_without_pose(self, scene):
        with pytest.raises(KeyError):
            scene.get_pose(scene.views[1])

    def test_dangling_references(self, scene):
        assert [v.id for v in scene.find_dangling_references()] == [3, 4]

    def test_image_path(self, scene):
        assert scene.image_path(scene.views[1]) == "/r/a.jpg"

    def test_statistics(self, scene):
        stats = scene.get_statistics()

        assert stats['num_views'] == 4
        assert stats['num_posed_views'] == 1
        assert stats['num_landmarks'] == 0
