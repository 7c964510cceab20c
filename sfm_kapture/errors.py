"""
Error types raised while exporting a reconstruction to kapture.

Every error carries the export stage it was raised from so the CLI can
report which part of the export failed.
"""

from typing import Optional


class KaptureExportError(Exception):
    """Base class for all export failures."""

    stage = "export"

    def __init__(self, message: str, stage: Optional[str] = None):
        super().__init__(message)
        if stage is not None:
            self.stage = stage


class SceneLoadError(KaptureExportError):
    """The input scene file could not be parsed."""

    stage = "load"


class UnsupportedCameraModel(KaptureExportError):
    """A camera model has no equivalent in the kapture camera vocabulary."""

    stage = "sensors"

    def __init__(self, camera_id: int, model_name: str):
        self.camera_id = camera_id
        self.model_name = model_name
        super().__init__(
            f"Camera {camera_id} uses model '{model_name}' which is not supported"
        )


class DanglingIntrinsicReference(KaptureExportError):
    """A view references a camera intrinsic that does not exist."""

    stage = "references"

    def __init__(self, view_id: int, intrinsic_id: Optional[int]):
        self.view_id = view_id
        self.intrinsic_id = intrinsic_id
        super().__init__(
            f"View {view_id} references undefined intrinsic {intrinsic_id}"
        )


class FileWriteError(KaptureExportError):
    """A destination file could not be opened or written."""

    def __init__(self, path: str, reason: str = "", stage: Optional[str] = None):
        self.path = path
        message = f"Cannot write file {path}"
        if reason:
            message += f": {reason}"
        super().__init__(message, stage)


class DirectoryAccessError(KaptureExportError):
    """An output directory could not be verified or created."""

    stage = "directories"

    def __init__(self, path: str, reason: str = ""):
        self.path = path
        message = f"Cannot access output directory {path}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class ColorizationError(KaptureExportError):
    """Landmark colors could not be computed from the source images."""

    stage = "points"
