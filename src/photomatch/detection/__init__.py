"""Face detection backends.

Available backends:
- opencv_dnn: SSD ResNet, good balance of speed/accuracy (default)
- mediapipe: Google MediaPipe BlazeFace, fast on mobile/ARM64
"""

from .base import BaseFaceDetector
from .opencv_dnn import OpenCVDNNDetector
from .mediapipe import MediaPipeDetector
from .adapter import FaceDetectorAdapter

DETECTION_BACKENDS = FaceDetectorAdapter.BACKENDS

__all__ = [
    "BaseFaceDetector",
    "OpenCVDNNDetector",
    "MediaPipeDetector",
    "FaceDetectorAdapter",
    "DETECTION_BACKENDS",
]
