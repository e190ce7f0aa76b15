"""MediaPipe face detector."""

import logging
from typing import List, Optional

import numpy as np

from .base import BaseFaceDetector
from ..constants import get_detection_config
from ..types import BoundingBox, DetectedFace

logger = logging.getLogger(__name__)


class MediaPipeDetector(BaseFaceDetector):
    """Face detector using Google MediaPipe (BlazeFace).
    
    Pros: Fast, same detector family as the mobile face detection SDKs
    Cons: Requires mediapipe package
    """
    
    def __init__(
        self,
        min_detection_confidence: Optional[float] = None,
        model_selection: int = 0,  # 0=short-range (2m), 1=full-range (5m)
    ):
        """Initialize MediaPipe face detector."""
        if min_detection_confidence is None:
            min_detection_confidence = get_detection_config().confidence_threshold
        self.min_detection_confidence = min_detection_confidence
        self.model_selection = model_selection
        
        try:
            import mediapipe as mp
        except ImportError:
            raise ImportError(
                "MediaPipe is required. Install with: pip install mediapipe"
            )
        self.detector = mp.solutions.face_detection.FaceDetection(
            min_detection_confidence=min_detection_confidence,
            model_selection=model_selection,
        )
        logger.info("Initialized MediaPipe face detector")
    
    def detect(self, image: np.ndarray) -> List[DetectedFace]:
        """Detect faces using MediaPipe."""
        results = self.detector.process(image)
        
        detected = []
        if results.detections:
            h, w = image.shape[:2]
            
            for detection in results.detections:
                # Relative coordinates, may fall slightly outside [0, 1]
                bbox = detection.location_data.relative_bounding_box
                left = int(bbox.xmin * w)
                top = int(bbox.ymin * h)
                box = BoundingBox(
                    left=left,
                    top=top,
                    right=left + int(bbox.width * w),
                    bottom=top + int(bbox.height * h),
                )
                confidence = detection.score[0] if detection.score else 1.0
                detected.append(DetectedFace(box=box, confidence=float(confidence)))
        
        return detected
    
    def close(self) -> None:
        """Release the MediaPipe graph."""
        if getattr(self, "detector", None) is not None:
            self.detector.close()
            self.detector = None
