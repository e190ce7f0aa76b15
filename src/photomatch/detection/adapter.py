"""Face detector adapter with configurable backend.

The adapter owns one detection backend and a single worker thread. Each
call submits the backend's detect() to that worker and blocks on the
future, so callers see one suspend-until-result operation and never
overlap two detections.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, List, Optional, Union

import numpy as np

from .base import BaseFaceDetector
from .mediapipe import MediaPipeDetector
from .opencv_dnn import OpenCVDNNDetector
from ..constants import get_detection_config
from ..errors import InferenceFailure
from ..types import DetectedFace

logger = logging.getLogger(__name__)


class FaceDetectorAdapter:
    """Wraps a detection backend and selects the largest face."""
    
    BACKENDS: Dict[str, Callable[..., BaseFaceDetector]] = {
        "opencv_dnn": OpenCVDNNDetector,
        "mediapipe": MediaPipeDetector,
    }
    
    def __init__(
        self,
        backend: Union[str, BaseFaceDetector, None] = None,
        min_face_size: Optional[float] = None,
        **kwargs,
    ):
        """Initialize the adapter.
        
        Args:
            backend: Backend name, or an already constructed detector
                     (uses config default if None)
            min_face_size: Smallest accepted face width relative to image width
                           (uses config default if None)
            **kwargs: Additional arguments for the backend constructor
        """
        config = get_detection_config()
        if backend is None:
            backend = config.backend
        if isinstance(backend, str) and backend not in self.BACKENDS:
            raise ValueError(
                f"Unknown backend: {backend}. "
                f"Available: {list(self.BACKENDS.keys())}"
            )
        
        self.min_face_size = min_face_size if min_face_size is not None else config.min_face_size
        self._backend_choice = backend
        self._backend_kwargs = kwargs
        self._backend: Optional[BaseFaceDetector] = backend if isinstance(backend, BaseFaceDetector) else None
        self._backend_error: Optional[InferenceFailure] = None
        self._executor: Optional[ThreadPoolExecutor] = None
        self._lock = threading.Lock()
    
    @property
    def backend_name(self) -> str:
        if isinstance(self._backend_choice, str):
            return self._backend_choice
        return type(self._backend_choice).__name__
    
    def _get_executor(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="face-detect")
            return self._executor
    
    def _get_backend(self) -> BaseFaceDetector:
        """Return the backend, constructing it on first use.
        
        A construction failure is remembered and re-raised on later calls
        until release(), so a missing model is not fetched once per image.
        
        Raises:
            InferenceFailure: If the backend cannot be constructed
        """
        with self._lock:
            if self._backend is not None:
                return self._backend
            if self._backend_error is not None:
                raise self._backend_error
        
            if isinstance(self._backend_choice, BaseFaceDetector):
                self._backend = self._backend_choice
                return self._backend
        
            try:
                self._backend = self.BACKENDS[self._backend_choice](**self._backend_kwargs)
            except Exception as e:
                logger.error(f"Could not create {self._backend_choice} face detector: {e}")
                self._backend_error = InferenceFailure(f"Face detector unavailable: {e}")
                raise self._backend_error from e
            return self._backend
    
    def detect_faces(self, image: np.ndarray) -> List[DetectedFace]:
        """Detect faces, clamped to the image and filtered by minimum size.
        
        Errors raised by the backend's detect() are logged and reported as
        no faces.
        
        Raises:
            InferenceFailure: If the detection backend cannot be constructed
        """
        h, w = image.shape[:2]
        backend = self._get_backend()
        try:
            future = self._get_executor().submit(backend.detect, image)
            raw_faces = future.result()
        except Exception as e:
            logger.error(f"Face detection failed: {e}")
            return []
        
        faces = []
        for face in raw_faces:
            box = face.box.clamp(w, h)
            if not box.is_valid_for(w, h):
                continue
            if box.width < self.min_face_size * w:
                continue
            faces.append(DetectedFace(box=box, confidence=face.confidence))
        
        logger.debug(f"Detected {len(faces)} face(s) out of {len(raw_faces)} candidate(s)")
        return faces
    
    def detect_largest_face(self, image: np.ndarray) -> Optional[DetectedFace]:
        """Return the face with the largest box area, or None if there is none."""
        largest = None
        for face in self.detect_faces(image):
            # Strict comparison keeps the first face on ties
            if largest is None or face.area > largest.area:
                largest = face
        return largest
    
    def release(self) -> None:
        """Stop the worker thread and drop the backend. Safe to call repeatedly.
        
        A remembered construction failure is cleared so the next call retries.
        """
        with self._lock:
            executor, self._executor = self._executor, None
            backend, self._backend = self._backend, None
            self._backend_error = None
        if executor is not None:
            executor.shutdown(wait=True)
        if backend is not None:
            backend.close()
            logger.info(f"Released {self.backend_name} face detector")
    
    @classmethod
    def available_backends(cls) -> List[str]:
        """Return list of available detection backends."""
        return list(cls.BACKENDS.keys())
    
    def __enter__(self):
        return self
    
    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()
        return False
