"""Base face detector interface."""

from abc import ABC, abstractmethod
from typing import List

import numpy as np

from ..types import DetectedFace


class BaseFaceDetector(ABC):
    """Abstract base class for face detection backends."""
    
    @abstractmethod
    def detect(self, image: np.ndarray) -> List[DetectedFace]:
        """Detect faces in an image.
        
        Args:
            image: RGB uint8 image as numpy array
            
        Returns:
            List of DetectedFace objects, boxes in image pixel coordinates
        """
        pass
    
    def close(self) -> None:
        """Release any model resources held by the backend."""
