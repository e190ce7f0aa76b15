"""End-to-end face embedding pipeline.

    image -> scale down -> largest face -> padded crop -> embedding
"""

import logging
from typing import Optional

from .constants import get_face_processing_config
from .detection import FaceDetectorAdapter
from .embedding import EmbeddingExtractor
from .errors import NoFaceDetected
from .preprocessing import crop_and_resize, ensure_rgb, scale_down
from .types import Embedding, Image

logger = logging.getLogger(__name__)


class FaceEmbeddingPipeline:
    """Computes the embedding of the largest face in an image.
    
    Owns the detector and extractor handed to it; release() (or leaving a
    with-block) frees both.
    """
    
    def __init__(
        self,
        detector: Optional[FaceDetectorAdapter] = None,
        extractor: Optional[EmbeddingExtractor] = None,
        max_dimension: Optional[int] = None,
        pad_fraction: Optional[float] = None,
    ):
        """Initialize the pipeline.
        
        Args:
            detector: Face detector adapter (configured default if None)
            extractor: Embedding extractor (configured default if None)
            max_dimension: Scale-down limit (uses config default if None)
            pad_fraction: Crop padding ratio (uses config default if None)
        """
        config = get_face_processing_config()
        self.detector = detector or FaceDetectorAdapter()
        self.extractor = extractor or EmbeddingExtractor()
        self.max_dimension = max_dimension if max_dimension is not None else config.max_image_dimension
        self.pad_fraction = pad_fraction if pad_fraction is not None else config.crop_padding_ratio
    
    def get_face_embedding(self, image: Image) -> Embedding:
        """Run detection and embedding on one image.
        
        Raises:
            NoFaceDetected: If the detector finds no face
            InvalidRegion: If the face crop is degenerate
            InferenceFailure: If the embedding model fails
        """
        scaled = scale_down(ensure_rgb(image), self.max_dimension)
        logger.debug(f"Scaled image size: {scaled.shape[1]}x{scaled.shape[0]}")
        
        face = self.detector.detect_largest_face(scaled)
        if face is None:
            raise NoFaceDetected("No face detected")
        logger.debug(f"Face detected with bounds: {face.box}")
        
        face_image = crop_and_resize(scaled, face.box, self.pad_fraction, self.extractor.input_size)
        del scaled
        
        return self.extractor.embed(face_image)
    
    def release(self) -> None:
        """Release detector and embedding model."""
        self.detector.release()
        self.extractor.release()
    
    def __enter__(self):
        return self
    
    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()
        return False
