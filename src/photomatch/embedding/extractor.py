"""Face embedding extraction with explicit model lifetime."""

import logging
import threading
from typing import Optional

import numpy as np

from .base import InferenceBackend
from .tflite import TFLiteInference
from ..constants import get_embedding_config, get_face_processing_config
from ..errors import InferenceFailure
from ..preprocessing import to_normalized_tensor
from ..types import Embedding, Image

logger = logging.getLogger(__name__)


def l2_normalize(vector: np.ndarray) -> np.ndarray:
    """Scale a vector to unit length.
    
    Raises:
        ValueError: If the vector has zero (or non-finite) norm
    """
    vector = np.asarray(vector, dtype=np.float32).reshape(-1)
    norm = float(np.linalg.norm(vector))
    if not np.isfinite(norm) or norm < 1e-10:
        raise ValueError(f"Cannot normalize vector with norm {norm}")
    return vector / norm


class EmbeddingExtractor:
    """Turns a cropped face image into a unit-length embedding.
    
    The model is loaded on first use (or by initialize()) and stays loaded
    until release(). Use as a context manager to tie the model to a scope.
    """
    
    def __init__(
        self,
        backend: Optional[InferenceBackend] = None,
        input_size: Optional[int] = None,
        embedding_size: Optional[int] = None,
        normalization: Optional[str] = None,
    ):
        """Initialize the extractor.
        
        Args:
            backend: Inference backend (TFLite FaceNet from config if None)
            input_size: Square face input side (uses config default if None)
            embedding_size: Expected embedding length (uses config default if None)
            normalization: Pixel normalization mode (uses config default if None)
        """
        fp_config = get_face_processing_config()
        emb_config = get_embedding_config()
        self.input_size = input_size if input_size is not None else fp_config.face_input_size
        self.embedding_size = embedding_size if embedding_size is not None else emb_config.embedding_size
        self.normalization = normalization or fp_config.normalization
        self._backend = backend or TFLiteInference(
            input_shape=(1, self.input_size, self.input_size, 3),
            output_size=self.embedding_size,
        )
        self._initialized = False
        self._lock = threading.Lock()
    
    @property
    def model_name(self) -> str:
        return self._backend.name
    
    @property
    def is_initialized(self) -> bool:
        return self._initialized
    
    def initialize(self) -> None:
        """Load the model. No-op while a model is already loaded."""
        with self._lock:
            if self._initialized:
                return
            try:
                self._backend.load()
            except InferenceFailure:
                raise
            except Exception as e:
                raise InferenceFailure(f"Failed to load {self._backend.name}: {e}") from e
            self._initialized = True
            logger.info(f"Embedding model {self._backend.name} initialized")
    
    def embed(self, face_image: Image) -> Embedding:
        """Extract a unit-length embedding from a cropped face.
        
        Args:
            face_image: input_size x input_size x 3 RGB face crop
            
        Returns:
            float32 embedding of length embedding_size
            
        Raises:
            InferenceFailure: If the model is unavailable, the input has the
                wrong shape, or the model output is unusable
        """
        self.initialize()
        
        expected_shape = (self.input_size, self.input_size, 3)
        if face_image.shape != expected_shape:
            raise InferenceFailure(f"Face image shape {face_image.shape} does not match {expected_shape}")
        
        tensor = to_normalized_tensor(face_image, self.input_size, self.normalization)
        expected_size = int(np.prod(self._backend.input_shape))
        if tensor.size != expected_size:
            raise InferenceFailure(f"Input tensor has {tensor.size} values, model expects {expected_size}")
        
        try:
            raw = self._backend.run(tensor)
        except InferenceFailure:
            raise
        except Exception as e:
            raise InferenceFailure(f"Inference failed: {e}") from e
        
        raw = np.asarray(raw, dtype=np.float32).reshape(-1)
        if raw.size != self.embedding_size:
            raise InferenceFailure(f"Model returned {raw.size} values, expected {self.embedding_size}")
        
        try:
            return l2_normalize(raw)
        except ValueError as e:
            raise InferenceFailure(str(e)) from e
    
    def release(self) -> None:
        """Free the model. Safe to call when never initialized."""
        with self._lock:
            if not self._initialized:
                return
            self._backend.close()
            self._initialized = False
            logger.info(f"Embedding model {self._backend.name} released")
    
    def __enter__(self):
        return self
    
    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()
        return False
