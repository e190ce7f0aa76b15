"""Face embedding extraction.

The extractor turns a 160x160 face crop into a unit-length 128D vector
using an inference backend (TFLite FaceNet by default).
"""

from .base import InferenceBackend
from .tflite import TFLiteInference
from .extractor import EmbeddingExtractor, l2_normalize

__all__ = [
    "InferenceBackend",
    "TFLiteInference",
    "EmbeddingExtractor",
    "l2_normalize",
]
