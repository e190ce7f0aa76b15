"""photomatch - find photos of the same person in a local gallery.

Pipeline:
    image -> scale down -> detect largest face -> crop 160x160
          -> FaceNet embedding -> cosine similarity vs. reference

Quick Start:
    from photomatch import FaceEmbeddingPipeline, BatchMatcher, DirectoryGallery, load_image

    with FaceEmbeddingPipeline() as pipeline:
        matcher = BatchMatcher(pipeline)
        reference = matcher.compute_reference(load_image("me.jpg"))
        result = matcher.scan_gallery(reference, DirectoryGallery("~/Pictures"))
        print(result.matches)
"""

from .errors import (
    PhotoMatchError,
    LoadFailure,
    NoFaceDetected,
    InvalidRegion,
    InferenceFailure,
    DimensionMismatch,
    GalleryUnavailable,
)
from .types import BoundingBox, DetectedFace, CandidateOutcome, ScanResult, ScanState
from .preprocessing import ensure_rgb, scale_down, crop_and_resize, to_normalized_tensor
from .detection import BaseFaceDetector, FaceDetectorAdapter, DETECTION_BACKENDS
from .embedding import InferenceBackend, TFLiteInference, EmbeddingExtractor, l2_normalize
from .similarity import cosine_similarity, is_match, SimilarityScorer
from .pipeline import FaceEmbeddingPipeline
from .gallery import GalleryProvider, DirectoryGallery, StaticGallery, load_image
from .matcher import BatchMatcher, progress_percent
from .worker import ScanWorker, ProgressEvent, ResultEvent

__version__ = "0.1.0"

__all__ = [
    # Errors
    "PhotoMatchError", "LoadFailure", "NoFaceDetected", "InvalidRegion",
    "InferenceFailure", "DimensionMismatch", "GalleryUnavailable",
    # Types
    "BoundingBox", "DetectedFace", "CandidateOutcome", "ScanResult", "ScanState",
    # Preprocessing
    "ensure_rgb", "scale_down", "crop_and_resize", "to_normalized_tensor",
    # Detection
    "BaseFaceDetector", "FaceDetectorAdapter", "DETECTION_BACKENDS",
    # Embedding
    "InferenceBackend", "TFLiteInference", "EmbeddingExtractor", "l2_normalize",
    # Matching
    "cosine_similarity", "is_match", "SimilarityScorer",
    "FaceEmbeddingPipeline", "BatchMatcher", "progress_percent",
    # Gallery
    "GalleryProvider", "DirectoryGallery", "StaticGallery", "load_image",
    # Background scan
    "ScanWorker", "ProgressEvent", "ResultEvent",
]
