"""Cosine similarity scoring and the match decision."""

from typing import Optional

import numpy as np

from .constants import get_matching_config
from .errors import DimensionMismatch


def cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
    """Compute cosine similarity between two vectors.
    
    Norms are computed independently, so inputs need not be normalized.
    
    Returns:
        Similarity in [-1, 1], or 0.0 if either vector is zero
        
    Raises:
        DimensionMismatch: If the vectors differ in length
    """
    a = np.asarray(a, dtype=np.float64).reshape(-1)
    b = np.asarray(b, dtype=np.float64).reshape(-1)
    if a.shape != b.shape:
        raise DimensionMismatch(f"Cannot compare vectors of length {a.size} and {b.size}")
    
    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)
    if norm_a < 1e-10 or norm_b < 1e-10:
        return 0.0
    
    return float(np.dot(a, b) / (norm_a * norm_b))


def is_match(similarity: float, threshold: float = 0.60) -> bool:
    """Return True if similarity is strictly greater than threshold."""
    return similarity > threshold


class SimilarityScorer:
    """Scores embeddings against a configurable match threshold."""
    
    def __init__(self, threshold: Optional[float] = None):
        """Initialize scorer.
        
        Args:
            threshold: Minimum similarity (exclusive) for a match (uses config default if None)
        """
        self.threshold = threshold if threshold is not None else get_matching_config().threshold
    
    def score(self, a: np.ndarray, b: np.ndarray) -> float:
        return cosine_similarity(a, b)
    
    def is_match(self, similarity: float, threshold: Optional[float] = None) -> bool:
        return is_match(similarity, self.threshold if threshold is None else threshold)
