"""Shared data types for the matching pipeline."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

import numpy as np

from .errors import PhotoMatchError

# HxWx3 RGB uint8 pixel grid
Image = np.ndarray
# 1-D float32 vector, unit length after extraction
Embedding = np.ndarray


@dataclass(frozen=True)
class BoundingBox:
    """Integer rectangle in image pixel coordinates (right/bottom exclusive)."""
    
    left: int
    top: int
    right: int
    bottom: int
    
    @property
    def width(self) -> int:
        return self.right - self.left
    
    @property
    def height(self) -> int:
        return self.bottom - self.top
    
    @property
    def area(self) -> int:
        """Return area, zero for degenerate boxes."""
        return max(0, self.width) * max(0, self.height)
    
    def clamp(self, width: int, height: int) -> "BoundingBox":
        """Return this box clipped to an image of the given size."""
        return BoundingBox(
            left=min(max(0, self.left), width),
            top=min(max(0, self.top), height),
            right=max(0, min(self.right, width)),
            bottom=max(0, min(self.bottom, height)),
        )
    
    def is_valid_for(self, width: int, height: int) -> bool:
        """Check the box is non-empty and lies inside a width x height image."""
        return 0 <= self.left < self.right <= width and 0 <= self.top < self.bottom <= height


@dataclass
class DetectedFace:
    """A detected face region with detector confidence."""
    
    box: BoundingBox
    confidence: float = 1.0
    
    @property
    def area(self) -> int:
        return self.box.area


class ScanState(Enum):
    """Batch scan lifecycle states."""
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class CandidateOutcome:
    """Result of running the pipeline on one candidate image."""
    
    identifier: str
    similarity: Optional[float] = None
    matched: bool = False
    error: Optional[PhotoMatchError] = None
    
    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class ScanResult:
    """Outcome of a batch scan.
    
    ``matches`` keeps input order. Similarity scores are not retained;
    ``failures`` holds the outcomes of candidates that could not be processed.
    """
    
    state: ScanState
    matches: List[str] = field(default_factory=list)
    progress: int = 0
    total: int = 0
    processed: int = 0
    failures: List[CandidateOutcome] = field(default_factory=list)
    message: Optional[str] = None
    
    @property
    def failure_count(self) -> int:
        return len(self.failures)
    
    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "state": self.state.value,
            "matches": list(self.matches),
            "progress": self.progress,
            "total": self.total,
            "processed": self.processed,
            "failures": [
                {"identifier": f.identifier, "kind": f.error.kind if f.error else None}
                for f in self.failures
            ],
            "message": self.message,
        }
