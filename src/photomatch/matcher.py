"""Batch matching of candidate images against a reference embedding.

Each candidate is processed to completion (load, detect, embed, score)
before the next one starts. Failures stay local to their candidate: they
are recorded as CandidateOutcome values and the scan moves on.
"""

import logging
import threading
from typing import Callable, Iterable, Optional

from .errors import LoadFailure, PhotoMatchError
from .gallery import GalleryProvider, ImageLoader, load_image
from .pipeline import FaceEmbeddingPipeline
from .similarity import SimilarityScorer
from .types import CandidateOutcome, Embedding, Image, ScanResult, ScanState

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]


def progress_percent(processed: int, total: int) -> int:
    """Round 100 * processed / total to the nearest integer, halves up."""
    return (200 * processed + total) // (2 * total)


class BatchMatcher:
    """Scans a collection of images for faces matching a reference."""
    
    def __init__(
        self,
        pipeline: FaceEmbeddingPipeline,
        loader: ImageLoader = load_image,
        scorer: Optional[SimilarityScorer] = None,
        on_progress: Optional[ProgressCallback] = None,
    ):
        """Initialize the matcher.
        
        Args:
            pipeline: Embedding pipeline shared by reference and candidates
            loader: Turns an identifier into pixel data, raising LoadFailure
            scorer: Similarity scorer (configured threshold if None)
            on_progress: Callback receiving integer percentages
        """
        self.pipeline = pipeline
        self.loader = loader
        self.scorer = scorer or SimilarityScorer()
        self.on_progress = on_progress
        self._state = ScanState.IDLE
        self._state_lock = threading.Lock()
    
    @property
    def state(self) -> ScanState:
        return self._state
    
    def compute_reference(self, image: Image) -> Embedding:
        """Compute the reference embedding. Errors propagate to the caller."""
        embedding = self.pipeline.get_face_embedding(image)
        logger.debug(f"Reference embedding: {embedding[:5].tolist()}")
        return embedding
    
    def process_candidate(
        self,
        reference: Embedding,
        identifier: str,
        threshold: Optional[float] = None,
    ) -> CandidateOutcome:
        """Run the full pipeline on one candidate without raising."""
        try:
            image = self.loader(identifier)
        except PhotoMatchError as e:
            return self._failed(identifier, e)
        except Exception as e:
            return self._failed(identifier, LoadFailure(f"Could not load {identifier}: {e}"))
        
        try:
            embedding = self.pipeline.get_face_embedding(image)
            del image
            similarity = self.scorer.score(reference, embedding)
        except PhotoMatchError as e:
            return self._failed(identifier, e)
        except Exception as e:
            return self._failed(identifier, PhotoMatchError(f"Unexpected error: {e}"))
        
        matched = self.scorer.is_match(similarity, threshold)
        logger.debug(f"{identifier}: similarity={similarity:.4f} matched={matched}")
        return CandidateOutcome(identifier=identifier, similarity=similarity, matched=matched)
    
    def _failed(self, identifier: str, error: PhotoMatchError) -> CandidateOutcome:
        logger.warning(f"Skipping {identifier}: {error.kind}: {error}")
        return CandidateOutcome(identifier=identifier, error=error)
    
    def _emit_progress(self, percent: int, callback: Optional[ProgressCallback]) -> None:
        if callback is None:
            return
        try:
            callback(percent)
        except Exception as e:
            logger.error(f"Progress callback error: {e}")
    
    def _enter_running(self) -> None:
        with self._state_lock:
            if self._state is ScanState.RUNNING:
                raise RuntimeError("A scan is already running on this matcher")
            self._state = ScanState.RUNNING
    
    def scan(
        self,
        reference: Embedding,
        candidates: Iterable[str],
        threshold: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> ScanResult:
        """Match every candidate against the reference, in input order.
        
        Args:
            reference: Reference embedding
            candidates: Image identifiers
            threshold: Match threshold (scorer's threshold if None)
            cancel_event: Checked before each candidate; when set the scan stops
            on_progress: Overrides the matcher's progress callback for this scan
            
        Returns:
            ScanResult with matching identifiers in input order
        """
        callback = on_progress or self.on_progress
        candidates = list(candidates)
        total = len(candidates)
        
        self._enter_running()
        result = ScanResult(state=ScanState.RUNNING, total=total)
        try:
            if threshold is None:
                threshold = self.scorer.threshold
            logger.info(f"Scanning {total} candidate(s), threshold {threshold:.2f}")
            
            for identifier in candidates:
                if cancel_event is not None and cancel_event.is_set():
                    logger.info(f"Scan cancelled after {result.processed}/{total} candidate(s)")
                    result.state = ScanState.CANCELLED
                    break
                
                outcome = self.process_candidate(reference, identifier, threshold)
                result.processed += 1
                if outcome.matched:
                    result.matches.append(identifier)
                elif not outcome.ok:
                    result.failures.append(outcome)
                
                result.progress = progress_percent(result.processed, total)
                self._emit_progress(result.progress, callback)
            else:
                result.state = ScanState.COMPLETED
        finally:
            if result.state is ScanState.RUNNING:
                result.state = ScanState.FAILED
            with self._state_lock:
                self._state = result.state
        
        logger.info(
            f"Scan {result.state.value}: {len(result.matches)} match(es), "
            f"{result.failure_count} failure(s) in {result.processed} image(s)"
        )
        return result
    
    def scan_gallery(
        self,
        reference: Embedding,
        gallery: GalleryProvider,
        threshold: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> ScanResult:
        """Scan every image a gallery provides.
        
        If the candidate list cannot be obtained the result is FAILED with
        the error message, never an empty COMPLETED result.
        """
        try:
            candidates = gallery.list_images()
        except Exception as e:
            logger.error(f"Could not list gallery images: {e}")
            with self._state_lock:
                if self._state is ScanState.RUNNING:
                    raise RuntimeError("A scan is already running on this matcher") from e
                self._state = ScanState.FAILED
            return ScanResult(state=ScanState.FAILED, message=str(e))
        
        return self.scan(reference, candidates, threshold, cancel_event, on_progress)
