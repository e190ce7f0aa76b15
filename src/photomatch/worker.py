"""Background scan worker.

Runs the reference embedding and then the gallery scan on one daemon
thread. Progress and the final result are posted to a FIFO queue that a
presentation thread can consume.
"""

import logging
import queue
import threading
from dataclasses import dataclass
from typing import Iterator, Optional, Union

from .gallery import GalleryProvider
from .matcher import BatchMatcher
from .types import Image, ScanResult, ScanState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProgressEvent:
    """Percentage of candidates processed so far."""
    percent: int


@dataclass(frozen=True)
class ResultEvent:
    """Terminal event carrying the scan result."""
    result: ScanResult


ScanEvent = Union[ProgressEvent, ResultEvent]


class ScanWorker:
    """Runs one reference-then-scan job in the background."""
    
    def __init__(self, matcher: BatchMatcher, gallery: GalleryProvider):
        self.matcher = matcher
        self.gallery = gallery
        self.events: "queue.Queue[ScanEvent]" = queue.Queue()
        self._cancel_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._result: Optional[ScanResult] = None
    
    def start(self, reference_image: Image, threshold: Optional[float] = None) -> None:
        """Start the job. A worker runs at most one job."""
        if self._thread is not None:
            raise RuntimeError("Scan worker already started")
        
        self._thread = threading.Thread(
            target=self._run,
            args=(reference_image, threshold),
            name="photomatch-scan",
            daemon=True,
        )
        self._thread.start()
        logger.info("Scan worker started")
    
    def _run(self, reference_image: Image, threshold: Optional[float]) -> None:
        try:
            reference = self.matcher.compute_reference(reference_image)
        except Exception as e:
            logger.error(f"Reference photo rejected: {e}")
            result = ScanResult(state=ScanState.FAILED, message=f"Reference photo: {e}")
        else:
            del reference_image
            try:
                result = self.matcher.scan_gallery(
                    reference,
                    self.gallery,
                    threshold=threshold,
                    cancel_event=self._cancel_event,
                    on_progress=self._post_progress,
                )
            except Exception as e:
                logger.exception("Scan aborted")
                result = ScanResult(state=ScanState.FAILED, message=str(e))
        
        self._result = result
        self.events.put(ResultEvent(result))
    
    def _post_progress(self, percent: int) -> None:
        self.events.put(ProgressEvent(percent))
    
    def cancel(self) -> None:
        """Ask the scan to stop before its next candidate."""
        self._cancel_event.set()
    
    def join(self, timeout: Optional[float] = None) -> Optional[ScanResult]:
        """Wait for the job; returns the result if it finished."""
        if self._thread is not None:
            self._thread.join(timeout)
        return self._result
    
    def iter_events(self, timeout: Optional[float] = None) -> Iterator[ScanEvent]:
        """Yield events in order until the result event.
        
        Raises:
            queue.Empty: If no event arrives within timeout
        """
        while True:
            event = self.events.get(timeout=timeout)
            yield event
            if isinstance(event, ResultEvent):
                return
    
    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
    
    @property
    def result(self) -> Optional[ScanResult]:
        return self._result
    
    def __enter__(self):
        return self
    
    def __exit__(self, exc_type, exc_val, exc_tb):
        self.cancel()
        self.join()
        return False
