"""Candidate image sources and image loading."""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Iterable, List, Sequence, Union

import cv2
import numpy as np

from .errors import GalleryUnavailable, LoadFailure
from .types import Image

logger = logging.getLogger(__name__)

ImageLoader = Callable[[str], Image]

JPEG_EXTENSIONS = (".jpg", ".jpeg")


class GalleryProvider(ABC):
    """Source of candidate image identifiers."""
    
    @abstractmethod
    def list_images(self) -> List[str]:
        """Return image identifiers, newest first.
        
        Raises:
            GalleryUnavailable: If the collection cannot be read
        """
        pass


class DirectoryGallery(GalleryProvider):
    """JPEG files in a directory, sorted by modification time (newest first)."""
    
    def __init__(
        self,
        root: Union[str, Path],
        recursive: bool = False,
        extensions: Sequence[str] = JPEG_EXTENSIONS,
    ):
        self.root = Path(root)
        self.recursive = recursive
        self.extensions = tuple(ext.lower() for ext in extensions)
    
    def list_images(self) -> List[str]:
        if not self.root.is_dir():
            raise GalleryUnavailable(f"Gallery directory not found: {self.root}")
        
        pattern = "**/*" if self.recursive else "*"
        try:
            files = [
                p for p in self.root.glob(pattern)
                if p.is_file() and p.suffix.lower() in self.extensions
            ]
            # Ties on mtime fall back to name so the order is stable
            files.sort(key=lambda p: (-p.stat().st_mtime, str(p)))
        except OSError as e:
            raise GalleryUnavailable(f"Could not read gallery {self.root}: {e}") from e
        
        logger.info(f"Found {len(files)} image(s) in {self.root}")
        return [str(p) for p in files]


class StaticGallery(GalleryProvider):
    """A fixed, caller-supplied list of identifiers."""
    
    def __init__(self, identifiers: Iterable[str]):
        self._identifiers = list(identifiers)
    
    def list_images(self) -> List[str]:
        return list(self._identifiers)


def load_image(identifier: str) -> Image:
    """Decode an image file into an RGB uint8 array.
    
    Raises:
        LoadFailure: If the file is missing, corrupt or in an unsupported format
    """
    path = Path(identifier)
    if not path.is_file():
        raise LoadFailure(f"Image not found: {identifier}")
    
    # imread cannot handle non-ASCII paths on every platform
    try:
        data = np.fromfile(str(path), dtype=np.uint8)
    except OSError as e:
        raise LoadFailure(f"Could not read image {identifier}: {e}") from e
    if data.size == 0:
        raise LoadFailure(f"Empty image file: {identifier}")

    image = cv2.imdecode(data, cv2.IMREAD_COLOR)
    if image is None:
        raise LoadFailure(f"Could not decode image: {identifier}")
    
    return cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
