"""Pytest configuration and fixtures."""

import sys
from pathlib import Path
from typing import List, Tuple

import numpy as np
import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from photomatch.detection import BaseFaceDetector, FaceDetectorAdapter  # noqa: E402
from photomatch.embedding import EmbeddingExtractor, InferenceBackend  # noqa: E402
from photomatch.pipeline import FaceEmbeddingPipeline  # noqa: E402
from photomatch.types import BoundingBox, DetectedFace  # noqa: E402


class CenterFaceDetector(BaseFaceDetector):
    """Reports one face covering the central half of any non-black image."""
    
    def __init__(self):
        self.calls = 0
        self.closed = False
    
    def detect(self, image: np.ndarray) -> List[DetectedFace]:
        self.calls += 1
        if image.max() < 30:
            return []
        h, w = image.shape[:2]
        return [DetectedFace(BoundingBox(w // 4, h // 4, 3 * w // 4, 3 * h // 4), 0.99)]
    
    def close(self) -> None:
        self.closed = True


class ColorInference(InferenceBackend):
    """Embeds a face as its mean RGB colour in the first three dimensions.
    
    Faces of similar colour get similarity close to 1, pure red vs. pure
    blue faces are orthogonal.
    """
    
    def __init__(self, size: int = 160, output_size: int = 128):
        self.size = size
        self._output_size = output_size
        self.loads = 0
        self.closes = 0
        self.loaded = False
    
    @property
    def name(self) -> str:
        return "color"
    
    @property
    def input_shape(self) -> Tuple[int, ...]:
        return (1, self.size, self.size, 3)
    
    @property
    def output_size(self) -> int:
        return self._output_size
    
    def load(self) -> None:
        self.loads += 1
        self.loaded = True
    
    def run(self, tensor: np.ndarray) -> np.ndarray:
        assert self.loaded, "run() before load()"
        means = tensor.reshape(self.size, self.size, 3).mean(axis=(0, 1))
        output = np.zeros(self._output_size, dtype=np.float32)
        output[:3] = means
        # Keep black faces from producing a zero vector
        output[3] = 1e-3
        return output * 7.0
    
    def close(self) -> None:
        self.closes += 1
        self.loaded = False


def solid_image(color: Tuple[int, int, int], height: int = 240, width: int = 320) -> np.ndarray:
    """Create an RGB image filled with one colour."""
    image = np.zeros((height, width, 3), dtype=np.uint8)
    image[:] = color
    return image


@pytest.fixture
def sample_image():
    """Create a sample test image."""
    return np.random.randint(0, 255, (480, 640, 3), dtype=np.uint8)


@pytest.fixture
def face_detector():
    return CenterFaceDetector()


@pytest.fixture
def color_inference():
    return ColorInference()


@pytest.fixture
def pipeline(face_detector, color_inference):
    """Pipeline wired to the fake detector and colour embedder."""
    pipe = FaceEmbeddingPipeline(
        detector=FaceDetectorAdapter(backend=face_detector, min_face_size=0.15),
        extractor=EmbeddingExtractor(backend=color_inference, input_size=160, embedding_size=128),
        max_dimension=1024,
        pad_fraction=0.2,
    )
    yield pipe
    pipe.release()


@pytest.fixture
def image_store():
    """In-memory images keyed by identifier, with a loader over them."""
    from photomatch.errors import LoadFailure
    
    images = {}
    
    def loader(identifier: str) -> np.ndarray:
        if identifier not in images:
            raise LoadFailure(f"missing: {identifier}")
        return images[identifier]
    
    return images, loader


@pytest.fixture
def make_image():
    """Factory for solid-colour RGB images."""
    return solid_image
