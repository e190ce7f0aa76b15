"""Tests for the face detector adapter."""

import sys
import threading
from types import SimpleNamespace
from typing import List

import numpy as np
import pytest

from photomatch.detection import (
    BaseFaceDetector,
    DETECTION_BACKENDS,
    FaceDetectorAdapter,
    MediaPipeDetector,
    OpenCVDNNDetector,
)
from photomatch.embedding import EmbeddingExtractor
from photomatch.errors import InferenceFailure, NoFaceDetected
from photomatch.pipeline import FaceEmbeddingPipeline
from photomatch.types import BoundingBox, DetectedFace


class ListDetector(BaseFaceDetector):
    """Returns a fixed list of faces and remembers the calling thread."""
    
    def __init__(self, faces: List[DetectedFace]):
        self.faces = faces
        self.thread_names = []
        self.closed = False
    
    def detect(self, image: np.ndarray) -> List[DetectedFace]:
        self.thread_names.append(threading.current_thread().name)
        return list(self.faces)
    
    def close(self) -> None:
        self.closed = True


class BrokenDetector(BaseFaceDetector):
    def detect(self, image: np.ndarray) -> List[DetectedFace]:
        raise RuntimeError("detector crashed")


def face(left, top, right, bottom, confidence=0.9):
    return DetectedFace(BoundingBox(left, top, right, bottom), confidence)


@pytest.fixture
def image():
    return np.zeros((400, 400, 3), dtype=np.uint8)


class TestBoundingBox:
    """Test cases for BoundingBox."""
    
    def test_properties(self):
        box = BoundingBox(left=100, top=50, right=180, bottom=150)
        assert box.width == 80
        assert box.height == 100
        assert box.area == 8000
    
    def test_clamp(self):
        box = BoundingBox(-10, -5, 500, 300).clamp(400, 250)
        assert box == BoundingBox(0, 0, 400, 250)
    
    def test_validity(self):
        assert BoundingBox(0, 0, 10, 10).is_valid_for(10, 10)
        assert not BoundingBox(0, 0, 11, 10).is_valid_for(10, 10)
        assert not BoundingBox(5, 0, 5, 10).is_valid_for(10, 10)
    
    def test_degenerate_area_is_zero(self):
        assert BoundingBox(10, 10, 5, 20).area == 0


class TestFaceDetectorAdapter:
    """Test cases for FaceDetectorAdapter."""
    
    def test_largest_face_is_selected(self, image):
        detector = ListDetector([
            face(0, 0, 100, 100),
            face(100, 100, 300, 300),
            face(300, 300, 380, 380),
        ])
        with FaceDetectorAdapter(backend=detector, min_face_size=0.15) as adapter:
            largest = adapter.detect_largest_face(image)
        assert largest.box == BoundingBox(100, 100, 300, 300)
    
    def test_tie_keeps_first_face(self, image):
        detector = ListDetector([
            face(0, 0, 100, 100, confidence=0.6),
            face(200, 200, 300, 300, confidence=0.99),
        ])
        with FaceDetectorAdapter(backend=detector, min_face_size=0.0) as adapter:
            largest = adapter.detect_largest_face(image)
        assert largest.box == BoundingBox(0, 0, 100, 100)
    
    def test_no_faces_returns_none(self, image):
        with FaceDetectorAdapter(backend=ListDetector([])) as adapter:
            assert adapter.detect_largest_face(image) is None
    
    def test_backend_failure_maps_to_no_face(self, image):
        with FaceDetectorAdapter(backend=BrokenDetector()) as adapter:
            assert adapter.detect_faces(image) == []
            assert adapter.detect_largest_face(image) is None
    
    def test_small_faces_are_filtered(self, image):
        # 400px wide image, 15% => 60px minimum width
        detector = ListDetector([face(0, 0, 50, 200), face(100, 100, 170, 170)])
        with FaceDetectorAdapter(backend=detector, min_face_size=0.15) as adapter:
            faces = adapter.detect_faces(image)
        assert [f.box for f in faces] == [BoundingBox(100, 100, 170, 170)]
    
    def test_boxes_are_clamped_to_image(self, image):
        detector = ListDetector([face(-20, -20, 150, 150), face(500, 500, 600, 600)])
        with FaceDetectorAdapter(backend=detector, min_face_size=0.0) as adapter:
            faces = adapter.detect_faces(image)
        assert [f.box for f in faces] == [BoundingBox(0, 0, 150, 150)]
    
    def test_detection_runs_on_worker_thread(self, image):
        detector = ListDetector([face(0, 0, 100, 100)])
        with FaceDetectorAdapter(backend=detector) as adapter:
            adapter.detect_faces(image)
            adapter.detect_faces(image)
        assert len(detector.thread_names) == 2
        assert all(name.startswith("face-detect") for name in detector.thread_names)
        assert threading.current_thread().name not in detector.thread_names
    
    def test_release_is_idempotent_and_reusable(self, image):
        detector = ListDetector([face(0, 0, 100, 100)])
        adapter = FaceDetectorAdapter(backend=detector, min_face_size=0.0)
        adapter.release()
        adapter.detect_faces(image)
        adapter.release()
        assert detector.closed
        adapter.release()
        assert len(adapter.detect_faces(image)) == 1
        adapter.release()
    
    def test_invalid_backend(self):
        with pytest.raises(ValueError):
            FaceDetectorAdapter(backend="invalid_backend")
    
    def test_available_backends(self):
        backends = FaceDetectorAdapter.available_backends()
        assert "opencv_dnn" in backends
        assert "mediapipe" in backends
        assert set(backends) == set(DETECTION_BACKENDS)
    
    def test_backend_name(self):
        assert FaceDetectorAdapter(backend="mediapipe").backend_name == "mediapipe"
        assert FaceDetectorAdapter(backend=ListDetector([])).backend_name == "ListDetector"
    
    def test_named_backend_is_created_lazily(self, image):
        adapter = FaceDetectorAdapter(backend="opencv_dnn")
        stub = ListDetector([face(0, 0, 200, 200)])
        adapter.BACKENDS = {"opencv_dnn": lambda: stub}
        assert adapter.detect_largest_face(image).box == BoundingBox(0, 0, 200, 200)
        adapter.release()
        assert stub.closed
    
    def test_backend_construction_failure_is_raised_once(self, image):
        attempts = []
        
        def unavailable_backend():
            attempts.append(1)
            raise RuntimeError("Failed to download model: network unreachable")
        
        adapter = FaceDetectorAdapter(backend="opencv_dnn")
        adapter.BACKENDS = {"opencv_dnn": unavailable_backend}
        for _ in range(5):
            with pytest.raises(InferenceFailure, match="network unreachable"):
                adapter.detect_largest_face(image)
        assert len(attempts) == 1
        
        # release() forgets the failure so a later call can retry
        adapter.release()
        with pytest.raises(InferenceFailure):
            adapter.detect_faces(image)
        assert len(attempts) == 2
        adapter.release()


def make_pipeline(detector, color_inference):
    return FaceEmbeddingPipeline(
        detector=detector,
        extractor=EmbeddingExtractor(backend=color_inference, input_size=160, embedding_size=128),
    )


class TestPipelineDetectorErrors:
    """Detector problems as seen by the embedding pipeline."""
    
    def test_unavailable_detector_is_not_reported_as_no_face(self, color_inference, make_image):
        def unavailable_backend():
            raise OSError("model file missing")
        
        adapter = FaceDetectorAdapter(backend="opencv_dnn")
        adapter.BACKENDS = {"opencv_dnn": unavailable_backend}
        with make_pipeline(adapter, color_inference) as pipeline:
            with pytest.raises(InferenceFailure) as exc_info:
                pipeline.get_face_embedding(make_image((200, 150, 120)))
        assert exc_info.value.kind == "inference_failure"
        assert "model file missing" in str(exc_info.value)
    
    def test_detect_crash_is_reported_as_no_face(self, color_inference, make_image):
        with make_pipeline(FaceDetectorAdapter(backend=BrokenDetector()), color_inference) as pipeline:
            with pytest.raises(NoFaceDetected):
                pipeline.get_face_embedding(make_image((200, 150, 120)))


class StubNet:
    """Stands in for cv2.dnn.Net, returning canned SSD output."""
    
    def __init__(self, detections: np.ndarray):
        self.detections = detections
        self.blob = None
    
    def setInput(self, blob):
        self.blob = blob
    
    def forward(self):
        return self.detections


def ssd_output(*rows):
    """Build a (1, 1, N, 7) SSD detection array from (conf, x1, y1, x2, y2) rows."""
    output = np.zeros((1, 1, max(len(rows), 1), 7), dtype=np.float32)
    for i, (conf, x1, y1, x2, y2) in enumerate(rows):
        output[0, 0, i] = [0, 1, conf, x1, y1, x2, y2]
    return output


@pytest.fixture
def dnn_detector(monkeypatch):
    """OpenCVDNNDetector whose network is replaced by a StubNet."""
    net = StubNet(ssd_output())
    monkeypatch.setattr(OpenCVDNNDetector, "_load_model", lambda self, model_path, config_path: net)
    return OpenCVDNNDetector(confidence_threshold=0.5, nms_threshold=0.3)


class TestOpenCVDNNDetector:
    """Test cases for the OpenCV DNN backend."""
    
    def test_input_is_converted_to_bgr(self, dnn_detector, make_image):
        dnn_detector.detect(make_image((255, 0, 0), height=200, width=400))
        blob = dnn_detector.net.blob
        assert blob.shape == (1, 3, 300, 300)
        # Channel 0 is blue minus its mean, channel 2 is red minus its mean
        assert np.allclose(blob[0, 0], 0 - 104.0)
        assert np.allclose(blob[0, 2], 255 - 123.0)
    
    def test_no_detections(self, dnn_detector, make_image):
        assert dnn_detector.detect(make_image((90, 90, 90), height=200, width=400)) == []
    
    def test_detections_are_filtered_and_scaled(self, dnn_detector, make_image):
        dnn_detector.net.detections = ssd_output(
            (0.9, -0.125, -0.25, 0.5, 0.5),     # clipped to the image
            (0.3, 0.0, 0.0, 0.25, 0.25),        # below confidence threshold
            (0.8, 0.625, 0.5, 0.625, 0.875),    # zero width
            (0.7, 0.0, 0.0, 0.375, 0.5),        # overlaps the first box
            (0.6, 0.75, 0.5, 1.25, 1.0),        # clipped to the image
        )
        faces = dnn_detector.detect(make_image((90, 90, 90), height=200, width=400))
        
        assert [f.box for f in faces] == [
            BoundingBox(0, 0, 200, 100),
            BoundingBox(300, 100, 400, 200),
        ]
        assert faces[0].confidence == pytest.approx(0.9)
        assert faces[1].confidence == pytest.approx(0.6)
    
    def test_through_adapter(self, dnn_detector, make_image):
        dnn_detector.net.detections = ssd_output(
            (0.95, 0.5, 0.5, 0.75, 1.0),
            (0.9, 0.0, 0.0, 0.125, 0.25),
        )
        with FaceDetectorAdapter(backend=dnn_detector, min_face_size=0.15) as adapter:
            largest = adapter.detect_largest_face(make_image((90, 90, 90), height=200, width=400))
        # The second box is only 50px wide, under 15% of 400px
        assert largest.box == BoundingBox(200, 100, 300, 200)


class FakeFaceDetection:
    """Stands in for mediapipe.solutions.face_detection.FaceDetection."""
    
    instances = []
    
    def __init__(self, min_detection_confidence, model_selection):
        self.min_detection_confidence = min_detection_confidence
        self.model_selection = model_selection
        self.detections = None
        self.seen_shapes = []
        self.closed = False
        FakeFaceDetection.instances.append(self)
    
    def process(self, image):
        self.seen_shapes.append(image.shape)
        return SimpleNamespace(detections=self.detections)
    
    def close(self):
        self.closed = True


def mp_detection(xmin, ymin, width, height, score=(0.8,)):
    box = SimpleNamespace(xmin=xmin, ymin=ymin, width=width, height=height)
    return SimpleNamespace(
        location_data=SimpleNamespace(relative_bounding_box=box),
        score=list(score),
    )


@pytest.fixture
def fake_mediapipe(monkeypatch):
    FakeFaceDetection.instances = []
    module = SimpleNamespace(
        solutions=SimpleNamespace(face_detection=SimpleNamespace(FaceDetection=FakeFaceDetection))
    )
    monkeypatch.setitem(sys.modules, "mediapipe", module)
    return module


class TestMediaPipeDetector:
    """Test cases for the MediaPipe backend."""
    
    def test_graph_options(self, fake_mediapipe):
        MediaPipeDetector(min_detection_confidence=0.7, model_selection=1)
        graph = FakeFaceDetection.instances[-1]
        assert graph.min_detection_confidence == 0.7
        assert graph.model_selection == 1
    
    def test_no_detections(self, fake_mediapipe, make_image):
        detector = MediaPipeDetector(min_detection_confidence=0.5)
        assert detector.detect(make_image((90, 90, 90), height=200, width=400)) == []
    
    def test_relative_boxes_are_scaled(self, fake_mediapipe, make_image):
        detector = MediaPipeDetector(min_detection_confidence=0.5)
        FakeFaceDetection.instances[-1].detections = [
            mp_detection(0.25, 0.5, 0.5, 0.25, score=(0.75,)),
            mp_detection(-0.125, 0.0, 0.25, 0.5, score=()),
        ]
        faces = detector.detect(make_image((90, 90, 90), height=200, width=400))
        
        assert [f.box for f in faces] == [
            BoundingBox(100, 100, 300, 150),
            BoundingBox(-50, 0, 50, 100),
        ]
        assert faces[0].confidence == pytest.approx(0.75)
        assert faces[1].confidence == 1.0
    
    def test_boxes_outside_image_are_clamped_by_adapter(self, fake_mediapipe, make_image):
        detector = MediaPipeDetector(min_detection_confidence=0.5)
        FakeFaceDetection.instances[-1].detections = [mp_detection(-0.125, 0.0, 0.25, 0.5)]
        with FaceDetectorAdapter(backend=detector, min_face_size=0.0) as adapter:
            faces = adapter.detect_faces(make_image((90, 90, 90), height=200, width=400))
        assert [f.box for f in faces] == [BoundingBox(0, 0, 50, 100)]
    
    def test_close_is_idempotent(self, fake_mediapipe):
        detector = MediaPipeDetector(min_detection_confidence=0.5)
        graph = FakeFaceDetection.instances[-1]
        detector.close()
        detector.close()
        assert graph.closed
        assert detector.detector is None
    
    def test_missing_package(self, monkeypatch):
        monkeypatch.setitem(sys.modules, "mediapipe", None)
        with pytest.raises(ImportError, match="pip install mediapipe"):
            MediaPipeDetector(min_detection_confidence=0.5)
    
    def test_missing_package_through_adapter(self, monkeypatch, image):
        monkeypatch.setitem(sys.modules, "mediapipe", None)
        with FaceDetectorAdapter(backend="mediapipe") as adapter:
            with pytest.raises(InferenceFailure, match="MediaPipe is required"):
                adapter.detect_faces(image)
