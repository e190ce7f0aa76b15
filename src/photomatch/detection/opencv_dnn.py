"""OpenCV DNN face detector."""

import logging
import urllib.request
from pathlib import Path
from typing import List, Optional, Tuple, Union

import cv2
import numpy as np

from .base import BaseFaceDetector
from ..constants import get_detection_config
from ..types import BoundingBox, DetectedFace

logger = logging.getLogger(__name__)


class OpenCVDNNDetector(BaseFaceDetector):
    """Face detector using OpenCV DNN module with pre-trained SSD model.
    
    Pros: Good accuracy, comes with OpenCV, no extra dependencies
    Cons: Needs model files (auto-downloads)
    """
    
    MODEL_URL = "https://raw.githubusercontent.com/opencv/opencv_3rdparty/dnn_samples_face_detector_20170830/res10_300x300_ssd_iter_140000.caffemodel"
    CONFIG_URL = "https://raw.githubusercontent.com/opencv/opencv/master/samples/dnn/face_detector/deploy.prototxt"
    
    # Mean values for blob normalization (BGR)
    MEAN_VALUES = (104.0, 177.0, 123.0)
    
    def __init__(
        self,
        confidence_threshold: Optional[float] = None,
        model_path: Optional[Union[str, Path]] = None,
        config_path: Optional[Union[str, Path]] = None,
        input_size: Tuple[int, int] = (300, 300),
        nms_threshold: float = 0.3,
    ):
        """Initialize OpenCV DNN face detector.
        
        Args:
            confidence_threshold: Minimum confidence for detections (uses config default if None)
            model_path: Path to caffemodel file
            config_path: Path to prototxt file
            input_size: Input size for the network
            nms_threshold: Non-maximum suppression threshold
        """
        if confidence_threshold is None:
            confidence_threshold = get_detection_config().confidence_threshold
        self.confidence_threshold = confidence_threshold
        self.input_size = input_size
        self.nms_threshold = nms_threshold
        
        self.net = self._load_model(model_path, config_path)
        logger.info("Initialized OpenCV DNN face detector")
    
    def _load_model(
        self,
        model_path: Optional[Union[str, Path]],
        config_path: Optional[Union[str, Path]],
    ) -> cv2.dnn.Net:
        """Load the DNN model, downloading it on first use."""
        default_model_dir = Path(__file__).parent.parent.parent.parent / "data" / "models" / "face_detection"
        
        if model_path is None:
            model_path = default_model_dir / "opencv_face_detector.caffemodel"
        if config_path is None:
            config_path = default_model_dir / "opencv_face_detector.prototxt"
        
        model_path = Path(model_path)
        config_path = Path(config_path)
        
        if not model_path.exists():
            logger.info(f"Downloading model to {model_path}...")
            self._download_file(self.MODEL_URL, model_path)
        
        if not config_path.exists():
            logger.info(f"Downloading config to {config_path}...")
            self._download_file(self.CONFIG_URL, config_path)
        
        net = cv2.dnn.readNetFromCaffe(str(config_path), str(model_path))
        net.setPreferableBackend(cv2.dnn.DNN_BACKEND_OPENCV)
        net.setPreferableTarget(cv2.dnn.DNN_TARGET_CPU)
        
        return net
    
    def _download_file(self, url: str, path: Path) -> None:
        """Download a file from URL."""
        path.parent.mkdir(parents=True, exist_ok=True)
        try:
            urllib.request.urlretrieve(url, str(path))
            logger.info(f"Downloaded to {path}")
        except OSError as e:
            raise RuntimeError(f"Failed to download model from {url}: {e}") from e
    
    def detect(self, image: np.ndarray) -> List[DetectedFace]:
        """Detect faces using OpenCV DNN with NMS."""
        h, w = image.shape[:2]
        
        # The SSD model was trained on BGR input
        bgr = cv2.cvtColor(image, cv2.COLOR_RGB2BGR)
        blob = cv2.dnn.blobFromImage(
            bgr, 1.0, self.input_size, self.MEAN_VALUES,
            swapRB=False, crop=False
        )
        
        self.net.setInput(blob)
        detections = self.net.forward()
        
        boxes = []
        confidences = []
        
        for i in range(detections.shape[2]):
            confidence = float(detections[0, 0, i, 2])
            if confidence <= self.confidence_threshold:
                continue
            
            x1 = int(np.clip(detections[0, 0, i, 3], 0.0, 1.0) * w)
            y1 = int(np.clip(detections[0, 0, i, 4], 0.0, 1.0) * h)
            x2 = int(np.clip(detections[0, 0, i, 5], 0.0, 1.0) * w)
            y2 = int(np.clip(detections[0, 0, i, 6], 0.0, 1.0) * h)
            
            if x2 <= x1 or y2 <= y1:
                continue
            
            boxes.append([x1, y1, x2 - x1, y2 - y1])
            confidences.append(confidence)
        
        detected = []
        if boxes:
            indices = cv2.dnn.NMSBoxes(boxes, confidences, self.confidence_threshold, self.nms_threshold)
            
            for i in np.array(indices).flatten():
                x, y, width, height = boxes[int(i)]
                detected.append(DetectedFace(
                    box=BoundingBox(left=x, top=y, right=x + width, bottom=y + height),
                    confidence=confidences[int(i)],
                ))
        
        return detected
