"""Centralized constants and configuration loader.

This module provides access to configuration values and sensible defaults
for all processing constants used by the matching pipeline. Values are
loaded from config/config.yaml when available, otherwise defaults are used.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

# Path to the default configuration file
DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent / "config" / "config.yaml"


def load_config(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """Load configuration from YAML file.
    
    Args:
        config_path: Path to config file. Uses default if None.
        
    Returns:
        Configuration dictionary.
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    
    try:
        if path.exists():
            with open(path, "r") as f:
                return yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Failed to load config from {path}: {e}")
    
    return {}


def _get_nested(config: Dict, *keys: str, default: Any = None) -> Any:
    """Get nested config value with default fallback."""
    value = config
    for key in keys:
        if isinstance(value, dict):
            value = value.get(key)
        else:
            return default
        if value is None:
            return default
    return value


# ============================================================
# Face Processing Constants
# ============================================================

@dataclass
class FaceProcessingConfig:
    """Image scaling, cropping and tensor normalization constants."""
    # Images larger than this on either side are scaled down first
    max_image_dimension: int = 1024
    # Padding added around the detected box, as fraction of its larger side
    crop_padding_ratio: float = 0.2
    # Square input side of the embedding model
    face_input_size: int = 160
    # "unit" maps pixels to [0, 1], "symmetric" to [-1, 1]
    normalization: str = "unit"
    
    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "FaceProcessingConfig":
        """Create from config dictionary."""
        fp = _get_nested(config, "face_processing") or {}
        
        return cls(
            max_image_dimension=fp.get("max_image_dimension", 1024),
            crop_padding_ratio=fp.get("crop_padding_ratio", 0.2),
            face_input_size=fp.get("face_input_size", 160),
            normalization=fp.get("normalization", "unit"),
        )


# ============================================================
# Detection Constants
# ============================================================

@dataclass
class DetectionConfig:
    """Face detection constants."""
    backend: str = "opencv_dnn"
    # Minimum face width relative to the image width
    min_face_size: float = 0.15
    confidence_threshold: float = 0.5
    
    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "DetectionConfig":
        """Create from config dictionary."""
        det = _get_nested(config, "detection") or {}
        
        return cls(
            backend=det.get("backend", "opencv_dnn"),
            min_face_size=det.get("min_face_size", 0.15),
            confidence_threshold=det.get("confidence_threshold", 0.5),
        )


# ============================================================
# Embedding Constants
# ============================================================

@dataclass
class EmbeddingConfig:
    """FaceNet embedding model constants."""
    model_path: str = "data/models/facenet.tflite"
    embedding_size: int = 128
    num_threads: int = 4
    
    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "EmbeddingConfig":
        """Create from config dictionary."""
        emb = _get_nested(config, "embedding") or {}
        
        return cls(
            model_path=emb.get("model_path", "data/models/facenet.tflite"),
            embedding_size=emb.get("embedding_size", 128),
            num_threads=emb.get("num_threads", 4),
        )


# ============================================================
# Matching Constants
# ============================================================

@dataclass
class MatchingConfig:
    """Similarity decision constants."""
    # Cosine similarity must be strictly greater than this to match
    threshold: float = 0.60
    
    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "MatchingConfig":
        """Create from config dictionary."""
        m = _get_nested(config, "matching") or {}
        return cls(threshold=m.get("threshold", 0.60))


# ============================================================
# Global Config Instance (lazy loaded)
# ============================================================

class Config:
    """Global configuration singleton."""
    
    _instance: Optional["Config"] = None
    _config: Dict[str, Any] = {}
    
    def __new__(cls) -> "Config":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._load()
        return cls._instance
    
    def _load(self) -> None:
        """Load configuration from file."""
        self._config = load_config()
        self._reset_sections()
    
    def _reset_sections(self) -> None:
        self._face_processing: Optional[FaceProcessingConfig] = None
        self._detection: Optional[DetectionConfig] = None
        self._embedding: Optional[EmbeddingConfig] = None
        self._matching: Optional[MatchingConfig] = None
    
    def reload(self, config_path: Optional[Path] = None) -> None:
        """Reload configuration from file."""
        self._config = load_config(config_path)
        self._reset_sections()
    
    @property
    def face_processing(self) -> FaceProcessingConfig:
        """Get face processing config."""
        if self._face_processing is None:
            self._face_processing = FaceProcessingConfig.from_config(self._config)
        return self._face_processing
    
    @property
    def detection(self) -> DetectionConfig:
        """Get detection config."""
        if self._detection is None:
            self._detection = DetectionConfig.from_config(self._config)
        return self._detection
    
    @property
    def embedding(self) -> EmbeddingConfig:
        """Get embedding config."""
        if self._embedding is None:
            self._embedding = EmbeddingConfig.from_config(self._config)
        return self._embedding
    
    @property
    def matching(self) -> MatchingConfig:
        """Get matching config."""
        if self._matching is None:
            self._matching = MatchingConfig.from_config(self._config)
        return self._matching


def get_config() -> Config:
    """Get the global configuration instance."""
    return Config()


# Convenience accessors
def get_face_processing_config() -> FaceProcessingConfig:
    """Get face processing configuration."""
    return get_config().face_processing


def get_detection_config() -> DetectionConfig:
    """Get detection configuration."""
    return get_config().detection


def get_embedding_config() -> EmbeddingConfig:
    """Get embedding configuration."""
    return get_config().embedding


def get_matching_config() -> MatchingConfig:
    """Get matching configuration."""
    return get_config().matching
