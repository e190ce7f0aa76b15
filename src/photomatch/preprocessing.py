"""Image scaling, face cropping and tensor normalization."""

from typing import Optional

import cv2
import numpy as np

from .constants import get_face_processing_config
from .errors import InvalidRegion
from .types import BoundingBox, Image

NORMALIZATION_MODES = ("unit", "symmetric")


def ensure_rgb(image: Image) -> Image:
    """Return an HxWx3 uint8 view of an RGB, RGBA or grayscale image.
    
    Alpha is dropped; grayscale is replicated into three channels.
    """
    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2RGB)
    if image.ndim == 3 and image.shape[2] == 4:
        return np.ascontiguousarray(image[:, :, :3])
    if image.ndim == 3 and image.shape[2] == 3:
        return image
    raise ValueError(f"Unsupported image shape: {image.shape}")


def scale_down(image: Image, max_dimension: Optional[int] = None) -> Image:
    """Shrink an image so its larger side equals max_dimension.
    
    Args:
        image: Input image
        max_dimension: Largest allowed side (uses config default if None)
        
    Returns:
        The same object if it already fits, otherwise a new resampled image
        with the aspect ratio preserved.
    """
    if max_dimension is None:
        max_dimension = get_face_processing_config().max_image_dimension
    h, w = image.shape[:2]
    if w <= max_dimension and h <= max_dimension:
        return image
    
    ratio = max_dimension / max(w, h)
    new_w = max(1, int(round(w * ratio)))
    new_h = max(1, int(round(h * ratio)))
    if w >= h:
        new_w = max_dimension
    else:
        new_h = max_dimension
    return cv2.resize(image, (new_w, new_h), interpolation=cv2.INTER_AREA)


def pad_box(box: BoundingBox, pad_frac: float, width: int, height: int) -> BoundingBox:
    """Grow a box by pad_frac of its larger side on every edge, clamped to the image."""
    padding = int(max(box.width, box.height) * pad_frac)
    padded = BoundingBox(
        left=box.left - padding,
        top=box.top - padding,
        right=box.right + padding,
        bottom=box.bottom + padding,
    )
    return padded.clamp(width, height)


def crop_and_resize(
    image: Image,
    box: BoundingBox,
    pad_frac: Optional[float] = None,
    target_size: Optional[int] = None,
) -> Image:
    """Crop a padded face region and resize it to a square model input.
    
    Args:
        image: Full image
        box: Face bounding box
        pad_frac: Padding as fraction of the box's larger side (uses config default if None)
        target_size: Output side length (uses config default if None)
        
    Returns:
        target_size x target_size face image
        
    Raises:
        InvalidRegion: If the padded, clamped region has zero area
    """
    config = get_face_processing_config()
    if pad_frac is None:
        pad_frac = config.crop_padding_ratio
    if target_size is None:
        target_size = config.face_input_size
    if pad_frac < 0:
        raise InvalidRegion(f"Negative padding fraction: {pad_frac}")
    
    h, w = image.shape[:2]
    region = pad_box(box, pad_frac, w, h)
    if not region.is_valid_for(w, h):
        raise InvalidRegion(f"Empty crop region {region} for {w}x{h} image (box {box})")
    
    crop = np.ascontiguousarray(image[region.top:region.bottom, region.left:region.right])
    return cv2.resize(crop, (target_size, target_size), interpolation=cv2.INTER_LINEAR)


def to_normalized_tensor(
    face_image: Image,
    target_size: Optional[int] = None,
    mode: Optional[str] = None,
) -> np.ndarray:
    """Flatten a face image into a float32 model input buffer.
    
    The buffer is row-major and channel-interleaved (RGBRGB...), of length
    target_size * target_size * 3.
    
    Args:
        face_image: target_size x target_size x 3 RGB image
        target_size: Expected side length (uses config default if None)
        mode: "unit" for [0, 1] or "symmetric" for [-1, 1] (uses config default if None)
        
    Returns:
        1-D float32 array
    """
    config = get_face_processing_config()
    if target_size is None:
        target_size = config.face_input_size
    if mode is None:
        mode = config.normalization
    if mode not in NORMALIZATION_MODES:
        raise ValueError(f"Unknown normalization mode: {mode}. Available: {list(NORMALIZATION_MODES)}")
    if face_image.shape != (target_size, target_size, 3):
        raise InvalidRegion(
            f"Face image shape {face_image.shape} does not match {(target_size, target_size, 3)}"
        )
    
    tensor = face_image.astype(np.float32)
    if mode == "unit":
        tensor /= 255.0
    else:
        tensor = (tensor - 127.5) / 127.5
    return tensor.reshape(-1)
