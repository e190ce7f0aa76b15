"""Error kinds raised by the matching pipeline."""


class PhotoMatchError(Exception):
    """Base class for all pipeline errors."""

    kind = "error"


class LoadFailure(PhotoMatchError):
    """Candidate image could not be read or decoded."""

    kind = "load_failure"


class NoFaceDetected(PhotoMatchError):
    """The detector found no usable face in the image."""

    kind = "no_face_detected"


class InvalidRegion(PhotoMatchError):
    """Crop geometry collapsed to an empty region, or a face image has the wrong shape."""

    kind = "invalid_region"


class InferenceFailure(PhotoMatchError):
    """The embedding model is unavailable or rejected its input."""

    kind = "inference_failure"


class DimensionMismatch(PhotoMatchError):
    """Two embeddings of different lengths were compared."""

    kind = "dimension_mismatch"


class GalleryUnavailable(PhotoMatchError):
    """The list of candidate images could not be obtained."""

    kind = "gallery_unavailable"
