"""TFLite FaceNet embedding backend."""

import logging
from pathlib import Path
from typing import Optional, Tuple, Union

import numpy as np

from .base import InferenceBackend
from ..constants import get_embedding_config
from ..errors import InferenceFailure

logger = logging.getLogger(__name__)


class TFLiteInference(InferenceBackend):
    """FaceNet embedding model run by the TFLite interpreter (160x160x3 -> 128D)."""
    
    def __init__(
        self,
        model_path: Optional[Union[str, Path]] = None,
        num_threads: Optional[int] = None,
        input_shape: Tuple[int, ...] = (1, 160, 160, 3),
        output_size: int = 128,
    ):
        """Initialize TFLite backend.
        
        Args:
            model_path: Path to the .tflite model (uses config default if None)
            num_threads: Interpreter threads (uses config default if None)
            input_shape: Expected model input shape
            output_size: Expected embedding length
        """
        config = get_embedding_config()
        self._model_path = Path(model_path or config.model_path)
        self._num_threads = num_threads if num_threads is not None else config.num_threads
        self._input_shape = tuple(input_shape)
        self._output_size = output_size
        self._interpreter = None
        self._input_details = None
        self._output_details = None
    
    @property
    def name(self) -> str:
        return f"tflite:{self._model_path.name}"
    
    @property
    def input_shape(self) -> Tuple[int, ...]:
        return self._input_shape
    
    @property
    def output_size(self) -> int:
        return self._output_size
    
    def load(self) -> None:
        """Create the interpreter and check the model's tensor shapes."""
        try:
            import tflite_runtime.interpreter as tflite
        except ImportError:
            try:
                from tensorflow import lite as tflite
            except ImportError:
                raise InferenceFailure(
                    "TFLite not installed. Install with: "
                    "pip install tflite-runtime or pip install tensorflow"
                )
        
        if not self._model_path.exists():
            raise InferenceFailure(f"TFLite face embedding model not found: {self._model_path}")
        
        try:
            interpreter = tflite.Interpreter(
                model_path=str(self._model_path),
                num_threads=self._num_threads,
            )
            interpreter.allocate_tensors()
        except (ValueError, RuntimeError) as e:
            raise InferenceFailure(f"Failed to load TFLite model: {e}") from e
        
        input_details = interpreter.get_input_details()
        output_details = interpreter.get_output_details()
        model_input = tuple(int(d) for d in input_details[0]["shape"])
        if model_input != self._input_shape:
            raise InferenceFailure(f"Model input shape {model_input} does not match {self._input_shape}")
        
        self._interpreter = interpreter
        self._input_details = input_details
        self._output_details = output_details
        logger.info(f"Loaded TFLite model from {self._model_path} ({self._num_threads} threads)")
    
    def run(self, tensor: np.ndarray) -> np.ndarray:
        if self._interpreter is None:
            raise InferenceFailure("TFLite model is not loaded")
        
        input_data = tensor.astype(np.float32, copy=False).reshape(self._input_shape)
        self._interpreter.set_tensor(self._input_details[0]["index"], input_data)
        self._interpreter.invoke()
        output = self._interpreter.get_tensor(self._output_details[0]["index"])
        return np.array(output, dtype=np.float32).flatten()
    
    def close(self) -> None:
        self._interpreter = None
        self._input_details = None
        self._output_details = None
