"""Base class for embedding inference backends."""

from abc import ABC, abstractmethod
from typing import Tuple

import numpy as np


class InferenceBackend(ABC):
    """Abstract base class for a fixed-shape embedding model."""
    
    @property
    @abstractmethod
    def name(self) -> str:
        """Return the name of the model."""
        pass
    
    @property
    @abstractmethod
    def input_shape(self) -> Tuple[int, ...]:
        """Return the model input shape, batch dimension included."""
        pass
    
    @property
    @abstractmethod
    def output_size(self) -> int:
        """Return the length of the raw output vector."""
        pass
    
    @abstractmethod
    def load(self) -> None:
        """Load the model. Called once before the first run()."""
        pass
    
    @abstractmethod
    def run(self, tensor: np.ndarray) -> np.ndarray:
        """Run inference on a flat float32 input buffer.
        
        Args:
            tensor: 1-D float32 array with prod(input_shape) elements
            
        Returns:
            Raw (unnormalized) output vector
        """
        pass
    
    @abstractmethod
    def close(self) -> None:
        """Free the loaded model."""
        pass
