#!/usr/bin/env python3
"""Command line front end for photomatch.

Usage:
    photomatch embed --image me.jpg
    photomatch search --reference me.jpg --gallery ~/Pictures
    python -m photomatch search --reference me.jpg --gallery ./photos --threshold 0.7

Examples:
    # Check that a reference photo has a usable face
    photomatch embed --image me.jpg

    # Find photos of the same person, newest first
    photomatch search --reference me.jpg --gallery ./photos --recursive

    # Use the MediaPipe detector and a custom FaceNet model
    photomatch --backend mediapipe --model ./facenet.tflite search --reference me.jpg --gallery ./photos
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

import numpy as np

from . import __version__
from .constants import get_config
from .detection import FaceDetectorAdapter
from .embedding import EmbeddingExtractor, TFLiteInference
from .errors import PhotoMatchError
from .gallery import DirectoryGallery, load_image
from .matcher import BatchMatcher
from .pipeline import FaceEmbeddingPipeline
from .types import ScanState
from .worker import ProgressEvent, ResultEvent, ScanWorker

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def build_pipeline(args) -> FaceEmbeddingPipeline:
    """Create a pipeline from command line overrides and config defaults."""
    detector = FaceDetectorAdapter(backend=args.backend)
    backend = TFLiteInference(model_path=args.model) if args.model else None
    extractor = EmbeddingExtractor(backend=backend)
    return FaceEmbeddingPipeline(detector=detector, extractor=extractor)


def cmd_embed(args) -> int:
    """Compute and summarize the embedding of one photo."""
    image = load_image(args.image)
    
    with build_pipeline(args) as pipeline:
        embedding = pipeline.get_face_embedding(image)
    
    logger.info(f"Embedding: {len(embedding)} values, norm {np.linalg.norm(embedding):.4f}")
    print(" ".join(f"{v:.4f}" for v in embedding[:args.show]))
    return 0


def cmd_search(args) -> int:
    """Find gallery photos matching the reference photo."""
    reference_image = load_image(args.reference)
    gallery = DirectoryGallery(args.gallery, recursive=args.recursive)
    result = None
    
    with build_pipeline(args) as pipeline:
        matcher = BatchMatcher(pipeline)
        with ScanWorker(matcher, gallery) as worker:
            worker.start(reference_image, threshold=args.threshold)
            for event in worker.iter_events():
                if isinstance(event, ProgressEvent):
                    logger.info(f"Progress: {event.percent}%")
                elif isinstance(event, ResultEvent):
                    result = event.result
    
    if result.state is ScanState.FAILED:
        logger.error(f"Search failed: {result.message}")
        return 1
    
    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        for identifier in result.matches:
            print(identifier)
    
    logger.info(
        f"Found {len(result.matches)} matching photo(s); "
        f"{result.failure_count} of {result.total} could not be processed"
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="photomatch",
        description="Find photos of the same person in a local gallery",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", type=str, help="Path to configuration file")
    parser.add_argument(
        "--backend",
        type=str,
        choices=FaceDetectorAdapter.available_backends(),
        help="Face detection backend (default from config)",
    )
    parser.add_argument("--model", type=str, help="Path to FaceNet .tflite model")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    
    subparsers = parser.add_subparsers(dest="command", help="Available commands")
    
    embed_parser = subparsers.add_parser("embed", help="Compute the embedding of one photo")
    embed_parser.add_argument("--image", type=str, required=True, help="Photo with one face")
    embed_parser.add_argument("--show", type=int, default=5, help="Number of values to print")
    embed_parser.set_defaults(func=cmd_embed)
    
    search_parser = subparsers.add_parser("search", help="Find matching photos in a directory")
    search_parser.add_argument("--reference", type=str, required=True, help="Reference photo")
    search_parser.add_argument("--gallery", type=str, required=True, help="Directory of JPEG photos")
    search_parser.add_argument("--threshold", type=float, help="Similarity threshold (default from config)")
    search_parser.add_argument("--recursive", action="store_true", help="Include subdirectories")
    search_parser.add_argument("--json", action="store_true", help="Print the full result as JSON")
    search_parser.set_defaults(func=cmd_search)
    
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the photomatch CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)
    
    if args.command is None:
        parser.print_help()
        return 0
    
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    
    if args.config:
        get_config().reload(Path(args.config))
    
    try:
        return args.func(args)
    except PhotoMatchError as e:
        logger.error(f"{e.kind}: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
