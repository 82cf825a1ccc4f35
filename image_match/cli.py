"""
Command-line entry point.

    image-match build <image_dir> <method> <output.csv> [--bins 16]
    image-match match <target> <method> <features.csv> <N> [--metric NAME]

`match` also accepts the pseudo-methods `resnet` (rank an external
embedding table by the target's file name) and `custom` (blend an
embedding table with a color histogram table, given with --embeddings
and --histograms).
"""

import argparse
import logging
import os
import sys

from .engine import SearchEngine, hybrid_search, search_embeddings
from .embeddings import EmbeddingTable
from .errors import ImageMatchError, NoFaceDetected
from .feature_store import read_features
from .histograms import HIST_BINS
from .index_builder import build_features
from .methods import Method

logger = logging.getLogger(__name__)

EMBEDDING_MODE = "resnet"
HYBRID_MODE = "custom"


def _build(args) -> int:
    summary = build_features(args.image_dir, args.method, args.output, bins=args.bins)
    print(f"Found {summary['found']} images.")
    if not summary["success"]:
        print(f"Error: {summary['error']}")
        return 1
    print(f"Wrote {summary['processed']} feature vectors to {summary['output_path']}")
    return 0


def _match(args) -> int:
    if args.method == EMBEDDING_MODE:
        table = EmbeddingTable.from_file(args.features)
        results = search_embeddings(args.target, table, args.top_n)
    elif args.method == HYBRID_MODE:
        embeddings = EmbeddingTable.from_file(args.embeddings or args.features)
        if not args.histograms:
            print("Error: --histograms is required for the custom method")
            return 1
        histograms = read_features(args.histograms)
        results = hybrid_search(args.target, embeddings, histograms, args.top_n)
    else:
        engine = SearchEngine(args.features, args.method, metric=args.metric,
                              bins=args.bins, workers=args.workers)
        try:
            results = engine.search(args.target, args.top_n)
        except NoFaceDetected:
            print("Error, no face detected in target image")
            return 1

    print(f"The top {args.top_n} image matches:")
    for i, match in enumerate(results, start=1):
        print(f"{i}: {match.identifier}  (distance = {match.distance:.5f})")
    return 0


def build_parser() -> argparse.ArgumentParser:
    methods = [m.value for m in Method]
    parser = argparse.ArgumentParser(
        prog="image-match",
        description="Content-based image retrieval with hand-built features",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    build = sub.add_parser("build", help="Write feature vectors for an image directory")
    build.add_argument("image_dir", help="Directory of database images")
    build.add_argument("method", choices=methods, help="Feature method")
    build.add_argument("output", help="Feature CSV to write")
    build.add_argument("--bins", type=int, default=HIST_BINS,
                       help=f"Histogram bins (default: {HIST_BINS})")
    build.set_defaults(func=_build)

    match = sub.add_parser("match", help="Find the top N matches for a target image")
    match.add_argument("target", help="Target image path")
    match.add_argument("method", choices=methods + [EMBEDDING_MODE, HYBRID_MODE],
                       help="Feature method the CSV was built with")
    match.add_argument("features", help="Feature CSV")
    match.add_argument("top_n", type=int, help="Number of matches")
    match.add_argument("--metric", help="Distance metric (default: the method's own)")
    match.add_argument("--bins", type=int, default=None,
                       help="Histogram bins (default: from the feature file)")
    match.add_argument("--embeddings", help="Embedding CSV for the custom method")
    match.add_argument("--histograms", help="Color histogram CSV for the custom method")
    match.add_argument("--workers", type=int, default=None,
                       help="Threads for the distance loop")
    match.set_defaults(func=_match)
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    level = logging.DEBUG if args.verbose else os.environ.get("IMAGE_MATCH_LOG_LEVEL", "WARNING")
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    if getattr(args, "top_n", 0) < 0:
        parser.error("N must be non-negative")

    try:
        return args.func(args)
    except (ImageMatchError, FileNotFoundError) as e:
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
