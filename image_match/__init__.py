"""
image_match: Content-based image retrieval with hand-built features.

Turns images into fixed-length feature vectors (pixel blocks,
chromaticity histograms, texture and face-aware histograms) and ranks
a feature database against a query by a method-specific distance.

Modules:
    engine          SearchEngine class, embedding and hybrid search
    methods         Feature extraction methods
    histograms      Chromaticity and texture histograms
    filters         Separable Sobel gradients and magnitude
    distances       Distance metrics and method/metric pairing
    ranking         Linear-scan top-N ranking
    detection       Haar cascade face detector
    preprocessing   Image loading, grid validation, regions
    feature_store   Feature CSV reading and writing
    embeddings      External embedding tables (FAISS flat index)
    index_builder   Batch feature extraction
    cli             Command-line entry point
"""

__version__ = "1.0.0"
