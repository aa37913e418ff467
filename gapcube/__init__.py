"""
GapCube - Cross-domain collision grid for research gap discovery

Samples documents from many bibliographic sources and organises them into a
3x3x3 grid:
- X: method (observational, computational, experimental)
- Y: surprise (confirmatory, deviation, anomalous)
- Z: semantic cluster (TF-IDF + k-means, relabelled every generation)

Cell pairs are scored for "collision value", a proxy for research-gap potential.
"""

__version__ = "1.0.0"
