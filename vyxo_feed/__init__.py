"""VYXO feed backend: For You and Trending feeds."""

__version__ = "1.0.0"
