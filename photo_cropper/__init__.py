"""Interactive photo intake and crop/zoom pipeline."""

__version__ = "0.1.0"
