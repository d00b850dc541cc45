"""Repository vitality scoring from commit and release activity."""

__version__ = "0.1.0"
