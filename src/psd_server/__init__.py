"""Convert layered PSD documents into Figma-style design nodes."""

__version__ = "0.1.0"
