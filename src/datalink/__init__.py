"""Report generation and chart layout engine for FogLAMP sensor readings."""

__version__ = "0.1.0"
