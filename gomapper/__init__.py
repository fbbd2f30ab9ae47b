"""Generate type-safe Go struct mapping functions from Go struct definitions."""

__version__ = "0.1.0"
__all__ = ["__version__"]