"""Lost-and-found item import backend: CSV normalization and field validation."""

__version__ = "1.0.0"
