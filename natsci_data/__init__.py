"""Dataset fetching and validation tools for "Data Analysis in Natural Sciences"."""

__version__ = "1.0.0"
