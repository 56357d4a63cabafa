"""Oceanic inorganic iodine (HOI, I2) emissions for gridded chemistry models."""

__version__ = "0.1.0"

__all__ = ["__version__"]
