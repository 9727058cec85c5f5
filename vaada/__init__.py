"""Vaada: settlement pipeline for staked fitness goals."""

__version__ = "0.1.0"
__author__ = "Vaada Team"

# Settings are loaded from vaada.config, not from the package root
__all__ = ["__version__", "__author__"]
