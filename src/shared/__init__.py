"""
Shared library for the track event enricher.
"""

__version__ = "0.1.0"
