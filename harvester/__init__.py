"""
Incremental certificate and avatar harvester for the Imagine Math portal.
"""

__version__ = "1.0.0"
