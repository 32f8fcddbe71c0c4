"""
Besubox - provision and manage private Besu networks in Docker containers.
"""

__version__ = "0.3.0"
