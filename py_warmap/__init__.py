"""
Territory control tracking and map rendering for the Foxhole world conquest.
"""

__version__ = "0.1.0"
