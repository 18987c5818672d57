"""
Bounce - a governed hypermedia document store.
"""

__version__ = "0.1.0"
