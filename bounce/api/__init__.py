"""
HTTP layer: routing, dependencies and representation.
"""
