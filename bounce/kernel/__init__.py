"""
Kernel layer: storage, identity and governance.

Nothing in here knows about HTTP; the API layer adapts requests onto these
services and shapes their results.
"""
