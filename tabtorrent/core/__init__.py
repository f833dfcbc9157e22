"""
Core tab engine.

This package contains the session lifecycle. The `TabRegistry` owns the open
tabs, the `SessionController` drives each tab's download, and the normalizer
and projection turn engine messages into renderable tab views.
"""
