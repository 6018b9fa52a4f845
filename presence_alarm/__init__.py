"""
Presence-based intrusion alarm with face biometrics.

This package implements the full guard pipeline:
- Face detection and 128-d face descriptors from dlib (face_recognition)
- Owner enrollment (with and without a mask) persisted to a JSON store
- Nearest-sample matching and a per-frame owner-presence verdict
- An alarm gate that fires on window input while the owner is absent
"""

__version__ = "1.0.0"
