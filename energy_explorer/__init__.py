"""
Energy Explorer: import, store and page through per-device energy telemetry.

CHANGELOG:
- 2026-10-02: Initial creation (STORY-001)
"""

__version__ = "0.1.0"
