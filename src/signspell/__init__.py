"""
SignSpell
==========

Real-time fingerspelling to text.

Modules:
    - capture: Camera frame acquisition
    - detection: MediaPipe hand landmark detection and overlay drawing
    - recognition: Rate-limited remote classification and stability consensus
    - core: Shared types, event bus and the frame loop
    - utils: Configuration and logging
"""

__version__ = "1.0.0"
