"""Test package for chatstream.

Unit tests cover isolated logic; integration tests drive whole turns
against an in-process fake backend.

Structure:
    - unit/: Individual function and class tests
    - integration/: End-to-end streaming and persistence workflows
    - fake_backend.py: Scripted FastAPI chat backend

Leverages pytest with pytest-check for soft assertions.
"""
