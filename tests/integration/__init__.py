"""Integration tests for components working together as a system.

No mocks for core functionality - real HTTP exchanges through
httpx.ASGITransport against the scripted FastAPI backend.

Coverage:
    - SSE client against streamed responses and HTTP failures
    - Persistence gateway save and history fetch
    - Full turns: streaming, approval pause and resume, persistence
"""
