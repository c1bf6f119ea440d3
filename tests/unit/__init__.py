"""Unit tests for individual components in isolation.

Ensures fast execution with no network access.

Coverage:
    - models/: Event decoding and request schemas
    - transport/: SSE framing and sentinels
    - state/: Reducers, conversation store and tool content store
    - session/: Deferred flush, transcript buffer and the state machine

Uses a scripted transport and mocked gateway for the session tests.
Leverages pytest-check for multiple assertions per test.
"""
