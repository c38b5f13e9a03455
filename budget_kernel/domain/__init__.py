"""
Budget kernel domain layer: pure values, state, rules and events.

Nothing in this package performs I/O except ``SystemClock``.
"""
