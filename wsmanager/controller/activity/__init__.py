"""Last-activity lookups consulted by the timeout reconciler.

Backends:

- **memory**: in-process table (local runs, tests)
- **redis**: keys written by the heartbeat service
"""
