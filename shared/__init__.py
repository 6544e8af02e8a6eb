"""
Shared Kernel

Domain primitives (change events, results, errors) and the infrastructure
every app builds on: the remote gateway, the realtime hub and the
persisted key-value store.
"""
