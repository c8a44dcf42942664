"""State/sync layer.

This package owns how a local value is diffed, patched and kept consistent
with the peer: the patch engine and the per-key sync coordinator.
"""
