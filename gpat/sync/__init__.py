"""Bidirectional sync between a linear git history and a patch archive.

- History reader: the commit chain, oldest first, proven linear up front
- Patch archive: ``<timestamp>.patch`` files, ordered numerically
- Diff codec: tree pairs to patch bytes and back
- Sync engine: lockstep prefix verification, then extension of the shorter side
"""
