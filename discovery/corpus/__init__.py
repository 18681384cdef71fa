"""
Corpus layer.

Responsibilities:
- Load the canonical restaurant, review and user datasets into memory.
- Hold the last known full corpus for local filtering (Entity Store).
- Provide canonical search results, in-process or over HTTP (Corpus Providers).
"""
