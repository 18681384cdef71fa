"""
Faceted search layer.

Responsibilities:
- Describe the active filter selection as an immutable value (Filter Model).
- Round-trip the selection through a shareable key/value store (URL query).
- Evaluate filters locally for an immediate, optimistic result list.
- Evaluate filters canonically over the server-side DataFrame.
"""
