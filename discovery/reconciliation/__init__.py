"""
Reconciliation of the optimistic local preview with canonical search results.

Responsibilities:
- Debounce filter changes into at most one canonical query per burst.
- Tag every canonical query with a request token and discard stale answers.
- Keep the last good result set on provider failures.
"""
