from __future__ import annotations


class RequestTokens:
    """Monotonic request tokens for discarding out-of-order responses.

    Every canonical query is tagged with a freshly minted token; when its
    response arrives only the most recently minted token is accepted. Tokens
    are never reused, so a late answer to an older query can never win.
    """

    def __init__(self) -> None:
        self._latest = 0

    @property
    def latest(self) -> int:
        return self._latest

    def mint(self) -> int:
        self._latest += 1
        return self._latest

    def invalidate(self) -> None:
        """Make every outstanding token stale without issuing a query."""
        self._latest += 1

    def is_latest(self, token: int) -> bool:
        return token == self._latest
