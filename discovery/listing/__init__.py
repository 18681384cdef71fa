"""
Sort & Page module.

Responsibilities:
- Stable, direction-aware sorting of any entity list by a named field.
- Fixed-size, 1-indexed pagination that never lands on an out-of-range page.
- Shared by the restaurant review list and the admin user/review tables.
"""
