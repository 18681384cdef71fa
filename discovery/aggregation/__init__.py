"""
Derived statistics over a result set (rating histogram, averages).
"""
