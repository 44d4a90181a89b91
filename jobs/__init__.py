"""
Background jobs.

Dramatiq actors for the daily accrual and commission retries, plus the
APScheduler process that enqueues the daily run.
"""
