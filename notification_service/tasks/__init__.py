"""Periodic jobs.

- scheduler.py: APScheduler jobs for stream polling, stale-entry reclaim and the retry sweep
"""

from __future__ import annotations
