"""
Scheduled jobs.
- mark_inactive: command-line entry point for the dormancy sweep
- scheduler: daily in-process runner started by the app when enabled
"""
