"""
Mood Journal - A personal mood-journal service with analytics.

This package provides a small web service for recording emotion entries with
notes and media attachments, plus aggregate views (trends, breakdowns, word
frequency and streaks) over the recorded history.
"""

__version__ = "0.1.0"
