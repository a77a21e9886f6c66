"""Reviewflow - merge request review automation.

This package assigns reviewers to new merge requests using weighted,
constraint-respecting selection, tracks the review/fix cycle of each MR,
and notifies people through a chat bot only on meaningful transitions.
"""

__version__ = "0.1.0"
