"""Reviewer assignment for Reviewflow.

This package provides:
- A lock-guarded random source shared by all selectors
- Workload-weighted random sampling
- Candidate pool resolution from label and default reviewer configuration
- The two-phase reviewer selection algorithm
- The periodic assignment pass over open merge requests
"""

from reviewflow.assignment.orchestrator import AssignmentOrchestrator, AssignmentPassReport
from reviewflow.assignment.pool import CandidatePoolResolver, CandidatePools
from reviewflow.assignment.random_source import RandomSource, SynchronizedRandom
from reviewflow.assignment.selection import ReviewerSelector
from reviewflow.assignment.selector import WeightedSelector

__all__ = [
    "AssignmentOrchestrator",
    "AssignmentPassReport",
    "CandidatePoolResolver",
    "CandidatePools",
    "RandomSource",
    "ReviewerSelector",
    "SynchronizedRandom",
    "WeightedSelector",
]
