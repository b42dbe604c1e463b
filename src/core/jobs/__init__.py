"""
Job list module.

- JobCollection: paginated, filtered job list kept live by push updates
- SortState: column selection with the age inversion rule
- BranchIndex: jobs grouped by branch for the fleet dashboard
"""

from src.core.jobs.branches import BranchIndex, BranchRow, compare_job_names, sort_job_names
from src.core.jobs.collection import JobCollection
from src.core.jobs.sorting import SortState

__all__ = [
    "BranchIndex",
    "BranchRow",
    "JobCollection",
    "SortState",
    "compare_job_names",
    "sort_job_names",
]
