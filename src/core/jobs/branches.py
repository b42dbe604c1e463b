"""
Branch grouping for the fleet dashboard.

Buckets job summaries by repository ref and keeps the most recent jobs of
each branch, ordered by the numeric suffix of the job name.
"""

from dataclasses import dataclass, field
from functools import cmp_to_key

from src.core.models import JobSummary

DEFAULT_JOB_LIMIT = 20


def compare_job_names(a: str, b: str) -> int:
    """
    Compare two job names for newest-first ordering.

    The suffix after the last "." is a build number. Both suffixes are
    left-padded with zeros to the same length and compared as strings,
    so "a.10" sorts before "a.2". If either suffix is not numeric the
    full names are compared as plain strings instead.

    Returns:
        Negative if a sorts first, positive if b sorts first, 0 if equal.
    """
    a_suffix = a.rsplit(".", 1)[-1]
    b_suffix = b.rsplit(".", 1)[-1]

    if a_suffix.isdigit() and b_suffix.isdigit():
        width = max(len(a_suffix), len(b_suffix))
        a_key = a_suffix.zfill(width)
        b_key = b_suffix.zfill(width)
    else:
        a_key, b_key = a, b

    if a_key == b_key:
        # Same build number on differently named jobs
        a_key, b_key = a, b

    if a_key > b_key:
        return -1
    if a_key < b_key:
        return 1
    return 0


def sort_job_names(names: list[str]) -> list[str]:
    return sorted(names, key=cmp_to_key(compare_job_names))


@dataclass
class BranchRow:
    """One branch with its most recent jobs."""

    name: str
    jobs: list[JobSummary] = field(default_factory=list)

    @property
    def repository(self) -> str:
        """host/owner/repo of the branch's newest job."""
        return self.jobs[0].repository.label if self.jobs else ""


class BranchIndex:
    """
    Jobs grouped by branch.

    Jobs without a complete repository (ref, owner and repo) are ignored.
    A job already in its bucket is replaced by name, so live updates do
    not produce duplicates.

    Example:
        >>> index = BranchIndex()
        >>> index.add(jobs)
        >>> [row.name for row in index.rows()]
        ['feature-x', 'main']
    """

    def __init__(self, max_jobs: int = DEFAULT_JOB_LIMIT) -> None:
        self.max_jobs = max_jobs
        self._branches: dict[str, list[JobSummary]] = {}

    def add(self, jobs: list[JobSummary]) -> None:
        for job in jobs:
            repo = job.repository
            if not (repo.ref and repo.owner and repo.repo):
                continue

            bucket = [j for j in self._branches.get(repo.ref, []) if j.name != job.name]
            bucket.append(job)
            bucket.sort(key=cmp_to_key(lambda x, y: compare_job_names(x.name, y.name)))
            self._branches[repo.ref] = bucket[: self.max_jobs]

    def branch(self, ref: str) -> list[JobSummary]:
        return list(self._branches.get(ref, []))

    def rows(self) -> list[BranchRow]:
        """Branches ordered by name."""
        return [
            BranchRow(name=ref, jobs=list(jobs))
            for ref, jobs in sorted(self._branches.items())
        ]

    def __len__(self) -> int:
        return len(self._branches)
