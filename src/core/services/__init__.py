"""
Service layer for the job client runtime.

This module exports the views and actions offered to presentation code.
"""

from src.core.services.actions import JobActions, ReplayNotAllowedError
from src.core.services.branches import BranchBoard
from src.core.services.job_view import JobView

__all__ = ["BranchBoard", "JobActions", "JobView", "ReplayNotAllowedError"]
