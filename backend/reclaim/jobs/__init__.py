"""Periodic maintenance jobs."""

from reclaim.jobs.runner import Job, JobRunner
from reclaim.jobs.vacuum import VacuumDeploymentsJob, register_jobs

__all__ = [
    "Job",
    "JobRunner",
    "VacuumDeploymentsJob",
    "register_jobs",
]
