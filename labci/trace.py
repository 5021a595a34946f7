"""
Locating the job log to show for a commit.

Resolves the newest pipeline for a SHA, pulls every one of its jobs,
puts them back in creation order and picks the most relevant job for a
requested name.
"""

from typing import BinaryIO, List, Optional, Sequence, Tuple

from .client import GitLabClient, ProjectID, project_path
from .errors import APIError
from .jobs import get_pipeline_job_log
from .logger import get_logger
from .models import Job, JobStatus
from .pipelines import get_pipelines

logger = get_logger()

JOBS_PER_PAGE = 500


def list_all_pipeline_jobs(client: GitLabClient, project: ProjectID, pipeline_id: int) -> List[Job]:
    """
    Fetch every job of a pipeline, page by page.

    Jobs come back in API order (ID descending). A failing page aborts the
    whole fetch and its APIError propagates.
    """
    path = f"{project_path(project)}/pipelines/{pipeline_id}/jobs"
    jobs: List[Job] = []
    page_no = 1
    while True:
        data, page = client.get_page(path, params={"per_page": JOBS_PER_PAGE, "page": page_no})
        jobs.extend(Job.model_validate(j) for j in data)
        if page.is_last:
            break
        page_no = page.next

    logger.debug("Fetched pipeline jobs", pipeline_id=pipeline_id, count=len(jobs), pages=page_no)
    return jobs


def sort_jobs_by_created(jobs: Sequence[Job]) -> List[Job]:
    """Return jobs in creation order. Jobs created at the same instant keep their relative order."""
    return sorted(jobs, key=lambda j: j.created_at)


def select_job(jobs: Sequence[Job], name: str) -> Optional[Job]:
    """
    Pick the job whose log is most worth showing.

    jobs must be in creation order. The newest job called `name` wins;
    failing that the newest running job, then the oldest pending job,
    then simply the newest job. Returns None for an empty list.
    """
    if not jobs:
        return None

    match: Optional[Job] = None
    last_running: Optional[Job] = None
    first_pending: Optional[Job] = None

    for j in jobs:
        if j.status == JobStatus.RUNNING:
            last_running = j
        if j.status == JobStatus.PENDING and first_pending is None:
            first_pending = j
        if j.name == name:
            # keep scanning, a retry of the job may come later
            match = j

    if match is not None:
        return match
    if last_running is not None:
        return last_running
    if first_pending is not None:
        return first_pending
    return jobs[-1]


def pipeline_jobs_with_sha(client: GitLabClient, project: ProjectID, sha: str) -> List[Job]:
    """
    Return all jobs of the newest pipeline for a commit, in creation order.

    An empty list means the commit has no pipeline.
    """
    pipelines = get_pipelines(client, project, sha=sha, sort="desc", page=1, per_page=1)
    if not pipelines:
        logger.info("No pipeline for commit", project=project, sha=sha)
        return []
    jobs = list_all_pipeline_jobs(client, project, pipelines[0].id)
    # the jobs endpoint orders by ID, not by creation time
    return sort_jobs_by_created(jobs)


def pipeline_job_trace_with_sha(
    client: GitLabClient,
    project: ProjectID,
    sha: str,
    name: str,
) -> Tuple[Optional[BinaryIO], Optional[Job]]:
    """
    Find the job called `name` for a commit and open its log.

    Returns (log, job), or (None, None) when the commit has no jobs. If the
    log request fails the APIError is re-raised with the chosen job set on
    its `job` attribute.
    """
    jobs = pipeline_jobs_with_sha(client, project, sha)
    job = select_job(jobs, name)
    if job is None:
        return None, None

    logger.debug("Selected job", sha=sha, requested=name, job_id=job.id, job_name=job.name, status=job.status.value)
    try:
        log = get_pipeline_job_log(client, project, job.id)
    except APIError as e:
        e.job = job
        raise
    return log, job
