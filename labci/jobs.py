"""
Job operations.

Thin wrappers over the job endpoints plus play_or_retry_job, which picks
the right mutation for a job's current status.
"""

from typing import BinaryIO, List, Optional, Sequence, Union

from .client import GitLabClient, ProjectID, project_path
from .logger import get_logger
from .models import Job, JobStatus

logger = get_logger()


def get_jobs(
    client: GitLabClient,
    project: ProjectID,
    scope: Optional[Sequence[str]] = None,
    page: Optional[int] = None,
    per_page: Optional[int] = None,
) -> List[Job]:
    """List jobs across the whole project, optionally limited to some statuses."""
    params = {"page": page, "per_page": per_page}
    if scope:
        params["scope[]"] = list(scope)
    data = client.get(f"{project_path(project)}/jobs", params=params)
    return [Job.model_validate(j) for j in data]


def get_pipeline_jobs(client: GitLabClient, project: ProjectID, pipeline_id: int) -> List[Job]:
    """First page of a pipeline's jobs, in the order the API returns them."""
    data = client.get(f"{project_path(project)}/pipelines/{pipeline_id}/jobs")
    return [Job.model_validate(j) for j in data]


def get_pipeline_job(client: GitLabClient, project: ProjectID, job_id: int) -> Job:
    data = client.get(f"{project_path(project)}/jobs/{job_id}")
    return Job.model_validate(data)


def play_pipeline_job(client: GitLabClient, project: ProjectID, job_id: int) -> Job:
    """Start a manual job."""
    data = client.post(f"{project_path(project)}/jobs/{job_id}/play")
    return Job.model_validate(data)


def retry_pipeline_job(client: GitLabClient, project: ProjectID, job_id: int) -> Job:
    """Retry a finished job. The platform answers with the new job."""
    data = client.post(f"{project_path(project)}/jobs/{job_id}/retry")
    return Job.model_validate(data)


def cancel_pipeline_job(client: GitLabClient, project: ProjectID, job_id: int) -> Job:
    data = client.post(f"{project_path(project)}/jobs/{job_id}/cancel")
    return Job.model_validate(data)


def erase_pipeline_job(client: GitLabClient, project: ProjectID, job_id: int) -> Job:
    """Erase a job's log and artifacts."""
    data = client.post(f"{project_path(project)}/jobs/{job_id}/erase")
    return Job.model_validate(data)


def play_or_retry_job(
    client: GitLabClient,
    project: ProjectID,
    job_id: int,
    status: Union[JobStatus, str],
) -> Optional[Job]:
    """
    Start or restart a job depending on its status.

    pending/running jobs are left alone and None is returned. Manual jobs
    are played. Everything else, unknown statuses included, is retried.

    The status is read by the caller beforehand; nothing here guards
    against it changing on the platform before the mutation lands.
    """
    status = JobStatus(status)
    if status.is_active:
        logger.info("Job already active, nothing to do", job_id=job_id, status=status.value)
        return None
    if status == JobStatus.MANUAL:
        return play_pipeline_job(client, project, job_id)
    return retry_pipeline_job(client, project, job_id)


def get_pipeline_job_log(client: GitLabClient, project: ProjectID, job_id: int) -> BinaryIO:
    """Return the raw job log as a binary stream. Read it to exhaustion."""
    return client.stream(f"{project_path(project)}/jobs/{job_id}/trace")
