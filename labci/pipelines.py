"""
Pipeline operations.

Thin wrappers over the pipeline, commit and lint endpoints. Every function
takes the client explicitly; transport errors propagate as APIError.
"""

from typing import Any, Dict, List, Optional
from urllib.parse import quote

from . import git
from .client import GitLabClient, ProjectID, project_path
from .errors import PipelineNotFoundError
from .jobs import get_pipeline_jobs
from .logger import get_logger
from .models import Commit, Job, LintResult, Pipeline, PipelineInfo

logger = get_logger()

DEFAULT_LIST_LIMIT = 30


def list_project_pipelines(client: GitLabClient, project: ProjectID, **filters) -> List[PipelineInfo]:
    """List pipelines passing filters straight through (ref, sha, status, sort, page, per_page...)."""
    data = client.get(f"{project_path(project)}/pipelines", params=filters)
    return [PipelineInfo.model_validate(p) for p in data]


def get_pipelines(client: GitLabClient, project: ProjectID, **filters) -> List[PipelineInfo]:
    """Like list_project_pipelines, but per_page defaults to DEFAULT_LIST_LIMIT."""
    if not filters.get("per_page"):
        filters["per_page"] = DEFAULT_LIST_LIMIT
    return list_project_pipelines(client, project, **filters)


def get_latest_pipeline(
    client: GitLabClient,
    project: ProjectID,
    ref: Optional[str] = None,
    sha: Optional[str] = None,
) -> PipelineInfo:
    """
    Return the newest pipeline for a branch ref or commit SHA.

    With neither given, the ref is the branch checked out locally.

    Raises:
        PipelineNotFoundError: No pipeline matches the filter
        GitError: The current branch could not be determined
    """
    if not ref and not sha:
        ref = git.current_branch()

    pipes = get_pipelines(
        client,
        project,
        ref=ref or None,
        sha=sha or None,
        sort="desc",
        page=1,
        per_page=1,
    )
    if not pipes:
        raise PipelineNotFoundError(ref or sha)
    logger.debug("Resolved pipeline", project=project, ref=ref, sha=sha, pipeline_id=pipes[0].id)
    return pipes[0]


def get_pipeline_from_branch(
    client: GitLabClient,
    project: ProjectID,
    ref: Optional[str] = None,
) -> List[Job]:
    """Return the jobs of the newest pipeline on a branch (first page only)."""
    pipeline = get_latest_pipeline(client, project, ref=ref)
    return get_pipeline_jobs(client, project, pipeline.id)


def get_single_pipeline(client: GitLabClient, project: ProjectID, pipeline_id: int) -> Pipeline:
    data = client.get(f"{project_path(project)}/pipelines/{pipeline_id}")
    return Pipeline.model_validate(data)


def create_pipeline(
    client: GitLabClient,
    project: ProjectID,
    ref: str,
    variables: Optional[Dict[str, str]] = None,
) -> Pipeline:
    """Trigger a new pipeline on ref, optionally with CI variables."""
    body: Dict[str, Any] = {"ref": ref}
    if variables:
        body["variables"] = [
            {"key": key, "value": value, "variable_type": "env_var"}
            for key, value in variables.items()
        ]
    data = client.post(f"{project_path(project)}/pipeline", json=body)
    logger.info("Created pipeline", project=project, ref=ref, pipeline_id=data.get("id"))
    return Pipeline.model_validate(data)


def retry_pipeline(client: GitLabClient, project: ProjectID, pipeline_id: int) -> Pipeline:
    data = client.post(f"{project_path(project)}/pipelines/{pipeline_id}/retry")
    return Pipeline.model_validate(data)


def cancel_pipeline(client: GitLabClient, project: ProjectID, pipeline_id: int) -> Pipeline:
    data = client.post(f"{project_path(project)}/pipelines/{pipeline_id}/cancel")
    return Pipeline.model_validate(data)


def delete_pipeline(client: GitLabClient, project: ProjectID, pipeline_id: int) -> None:
    client.delete(f"{project_path(project)}/pipelines/{pipeline_id}")
    logger.info("Deleted pipeline", project=project, pipeline_id=pipeline_id)


def get_commit(client: GitLabClient, project: ProjectID, ref: str) -> Commit:
    """Look up a commit by SHA, branch or tag name."""
    data = client.get(f"{project_path(project)}/repository/commits/{quote(ref, safe='')}")
    return Commit.model_validate(data)


def pipeline_ci_lint(client: GitLabClient, project: ProjectID, content: str) -> LintResult:
    """Validate a CI configuration document in the context of a project."""
    data = client.post(f"{project_path(project)}/ci/lint", json={"content": content})
    return LintResult.from_api(data)
