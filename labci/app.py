import argparse
import shutil
import sys
from contextlib import closing
from pathlib import Path
from typing import Dict, List, Optional

from . import __version__
from . import git
from .client import GitLabClient
from .env import load_env, get_settings
from .errors import APIError, LabciError
from .jobs import (
    cancel_pipeline_job,
    erase_pipeline_job,
    get_pipeline_job,
    get_pipeline_job_log,
    play_or_retry_job,
    play_pipeline_job,
)
from .logger import get_logger
from .models import Job, PipelineInfo
from .pipelines import (
    cancel_pipeline,
    create_pipeline,
    delete_pipeline,
    get_commit,
    get_latest_pipeline,
    get_pipeline_from_branch,
    get_pipelines,
    get_single_pipeline,
    pipeline_ci_lint,
    retry_pipeline,
)
from .trace import list_all_pipeline_jobs, pipeline_job_trace_with_sha, sort_jobs_by_created

logger = get_logger()


def _fmt_time(value) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S") if value else "-"


def _print_pipeline(p: PipelineInfo) -> None:
    print(f"({p.status}) #{p.id}  {p.ref}  {p.sha[:8]}  {_fmt_time(p.created_at)}")


def _print_jobs(jobs: List[Job]) -> None:
    for j in jobs:
        print(f"  {j.id}\t{j.stage or '-'}\t{j.name}\t{j.status.value}")


def _parse_variables(pairs: Optional[List[str]]) -> Dict[str, str]:
    variables: Dict[str, str] = {}
    for pair in pairs or []:
        if ":" not in pair:
            raise SystemExit(f"Invalid variable {pair!r}. Use KEY:VALUE.")
        key, value = pair.split(":", 1)
        variables[key.strip()] = value
    return variables


def cmd_list(client: GitLabClient, args: argparse.Namespace) -> None:
    pipes = get_pipelines(
        client,
        args.project,
        status=args.status,
        ref=args.ref,
        order_by=args.order_by,
        sort=args.sort,
        page=args.page,
        per_page=args.per_page,
    )
    if not pipes:
        print("No pipelines found.")
        return
    print(f"Showing {len(pipes)} pipelines on {args.project}:\n")
    for p in pipes:
        _print_pipeline(p)


def cmd_get(client: GitLabClient, args: argparse.Namespace) -> None:
    if args.pipeline_id is not None:
        pipeline_id = args.pipeline_id
    else:
        pipeline_id = get_latest_pipeline(client, args.project, ref=args.branch).id
    p = get_single_pipeline(client, args.project, pipeline_id)
    print(f"Pipeline: #{p.id}")
    print(f"  Status: {p.status}")
    print(f"  Ref: {p.ref}")
    print(f"  SHA: {p.sha}")
    print(f"  Source: {p.source}")
    print(f"  Created: {_fmt_time(p.created_at)}")
    print(f"  Finished: {_fmt_time(p.finished_at)}")
    if p.duration is not None:
        print(f"  Duration: {p.duration:.0f}s")
    if p.yaml_errors:
        print(f"  YAML errors: {p.yaml_errors}")
    print(f"  URL: {p.web_url}")
    if args.with_jobs:
        jobs = sort_jobs_by_created(list_all_pipeline_jobs(client, args.project, p.id))
        print(f"\nJobs ({len(jobs)}):")
        _print_jobs(jobs)


def cmd_run(client: GitLabClient, args: argparse.Namespace) -> None:
    ref = args.branch or git.current_branch()
    p = create_pipeline(client, args.project, ref, variables=_parse_variables(args.variables))
    print(f"Created pipeline #{p.id} on {p.ref}")
    print(f"  Status: {p.status}")
    print(f"  URL: {p.web_url}")


def cmd_retry_pipeline(client: GitLabClient, args: argparse.Namespace) -> None:
    p = retry_pipeline(client, args.project, args.pipeline_id)
    print(f"Retried pipeline #{p.id} ({p.status})")


def cmd_cancel_pipeline(client: GitLabClient, args: argparse.Namespace) -> None:
    p = cancel_pipeline(client, args.project, args.pipeline_id)
    print(f"Canceled pipeline #{p.id} ({p.status})")


def cmd_delete(client: GitLabClient, args: argparse.Namespace) -> None:
    deleted = failed = 0
    for pipeline_id in args.pipeline_ids:
        try:
            delete_pipeline(client, args.project, pipeline_id)
            print(f"Deleted pipeline #{pipeline_id}")
            deleted += 1
        except APIError as e:
            print(f"[error] #{pipeline_id} -> {e}")
            failed += 1
    print(f"Done. deleted={deleted} failed={failed}")
    if failed:
        raise SystemExit(1)


def cmd_jobs(client: GitLabClient, args: argparse.Namespace) -> None:
    jobs = get_pipeline_from_branch(client, args.project, ref=args.branch)
    if not jobs:
        print("No jobs found.")
        return
    _print_jobs(jobs)


def cmd_retry(client: GitLabClient, args: argparse.Namespace) -> None:
    job = get_pipeline_job(client, args.project, args.job_id)
    new_job = play_or_retry_job(client, args.project, job.id, job.status)
    if new_job is None:
        print(f"Job {job.id} ({job.name}) is already {job.status.value}")
        return
    print(f"Job {job.id} ({job.name}) -> {new_job.id} ({new_job.status.value})")
    print(f"  URL: {new_job.web_url}")


def cmd_play(client: GitLabClient, args: argparse.Namespace) -> None:
    job = play_pipeline_job(client, args.project, args.job_id)
    print(f"Started job {job.id} ({job.name}) -> {job.status.value}")


def cmd_cancel(client: GitLabClient, args: argparse.Namespace) -> None:
    job = cancel_pipeline_job(client, args.project, args.job_id)
    print(f"Canceled job {job.id} ({job.name}) -> {job.status.value}")


def cmd_erase(client: GitLabClient, args: argparse.Namespace) -> None:
    job = erase_pipeline_job(client, args.project, args.job_id)
    print(f"Erased job {job.id} ({job.name})")


def cmd_trace(client: GitLabClient, args: argparse.Namespace) -> None:
    if args.job_id is not None:
        log = get_pipeline_job_log(client, args.project, args.job_id)
    else:
        ref = args.branch or git.current_branch()
        commit = get_commit(client, args.project, ref)
        try:
            log, job = pipeline_job_trace_with_sha(client, args.project, commit.id, args.name or "")
        except APIError as e:
            if e.job is None:
                raise
            raise SystemExit(f"Could not fetch log of job {e.job.id} ({e.job.name}, {e.job.status.value}): {e}")
        if job is None:
            print(f"No jobs found for {ref} ({commit.short_id or commit.id[:8]})")
            return
        print(f"Showing log of job {job.id} ({job.name}, {job.status.value})", file=sys.stderr)
    with closing(log):
        shutil.copyfileobj(log, sys.stdout.buffer)
        sys.stdout.buffer.flush()


def cmd_lint(client: GitLabClient, args: argparse.Namespace) -> None:
    path = Path(args.path)
    if not path.exists():
        raise SystemExit(f"CI config not found: {path}")
    content = path.read_text(encoding="utf-8")
    result = pipeline_ci_lint(client, args.project, content)
    for w in result.warnings:
        print(f"[warn] {w}")
    if not result.valid:
        print("Invalid:")
        for e in result.errors:
            print(f" - {e}")
        raise SystemExit(2)
    print("Valid")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="labci", description="Manage CI/CD pipelines and jobs on GitLab")
    parser.add_argument("--version", action="store_true", help="Show version")
    parser.add_argument("--host", help="GitLab host (or set GITLAB_HOST)")
    parser.add_argument("--token", help="Access token (or set GITLAB_TOKEN)")
    parser.add_argument("-R", "--repo", help="Project id or group/name path (or set GITLAB_PROJECT)")
    parser.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        help="Console log level (or set LABCI_LOG_LEVEL)")

    subparsers = parser.add_subparsers(dest="command")

    lst = subparsers.add_parser("list", help="List pipelines of the project")
    lst.add_argument("--status", help="Only pipelines with this status (running, failed, ...)")
    lst.add_argument("--ref", help="Only pipelines for this branch or tag")
    lst.add_argument("--order-by", default="id", help="Order by id, status, ref or updated_at (default: id)")
    lst.add_argument("--sort", default="desc", choices=["asc", "desc"], help="Sort direction (default: desc)")
    lst.add_argument("--page", type=int, default=1, help="Page number (default 1)")
    lst.add_argument("--per-page", type=int, help="Items per page (default 30)")
    lst.set_defaults(func=cmd_list)

    get = subparsers.add_parser("get", help="Show a pipeline (default: newest on the branch)")
    get.add_argument("pipeline_id", type=int, nargs="?", help="Pipeline id")
    get.add_argument("-b", "--branch", help="Branch to look up (default: current branch)")
    get.add_argument("--with-jobs", action="store_true", help="Also list the pipeline's jobs")
    get.set_defaults(func=cmd_get)

    run = subparsers.add_parser("run", help="Create a new pipeline")
    run.add_argument("-b", "--branch", help="Branch or tag to run on (default: current branch)")
    run.add_argument("--variables", nargs="*", help="CI variables as KEY:VALUE")
    run.set_defaults(func=cmd_run)

    rtp = subparsers.add_parser("retry-pipeline", help="Retry the failed jobs of a pipeline")
    rtp.add_argument("pipeline_id", type=int, help="Pipeline id")
    rtp.set_defaults(func=cmd_retry_pipeline)

    cnp = subparsers.add_parser("cancel-pipeline", help="Cancel a running pipeline")
    cnp.add_argument("pipeline_id", type=int, help="Pipeline id")
    cnp.set_defaults(func=cmd_cancel_pipeline)

    dlt = subparsers.add_parser("delete", help="Delete one or more pipelines")
    dlt.add_argument("pipeline_ids", type=int, nargs="+", help="Pipeline ids")
    dlt.set_defaults(func=cmd_delete)

    jbs = subparsers.add_parser("jobs", help="List jobs of the newest pipeline on a branch")
    jbs.add_argument("-b", "--branch", help="Branch (default: current branch)")
    jbs.set_defaults(func=cmd_jobs)

    rty = subparsers.add_parser("retry", help="Retry a job, or play it if it is manual")
    rty.add_argument("job_id", type=int, help="Job id")
    rty.set_defaults(func=cmd_retry)

    ply = subparsers.add_parser("play", help="Start a manual job")
    ply.add_argument("job_id", type=int, help="Job id")
    ply.set_defaults(func=cmd_play)

    cnc = subparsers.add_parser("cancel", help="Cancel a job")
    cnc.add_argument("job_id", type=int, help="Job id")
    cnc.set_defaults(func=cmd_cancel)

    ers = subparsers.add_parser("erase", help="Erase a job's log and artifacts")
    ers.add_argument("job_id", type=int, help="Job id")
    ers.set_defaults(func=cmd_erase)

    trc = subparsers.add_parser("trace", help="Print a job log")
    trc.add_argument("job_id", type=int, nargs="?", help="Job id (default: pick from the branch's newest pipeline)")
    trc.add_argument("-b", "--branch", help="Branch (default: current branch)")
    trc.add_argument("-n", "--name", help="Job name to look for")
    trc.set_defaults(func=cmd_trace)

    lnt = subparsers.add_parser("lint", help="Validate a CI configuration file")
    lnt.add_argument("path", nargs="?", default=".gitlab-ci.yml", help="Path to CI file (default: .gitlab-ci.yml)")
    lnt.set_defaults(func=cmd_lint)

    return parser


def main(argv: Optional[List[str]] = None):
    # Load .env if present (GITLAB_HOST, GITLAB_TOKEN, etc.)
    load_env()
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(__version__)
        return

    if not hasattr(args, "func"):
        parser.print_help()
        return

    try:
        settings = get_settings()
        logger.configure(level=args.log_level or settings["log_level"], log_dir=settings["log_dir"],
                         enable_file=settings["log_dir"] is not None)
        if args.host:
            settings["host"] = args.host
        if args.token:
            settings["token"] = args.token
        args.project = args.repo or settings["project"]
        if not args.project:
            raise SystemExit("No project given. Use -R/--repo or set GITLAB_PROJECT.")

        with GitLabClient.from_settings(settings) as client:
            args.func(client, args)
    except LabciError as e:
        raise SystemExit(str(e))
    finally:
        logger.log_metrics_summary()


if __name__ == "__main__":
    main()
