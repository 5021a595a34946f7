import subprocess

from .errors import GitError


def current_branch() -> str:
    """Return the name of the branch checked out in the working directory."""
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--abbrev-ref", "HEAD"],
            capture_output=True,
            text=True,
            check=True,
        )
    except FileNotFoundError as e:
        raise GitError("git executable not found") from e
    except subprocess.CalledProcessError as e:
        detail = (e.stderr or "").strip() or "not a git repository"
        raise GitError(f"could not determine current branch: {detail}") from e

    branch = result.stdout.strip()
    if not branch or branch == "HEAD":
        raise GitError("could not determine current branch: HEAD is detached")
    return branch
