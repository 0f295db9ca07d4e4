"""Git command runner for todo-expand.

Contains:
- GitError: Raised when a git command fails
- _run_git_command: Run a git command and return its output
- get_staged_files: List files staged in the index
"""

import subprocess
from pathlib import Path


class GitError(Exception):
    """Custom exception for git-related errors."""

    pass


def _run_git_command(args: list[str], cwd: Path) -> str:
    """Run a git command and return its output.

    Args:
        args: List of arguments to pass to git.
        cwd: Directory to run git in.

    Returns:
        The stdout of the git command.

    Raises:
        GitError: If the command fails.
    """
    try:
        result = subprocess.run(
            ["git"] + args,
            cwd=cwd,
            capture_output=True,
            text=True,
            check=True,
        )
        return result.stdout.strip()
    except subprocess.CalledProcessError as e:
        raise GitError(f"Git command failed: git {' '.join(args)}\n{e.stderr.strip()}")
    except FileNotFoundError:
        raise GitError("Git is not installed or not in PATH.")


def get_staged_files(cwd: Path) -> list[str]:
    """List staged file paths, relative to the repository root.

    Args:
        cwd: Directory inside the repository.

    Returns:
        Paths reported by `git diff --name-only --cached`.
    """
    output = _run_git_command(["diff", "--name-only", "--cached"], cwd)
    return [line.strip() for line in output.split("\n") if line.strip()]
