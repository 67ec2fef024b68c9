"""Git operation utilities"""

import logging
from pathlib import Path
from typing import List, Optional

from .process_utils import ProcessResult, run_process

logger = logging.getLogger(__name__)


class GitCommandError(Exception):
    """A git invocation exited with a non-zero status"""

    def __init__(self, args: List[str], returncode: int, stderr: str = ""):
        message = f"git {' '.join(args)} failed with exit code {returncode}"
        if stderr:
            message = f"{message}: {stderr.strip()}"
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


def is_git_checkout(path: Path) -> bool:
    """
    Check if directory is the top level of its own git checkout

    A directory nested inside another repository does not count.

    Args:
        path: Directory path

    Returns:
        True if ``path/.git`` exists
    """
    return (path / ".git").exists()


async def run_git(args: List[str], cwd: Optional[Path] = None) -> ProcessResult:
    """
    Run a git command

    Args:
        args: Arguments after ``git``
        cwd: Working directory

    Returns:
        Finished process

    Raises:
        GitCommandError: If git exits non-zero or is not installed
    """
    try:
        result = await run_process(
            ["git", *args],
            cwd=cwd,
            env={"GIT_TERMINAL_PROMPT": "0"},
        )
    except FileNotFoundError:
        raise GitCommandError(args, 127, "git executable not found")

    if not result.success:
        raise GitCommandError(args, result.returncode, result.stderr)
    return result


async def shallow_clone(url: str, path: Path, branch: Optional[str] = None) -> None:
    """
    Clone ``url`` into ``path`` with depth 1

    Args:
        url: Remote URL
        path: Destination directory (must not exist)
        branch: Branch to clone, remote default when None
    """
    args = ["clone", "--depth", "1"]
    if branch:
        args.extend(["--branch", branch])
    args.extend([url, str(path)])
    path.parent.mkdir(parents=True, exist_ok=True)
    await run_git(args)


async def shallow_update(path: Path, url: str, branch: Optional[str] = None) -> None:
    """
    Fetch the tip of ``branch`` and hard-reset the checkout onto it

    Args:
        path: Existing checkout
        url: Remote URL (origin is re-pointed at it)
        branch: Branch to track, remote HEAD when None
    """
    await run_git(["remote", "set-url", "origin", url], cwd=path)
    await run_git(["fetch", "--depth", "1", "origin", branch or "HEAD"], cwd=path)
    await run_git(["reset", "--hard", "FETCH_HEAD"], cwd=path)


async def checkout_commit(path: Path, commit: str) -> None:
    """
    Check out an exact commit, fetching it first when it is not present

    Args:
        path: Existing checkout
        commit: Commit hash
    """
    try:
        await run_git(["cat-file", "-e", f"{commit}^{{commit}}"], cwd=path)
    except GitCommandError:
        await run_git(["fetch", "--depth", "1", "origin", commit], cwd=path)
    await run_git(["checkout", "--force", "--detach", commit], cwd=path)


async def update_submodules(path: Path) -> None:
    """
    Sync and update nested submodules recursively

    Args:
        path: Existing checkout
    """
    await run_git(["submodule", "sync", "--recursive"], cwd=path)
    await run_git(["submodule", "update", "--init", "--recursive", "--depth", "1"], cwd=path)


async def get_head_commit(path: Path) -> Optional[str]:
    """
    Get the checked-out commit

    Args:
        path: Repository path

    Returns:
        Full commit hash or None
    """
    try:
        result = await run_git(["rev-parse", "HEAD"], cwd=path)
    except GitCommandError:
        return None
    return result.stdout.strip() or None


async def get_remote_url(path: Path, remote: str = "origin") -> Optional[str]:
    """URL of a remote, None when it is not configured"""
    try:
        result = await run_git(["remote", "get-url", remote], cwd=path)
    except GitCommandError:
        return None
    return result.stdout.strip() or None


async def get_current_branch(path: Path) -> Optional[str]:
    """
    Get the checked-out branch

    Args:
        path: Repository path

    Returns:
        Branch name, None on a detached HEAD
    """
    try:
        result = await run_git(["rev-parse", "--abbrev-ref", "HEAD"], cwd=path)
    except GitCommandError:
        return None
    branch = result.stdout.strip()
    if not branch or branch == "HEAD":
        return None
    return branch
