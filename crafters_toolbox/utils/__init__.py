# crafters_toolbox/utils/__init__.py
"""Utility functions for crafters-toolbox"""

from .file_utils import (
    ensure_directory,
    is_non_empty_dir,
    remove_path,
    copy_path,
    merge_directory,
    extract_archive,
    is_same_path,
    contains_path,
    atomic_write,
    read_json,
    write_json,
)

from .git_utils import (
    GitCommandError,
    is_git_checkout,
    run_git,
    shallow_clone,
    shallow_update,
    checkout_commit,
    update_submodules,
    get_head_commit,
)

from .process_utils import (
    ProcessResult,
    run_process,
)

from .http_utils import (
    HttpFetcher,
    HttpFetchError,
    FetchResult,
)

from .async_utils import (
    run_async,
    sync_to_async,
    with_soft_timeout,
    CancellationToken,
)

__all__ = [
    # File utilities
    "ensure_directory",
    "is_non_empty_dir",
    "remove_path",
    "copy_path",
    "merge_directory",
    "extract_archive",
    "is_same_path",
    "contains_path",
    "atomic_write",
    "read_json",
    "write_json",

    # Git utilities
    "GitCommandError",
    "is_git_checkout",
    "run_git",
    "shallow_clone",
    "shallow_update",
    "checkout_commit",
    "update_submodules",
    "get_head_commit",

    # Process utilities
    "ProcessResult",
    "run_process",

    # HTTP utilities
    "HttpFetcher",
    "HttpFetchError",
    "FetchResult",

    # Async utilities
    "run_async",
    "sync_to_async",
    "with_soft_timeout",
    "CancellationToken",
]
