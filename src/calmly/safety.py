from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class UnsafeDataPath(SystemExit):
    def __init__(self, data_path: Path, repo_root: Path):
        self.data_path = data_path
        self.repo_root = repo_root
        super().__init__(
            "Refusing to keep check-in history inside a git repo.\n"
            f"   data_path: {data_path}\n"
            f"   repo_root: {repo_root}\n"
            "   Fix: use ~/.config/calmly/*.json or pass --allow-repo-data-path"
        )


def find_git_root(start: Path) -> Path | None:
    cur = Path(start)
    for _ in range(200):
        if (cur / ".git").exists():
            return cur
        if cur.parent == cur:
            return None
        cur = cur.parent
    return None


def assert_safe_data_path(data_path: Path, allow_repo_data_path: bool) -> None:
    # personal notes must not end up committed by accident
    git_root = find_git_root(data_path.parent)
    if git_root is None:
        return
    if allow_repo_data_path:
        logger.warning("Data file %s is inside git repo %s (allowed by flag)", data_path, git_root)
        return
    raise UnsafeDataPath(data_path, git_root)
