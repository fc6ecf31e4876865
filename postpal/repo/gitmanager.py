# Copyright (c) 2025 Damien Boisvert (AlphaGameDeveloper)
# 
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

import base64
import os
import subprocess
from logging import getLogger
from pathlib import Path
from typing import List, Optional

from ..errors import GitError, NoChangesError

logger = getLogger(__name__)

class GitManager:
    """Runs git commands against the working tree of the site repository.

    The remote token is passed as an HTTP basic-auth header on each network
    command, so it never ends up in ``.git/config``.
    """

    def __init__(self, repo_dir,
                 repo_url: Optional[str] = None,
                 branch: str = "main",
                 auth_token: Optional[str] = None,
                 author_name: str = "PostPal",
                 author_email: str = "postpal@localhost",
                 timeout: float = 120):
        self.repo_dir = Path(repo_dir)
        self.repo_url = repo_url
        self.branch = branch
        self.auth_token = auth_token
        self.author_name = author_name
        self.author_email = author_email
        self.timeout = timeout

    def _auth_args(self) -> List[str]:
        if not self.auth_token:
            return []
        credentials = base64.b64encode(f"token:{self.auth_token}".encode()).decode()
        return ["-c", f"http.extraHeader=Authorization: Basic {credentials}"]

    def _run(self, *args: str, cwd: Optional[Path] = None, check: bool = True) -> subprocess.CompletedProcess:
        command = ["git", *args]
        # Never log the auth header
        name = next(a for a in args if not a.startswith("-") and "=" not in a)
        logger.debug(f"Running git {name} in {cwd or self.repo_dir}")
        try:
            return subprocess.run(  # noqa: S603
                command,
                cwd=str(cwd or self.repo_dir),
                capture_output=True,
                text=True,
                check=check,
                timeout=self.timeout,
            )
        except subprocess.CalledProcessError as e:
            stderr = (e.stderr or "").strip()
            raise GitError(f"git {name} failed: {stderr}") from e
        except subprocess.TimeoutExpired as e:
            raise GitError(f"git {name} timed out after {self.timeout}s") from e
        except OSError as e:
            raise GitError(f"git {name} could not run: {e}") from e

    def repo_exists(self) -> bool:
        return (self.repo_dir / ".git").exists()

    def clone(self):
        """Shallow-clone the configured branch into ``repo_dir``."""
        if not self.repo_url:
            raise GitError("no repository URL configured")

        self.repo_dir.parent.mkdir(parents=True, exist_ok=True)
        self._run(
            *self._auth_args(),
            "clone", "--depth", "1", "--single-branch", "--branch", self.branch,
            self.repo_url, str(self.repo_dir),
            cwd=self.repo_dir.parent,
        )
        logger.info(f"Cloned {self.branch} into {self.repo_dir}")
        self.assign_author()

    def assign_author(self):
        self._run("config", "user.name", self.author_name)
        self._run("config", "user.email", self.author_email)

    def pull(self):
        self._run(*self._auth_args(), "pull", "--ff-only", "origin", self.branch)
        logger.info(f"Pulled latest {self.branch}")

    def ensure_repository(self):
        """Pull when the working tree exists, clone it otherwise."""
        if self.repo_exists():
            self.pull()
        elif self.repo_url:
            self.clone()
        else:
            raise GitError(f"{self.repo_dir} is not a git repository and no repository URL is configured")

    def _relative(self, file_path: str) -> str:
        abs_path = Path(file_path)
        if not abs_path.is_absolute():
            abs_path = self.repo_dir / abs_path
        return os.path.relpath(abs_path, self.repo_dir)

    def add(self, *file_paths: str):
        """Stage files. Paths may be absolute or relative to the repository root."""
        if not file_paths:
            raise GitError("no file paths provided")

        for file_path in file_paths:
            abs_path = Path(file_path)
            if not abs_path.is_absolute():
                abs_path = self.repo_dir / abs_path
            if not abs_path.exists():
                raise GitError(f"file does not exist: {file_path}")
            self._run("add", "--", self._relative(file_path))

    def remove(self, file_path: str):
        """Stage the removal of a file; the working tree copy is not touched."""
        self._run("rm", "-q", "--cached", "--", self._relative(file_path))

    def has_staged_changes(self) -> bool:
        result = self._run("diff", "--cached", "--quiet", check=False)
        if result.returncode not in (0, 1):
            raise GitError(f"git diff failed: {(result.stderr or '').strip()}")
        return result.returncode == 1

    def commit(self, message: str):
        if not self.has_staged_changes():
            raise NoChangesError("no changes to commit")

        self._run(
            "-c", f"user.name={self.author_name}",
            "-c", f"user.email={self.author_email}",
            "commit", "-q", "-m", message,
        )
        logger.info(f"Committed: {message}")

    def push(self):
        self._run(*self._auth_args(), "push", "origin", f"HEAD:refs/heads/{self.branch}")
        logger.info(f"Pushed to {self.branch}")

    def commit_and_push(self, message: str):
        self.commit(message)
        self.push()
