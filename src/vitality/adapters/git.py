"""History source that reads a local clone through the git command line."""

from __future__ import annotations

import logging
import subprocess
from datetime import datetime
from pathlib import Path

from vitality.adapters.base import BaseHistorySource
from vitality.exceptions import InputError, VCSError
from vitality.models.schemas import CommitRecord, TagRecord

logger = logging.getLogger(__name__)

COMMIT_FORMAT = "%H%x00%ae%x00%aI%x00%P"
TAG_FORMAT = "%(refname)%00%(objecttype)%00%(objectname)%00%(*objecttype)%00%(*objectname)"


def run_git(
    args: list[str],
    cwd: Path,
    timeout_s: int = 300,
    input_text: str | None = None,
) -> tuple[int, str, str]:
    """Run git and return (returncode, stdout, stderr).

    Raises:
        VCSError: If git is not installed or does not finish in time.
    """
    try:
        proc = subprocess.run(
            ["git", *args],
            cwd=str(cwd),
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout_s,
            input=input_text,
        )
    except FileNotFoundError as e:
        raise VCSError("git executable not found", path=str(cwd)) from e
    except subprocess.TimeoutExpired as e:
        raise VCSError(f"git {args[0]} timed out after {timeout_s}s", path=str(cwd)) from e
    return proc.returncode, proc.stdout, proc.stderr


def parse_git_time(value: str) -> datetime:
    """Parse git's strict ISO 8601 author time (``%aI``)."""
    return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))


class GitHistorySource(BaseHistorySource):
    """Extracts commits from ``git log HEAD`` and tags from ``refs/tags``.

    Annotated tags are peeled to the commit they point at so both tag kinds
    produce the same record. Tags that do not resolve to a commit (tags of
    trees or blobs) are dropped.
    """

    def __init__(self, path: Path | str, timeout_s: int = 300) -> None:
        if not str(path).strip():
            raise InputError("A repository path is required")
        self.path = Path(path).expanduser()
        self.timeout_s = timeout_s
        self._checked = False

    @property
    def label(self) -> str:
        return str(self.path)

    def _git(self, args: list[str], input_text: str | None = None) -> tuple[int, str, str]:
        return run_git(args, cwd=self.path, timeout_s=self.timeout_s, input_text=input_text)

    def _check_repository(self) -> None:
        if self._checked:
            return
        if not self.path.exists():
            raise VCSError("repository path does not exist", path=self.label)
        if not self.path.is_dir():
            raise VCSError("repository path is not a directory", path=self.label)
        code, _, err = self._git(["rev-parse", "--git-dir"])
        if code != 0:
            raise VCSError(f"not a git repository: {err.strip()}", path=self.label)
        self._checked = True

    def list_commits(self) -> list[CommitRecord]:
        self._check_repository()
        logger.debug(f"Extracting commits from {self.label}")

        code, out, err = self._git(["log", "--no-show-signature", "HEAD", f"--format={COMMIT_FORMAT}"])
        if code != 0:
            message = err.strip()
            if "does not have any commits" in message or "unknown revision" in message:
                raise VCSError("repository has no commits", path=self.label)
            raise VCSError(f"git log failed: {message}", path=self.label)

        commits: list[CommitRecord] = []
        for line in out.splitlines():
            if not line.strip():
                continue
            parts = line.split("\x00")
            if len(parts) != 4:
                raise VCSError(f"unexpected git log line: {line!r}", path=self.label)
            sha, email, when, parents = parts
            try:
                timestamp = parse_git_time(when)
            except ValueError as e:
                raise VCSError(f"bad author date {when!r} on {sha}", path=self.label) from e
            commits.append(
                CommitRecord(
                    sha=sha,
                    author=email,
                    timestamp=timestamp,
                    parent_count=len(parents.split()),
                )
            )

        logger.debug(f"Extracted {len(commits)} commits from {self.label}")
        return commits

    def list_tags(self) -> list[TagRecord]:
        self._check_repository()
        logger.debug(f"Extracting tags from {self.label}")

        code, out, err = self._git(["for-each-ref", "refs/tags", f"--format={TAG_FORMAT}"])
        if code != 0:
            raise VCSError(f"git for-each-ref failed: {err.strip()}", path=self.label)

        targets: list[tuple[str, str]] = []  # (tag name, commit sha)
        dropped = 0
        for line in out.splitlines():
            if not line.strip():
                continue
            parts = line.split("\x00")
            if len(parts) != 5:
                raise VCSError(f"unexpected git for-each-ref line: {line!r}", path=self.label)
            ref, obj_type, obj_name, peeled_type, peeled_name = parts
            name = ref.removeprefix("refs/tags/")

            sha: str | None = None
            if obj_type == "commit":
                sha = obj_name
            elif peeled_type == "commit":
                sha = peeled_name
            elif peeled_type == "tag":
                # Tag of a tag: let git peel the whole chain
                sha = self._peel_to_commit(name)

            if sha is None:
                logger.debug(f"Dropping tag {name}: target does not resolve to a commit")
                dropped += 1
                continue
            targets.append((name, sha))

        dates = self._commit_dates({sha for _, sha in targets})
        tags: list[TagRecord] = []
        for name, sha in targets:
            when = dates.get(sha)
            if when is None:
                logger.debug(f"Dropping tag {name}: commit {sha} is missing")
                dropped += 1
                continue
            tags.append(TagRecord(name=name, timestamp=when))

        if dropped:
            logger.warning(f"Dropped {dropped} tags of {self.label} that do not resolve to a commit")
        logger.debug(f"Extracted {len(tags)} tags from {self.label}")
        return tags

    def _peel_to_commit(self, tag_name: str) -> str | None:
        code, out, _ = self._git(["rev-parse", "--verify", "--quiet", f"refs/tags/{tag_name}^{{commit}}"])
        if code != 0:
            return None
        return out.strip() or None

    def _commit_dates(self, shas: set[str]) -> dict[str, datetime]:
        """Author times of the given commits, looked up in one git call."""
        if not shas:
            return {}
        code, out, err = self._git(
            ["log", "--no-show-signature", "--no-walk=unsorted", "--stdin", "--format=%H%x00%aI"],
            input_text="\n".join(sorted(shas)) + "\n",
        )
        if code != 0:
            raise VCSError(f"cannot read tagged commits: {err.strip()}", path=self.label)

        dates: dict[str, datetime] = {}
        for line in out.splitlines():
            if "\x00" not in line:
                continue
            sha, when = line.split("\x00", 1)
            try:
                dates[sha] = parse_git_time(when)
            except ValueError as e:
                raise VCSError(f"bad author date {when!r} on {sha}", path=self.label) from e
        return dates
