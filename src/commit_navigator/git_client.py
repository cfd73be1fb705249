"""Git client for fetching commit data from a local repository."""

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable, Sequence
from datetime import date, timedelta
from pathlib import Path

from commit_navigator.errors import CommitRetrievalError, NotARepositoryError
from commit_navigator.models import CommitRecord

logger = logging.getLogger(__name__)

LOCK_MARKER = "lock"
BINARY_MARKER = "Binary files"
CHANGELOG_FILENAME = "CHANGELOG.md"
DEFAULT_CHANGELOG_DAYS = 30

# Basenames such as package-lock.json, pnpm-lock.yaml, yarn.lock, a.lock
LOCK_FILE_PATTERN = re.compile(r"lock[^/]*\.|\.lock$")
ISO_DATE_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}")

_FIELD_SEP = "\x1f"
_RECORD_SEP = "\x1e"
_LOG_FORMAT = f"--format=%H{_FIELD_SEP}%an{_FIELD_SEP}%ae{_FIELD_SEP}%aI{_FIELD_SEP}%s{_FIELD_SEP}%b{_RECORD_SEP}"

GitRunner = Callable[[Sequence[str], Path], Awaitable[str]]


class GitCommandError(Exception):
    """Raised when a git command exits with a non-zero status."""

    def __init__(self, args: Sequence[str], message: str, returncode: int | None = None) -> None:
        super().__init__(message)
        self.args_list = list(args)
        self.returncode = returncode


async def run_git(args: Sequence[str], cwd: Path) -> str:
    """Run ``git <args>`` in ``cwd`` and return its stdout.

    Raises:
        GitCommandError: If git cannot be started or exits non-zero
    """
    logger.debug(f"Running git {' '.join(args)} in {cwd}")
    try:
        process = await asyncio.create_subprocess_exec(
            "git",
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(cwd),
        )
    except OSError as e:
        raise GitCommandError(args, f"Unable to run git: {e}") from e

    stdout, stderr = await process.communicate()
    if process.returncode != 0:
        message = stderr.decode("utf-8", errors="replace").strip()
        raise GitCommandError(
            args,
            message or f"git {args[0]} exited with code {process.returncode}",
            process.returncode,
        )
    return stdout.decode("utf-8", errors="replace")


def is_lock_file(path: str) -> bool:
    """Check whether a path names a dependency lock file."""
    basename = path.rsplit("/", 1)[-1]
    return LOCK_FILE_PATTERN.search(basename) is not None


def filter_files(files: Sequence[str]) -> list[str]:
    """Drop blank entries and lock files from a changed-file list."""
    return [f for f in (line.strip() for line in files) if f and not is_lock_file(f)]


def filter_diff(raw_diff: str) -> str:
    """Remove noise from a commit diff.

    Binary diffs are replaced by an empty string. Otherwise every line
    containing ``lock`` is dropped.
    """
    if BINARY_MARKER in raw_diff:
        return ""
    return "\n".join(line for line in raw_diff.split("\n") if LOCK_MARKER not in line)


def parse_changelog_date(content: str) -> date | None:
    """Return the first valid ISO date (YYYY-MM-DD) found in changelog text."""
    for match in ISO_DATE_PATTERN.finditer(content):
        try:
            return date.fromisoformat(match.group(0))
        except ValueError:
            continue
    return None


def parse_remote_name(url: str) -> str | None:
    """Infer a repository name from a remote URL."""
    match = re.search(r"/([^/]+?)(\.git)?$", url.strip())
    return match.group(1) if match else None


class GitClient:
    """Client for querying a local git repository."""

    def __init__(
        self,
        repo_path: Path | str = ".",
        max_concurrency: int = 8,
        runner: GitRunner | None = None,
    ) -> None:
        """Initialize the git client.

        Args:
            repo_path: Directory to run git commands in
            max_concurrency: Maximum number of commits fetched in parallel
            runner: Coroutine used to execute git (defaults to a subprocess)
        """
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")

        self.repo_path = Path(repo_path)
        self.max_concurrency = max_concurrency
        self._runner = runner or run_git

    async def _git(self, *args: str) -> str:
        return await self._runner(list(args), self.repo_path)

    async def is_repository(self) -> bool:
        """Check whether the repo path is inside a git work tree."""
        try:
            output = await self._git("rev-parse", "--is-inside-work-tree")
        except GitCommandError as e:
            logger.debug(f"Not a git repository: {self.repo_path} ({e})")
            return False
        return output.strip() == "true"

    async def _ensure_repository(self) -> None:
        if not await self.is_repository():
            raise NotARepositoryError(
                f"{self.repo_path.resolve()} is not a git repository"
            )

    async def get_last_commits(self, count: int = 1) -> list[CommitRecord]:
        """Get the last ``count`` commits, newest first."""
        if count < 1:
            raise ValueError("count must be at least 1")
        return await self._get_commits(f"--max-count={count}")

    async def get_commits_from_last_days(
        self, days: int = 7, today: date | None = None
    ) -> list[CommitRecord]:
        """Get commits made in the last ``days`` days."""
        if days < 1:
            raise ValueError("days must be at least 1")
        since = (today or date.today()) - timedelta(days=days)
        return await self._get_commits(f"--since={since.isoformat()}")

    async def get_commits_since_changelog(
        self, changelog_path: Path | None = None, today: date | None = None
    ) -> list[CommitRecord]:
        """Get commits since the date of the latest changelog entry."""
        since = self.resolve_changelog_since(changelog_path, today)
        return await self._get_commits(f"--since={since.isoformat()}")

    def resolve_changelog_since(
        self, changelog_path: Path | None = None, today: date | None = None
    ) -> date:
        """Resolve the since-date for changelog updates.

        Uses the first ISO date in the changelog, falling back to 30 days
        before ``today`` when the file or a date is missing.
        """
        path = changelog_path or self.repo_path / CHANGELOG_FILENAME
        if path.exists():
            try:
                found = parse_changelog_date(path.read_text(encoding="utf-8"))
            except (OSError, UnicodeDecodeError) as e:
                logger.warning(f"Could not read changelog {path}: {e}")
                found = None
            if found is not None:
                logger.debug(f"Changelog since-date resolved from {path}: {found}")
                return found

        return (today or date.today()) - timedelta(days=DEFAULT_CHANGELOG_DAYS)

    async def _get_commits(self, *log_args: str) -> list[CommitRecord]:
        await self._ensure_repository()

        try:
            log_output = await self._git("log", _LOG_FORMAT, *log_args)
        except GitCommandError as e:
            raise CommitRetrievalError(str(e)) from e

        entries = self._parse_log(log_output)
        logger.info(f"Fetching details for {len(entries)} commits")

        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def fetch(entry: dict[str, str]) -> CommitRecord:
            async with semaphore:
                return await self._fetch_commit(entry)

        try:
            # gather preserves input order regardless of completion order
            return list(await asyncio.gather(*(fetch(entry) for entry in entries)))
        except GitCommandError as e:
            raise CommitRetrievalError(str(e)) from e

    async def _fetch_commit(self, entry: dict[str, str]) -> CommitRecord:
        commit_hash = entry["hash"]
        raw_diff, names = await asyncio.gather(
            self._git("show", commit_hash),
            self._git("show", "--name-only", "--pretty=format:", commit_hash),
        )

        return CommitRecord(
            hash=commit_hash,
            author_name=entry["author_name"],
            author_email=entry["author_email"],
            date=entry["date"],
            message=entry["message"],
            body=entry["body"],
            files=tuple(filter_files(names.strip().split("\n"))),
            diff=filter_diff(raw_diff),
        )

    def _parse_log(self, output: str) -> list[dict[str, str]]:
        entries = []
        for record in output.split(_RECORD_SEP):
            record = record.strip("\n")
            if not record.strip():
                continue

            fields = record.split(_FIELD_SEP)
            if len(fields) < 5:
                logger.warning(f"Skipping malformed git log record: {record[:80]!r}")
                continue

            entries.append(
                {
                    "hash": fields[0].strip(),
                    "author_name": fields[1],
                    "author_email": fields[2],
                    "date": fields[3],
                    "message": fields[4],
                    "body": fields[5].strip() if len(fields) > 5 else "",
                }
            )
        return entries

    async def get_remotes(self) -> dict[str, dict[str, str]]:
        """List remotes as ``{name: {"fetch": url, "push": url}}``."""
        output = await self._git("remote", "-v")
        remotes: dict[str, dict[str, str]] = {}
        for line in output.splitlines():
            parts = line.split()
            if len(parts) < 3:
                continue
            name, url, kind = parts[0], parts[1], parts[2].strip("()")
            remotes.setdefault(name, {})[kind] = url
        return remotes

    async def get_repository_name(self) -> str | None:
        """Infer the repository name from the origin fetch URL."""
        remotes = await self.get_remotes()
        origin_url = remotes.get("origin", {}).get("fetch")
        if origin_url is None:
            return None
        return parse_remote_name(origin_url)

    async def list_tracked_files(self) -> list[str]:
        """List files tracked by git, relative to the repository root."""
        output = await self._git("ls-files")
        return [line for line in output.split("\n") if line.strip()]
