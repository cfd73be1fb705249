"""Output artifacts and console display for generated text."""

import logging
import re
from pathlib import Path

from rich.console import Console
from rich.markdown import Markdown
from rich.rule import Rule

from commit_navigator.errors import ArtifactWriteError

logger = logging.getLogger(__name__)

ANALYSIS_FILENAME = "README_cnav.md"
CONTEXT_FILENAME = "README_context.md"
CHANGELOG_FILENAME = "CHANGELOG.md"

_MARKUP_PATTERN = re.compile(r"\*\*|`")


def to_plain_text(text: str) -> str:
    """Strip bold markers and backticks from Markdown output."""
    return _MARKUP_PATTERN.sub("", text)


def _write(path: Path, content: str) -> Path:
    try:
        path.write_text(content, encoding="utf-8")
    except OSError as e:
        raise ArtifactWriteError(f"Could not write {path}: {e}") from e
    logger.info(f"Wrote {len(content)} chars to {path}")
    return path


def write_analysis(target_dir: Path, analysis: str, filename: str = ANALYSIS_FILENAME) -> Path:
    """Write the analysis artifact into the target directory."""
    return _write(target_dir / filename, analysis)


def write_context(target_dir: Path, context: str) -> Path:
    """Write the context-only artifact into the target directory."""
    return _write(target_dir / CONTEXT_FILENAME, context)


def prepend_changelog(changelog_path: Path, entry: str) -> Path:
    """Insert a new entry above the existing changelog content."""
    existing = ""
    if changelog_path.exists():
        try:
            existing = changelog_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ArtifactWriteError(f"Could not read {changelog_path}: {e}") from e

    content = entry + ("\n\n" + existing if existing else "")
    return _write(changelog_path, content)


def display_result(console: Console, title: str, text: str, markdown: bool = False) -> None:
    """Echo generated text to the console.

    Args:
        console: Rich console to print to
        title: Heading shown above the text
        text: Generated text
        markdown: Render as Markdown instead of plain text
    """
    if markdown:
        console.print(Rule(f"[bold green]{title} (Markdown Output)"))
        console.print(Markdown(text))
    else:
        console.print(Rule(f"[bold green]{title} (Plain Text Output)"))
        console.print(to_plain_text(text), markup=False, highlight=False)
