"""Prompt assembly for commit and project analysis.

Every function in this module is pure: identical inputs always produce
byte-identical prompts. Anything date dependent is passed in by the caller.
"""

import re
from collections.abc import Sequence
from datetime import date
from enum import Enum
from typing import Any

from commit_navigator.models import CommitRecord, ProjectContext
from commit_navigator.tree import render_tree

DOC_TRUNCATION_MARKER = "...\n[README truncated for brevity]"
DIFF_TRUNCATION_MARKER = "... (truncated)"

COMMIT_DOC_BUDGET = 2000
PROJECT_DOC_BUDGET = 3000
DIFF_LINE_BUDGET = 5000
MAX_LISTED_REQUIREMENTS = 8
MAX_CONTEXT_REQUIREMENTS = 10

COMMIT_SYSTEM_MESSAGE = (
    "You are an expert software developer assistant that helps understand git "
    "commits and code changes. Provide clear, concise, and insightful analysis."
)
PROJECT_SYSTEM_MESSAGE = (
    "You are an expert software developer assistant that analyzes codebases and "
    "projects. Provide clear, insightful, and actionable analysis."
)
CHANGELOG_SYSTEM_MESSAGE = (
    "You are a technical writer assistant that helps create clear, concise, and "
    "helpful changelog entries from git commits."
)


class AnalysisMode(Enum):
    """Kind of analysis requested from the model."""

    REVIEW = "review"
    SUMMARY = "summary"


class ChangelogFormat(Enum):
    """Granularity of generated changelog entries."""

    DAILY = "daily"
    WEEKLY = "weekly"


_HEADERS = {
    "commits": "I need you to analyze the following git commit(s) and provide a summary of changes.\n\n",
    "project": "I need you to analyze this software project and provide insights.\n\n",
}

_DIRECTIVES = {
    ("commits", AnalysisMode.REVIEW): """This is a CODE REVIEW request. Please carefully examine the code changes for:
- Potential bugs or issues
- Security vulnerabilities
- Performance concerns
- Code style and best practices
- Architectural considerations
- Suggestions for improvement

""",
    ("commits", AnalysisMode.SUMMARY): """This is a CHANGE SUMMARY request. Please provide:
- A concise overview of what changed
- Key files and components affected

""",
    ("project", AnalysisMode.REVIEW): """This is a PROJECT REVIEW request. Please analyze the project for:
- Code quality and architecture
- Security considerations
- Performance implications
- Best practices adherence
- Potential improvements
- Missing documentation or tests
- Dependencies and technical debt

""",
    ("project", AnalysisMode.SUMMARY): """This is a PROJECT OVERVIEW request. Please provide:
- A summary of what this project does
- Key technologies and frameworks used
- Project structure and organization
- Main features and capabilities

""",
}

_CHECKLISTS = {
    ("commits", AnalysisMode.REVIEW): """
Please provide a detailed code review of the above changes. Include:
1. A high-level summary of what the changes do
2. Potential bugs, errors, or issues in the implementation
3. Security concerns if applicable
4. Architectural impact and design considerations
5. Suggestions for improvement
6. Any missing tests or documentation
""",
    ("commits", AnalysisMode.SUMMARY): """
Please provide a clear summary of the changes including:
1. What changed at a high level
2. Key files and components affected
""",
    ("project", AnalysisMode.REVIEW): """
Please provide a comprehensive project review including:
1. **Project Overview**: What this project does and its main objectives, key features, and results
2. **Architecture Analysis**: Code organization and structure assessment
3. **Technology Stack**: Evaluation of chosen technologies and dependencies
4. **Code Quality**: Assessment of coding practices and patterns
5. **Security Considerations**: Potential security issues or concerns
6. **Performance Analysis**: Performance implications and optimizations
7. **Best Practices**: Adherence to industry standards and conventions
8. **Recommendations**: Specific suggestions for improvements
9. **Technical Debt**: Areas that need refactoring or cleanup
10. **Testing & Documentation**: Assessment of test coverage and documentation quality
""",
    ("project", AnalysisMode.SUMMARY): """
Please provide a clear project overview including:
1. **Project Purpose**: What this project does and its main objectives, key features, and results
2. **Architecture & Technology Stack**: Key technologies, frameworks, and tools used
3. **Project Structure**: How the code is organized and key directories/files
4. **Main Features**: Core functionality and capabilities
5. **Getting Started**: How someone would typically run or use this project
6. **Dependencies**: Major or important libraries and external dependencies, sorted by importance
7. **Architecture Diagrams**: Mermaid diagrams of the project structure, architecture
8. **Dependencies Diagrams**: Mermaid diagrams of the dependencies between the project and its dependencies
""",
}


def truncate_text(text: str, budget: int, marker: str = DOC_TRUNCATION_MARKER) -> str:
    """Cut text at ``budget`` characters and append the marker once.

    Text at or below the budget is returned unchanged, as is text that was
    already truncated with the same marker.
    """
    if len(text) <= budget:
        return text
    if text.endswith(marker) and len(text) - len(marker) <= budget:
        return text
    return text[:budget] + marker


def truncate_diff(diff: str, max_lines: int = DIFF_LINE_BUDGET) -> str:
    """Keep the first ``max_lines`` lines of a diff, marking any cut."""
    lines = diff.split("\n")
    if len(lines) <= max_lines:
        return diff
    return "\n".join(lines[:max_lines]) + "\n" + DIFF_TRUNCATION_MARKER


def _dependency_name(requirement: str) -> str:
    match = re.match(r"[A-Za-z0-9][A-Za-z0-9._-]*", requirement.strip())
    return match.group(0) if match else requirement.strip()


def project_identity(context: ProjectContext) -> dict[str, Any] | None:
    """Extract name, version, description and dependencies from the manifests.

    ``package.json`` takes precedence; ``pyproject.toml`` [project] and
    ``Cargo.toml`` [package] are used when it is absent.
    """
    package = context.package_json
    if package is not None:
        return {
            "name": package.get("name"),
            "version": package.get("version"),
            "description": package.get("description"),
            "dependencies": list(package.get("dependencies") or {}),
            "dev_dependencies": list(package.get("devDependencies") or {}),
            "scripts": list(package.get("scripts") or {}),
        }

    pyproject = context.get_config("python", "pyproject.toml")
    if pyproject is not None and isinstance(pyproject.content, dict):
        project = pyproject.content.get("project")
        if isinstance(project, dict):
            return {
                "name": project.get("name"),
                "version": project.get("version"),
                "description": project.get("description"),
                "dependencies": [
                    _dependency_name(dep) for dep in project.get("dependencies") or []
                ],
                "dev_dependencies": [],
                "scripts": list(project.get("scripts") or {}),
            }

    cargo = context.get_config("rust", "Cargo.toml")
    if cargo is not None and isinstance(cargo.content, dict):
        crate = cargo.content.get("package")
        if isinstance(crate, dict):
            return {
                "name": crate.get("name"),
                "version": crate.get("version"),
                "description": crate.get("description"),
                "dependencies": list(cargo.content.get("dependencies") or {}),
                "dev_dependencies": list(cargo.content.get("dev-dependencies") or {}),
                "scripts": [],
            }

    return None


def _requirements(context: ProjectContext) -> list[str]:
    entry = context.get_config("python", "requirements.txt")
    if entry is None or not isinstance(entry.content, str):
        return []
    return [
        line.strip()
        for line in entry.content.split("\n")
        if line.strip() and not line.strip().startswith("#")
    ]


def _identity_block(context: ProjectContext, target: str, detailed: bool) -> str:
    block = "## Project Information\n"
    if detailed:
        block += f"Path: {target}\n"
    if context.repository_name:
        block += f"Repository: {context.repository_name}\n"

    identity = project_identity(context)
    if identity is not None:
        block += f"Project name: {identity['name'] or 'Unknown'}\n"
        block += f"Description: {identity['description'] or 'N/A'}\n"
        if detailed:
            block += f"Version: {identity['version'] or 'N/A'}\n"
        block += f"Dependencies: {', '.join(identity['dependencies']) or 'None'}\n"
        if detailed:
            block += f"Dev Dependencies: {', '.join(identity['dev_dependencies']) or 'None'}\n"
            if identity["scripts"]:
                block += f"Scripts: {', '.join(identity['scripts'])}\n"

    return block


def _technology_block(context: ProjectContext, detailed: bool) -> str:
    if not context.config_files:
        return ""

    block = f"Technologies detected: {', '.join(context.technologies)}\n"

    python = context.config_files.get("python", {})
    if "pyproject.toml" in python:
        block += "Python project with pyproject.toml configuration\n"

    requirements = _requirements(context)
    if requirements:
        limit = MAX_CONTEXT_REQUIREMENTS if detailed else MAX_LISTED_REQUIREMENTS
        more = " and more..." if len(requirements) > limit else ""
        block += f"Python requirements: {', '.join(requirements[:limit])}{more}\n"

    if detailed and "Pipfile" in python:
        block += "Python project using Pipenv for dependency management\n"

    if "docker" in context.config_files:
        block += "Docker configuration detected\n" if detailed else "Containerized with Docker\n"

    cicd = context.config_files.get("cicd")
    if cicd:
        if detailed:
            block += f"CI/CD configured: {', '.join(cicd)}\n"
        else:
            block += "CI/CD pipeline configured\n"

    linting = context.config_files.get("linting")
    if detailed and linting:
        block += f"Code quality tools: {', '.join(linting)}\n"

    return block


def _documentation_block(context: ProjectContext, budget: int) -> str:
    if not context.documentation:
        return ""

    block = "\n## Project Documentation\n"
    for path, content in context.documentation.items():
        block += f"### {path}\n```\n{truncate_text(content, budget)}\n```\n\n"
    return block


def _structure_block(context: ProjectContext) -> str:
    return f"## Project Structure\n```\n{render_tree(context.tree)}```\n\n"


def _commit_block(commit: CommitRecord, include_diff: bool = True) -> str:
    block = f"### Commit: {commit.hash}\n"
    block += f"Author: {commit.author_name} <{commit.author_email}>\n"
    block += f"Date: {commit.date}\n"
    block += f"Message: {commit.message}\n\n"

    if commit.files:
        block += "Modified files:\n"
        for file in commit.files:
            block += f"- {file}\n"
        block += "\n"

    if include_diff and commit.diff:
        block += f"```diff\n{truncate_diff(commit.diff)}\n```\n\n"

    return block


def assemble_prompt(
    mode: AnalysisMode,
    target: str,
    commits: Sequence[CommitRecord] | None = None,
    context: ProjectContext | None = None,
    *,
    doc_budget: int | None = None,
) -> str:
    """Render the analysis prompt.

    Args:
        mode: Review or summary
        target: Identifier of the analyzed project (usually its path)
        commits: Commits to analyze; None requests a whole-project analysis
        context: Project context, if gathered
        doc_budget: Override of the per-document character budget

    Returns:
        Prompt text. Blocks appear in a fixed order: header, mode directive,
        project identity, technologies, documentation, structure, commits,
        trailing checklist.
    """
    scope = "project" if commits is None else "commits"
    detailed = scope == "project"
    if doc_budget is None:
        doc_budget = PROJECT_DOC_BUDGET if detailed else COMMIT_DOC_BUDGET

    prompt = _HEADERS[scope]
    prompt += _DIRECTIVES[(scope, mode)]

    if context is not None:
        prompt += _identity_block(context, target, detailed)
        prompt += _technology_block(context, detailed)
        prompt += _documentation_block(context, doc_budget)
        prompt += _structure_block(context)
    else:
        prompt += f"## Project Information\nPath: {target}\n\n"

    if commits is not None:
        prompt += f"## Commits to Analyze ({len(commits)})\n\n"
        for commit in commits:
            prompt += _commit_block(commit)

    prompt += _CHECKLISTS[(scope, mode)]
    return prompt


def render_repository_context(context: ProjectContext, target: str) -> str:
    """Render the context-only document, without analysis instructions."""
    document = "# Repository Context\n\n"
    document += _identity_block(context, target, detailed=True)
    document += _technology_block(context, detailed=True)
    document += _documentation_block(context, PROJECT_DOC_BUDGET)
    document += _structure_block(context)
    return document


def assemble_changelog_prompt(
    commits: Sequence[CommitRecord],
    context: ProjectContext | None,
    fmt: ChangelogFormat,
    today: date,
) -> str:
    """Render a Keep a Changelog request for the given commits."""
    identity = project_identity(context) if context is not None else None
    version = (identity or {}).get("version") or "0.1.0"

    prompt = "I need you to generate a changelog entry for the following git commits.\n\n"
    prompt += "This changelog follows the Keep a Changelog format (https://keepachangelog.com/).\n"
    granularity = "entries for each day" if fmt is ChangelogFormat.DAILY else "weekly summary"
    prompt += f"The format should be '{fmt.value}' ({granularity}).\n\n"

    prompt += "## Project Information\n"
    if identity is not None:
        prompt += f"Project name: {identity['name'] or 'Unknown'}\n"
        prompt += f"Version: {version}\n"
        prompt += f"Description: {identity['description'] or 'N/A'}\n"
    if context is not None and context.config_files:
        prompt += f"Technologies: {', '.join(context.technologies)}\n"
        if "python" in context.config_files:
            prompt += "Python project with relevant dependencies and configuration\n"
        if "docker" in context.config_files:
            prompt += "Containerized application with Docker\n"
        if "cicd" in context.config_files:
            prompt += "CI/CD pipeline configured for automated deployment/testing\n"

    prompt += f"\n## Commits to Include in Changelog ({len(commits)})\n\n"
    for commit in commits:
        prompt += _commit_block(commit, include_diff=False)

    prompt += f"""
Please generate a changelog entry with the following format:

## [{version}] - {today.isoformat()}

### Added
- New features or additions

### Changed
- Changes to existing functionality

### Fixed
- Bug fixes

### Removed
- Features or functionality that has been removed

Only include sections that are relevant. Group similar changes together and write clear, concise descriptions.
"""
    return prompt
