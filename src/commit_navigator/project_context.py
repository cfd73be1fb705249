"""Project context discovery: config manifests, documentation and structure.

Discovery never fails because one optional file is missing or unreadable;
such items are recorded as unreadable or simply omitted.
"""

import json
import logging
import tomllib
from fnmatch import fnmatch
from pathlib import Path
from typing import Any

import yaml

from commit_navigator.git_client import GitClient, GitCommandError, parse_remote_name
from commit_navigator.models import (
    ConfigFileDescriptor,
    ConfigFileEntry,
    ContentKind,
    ProjectContext,
)
from commit_navigator.tree import DirectoryNode, build_tree

logger = logging.getLogger(__name__)

UNREADABLE_ERROR = "Unable to read file content"
DOC_FILENAMES = ("README.md",)
WORKFLOW_EXTENSIONS = (".yml", ".yaml")


def _d(path: str, category: str, kind: ContentKind, description: str, primary: bool = False) -> ConfigFileDescriptor:
    return ConfigFileDescriptor(path, category, kind, description, primary)


J, Y, T, X, D = (
    ContentKind.JSON,
    ContentKind.YAML,
    ContentKind.TOML,
    ContentKind.TEXT,
    ContentKind.DIRECTORY,
)

CONFIG_FILE_REGISTRY: tuple[ConfigFileDescriptor, ...] = (
    # Node.js/JavaScript
    _d("package.json", "nodejs", J, "Node.js package configuration", primary=True),
    _d("package-lock.json", "nodejs", J, "NPM lock file"),
    _d("yarn.lock", "nodejs", X, "Yarn lock file"),
    _d("pnpm-lock.yaml", "nodejs", X, "PNPM lock file"),
    _d(".nvmrc", "nodejs", X, "Node version manager config"),
    _d("tsconfig.json", "nodejs", J, "TypeScript configuration"),
    _d("vite.config.js", "nodejs", X, "Vite configuration"),
    _d("vite.config.ts", "nodejs", X, "Vite configuration (TypeScript)"),
    _d("webpack.config.js", "nodejs", X, "Webpack configuration"),
    _d("next.config.js", "nodejs", X, "Next.js configuration"),
    _d("nuxt.config.js", "nodejs", X, "Nuxt.js configuration"),
    _d("tailwind.config.js", "nodejs", X, "Tailwind CSS configuration"),
    # Python
    _d("pyproject.toml", "python", T, "Python project configuration"),
    _d("requirements.txt", "python", X, "Python dependencies"),
    _d("setup.py", "python", X, "Python package setup"),
    _d("setup.cfg", "python", X, "Python setup configuration"),
    _d("Pipfile", "python", X, "Pipenv configuration"),
    _d("poetry.lock", "python", X, "Poetry lock file"),
    _d("environment.yml", "python", Y, "Conda environment"),
    _d("tox.ini", "python", X, "Tox testing configuration"),
    _d("pytest.ini", "python", X, "Pytest configuration"),
    # Java
    _d("pom.xml", "java", X, "Maven project configuration"),
    _d("build.gradle", "java", X, "Gradle build script"),
    _d("gradle.properties", "java", X, "Gradle properties"),
    _d("settings.gradle", "java", X, "Gradle settings"),
    # C#/.NET
    _d("global.json", "dotnet", J, ".NET global configuration"),
    _d("Directory.Build.props", "dotnet", X, "MSBuild properties"),
    # Go
    _d("go.mod", "go", X, "Go module definition"),
    _d("go.sum", "go", X, "Go module checksums"),
    # Rust
    _d("Cargo.toml", "rust", T, "Rust package configuration"),
    _d("Cargo.lock", "rust", X, "Rust lock file"),
    # Ruby
    _d("Gemfile", "ruby", X, "Ruby gem dependencies"),
    _d("Gemfile.lock", "ruby", X, "Ruby gem lock file"),
    # PHP
    _d("composer.json", "php", J, "PHP Composer configuration"),
    _d("composer.lock", "php", J, "PHP Composer lock file"),
    # Docker
    _d("Dockerfile", "docker", X, "Docker container definition"),
    _d("docker-compose.yml", "docker", X, "Docker Compose configuration"),
    _d("docker-compose.yaml", "docker", X, "Docker Compose configuration"),
    # Build tools
    _d("Makefile", "build", X, "Make build configuration"),
    _d("CMakeLists.txt", "build", X, "CMake build configuration"),
    # Linting/Formatting
    _d(".eslintrc.json", "linting", J, "ESLint configuration"),
    _d(".eslintrc.js", "linting", X, "ESLint configuration"),
    _d(".prettierrc", "linting", J, "Prettier configuration"),
    _d(".prettierrc.json", "linting", J, "Prettier configuration"),
    _d(".editorconfig", "linting", X, "Editor configuration"),
    # Environment
    _d(".env", "env", X, "Environment variables"),
    _d(".env.example", "env", X, "Environment variables example"),
    # CI/CD
    _d(".github/workflows", "cicd", D, "GitHub Actions workflows"),
    _d(".gitlab-ci.yml", "cicd", X, "GitLab CI configuration"),
    _d(".travis.yml", "cicd", X, "Travis CI configuration"),
    _d("Jenkinsfile", "cicd", X, "Jenkins pipeline configuration"),
)

EXCLUDED_DIR_NAMES: tuple[str, ...] = (
    # JavaScript/Node.js
    "node_modules", "dist", "build", "coverage", ".next", ".nuxt", "out",
    "public", "static", "assets",
    # Python
    "__pycache__", ".pytest_cache", "venv", "env", ".venv", ".env",
    "site-packages", ".python-version", ".pyenv", "wheels", "*.egg-info",
    ".mypy_cache", ".ruff_cache", ".tox",
    # Go
    "vendor", "pkg", "mod",
    # Rust
    "target",
    # Java/Kotlin/Scala
    ".gradle", ".mvn", "maven-archiver", "maven-status", "surefire-reports",
    # C/C++
    "cmake-build-*", "Debug", "Release", "x64", "x86", "Win32", ".vs",
    "CMakeFiles", "CMakeCache.txt",
    # .NET/C#
    "bin", "obj", "packages", "TestResults",
    # Ruby
    ".bundle", "vendor/bundle",
    # PHP
    ".composer",
    # Database
    "migrations",
    # Version control
    ".git", ".svn", ".hg", ".bzr",
    # IDEs and editors
    ".vscode", ".idea", ".eclipse", ".settings", ".project", ".classpath",
    # OS
    ".DS_Store", "Thumbs.db",
    # Build and deploy tools
    ".terraform", ".vagrant", "terraform.tfstate*", ".serverless",
    # Cache and temporary
    ".cache", ".tmp", "tmp", "temp", ".temp",
    # Environment files
    ".env.local", ".env.production", ".env.development", ".env.staging",
    ".env.test",
    # Logs
    "logs", ".logs", "*.log",
    # Package managers
    ".npm", ".yarn", ".pnpm-store",
    # Documentation builds
    "_site", ".jekyll-cache", ".docusaurus",
    # Testing
    "test-results", "e2e-results", "playwright-report",
    # Mobile
    ".expo", "ios/build", "android/build", "android/.gradle",
)


def get_excluded_directories() -> list[str]:
    """Return a copy of the excluded directory names."""
    return list(EXCLUDED_DIR_NAMES)


def is_excluded_directory(name: str) -> bool:
    """Check a single path component against the exclusion set."""
    return any(fnmatch(name, pattern) for pattern in EXCLUDED_DIR_NAMES if "/" not in pattern)


def is_excluded_path(path: str) -> bool:
    """Check whether any component of a relative path is excluded."""
    parts = [part for part in path.replace("\\", "/").split("/") if part]
    if any(is_excluded_directory(part) for part in parts):
        return True

    # Multi-segment entries such as vendor/bundle
    wrapped = "/" + "/".join(parts) + "/"
    return any(f"/{pattern}/" in wrapped for pattern in EXCLUDED_DIR_NAMES if "/" in pattern)


def _parse_structured(text: str, kind: ContentKind) -> Any:
    if kind is ContentKind.JSON:
        return json.loads(text)
    if kind is ContentKind.YAML:
        return yaml.safe_load(text)
    if kind is ContentKind.TOML:
        return tomllib.loads(text)
    raise ValueError(f"{kind.value} is not a structured content kind")


class ProjectContextBuilder:
    """Builds a ProjectContext for a project directory."""

    def __init__(
        self,
        git_client: GitClient,
        root: Path | str | None = None,
        max_depth: int = 3,
    ) -> None:
        """Initialize the builder.

        Args:
            git_client: Client used for tracked-file listing and remotes
            root: Project directory (defaults to the git client's repo path)
            max_depth: Maximum depth of the directory tree
        """
        self.git_client = git_client
        self.root = Path(root) if root is not None else git_client.repo_path
        self.max_depth = max_depth

    async def build(self) -> ProjectContext:
        """Gather manifests, documentation, tree and repository identity."""
        context = ProjectContext()
        context.config_files = self.discover_config_files()

        primary = self._find_primary_manifest(context.config_files)
        if primary is not None:
            context.package_json = primary

        context.documentation = self.find_documentation()
        context.tree = await self.build_tree()

        try:
            context.remotes = await self.git_client.get_remotes()
            origin = context.remotes.get("origin", {}).get("fetch")
            if origin is not None:
                context.repository_name = parse_remote_name(origin)
        except GitCommandError as e:
            logger.debug(f"Remote info unavailable: {e}")

        logger.info(
            f"Project context built: {len(context.config_files)} categories, "
            f"{len(context.documentation)} docs"
        )
        return context

    def discover_config_files(self) -> dict[str, dict[str, ConfigFileEntry]]:
        """Check every registry entry and group found files by category."""
        found: dict[str, dict[str, ConfigFileEntry]] = {}

        for descriptor in CONFIG_FILE_REGISTRY:
            entry = self._read_descriptor(descriptor)
            if entry is not None:
                found.setdefault(descriptor.category, {})[descriptor.path] = entry

        return found

    def _read_descriptor(self, descriptor: ConfigFileDescriptor) -> ConfigFileEntry | None:
        path = self.root / descriptor.path

        if descriptor.kind is ContentKind.DIRECTORY:
            if not path.is_dir():
                return None
            try:
                files = sorted(
                    child.name
                    for child in path.iterdir()
                    if child.name.endswith(WORKFLOW_EXTENSIONS)
                )
            except OSError as e:
                logger.debug(f"Skipping unreadable directory {path}: {e}")
                return None
            if not files:
                return None
            return ConfigFileEntry(
                description=descriptor.description, kind=descriptor.kind, files=files
            )

        if not path.is_file():
            return None

        try:
            text = path.read_text(encoding="utf-8")
            if descriptor.kind.is_structured:
                content = _parse_structured(text, descriptor.kind)
            else:
                content = text
        except (OSError, UnicodeDecodeError, ValueError, yaml.YAMLError) as e:
            # tomllib.TOMLDecodeError and json.JSONDecodeError are ValueErrors
            logger.warning(f"Could not read {descriptor.path}: {e}")
            return ConfigFileEntry(
                description=descriptor.description,
                kind=descriptor.kind,
                error=UNREADABLE_ERROR,
            )

        return ConfigFileEntry(
            description=descriptor.description, kind=descriptor.kind, content=content
        )

    def _find_primary_manifest(
        self, config_files: dict[str, dict[str, ConfigFileEntry]]
    ) -> dict[str, Any] | None:
        for descriptor in CONFIG_FILE_REGISTRY:
            if not descriptor.primary:
                continue
            entry = config_files.get(descriptor.category, {}).get(descriptor.path)
            if entry is not None and isinstance(entry.content, dict):
                return entry.content
        return None

    def find_documentation(self) -> dict[str, str]:
        """Find README files in the root and one level of subdirectories.

        Returns:
            Mapping of POSIX relative path to file content, ordered by depth
            then path
        """
        candidates: list[Path] = []
        if not self.root.is_dir():
            return {}

        for name in DOC_FILENAMES:
            candidates.append(self.root / name)

        try:
            subdirs = sorted(
                child
                for child in self.root.iterdir()
                if child.is_dir() and not is_excluded_directory(child.name)
            )
        except OSError as e:
            logger.warning(f"Could not list {self.root}: {e}")
            subdirs = []

        for subdir in subdirs:
            for name in DOC_FILENAMES:
                candidates.append(subdir / name)

        docs: dict[str, str] = {}
        for candidate in candidates:
            if not candidate.is_file():
                continue
            relative = candidate.relative_to(self.root).as_posix()
            if is_excluded_path(relative):
                continue
            try:
                docs[relative] = candidate.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                logger.warning(f"Could not read file {relative}: {e}")

        return docs

    async def build_tree(self) -> DirectoryNode:
        """Build the tracked-file tree, skipping excluded directories."""
        try:
            files = await self.git_client.list_tracked_files()
        except GitCommandError as e:
            logger.warning(f"Failed to list tracked files: {e}")
            return DirectoryNode()

        return build_tree(files, self.max_depth, exclude=is_excluded_path)
