"""Tests for project context discovery."""

import json

import pytest

from commit_navigator.git_client import GitClient, GitCommandError
from commit_navigator.models import ContentKind
from commit_navigator.project_context import (
    CONFIG_FILE_REGISTRY,
    UNREADABLE_ERROR,
    ProjectContextBuilder,
    get_excluded_directories,
    is_excluded_directory,
    is_excluded_path,
)
from commit_navigator.tree import render_tree
from tests.fixtures.git_repos import FakeGitRepo


def make_builder(root, repo=None, max_depth=3):
    repo = repo or FakeGitRepo()
    return ProjectContextBuilder(GitClient(root, runner=repo), max_depth=max_depth)


class TestExclusions:
    """Test excluded directory matching."""

    @pytest.mark.parametrize(
        "name", ["node_modules", ".git", "__pycache__", "foo.egg-info", "cmake-build-debug"]
    )
    def test_excluded_names(self, name):
        assert is_excluded_directory(name)

    @pytest.mark.parametrize("name", ["src", "docs", "lib"])
    def test_included_names(self, name):
        assert not is_excluded_directory(name)

    def test_multi_segment_entries(self):
        assert is_excluded_path("ios/build/App.app")
        assert is_excluded_path("android/.gradle/cache")
        assert not is_excluded_path("ios/Runner/AppDelegate.swift")

    def test_excluded_directories_returns_copy(self):
        names = get_excluded_directories()
        names.append("src")
        assert not is_excluded_directory("src")


class TestConfigDiscovery:
    """Test registry-driven config file discovery."""

    def test_registry_has_single_primary(self):
        primaries = [d.path for d in CONFIG_FILE_REGISTRY if d.primary]
        assert primaries == ["package.json"]

    def test_discovers_and_parses_known_files(self, tmp_path):
        (tmp_path / "package.json").write_text(
            json.dumps({"name": "widgets", "version": "1.2.0", "dependencies": {"react": "^18"}})
        )
        (tmp_path / "pyproject.toml").write_text('[project]\nname = "widgets-py"\n')
        (tmp_path / "environment.yml").write_text(
            "name: widgets-env\ndependencies:\n  - python=3.12\n"
        )
        (tmp_path / "docker-compose.yml").write_text("services:\n  web:\n    image: nginx\n")
        (tmp_path / "Dockerfile").write_text("FROM python:3.12\n")

        config_files = make_builder(tmp_path).discover_config_files()

        assert list(config_files) == ["nodejs", "python", "docker"]
        assert config_files["nodejs"]["package.json"].content["name"] == "widgets"
        assert config_files["python"]["pyproject.toml"].content["project"]["name"] == "widgets-py"
        conda = config_files["python"]["environment.yml"]
        assert conda.kind is ContentKind.YAML
        assert conda.content["dependencies"] == ["python=3.12"]
        compose = config_files["docker"]["docker-compose.yml"]
        assert compose.kind is ContentKind.TEXT
        assert compose.content == "services:\n  web:\n    image: nginx\n"
        assert config_files["docker"]["Dockerfile"].content == "FROM python:3.12\n"

    def test_missing_files_are_omitted(self, tmp_path):
        assert make_builder(tmp_path).discover_config_files() == {}

    def test_unparsable_file_recorded_as_unreadable(self, tmp_path):
        (tmp_path / "package.json").write_text("{ not json")

        config_files = make_builder(tmp_path).discover_config_files()

        entry = config_files["nodejs"]["package.json"]
        assert not entry.readable
        assert entry.error == UNREADABLE_ERROR
        assert entry.content is None

    def test_gitlab_ci_with_custom_tags_read_as_text(self, tmp_path):
        ci = ".setup:\n  script: [make deps]\n\ntest:\n  script:\n    - !reference [.setup, script]\n"
        (tmp_path / ".gitlab-ci.yml").write_text(ci)

        config_files = make_builder(tmp_path).discover_config_files()

        entry = config_files["cicd"][".gitlab-ci.yml"]
        assert entry.readable
        assert entry.error is None
        assert entry.kind is ContentKind.TEXT
        assert entry.content == ci

    def test_workflow_directory_lists_yaml_files(self, tmp_path):
        workflows = tmp_path / ".github" / "workflows"
        workflows.mkdir(parents=True)
        (workflows / "ci.yml").write_text("on: push\n")
        (workflows / "release.yaml").write_text("on: tag\n")
        (workflows / "notes.txt").write_text("ignore me\n")

        config_files = make_builder(tmp_path).discover_config_files()

        entry = config_files["cicd"][".github/workflows"]
        assert entry.kind is ContentKind.DIRECTORY
        assert entry.files == ["ci.yml", "release.yaml"]


class TestDocumentation:
    """Test README discovery."""

    def test_root_and_one_level_deep(self, tmp_path):
        (tmp_path / "README.md").write_text("# Root")
        (tmp_path / "docs").mkdir()
        (tmp_path / "docs" / "README.md").write_text("# Docs")
        (tmp_path / "docs" / "deep").mkdir()
        (tmp_path / "docs" / "deep" / "README.md").write_text("# Too deep")
        (tmp_path / "node_modules").mkdir()
        (tmp_path / "node_modules" / "README.md").write_text("# Vendored")

        docs = make_builder(tmp_path).find_documentation()

        assert docs == {"README.md": "# Root", "docs/README.md": "# Docs"}

    def test_unreadable_doc_is_skipped(self, tmp_path):
        (tmp_path / "README.md").write_bytes(b"\xff\xfe\x00broken")
        (tmp_path / "api").mkdir()
        (tmp_path / "api" / "README.md").write_text("# API")

        docs = make_builder(tmp_path).find_documentation()

        assert docs == {"api/README.md": "# API"}

    def test_missing_root(self, tmp_path):
        assert make_builder(tmp_path / "missing").find_documentation() == {}


class TestBuild:
    """Test the full context build."""

    @pytest.mark.asyncio
    async def test_build_collects_everything(self, tmp_path):
        (tmp_path / "package.json").write_text(json.dumps({"name": "widgets"}))
        (tmp_path / "README.md").write_text("# Widgets")
        repo = FakeGitRepo(
            remotes="origin\thttps://github.com/acme/widgets.git (fetch)\n",
            tracked_files=["package.json", "README.md", "src/index.ts", "node_modules/x.js"],
        )

        context = await make_builder(tmp_path, repo).build()

        assert context.package_json == {"name": "widgets"}
        assert context.technologies == ["nodejs"]
        assert context.documentation == {"README.md": "# Widgets"}
        assert context.repository_name == "widgets"
        assert "node_modules" not in render_tree(context.tree)
        assert "index.ts" in render_tree(context.tree)

    @pytest.mark.asyncio
    async def test_build_outside_git_degrades_gracefully(self, tmp_path):
        (tmp_path / "README.md").write_text("# Loose files")

        async def failing_runner(args, cwd):
            raise GitCommandError(args, "fatal: not a git repository", 128)

        builder = ProjectContextBuilder(GitClient(tmp_path, runner=failing_runner))
        context = await builder.build()

        assert context.tree.is_empty()
        assert context.remotes == {}
        assert context.repository_name is None
        assert context.documentation == {"README.md": "# Loose files"}

    @pytest.mark.asyncio
    async def test_unreadable_primary_manifest_not_used(self, tmp_path):
        (tmp_path / "package.json").write_text("{ broken")

        context = await make_builder(tmp_path).build()

        assert context.package_json is None
        assert context.get_config("nodejs", "package.json").error == UNREADABLE_ERROR
