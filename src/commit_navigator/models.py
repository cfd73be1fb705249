"""Data models shared by the context pipeline and the inference gateway."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from commit_navigator.tree import DirectoryNode


class CommitRecord(BaseModel):
    """A single commit with its filtered diff and changed files."""

    model_config = ConfigDict(frozen=True)

    hash: str
    author_name: str
    author_email: str
    date: str
    message: str
    body: str = ""
    files: tuple[str, ...] = ()
    diff: str = ""

    @property
    def short_hash(self) -> str:
        return self.hash[:7]


class ContentKind(Enum):
    """How a configuration file is read."""

    JSON = "json"
    YAML = "yaml"
    TOML = "toml"
    TEXT = "text"
    DIRECTORY = "directory"

    @property
    def is_structured(self) -> bool:
        return self in (ContentKind.JSON, ContentKind.YAML, ContentKind.TOML)


@dataclass(frozen=True)
class ConfigFileDescriptor:
    """Registry entry describing a well-known configuration file."""

    path: str
    category: str
    kind: ContentKind
    description: str
    primary: bool = False


@dataclass
class ConfigFileEntry:
    """A discovered configuration file.

    ``content`` holds the parsed value for structured kinds and the raw text
    for text kinds. Directory entries list their matching files instead.
    """

    description: str
    kind: ContentKind
    content: Any = None
    files: list[str] = field(default_factory=list)
    exists: bool = True
    error: str | None = None

    @property
    def readable(self) -> bool:
        return self.error is None


@dataclass
class ProjectContext:
    """Bounded snapshot of a project's manifests, docs and structure."""

    config_files: dict[str, dict[str, ConfigFileEntry]] = field(default_factory=dict)
    package_json: dict[str, Any] | None = None
    documentation: dict[str, str] = field(default_factory=dict)
    tree: DirectoryNode = field(default_factory=DirectoryNode)
    repository_name: str | None = None
    remotes: dict[str, dict[str, str]] = field(default_factory=dict)

    @property
    def technologies(self) -> list[str]:
        """Detected technology categories in registry order."""
        return list(self.config_files)

    def get_config(self, category: str, filename: str) -> ConfigFileEntry | None:
        return self.config_files.get(category, {}).get(filename)


Role = Literal["system", "user", "assistant"]


class ChatMessage(BaseModel):
    """A role-tagged message sent to an inference backend."""

    role: Role
    content: str


class InferenceRequest(BaseModel):
    """Options for a single inference call."""

    messages: list[ChatMessage]
    model: str | None = None
    max_tokens: int = Field(default=20000, gt=0)
    temperature: float = 0.2
    system_message: str | None = None

    @field_validator("temperature")
    @classmethod
    def validate_temperature(cls, v: float) -> float:
        """Validate temperature is within the range both backends accept."""
        if v < 0 or v > 2:
            raise ValueError("temperature must be between 0 and 2")
        return v
