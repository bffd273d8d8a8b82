"""Configuration loading for depscan (.depscan.yml)."""

from __future__ import annotations

import os
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

import yaml

from .api.client import DEFAULT_ENDPOINT, UploadOptions
from .errors import DepscanError
from .models import Locator, Module

CONFIG_FILENAME = ".depscan.yml"

GitRunner = Callable[[Path, Sequence[str]], Optional[str]]


class ConfigError(DepscanError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class ProjectConfig:
    """Project metadata sent alongside an upload."""

    name: Optional[str] = None
    fetcher: str = "custom"
    revision: Optional[str] = None
    title: Optional[str] = None
    branch: Optional[str] = None
    project_url: Optional[str] = None
    jira_project_key: Optional[str] = None
    link: Optional[str] = None
    team: Optional[str] = None

    def locator(self) -> Locator:
        return Locator(fetcher=self.fetcher, project=self.name or "", revision=self.revision or "")

    def upload_options(self) -> UploadOptions:
        return UploadOptions(
            branch=self.branch,
            project_url=self.project_url,
            jira_project_key=self.jira_project_key,
            link=self.link,
            team=self.team,
        )


@dataclass
class AnalyzeConfig:
    """Analysis run settings."""

    concurrency: int = 1
    template: Optional[Path] = None


@dataclass
class DepscanConfig:
    """Represents the settings defined in .depscan.yml and the environment."""

    root: Path
    api_key: Optional[str] = None
    endpoint: str = DEFAULT_ENDPOINT
    timeout: float = 60.0
    project: ProjectConfig = field(default_factory=ProjectConfig)
    analyze: AnalyzeConfig = field(default_factory=AnalyzeConfig)
    modules: List[Module] = field(default_factory=list)


def load_config(
    config_path: Path,
    *,
    environ: Mapping[str, str] | None = None,
    git: GitRunner | None = None,
) -> DepscanConfig:
    """Load configuration from disk, then apply environment and git defaults."""
    env = os.environ if environ is None else environ
    git_runner = git or _git_output
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    data: Dict[str, Any] = {}
    if config_file.exists():
        data = _read_config(config_file)

    project_data = _as_dict(data.get("project"))
    project = ProjectConfig(
        name=_as_str(project_data.get("name")),
        fetcher=_as_str(project_data.get("fetcher")) or "custom",
        revision=_as_str(project_data.get("revision")),
        title=_as_str(project_data.get("title")),
        branch=_as_str(project_data.get("branch")),
        project_url=_as_str(project_data.get("url")),
        jira_project_key=_as_str(project_data.get("jira_project_key")),
        link=_as_str(project_data.get("link")),
        team=_as_str(project_data.get("team")),
    )

    analyze_data = _as_dict(data.get("analyze"))
    analyze = AnalyzeConfig()
    if analyze_data:
        concurrency = _as_int(analyze_data.get("concurrency"))
        if concurrency is not None:
            if concurrency < 1:
                raise ConfigError("analyze.concurrency must be at least 1")
            analyze.concurrency = concurrency
        template = _as_str(analyze_data.get("template"))
        analyze.template = root / template if template else None

    server_data = _as_dict(data.get("server"))
    config = DepscanConfig(
        root=root,
        api_key=_as_str(server_data.get("api_key")),
        endpoint=_as_str(server_data.get("endpoint")) or DEFAULT_ENDPOINT,
        timeout=_as_float(server_data.get("timeout")) or 60.0,
        project=project,
        analyze=analyze,
        modules=_parse_modules(data.get("modules")),
    )
    _apply_environment(config, env)
    _apply_git_defaults(config, git_runner)
    return config


def parse_module_spec(spec: str) -> Module:
    """Parse a ``type:target`` module given on the command line."""
    module_type, sep, target = spec.partition(":")
    if not sep or not module_type.strip() or not target.strip():
        raise ConfigError(f"Module '{spec}' must be written as TYPE:TARGET")
    target = target.strip()
    return Module(name=target, type=module_type.strip().lower(), build_target=target)


def _parse_modules(value: Any) -> List[Module]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ConfigError("modules must be a list")
    modules: List[Module] = []
    for index, raw in enumerate(value):
        if not isinstance(raw, dict):
            raise ConfigError(f"modules[{index}] must be a mapping")
        module_type = _as_str(raw.get("type"))
        target = _as_str(raw.get("target")) or _as_str(raw.get("path"))
        if not module_type:
            raise ConfigError(f"modules[{index}] is missing a type")
        if not target:
            raise ConfigError(f"modules[{index}] is missing a target")
        modules.append(
            Module(
                name=_as_str(raw.get("name")) or target,
                type=module_type.lower(),
                build_target=target,
                revision=_as_str(raw.get("revision")),
                options=_as_dict(raw.get("options")),
            )
        )
    return modules


def _apply_environment(config: DepscanConfig, env: Mapping[str, str]) -> None:
    config.api_key = env.get("DEPSCAN_API_KEY") or config.api_key
    config.endpoint = env.get("DEPSCAN_ENDPOINT") or config.endpoint
    config.project.name = env.get("DEPSCAN_PROJECT") or config.project.name
    config.project.revision = env.get("DEPSCAN_REVISION") or config.project.revision
    config.project.branch = env.get("DEPSCAN_BRANCH") or config.project.branch


def _apply_git_defaults(config: DepscanConfig, git: GitRunner) -> None:
    if not config.project.name:
        config.project.name = config.root.name or None
    if not config.project.revision:
        config.project.revision = git(config.root, ["rev-parse", "HEAD"])
    if not config.project.branch:
        branch = git(config.root, ["rev-parse", "--abbrev-ref", "HEAD"])
        config.project.branch = branch if branch and branch != "HEAD" else None


def _git_output(root: Path, args: Sequence[str]) -> Optional[str]:
    try:
        completed = subprocess.run(
            ["git", *args],
            cwd=str(root),
            check=True,
            capture_output=True,
            text=True,
        )
    except (FileNotFoundError, subprocess.CalledProcessError):
        return None
    return completed.stdout.strip() or None


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigError(f"{path.name} must contain a mapping at the root")
    return loaded


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return None
    return str(value) if isinstance(value, (str, int, float)) else None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


__all__ = [
    "AnalyzeConfig",
    "CONFIG_FILENAME",
    "ConfigError",
    "DepscanConfig",
    "ProjectConfig",
    "load_config",
    "parse_module_spec",
]
