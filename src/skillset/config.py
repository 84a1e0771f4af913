from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from platformdirs import user_config_path

from .errors import SkillsetError
from .sync import Target

DEFAULT_SOURCE = ".skillset/skills"
LEGACY_SOURCE = ".ai/skills"
DEFAULT_SKILL_DIRS = (".claude/skills", "skills")


@dataclass(frozen=True)
class TargetConfig:
    label: str
    path: str


@dataclass(frozen=True)
class InstallConfig:
    use_ssh: bool = False  # git@github.com:owner/repo.git for owner/repo specs
    skill_dirs: tuple[str, ...] = DEFAULT_SKILL_DIRS  # relative to the package root


def supported_tools() -> tuple[TargetConfig, ...]:
    return (
        TargetConfig(label="Cursor", path="~/.cursor/skills"),
        TargetConfig(label="Claude Code", path="~/.claude/skills"),
        TargetConfig(label="Windsurf", path="~/.windsurf/skills"),
        TargetConfig(label="Codex", path="~/.codex/skills"),
        TargetConfig(label="OpenCode", path="~/.opencode/skills"),
        TargetConfig(label="Gemini", path="~/.gemini/skills"),
        TargetConfig(label="GitHub Copilot (project)", path=".github/skills"),
        TargetConfig(label="GitHub Copilot (personal)", path="~/.copilot/skills"),
    )


@dataclass(frozen=True)
class Config:
    source: str = DEFAULT_SOURCE
    targets: tuple[TargetConfig, ...] = field(default_factory=supported_tools)
    install: InstallConfig = field(default_factory=InstallConfig)


def config_path(path_override: str | Path | None = None) -> Path:
    if path_override is not None:
        return Path(path_override).expanduser()
    if env := os.getenv("SKILLSET_CONFIG_PATH"):
        return Path(env).expanduser()
    return user_config_path("skillset") / "config.json"


def _parse_targets(raw: Any) -> tuple[TargetConfig, ...]:
    if not isinstance(raw, list):
        return supported_tools()
    targets: list[TargetConfig] = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        label = item.get("label")
        path = item.get("path")
        if not isinstance(label, str) or not isinstance(path, str):
            continue
        if not label.strip() or not path.strip():
            continue
        targets.append(TargetConfig(label=label.strip(), path=path.strip()))
    return tuple(targets)


def _parse_install(raw: Any) -> InstallConfig:
    if not isinstance(raw, dict):
        return InstallConfig()
    use_ssh = raw.get("use_ssh")
    skill_dirs = raw.get("skill_dirs")
    dirs: tuple[str, ...] = DEFAULT_SKILL_DIRS
    if isinstance(skill_dirs, list):
        dirs = tuple(d.strip() for d in skill_dirs if isinstance(d, str) and d.strip())
    return InstallConfig(use_ssh=use_ssh is True, skill_dirs=dirs)


def config_exists(path_override: str | Path | None = None) -> bool:
    return config_path(path_override).exists()


def load_config(path_override: str | Path | None = None) -> Config:
    path = config_path(path_override)
    if not path.exists():
        return Config()

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise SkillsetError(f"Failed to parse config file {path}: {e}") from e
    except OSError as e:
        raise SkillsetError(f"Failed to read config file: {path}") from e
    if not isinstance(raw, dict):
        return Config()

    source = raw.get("source")
    if not isinstance(source, str) or not source.strip():
        source = DEFAULT_SOURCE
    if source == LEGACY_SOURCE:
        source = DEFAULT_SOURCE

    return Config(
        source=source,
        targets=_parse_targets(raw.get("targets")),
        install=_parse_install(raw.get("install")),
    )


def save_config(cfg: Config, path_override: str | Path | None = None) -> Path:
    path = config_path(path_override)
    path.parent.mkdir(parents=True, exist_ok=True)

    payload = asdict(cfg)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps(payload, indent=2, sort_keys=True) + "\n", encoding="utf-8")
    tmp.replace(path)
    return path


def expand_path(path: str, *, cwd: Path) -> Path:
    p = Path(path).expanduser()
    if not p.is_absolute():
        p = cwd / p
    return p


def resolve_targets(cfg: Config, *, cwd: Path) -> list[Target]:
    return [Target(label=t.label, path=expand_path(t.path, cwd=cwd)) for t in cfg.targets]
