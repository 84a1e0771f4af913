from __future__ import annotations

import hashlib
import logging
import re
import shutil
import subprocess
import tempfile
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path

from .errors import GitCommandError, SkillsetError
from .local_skills import discover_skills, validate_skill_name
from .overwrite import OverwriteArbiter
from .paths import default_cache_dir
from .sync import SyncObserver, SyncReport, Target, sync_skills

DEFAULT_CANDIDATE_DIRS = (".claude/skills", "skills")
WORKSPACE_LABEL = "workspace"
USER_STORE_LABEL = "user store"

_URL_PREFIXES = ("https://", "http://", "ssh://", "git://")
# scp-like syntax, e.g. git@github.com:owner/repo.git
_SCP_LIKE_RE = re.compile(r"^[A-Za-z0-9._-]+@[A-Za-z0-9.-]+:")

logger = logging.getLogger(__name__)

GitRunner = Callable[[Sequence[str]], int]


@dataclass(frozen=True)
class PackageRef:
    raw: str
    url: str
    cache_key: str
    owner: str | None = None
    repo: str | None = None

    @property
    def is_direct_url(self) -> bool:
        return self.owner is None


@dataclass(frozen=True)
class InstallResult:
    package: PackageRef
    repo_dir: Path
    skills_dir: Path
    report: SyncReport


def is_direct_url(value: str) -> bool:
    return value.startswith(_URL_PREFIXES) or bool(_SCP_LIKE_RE.match(value))


def url_cache_key(url: str) -> str:
    return hashlib.sha256(url.encode("utf-8")).hexdigest()[:16]


def parse_package_ref(value: str, *, use_ssh: bool = False) -> PackageRef:
    raw = value.strip()
    if raw and is_direct_url(raw):
        return PackageRef(raw=raw, url=raw, cache_key=url_cache_key(raw))

    parts = raw.split("/")
    if len(parts) != 2 or not all(p.strip() for p in parts):
        raise SkillsetError(f"Invalid package spec {value!r}. Expected <owner>/<repo> or a git URL.")
    owner, repo = (p.strip() for p in parts)
    if use_ssh:
        url = f"git@github.com:{owner}/{repo}.git"
    else:
        url = f"https://github.com/{owner}/{repo}.git"
    return PackageRef(raw=raw, url=url, cache_key=f"{owner}-{repo}", owner=owner, repo=repo)


def cache_key(value: str) -> str:
    return parse_package_ref(value).cache_key


def run_git(args: Sequence[str]) -> int:
    proc = subprocess.run(["git", *args], check=False)
    return proc.returncode


class PackageResolver:
    def __init__(self, cache_dir: Path | None = None, *, git: GitRunner = run_git) -> None:
        self.cache_dir = (cache_dir or default_cache_dir()).expanduser()
        self._git = git

    def entry_path(self, ref: PackageRef) -> Path:
        return self.cache_dir / ref.cache_key

    def _run(self, ref: PackageRef, command: str, args: list[str]) -> None:
        logger.debug("Running git %s", " ".join(args))
        try:
            rc = self._git(args)
        except OSError as e:
            raise GitCommandError(ref.raw, command) from e
        if rc != 0:
            raise GitCommandError(ref.raw, command, rc)

    def _clone(self, ref: PackageRef, dest: Path) -> None:
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise SkillsetError(f"Failed to create cache directory: {self.cache_dir}") from e

        # Clone into a staging directory so a failed clone never looks cached.
        staging_root = Path(tempfile.mkdtemp(prefix=f".{ref.cache_key}-", dir=self.cache_dir))
        staging = staging_root / "repo"
        try:
            self._run(ref, "clone", ["clone", "--depth", "1", ref.url, str(staging)])
            if not staging.is_dir():
                raise SkillsetError(f"git clone reported success but produced no checkout for {ref.raw}")
            staging.rename(dest)
        finally:
            shutil.rmtree(staging_root, ignore_errors=True)

    def resolve(self, value: str | PackageRef, *, use_ssh: bool = False, refresh: bool = False) -> Path:
        ref = value if isinstance(value, PackageRef) else parse_package_ref(value, use_ssh=use_ssh)
        entry = self.entry_path(ref)

        if not entry.exists():
            logger.info("Cloning %s from %s", ref.raw, ref.url)
            self._clone(ref, entry)
            return entry

        if refresh:
            logger.info("Updating cached package %s", ref.raw)
            self._run(ref, "pull", ["-C", str(entry), "pull", "--ff-only"])
        else:
            logger.info("Using cached package %s at %s", ref.raw, entry)
        return entry


def find_skills_subdir(local_path: Path, candidate_dirs: Sequence[str] | None = None) -> Path:
    candidates = list(candidate_dirs) if candidate_dirs else list(DEFAULT_CANDIDATE_DIRS)
    for rel in candidates:
        candidate = local_path / rel
        if not candidate.exists():
            continue
        if not discover_skills(candidate):
            raise SkillsetError(f"{rel} exists but contains no skills")
        return candidate
    checked = ", ".join(candidates)
    raise SkillsetError(f"No skills directory found in package (checked {checked})")


def install_package(
    value: str,
    *,
    resolver: PackageResolver,
    arbiter: OverwriteArbiter,
    workspace_dir: Path | None = None,
    user_dir: Path | None = None,
    skill: str | None = None,
    use_ssh: bool = False,
    refresh: bool = False,
    candidate_dirs: Sequence[str] | None = None,
    observer: SyncObserver | None = None,
) -> InstallResult:
    ref = parse_package_ref(value, use_ssh=use_ssh)
    if skill is not None:
        validate_skill_name(skill)

    targets: list[Target] = []
    if workspace_dir is not None:
        targets.append(Target(label=WORKSPACE_LABEL, path=workspace_dir))
    if user_dir is not None:
        targets.append(Target(label=USER_STORE_LABEL, path=user_dir))
    if not targets:
        raise SkillsetError("Nothing to install into: choose the workspace store, the user store, or both.")

    repo_dir = resolver.resolve(ref, refresh=refresh)
    skills_dir = find_skills_subdir(repo_dir, candidate_dirs)

    only = [skill] if skill is not None else None
    report = sync_skills(skills_dir, targets, arbiter=arbiter, only=only, observer=observer)
    return InstallResult(package=ref, repo_dir=repo_dir, skills_dir=skills_dir, report=report)
