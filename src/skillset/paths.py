"""Standard locations used by skillset.

Every location can be overridden through an environment variable, which is
expanded (``~`` and ``$VAR``) before use.
"""

from __future__ import annotations

import os
from pathlib import Path

from platformdirs import user_cache_path


def _resolve_path(env_var: str, default: Path) -> Path:
    env_path = os.environ.get(env_var)
    if env_path:
        return Path(os.path.expanduser(os.path.expandvars(env_path)))
    return default


def user_store_dir() -> Path:
    """User-level skill store, ``~/.skillset/skills`` by default.

    Override with SKILLSET_USER_DIR.
    """
    return _resolve_path("SKILLSET_USER_DIR", Path.home() / ".skillset" / "skills")


def default_cache_dir() -> Path:
    """Where resolved packages are cloned.

    Override with SKILLSET_CACHE_DIR.
    """
    return _resolve_path("SKILLSET_CACHE_DIR", user_cache_path("skillset") / "repos")


def resolve_source(user_scope: bool, cwd: Path, config_source: str) -> Path:
    if user_scope:
        return user_store_dir()
    return cwd / Path(config_source).expanduser()
