from ._version import __version__
from .errors import CopyError, GitCommandError, SkillsetError
from .local_skills import copy_skill, discover_skills
from .overwrite import Decision, OverwriteArbiter, OverwritePolicy
from .packages import PackageResolver, find_skills_subdir, install_package, parse_package_ref
from .sync import SyncReport, Target, sync_skills

__all__ = [
    "__version__",
    "CopyError",
    "Decision",
    "GitCommandError",
    "OverwriteArbiter",
    "OverwritePolicy",
    "PackageResolver",
    "SkillsetError",
    "SyncReport",
    "Target",
    "copy_skill",
    "discover_skills",
    "find_skills_subdir",
    "install_package",
    "parse_package_ref",
    "sync_skills",
]
