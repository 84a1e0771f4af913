from __future__ import annotations

import argparse
import json
import logging
import sys
import textwrap
from collections.abc import Callable
from pathlib import Path

from ._version import __version__
from .config import Config, config_exists, config_path, load_config, resolve_targets, save_config
from .errors import SkillsetError
from .local_skills import MANIFEST_FILENAME, discover_skills, remove_skill_dir, validate_skill_name
from .logging_config import setup_logging
from .overwrite import Action, Decision, OverwriteArbiter, parse_decision, read_answer
from .packages import PackageResolver, install_package
from .paths import default_cache_dir, resolve_source, user_store_dir
from .scaffold import AGENTS_MD_SNIPPET, create_skill
from .sync import SyncOutcome, SyncReport, Target, sync_skills


class _PrintObserver:
    def __init__(self, *, header: Callable[[int], str] | None = None) -> None:
        self._header = header or (lambda count: f"Found {count} skill(s) to sync:")

    def on_start(self, skills: list[str]) -> None:
        print(self._header(len(skills)))

    def on_outcome(self, outcome: SyncOutcome) -> None:
        if outcome.action is Action.COPIED:
            print(f"  Copied {outcome.skill} to {outcome.label}")
        elif outcome.action is Action.OVERWROTE:
            print(f"  Overwrote {outcome.skill} at {outcome.label}")
        elif outcome.action is Action.SKIPPED:
            print(f"    Skipped {outcome.skill} at {outcome.label}")
        else:
            print(f"  Failed {outcome.skill} at {outcome.label}: {outcome.error}", file=sys.stderr)


def _print_summary(report: SyncReport) -> None:
    print(
        f"copied: {len(report.copied)}  overwrote: {len(report.overwrote)}  "
        f"skipped: {len(report.skipped)}  failed: {len(report.failed)}"
    )


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="skillset",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        description="Manage and sync AI agent skills across multiple tools.",
        epilog=textwrap.dedent(
            """\
            Environment variables:
              SKILLSET_CONFIG_PATH, SKILLSET_USER_DIR, SKILLSET_CACHE_DIR, SKILLSET_LOG_LEVEL
            """
        ),
    )
    p.add_argument("--version", action="version", version=f"skillset {__version__}")

    def _add_common(parser: argparse.ArgumentParser) -> None:
        # Accepted both before and after the subcommand, e.g.:
        #   skillset --user sync
        #   skillset sync --user
        parser.add_argument(
            "--user",
            action="store_true",
            default=argparse.SUPPRESS,
            help="Use the user-level store (~/.skillset/skills) instead of the workspace",
        )
        parser.add_argument("--config", default=argparse.SUPPRESS, help="Config file path")
        parser.add_argument("-v", "--verbose", action="store_true", default=argparse.SUPPRESS, help="Debug logging")
        parser.add_argument(
            "--verbose-errors",
            action="store_true",
            default=argparse.SUPPRESS,
            help="Print the chain of underlying errors on failure",
        )

    _add_common(p)
    sub = p.add_subparsers(dest="cmd", required=True)

    ls = sub.add_parser("list", aliases=["ls"], help="List skills in the source and their status per target")
    _add_common(ls)
    ls.add_argument("--json", action="store_true", help="Output JSON")

    sync = sub.add_parser("sync", help="Sync skills from the source to configured targets")
    _add_common(sync)
    sync.add_argument("-y", "--yes", action="store_true", help="Overwrite existing skills without asking")

    install = sub.add_parser("install", aliases=["i"], help="Install skills from a package (e.g. anthropics/skills)")
    _add_common(install)
    install.add_argument("package", help="Package spec: <owner>/<repo> or a git URL")
    install.add_argument("--skill", help="Install only this skill")
    install.add_argument("--also-user", action="store_true", help="Install into the user store as well")
    install.add_argument("--ssh", action="store_true", help="Clone <owner>/<repo> specs over SSH")
    install.add_argument("--refresh", action="store_true", help="Update an already cached package before installing")
    install.add_argument(
        "--skill-dir",
        action="append",
        dest="skill_dirs",
        metavar="DIR",
        help="Directory inside the package to look for skills (repeatable; default: from config)",
    )
    install.add_argument("-y", "--yes", action="store_true", help="Overwrite existing skills without asking")

    add = sub.add_parser("add", help="Scaffold a new skill in the source directory")
    _add_common(add)
    add.add_argument("name", help="Skill name (letters, digits, - and _)")
    add.add_argument("--force", action="store_true", help="Overwrite if the skill already exists")

    remove = sub.add_parser("remove", aliases=["rm"], help="Remove a skill from targets (and the user store with --user)")
    _add_common(remove)
    remove.add_argument("name", help="Skill name")
    remove.add_argument("-y", "--yes", action="store_true", help="Skip the confirmation prompt")

    doc = sub.add_parser("doc", help="Output documentation snippets")
    doc.add_argument("--agents-md", action="store_true", help="Output the AGENTS.md snippet")

    cfg = sub.add_parser("config", help="Manage local config")
    _add_common(cfg)
    cfg_sub = cfg.add_subparsers(dest="subcmd", required=True)
    cfg_sub.add_parser("path", help="Print config path")
    cfg_sub.add_parser("show", help="Show the effective config")
    cfg_init = cfg_sub.add_parser("init", help="Write the default config")
    cfg_init.add_argument("--force", action="store_true", help="Replace an existing config file")

    return p


def _load_or_create_config(args: argparse.Namespace) -> Config:
    override = getattr(args, "config", None)
    if config_exists(override):
        return load_config(override)
    cfg = Config()
    path = save_config(cfg, override)
    print(f"Config created at: {path}", file=sys.stderr)
    return cfg


def _make_arbiter(args: argparse.Namespace) -> OverwriteArbiter:
    if getattr(args, "yes", False) or not sys.stdin.isatty():
        return OverwriteArbiter.non_interactive()
    return OverwriteArbiter.interactive()


def _user_scope(args: argparse.Namespace) -> bool:
    return bool(getattr(args, "user", False))


def cmd_list(args: argparse.Namespace) -> int:
    cfg = _load_or_create_config(args)
    cwd = Path.cwd()
    source = resolve_source(_user_scope(args), cwd, cfg.source)
    targets = resolve_targets(cfg, cwd=cwd)
    skills = discover_skills(source)

    if args.json:
        payload = {
            "source": str(source),
            "skills": {
                name: {t.label: (t.path / name).exists() for t in targets}
                for name in skills
            },
        }
        print(json.dumps(payload, indent=2, sort_keys=True))
        return 0

    print(f"Source: {source}")
    print(f"Config: {config_path(getattr(args, 'config', None))}")
    print()
    if not skills:
        print("No skills found in source directory.")
        return 0

    print("Skills:")
    for name in skills:
        statuses = [f"{t.label} {'✓' if (t.path / name).exists() else '—'}" for t in targets]
        print(f"  {name}  {'  '.join(statuses)}")
    return 0


def cmd_sync(args: argparse.Namespace) -> int:
    cfg = _load_or_create_config(args)
    cwd = Path.cwd()
    source = resolve_source(_user_scope(args), cwd, cfg.source)
    if not source.exists():
        raise SkillsetError(f"Source directory not found: {source}")

    targets = resolve_targets(cfg, cwd=cwd)
    report = sync_skills(source, targets, arbiter=_make_arbiter(args), observer=_PrintObserver())
    if not report.skills:
        print(f"No skills found in source: {source}")
        return 0
    _print_summary(report)
    print("Sync complete." if report.ok else "Sync finished with errors.")
    return 0 if report.ok else 1


def cmd_install(args: argparse.Namespace) -> int:
    cfg = _load_or_create_config(args)
    cwd = Path.cwd()

    workspace_dir: Path | None = resolve_source(False, cwd, cfg.source)
    user_dir: Path | None = None
    if _user_scope(args):
        workspace_dir = None
        user_dir = user_store_dir()
    elif args.also_user:
        user_dir = user_store_dir()

    resolver = PackageResolver(default_cache_dir())
    result = install_package(
        args.package,
        resolver=resolver,
        arbiter=_make_arbiter(args),
        workspace_dir=workspace_dir,
        user_dir=user_dir,
        skill=args.skill,
        use_ssh=args.ssh or cfg.install.use_ssh,
        refresh=args.refresh,
        candidate_dirs=args.skill_dirs or cfg.install.skill_dirs,
        observer=_PrintObserver(header=lambda count: f"Installing {count} skill(s) from {args.package}:"),
    )

    print(f"package: {result.repo_dir}")
    print(f"skills_dir: {result.skills_dir}")
    _print_summary(result.report)
    print("Install complete." if result.report.ok else "Install finished with errors.")
    return 0 if result.report.ok else 1


def cmd_add(args: argparse.Namespace) -> int:
    cfg = _load_or_create_config(args)
    user_scope = _user_scope(args)
    source = resolve_source(user_scope, Path.cwd(), cfg.source)
    dest = create_skill(args.name, source, force=args.force)

    print(f"Skill '{args.name}' created at: {dest}")
    print(f"Edit {dest / MANIFEST_FILENAME} to add your skill content.")
    print(f"Run 'skillset sync{' --user' if user_scope else ''}' to load it to configured tools.")
    return 0


def cmd_remove(args: argparse.Namespace) -> int:
    name = validate_skill_name(args.name)
    cfg = _load_or_create_config(args)
    targets = resolve_targets(cfg, cwd=Path.cwd())
    if _user_scope(args):
        targets.append(Target(label="user store", path=user_store_dir()))

    found = [(t.label, t.path / name) for t in targets if (t.path / name).exists()]
    if not found:
        print(f"Skill '{name}' not found in any configured target.")
        return 0

    if not args.yes:
        labels = ", ".join(label for label, _ in found)
        answer = read_answer(f"Remove '{name}' from {labels}? [y/n] ")
        if parse_decision(answer) is not Decision.YES:
            print("Aborted.")
            return 0

    for label, path in found:
        try:
            remove_skill_dir(path)
        except OSError as e:
            raise SkillsetError(f"Failed to remove skill {name!r} from {label}: {path}") from e
        print(f"  Removed {name} from {label}")
    print("Remove complete.")
    return 0


def cmd_doc(args: argparse.Namespace) -> int:
    if args.agents_md:
        print(AGENTS_MD_SNIPPET)
    else:
        print("Use --agents-md to output the AGENTS.md snippet.")
    return 0


def cmd_config(args: argparse.Namespace) -> int:
    override = getattr(args, "config", None)
    if args.subcmd == "path":
        print(str(config_path(override)))
        return 0

    if args.subcmd == "show":
        cfg = load_config(override)
        payload = {
            "source": cfg.source,
            "targets": [{"label": t.label, "path": t.path} for t in cfg.targets],
            "install": {"use_ssh": cfg.install.use_ssh, "skill_dirs": list(cfg.install.skill_dirs)},
        }
        print(json.dumps(payload, indent=2, sort_keys=True))
        return 0

    if args.subcmd == "init":
        if config_exists(override) and not args.force:
            raise SkillsetError(f"Config already exists: {config_path(override)}. Use --force to replace it.")
        path = save_config(Config(), override)
        print(f"Saved: {path}")
        return 0

    raise AssertionError("unreachable")


def _print_error_chain(err: BaseException) -> None:
    print("error_details:", file=sys.stderr)
    cause = err.__cause__
    depth = 1
    while cause is not None:
        print(f"  cause[{depth}]: {type(cause).__name__}: {cause}", file=sys.stderr)
        cause = cause.__cause__
        depth += 1


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(logging.DEBUG if getattr(args, "verbose", False) else None)
    try:
        if args.cmd in ("list", "ls"):
            return cmd_list(args)
        if args.cmd == "sync":
            return cmd_sync(args)
        if args.cmd in ("install", "i"):
            return cmd_install(args)
        if args.cmd == "add":
            return cmd_add(args)
        if args.cmd in ("remove", "rm"):
            return cmd_remove(args)
        if args.cmd == "doc":
            return cmd_doc(args)
        if args.cmd == "config":
            return cmd_config(args)
        raise AssertionError("unreachable")
    except SkillsetError as e:
        print(f"error: {e}", file=sys.stderr)
        if getattr(args, "verbose_errors", False):
            _print_error_chain(e)
        return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
