from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from .errors import CopyError, SkillsetError
from .local_skills import copy_skill, discover_skills, validate_skill_name
from .overwrite import Action, OverwriteArbiter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Target:
    label: str
    path: Path


@dataclass(frozen=True)
class SyncOutcome:
    skill: str
    label: str
    path: Path
    action: Action
    error: str | None = None


@dataclass
class SyncReport:
    source: Path
    skills: list[str] = field(default_factory=list)
    outcomes: list[SyncOutcome] = field(default_factory=list)

    def _with_action(self, action: Action) -> list[SyncOutcome]:
        return [o for o in self.outcomes if o.action is action]

    @property
    def copied(self) -> list[SyncOutcome]:
        return self._with_action(Action.COPIED)

    @property
    def overwrote(self) -> list[SyncOutcome]:
        return self._with_action(Action.OVERWROTE)

    @property
    def skipped(self) -> list[SyncOutcome]:
        return self._with_action(Action.SKIPPED)

    @property
    def failed(self) -> list[SyncOutcome]:
        return self._with_action(Action.FAILED)

    @property
    def ok(self) -> bool:
        return not self.failed


class SyncObserver(Protocol):
    def on_start(self, skills: list[str]) -> None:
        ...

    def on_outcome(self, outcome: SyncOutcome) -> None:
        ...


def select_skills(available: Sequence[str], only: Iterable[str] | None) -> list[str]:
    if only is None:
        return list(available)
    wanted: set[str] = set()
    for name in only:
        validate_skill_name(name)
        if name not in available:
            listing = ", ".join(available) if available else "<none>"
            raise SkillsetError(f"Skill {name!r} not found. Available skills: {listing}")
        wanted.add(name)
    if not wanted:
        raise SkillsetError("No skills selected: the skill filter is empty.")
    return sorted(wanted)


def _sync_one(skill_src: Path, skill: str, target: Target, arbiter: OverwriteArbiter) -> SyncOutcome:
    dest = target.path / skill
    action = Action.COPIED
    if dest.exists() or dest.is_symlink():
        action = arbiter.arbitrate(skill, target.label)
        if action is Action.SKIPPED:
            return SyncOutcome(skill=skill, label=target.label, path=dest, action=action)

    try:
        copy_skill(skill_src, dest)
    except (CopyError, OSError) as e:
        logger.warning("Failed to sync %s to %s: %s", skill, target.label, e)
        return SyncOutcome(skill=skill, label=target.label, path=dest, action=Action.FAILED, error=str(e))
    return SyncOutcome(skill=skill, label=target.label, path=dest, action=action)


def sync_skills(
    source: Path,
    targets: Sequence[Target],
    *,
    arbiter: OverwriteArbiter,
    only: Iterable[str] | None = None,
    observer: SyncObserver | None = None,
) -> SyncReport:
    skills = select_skills(discover_skills(source), only)
    report = SyncReport(source=source, skills=skills)

    if not skills:
        logger.info("Nothing to sync: no skills found in %s", source)
        return report

    for target in targets:
        try:
            target.path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise SkillsetError(f"Failed to create target directory for {target.label}: {target.path}") from e

    if observer is not None:
        observer.on_start(list(skills))

    # Skill-major, target-minor: prompts and progress follow this order.
    for skill in skills:
        skill_src = source / skill
        for target in targets:
            outcome = _sync_one(skill_src, skill, target, arbiter)
            report.outcomes.append(outcome)
            if observer is not None:
                observer.on_outcome(outcome)

    logger.info(
        "Synced %d skill(s) from %s: %d copied, %d overwrote, %d skipped, %d failed",
        len(skills),
        source,
        len(report.copied),
        len(report.overwrote),
        len(report.skipped),
        len(report.failed),
    )
    return report
