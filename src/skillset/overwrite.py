"""Overwrite decisions for destination items that already exist."""

from __future__ import annotations

import enum
import logging
import sys
from typing import Protocol, TextIO

logger = logging.getLogger(__name__)


class OverwritePolicy(enum.Enum):
    PER_ITEM = "per-item"
    ALL = "all"


class Decision(enum.Enum):
    YES = "yes"
    ALL = "all"
    NO = "no"


class Action(str, enum.Enum):
    COPIED = "copied"
    OVERWROTE = "overwrote"
    SKIPPED = "skipped"
    FAILED = "failed"


def parse_decision(text: str | None) -> Decision:
    answer = (text or "").strip().lower()
    if answer in ("y", "yes"):
        return Decision.YES
    if answer in ("a", "all"):
        return Decision.ALL
    return Decision.NO


def read_answer(prompt: str, *, stdin: TextIO | None = None, stdout: TextIO | None = None) -> str:
    out = stdout or sys.stdout
    inp = stdin or sys.stdin
    out.write(prompt)
    out.flush()
    line = inp.readline()
    # EOF reads as an empty answer.
    return line.strip()


class DecisionSource(Protocol):
    def decide(self, item: str, label: str) -> Decision:
        ...


class InteractiveDecisionSource:
    def __init__(self, *, stdin: TextIO | None = None, stdout: TextIO | None = None) -> None:
        self._stdin = stdin
        self._stdout = stdout

    def decide(self, item: str, label: str) -> Decision:
        prompt = f"  Skill '{item}' already exists at {label}. Overwrite? [y/n/all] "
        return parse_decision(read_answer(prompt, stdin=self._stdin, stdout=self._stdout))


class ConstantDecisionSource:
    def __init__(self, decision: Decision) -> None:
        self.decision = decision

    def decide(self, item: str, label: str) -> Decision:
        return self.decision


class OverwriteArbiter:
    """Per-run overwrite state.

    Starts in ``PER_ITEM`` and asks the decision source for every conflict;
    an ``all`` answer switches it to ``ALL`` for the rest of the run.
    """

    def __init__(self, source: DecisionSource, *, policy: OverwritePolicy = OverwritePolicy.PER_ITEM) -> None:
        self.source = source
        self.policy = policy

    @classmethod
    def non_interactive(cls) -> "OverwriteArbiter":
        return cls(ConstantDecisionSource(Decision.ALL), policy=OverwritePolicy.ALL)

    @classmethod
    def interactive(cls, *, stdin: TextIO | None = None, stdout: TextIO | None = None) -> "OverwriteArbiter":
        return cls(InteractiveDecisionSource(stdin=stdin, stdout=stdout))

    def arbitrate(self, item: str, label: str) -> Action:
        if self.policy is OverwritePolicy.ALL:
            return Action.OVERWROTE

        decision = self.source.decide(item, label)
        if decision is Decision.ALL:
            logger.debug("Overwrite policy raised to 'all' at %s/%s", label, item)
            self.policy = OverwritePolicy.ALL
            return Action.OVERWROTE
        if decision is Decision.YES:
            return Action.OVERWROTE
        return Action.SKIPPED
