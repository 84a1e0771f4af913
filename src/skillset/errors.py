from __future__ import annotations


class SkillsetError(RuntimeError):
    pass


class CopyError(SkillsetError):
    pass


class GitCommandError(SkillsetError):
    def __init__(self, reference: str, command: str, returncode: int | None = None) -> None:
        self.reference = reference
        self.command = command
        self.returncode = returncode
        super().__init__(str(self))

    def __str__(self) -> str:
        if self.returncode is None:
            return f"Failed to run git {self.command} for {self.reference}. Is git installed?"
        return f"git {self.command} failed for {self.reference} (exit status {self.returncode})"
