from __future__ import annotations

import shutil
from pathlib import Path

from .errors import SkillsetError
from .local_skills import MANIFEST_FILENAME, validate_skill_name

README_FILENAME = "README.md"

AGENTS_MD_SNIPPET = """\
## Skills (skillset)

- **Where to store generated skills:** Put new skills under **`.skillset/skills/<name>/`** (workspace) or **`~/.skillset/skills/<name>/`** (user-level). Each skill is a directory containing at least **`SKILL.md`**.
- **Scaffold a new skill:** Run **`skillset add <name>`** to create `.skillset/skills/<name>/` with a template `SKILL.md` (use **`--user`** for user-level). Then edit `SKILL.md` with the skill content.
- **After adding or updating skills:** Run **`skillset sync`** (workspace) or **`skillset sync --user`** (user-level) to load skills to the configured tools (e.g. Cursor, Claude)."""


def _title(name: str) -> str:
    return name.replace("-", " ").replace("_", " ")


def skill_template(name: str) -> str:
    return f"""---
name: {name}
description: A brief description of what this skill does.
---

# {_title(name).upper()}

## When to use

Apply this skill when:

- The user asks for help with [specific task/area]
- You need to [perform specific action]
- The context involves [domain or framework]

## Instructions

1. First step or condition
2. Second step
3. Continue as needed

## Workflow

### 1. Setup

- Initial setup steps here
- Check for required resources

### 2. Execution

- Step-by-step process
- Handle edge cases

### 3. Verification

- How to verify the result
- Common issues and solutions

## Edge cases

- **Case 1:** Description and solution
- **Case 2:** Description and solution
"""


def readme_template(name: str) -> str:
    return (
        f"# {name} Skill\n\n"
        f"A skill for {_title(name).lower()}\n\n"
        "## Usage\n\n"
        "Run `skillset sync` to load this skill to your configured tools.\n"
    )


def create_skill(name: str, source_dir: Path, *, force: bool = False) -> Path:
    validate_skill_name(name)
    dest = source_dir / name

    if dest.exists():
        if not force:
            raise SkillsetError(f"Skill {name!r} already exists at {dest}. Use --force to overwrite.")
        shutil.rmtree(dest)

    try:
        dest.mkdir(parents=True)
        (dest / MANIFEST_FILENAME).write_text(skill_template(name), encoding="utf-8")
        (dest / README_FILENAME).write_text(readme_template(name), encoding="utf-8")
    except OSError as e:
        raise SkillsetError(f"Failed to create skill directory: {dest}") from e
    return dest
