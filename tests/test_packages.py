import tempfile
import unittest
from pathlib import Path

from skillset.errors import GitCommandError, SkillsetError
from skillset.overwrite import Action, OverwriteArbiter
from skillset.packages import (
    PackageResolver,
    cache_key,
    find_skills_subdir,
    install_package,
    is_direct_url,
    parse_package_ref,
    url_cache_key,
)


def _make_skill(root: Path, name: str, body: str = "") -> Path:
    skill_dir = root / name
    skill_dir.mkdir(parents=True, exist_ok=True)
    (skill_dir / "SKILL.md").write_text(body or f"# {name}\n", encoding="utf-8")
    return skill_dir


class FakeGit:
    """Stands in for the git executable; ``clone`` lays out ``layout`` skills."""

    def __init__(self, *, layout: dict[str, list[str]] | None = None, returncode: int = 0) -> None:
        self.layout = layout or {"skills": ["alpha", "beta"]}
        self.returncode = returncode
        self.calls: list[list[str]] = []

    def __call__(self, args) -> int:
        args = list(args)
        self.calls.append(args)
        if args[0] == "clone":
            dest = Path(args[-1])
            dest.mkdir(parents=True)
            (dest / ".git").mkdir()
            if self.returncode == 0:
                for rel, names in self.layout.items():
                    (dest / rel).mkdir(parents=True, exist_ok=True)
                    for name in names:
                        _make_skill(dest / rel, name)
        return self.returncode


class MissingGit:
    def __call__(self, args) -> int:
        raise FileNotFoundError("git")


class TestPackageRefs(unittest.TestCase):
    def test_owner_repo_cache_key(self) -> None:
        self.assertEqual(cache_key("a/b"), "a-b")

    def test_owner_repo_urls(self) -> None:
        ref = parse_package_ref("anthropics/skills")
        self.assertEqual(ref.url, "https://github.com/anthropics/skills.git")
        self.assertEqual((ref.owner, ref.repo), ("anthropics", "skills"))
        self.assertFalse(ref.is_direct_url)

        ssh = parse_package_ref("anthropics/skills", use_ssh=True)
        self.assertEqual(ssh.url, "git@github.com:anthropics/skills.git")
        self.assertEqual(ssh.cache_key, "anthropics-skills")

    def test_direct_url_detection(self) -> None:
        for value in (
            "https://github.com/a/b.git",
            "http://example.com/repo",
            "ssh://git@example.com/a/b.git",
            "git@github.com:a/b.git",
        ):
            self.assertTrue(is_direct_url(value), value)
        self.assertFalse(is_direct_url("a/b"))

    def test_url_keys_are_stable_and_distinct(self) -> None:
        url1 = "https://github.com/a/b.git"
        url2 = "https://gitlab.com/a/b.git"
        self.assertEqual(cache_key(url1), cache_key(url1))
        self.assertNotEqual(cache_key(url1), cache_key(url2))
        self.assertEqual(len(cache_key(url1)), 16)
        self.assertEqual(cache_key(url1), url_cache_key(url1))

    def test_direct_url_ignores_use_ssh(self) -> None:
        url = "https://github.com/a/b.git"
        self.assertEqual(parse_package_ref(url, use_ssh=True).url, url)

    def test_invalid_specs(self) -> None:
        for value in ("", "just-a-name", "a/b/c", "/b", "a/", " / "):
            with self.assertRaises(SkillsetError, msg=value) as ctx:
                parse_package_ref(value)
            self.assertIn("Invalid package spec", str(ctx.exception))


class TestPackageResolver(unittest.TestCase):
    def test_clones_on_first_resolution(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            git = FakeGit()
            resolver = PackageResolver(Path(td) / "repos", git=git)

            path = resolver.resolve("owner/repo")

            self.assertEqual(path, Path(td) / "repos" / "owner-repo")
            self.assertTrue((path / "skills" / "alpha" / "SKILL.md").is_file())
            self.assertEqual(git.calls[0][:4], ["clone", "--depth", "1", "https://github.com/owner/repo.git"])
            self.assertEqual(sorted(p.name for p in (Path(td) / "repos").iterdir()), ["owner-repo"])

    def test_reuses_cache_without_refresh(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            git = FakeGit()
            resolver = PackageResolver(Path(td) / "repos", git=git)
            first = resolver.resolve("owner/repo")
            second = resolver.resolve("owner/repo")
            self.assertEqual(first, second)
            self.assertEqual(len(git.calls), 1)

    def test_refresh_pulls_in_place(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            git = FakeGit()
            resolver = PackageResolver(Path(td) / "repos", git=git)
            path = resolver.resolve("owner/repo")
            resolver.resolve("owner/repo", refresh=True)
            self.assertEqual(git.calls[1], ["-C", str(path), "pull", "--ff-only"])

    def test_refresh_failure_is_fatal(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            git = FakeGit()
            resolver = PackageResolver(Path(td) / "repos", git=git)
            resolver.resolve("owner/repo")
            git.returncode = 1
            with self.assertRaises(GitCommandError) as ctx:
                resolver.resolve("owner/repo", refresh=True)
            self.assertIn("owner/repo", str(ctx.exception))
            self.assertEqual(ctx.exception.command, "pull")

    def test_clone_failure_leaves_no_cache_entry(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            cache = Path(td) / "repos"
            git = FakeGit(returncode=128)
            resolver = PackageResolver(cache, git=git)

            with self.assertRaises(GitCommandError) as ctx:
                resolver.resolve("owner/missing-repo")

            self.assertIn("owner/missing-repo", str(ctx.exception))
            self.assertEqual(ctx.exception.returncode, 128)
            self.assertEqual(list(cache.iterdir()), [])

            git.returncode = 0
            resolver.resolve("owner/missing-repo")
            self.assertEqual([c[0] for c in git.calls], ["clone", "clone"])

    def test_missing_git_executable(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            resolver = PackageResolver(Path(td) / "repos", git=MissingGit())
            with self.assertRaises(GitCommandError) as ctx:
                resolver.resolve("owner/repo")
            self.assertIn("Is git installed?", str(ctx.exception))

    def test_url_reference_uses_hashed_entry(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            url = "https://example.com/team/skills.git"
            git = FakeGit()
            resolver = PackageResolver(Path(td) / "repos", git=git)
            path = resolver.resolve(url)
            self.assertEqual(path.name, url_cache_key(url))
            self.assertIn(url, git.calls[0])


class TestFindSkillsSubdir(unittest.TestCase):
    def test_first_existing_candidate_wins(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            root = Path(td)
            _make_skill(root / ".claude" / "skills", "alpha")
            _make_skill(root / "skills", "beta")
            self.assertEqual(find_skills_subdir(root), root / ".claude" / "skills")

    def test_falls_through_missing_candidates(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            root = Path(td)
            _make_skill(root / "skills", "beta")
            self.assertEqual(find_skills_subdir(root, ["x/skills", "skills"]), root / "skills")

    def test_existing_but_empty_candidate_is_an_error(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            root = Path(td)
            (root / "skills").mkdir()
            _make_skill(root / "later", "gamma")
            with self.assertRaises(SkillsetError) as ctx:
                find_skills_subdir(root, ["x/skills", "skills", "later"])
            self.assertEqual(str(ctx.exception), "skills exists but contains no skills")

    def test_no_candidate_lists_what_was_checked(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            with self.assertRaises(SkillsetError) as ctx:
                find_skills_subdir(Path(td), ["x/skills", "skills"])
            self.assertIn("checked x/skills, skills", str(ctx.exception))


class TestInstallPackage(unittest.TestCase):
    def test_installs_to_workspace_and_user_store(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            resolver = PackageResolver(Path(td) / "repos", git=FakeGit())
            workspace = Path(td) / "ws"
            user = Path(td) / "user"

            result = install_package(
                "owner/repo",
                resolver=resolver,
                arbiter=OverwriteArbiter.non_interactive(),
                workspace_dir=workspace,
                user_dir=user,
            )

            self.assertEqual(result.report.skills, ["alpha", "beta"])
            self.assertEqual(
                [(o.skill, o.label) for o in result.report.copied],
                [("alpha", "workspace"), ("alpha", "user store"), ("beta", "workspace"), ("beta", "user store")],
            )
            self.assertEqual(result.skills_dir, result.repo_dir / "skills")
            self.assertTrue((user / "beta" / "SKILL.md").is_file())

    def test_skill_filter_installs_one(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            resolver = PackageResolver(Path(td) / "repos", git=FakeGit())
            workspace = Path(td) / "ws"

            result = install_package(
                "owner/repo",
                resolver=resolver,
                arbiter=OverwriteArbiter.non_interactive(),
                workspace_dir=workspace,
                skill="beta",
            )

            self.assertEqual(result.report.skills, ["beta"])
            self.assertFalse((workspace / "alpha").exists())
            self.assertEqual([o.action for o in result.report.outcomes], [Action.COPIED])

    def test_unknown_skill_filter_names_available_skills(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            resolver = PackageResolver(Path(td) / "repos", git=FakeGit())
            workspace = Path(td) / "ws"
            with self.assertRaises(SkillsetError) as ctx:
                install_package(
                    "owner/repo",
                    resolver=resolver,
                    arbiter=OverwriteArbiter.non_interactive(),
                    workspace_dir=workspace,
                    skill="gamma",
                )
            self.assertIn("Available skills: alpha, beta", str(ctx.exception))
            self.assertFalse(workspace.exists())

    def test_validation_happens_before_cloning(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            git = FakeGit()
            resolver = PackageResolver(Path(td) / "repos", git=git)
            with self.assertRaises(SkillsetError):
                install_package("owner/repo", resolver=resolver, arbiter=OverwriteArbiter.non_interactive())
            with self.assertRaises(SkillsetError):
                install_package(
                    "owner/repo",
                    resolver=resolver,
                    arbiter=OverwriteArbiter.non_interactive(),
                    workspace_dir=Path(td) / "ws",
                    skill="not valid",
                )
            with self.assertRaises(SkillsetError):
                install_package("not-a-spec", resolver=resolver, arbiter=OverwriteArbiter.non_interactive(), workspace_dir=Path(td))
            self.assertEqual(git.calls, [])

    def test_custom_candidate_dirs(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            git = FakeGit(layout={"packs/skills": ["delta"]})
            resolver = PackageResolver(Path(td) / "repos", git=git)
            result = install_package(
                "owner/repo",
                resolver=resolver,
                arbiter=OverwriteArbiter.non_interactive(),
                workspace_dir=Path(td) / "ws",
                candidate_dirs=["packs/skills"],
            )
            self.assertEqual(result.report.skills, ["delta"])


if __name__ == "__main__":
    unittest.main()
