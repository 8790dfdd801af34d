"""Tests for protected file glob matching"""

import pytest
from pydantic import ValidationError

from repogate.core.authorization.patterns import (find_protected_files,
                                                  match_path, matches_any,
                                                  validate_pattern)
from repogate.core.models import ProtectedBranchRule


class TestMatchPath:
    """Test single pattern matching"""

    @pytest.mark.parametrize("pattern,path,expected", [
        ("*.lock", "poetry.lock", True),
        ("*.lock", "sub/poetry.lock", False),
        ("**/*.lock", "sub/dir/poetry.lock", True),
        ("**/*.lock", "poetry.lock", True),
        ("docs/**", "docs/a/b.md", True),
        ("docs/**", "src/docs/a.md", False),
        ("src/?.py", "src/a.py", True),
        ("src/?.py", "src/ab.py", False),
        ("src/?.py", "src//.py", False),
        ("[ab].txt", "a.txt", True),
        ("[!ab].txt", "c.txt", True),
        ("[!ab].txt", "a.txt", False),
        ("*.{yml,yaml}", "ci.yaml", True),
        ("*.{yml,yaml}", "ci.json", False),
        ("config/*", "config/app.ini", True),
        ("config/*", "config/nested/app.ini", False),
    ])
    def test_glob_semantics(self, pattern, path, expected):
        assert match_path(pattern, path) is expected

    def test_case_sensitive(self):
        assert match_path("README.md", "README.md")
        assert not match_path("README.md", "readme.md")

    def test_leading_slash_is_ignored(self):
        assert match_path("docs/*.md", "/docs/index.md")

    def test_special_characters_are_literal(self):
        assert match_path("a+b(1).txt", "a+b(1).txt")
        assert not match_path("a.b", "axb")

    def test_matches_any(self):
        assert matches_any(["*.md", "*.lock"], "yarn.lock")
        assert not matches_any([], "yarn.lock")


class TestFindProtectedFiles:
    """Test protected/unprotected pattern combination"""

    def test_unprotected_patterns_carve_out(self):
        changed = ["deploy/prod.yml", "deploy/README.md", "src/app.py"]

        assert find_protected_files(changed, ["deploy/**"], ["**/*.md"]) == ["deploy/prod.yml"]

    def test_no_protected_patterns(self):
        assert find_protected_files(["a.txt"], [], ["*.txt"]) == []

    def test_order_is_preserved(self):
        changed = ["b.lock", "a.lock"]
        assert find_protected_files(changed, ["*.lock"]) == ["b.lock", "a.lock"]


class TestValidatePattern:
    """Patterns are compiled when a rule is built"""

    @pytest.mark.parametrize("pattern", ["*.lock", "docs/**", "[!ab].txt", "*.{yml,yaml}"])
    def test_valid_patterns_are_returned(self, pattern):
        assert validate_pattern(pattern) == pattern

    def test_translation_errors_become_value_errors(self, monkeypatch):
        monkeypatch.setattr(
            "repogate.core.authorization.patterns.glob.translate",
            lambda pattern, flags: (["[z-a]"], []),
        )

        with pytest.raises(ValueError, match="Invalid file pattern"):
            validate_pattern("[z-a]")

    def test_rule_rejects_uncompilable_patterns(self, monkeypatch):
        monkeypatch.setattr(
            "repogate.core.authorization.patterns.glob.translate",
            lambda pattern, flags: (["(" if pattern == "bad" else ".*"], []),
        )

        with pytest.raises(ValidationError):
            ProtectedBranchRule(repo_id=1, branch_name="main", protected_file_patterns="ok;bad")
