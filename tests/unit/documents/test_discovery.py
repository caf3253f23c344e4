"""Input pattern resolution."""

import pytest

from frontmatter_schema.documents import discover_documents

pytestmark = pytest.mark.unit


@pytest.fixture
def tree(write_file, tmp_path):
    write_file("docs/b.md", "")
    write_file("docs/a.md", "")
    write_file("docs/nested/c.markdown", "")
    write_file("docs/nested/notes.txt", "")
    return tmp_path


def test_single_file(tree):
    assert discover_documents("docs/a.md", base_dir=tree) == [(tree / "docs/a.md").resolve()]


def test_directory_is_searched_recursively_for_markdown(tree):
    found = discover_documents("docs", base_dir=tree)

    assert [p.name for p in found] == ["a.md", "b.md", "c.markdown"]


def test_glob_pattern(tree):
    found = discover_documents("docs/**/*.md", base_dir=tree)

    assert [p.name for p in found] == ["a.md", "b.md"]


def test_glob_matches_non_markdown_when_asked(tree):
    found = discover_documents("docs/nested/*.txt", base_dir=tree)

    assert [p.name for p in found] == ["notes.txt"]


def test_absolute_pattern_ignores_base_dir(tree, tmp_path):
    found = discover_documents(str(tree / "docs" / "a.md"), base_dir=tmp_path / "cwd")

    assert len(found) == 1


def test_relative_pattern_defaults_to_working_directory(tree, monkeypatch):
    monkeypatch.chdir(tree)

    assert len(discover_documents("docs")) == 3


def test_no_match_is_empty(tree):
    assert discover_documents("missing/*.md", base_dir=tree) == []
