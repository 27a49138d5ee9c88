from __future__ import annotations

import shutil
from pathlib import Path

import pytest  # type: ignore[import]

if shutil.which("git") is None:
    pytest.skip("git executable not available", allow_module_level=True)

from git import Actor, Repo  # type: ignore[import]  # noqa: E402

from layered_review.errors import ConfigurationError, DiffFetchError  # noqa: E402
from layered_review.integrations import GitDiffFetcher  # noqa: E402
from layered_review.models import ChangeContext  # noqa: E402

AUTHOR = Actor("Test User", "test@example.com")


@pytest.fixture()
def repo(tmp_path: Path) -> Repo:
    repo = Repo.init(tmp_path)
    app = tmp_path / "app.ts"

    app.write_text("const a = 1;\n")
    repo.index.add(["app.ts"])
    repo.index.commit("first", author=AUTHOR, committer=AUTHOR)

    app.write_text("const a = 1;\ndebugger;\n")
    repo.index.add(["app.ts"])
    repo.index.commit("second", author=AUTHOR, committer=AUTHOR)
    return repo


def _change(repo: Repo, **kwargs) -> ChangeContext:
    return ChangeContext(owner="local", repo="app", number=1, head_sha=repo.head.commit.hexsha, **kwargs)


@pytest.mark.asyncio
async def test_incremental_diff(repo: Repo) -> None:
    fetcher = GitDiffFetcher(repo.working_tree_dir)
    previous = repo.head.commit.parents[0].hexsha

    raw = await fetcher.fetch_diff(_change(repo, previous_sha=previous))

    assert "diff --git a/app.ts b/app.ts" in raw
    assert "+debugger;" in raw


@pytest.mark.asyncio
async def test_base_ref_diff(repo: Repo) -> None:
    fetcher = GitDiffFetcher(repo.working_tree_dir)
    change = _change(repo, base_ref=repo.head.commit.parents[0].hexsha)

    assert fetcher.build_rev_range(change).endswith(f"...{change.head_sha}")
    assert "+debugger;" in await fetcher.fetch_diff(change)


@pytest.mark.asyncio
async def test_default_base_ref(repo: Repo) -> None:
    fetcher = GitDiffFetcher(repo.working_tree_dir)
    change = _change(repo)

    assert fetcher.build_rev_range(change) == f"HEAD~1...{change.head_sha}"
    assert "+debugger;" in await fetcher.fetch_diff(change)


@pytest.mark.asyncio
async def test_unknown_revision_raises(repo: Repo) -> None:
    fetcher = GitDiffFetcher(repo.working_tree_dir)

    with pytest.raises(DiffFetchError) as excinfo:
        await fetcher.fetch_diff(_change(repo, previous_sha="0" * 40))

    assert excinfo.value.code == "GIT"
    assert not excinfo.value.retryable


def test_missing_path_is_a_configuration_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError):
        GitDiffFetcher(tmp_path / "missing")
