"""
Unit tests for the batch compiler.

Tests glob expansion and compiling every matched asset.
"""

from pathlib import Path

import pytest

from jit_library.batch import build_glob
from jit_library.batch import expand_globs
from jit_library.compiler import CompileOptions
from jit_library.freshness import ProtocolOptions


def quiet_options(**kwargs) -> ProtocolOptions:
    kwargs.setdefault("compile_options", CompileOptions(plugins=[]))
    return ProtocolOptions(**kwargs)


@pytest.mark.unit
class TestExpandGlobs:
    """Test pattern expansion."""

    def test_overlapping_patterns_are_deduplicated(self, assets_dir: Path) -> None:
        """Test a file matched twice is listed once."""
        paths = expand_globs([str(assets_dir / "*.vue"), str(assets_dir / "widgets.*")])

        assert paths.count(assets_dir / "widgets.vue") == 1

    def test_recursive_pattern(self, assets_dir: Path) -> None:
        """Test ** descends into subdirectories."""
        nested = assets_dir / "nested" / "deeper"
        nested.mkdir(parents=True)
        (nested / "more.scss").write_text(".more { color: blue; }")

        paths = expand_globs(str(assets_dir / "**" / "*.scss"))

        assert nested / "more.scss" in paths
        assert assets_dir / "doodahs.scss" in paths

    def test_directories_are_skipped(self, assets_dir: Path) -> None:
        """Test only regular files are returned."""
        (assets_dir / "folder.vue").mkdir()

        paths = expand_globs(str(assets_dir / "*.vue"))

        assert paths == [assets_dir / "widgets.vue"]

    def test_exclude_patterns(self, assets_dir: Path) -> None:
        """Test excludes match by file name or full path."""
        paths = expand_globs(str(assets_dir / "*"), exclude=["*.png", str(assets_dir / "app.*")])

        assert sorted(path.name for path in paths) == ["doodahs.scss", "widgets.vue"]


@pytest.mark.unit
class TestBuildGlob:
    """Test batch builds."""

    @pytest.mark.asyncio
    async def test_builds_every_handled_file(self, assets_dir: Path) -> None:
        """Test handled files are compiled beside their sources."""
        report = await build_glob(str(assets_dir / "*"), quiet_options())

        assert report.ok
        assert len(report.built) == 3
        assert report.skipped == [assets_dir / "logo.png"]
        assert (assets_dir / "widgets.compiled.js").exists()
        assert (assets_dir / "doodahs.compiled.css").exists()
        assert (assets_dir / "app.compiled.js").exists()

    @pytest.mark.asyncio
    async def test_second_run_is_cached(self, assets_dir: Path) -> None:
        """Test an unchanged tree compiles nothing the second time."""
        pattern = str(assets_dir / "*.vue")
        await build_glob(pattern, quiet_options())

        report = await build_glob(pattern, quiet_options())

        assert report.built == []
        assert len(report.cached) == 1

    @pytest.mark.asyncio
    async def test_rerun_skips_own_artifacts(self, assets_dir: Path) -> None:
        """Test `<name>.compiled.js` outputs matched by a *.js rerun are not compiled."""
        pattern = str(assets_dir / "*.js")
        await build_glob(pattern, quiet_options())

        report = await build_glob(pattern, quiet_options())

        assert report.built == []
        assert [session.source_path.name for session in report.cached] == ["app.js"]
        assert report.skipped == [assets_dir / "app.compiled.js"]
        assert not (assets_dir / "app.compiled.compiled.js").exists()

    @pytest.mark.asyncio
    async def test_failure_does_not_abort_others(self, assets_dir: Path) -> None:
        """Test one broken file is reported while the rest still build."""
        (assets_dir / "broken.scss").write_text(".broken { color: ")

        report = await build_glob(str(assets_dir / "*.scss"), quiet_options())

        assert not report.ok
        assert [session.source_path.name for session in report.failed] == ["broken.scss"]
        assert [session.source_path.name for session in report.built] == ["doodahs.scss"]

    @pytest.mark.asyncio
    async def test_custom_destination(self, assets_dir: Path, tmp_path: Path) -> None:
        """Test a dest resolver can place artifacts elsewhere."""
        out = tmp_path / "dist"
        options = quiet_options(dest=lambda path: out / Path(path).with_suffix(".css").name)

        report = await build_glob(str(assets_dir / "*.scss"), options)

        assert report.ok
        assert (out / "doodahs.css").read_text().count(".doodahs .thing {") == 1

    @pytest.mark.asyncio
    async def test_no_matches(self, tmp_path: Path) -> None:
        """Test an empty match set is a successful no-op."""
        report = await build_glob(str(tmp_path / "*.vue"), quiet_options())

        assert report.ok
        assert report.sessions == []
