"""
Tests for domain models — parsing and projections.
"""

import pytest

from dyst.core.models import (
    AssetStrategy,
    HostPlatform,
    InstallationPreferences,
    InstalledPackage,
    Release,
    ReleaseAsset,
    RenameMapping,
    RepositoryId,
)


class TestRepositoryId:
    def test_parse(self):
        repo = RepositoryId.parse("DISTREAT/projavu")
        assert (repo.author, repo.name) == ("DISTREAT", "projavu")
        assert str(repo) == "DISTREAT/projavu"

    @pytest.mark.parametrize("text", ["projavu", "a/b/c", "/b", "a/", "../x", "a/.."])
    def test_invalid(self, text):
        with pytest.raises(ValueError, match="author/name"):
            RepositoryId.parse(text)

    def test_hashable_and_equal(self):
        assert RepositoryId.parse("a/b") == RepositoryId(author="a", name="b")
        assert len({RepositoryId.parse("a/b"), RepositoryId.parse("a/b")}) == 1


class TestRenameMapping:
    def test_parse_and_serialize(self):
        mapping = RenameMapping.parse("binary-xyz/binary")
        assert mapping == RenameMapping(old="binary-xyz", new="binary")
        assert mapping.serialize() == "binary-xyz/binary"

    def test_apply(self):
        mapping = RenameMapping(old="binary-xyz", new="binary")
        assert mapping.apply("binary-xyz") == "binary"
        assert mapping.apply("binary-xyz-helper") == "binary-xyz-helper"

    @pytest.mark.parametrize("text", ["nothing", "a/b/c", "a/", "/b"])
    def test_invalid(self, text):
        with pytest.raises(ValueError, match="match/replace"):
            RenameMapping.parse(text)


class TestAssetStrategy:
    def test_automatic(self):
        assert AssetStrategy.automatic().is_automatic

    def test_pattern(self):
        strategy = AssetStrategy.pattern_filter(r"linux.*musl")
        assert not strategy.is_automatic
        assert strategy.pattern == r"linux.*musl"

    def test_invalid_regex(self):
        with pytest.raises(ValueError, match="illegal regex"):
            AssetStrategy.pattern_filter("([unclosed")


class TestHostPlatform:
    def test_detect_normalizes_arch(self, monkeypatch):
        monkeypatch.setattr("platform.system", lambda: "Windows")
        monkeypatch.setattr("platform.machine", lambda: "AMD64")
        host = HostPlatform.detect()
        assert host == HostPlatform(os="windows", arch="x86_64")

    def test_detect_arm_mac(self, monkeypatch):
        monkeypatch.setattr("platform.system", lambda: "Darwin")
        monkeypatch.setattr("platform.machine", lambda: "arm64")
        assert HostPlatform.detect() == HostPlatform(os="darwin", arch="aarch64")

    def test_x86_64_identifiers_include_amd64(self):
        assert HostPlatform(os="linux", arch="x86_64").identifiers == ["linux", "x86_64", "amd64"]

    def test_other_arch_identifiers(self):
        assert HostPlatform(os="linux", arch="aarch64").identifiers == ["linux", "aarch64"]


class TestInstalledPackage:
    def test_from_install_projects_preferences(self):
        prefs = InstallationPreferences(
            prereleases=True,
            tag="v1.0.0",
            asset_strategy=AssetStrategy.pattern_filter("musl"),
            rename=RenameMapping(old="a", new="b"),
            lock=True,
        )
        pkg = InstalledPackage.from_install(RepositoryId.parse("x/y"), "v1.0.0", prefs)
        assert pkg.tag == "v1.0.0"
        assert pkg.lock is True
        assert pkg.prereleases is True
        assert pkg.asset_strategy.pattern == "musl"
        assert pkg.rename == RenameMapping(old="a", new="b")

    def test_update_preferences_drop_pinned_tag(self):
        pkg = InstalledPackage(
            repository=RepositoryId.parse("x/y"),
            tag="v1.0.0",
            asset_strategy=AssetStrategy.pattern_filter("musl"),
            rename=RenameMapping(old="a", new="b"),
            prereleases=True,
        )
        prefs = pkg.update_preferences()
        assert prefs.tag is None
        assert prefs.prereleases is True
        assert prefs.asset_strategy.pattern == "musl"
        assert prefs.rename == RenameMapping(old="a", new="b")


class TestRelease:
    def test_asset_names_in_order(self):
        rel = Release(tag="v1", assets=[
            ReleaseAsset(name="b.zip", download_url="u1"),
            ReleaseAsset(name="a.zip", download_url="u2"),
        ])
        assert rel.asset_names == ["b.zip", "a.zip"]
