# Copyright 2023 Lawrence Livermore National Security, LLC
# See the top-level LICENSE file for details.
#
# SPDX-License-Identifier: MIT
import hashlib
import json
import os
import zipfile

import pytest

import sediment.plugin
from sediment.inventory import Artifact, ComponentPatternData, Inventory
from sediment.plugin.manager import get_plugin_manager
from sediment.scan import ScanEngine, ScanParam


def write(path, content):
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(content, bytes):
        path.write_bytes(content)
    else:
        path.write_text(content, encoding="utf-8")
    return path


def write_zip(path, members):
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w") as zf:
        for name, content in members.items():
            zf.writestr(name, content)
    return path


def md5(path):
    return hashlib.md5(path.read_bytes()).hexdigest()


@pytest.fixture(name="tree")
def fixture_tree(tmp_path):
    root = tmp_path / "root"
    write(root / "app" / "copy.txt", "same content")
    write(root / "other" / "copy.txt", "same content")
    write_zip(root / "app" / "lib" / "a.jar", {"inner.txt": "inside", "docs/README": "read me"})
    write(root / "broken.zip", b"PK\x03\x04" + b"\x00garbage" * 8)
    write(root / "web" / "package.json", json.dumps({"name": "web-app", "version": "1.0.0"}))
    write(root / "web" / "index.js", "console.log('hi')")
    os.symlink("app", root / "current")
    return root


def scan(root, scratch, **kwargs):
    reference = kwargs.pop("reference", None)
    param = ScanParam(**kwargs)
    return ScanEngine(param, reference=reference).scan(root, scratch)


def root_paths(inventory, artifact_id):
    artifacts = inventory.find_all_with_id(artifact_id)
    assert len(artifacts) == 1, f"expected one {artifact_id}, found {artifacts}"
    return set(artifacts[0].root_paths)


def test_duplicate_files_are_one_artifact(tree, tmp_path):
    inventory = scan(tree, tmp_path / "scratch")
    assert root_paths(inventory, "copy.txt") == {
        "app/copy.txt",
        "other/copy.txt",
        "current/copy.txt",
    }
    copy = inventory.find_artifact("copy.txt")
    assert copy.checksum == hashlib.md5(b"same content").hexdigest()
    assert copy.get("Hash (SHA-256)") == hashlib.sha256(b"same content").hexdigest()


def test_archives_are_unpacked(tree, tmp_path):
    scratch = tmp_path / "scratch"
    inventory = scan(tree, scratch)

    jar = inventory.find_artifact("a.jar")
    asset_id = f"AID-a.jar-{md5(tree / 'app' / 'lib' / 'a.jar')}"
    assert jar.get(asset_id) == "x"
    asset = inventory.find_asset(asset_id)
    assert asset.get("Type") == "Archive"
    assert asset.get("Path") == "app/lib/a.jar"

    inner = inventory.find_artifact("inner.txt")
    assert "app/lib/[a.jar]/inner.txt" in inner.root_paths
    assert inner.get(asset_id) == "c"
    assert inner.get("Asset Id Chain") == asset_id
    assert (scratch / "app" / "lib" / "[a.jar]" / "inner.txt").read_text() == "inside"
    assert "app/lib/[a.jar]/docs/README" in root_paths(inventory, "README")


def test_corrupt_archive_is_reported(tree, tmp_path):
    scratch = tmp_path / "scratch"
    inventory = scan(tree, scratch)
    broken = inventory.find_artifact("broken.zip")
    assert broken is not None
    assert any("Unable to unpack broken.zip" in error for error in broken.errors)
    assert not (scratch / "[broken.zip]").exists()
    assert all(not asset.asset_id.startswith("AID-broken.zip") for asset in inventory.assets)


def test_no_unpack(tree, tmp_path):
    inventory = scan(tree, tmp_path / "scratch", implicit_unpack=False)
    assert inventory.find_artifact("inner.txt") is None
    assert inventory.find_artifact("broken.zip").errors == []
    assert inventory.assets == []


def test_components_replace_covered_files(tree, tmp_path):
    inventory = scan(tree, tmp_path / "scratch")
    component = inventory.find_artifact("web-app-1.0.0")
    assert component is not None
    assert component.root_paths == ["web"]
    assert component.version == "1.0.0"
    assert component.checksum == md5(tree / "web" / "package.json")
    assert inventory.find_artifact("index.js") is None
    assert inventory.find_artifact("package.json") is None
    assert [cpd.component_part for cpd in inventory.component_patterns] == ["web-app-1.0.0"]


def test_component_detection_can_be_disabled(tree, tmp_path):
    inventory = scan(tree, tmp_path / "scratch", detect_component_patterns=False)
    assert inventory.find_artifact("web-app-1.0.0") is None
    assert root_paths(inventory, "index.js") == {"web/index.js"}


def test_embedded_components(tmp_path):
    root = tmp_path / "root"
    write_zip(
        root / "bundle.zip",
        {
            "pkg/package.json": json.dumps({"name": "embedded", "version": "2.0.0"}),
            "pkg/index.js": "",
        },
    )

    inventory = scan(root, tmp_path / "scratch1")
    component = inventory.find_artifact("embedded-2.0.0")
    assert component.root_paths == ["[bundle.zip]/pkg"]
    asset_id = f"AID-bundle.zip-{md5(root / 'bundle.zip')}"
    assert component.get(asset_id) == "c"

    inventory = scan(root, tmp_path / "scratch2", include_embedded=False)
    assert inventory.find_artifact("embedded-2.0.0") is None
    assert inventory.find_artifact("index.js") is not None


def test_collect_excludes(tree, tmp_path):
    inventory = scan(tree, tmp_path / "scratch", collect_excludes=["other/**"])
    assert root_paths(inventory, "copy.txt") == {"app/copy.txt", "current/copy.txt"}


def test_reference_inventory_identifies_files(tree, tmp_path):
    reference = Inventory(
        artifacts=[
            Artifact({"Id": "inner.txt", "Version": "3.1", "License": "MIT"}),
            Artifact({"Id": "*.zip", "Version": "*", "Comment": "archive"}),
        ]
    )
    inventory = scan(tree, tmp_path / "scratch", reference=reference)
    inner = inventory.find_artifact("inner.txt")
    assert inner.get("License") == "MIT"
    assert inner.version == "3.1"
    broken = inventory.find_artifact("broken.zip")
    assert broken.get("Comment") == "archive"
    assert broken.get("WILDCARD-MATCH") == "true"
    assert broken.version is None


def test_reference_component_patterns(tmp_path):
    root = tmp_path / "root"
    anchor = write(root / "vendor" / "zlib" / "zlib.h", "#define ZLIB_VERSION \"1.3\"")
    write(root / "vendor" / "zlib" / "inflate.c", "int inflate;")
    write(root / "vendor" / "zlib" / "build" / "inflate.o", "obj")
    write(root / "main.c", "int main;")

    cpd = ComponentPatternData(
        {
            "Version Anchor": "zlib.h",
            "Version Anchor Checksum": md5(anchor),
            "Component Part": "zlib-1.3",
            "Component Name": "zlib",
            "Component Version": "1.3",
            "Include Pattern": "**/*.c, **/*.h",
        }
    )
    inventory = scan(root, tmp_path / "scratch", reference=Inventory(component_patterns=[cpd]))

    component = inventory.find_artifact("zlib-1.3")
    assert component.root_paths == ["vendor/zlib"]
    assert inventory.find_artifact("inflate.c") is None
    assert inventory.find_artifact("zlib.h") is None
    assert root_paths(inventory, "inflate.o") == {"vendor/zlib/build/inflate.o"}
    assert root_paths(inventory, "main.c") == {"main.c"}


def test_worker_count_does_not_change_the_result(tree, tmp_path):
    def summary(inventory):
        return {(a.id, a.checksum, frozenset(a.root_paths)) for a in inventory.artifacts}

    single = scan(tree, tmp_path / "scratch1", workers=1)
    parallel = scan(tree, tmp_path / "scratch2", workers=8)
    assert summary(single) == summary(parallel)
    assert {a.asset_id for a in single.assets} == {a.asset_id for a in parallel.assets}


def test_scan_info(tree, tmp_path):
    inventory = scan(tree, tmp_path / "scratch")
    (info,) = inventory.info
    assert info.id == "scan"
    assert info.get("Artifacts") == str(len(inventory.artifacts))


def test_reserved_directory_names_are_skipped(tmp_path):
    root = tmp_path / "root"
    write(root / "[odd]" / "hidden.txt", "x")
    write(root / "visible.txt", "y")
    inventory = scan(root, tmp_path / "scratch")
    assert [a.id for a in inventory.artifacts] == ["visible.txt"]


def test_scratch_must_be_empty(tree, tmp_path):
    write(tmp_path / "scratch" / "leftover", "x")
    with pytest.raises(ValueError):
        scan(tree, tmp_path / "scratch")


def test_scratch_must_be_outside_root(tree):
    with pytest.raises(ValueError):
        scan(tree, tree / "scratch")


def test_root_must_be_a_directory(tmp_path):
    with pytest.raises(NotADirectoryError):
        scan(tmp_path / "missing", tmp_path / "scratch")


def test_invalid_worker_count():
    with pytest.raises(ValueError):
        ScanParam(workers=0)


class FailingContributor:
    @sediment.plugin.hookimpl
    def contribute_component(self, directory, relative_path):
        if relative_path == "web":
            raise RuntimeError("unreadable manifest")
        return None


def test_failing_contributor_does_not_stop_the_scan(tree, tmp_path):
    pm = get_plugin_manager()
    pm.register(FailingContributor())
    inventory = ScanEngine(ScanParam(), pm=pm).scan(tree, tmp_path / "scratch")

    assert inventory.find_artifact("copy.txt") is not None
    assert inventory.find_artifact("web-app-1.0.0") is None
    assert inventory.find_artifact("package.json") is not None
    errors = inventory.info[0].get_list(Artifact.ERRORS, "; ")
    assert errors == ["Component detection failed in web: RuntimeError: unreadable manifest"]
