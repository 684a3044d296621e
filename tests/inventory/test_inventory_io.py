import json

import pytest

from sediment.inventory import (
    Artifact,
    Asset,
    Inventory,
    InventoryReadError,
    LicenseData,
    load_reference_inventory,
    read_inventory,
    write_inventory,
)


def _write(path, document):
    path.write_text(json.dumps(document))
    return path


def test_write_then_read_keeps_sheets_and_column_order(tmp_path):
    inventory = Inventory()
    inventory.artifacts.append(Artifact({"Id": "a.jar", "Checksum": "c1", "AID-x": "c"}))
    inventory.add_asset(Asset({"Asset Id": "AID-x", "Name": "x"}))
    inventory.license_data.append(LicenseData({"Canonical Name": "MIT License", "SPDX Id": "MIT"}))
    write_inventory(inventory, tmp_path / "out" / "inventory.json")

    document = json.loads((tmp_path / "out" / "inventory.json").read_text())
    assert document["Artifacts"] == [{"Id": "a.jar", "Checksum": "c1", "AID-x": "c"}]
    assert list(document["Artifacts"][0]) == ["Id", "Checksum", "AID-x"]
    assert document["Assets"] == [{"Asset Id": "AID-x", "Name": "x"}]
    assert document["Component Patterns"] == []

    loaded = read_inventory(tmp_path / "out" / "inventory.json")
    assert isinstance(loaded.artifacts[0], Artifact)
    assert loaded.artifacts[0].get("AID-x") == "c"
    assert loaded.find_license_data("mit license").spdx_id == "MIT"


def test_missing_sheets_are_empty(tmp_path):
    inventory = read_inventory(_write(tmp_path / "inv.json", {"Artifacts": [{"Id": "a"}]}))
    assert len(inventory.artifacts) == 1
    assert inventory.assets == []
    assert inventory.info == []


@pytest.mark.parametrize("content", ["not json", "[]", '{"Artifacts": {"Id": "a"}}'])
def test_unreadable_inventory(tmp_path, content):
    path = tmp_path / "inv.json"
    path.write_text(content)
    with pytest.raises(InventoryReadError):
        read_inventory(path)


def test_duplicate_asset_id_rejected():
    inventory = Inventory()
    inventory.add_asset(Asset({"Asset Id": "AID-1"}))
    with pytest.raises(ValueError):
        inventory.add_asset(Asset({"Asset Id": "AID-1", "Name": "other"}))
    with pytest.raises(ValueError):
        inventory.add_asset(Asset({"Name": "no id"}))


def test_find_by_id_and_checksum_needs_both():
    inventory = Inventory(artifacts=[Artifact({"Id": "A.jar", "Checksum": "ABC"})])
    assert inventory.find_artifact_by_id_and_checksum("a.jar ", "abc") is inventory.artifacts[0]
    assert inventory.find_artifact_by_id_and_checksum("a.jar", None) is None
    assert inventory.find_artifact_by_id_and_checksum("", "abc") is None


def test_reference_files_load_in_case_insensitive_order(tmp_path):
    reference_dir = tmp_path / "reference"
    reference_dir.mkdir()
    _write(
        reference_dir / "b.json",
        {"Artifacts": [{"Id": "x.jar", "Version": "1", "License": "from b"}]},
    )
    _write(
        reference_dir / "A.json",
        {
            "Artifacts": [{"Id": "x.jar", "Version": "1", "License": "from A"}],
            "Assets": [{"Asset Id": "AID-1", "Name": "from A"}],
        },
    )
    _write(
        reference_dir / "c.json",
        {
            "Artifacts": [{"Id": "y.jar", "Version": "2"}],
            "Assets": [{"Asset Id": "AID-1", "Name": "from c"}],
        },
    )
    reference = load_reference_inventory(reference_dir)
    assert [a.id for a in reference.artifacts] == ["x.jar", "y.jar"]
    assert reference.find_artifact("x.jar").get("License") == "from A"
    assert len(reference.assets) == 1
    assert reference.assets[0].get("Name") == "from A"


def test_reference_load_failure_is_raised(tmp_path):
    with pytest.raises(InventoryReadError):
        load_reference_inventory(tmp_path / "missing")
    (tmp_path / "broken.json").write_text("{")
    with pytest.raises(InventoryReadError):
        load_reference_inventory(tmp_path)
