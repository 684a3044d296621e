import pytest

from sediment.inventory import Artifact, Asset, Inventory, LicenseData
from sediment.merge import MergeConfigError, MergeEngine


def _inventory(*artifacts, assets=(), licenses=()):
    return Inventory(
        artifacts=[Artifact(a) for a in artifacts],
        assets=[Asset(a) for a in assets],
        license_data=[LicenseData(ld) for ld in licenses],
    )


@pytest.fixture(name="engine")
def fixture_engine():
    return MergeEngine(
        excluded_attributes=[
            "Verified",
            "Archive Path",
            "Latest Version",
            "Security Relevance",
            "Security Category",
            "WILDCARD-MATCH",
        ],
        merge_attributes=["Root Paths", "Source Project"],
    )


def test_empty_source_list_leaves_target_unchanged(engine):
    target = _inventory({"Id": "a.jar", "Verified": "true"})
    before = target.artifacts[0]
    engine.merge_inventories([], target)
    assert target.artifacts == [before]
    assert before.get("Verified") == "true"


def test_single_artifact_into_empty_target(engine):
    target = Inventory()
    engine.merge_inventories([_inventory({"Id": "a.jar", "Checksum": "c1"})], target)
    assert len(target.artifacts) == 1
    assert target.artifacts[0].attributes() == {"Id": "a.jar", "Checksum": "c1"}


def test_identical_representation_unions_root_paths(engine):
    first = _inventory({"Id": "a.jar", "Checksum": "c1", "Root Paths": "layer1/a.jar"})
    second = _inventory({"Id": "a.jar", "Checksum": "c1", "Root Paths": "layer2/a.jar"})
    target = Inventory()
    engine.merge_inventories([first, second], target)
    assert len(target.artifacts) == 1
    assert target.artifacts[0].root_paths == ["layer1/a.jar", "layer2/a.jar"]


def test_duplicates_without_checksum_are_collapsed(engine):
    first = _inventory({"Id": "a.jar", "Version": "1.0", "Root Paths": "x/a.jar"})
    second = _inventory(
        {"Id": "a.jar", "Version": "1.0", "Root Paths": "y/a.jar", "Source Project": "img2"}
    )
    target = Inventory()
    engine.merge_inventories([first, second], target)
    assert len(target.artifacts) == 1
    merged = target.artifacts[0]
    assert merged.root_paths == ["x/a.jar", "y/a.jar"]
    assert merged.get("Source Project") == "img2"


def test_merge_is_idempotent(engine):
    sources = [
        _inventory(
            {"Id": "a.jar", "Root Paths": "x/a.jar"},
            {"Id": "b.jar", "Checksum": "c2", "Root Paths": "x/b.jar"},
            assets=[{"Asset Id": "AID-1"}],
            licenses=[{"Canonical Name": "MIT License"}],
        ),
        _inventory(
            {"Id": "a.jar", "Root Paths": "y/a.jar"},
            assets=[{"Asset Id": "AID-2"}],
        ),
    ]
    target = Inventory()
    engine.merge_inventories(sources, target)
    snapshot = [a.attributes() for a in target.artifacts]
    counts = (len(target.artifacts), len(target.assets), len(target.license_data))

    engine.merge_inventories(sources, target)
    assert (len(target.artifacts), len(target.assets), len(target.license_data)) == counts
    assert [a.attributes() for a in target.artifacts] == snapshot
    assert target.find_artifact("a.jar").root_paths == ["x/a.jar", "y/a.jar"]


def test_first_occurrence_is_retained(engine):
    target = _inventory(
        {"Id": "a.jar", "Version": "1.0", "Root Paths": "first"},
        {"Id": "a.jar", "Version": "1.0", "Root Paths": "second", "Verified": "true"},
    )
    first = target.artifacts[0]
    engine.merge_inventories([Inventory()], target)
    assert len(target.artifacts) == 1
    assert target.artifacts[0].get("Root Paths") == "first, second"
    # merge works on copies; the original objects are not modified
    assert first.get("Root Paths") == "first"


def test_excluded_attributes_are_cleared(engine):
    target = _inventory({"Id": "a.jar", "Verified": "true", "WILDCARD-MATCH": "true", "License": "MIT"})
    engine.merge_inventories([Inventory()], target)
    assert target.artifacts[0].attributes() == {"Id": "a.jar", "License": "MIT"}


def test_different_attributes_are_not_duplicates(engine):
    target = Inventory()
    engine.merge_inventories(
        [_inventory({"Id": "a.jar", "License": "MIT"}), _inventory({"Id": "a.jar", "License": "BSD"})],
        target,
    )
    assert [a.get("License") for a in target.artifacts] == ["MIT", "BSD"]


def test_checksum_backfill(engine):
    target = _inventory({"Id": "a.jar", "Root Paths": "lib/a.jar"})
    source = _inventory(
        {"Id": "a.jar", "Checksum": "other", "Root Paths": "unrelated/a.jar"},
        {"Id": "a.jar", "Checksum": "c1", "Root Paths": "app/lib/a.jar"},
    )
    engine.merge_inventories([source], target)
    assert target.artifacts[0].checksum == "c1"


def test_checksum_backfill_takes_the_last_match(engine):
    target = _inventory({"Id": "a.jar", "Root Paths": "lib/a.jar"})
    source = _inventory(
        {"Id": "a.jar", "Checksum": "c1", "Root Paths": "app/lib/a.jar"},
        {"Id": "a.jar", "Checksum": "c2", "Root Paths": "web/lib/a.jar"},
        {"Id": "a.jar", "Root Paths": "opt/lib/a.jar"},
    )
    engine.merge_inventories([source], target)
    assert target.find_artifact_by_id_and_checksum("a.jar", "c2") is not None
    assert target.artifacts[0].checksum == "c2"


def test_checksum_backfill_never_overwrites(engine):
    target = _inventory({"Id": "a.jar", "Checksum": "mine", "Root Paths": "lib/a.jar"})
    source = _inventory({"Id": "a.jar", "Checksum": "theirs", "Root Paths": "lib/a.jar"})
    engine.merge_inventories([source], target)
    assert [a.checksum for a in target.artifacts] == ["mine", "theirs"]


def test_assets_are_never_overwritten(engine):
    target = _inventory(assets=[{"Asset Id": "AID-1", "Name": "original"}])
    source = _inventory(
        assets=[{"Asset Id": "AID-1", "Name": "replacement"}, {"Asset Id": "AID-2", "Name": "new"}]
    )
    engine.merge_inventories([source], target)
    assert [(a.asset_id, a.get("Name")) for a in target.assets] == [
        ("AID-1", "original"),
        ("AID-2", "new"),
    ]


def test_license_data_is_attribute_merged(engine):
    target = _inventory(licenses=[{"Canonical Name": "Apache License 2.0", "SPDX Id": "Apache-2.0"}])
    source = _inventory(
        licenses=[
            {"Canonical Name": "Apache License 2.0", "SPDX Id": "wrong", "Copyleft Type": "none"},
            {"Canonical Name": "MIT License"},
        ]
    )
    engine.merge_inventories([source], target)
    assert len(target.license_data) == 2
    apache = target.find_license_data("Apache License 2.0")
    assert apache.spdx_id == "Apache-2.0"
    assert apache.get("Copyleft Type") == "none"


def test_representation_key_is_order_independent(engine):
    one = Artifact({"Id": "a", "License": "MIT", "Version": "1"})
    other = Artifact({"Version": "1", "Id": "a", "License": "MIT"})
    keys = {"Id", "License", "Version"}
    assert engine.representation_key(one, keys) == engine.representation_key(other, keys)


@pytest.mark.parametrize(
    "excluded, merged",
    [
        (["Verified"], ["Verified"]),
        ([""], ["Root Paths"]),
        (["Id"], ["Root Paths"]),
        (["Verified"], [None]),
    ],
)
def test_invalid_configuration(excluded, merged):
    with pytest.raises(MergeConfigError):
        MergeEngine(excluded_attributes=excluded, merge_attributes=merged)
