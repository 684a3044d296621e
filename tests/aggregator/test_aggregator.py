import pytest

from sediment.aggregator import Aggregator
from sediment.inventory import Artifact, ComponentPatternData, Inventory


def write(path, content="x"):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)


@pytest.fixture(name="layout")
def fixture_layout(tmp_path):
    root = tmp_path / "root"
    scratch = tmp_path / "scratch"
    write(root / "web" / "package.json", "{}")
    write(root / "web" / "index.js")
    write(root / "web" / "LICENSE")
    write(root / "web" / "node_modules" / "dep" / "index.js")
    write(root / "web" / "lib.zip")
    write(scratch / "web" / "[lib.zip]" / "inner.txt")
    return root, scratch


def component_pattern(**extra):
    attributes = {
        "Component Part": "web-1.0",
        "Component Version": "1.0",
        "Version Anchor": "package.json",
        "Version Anchor Checksum": "abc",
        "Include Pattern": "**/*",
        "Exclude Pattern": "node_modules/**",
    }
    attributes.update(extra)
    return ComponentPatternData(attributes)


def inventory_with(cpd):
    return Inventory(
        artifacts=[
            Artifact({"Id": "web-1.0", "Version": "1.0", "Checksum": "abc", "Root Paths": "web"}),
            Artifact({"Id": "index.js", "Checksum": "c1", "Root Paths": "web/index.js"}),
            Artifact({"Id": "LICENSE", "Checksum": "c2", "Root Paths": "web/LICENSE"}),
            Artifact({"Id": "missing.txt", "Root Paths": "gone/missing.txt"}),
            Artifact({"Id": "declared-2.0"}),
        ],
        component_patterns=[cpd],
    )


def test_component_coverage(layout):
    root, scratch = layout
    inventory = inventory_with(component_pattern())
    aggregator = Aggregator(root, scratch, allowed_duplicates=["**/LICENSE*"])
    cpd = aggregator.pattern_for(inventory, inventory.artifacts[0])
    assert cpd is inventory.component_patterns[0]
    assert sorted(aggregator.covered_files(inventory.artifacts[0], cpd)) == [
        "web/LICENSE",
        "web/[lib.zip]/inner.txt",
        "web/index.js",
        "web/lib.zip",
        "web/package.json",
    ]


def test_aggregate_partitions_files(layout):
    root, scratch = layout
    inventory = inventory_with(component_pattern())
    coverages = Aggregator(root, scratch, allowed_duplicates=["**/LICENSE*"]).aggregate(inventory)
    by_id = {c.artifact.id: c for c in coverages}

    # artifacts without a location cover nothing and are left out
    assert set(by_id) == {"web-1.0", "index.js", "LICENSE", "missing.txt"}

    component = by_id["web-1.0"]
    assert component.exclusive == ["web/[lib.zip]/inner.txt", "web/lib.zip", "web/package.json"]
    assert component.allowed_duplicates == ["web/LICENSE"]
    assert component.duplicates == ["web/index.js"]

    assert by_id["index.js"].duplicates == ["web/index.js"]
    assert by_id["LICENSE"].allowed_duplicates == ["web/LICENSE"]

    missing = by_id["missing.txt"]
    assert missing.files == []
    assert missing.artifact.errors == ["Location gone/missing.txt not found"]


def test_shared_patterns_of_the_component(layout):
    root, scratch = layout
    inventory = inventory_with(component_pattern(**{"Shared Include Pattern": "**/*.js"}))
    coverages = Aggregator(root, scratch, allowed_duplicates=[]).aggregate(inventory)
    by_id = {c.artifact.id: c for c in coverages}
    assert by_id["web-1.0"].allowed_duplicates == ["web/index.js"]
    assert by_id["web-1.0"].duplicates == ["web/LICENSE"]
    # the plain file artifact has no pattern of its own
    assert by_id["index.js"].duplicates == ["web/index.js"]


def test_pattern_requires_matching_anchor_checksum(layout):
    root, scratch = layout
    inventory = inventory_with(component_pattern(**{"Version Anchor Checksum": "other"}))
    aggregator = Aggregator(root, scratch)
    assert aggregator.pattern_for(inventory, inventory.artifacts[0]) is None
    # without a pattern a directory location is not a file
    aggregator.covered_files(inventory.artifacts[0], None)
    assert inventory.artifacts[0].errors == ["Location web not found"]


def test_root_component(tmp_path):
    root = tmp_path / "root"
    write(root / "a.txt")
    write(root / "sub" / "b.txt")
    inventory = Inventory(
        artifacts=[Artifact({"Id": "all", "Checksum": "*", "Root Paths": "."})],
        component_patterns=[
            ComponentPatternData(
                {
                    "Component Part": "all",
                    "Version Anchor": "a.txt",
                    "Version Anchor Checksum": "*",
                    "Include Pattern": "**/*",
                }
            )
        ],
    )
    (coverage,) = Aggregator(root, tmp_path / "scratch", allowed_duplicates=[]).aggregate(inventory)
    assert coverage.exclusive == ["a.txt", "sub/b.txt"]
