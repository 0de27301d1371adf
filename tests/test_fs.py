"""Test atomic filesystem operations.

Tests for repair_harness.fs:
    - Atomic text/bytes writes leave no tmp files behind
    - YAML roundtrip preserves key order
    - load_yaml() errors: missing file, bad syntax, non-mapping
    - atomic_save_image() writes a decodable PNG
    - safe_filename() for case ids

Run:
    pytest tests/test_fs.py -v
"""

import numpy as np
import pytest
from PIL import Image

from repair_harness import fs


def test_ensure_dir(tmp_path):
    target = fs.ensure_dir(tmp_path / "a" / "b")
    assert target.is_dir()
    assert fs.ensure_dir(target) == target


def test_atomic_write_text(tmp_path):
    path = tmp_path / "nested" / "report.md"
    fs.atomic_write_text(path, "- PASS top center\n")
    assert path.read_text() == "- PASS top center\n"
    assert [p.name for p in path.parent.iterdir()] == ["report.md"]


def test_yaml_roundtrip(tmp_path):
    data = {"page": "index", "cases": [{"case": "a", "success": True}], "total": 1}
    path = tmp_path / "report.yaml"
    fs.atomic_yaml_dump(data, path)
    loaded = fs.load_yaml(path)
    assert loaded == data
    assert list(loaded) == ["page", "cases", "total"]


def test_load_yaml_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        fs.load_yaml(tmp_path / "nope.yaml")


def test_load_yaml_bad_syntax(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("a: [1, 2\n")
    with pytest.raises(ValueError, match="Failed to parse"):
        fs.load_yaml(path)


def test_load_yaml_empty_and_non_mapping(tmp_path):
    empty = tmp_path / "empty.yaml"
    empty.write_text("")
    assert fs.load_yaml(empty) == {}

    scalar = tmp_path / "scalar.yaml"
    scalar.write_text("42\n")
    with pytest.raises(ValueError, match="mapping"):
        fs.load_yaml(scalar)


def test_atomic_save_image(tmp_path):
    img = np.zeros((10, 20, 3), dtype=np.uint8)
    img[2, 3] = (255, 0, 0)
    path = tmp_path / "snapshots" / "thin.png"
    fs.atomic_save_image(img, path)
    with Image.open(path) as loaded:
        pixels = np.asarray(loaded.convert("RGB"))
    assert pixels.shape == (10, 20, 3)
    assert tuple(pixels[2, 3]) == (255, 0, 0)
    assert sorted(p.name for p in path.parent.iterdir()) == ["thin.png"]


def test_atomic_save_image_clips_float(tmp_path):
    img = np.full((4, 4), 300.0)
    path = tmp_path / "gray.png"
    fs.atomic_save_image(img, path)
    with Image.open(path) as loaded:
        assert np.asarray(loaded).max() == 255


@pytest.mark.parametrize("name,expected", [
    ("top center", "top-center"),
    ("4 endpoints (1)", "4-endpoints-1"),
    ("bottom right (corner adversarial)", "bottom-right-corner-adversarial"),
    ("long hole 2 (adversarial?)", "long-hole-2-adversarial"),
    ("shape1.png", "shape1.png"),
    ("???", "case"),
])
def test_safe_filename(name, expected):
    assert fs.safe_filename(name) == expected
