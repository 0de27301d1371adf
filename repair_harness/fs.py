"""Atomic filesystem operations for reports, snapshots and YAML.

Provides:
    - Atomic writes: tmp file → fsync → rename (no partial reports on crash)
    - YAML load/save (PyYAML safe loader/dumper)
    - Atomic PNG snapshots of surfaces via Pillow
    - Directory creation with exist_ok semantics
    - Filesystem-safe names for case ids

All paths use pathlib.Path.

Usage:
    from repair_harness import fs
    fs.atomic_save_image(surface.pixels, out_dir / "top-center.png")
    fs.atomic_yaml_dump(report, out_dir / "report.yaml")
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import numpy as np
import yaml
from PIL import Image


def ensure_dir(p: Union[str, Path]) -> Path:
    """Create directory if it doesn't exist, return Path object.

    Parameters
    ----------
    p : Union[str, Path]
        Directory path

    Returns
    -------
    Path
        Path object (guaranteed to exist)
    """
    p = Path(p)
    p.mkdir(parents=True, exist_ok=True)
    return p


def atomic_write_bytes(
    path: Union[str, Path],
    data: bytes,
    tmp_suffix: str = ".tmp"
) -> None:
    """Write bytes to file atomically (tmp → fsync → rename).

    Parameters
    ----------
    path : Union[str, Path]
        Target file path
    data : bytes
        Data to write
    tmp_suffix : str
        Temporary file suffix, default ".tmp"

    Notes
    -----
    The tmp file lives in the target directory so the rename stays on one
    filesystem.
    """
    path = Path(path)
    ensure_dir(path.parent)
    tmp_path = path.with_suffix(path.suffix + tmp_suffix)

    try:
        with open(tmp_path, 'wb') as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        tmp_path.replace(path)
    except Exception as e:
        if tmp_path.exists():
            tmp_path.unlink()
        raise RuntimeError(f"Failed to write {path} atomically: {e}") from e


def atomic_write_text(
    path: Union[str, Path],
    text: str,
    encoding: str = "utf-8"
) -> None:
    """Write text to file atomically."""
    atomic_write_bytes(path, text.encode(encoding))


def atomic_save_image(
    img: np.ndarray,
    path: Union[str, Path],
    pil_kwargs: Optional[Dict[str, Any]] = None
) -> None:
    """Save an RGB or grayscale uint8 array atomically.

    Parameters
    ----------
    img : np.ndarray
        (H, W, 3) or (H, W) array; non-uint8 input is clipped to [0, 255]
    path : Union[str, Path]
        Target file path (extension determines format)
    pil_kwargs : Optional[Dict[str, Any]]
        Additional kwargs for PIL.Image.save
    """
    path = Path(path)
    ensure_dir(path.parent)
    pil_kwargs = pil_kwargs or {}

    if img.dtype != np.uint8:
        img = np.clip(img, 0, 255).astype(np.uint8)
    if img.ndim == 3 and img.shape[2] == 1:
        img = img.squeeze(2)

    pil_img = Image.fromarray(img)

    # Keep the real extension last so PIL picks the format
    tmp_path = path.with_name(path.stem + ".tmp" + path.suffix)
    try:
        pil_img.save(tmp_path, **pil_kwargs)
        tmp_path.replace(path)
    except Exception as e:
        if tmp_path.exists():
            tmp_path.unlink()
        raise RuntimeError(f"Failed to save image {path} atomically: {e}") from e


def atomic_yaml_dump(obj: Any, path: Union[str, Path]) -> None:
    """Save object as YAML atomically (insertion order preserved)."""
    yaml_str = yaml.safe_dump(
        obj,
        default_flow_style=False,
        sort_keys=False,
        allow_unicode=True
    )
    atomic_write_bytes(path, yaml_str.encode('utf-8'))


def load_yaml(path: Union[str, Path]) -> Dict[str, Any]:
    """Load a YAML mapping safely.

    Parameters
    ----------
    path : Union[str, Path]
        YAML file path

    Returns
    -------
    Dict[str, Any]
        Parsed content; an empty file yields ``{}``

    Raises
    ------
    FileNotFoundError
        If file doesn't exist
    ValueError
        If parsing fails or the document is not a mapping
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"YAML file not found: {path}")

    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Failed to parse YAML file {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"YAML file {path} must contain a mapping, got {type(data).__name__}")
    return data


def safe_filename(name: str) -> str:
    """Turn a case id into a filesystem-safe stem ("top center" → "top-center")."""
    cleaned = []
    for ch in name:
        if ch.isascii() and (ch.isalnum() or ch in "._"):
            cleaned.append(ch)
        else:
            cleaned.append("-")
    value = "".join(cleaned).strip("-.")
    while "--" in value:
        value = value.replace("--", "-")
    return value or "case"
