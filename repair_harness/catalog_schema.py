"""YAML catalog schema validation.

Catalog files are validated with pydantic before they become a
``TestCatalog`` so a malformed file fails fast with the offending case and
key in the message.

File format::

    name: thin-shapes
    source: shape2.png          # optional default for every case
    cases:
      - id: top center
        hole: {x: 70, y: 10, w: 60, h: 40}
        foreground: thin_ellipse  # optional, synthetic cases only
      - id: from file
        hole: {x: 15, y: 5, w: 40, h: 20}
        source: shape1.png        # optional, overrides the default

Usage::

    from repair_harness.catalog_schema import load_catalog_file
    catalog = load_catalog_file("catalogs/thin.yaml")
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from repair_harness import fs
from repair_harness.catalog import PAINTERS, TestCase, TestCatalog
from repair_harness.errors import CatalogError
from repair_harness.geometry import Rect


class HoleRectModel(BaseModel):
    """Hole rectangle in buffer pixels (origin may still be out of bounds)."""

    model_config = ConfigDict(extra="forbid")

    x: int = Field(..., description="Left edge (px)")
    y: int = Field(..., description="Top edge (px)")
    w: int = Field(..., gt=0, description="Width (px)")
    h: int = Field(..., gt=0, description="Height (px)")


class CaseModel(BaseModel):
    """One catalog entry."""

    model_config = ConfigDict(extra="forbid")

    id: str = Field(..., min_length=1, description="Unique case id")
    hole: HoleRectModel
    foreground: Optional[str] = Field(None, description="Named painter for synthetic cases")
    source: Optional[str] = Field(None, description="Image reference for file-backed cases")

    @field_validator("foreground")
    @classmethod
    def validate_foreground(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in PAINTERS:
            raise ValueError(f"Unknown foreground {v!r}; expected one of {sorted(PAINTERS)}")
        return v

    @model_validator(mode="after")
    def validate_single_path(self) -> "CaseModel":
        if self.foreground is not None and self.source is not None:
            raise ValueError(f"Case {self.id!r} sets both foreground and source")
        return self


class CatalogFileModel(BaseModel):
    """Complete catalog file."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1)
    source: Optional[str] = Field(None, description="Default image for cases without foreground")
    cases: List[CaseModel] = Field(..., min_length=1)

    @model_validator(mode="after")
    def validate_unique_ids(self) -> "CatalogFileModel":
        seen = set()
        for case in self.cases:
            if case.id in seen:
                raise ValueError(f"Duplicate case id {case.id!r}")
            seen.add(case.id)
        return self

    def to_catalog(self) -> TestCatalog:
        cases = []
        for case in self.cases:
            source = case.source
            if source is None and case.foreground is None:
                source = self.source
            cases.append(
                TestCase(
                    case_id=case.id,
                    hole_rect=Rect(case.hole.x, case.hole.y, case.hole.w, case.hole.h),
                    foreground=PAINTERS[case.foreground] if case.foreground else None,
                    source=source,
                )
            )
        return TestCatalog(self.name, cases)


def parse_catalog(data: dict) -> TestCatalog:
    """Validate a catalog mapping and build the catalog."""
    try:
        model = CatalogFileModel.model_validate(data)
    except ValidationError as exc:
        raise CatalogError(f"Invalid catalog: {exc}") from exc
    return model.to_catalog()


def load_catalog_file(path: Union[str, Path]) -> TestCatalog:
    """Load and validate a YAML catalog file.

    Raises
    ------
    CatalogError
        If the file is missing, not a mapping, or fails validation.
    """
    path = Path(path)
    try:
        data = fs.load_yaml(path)
    except (FileNotFoundError, ValueError) as exc:
        raise CatalogError(f"Cannot read catalog {path}: {exc}") from exc
    try:
        return parse_catalog(data)
    except CatalogError as exc:
        raise CatalogError(f"{path}: {exc}") from exc
