"""Test catalogs: ordered, immutable collections of named cases.

A case is either synthetic (painted with the default ellipse or a custom
painter) or file-backed (its ``source`` image is loaded instead).  Exactly one
rendering path is taken per case: file-backed whenever ``source`` is set.

Built-in catalogs
-----------------
``index``
    Synthetic 200x300 cases: the reference ellipse probed from every side,
    a thin ellipse, and a tall rectangle probed down its left edge.
``shape1`` .. ``shape4``
    File-backed cases over the shape images in the assets directory.

Catalogs from YAML files are loaded by ``repair_harness.catalog_schema``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator

from repair_harness.errors import CatalogError
from repair_harness.geometry import Rect
from repair_harness.surface import CanvasSurface, Painter

DEFAULT_SHAPE_PATTERN = "shape{index}.png"


# ---------------------------------------------------------------------------
# Cases
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TestCase:
    """One named scenario: a fixture plus a target hole rectangle.

    Parameters
    ----------
    case_id : str
        Unique id within the catalog; also the id of the case's surface.
    hole_rect : Rect
        Hole to repair, in buffer pixels.
    foreground : Painter | None
        Custom painter for synthetic cases; None paints the default ellipse.
    source : str | None
        Image reference for file-backed cases.
    """

    __test__ = False

    case_id: str
    hole_rect: Rect
    foreground: Painter | None = None
    source: str | None = None

    @property
    def is_file_backed(self) -> bool:
        return self.source is not None

    def describe(self) -> dict[str, object]:
        """Full case input, for logs and reports."""
        data: dict[str, object] = {"id": self.case_id, "hole_rect": self.hole_rect.as_dict()}
        if self.source is not None:
            data["source"] = self.source
        elif self.foreground is not None:
            data["foreground"] = painter_name(self.foreground)
        return data


class TestCatalog:
    """Ordered, immutable collection of test cases.

    Raises
    ------
    CatalogError
        If a case is not a ``TestCase``, has an empty id, or repeats an id.
    """

    __test__ = False

    def __init__(self, name: str, cases: Iterable[TestCase]) -> None:
        self.name = name
        self._cases: tuple[TestCase, ...] = tuple(cases)
        seen: set[str] = set()
        for i, case in enumerate(self._cases):
            if not isinstance(case, TestCase):
                raise CatalogError(f"Catalog {name!r} entry {i} is not a TestCase: {case!r}")
            if not case.case_id:
                raise CatalogError(f"Catalog {name!r} entry {i} has an empty id")
            if case.case_id in seen:
                raise CatalogError(f"Catalog {name!r} repeats case id {case.case_id!r}")
            seen.add(case.case_id)

    def __iter__(self) -> Iterator[TestCase]:
        return iter(self._cases)

    def __len__(self) -> int:
        return len(self._cases)

    def __getitem__(self, index: int) -> TestCase:
        return self._cases[index]

    def __repr__(self) -> str:
        return f"TestCatalog({self.name!r}, {len(self._cases)} cases)"

    def ids(self) -> list[str]:
        return [case.case_id for case in self._cases]

    def get(self, case_id: str) -> TestCase:
        for case in self._cases:
            if case.case_id == case_id:
                return case
        raise KeyError(case_id)

    def filter(self, case_ids: Iterable[str]) -> TestCatalog:
        """Sub-catalog of the given ids, keeping catalog order."""
        wanted = set(case_ids)
        missing = wanted - set(self.ids())
        if missing:
            raise CatalogError(f"Unknown case ids for {self.name!r}: {sorted(missing)}")
        return TestCatalog(self.name, (c for c in self._cases if c.case_id in wanted))

    @property
    def sources(self) -> list[str]:
        """Distinct image sources, in first-use order."""
        seen: list[str] = []
        for case in self._cases:
            if case.source is not None and case.source not in seen:
                seen.append(case.source)
        return seen


# ---------------------------------------------------------------------------
# Painters
# ---------------------------------------------------------------------------


def paint_ellipse(surface: CanvasSurface) -> None:
    surface.paint_default_foreground()


def paint_thin_ellipse(surface: CanvasSurface) -> None:
    surface.fill_ellipse(surface.center(), (10.0, 120.0))


def paint_rectangle(surface: CanvasSurface) -> None:
    surface.fill_rect(40, 40, 120, 220)


PAINTERS: dict[str, Painter] = {
    "ellipse": paint_ellipse,
    "thin_ellipse": paint_thin_ellipse,
    "rectangle": paint_rectangle,
}


def painter_name(fn: Painter) -> str:
    for name, painter in PAINTERS.items():
        if painter is fn:
            return name
    return getattr(fn, "__name__", repr(fn))


# ---------------------------------------------------------------------------
# Built-in catalogs
# ---------------------------------------------------------------------------

_INDEX_CASES: list[tuple[str, tuple[int, int, int, int], str | None]] = [
    ("top center", (70, 10, 60, 40), None),
    ("top left", (45, 10, 60, 40), None),
    ("top right", (95, 10, 60, 40), None),
    ("bottom center", (70, 250, 60, 40), None),
    ("bottom left", (45, 250, 60, 40), None),
    ("bottom right", (95, 250, 60, 40), None),
    ("middle left", (25, 130, 60, 40), None),
    ("middle right", (115, 130, 60, 40), None),
    ("thin", (70, 10, 60, 40), "thin_ellipse"),
    ("4 endpoints (1)", (25, 50, 150, 40), None),
    ("4 endpoints (2)", (25, 130, 150, 40), None),
    ("4 endpoints (3)", (25, 190, 150, 40), None),
    ("rectangle top left", (10, 10, 70, 70), "rectangle"),
    ("rectangle middle left (1)", (10, 60, 70, 70), "rectangle"),
    ("rectangle middle left (2)", (10, 110, 70, 70), "rectangle"),
    ("rectangle bottom left", (10, 210, 70, 70), "rectangle"),
]

_SHAPE_HOLES: dict[int, list[tuple[str, tuple[int, int, int, int]]]] = {
    1: [
        ("top left", (25, 30, 30, 30)),
        ("top center", (45, 30, 30, 30)),
        ("top right", (75, 30, 30, 30)),
        ("middle left", (20, 50, 30, 30)),
        ("random", (15, 55, 35, 40)),
        ("middle right", (75, 50, 30, 30)),
        ("bottom left", (20, 80, 30, 30)),
        ("bottom center", (50, 80, 30, 30)),
        ("bottom right", (70, 80, 30, 30)),
    ],
    2: [
        ("top left", (15, 5, 40, 20)),
        ("top center", (40, 5, 40, 20)),
        ("top right", (60, 10, 40, 20)),
        ("middle left", (5, 30, 25, 20)),
        ("random", (40, 35, 40, 20)),
        ("middle right", (80, 30, 30, 20)),
        ("bottom left", (10, 60, 40, 20)),
        ("bottom center", (30, 55, 25, 15)),
        ("bottom right", (65, 55, 40, 20)),
    ],
    3: [
        ("top left", (45, 15, 40, 40)),
        ("top center", (60, 15, 40, 40)),
        ("top right", (90, 35, 40, 40)),
        ("middle left", (15, 65, 40, 40)),
        ("random", (105, 45, 40, 40)),
        ("middle right", (105, 85, 40, 40)),
        ("bottom left", (10, 130, 40, 40)),
        ("bottom center", (50, 140, 40, 40)),
        ("bottom right", (80, 140, 40, 40)),
    ],
    4: [
        ("top left", (35, 35, 60, 60)),
        ("top center", (75, 25, 80, 60)),
        ("top right", (135, 35, 60, 60)),
        ("middle left", (10, 90, 60, 60)),
        ("6 points", (45, 80, 170, 40)),
        ("middle right", (160, 90, 60, 60)),
        ("bottom left", (20, 150, 60, 60)),
        ("bottom center", (85, 175, 60, 60)),
        ("bottom right (corner adversarial)", (160, 150, 60, 60)),
        ("6 points right upper (partition adversarial)", (45, 65, 170, 40)),
        ("6 points right ~center", (45, 110, 170, 40)),
        ("6 points right lower", (55, 170, 170, 35)),
        ("long hole 1", (15, 35, 200, 90)),
        ("long hole 2 (adversarial?)", (15, 40, 200, 40)),
        ("long hole 3", (15, 50, 200, 40)),
        ("long hole 4", (15, 70, 200, 40)),
        ("long hole 5", (15, 90, 200, 40)),
        ("long hole 6", (15, 120, 200, 40)),
        ("long hole 7", (15, 155, 200, 40)),
    ],
}


def index_catalog() -> TestCatalog:
    """Synthetic cases over the reference ellipse and rectangle."""
    return TestCatalog(
        "index",
        (
            TestCase(case_id, Rect(*rect), PAINTERS[painter] if painter else None)
            for case_id, rect, painter in _INDEX_CASES
        ),
    )


def shape_count() -> int:
    return len(_SHAPE_HOLES)


def shape_source(index: int, pattern: str = DEFAULT_SHAPE_PATTERN) -> str:
    return pattern.format(index=index)


def shape_catalog(index: int, pattern: str = DEFAULT_SHAPE_PATTERN) -> TestCatalog:
    """File-backed cases over shape image ``index`` (1-based)."""
    if index not in _SHAPE_HOLES:
        raise CatalogError(f"No shape catalog {index}; expected 1..{shape_count()}")
    source = shape_source(index, pattern)
    return TestCatalog(
        f"shape{index}",
        (TestCase(case_id, Rect(*rect), source=source) for case_id, rect in _SHAPE_HOLES[index]),
    )
