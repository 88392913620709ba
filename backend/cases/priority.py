"""
Area-based priority classification.

A submitted case's priority is derived from where the patient lives:
the reference dataset tags every known Karachi locality with a
socioeconomic class, and poorer localities are funded first
(``Lower → High``, ``Middle → Medium``, ``Elite → Low``).

Locations arrive as loosely structured free text, so matching is
tolerant: inside the requested district, an entry matches when its
normalized area name equals the input, or either string contains the
other (which covers prefix and suffix matches such as ``"Gulshan"`` vs
``"Gulshan-e-Iqbal"``).  Exact matches are tried before containment
matches so that a locality whose name is a prefix of a neighbour's
always resolves to its own class.  Anything that does not match
degrades to ``Medium``; ``classify`` never raises.

The dataset is indexed by normalized district once at load time, so a
lookup only scans the handful of areas of one district.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Iterable

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

from core.constants import AREA_CLASS_PRIORITY

logger = logging.getLogger(__name__)

DEFAULT_PRIORITY = "Medium"

DEFAULT_DATASET_PATH = Path(__file__).resolve().parent / "data" / "karachi_areas.json"

_WHITESPACE = re.compile(r"\s+")


def normalize(value: str | None) -> str:
    """Lowercase, trim and collapse internal whitespace."""
    if not value:
        return ""
    return _WHITESPACE.sub(" ", str(value).strip().lower())


@dataclass(frozen=True)
class PriorityReferenceEntry:
    """One locality from the reference dataset."""

    district: str
    area_name: str
    area_class: str

    @property
    def priority(self) -> str:
        return AREA_CLASS_PRIORITY.get(self.area_class, DEFAULT_PRIORITY)


class AreaPriorityClassifier:
    """
    Maps a ``(district, area)`` pair onto ``High`` / ``Medium`` / ``Low``.

    Instances are immutable after construction and safe to share between
    threads.
    """

    def __init__(self, entries: Iterable[PriorityReferenceEntry]) -> None:
        self._by_district: dict[str, list[tuple[str, PriorityReferenceEntry]]] = {}
        count = 0
        for entry in entries:
            self._by_district.setdefault(normalize(entry.district), []).append(
                (normalize(entry.area_name), entry)
            )
            count += 1
        self._size = count

    def __len__(self) -> int:
        return self._size

    @classmethod
    def from_json(cls, path: str | Path) -> AreaPriorityClassifier:
        """
        Load a dataset shaped like ``[{"District", "AreasName", "Class"}, ...]``.

        Raises
        ------
        ImproperlyConfigured
            The file is missing, is not valid JSON, or a row lacks one of
            the three keys.
        """
        path = Path(path)
        try:
            with path.open(encoding="utf-8") as fh:
                rows = json.load(fh)
            entries = [
                PriorityReferenceEntry(
                    district=row["District"],
                    area_name=row["AreasName"],
                    area_class=row["Class"],
                )
                for row in rows
            ]
        except (OSError, ValueError, KeyError, TypeError) as exc:
            raise ImproperlyConfigured(
                f"Cannot load area priority dataset from {path}: {exc}"
            ) from exc

        classifier = cls(entries)
        logger.info("Loaded %d area priority entries from %s", len(classifier), path)
        return classifier

    def match(self, district: str | None, area: str | None) -> PriorityReferenceEntry | None:
        """
        Return the reference entry for the location, or ``None``.

        Two passes over the district's entries in dataset order: an exact
        area name first, then containment in either direction.  Dataset
        order therefore only breaks ties between containment matches; an
        exact match later in the dataset beats an earlier containment
        match, so every listed area classifies as its own entry.
        """
        wanted_district = normalize(district)
        wanted_area = normalize(area)
        if not wanted_district or not wanted_area:
            return None

        candidates = self._by_district.get(wanted_district, [])
        for area_name, entry in candidates:
            if area_name == wanted_area:
                return entry
        for area_name, entry in candidates:
            if wanted_area in area_name or area_name in wanted_area:
                return entry
        return None

    def classify(self, district: str | None, area: str | None) -> str:
        """Return the priority tier for the location (``Medium`` if unknown)."""
        entry = self.match(district, area)
        if entry is None:
            return DEFAULT_PRIORITY
        return entry.priority


@lru_cache(maxsize=1)
def get_default_classifier() -> AreaPriorityClassifier:
    """
    Classifier built from ``settings.CASE_PRIORITY_DATASET`` (cached).

    Falls back to the dataset bundled with this app when the setting is
    empty.
    """
    path = getattr(settings, "CASE_PRIORITY_DATASET", None) or DEFAULT_DATASET_PATH
    return AreaPriorityClassifier.from_json(path)
