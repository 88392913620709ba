"""
Core constants — **Single Source of Truth** for project-wide magic values.

Any business rule that references a fixed value shared between apps
should import it from here instead of hardcoding it.
"""

from decimal import Decimal

# ── Case Numbering ──────────────────────────────────────────────────
# Case numbers look like ``CASE-2025-00001``: prefix, submission year,
# then a per-year sequence zero-padded to CASE_NUMBER_SEQUENCE_WIDTH.
CASE_NUMBER_PREFIX: str = "CASE"
CASE_NUMBER_SEQUENCE_WIDTH: int = 5

# ── Money ───────────────────────────────────────────────────────────
# All monetary columns (funding targets, donation amounts, running
# totals) share the same precision.
MONEY_MAX_DIGITS: int = 12
MONEY_DECIMAL_PLACES: int = 2
MINIMUM_DONATION: Decimal = Decimal("0.01")

# ── Priority Reference Data ─────────────────────────────────────────
# Socioeconomic class label (as stored in the area reference dataset)
# → case priority.  Poorer areas are funded first.
AREA_CLASS_PRIORITY: dict[str, str] = {
    "Lower": "High",
    "Middle": "Medium",
    "Elite": "Low",
}
