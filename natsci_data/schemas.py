"""
Declared validation rule sets, one per dataset category.

Each rule set is a plain list of ValidationRule objects built from the
factories in natsci_data.rules. Rules that mention columns a particular
download lacks are skipped rather than failed, so one rule set can serve
several releases of the same dataset.

Usage:
    from natsci_data.schemas import RULESETS
    results = confront(df, RULESETS["forestry"])
"""

from natsci_data.rules import (
    complete_rows,
    correlation_bound,
    not_null,
    numeric_column,
    require_any_column,
    value_range,
)


# ── Forest inventory ────────────────────────────────────────────────────

FORESTRY_RULES = [
    require_any_column("Required column: ID must exist", "ID", "id"),
    require_any_column(
        "Required column: Species must exist", "Species", "species", "tree_species"
    ),
    numeric_column("Tree density must be numeric", "Tree_Density_per_ha"),
    numeric_column(
        "Carbon values must be numeric", "Aboveground_Tree_Carbon_ton_per_ha"
    ),
    value_range(
        "Tree density must be non-negative", "Tree_Density_per_ha", min_value=0
    ),
    value_range(
        "Tree density must be realistic (< 10000 trees/ha)",
        "Tree_Density_per_ha",
        max_value=10000,
        include_max=False,
    ),
    value_range(
        "Carbon values must be non-negative",
        "Aboveground_Tree_Carbon_ton_per_ha",
        min_value=0,
    ),
    not_null("ID column must not have missing values", "ID"),
    complete_rows("At least 80% of records must be complete", 0.8),
    correlation_bound(
        "Higher tree density should correlate with higher carbon",
        "Tree_Density_per_ha",
        "Aboveground_Tree_Carbon_ton_per_ha",
        lower=-0.5,
    ),
]


# ── Crop yields (tonnes per hectare by country and year) ────────────────

AGRICULTURE_RULES = [
    require_any_column("Required column: Entity must exist", "Entity", "entity", "country"),
    require_any_column("Required column: Year must exist", "Year", "year"),
    numeric_column("Year must be numeric", "Year"),
    value_range("Year must be plausible", "Year", min_value=1900, max_value=2100),
    value_range(
        "Wheat yield must be within 0-20 t/ha",
        "Wheat (tonnes per hectare)",
        min_value=0,
        max_value=20,
    ),
    value_range(
        "Rice yield must be within 0-20 t/ha",
        "Rice (tonnes per hectare)",
        min_value=0,
        max_value=20,
    ),
    value_range(
        "Maize yield must be within 0-40 t/ha",
        "Maize (tonnes per hectare)",
        min_value=0,
        max_value=40,
    ),
    not_null("Entity must not have missing values", "Entity"),
]


# ── Penguin morphology (Palmer Station) ─────────────────────────────────

ENVIRONMENTAL_RULES = [
    require_any_column("Required column: species must exist", "species", "Species"),
    numeric_column("Body mass must be numeric", "body_mass_g"),
    value_range("Bill length must be positive", "bill_length_mm", min_value=0, max_value=100),
    value_range("Bill depth must be positive", "bill_depth_mm", min_value=0, max_value=50),
    value_range(
        "Flipper length must be realistic", "flipper_length_mm", min_value=100, max_value=300
    ),
    value_range("Body mass must be realistic", "body_mass_g", min_value=1000, max_value=10000),
    not_null("Species must not have missing values", "species"),
    complete_rows("At least 80% of records must be complete", 0.8),
    correlation_bound(
        "Longer flippers should go with heavier birds",
        "flipper_length_mm",
        "body_mass_g",
        lower=0.0,
    ),
]


RULESETS = {
    "forestry": FORESTRY_RULES,
    "agriculture": AGRICULTURE_RULES,
    "environmental": ENVIRONMENTAL_RULES,
}


def get_ruleset(name, rulesets=None):
    """Rules for *name* from *rulesets* (default: RULESETS).

    Returns an empty list when *name* is None and raises KeyError for an
    undeclared name.
    """
    rulesets = RULESETS if rulesets is None else rulesets
    if name is None:
        return []
    try:
        return rulesets[name]
    except KeyError:
        raise KeyError(
            f"Unknown rule set {name!r}; expected one of {sorted(rulesets)}"
        ) from None
