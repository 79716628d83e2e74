from __future__ import annotations

import unicodedata

from ..core.errors import FilterError
from ..models import FilterCriteria


def _quote(value: str) -> str:
    if any(unicodedata.category(char) == "Cc" for char in value):
        raise FilterError("Filter values must not contain control characters")
    # OData string literals escape a single quote by doubling it.
    return "'" + value.replace("'", "''") + "'"


def build_filter_expression(criteria: FilterCriteria) -> str:
    """
    Render ``criteria`` as an OData ``$filter`` expression.

    Blank predicates are left out entirely, so an empty criteria object yields
    an empty string and the caller should not send ``$filter`` at all.
    """

    clauses = [
        f"startsWith({attribute}, {_quote(value)})"
        for attribute, value in criteria.predicates()
    ]
    return " and ".join(clauses)
