"""
Drug-name alias index.

Built once from the drug catalog: every name variant of a drug (brand,
generic, other) maps to the set of all variants listed on that same drug.
A query for any variant then matches records storing any other variant.

Grouping is per catalog entry only, with no transitive closure: entries
{A, B} and {B, C} give B the class {A, B, C}, but A keeps {A, B} and C
keeps {B, C}.
"""

import logging
import re
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional, Set, Union

from ..schemas.trial import DrugCatalogEntry
from .normalizer import normalize_value, split_tokens

logger = logging.getLogger(__name__)

_DRUG_SEPARATOR = re.compile(r",")


class AliasIndex:
    """Immutable ``normalized name -> equivalence class`` mapping."""

    def __init__(self, classes: Optional[Mapping[str, Iterable[str]]] = None):
        frozen = {name: frozenset(members) for name, members in (classes or {}).items()}
        self._classes: Mapping[str, FrozenSet[str]] = MappingProxyType(frozen)

    def __len__(self) -> int:
        return len(self._classes)

    def __contains__(self, name: str) -> bool:
        return normalize_value(name) in self._classes

    def __repr__(self) -> str:
        return f"AliasIndex({len(self)} names)"

    @property
    def classes(self) -> Mapping[str, FrozenSet[str]]:
        return self._classes

    def is_empty(self) -> bool:
        return not self._classes

    def equivalence_class(self, term: Any) -> FrozenSet[str]:
        """All names ever co-listed with ``term``; empty when unknown."""
        key = normalize_value(term)
        if not key:
            return frozenset()
        return self._classes.get(key, frozenset())

    def matches(self, term: Any, drug_value: Any) -> bool:
        """
        True when ``drug_value`` (possibly "drug A, drug B") names a drug
        in the equivalence class of ``term``.

        Comparison is exact on normalized names, against the whole value
        and each comma-separated drug. Unknown terms never match; there is
        no substring fallback.
        """
        aliases = self.equivalence_class(term)
        if not aliases:
            return False

        if normalize_value(drug_value) in aliases:
            return True
        return any(normalize_value(drug) in aliases for drug in split_tokens(drug_value, _DRUG_SEPARATOR))


def build_alias_index(drug_catalog: Iterable[Union[DrugCatalogEntry, Mapping[str, Any]]]) -> AliasIndex:
    """
    Build the alias index from the drug catalog.

    For each entry its non-empty names form a local set L; every name in L
    gets L unioned into its class. Entries are processed in a single pass.
    """
    classes: Dict[str, Set[str]] = {}

    for entry in drug_catalog or []:
        if not isinstance(entry, DrugCatalogEntry):
            entry = DrugCatalogEntry.model_validate(entry)

        local_names = {normalize_value(name) for name in entry.names()}
        local_names.discard("")
        if not local_names:
            continue

        for name in local_names:
            classes.setdefault(name, set()).update(local_names)

    if not classes:
        logger.warning("Drug alias index is empty; drug-name criteria will match nothing")
    else:
        logger.info(f"Drug alias index built. Total entries: {len(classes)}")

    return AliasIndex(classes)
