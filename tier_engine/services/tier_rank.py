"""
Tier Rank Table

Static lookup from tier name to rank. A LOWER rank is a MORE valuable tier:
Super VIP is rank 1 and Regular is rank 7. The overflow segments (ND_P, P1, P2)
rank after Regular. Every comparison in the transition classifier depends on
this inversion.

The warehouse writes tier names inconsistently ("Tier P1", "p1", "ND P",
"SUPER_VIP"), so lookups are case-insensitive, ignore spaces and underscores,
and accept the optional "Tier " prefix on the overflow segments. Names that are
still unknown get a sentinel rank that sorts after every real tier.
"""

from typing import Dict, Iterable, Mapping, Optional

from tier_engine.models.schemas import TierRef


# =============================================================================
# Default Table
# =============================================================================

DEFAULT_TIER_RANKS: Dict[str, int] = {
    "Super VIP": 1,
    "Tier 5": 2,
    "Tier 4": 3,
    "Tier 3": 4,
    "Tier 2": 5,
    "Tier 1": 6,
    "Regular": 7,
    # Overflow segments, ranked after regulars
    "ND_P": 8,
    "P1": 9,
    "P2": 10,
}

# Alternate spellings mapped to their canonical name
DEFAULT_TIER_ALIASES: Dict[str, str] = {
    "Tier ND_P": "ND_P",
    "Tier P1": "P1",
    "Tier P2": "P2",
}

DEFAULT_UNKNOWN_TIER_RANK: int = 99


def _normalize(name: str) -> str:
    return " ".join(str(name).strip().lower().split())


def _compact(name: str) -> str:
    return "".join(ch for ch in _normalize(name) if ch not in " _")


# =============================================================================
# Rank Table
# =============================================================================


class TierRankTable:
    """
    Deterministic, total mapping from tier name to rank.

    Args:
        ranks: Canonical tier name -> rank. Ranks must be unique.
        aliases: Alternate spelling -> canonical name.
        unknown_rank: Rank returned for names not in the table. Must be greater
            than every real rank.

    Raises:
        ValueError: If two canonical names share a rank, an alias points at an
            unknown tier, or unknown_rank does not sort after the real ranks.
    """

    def __init__(
        self,
        ranks: Optional[Mapping[str, int]] = None,
        aliases: Optional[Mapping[str, str]] = None,
        unknown_rank: int = DEFAULT_UNKNOWN_TIER_RANK,
    ):
        ranks = dict(DEFAULT_TIER_RANKS if ranks is None else ranks)
        aliases = dict(DEFAULT_TIER_ALIASES if aliases is None else aliases)

        if len(set(ranks.values())) != len(ranks):
            raise ValueError("Tier ranks must be unique per tier name")
        if ranks and unknown_rank <= max(ranks.values()):
            raise ValueError(
                f"unknown_rank ({unknown_rank}) must be greater than every tier rank"
            )

        self.unknown_rank = unknown_rank
        self._ranks = ranks
        self._lookup: Dict[str, str] = {}

        for canonical in ranks:
            self._register(canonical, canonical)
        for alias, canonical in aliases.items():
            if canonical not in ranks:
                raise ValueError(f"Alias {alias!r} points at unknown tier {canonical!r}")
            self._register(alias, canonical)

    def _register(self, label: str, canonical: str) -> None:
        self._lookup[_normalize(label)] = canonical
        self._lookup[_compact(label)] = canonical

    def canonical_name(self, name: Optional[str]) -> Optional[str]:
        """Return the canonical spelling of a tier name, or None if unknown."""
        if name is None:
            return None
        return self._lookup.get(_normalize(name)) or self._lookup.get(_compact(name))

    def rank_of(self, name: Optional[str]) -> int:
        """
        Rank of a tier name.

        Returns:
            The table rank, or unknown_rank for unrecognised or missing names.
        """
        canonical = self.canonical_name(name)
        if canonical is None:
            return self.unknown_rank
        return self._ranks[canonical]

    def tier_ref(self, name: str) -> TierRef:
        """Build a TierRef, using the canonical spelling when the name is known."""
        canonical = self.canonical_name(name)
        if canonical is None:
            return TierRef(name=str(name).strip(), rank=self.unknown_rank)
        return TierRef(name=canonical, rank=self._ranks[canonical])

    def highest_tier(self, names: Iterable[Optional[str]]) -> Optional[TierRef]:
        """
        Best tier among several names (lowest rank wins).

        Blank names are skipped. Ties between unknown names go to the
        alphabetically first name so the result does not depend on row order.
        """
        best: Optional[TierRef] = None
        for name in names:
            if name is None or not str(name).strip():
                continue
            ref = self.tier_ref(name)
            if best is None or (ref.rank, ref.name) < (best.rank, best.name):
                best = ref
        return best


DEFAULT_RANK_TABLE = TierRankTable()


def rank_of(name: Optional[str]) -> int:
    """Rank of a tier name in the default table."""
    return DEFAULT_RANK_TABLE.rank_of(name)
