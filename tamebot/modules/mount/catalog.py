"""
Species trait catalog.

Registry of ``SpeciesProfile`` objects keyed by species name. A profile
bundles everything the customization protocol needs: the ordered trait
keys, the option set of each key, the price table and the random trait
generator. Profiles are resolved once per encounter.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional

from tamebot.modules.mount import constants as C
from tamebot.modules.shared.exceptions import (
    InvalidSelectionError,
    UnsupportedConfigurationError,
)


@dataclass(frozen=True)
class SpeciesProfile:
    species: str
    traits: Mapping[str, List[str]]
    prices: Mapping[str, int] = field(default_factory=dict)
    emoji: str = ""
    home_region: str = C.ALL_VILLAGES

    def trait_plan(self, is_rare: bool) -> List[str]:
        """Ordered trait keys to resolve; the rare-only key is dropped for regular mounts."""
        return [key for key in self.traits if is_rare or key != C.RARE_TRAIT_KEY]

    def options(self, trait_key: str) -> List[str]:
        try:
            return list(self.traits[trait_key])
        except KeyError:
            raise InvalidSelectionError(
                trait_key, f"{self.species} has no trait '{trait_key}'"
            ) from None

    def price(self, trait_key: str) -> int:
        return int(self.prices.get(trait_key, 0))

    def random_value(self, trait_key: str, rng: random.Random) -> str:
        return rng.choice(self.options(trait_key))

    def generate_traits(self, rng: random.Random, is_rare: bool) -> Dict[str, str]:
        """Roll every trait of the plan independently."""
        return {key: self.random_value(key, rng) for key in self.trait_plan(is_rare)}


class SpeciesCatalog:
    """
    Lookup of species profiles.

    >>> catalog = SpeciesCatalog.default()
    >>> catalog.get("Horse").trait_plan(is_rare=False)[0]
    'coatMane'
    """

    def __init__(self, profiles: Iterable[SpeciesProfile] = ()) -> None:
        self._profiles: Dict[str, SpeciesProfile] = {}
        for profile in profiles:
            self.register(profile)

    def register(self, profile: SpeciesProfile) -> None:
        self._profiles[profile.species] = profile

    def get(self, species: Optional[str]) -> SpeciesProfile:
        profile = self._profiles.get(species or "")
        if profile is None:
            raise UnsupportedConfigurationError(
                str(species), "no trait data registered for this species"
            )
        return profile

    def __contains__(self, species: object) -> bool:
        return species in self._profiles

    @property
    def species(self) -> List[str]:
        return sorted(self._profiles)

    @classmethod
    def default(cls) -> "SpeciesCatalog":
        return cls(
            SpeciesProfile(
                species=name,
                traits=traits,
                prices=C.TRAIT_PRICES.get(name, C.DEFAULT_TRAIT_PRICES),
                emoji=C.SPECIES_EMOJI.get(name, ""),
                home_region=C.SPECIES_HOME_REGION.get(name, C.ALL_VILLAGES),
            )
            for name, traits in C.SPECIES_TRAITS.items()
        )
