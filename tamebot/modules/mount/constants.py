"""
Mount game data: species, regions, traits, prices and item bonuses.

Static catalog data only. Tunable balance numbers (thresholds, modifiers,
fees) live in ``config/mount.yaml`` and are read through ConfigManager;
the values here marked DEFAULT_* are the fallbacks.
"""

from __future__ import annotations

from typing import Dict, List, Tuple

# ============================================================================
# VILLAGES & ENVIRONMENTS
# ============================================================================

VILLAGES: Tuple[str, ...] = ("Rudania", "Inariko", "Vhintl")
ALL_VILLAGES = "All Villages"

ENVIRONMENTS: Tuple[str, ...] = ("Plains", "Tall grass", "Mountainous", "Forest")

# Fifth face of the environment die: the village's home terrain
VILLAGE_HOME_ENVIRONMENT: Dict[str, str] = {
    "Rudania": "Tall grass",
    "Inariko": "Mountainous",
    "Vhintl": "Forest",
}

PLACEHOLDER = "To be determined"

# ============================================================================
# SPECIES
# ============================================================================

MOUNT_LEVELS: Tuple[str, ...] = ("Basic", "Mid", "High")

LEVEL_WEIGHTS: Dict[str, int] = {"Basic": 60, "Mid": 30, "High": 10}

SPECIES_BY_LEVEL: Dict[str, Tuple[str, ...]] = {
    "Basic": ("Horse", "Donkey", "Ostrich", "Mountain Goat", "Deer"),
    "Mid": ("Horse", "Donkey", "Bullbo", "Water Buffalo", "Wolfos"),
    "High": ("Horse", "Donkey", "Dodongo", "Moose", "Bear"),
}

SPECIES_HOME_REGION: Dict[str, str] = {
    "Ostrich": "Rudania",
    "Bullbo": "Rudania",
    "Dodongo": "Rudania",
    "Mountain Goat": "Inariko",
    "Water Buffalo": "Inariko",
    "Moose": "Inariko",
    "Deer": "Vhintl",
    "Wolfos": "Vhintl",
    "Bear": "Vhintl",
    "Horse": ALL_VILLAGES,
    "Donkey": ALL_VILLAGES,
}

SPECIES_EMOJI: Dict[str, str] = {
    "Horse": "🐴",
    "Donkey": "🍑",
    "Ostrich": "🦃",
    "Mountain Goat": "🐐",
    "Deer": "🦌",
    "Bullbo": "🐗",
    "Water Buffalo": "🐃",
    "Wolfos": "🐺",
    "Dodongo": "🐉",
    "Moose": "🍁",
    "Bear": "🐻",
}

# Rare mounts always roll the high stamina band
STAMINA_RANGES: Dict[str, Tuple[int, int]] = {
    "Basic": (1, 2),
    "Mid": (3, 4),
    "High": (5, 6),
    "Rare": (5, 6),
}

RARITY_REGULAR = "Regular"
RARITY_RARE = "Rare"
RARITY_DIE = 50

# ============================================================================
# MANEUVERS (defaults for config/mount.yaml)
# ============================================================================

DEFAULT_THRESHOLDS: Dict[str, int] = {
    "sneak": 5,
    "corner": 7,
    "rush": 17,
    "glide": 17,
    "distract": 7,
}

DEFAULT_GLIDE_BONUS = 3
DEFAULT_TAME_SUCCESS_FACE = 5
DEFAULT_TAME_STAMINA_COST = 1
DEFAULT_REGISTRATION_FEE = 20
NATURAL_TWENTY = 20
DISCOVERY_DIE = 20

# (environment, village) -> maneuver -> modifier
DEFAULT_ENVIRONMENT_MODIFIERS: Dict[Tuple[str, str], Dict[str, int]] = {
    ("Tall grass", "Rudania"): {"sneak": 1, "rush": -3},
    ("Mountainous", "Inariko"): {"corner": 4, "glide": 2},
}

# ============================================================================
# ITEMS
# ============================================================================

HERBIVORES: Tuple[str, ...] = (
    "Horse",
    "Donkey",
    "Deer",
    "Ostrich",
    "Mountain Goat",
    "Water Buffalo",
    "Bullbo",
    "Moose",
)
CARNIVORES: Tuple[str, ...] = ("Wolfos", "Bear", "Dodongo")

# item name -> (bonus, species it works on; None means every species)
DISTRACTION_ITEMS: Dict[str, Tuple[int, Tuple[str, ...] | None]] = {
    "Tree Branch": (1, None),
    "Korok Leaf": (1, None),
    "Rock Salt": (1, None),
    "Flint": (1, None),
    "Wood": (1, None),
    "Acorn": (1, None),
    "Chickaloo Tree Nut": (1, None),
    "Hornet Larvae": (1, None),
    "Tabantha Wheat": (2, HERBIVORES),
    "Hyrule Herb": (2, HERBIVORES),
    "Cane Sugar": (2, HERBIVORES),
    "Courser Bee Honey": (2, HERBIVORES + CARNIVORES),
    "Apple": (3, HERBIVORES),
    "Endura Carrot": (3, HERBIVORES),
    "Swift Carrot": (3, HERBIVORES),
    "Raw Bird Drumstick": (2, CARNIVORES),
    "Raw Bird Thigh": (2, CARNIVORES),
    "Raw Whole Bird": (2, CARNIVORES),
    "Raw Meat": (3, CARNIVORES),
    "Raw Prime Meat": (3, CARNIVORES),
    "Raw Gourmet Meat": (3, CARNIVORES),
}

# ============================================================================
# TRAITS
# ============================================================================

RARE_TRAIT_KEY = "rareColors"

_HORSE_TRAITS: Dict[str, List[str]] = {
    "coatMane": [
        "Black Coat + Black Mane",
        "Black Coat + White Mane",
        "Black Coat + Grey Mane",
        "Grey Coat + Black Mane",
        "Grey Coat + White Mane",
        "Grey Coat + Grey Mane",
        "Red Coat + Black Mane",
        "Red Coat + White Mane",
        "Red Coat + Red Mane",
        "Brown Coat + Black Mane",
        "Brown Coat + White Mane",
        "Brown Coat + Brown Mane",
        "Light Brown Coat + Black Mane",
        "Light Brown Coat + White Mane",
        "Light Brown Coat + Brown Mane",
        "Teal Coat + Black Mane",
        "Teal Coat + White Mane",
        "Light Blue Coat + White Mane",
        "Light Blue Coat + Blue Mane",
        "Light Blue Coat + Blonde Mane",
        "Pink Coat + Blonde Mane",
        "Pink Coat + White Mane",
        "Buckskin Coat + Black Mane",
        "Buckskin Coat + White Mane",
    ],
    "coatPattern": ["Solid", "Half and Half", "Some Spots", "Spotted Butt", "Full Spots (Dapple)"],
    "snoutPattern": ["Plain", "Star", "Stripe", "Blaze", "Snip"],
    "eyeColor": ["Brown", "Blue", "Green", "Grey", "Amber"],
    "muzzleColor": ["Pink and White", "Coat Color", "Darker", "Black", "White"],
    "hoofColor": ["Light Brown", "Brown", "Grey", "Black"],
    "ankleHairColor": ["White", "Black", "Coat Color, Darker", "Coat Color, Lighter"],
    "ankleHairStyle": ["Short", "Fluffy"],
}

_DONKEY_TRAITS: Dict[str, List[str]] = {
    "coatColor": ["Light Brown", "Brown", "Grey", "Red", "White and Grey", "Pink", "Teal"],
    "coatStyle": ["Regular", "Fluffy"],
    RARE_TRAIT_KEY: [
        "Full White, Regular or Fluffy",
        "Black, Regular or Fluffy",
        "Piebald, Regular or Fluffy",
        "Golden, Regular or Fluffy",
    ],
    "coatPattern": ["Solid", "Spotted", "Dun Stripe"],
}

_BOVINE_COMMON = [
    "Brown Male",
    "Brown Female",
    "Grey Male",
    "Grey Female",
    "Light Brown Male",
    "Light Brown Female",
]
_BOVINE_RARE = [
    "Piebald (M or F)",
    "Full White (M or F)",
    "Black (M or F)",
    "Teal (M or F)",
    "Golden (M or F)",
]


def _colors(common: List[str], rare: List[str]) -> Dict[str, List[str]]:
    return {"commonColors": list(common), RARE_TRAIT_KEY: list(rare)}


# Ordered: the customization protocol walks keys in this order
SPECIES_TRAITS: Dict[str, Dict[str, List[str]]] = {
    "Horse": _HORSE_TRAITS,
    "Donkey": _DONKEY_TRAITS,
    "Ostrich": _colors(
        ["Red and Yellow", "Black and Tan", "Brown", "Brown and Blue", "Black and Pink", "Full Black"],
        ["Yellow", "Cassowary", "Full White", "Brown with Spots", "Golden (Metallic)"],
    ),
    "Bullbo": _colors(
        ["Brown", "Tan", "Grey", "Black", "Red", "Olive"],
        ["Full White", "Red and Black (Ganon)", "Light Blue", "Piebald", "Golden"],
    ),
    "Dodongo": _colors(
        [
            "Green",
            "Brown",
            "Yellow",
            "Grey",
            "Blue",
            "Black with Red Tail",
            "Grey and Green",
            "Blue and Yellow",
            "Black with Yellow Mouth",
            "Yellow and Red",
        ],
        [
            "Full Red",
            "Full White",
            "Full Black",
            "Full Pink (Kodongo)",
            "Grey and Red (Dongorongo)",
            "Golden",
        ],
    ),
    "Mountain Goat": _colors(
        [
            "White and Light Brown",
            "Teal",
            "White with Spots",
            "Teal with Spots",
            "Tricolor",
            "Brown",
            "Brown and Black",
            "Grey",
            "Grey with Spots",
            "Brown with Spots",
            "Light Brown",
            "Light Brown with Spots",
            "Black",
            "Black and White",
        ],
        [
            "Ordon Goat (Blue)",
            "Ordon Goat (White)",
            "Ordon Goat (Golden)",
            "Markhor Goat (White)",
            "Markhor Goat (Black)",
            "Full White",
        ],
    ),
    "Water Buffalo": _colors(_BOVINE_COMMON, _BOVINE_RARE),
    "Deer": _colors(
        [
            "Brown Male",
            "Brown Female",
            "Red Male",
            "Red Female",
            "Brown with Spots Male",
            "Brown with Spots Female",
        ],
        [
            "Full White (M or F)",
            "White with Spots (M or F)",
            "Black (M or F)",
            "Piebald (M or F)",
            "Golden (M or F)",
        ],
    ),
    "Wolfos": _colors(
        ["Grey", "White", "Blue", "Black", "Brown", "Red"],
        [
            "Golden",
            "Olive",
            "Wosu (White with Darker Stripes)",
            "Frost (White with Icey Aura)",
        ],
    ),
    "Bear": _colors(
        [
            "Full Black",
            "Brown with Honey Colored Snout",
            "Full Brown",
            "Black with Tan Snout",
            "Blonde",
            "Cinnamon",
        ],
        ["Light Blue", "Full White", "Piebald", "Grey (Glacier)", "Golden"],
    ),
    "Moose": _colors(_BOVINE_COMMON, _BOVINE_RARE),
}

TRAIT_PRICES: Dict[str, Dict[str, int]] = {
    "Horse": {
        "coatMane": 100,
        "coatPattern": 20,
        "snoutPattern": 20,
        "eyeColor": 20,
        "muzzleColor": 10,
        "ankleHairColor": 10,
        "hoofColor": 10,
        "ankleHairStyle": 5,
    },
    "Donkey": {"coatColor": 60, "coatStyle": 20, "coatPattern": 20},
}
DEFAULT_TRAIT_PRICES: Dict[str, int] = {"commonColors": 100}

# ============================================================================
# STABLE
# ============================================================================

BASE_MOUNT_PRICES: Dict[str, int] = {"Basic": 50, "Mid": 100, "High": 250}
REGIONAL_PRICE_BONUS = 50
RARE_PRICE_MULTIPLIER = 2
MOUNT_NAME_MAX_LENGTH = 64
