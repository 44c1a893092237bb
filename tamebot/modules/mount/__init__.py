"""
Mount Module
============

Wild mount encounters: discovery, capture maneuvers, taming, trait
customization and registration into the stable.

Services
--------
- MountEncounterService: runs an encounter interaction by interaction
- SqlEncounterStore / SqlMountRegistry: persistence of encounters and mounts
"""

from .catalog import SpeciesCatalog, SpeciesProfile
from .encounter import Encounter, EncounterState
from .repository import SqlEncounterStore, SqlMountRegistry
from .resolver import Maneuver, ResolverSettings
from .service import MountEncounterService
from .steps import Step, StepAction, StepKind

__all__ = [
    "Encounter",
    "EncounterState",
    "Maneuver",
    "MountEncounterService",
    "ResolverSettings",
    "SpeciesCatalog",
    "SpeciesProfile",
    "SqlEncounterStore",
    "SqlMountRegistry",
    "Step",
    "StepAction",
    "StepKind",
]
