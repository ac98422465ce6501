"""
Built-in events of the city tick.

Each module wraps one group of system functions:

- production.py → resource pool clock, building state machines
- research.py → research progress, tech effects
- labor.py → worker re-allocation, experience
- population.py → growth, happiness, promotions, demotions, migration
- market.py → local events, prices, consumption
- calendar.py → day/month boundaries, taxation signal
"""

from citysim.events.calendar import AdvanceCalendar
from citysim.events.labor import LaborAccumulateExperience, LaborReevaluateAssignments
from citysim.events.market import (
    FluctuatePrices,
    ProcessPopulationConsumption,
    PurgeLocalEvents,
    TriggerRandomEvents,
)
from citysim.events.population import (
    CheckDemotions,
    CheckMigration,
    CheckPromotions,
    PopulationGrowth,
    UpdateHappiness,
)
from citysim.events.production import BuildingsUpdateProduction, UpdateResourcePool
from citysim.events.research import UpdateResearch

__all__ = [
    # Production (2)
    "UpdateResourcePool",
    "BuildingsUpdateProduction",
    # Research (1)
    "UpdateResearch",
    # Labor (2)
    "LaborReevaluateAssignments",
    "LaborAccumulateExperience",
    # Population (5)
    "PopulationGrowth",
    "UpdateHappiness",
    "CheckPromotions",
    "CheckDemotions",
    "CheckMigration",
    # Market (4)
    "PurgeLocalEvents",
    "TriggerRandomEvents",
    "FluctuatePrices",
    "ProcessPopulationConsumption",
    # Clock (1)
    "AdvanceCalendar",
]
