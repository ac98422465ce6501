"""State containers of the city."""

from citysim.roles.building import Building, BuildingListener, BuildingState
from citysim.roles.labor import LaborMarket, SocialClass, WorkerProfession
from citysim.roles.market import LocalEvent, PricedGood, PricedService, TradeMarket
from citysim.roles.research import ResearchProject, ResearchState
from citysim.roles.resource_pool import ProductionChain, Resource, ResourcePool

__all__ = [
    "Building",
    "BuildingListener",
    "BuildingState",
    "LaborMarket",
    "LocalEvent",
    "PricedGood",
    "PricedService",
    "ResearchProject",
    "ResearchState",
    "ProductionChain",
    "Resource",
    "ResourcePool",
    "SocialClass",
    "TradeMarket",
    "WorkerProfession",
]
