"""ORM models; importing this package registers every table."""

from starbridge.models.campaign_db import Campaign, PlayerSlot
from starbridge.models.contact_db import Contact
from starbridge.models.crew_health_db import CrewCondition, CrewHealth, CrewWound
from starbridge.models.fuel_source_db import FuelSource
from starbridge.models.order_db import Order
from starbridge.models.passenger_db import Passenger, PassengerDemand
from starbridge.models.ship_db import Ship
from starbridge.models.ship_log_db import ShipLogEntry
from starbridge.models.transmission_db import Transmission

__all__ = [
    "Campaign",
    "Contact",
    "CrewCondition",
    "CrewHealth",
    "CrewWound",
    "FuelSource",
    "Order",
    "Passenger",
    "PassengerDemand",
    "PlayerSlot",
    "Ship",
    "ShipLogEntry",
    "Transmission",
]
