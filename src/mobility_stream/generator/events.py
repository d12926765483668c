"""
Mobility event schema and synthetic event factory.

Events are published as camelCase JSON:

    {
        "eventId": "1b4e28ba-2fa1-4d3b-a3f5-ef19b5a7633b",
        "timestamp": "2026-10-19T14:30:00.123456",
        "vehicleId": "VH-427",
        "latitude": 40.7321,
        "longitude": -74.0255,
        "speed": 63.2,
        "eventType": "SPEED_CHANGE"
    }
"""

import random
import uuid
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Events are scattered around lower Manhattan
BASE_LATITUDE = 40.7128
BASE_LONGITUDE = -74.0060
COORDINATE_SPREAD = 0.1
MAX_SPEED = 120.0
VEHICLE_FLEET_SIZE = 1000
VEHICLE_ID_PREFIX = "VH-"


class EventType(str, Enum):
    LOCATION_UPDATE = "LOCATION_UPDATE"
    SPEED_CHANGE = "SPEED_CHANGE"
    TRAFFIC_ALERT = "TRAFFIC_ALERT"
    PARKING = "PARKING"


class MobilityEvent(BaseModel):
    """A single vehicle telemetry reading.

    Attributes:
        event_id: Version-4 UUID string
        timestamp: Local wall-clock time the event was produced (naive)
        vehicle_id: Vehicle identifier, used as the message key
        latitude: Degrees, within COORDINATE_SPREAD / 2 of BASE_LATITUDE
        longitude: Degrees, within COORDINATE_SPREAD / 2 of BASE_LONGITUDE
        speed: km/h in [0, MAX_SPEED)
        event_type: Kind of telemetry reading
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    event_id: str = Field(..., min_length=1)
    timestamp: datetime
    vehicle_id: str = Field(..., min_length=1)
    latitude: float
    longitude: float
    speed: float = Field(..., ge=0)
    event_type: EventType

    def to_json_bytes(self) -> bytes:
        return self.model_dump_json(by_alias=True).encode("utf-8")


def produce_event(rand: random.Random, now: datetime) -> MobilityEvent:
    """Build one synthetic event.

    Every random field, including the event id, is drawn from ``rand`` so
    that a seeded generator reproduces the same sequence of events.
    """
    event_id = uuid.UUID(int=rand.getrandbits(128), version=4)
    vehicle_id = f"{VEHICLE_ID_PREFIX}{rand.randrange(VEHICLE_FLEET_SIZE)}"
    latitude = BASE_LATITUDE + (rand.random() - 0.5) * COORDINATE_SPREAD
    longitude = BASE_LONGITUDE + (rand.random() - 0.5) * COORDINATE_SPREAD
    speed = rand.random() * MAX_SPEED
    event_type = rand.choice(list(EventType))

    return MobilityEvent(
        event_id=str(event_id),
        timestamp=now,
        vehicle_id=vehicle_id,
        latitude=latitude,
        longitude=longitude,
        speed=speed,
        event_type=event_type,
    )


__all__ = [
    "EventType",
    "MobilityEvent",
    "produce_event",
]
