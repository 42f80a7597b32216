from enum import Enum


class DistanceMethod(str, Enum):
    ROUTED = "routed"
    STRAIGHT_LINE = "straight_line"


class AddressRole(str, Enum):
    START = "start"
    END = "end"
