import enum


class MovementType(str, enum.Enum):
    receipt = "RECEIPT"
    sale = "SALE"


class OrderStatus(str, enum.Enum):
    draft = "DRAFT"
    submitted = "SUBMITTED"
    received = "RECEIVED"
    cancelled = "CANCELLED"


class BaseUnit(str, enum.Enum):
    volume = "volume"
    mass = "mass"
    count = "count"
