from enum import Enum


class TableNames(str, Enum):
    INVITATION_UNITS = "invitation_units"
    GUESTS = "guests"
