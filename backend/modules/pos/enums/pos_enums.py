from enum import Enum


class POSVendor(str, Enum):
    SQUARE = "square"
