from enum import Enum


class Role(str, Enum):
    """Access roles. Capture operators create scans, reviewers read and export them."""

    CAPTURE = "capture"
    REVIEW = "review"


class ScanType(str, Enum):
    RGB = "RGB"


class Region(str, Enum):
    FRONTAL = "Frontal"
    UPPER_ARCH = "Upper Arch"
    LOWER_ARCH = "Lower Arch"
