"""Detection: fetch a stream page and decide whether it is live."""

from livesheet.detection.detector import StatusDetector
from livesheet.detection.mock import MockDetector

__all__ = ["MockDetector", "StatusDetector"]
