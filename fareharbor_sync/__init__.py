"""FareHarbor booking webhook receiver."""

__version__ = "1.0.0"
