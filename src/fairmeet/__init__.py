"""FairMeet: fair meeting-venue recommendations for groups."""

__version__ = "0.1.0"
