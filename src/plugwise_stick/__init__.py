"""Protocol engine for Plugwise Circles attached through a Stick."""

__version__ = "0.1.0"
