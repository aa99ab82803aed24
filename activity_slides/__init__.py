"""Activity slide helper: control-state derivation and paced slide insertion."""

__version__ = "0.4.0"
