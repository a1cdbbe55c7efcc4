"""Client for the schematic evaluator travel time job API."""

__version__ = "0.1.0"
