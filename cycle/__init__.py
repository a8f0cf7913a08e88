"""Period records, symptom encoding and active-period resolution."""

__version__ = "0.1.0"
