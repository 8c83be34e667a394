"""Claims Workbench: damage assessment policy engine."""

__version__ = "0.1.0"
