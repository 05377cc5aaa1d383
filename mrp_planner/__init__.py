"""MRP planner: component inventory projection from forecasts and BOMs."""

__version__ = "0.1.0"
