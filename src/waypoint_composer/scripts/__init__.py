"""
Waypoint Composer Scripts Package

This package contains command-line scripts for editing waypoint flight plans
without the interactive map editor.

Available scripts:
- edit_flight_plan: Select, move, rotate, batch-edit and reverse waypoints in a CSV
"""

__version__ = "0.1.0"
__all__ = ["edit_flight_plan"]
