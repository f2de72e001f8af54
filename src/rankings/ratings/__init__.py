"""Rating-system modules."""

from rankings.ratings.protocol import DiagnosticSink, Division, Level, level_for_division

__all__ = ["DiagnosticSink", "Division", "Level", "level_for_division"]
