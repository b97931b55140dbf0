"""
Issue lifecycle statuses seeded into the statuses lookup table.
Transitions are not enforced; any seeded status may be set on update.
"""

OPEN = "OPEN"
IN_PROGRESS = "IN_PROGRESS"
RESOLVED = "RESOLVED"

ISSUE_STATUSES = (OPEN, IN_PROGRESS, RESOLVED)
