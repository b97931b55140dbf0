"""
Role names stored in the roles table.
A user may hold more than one of them.
"""

CITIZEN = "CITIZEN"
STAFF = "STAFF"
ADMIN = "ADMIN"

ALL_ROLES = (CITIZEN, STAFF, ADMIN)
