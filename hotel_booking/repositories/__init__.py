"""
Data access layer. Services go through these functions instead of building
queries themselves; booking_repository is the only module that writes
booking rows.
"""
