"""Scheduling app package.

Owns resource occupancy (booking blocks, their quantised slices and soft
holds) and the availability engine that reads it. Overlapping claims on a
unit or crew are rejected by a unique index on the slices, so two checkouts
racing for the same window cannot both succeed whatever the application
pre-checks concluded.
"""
