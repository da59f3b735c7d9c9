"""
Shared kernel

Domain base classes, value objects, the unit of work and the message bus
used by the catalog, scheduling and bookings apps.
"""
