"""Catalog app package.

Reference data the scheduling engine reads: rentable products and their
physical units, delivery crews with weekly shift templates, bookable time
slots and blackout dates.
"""
