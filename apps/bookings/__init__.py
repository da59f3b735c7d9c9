"""Bookings app package.

Confirmed and staff-entered rentals, their lifecycle, payment webhook
handling and rescheduling. Every booking owns the blocks that keep its
unit and crews occupied; blocks are written through the guarded insert of
the scheduling app, so two bookings can never share a resource.
"""
