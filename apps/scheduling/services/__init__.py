"""Scheduling services: availability queries, holds and guarded block writes."""
