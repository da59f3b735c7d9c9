import os

from celery import Celery
from celery.schedules import crontab  # type: ignore

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings.dev")

app = Celery("bounce_rentals")

app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()


# ============================================================================
# CELERY BEAT SCHEDULE (Periodic Tasks)
# ============================================================================

app.conf.beat_schedule = {
    # Expired soft holds are ignored by every read; this only keeps tables small
    "purge-expired-holds": {
        "task": "scheduling.purge_expired_holds",
        "schedule": 300.0,
        "options": {"expires": 290},
    },
    # Bookings whose pickup leg is over move to completed
    "complete-finished-bookings": {
        "task": "bookings.complete_finished_bookings",
        "schedule": crontab(minute=15),
    },
}

app.conf.timezone = "America/New_York"
