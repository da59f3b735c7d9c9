from django.apps import AppConfig


class BookingsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.bookings"

    def ready(self) -> None:
        from shared.application.message_bus import message_bus

        from .application.command_handlers import HANDLERS
        from .handlers import register_event_handlers

        for command_type, handler in HANDLERS.items():
            message_bus.register_command_handler(command_type, handler)
        register_event_handlers(message_bus)
