import sys

from django.apps import AppConfig
from django.conf import settings


class StandingsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "standings"
    verbose_name = "Leaderboard Standings"

    def ready(self):
        # Don't start the scheduler during management commands or test runs
        skip_commands = {
            "migrate",
            "makemigrations",
            "collectstatic",
            "createsuperuser",
            "shell",
            "test",
        }
        if any(cmd in sys.argv for cmd in skip_commands):
            return
        if "pytest" in sys.modules:
            return
        if not settings.STANDINGS_SCHEDULER_ENABLED:
            return

        from .scheduler import start_scheduler

        start_scheduler()
