from django.core.management.base import BaseCommand

from rentals.services import refresh_statuses


class Command(BaseCommand):
    help = 'Rewrite stored rental statuses so active/overdue match the current time'

    def handle(self, *args, **options):
        overdue, active = refresh_statuses()
        self.stdout.write(self.style.SUCCESS(f"{overdue} marked overdue, {active} marked active"))
