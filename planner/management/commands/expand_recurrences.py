"""
Management command to list the occurrences stored bookings produce in a window.

Recurring bookings are stored as templates; this prints what the calendar
would show, which helps when checking a rule before a busy week.
"""

from datetime import date, datetime, time, timedelta

from django.core.management.base import BaseCommand, CommandError

from planner import services
from planner.recurrence import expand


class Command(BaseCommand):
    help = 'Expand stored bookings (including recurring templates) over a date window'

    def add_arguments(self, parser):
        parser.add_argument(
            '--start',
            type=date.fromisoformat,
            default=None,
            help='First day of the window, YYYY-MM-DD (default: today)'
        )
        parser.add_argument(
            '--end',
            type=date.fromisoformat,
            default=None,
            help='Last day of the window, YYYY-MM-DD (default: start + 6 days)'
        )

    def handle(self, *args, **options):
        first_day = options['start'] or date.today()
        last_day = options['end'] or first_day + timedelta(days=6)
        if last_day < first_day:
            raise CommandError('--end must not be before --start')

        window_start = datetime.combine(first_day, time.min)
        window_end = datetime.combine(last_day, time.max)

        self.stdout.write(
            f'Expanding bookings from {first_day} to {last_day}...'
        )

        instances = expand(services.load_events(window_start, window_end), window_start, window_end)
        for instance in instances:
            when = 'all day' if instance.all_day else instance.start.strftime('%H:%M')
            self.stdout.write(
                f'{instance.start.date()} {when} {instance.title} ({instance.id})'
            )

        self.stdout.write(
            self.style.SUCCESS(
                f'Found {len(instances)} occurrence(s)'
            )
        )
