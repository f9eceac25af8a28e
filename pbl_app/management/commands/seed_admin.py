from django.core.management.base import BaseCommand, CommandError
from django.db import DatabaseError

from pbl_app.services import ensure_admin_user


class Command(BaseCommand):
    help = 'Create the programme administrator, or reset its password if it already exists'

    def add_arguments(self, parser):
        parser.add_argument('--username', type=str, help='Administrator username (defaults to PBL_ADMIN_USERNAME)')
        parser.add_argument('--password', type=str, help='Administrator password (defaults to PBL_ADMIN_PASSWORD)')

    def handle(self, *args, **options):
        try:
            user, created = ensure_admin_user(options.get('username'), options.get('password'))
        except DatabaseError as e:
            raise CommandError(f"Failed to seed administrator: {str(e)}")

        if created:
            self.stdout.write(self.style.SUCCESS(f"Created administrator: {user.username}"))
        else:
            self.stdout.write(self.style.WARNING(f"Administrator {user.username} already exists. Password updated."))
