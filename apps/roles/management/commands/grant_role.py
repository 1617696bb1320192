"""
Management command to grant a role to a user as the system.

Used to bootstrap the first administrators, who then grant roles through
the API. The grant is audited with no performing user.
"""
from django.core.management.base import BaseCommand, CommandError

from apps.accounts.models import User
from apps.core.exceptions import ConflictError
from apps.districts.models import District
from apps.roles.policy import Role
from apps.roles.services.assignment_service import RoleAssignmentService


class Command(BaseCommand):
    help = 'Grant a role to a user (system grant, audited)'

    def add_arguments(self, parser):
        parser.add_argument(
            '--email',
            type=str,
            required=True,
            help='User email address',
        )
        parser.add_argument(
            '--role',
            type=str,
            required=True,
            choices=Role.values,
            help='Role to grant',
        )
        parser.add_argument(
            '--district',
            type=str,
            help='District code to scope the role to (platform-wide when omitted)',
        )
        parser.add_argument(
            '--reason',
            type=str,
            default='Granted from the command line',
        )

    def handle(self, *args, **options):
        user = User.objects.by_email(options['email'])
        if user is None:
            raise CommandError(f"User '{options['email']}' not found")

        district = None
        if options.get('district'):
            district = District.objects.get_by_code(options['district'])
            if district is None:
                raise CommandError(f"District '{options['district']}' not found")

        try:
            assignment = RoleAssignmentService.admin_grant(
                user,
                options['role'],
                granted_by=None,
                district=district,
                reason=options['reason'],
            )
        except ConflictError as e:
            raise CommandError(e.message)

        scope = district.code if district else 'platform-wide'
        self.stdout.write(
            self.style.SUCCESS(f"Granted {assignment.role} to {user.email} ({scope})")
        )
