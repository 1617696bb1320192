"""
Management command to seed system modules and the default permission matrix.

Creates every SystemModule and the default (role, module) capability rows.
Existing rows are left untouched unless --overwrite is given, so matrix
edits made through the API survive a re-run. Idempotent and safe to re-run.
"""
from django.core.management.base import BaseCommand
from django.db import transaction

from apps.roles.models import ModulePermission, RoleAuditLog, SystemModule
from apps.roles.policy import Role
from apps.roles.services.permission_matrix import CAPABILITIES

# Capability letters: r=read, c=create, u=update, d=delete, a=approve
LETTERS = dict(zip('rcuda', CAPABILITIES))


def _expand(letters):
    return {f'can_{LETTERS[letter]}': True for letter in letters}


class Command(BaseCommand):
    help = 'Seed system modules and the default role permission matrix (idempotent)'

    MODULES = [
        ('announcements', 'Announcements', 'Community announcements and polls'),
        ('bookings', 'Bookings', 'Facility bookings'),
        ('cctv', 'CCTV', 'Camera streams and recordings'),
        ('complaints', 'Complaints', 'Complaints and escalations'),
        ('discussions', 'Discussions', 'Community discussion boards'),
        ('events', 'Events', 'Community events'),
        ('facilities', 'Facilities', 'Facility catalogue and maintenance'),
        ('marketplace', 'Marketplace', 'Resident marketplace listings'),
        ('role_management', 'Role Management', 'Role assignments, requests and the permission matrix'),
        ('security', 'Security', 'Guard operations and incident reports'),
        ('service_requests', 'Service Requests', 'Requests for service providers'),
        ('visitor_management', 'Visitor Management', 'Visitor registration and gate passes'),
    ]

    _RESIDENT = {
        'announcements': 'r', 'bookings': 'rc', 'complaints': 'rc', 'discussions': 'rc',
        'events': 'r', 'facilities': 'r', 'marketplace': 'rcu', 'service_requests': 'rc',
        'visitor_management': 'rc',
    }
    _COMMUNITY_ADMIN = {
        'announcements': 'rcuda', 'bookings': 'rcuda', 'cctv': 'r', 'complaints': 'rcuda',
        'discussions': 'rcuda', 'events': 'rcuda', 'facilities': 'rcuda', 'marketplace': 'rcuda',
        'role_management': 'rca', 'security': 'r', 'service_requests': 'rcuda',
        'visitor_management': 'rcuda',
    }
    _FULL = {name: 'rcuda' for name, _, _ in MODULES}

    DEFAULT_MATRIX = {
        Role.RESIDENT: _RESIDENT,
        Role.COMMUNITY_LEADER: {**_RESIDENT, 'announcements': 'rc', 'events': 'rcu', 'discussions': 'rcu'},
        Role.SERVICE_PROVIDER: {**_RESIDENT, 'service_requests': 'ru', 'marketplace': 'rcud'},
        Role.SECURITY: {
            **_RESIDENT, 'cctv': 'r', 'security': 'rcu', 'visitor_management': 'rcua',
        },
        Role.FACILITY_MANAGER: {
            **_RESIDENT, 'facilities': 'rcu', 'bookings': 'rcua', 'complaints': 'rcu',
            'service_requests': 'rcua',
        },
        Role.COMMUNITY_ADMIN: _COMMUNITY_ADMIN,
        Role.DISTRICT_COORDINATOR: {**_COMMUNITY_ADMIN, 'cctv': 'rcu', 'security': 'rcu', 'role_management': 'rcua'},
        Role.STATE_ADMIN: _FULL,
        Role.ADMIN: _FULL,
    }

    def add_arguments(self, parser):
        parser.add_argument(
            '--overwrite',
            action='store_true',
            help='Reset existing matrix rows to the defaults',
        )

    @transaction.atomic
    def handle(self, *args, **options):
        overwrite = options.get('overwrite', False)

        self.stdout.write('Seeding system modules...\n')
        modules = {}
        for name, display_name, description in self.MODULES:
            module, created = SystemModule.objects.get_or_create(
                name=name,
                defaults={'display_name': display_name, 'description': description},
            )
            if not created and (module.display_name, module.description) != (display_name, description):
                module.display_name = display_name
                module.description = description
                module.save(update_fields=['display_name', 'description', 'updated_at'])
            modules[name] = module
            self.stdout.write(
                self.style.SUCCESS(f'Created: {name}') if created else f'  Exists: {name}'
            )

        self.stdout.write('\nSeeding permission matrix...\n')
        created_count = 0
        reset_count = 0
        for role, grants in self.DEFAULT_MATRIX.items():
            for module_name, module in modules.items():
                values = {f'can_{cap}': False for cap in CAPABILITIES}
                values.update(_expand(grants.get(module_name, '')))

                row = ModulePermission.objects.filter(role=role, module=module).first()
                if row is None:
                    if not any(values.values()):
                        continue
                    row = ModulePermission.objects.create(role=role, module=module, **values)
                    created_count += 1
                elif overwrite and any(getattr(row, key) != value for key, value in values.items()):
                    for key, value in values.items():
                        setattr(row, key, value)
                    row.save()
                    reset_count += 1
                else:
                    continue

                RoleAuditLog.record(
                    'permission_changed',
                    target_id=row.id,
                    metadata={
                        'role': str(role),
                        'module': module_name,
                        'capabilities': values,
                        'trigger': 'seed_role_permissions',
                    },
                )

        self.stdout.write(
            self.style.SUCCESS(
                f'\nSeeding complete: {len(modules)} modules, '
                f'{created_count} matrix rows created, {reset_count} reset'
            )
        )
