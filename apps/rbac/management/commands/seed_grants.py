"""
Management command to seed the grant catalog.

Creates one Grant per (resource, action) pair the API enforces. Roles may
still reference grants outside this catalog; those are created on first use.
This command is idempotent and safe to re-run.
"""
from django.core.management.base import BaseCommand
from apps.rbac.models import Grant


class Command(BaseCommand):
    help = 'Seed the canonical grant catalog (idempotent)'

    RESOURCES = [
        'operators',
        'users',
        'roles',
        'audit',
        'drivers',
        'vehicles',
        'trucks',
        'clients',
        'providers',
        'routes',
        'operations',
    ]

    ACTIONS = ['create', 'read', 'update', 'delete']

    @classmethod
    def canonical_grants(cls):
        return [(resource, action) for resource in cls.RESOURCES for action in cls.ACTIONS]

    @classmethod
    def seed(cls):
        """Ensure every catalog grant exists. Returns (grants, created_count)."""
        grants = []
        created_count = 0
        for resource, action in cls.canonical_grants():
            grant, created = Grant.objects.get_or_create_grant(resource, action)
            grants.append(grant)
            if created:
                created_count += 1
        return grants, created_count

    def handle(self, *args, **options):
        self.stdout.write('Seeding grant catalog...\n')

        grants, created_count = self.seed()

        self.stdout.write(
            self.style.SUCCESS(
                f'✓ Seeding complete: {created_count} created, '
                f'{len(grants) - created_count} unchanged'
            )
        )

        self.stdout.write('\n' + '=' * 50)
        for resource in self.RESOURCES:
            actions = Grant.objects.filter(resource=resource).order_by('action').values_list('action', flat=True)
            self.stdout.write(f'  {resource:<12} {", ".join(actions)}')
        self.stdout.write(f'\nTotal grants: {Grant.objects.count()}')
