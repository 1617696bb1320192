"""
Roles signals.

Keeps the cached active-role set of a user consistent with assignment rows
changed outside RoleAssignmentService (Django admin edits, cascading user
deletion).
"""
from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver


@receiver(post_save, sender='roles.UserRoleAssignment')
@receiver(post_delete, sender='roles.UserRoleAssignment')
def invalidate_active_roles_cache(sender, instance, **kwargs):
    # Import here to avoid circular imports
    from apps.roles.services.assignment_service import RoleAssignmentService

    RoleAssignmentService.invalidate_cache(instance.user_id)
