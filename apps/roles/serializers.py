"""
Roles serializers for REST API endpoints.

Provides serialization for:
- Role catalog entries and approval policies
- Role assignments
- Role change requests and their review
- Permission matrix rows
- Role audit log entries
"""
from rest_framework import serializers

from apps.accounts.models import User
from apps.districts.models import District
from apps.roles.models import (
    ModulePermission, RequestStatus, RoleAuditLog, RoleChangeRequest,
    SystemModule, UserRoleAssignment,
)
from apps.roles.policy import Role
from apps.roles.services.permission_matrix import CAPABILITIES


class UserSummarySerializer(serializers.ModelSerializer):
    """Minimal user representation embedded in role payloads."""

    full_name = serializers.CharField(source='get_full_name', read_only=True)

    class Meta:
        model = User
        fields = ['id', 'email', 'full_name']
        read_only_fields = fields


class DistrictSummarySerializer(serializers.ModelSerializer):

    class Meta:
        model = District
        fields = ['id', 'name', 'code', 'state']
        read_only_fields = fields


class RoleDefinitionSerializer(serializers.Serializer):
    """Serializer for one ROLE_CATALOG entry."""

    role = serializers.CharField()
    label = serializers.SerializerMethodField()
    level = serializers.IntegerField()
    permission_level = serializers.CharField()
    targets = serializers.SerializerMethodField()
    approver = serializers.CharField()
    requirements = serializers.ListField(child=serializers.CharField())

    def get_label(self, obj):
        return Role(obj.role).label

    def get_targets(self, obj):
        return sorted(str(target) for target in obj.targets)


class ApprovalPolicySerializer(serializers.Serializer):
    current_role = serializers.CharField()
    requested_role = serializers.CharField()
    required_approver_role = serializers.CharField()
    approval_requirements = serializers.ListField(child=serializers.CharField())


class UserRoleAssignmentSerializer(serializers.ModelSerializer):
    """Serializer for UserRoleAssignment model."""

    user = UserSummarySerializer(read_only=True)
    assigned_by = UserSummarySerializer(read_only=True)
    district = DistrictSummarySerializer(read_only=True)

    class Meta:
        model = UserRoleAssignment
        fields = [
            'id', 'user', 'role', 'is_active', 'assigned_by',
            'assigned_at', 'district', 'updated_at',
        ]
        read_only_fields = fields


class RoleAssignmentCreateSerializer(serializers.Serializer):
    """Serializer for an administrative role grant."""

    user_id = serializers.UUIDField(required=True)
    role = serializers.ChoiceField(choices=Role.choices, required=True)
    district_id = serializers.UUIDField(required=False, allow_null=True)
    reason = serializers.CharField(required=False, allow_blank=True, default='')

    def validate_user_id(self, value):
        user = User.objects.active().filter(id=value).first()
        if user is None:
            raise serializers.ValidationError(f"User '{value}' does not exist")
        return value

    def validate_district_id(self, value):
        if value is None:
            return value
        if not District.objects.active().filter(id=value).exists():
            raise serializers.ValidationError(f"District '{value}' does not exist")
        return value


class RoleAssignmentActiveSerializer(serializers.Serializer):
    is_active = serializers.BooleanField(required=True)
    reason = serializers.CharField(required=False, allow_blank=True, default='')


class AttachmentFailureSerializer(serializers.Serializer):
    filename = serializers.CharField()
    code = serializers.CharField()
    message = serializers.CharField()
    retryable = serializers.BooleanField()


class RoleChangeRequestSerializer(serializers.ModelSerializer):
    """Serializer for RoleChangeRequest model."""

    requester = UserSummarySerializer(read_only=True)
    target_user = UserSummarySerializer(read_only=True)
    reviewed_by = UserSummarySerializer(read_only=True)
    district = DistrictSummarySerializer(read_only=True)

    class Meta:
        model = RoleChangeRequest
        fields = [
            'id', 'requester', 'target_user', 'request_type',
            'current_role', 'requested_role', 'reason', 'justification',
            'attachments', 'required_approver_role', 'approval_requirements',
            'status', 'reviewed_by', 'reviewer_role', 'reviewed_at',
            'rejection_reason', 'district', 'created_at', 'updated_at',
        ]
        read_only_fields = fields


class RoleChangeRequestCreateSerializer(serializers.Serializer):
    """Serializer for submitting a role change request."""

    requested_role = serializers.ChoiceField(choices=Role.choices, required=True)
    reason = serializers.CharField(required=True, max_length=2000)
    justification = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    attachments = serializers.ListField(
        child=serializers.FileField(allow_empty_file=True),
        required=False,
        default=list,
        help_text="Supporting documents (PDF, DOC, DOCX, JPEG, PNG; 10 MB each)"
    )

    def validate_reason(self, value):
        if not value.strip():
            raise serializers.ValidationError("Reason cannot be empty.")
        return value.strip()


class RoleChangeRequestReviewSerializer(serializers.Serializer):
    """Serializer for approving or rejecting a role change request."""

    decision = serializers.ChoiceField(
        choices=[RequestStatus.APPROVED, RequestStatus.REJECTED],
        required=True
    )
    reviewer_role = serializers.ChoiceField(choices=Role.choices, required=True)
    rejection_reason = serializers.CharField(required=False, allow_blank=True, default='')

    def validate(self, attrs):
        if attrs['decision'] == RequestStatus.REJECTED and not attrs.get('rejection_reason', '').strip():
            raise serializers.ValidationError({
                'rejection_reason': "A reason is required when rejecting a request."
            })
        return attrs


class StartReviewSerializer(serializers.Serializer):
    reviewer_role = serializers.ChoiceField(choices=Role.choices, required=True)


class SystemModuleSerializer(serializers.ModelSerializer):

    class Meta:
        model = SystemModule
        fields = ['id', 'name', 'display_name', 'description', 'is_active']
        read_only_fields = fields


class ModulePermissionSerializer(serializers.ModelSerializer):
    """Serializer for one permission matrix row."""

    module = serializers.CharField(source='module.name', read_only=True)

    class Meta:
        model = ModulePermission
        fields = [
            'id', 'role', 'module', 'can_read', 'can_create',
            'can_update', 'can_delete', 'can_approve', 'updated_at',
        ]
        read_only_fields = fields


class PermissionSetSerializer(serializers.Serializer):
    """Serializer for flipping one capability of one matrix cell."""

    role = serializers.ChoiceField(choices=Role.choices, required=True)
    module = serializers.SlugField(required=True)
    capability = serializers.ChoiceField(choices=list(CAPABILITIES), required=True)
    value = serializers.BooleanField(required=True)


class RoleAuditLogSerializer(serializers.ModelSerializer):
    """Serializer for RoleAuditLog model."""

    user_email = serializers.EmailField(source='user.email', read_only=True, default=None)
    performed_by_email = serializers.EmailField(source='performed_by.email', read_only=True, default=None)
    district_code = serializers.CharField(source='district.code', read_only=True, default=None)

    class Meta:
        model = RoleAuditLog
        fields = [
            'id', 'action', 'user', 'user_email', 'old_role', 'new_role',
            'performed_by', 'performed_by_email', 'reason', 'district',
            'district_code', 'target_id', 'metadata', 'created_at',
        ]
        read_only_fields = fields
