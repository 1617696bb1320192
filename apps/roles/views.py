"""
Roles REST API views.

Implements endpoints for:
- Role catalog, the caller's roles and reachable targets
- Role change requests (submit, review, cancel, approver queue)
- Role assignments (administrative grant, revoke, activation)
- Permission matrix and effective permissions
- Role audit log viewing
- Service readiness
"""
import logging

from rest_framework import status
from rest_framework.pagination import PageNumberPagination
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from drf_spectacular.utils import extend_schema, extend_schema_view, OpenApiParameter, OpenApiExample
from drf_spectacular.types import OpenApiTypes

from django.core.cache import cache
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import connection

from apps.accounts.models import User
from apps.core.exceptions import NotFoundError, ValidationError
from apps.core.permissions import requires_capability
from apps.districts.models import District
from apps.roles.models import ModulePermission, SystemModule, UserRoleAssignment
from apps.roles.policy import Role, approval_policy_resolver, role_hierarchy
from apps.roles.serializers import (
    ApprovalPolicySerializer, AttachmentFailureSerializer, ModulePermissionSerializer,
    PermissionSetSerializer, RoleAssignmentActiveSerializer, RoleAssignmentCreateSerializer,
    RoleAuditLogSerializer, RoleChangeRequestCreateSerializer, RoleChangeRequestReviewSerializer,
    RoleChangeRequestSerializer, RoleDefinitionSerializer, StartReviewSerializer,
    UserRoleAssignmentSerializer,
)
from apps.roles.services import (
    AuditLogService, PermissionMatrixService, RoleAssignmentService, RoleRequestService,
)

logger = logging.getLogger(__name__)

ROLE_MANAGEMENT = 'role_management'


class StandardResultsSetPagination(PageNumberPagination):
    """Standard pagination for list endpoints."""
    page_size = 50
    page_size_query_param = 'page_size'
    max_page_size = 100


def _int_param(request, name, default):
    raw = request.query_params.get(name)
    if raw in (None, ''):
        return default
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an integer", details={name: raw})


def _role_param(request, name, required=True, default=None):
    value = request.query_params.get(name) or default
    if value is None:
        if required:
            raise ValidationError(f"{name} is required", details={'field': name})
        return None
    if value not in Role.values:
        raise ValidationError(
            f"Unknown role '{value}'",
            details={'field': name, 'allowed': list(Role.values)}
        )
    return value


def _get_user(user_id):
    try:
        return User.objects.get(id=user_id)
    except (User.DoesNotExist, ValueError, DjangoValidationError):
        raise NotFoundError("User not found", details={'user_id': str(user_id)})


@extend_schema_view(
    get=extend_schema(
        tags=['Roles - Catalog'],
        summary='List the role catalog',
        description='''
Every role with its authority level, permission level, self-service
escalation targets, approver role and base approval requirements.
Ordered by ascending level.
        ''',
        responses={200: RoleDefinitionSerializer(many=True)},
    )
)
class RoleCatalogView(APIView):
    """
    GET /v1/roles/catalog
    """

    permission_classes = [IsAuthenticated]

    def get(self, request):
        definitions = role_hierarchy.roles()
        serializer = RoleDefinitionSerializer(definitions, many=True)
        return Response({
            'count': len(definitions),
            'roles': serializer.data,
        })


@extend_schema_view(
    get=extend_schema(
        tags=['Roles - Catalog'],
        summary="The caller's roles",
        description='''
Active roles, primary (highest-level) role and all role assignments of the
authenticated user. With an `X-DISTRICT-ID` header, only assignments in
that district or platform-wide ones count as active.
        ''',
        responses={200: OpenApiTypes.OBJECT},
        examples=[
            OpenApiExample(
                'Success Response',
                value={
                    'primary_role': 'community_leader',
                    'permission_level': 'limited_access',
                    'active_roles': ['community_leader', 'resident'],
                    'assignments': [],
                },
                response_only=True
            )
        ]
    )
)
class MyRolesView(APIView):
    """
    GET /v1/roles/me
    """

    permission_classes = [IsAuthenticated]

    def get(self, request):
        district = getattr(request, 'district', None)
        active = RoleAssignmentService.active_roles(request.user, district)
        primary = role_hierarchy.primary_role(active)
        assignments = RoleAssignmentService.list_for_user(request.user)
        return Response({
            'primary_role': primary,
            'permission_level': role_hierarchy.permission_level(primary),
            'active_roles': sorted(active, key=role_hierarchy.level, reverse=True),
            'assignments': UserRoleAssignmentSerializer(assignments, many=True).data,
        })


@extend_schema_view(
    get=extend_schema(
        tags=['Roles - Catalog'],
        summary='Roles the caller may request',
        description='''
Roles reachable from the caller's current role through a self-service
request, each with the approval policy that would apply.
        ''',
        responses={200: OpenApiTypes.OBJECT},
    )
)
class RoleTargetsView(APIView):
    """
    GET /v1/roles/targets
    """

    permission_classes = [IsAuthenticated]

    def get(self, request):
        district = getattr(request, 'district', None)
        current = RoleAssignmentService.current_role(request.user, district)
        targets = []
        for target in sorted(role_hierarchy.available_targets(current), key=role_hierarchy.level):
            policy = approval_policy_resolver.resolve(current, target)
            targets.append({
                'role': str(target),
                'label': Role(target).label,
                'level': role_hierarchy.level(target),
                'required_approver_role': policy.required_approver_role,
                'approval_requirements': list(policy.approval_requirements),
            })
        return Response({
            'current_role': current,
            'targets': targets,
        })


@extend_schema_view(
    get=extend_schema(
        tags=['Roles - Catalog'],
        summary='Resolve an approval policy',
        description='''
Approver role and approval requirements for a move from `current_role`
(defaults to the caller's current role) to `requested_role`. Does not check
whether the move is reachable.
        ''',
        parameters=[
            OpenApiParameter('requested_role', OpenApiTypes.STR, required=True),
            OpenApiParameter('current_role', OpenApiTypes.STR),
        ],
        responses={200: ApprovalPolicySerializer, 400: OpenApiTypes.OBJECT},
    )
)
class RolePolicyView(APIView):
    """
    GET /v1/roles/policy
    """

    permission_classes = [IsAuthenticated]

    def get(self, request):
        requested = _role_param(request, 'requested_role')
        current = _role_param(request, 'current_role', required=False)
        if current is None:
            current = RoleAssignmentService.current_role(request.user, getattr(request, 'district', None))

        policy = approval_policy_resolver.resolve(current, requested)
        serializer = ApprovalPolicySerializer({
            'current_role': current,
            'requested_role': requested,
            'required_approver_role': policy.required_approver_role,
            'approval_requirements': list(policy.approval_requirements),
        })
        return Response(serializer.data)


@extend_schema_view(
    get=extend_schema(
        tags=['Roles - Requests'],
        summary="List the caller's role change requests",
        responses={200: RoleChangeRequestSerializer(many=True)},
    ),
    post=extend_schema(
        tags=['Roles - Requests'],
        summary='Submit a role change request',
        description='''
Request a move from the caller's current role to `requested_role`.
Supporting documents may be attached as multipart `attachments` fields.

Each attachment is checked on its own (PDF, DOC, DOCX, JPEG or PNG, at
most 10 MB). The request is created even when some attachments fail;
failures are listed per file in `attachment_failures`.

Errors:
- 400 when `requested_role` is not reachable from the current role
- 409 when the caller already has an open request
        ''',
        request=RoleChangeRequestCreateSerializer,
        responses={
            201: RoleChangeRequestSerializer,
            400: OpenApiTypes.OBJECT,
            409: OpenApiTypes.OBJECT,
        },
        examples=[
            OpenApiExample(
                'Submit Request',
                value={
                    'requested_role': 'community_leader',
                    'reason': 'I have organised the estate clean-up for two years.',
                },
                request_only=True
            )
        ]
    )
)
class RoleRequestListCreateView(APIView):
    """
    GET /v1/role-requests
    POST /v1/role-requests
    """

    permission_classes = [IsAuthenticated]
    parser_classes = [MultiPartParser, FormParser, JSONParser]
    pagination_class = StandardResultsSetPagination

    def get(self, request):
        requests_qs = RoleRequestService.requests_for_user(request.user)

        status_filter = request.query_params.get('status')
        if status_filter:
            requests_qs = requests_qs.filter(status=status_filter)

        paginator = self.pagination_class()
        page = paginator.paginate_queryset(requests_qs, request)
        serializer = RoleChangeRequestSerializer(page, many=True)
        return paginator.get_paginated_response(serializer.data)

    def post(self, request):
        serializer = RoleChangeRequestCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(
                {
                    'error': 'Invalid request data',
                    'code': 'VALIDATION_ERROR',
                    'details': serializer.errors,
                },
                status=status.HTTP_400_BAD_REQUEST
            )

        data = serializer.validated_data
        result = RoleRequestService.submit(
            requester=request.user,
            requested_role=data['requested_role'],
            reason=data['reason'],
            justification=data.get('justification'),
            files=data.get('attachments') or None,
            district=getattr(request, 'district', None),
        )

        return Response(
            {
                'request': RoleChangeRequestSerializer(result.request).data,
                'stored_attachments': result.stored_attachments,
                'attachment_failures': AttachmentFailureSerializer(
                    [failure.as_dict() for failure in result.attachment_failures], many=True
                ).data,
            },
            status=status.HTTP_201_CREATED
        )


@extend_schema_view(
    get=extend_schema(
        tags=['Roles - Requests'],
        summary='Requests awaiting review',
        description='''
Open requests the given reviewer role may decide: those whose snapshotted
approver role is at or below `reviewer_role`. Defaults to the caller's
current role. The caller must actively hold `reviewer_role`.
        ''',
        parameters=[OpenApiParameter('reviewer_role', OpenApiTypes.STR)],
        responses={200: RoleChangeRequestSerializer(many=True), 400: OpenApiTypes.OBJECT},
    )
)
class PendingRoleRequestsView(APIView):
    """
    GET /v1/role-requests/pending
    """

    permission_classes = [IsAuthenticated]
    pagination_class = StandardResultsSetPagination

    def get(self, request):
        district = getattr(request, 'district', None)
        reviewer_role = _role_param(
            request, 'reviewer_role',
            default=RoleAssignmentService.current_role(request.user, district),
        )
        if not request.user.is_superuser and not RoleAssignmentService.holds_role(
            request.user, reviewer_role, district
        ):
            raise ValidationError(
                f"You do not hold the '{reviewer_role}' role",
                details={'reviewer_role': reviewer_role}
            )

        pending = RoleRequestService.pending_for_approver(reviewer_role, district)
        paginator = self.pagination_class()
        page = paginator.paginate_queryset(pending, request)
        serializer = RoleChangeRequestSerializer(page, many=True)
        return paginator.get_paginated_response(serializer.data)


@extend_schema_view(
    post=extend_schema(
        tags=['Roles - Requests'],
        summary='Approve or reject a role change request',
        description='''
Decide an open request. `reviewer_role` must be the request's required
approver role or a higher one, and the caller must actively hold it. A
request cannot be reviewed by its own requester.

Exactly one review of a request succeeds; a concurrent or repeated review
fails with 409. Approval grants the requested role in the same
transaction.
        ''',
        request=RoleChangeRequestReviewSerializer,
        responses={
            200: RoleChangeRequestSerializer,
            400: OpenApiTypes.OBJECT,
            404: OpenApiTypes.OBJECT,
            409: OpenApiTypes.OBJECT,
        },
        examples=[
            OpenApiExample(
                'Approve',
                value={'decision': 'approved', 'reviewer_role': 'community_admin'},
                request_only=True
            ),
            OpenApiExample(
                'Reject',
                value={
                    'decision': 'rejected',
                    'reviewer_role': 'community_admin',
                    'rejection_reason': 'Community vote did not pass',
                },
                request_only=True
            ),
        ]
    )
)
class RoleRequestReviewView(APIView):
    """
    POST /v1/role-requests/{request_id}/review
    """

    permission_classes = [IsAuthenticated]

    def post(self, request, request_id):
        serializer = RoleChangeRequestReviewSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(
                {
                    'error': 'Invalid request data',
                    'code': 'VALIDATION_ERROR',
                    'details': serializer.errors,
                },
                status=status.HTTP_400_BAD_REQUEST
            )

        role_request = RoleRequestService.get(request_id)
        data = serializer.validated_data
        reviewed = RoleRequestService.review(
            role_request,
            decision=data['decision'],
            reviewer_role=data['reviewer_role'],
            reviewer=request.user,
            rejection_reason=data.get('rejection_reason') or None,
        )
        return Response(RoleChangeRequestSerializer(reviewed).data)


@extend_schema_view(
    post=extend_schema(
        tags=['Roles - Requests'],
        summary='Take a role change request under review',
        request=StartReviewSerializer,
        responses={
            200: RoleChangeRequestSerializer,
            400: OpenApiTypes.OBJECT,
            409: OpenApiTypes.OBJECT,
        },
    )
)
class RoleRequestStartReviewView(APIView):
    """
    POST /v1/role-requests/{request_id}/start-review
    """

    permission_classes = [IsAuthenticated]

    def post(self, request, request_id):
        serializer = StartReviewSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(
                {
                    'error': 'Invalid request data',
                    'code': 'VALIDATION_ERROR',
                    'details': serializer.errors,
                },
                status=status.HTTP_400_BAD_REQUEST
            )

        role_request = RoleRequestService.get(request_id)
        updated = RoleRequestService.start_review(
            role_request,
            reviewer_role=serializer.validated_data['reviewer_role'],
            reviewer=request.user,
        )
        return Response(RoleChangeRequestSerializer(updated).data)


@extend_schema_view(
    post=extend_schema(
        tags=['Roles - Requests'],
        summary='Cancel a role change request',
        description='Withdraw an open request. Only its requester may cancel it.',
        request=None,
        responses={
            200: RoleChangeRequestSerializer,
            400: OpenApiTypes.OBJECT,
            409: OpenApiTypes.OBJECT,
        },
    )
)
class RoleRequestCancelView(APIView):
    """
    POST /v1/role-requests/{request_id}/cancel
    """

    permission_classes = [IsAuthenticated]

    def post(self, request, request_id):
        role_request = RoleRequestService.get(request_id)
        cancelled = RoleRequestService.cancel(role_request, request.user)
        return Response(RoleChangeRequestSerializer(cancelled).data)


@extend_schema_view(
    get=extend_schema(
        tags=['Roles - Assignments'],
        summary='List role assignments',
        description='''
List role assignments, optionally for one user.

**Required capability:** `role_management:read`
        ''',
        parameters=[
            OpenApiParameter('user_id', OpenApiTypes.UUID, description='Filter by user'),
            OpenApiParameter('role', OpenApiTypes.STR, description='Filter by role'),
            OpenApiParameter('is_active', OpenApiTypes.BOOL, description='Filter by activation'),
        ],
        responses={200: UserRoleAssignmentSerializer(many=True), 403: OpenApiTypes.OBJECT},
    ),
    post=extend_schema(
        tags=['Roles - Assignments'],
        summary='Grant a role directly',
        description='''
Administrative grant, not bounded by the self-service escalation graph.
The caller must hold a role at least as senior as the one granted.

**Required capability:** `role_management:create`

Errors:
- 409 when the user already has an assignment for the role, active or not
        ''',
        request=RoleAssignmentCreateSerializer,
        responses={
            201: UserRoleAssignmentSerializer,
            400: OpenApiTypes.OBJECT,
            403: OpenApiTypes.OBJECT,
            409: OpenApiTypes.OBJECT,
        },
    )
)
@requires_capability(ROLE_MANAGEMENT, 'read', methods=('GET',))
@requires_capability(ROLE_MANAGEMENT, 'create', methods=('POST',))
class RoleAssignmentListCreateView(APIView):
    """
    GET /v1/role-assignments
    POST /v1/role-assignments
    """

    permission_classes = [IsAuthenticated]
    pagination_class = StandardResultsSetPagination

    def get(self, request):
        assignments = UserRoleAssignment.objects.select_related('user', 'assigned_by', 'district')

        user_id = request.query_params.get('user_id')
        if user_id:
            assignments = assignments.filter(user=_get_user(user_id))

        role = request.query_params.get('role')
        if role:
            assignments = assignments.filter(role=role)

        is_active = request.query_params.get('is_active')
        if is_active is not None:
            assignments = assignments.filter(is_active=is_active.lower() in ('1', 'true', 'yes'))

        district = getattr(request, 'district', None)
        if district is not None:
            assignments = assignments.in_district(district)

        paginator = self.pagination_class()
        page = paginator.paginate_queryset(assignments, request)
        serializer = UserRoleAssignmentSerializer(page, many=True)
        return paginator.get_paginated_response(serializer.data)

    def post(self, request):
        serializer = RoleAssignmentCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(
                {
                    'error': 'Invalid request data',
                    'code': 'VALIDATION_ERROR',
                    'details': serializer.errors,
                },
                status=status.HTTP_400_BAD_REQUEST
            )

        data = serializer.validated_data
        district = None
        if data.get('district_id'):
            district = District.objects.get(id=data['district_id'])

        assignment = RoleAssignmentService.admin_grant(
            _get_user(data['user_id']),
            data['role'],
            granted_by=request.user,
            district=district,
            reason=data.get('reason', ''),
        )
        return Response(
            UserRoleAssignmentSerializer(assignment).data,
            status=status.HTTP_201_CREATED
        )


@extend_schema_view(
    delete=extend_schema(
        tags=['Roles - Assignments'],
        summary='Revoke a role assignment',
        description='''
Permanently delete the assignment. There is no undo; deactivate instead to
suspend a role.
The caller must hold a role at least as senior as the assignment's role.

**Required capability:** `role_management:delete`
        ''',
        responses={204: None, 403: OpenApiTypes.OBJECT, 404: OpenApiTypes.OBJECT},
    )
)
@requires_capability(ROLE_MANAGEMENT, 'delete', methods=('DELETE',))
class RoleAssignmentDetailView(APIView):
    """
    DELETE /v1/role-assignments/{assignment_id}
    """

    permission_classes = [IsAuthenticated]

    def delete(self, request, assignment_id):
        RoleAssignmentService.revoke(
            assignment_id,
            performed_by=request.user,
            reason=request.query_params.get('reason', ''),
        )
        return Response(status=status.HTTP_204_NO_CONTENT)


@extend_schema_view(
    post=extend_schema(
        tags=['Roles - Assignments'],
        summary='Activate or deactivate a role assignment',
        description='''
The caller must hold a role at least as senior as the assignment's role.

**Required capability:** `role_management:update`
        ''',
        request=RoleAssignmentActiveSerializer,
        responses={200: UserRoleAssignmentSerializer, 403: OpenApiTypes.OBJECT, 404: OpenApiTypes.OBJECT},
    )
)
@requires_capability(ROLE_MANAGEMENT, 'update', methods=('POST',))
class RoleAssignmentActiveView(APIView):
    """
    POST /v1/role-assignments/{assignment_id}/active
    """

    permission_classes = [IsAuthenticated]

    def post(self, request, assignment_id):
        serializer = RoleAssignmentActiveSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(
                {
                    'error': 'Invalid request data',
                    'code': 'VALIDATION_ERROR',
                    'details': serializer.errors,
                },
                status=status.HTTP_400_BAD_REQUEST
            )

        assignment = RoleAssignmentService.set_active(
            assignment_id,
            serializer.validated_data['is_active'],
            performed_by=request.user,
            reason=serializer.validated_data.get('reason', ''),
        )
        return Response(UserRoleAssignmentSerializer(assignment).data)


@extend_schema_view(
    get=extend_schema(
        tags=['Roles - Permissions'],
        summary='Read the permission matrix',
        description='''
With `role`, every active module mapped to that role's capabilities
(all-false where no row exists). Without it, all stored matrix rows.

**Required capability:** `role_management:read`
        ''',
        parameters=[OpenApiParameter('role', OpenApiTypes.STR)],
        responses={200: ModulePermissionSerializer(many=True), 403: OpenApiTypes.OBJECT},
    ),
    post=extend_schema(
        tags=['Roles - Permissions'],
        summary='Set one capability of a matrix cell',
        description='''
Upsert: a new (role, module) row gets only the named capability set and
every other capability false; an existing row flips only that capability.
The caller must strictly outrank the role whose row is edited.

**Required capability:** `role_management:update`
        ''',
        request=PermissionSetSerializer,
        responses={200: ModulePermissionSerializer, 400: OpenApiTypes.OBJECT, 403: OpenApiTypes.OBJECT},
        examples=[
            OpenApiExample(
                'Grant approve',
                value={'role': 'community_admin', 'module': 'facilities', 'capability': 'approve', 'value': True},
                request_only=True
            )
        ]
    )
)
@requires_capability(ROLE_MANAGEMENT, 'read', methods=('GET',))
@requires_capability(ROLE_MANAGEMENT, 'update', methods=('POST',))
class PermissionMatrixView(APIView):
    """
    GET /v1/permission-matrix
    POST /v1/permission-matrix
    """

    permission_classes = [IsAuthenticated]

    def get(self, request):
        role = _role_param(request, 'role', required=False)
        if role:
            matrix = PermissionMatrixService.role_matrix(role)
            return Response({
                'role': role,
                'modules': {name: caps.as_dict() for name, caps in matrix.items()},
            })

        rows = ModulePermission.objects.select_related('module').filter(module__is_active=True)
        return Response({
            'count': rows.count(),
            'permissions': ModulePermissionSerializer(rows, many=True).data,
        })

    def post(self, request):
        serializer = PermissionSetSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(
                {
                    'error': 'Invalid request data',
                    'code': 'VALIDATION_ERROR',
                    'details': serializer.errors,
                },
                status=status.HTTP_400_BAD_REQUEST
            )

        data = serializer.validated_data
        row = PermissionMatrixService.set(
            data['role'],
            data['module'],
            data['capability'],
            data['value'],
            performed_by=request.user,
        )
        return Response(ModulePermissionSerializer(row).data)


@extend_schema_view(
    get=extend_schema(
        tags=['Roles - Permissions'],
        summary="The caller's effective permissions on a module",
        description='''
OR of the matrix rows of every role the caller actively holds (in the
`X-DISTRICT-ID` district, when given). No active roles means no
capabilities.
        ''',
        parameters=[OpenApiParameter('module', OpenApiTypes.STR, required=True)],
        responses={200: OpenApiTypes.OBJECT},
    )
)
class EffectivePermissionsView(APIView):
    """
    GET /v1/permissions/effective
    """

    permission_classes = [IsAuthenticated]

    def get(self, request):
        module = request.query_params.get('module')
        if not module:
            raise ValidationError("module is required", details={'field': 'module'})

        district = getattr(request, 'district', None)
        capabilities = PermissionMatrixService.effective_permissions(request.user, module, district)
        return Response({
            'module': module,
            'district_id': str(district.pk) if district else None,
            'capabilities': capabilities.as_dict(),
        })


@extend_schema_view(
    get=extend_schema(
        tags=['Roles - Audit'],
        summary='List role audit log entries',
        description='''
Newest first. Filter by `user_id`, `action` and the `X-DISTRICT-ID`
district.

**Required capability:** `role_management:read`
        ''',
        parameters=[
            OpenApiParameter('user_id', OpenApiTypes.UUID, description='Filter by affected user'),
            OpenApiParameter('action', OpenApiTypes.STR, description='Filter by action type'),
            OpenApiParameter('page', OpenApiTypes.INT),
            OpenApiParameter('page_size', OpenApiTypes.INT),
        ],
        responses={200: RoleAuditLogSerializer(many=True), 400: OpenApiTypes.OBJECT, 403: OpenApiTypes.OBJECT},
    )
)
@requires_capability(ROLE_MANAGEMENT, 'read', methods=('GET',))
class RoleAuditLogListView(APIView):
    """
    GET /v1/role-audit-logs
    """

    permission_classes = [IsAuthenticated]

    def get(self, request):
        user_id = request.query_params.get('user_id')
        page = AuditLogService.query(
            user=_get_user(user_id) if user_id else None,
            action=request.query_params.get('action') or None,
            district=getattr(request, 'district', None),
            page=_int_param(request, 'page', 1),
            page_size=_int_param(request, 'page_size', AuditLogService.DEFAULT_PAGE_SIZE),
        )
        return Response({
            'count': page.count,
            'page': page.page,
            'page_size': page.page_size,
            'has_next': page.has_next,
            'results': RoleAuditLogSerializer(page.entries, many=True).data,
        })


@extend_schema(
    tags=['Roles - Service'],
    summary='Readiness of the role service',
    description='''
Checks that the database answers, that the cache holding active-role sets
round-trips, and that the permission matrix has been seeded (the
`role_management` module exists). Returns 503 naming the failing checks.
Unauthenticated.
    ''',
    responses={200: OpenApiTypes.OBJECT, 503: OpenApiTypes.OBJECT},
)
class ServiceHealthView(APIView):
    """
    GET /v1/health
    """

    authentication_classes = []
    permission_classes = []

    CACHE_CHECK_KEY = 'roles:health'

    def _database(self):
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
        return True

    def _cache(self):
        cache.set(self.CACHE_CHECK_KEY, 'ok', timeout=10)
        return cache.get(self.CACHE_CHECK_KEY) == 'ok'

    def _permission_matrix(self):
        return SystemModule.objects.by_name(ROLE_MANAGEMENT) is not None

    def get(self, request):
        checks = {}
        for name, check in (
            ('database', self._database),
            ('cache', self._cache),
            ('permission_matrix', self._permission_matrix),
        ):
            try:
                checks[name] = 'ok' if check() else 'failing'
            except Exception:  # cache backends raise backend-specific errors
                logger.error(f"Health check '{name}' failed", exc_info=True)
                checks[name] = 'failing'

        healthy = all(state == 'ok' for state in checks.values())
        return Response(
            {'status': 'ok' if healthy else 'degraded', 'checks': checks},
            status=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE
        )
