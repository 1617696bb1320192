"""
Role change request workflow.

State machine:

    submitted -> under_review -> approved | rejected
    submitted | under_review -> cancelled

approved, rejected and cancelled are terminal. Every transition is a
conditional UPDATE on the current status, so two concurrent reviewers of
the same request cannot both succeed.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from django.core.exceptions import ValidationError as DjangoValidationError
from django.utils import timezone

from apps.core.db import db_timeout
from apps.core.exceptions import ConflictError, NotFoundError, ValidationError
from apps.core.logging import SecurityLogger
from apps.roles.models import (
    OPEN_STATUSES, RequestStatus, RoleAuditLog, RoleChangeRequest,
)
from apps.roles.policy import Role, approval_policy_resolver, role_hierarchy
from apps.roles.services.assignment_service import RoleAssignmentService
from apps.roles.services.attachment_service import AttachmentFailure, AttachmentService

logger = logging.getLogger(__name__)

REVIEW_DECISIONS = (RequestStatus.APPROVED, RequestStatus.REJECTED)


@dataclass
class SubmissionResult:
    request: RoleChangeRequest
    stored_attachments: List[str] = field(default_factory=list)
    attachment_failures: List[AttachmentFailure] = field(default_factory=list)


class RoleRequestService:
    """
    Submission, review and cancellation of role change requests.
    """

    @classmethod
    def get(cls, request_id) -> RoleChangeRequest:
        try:
            return RoleChangeRequest.objects.select_related(
                'requester', 'target_user', 'district', 'reviewed_by'
            ).get(pk=request_id)
        except (RoleChangeRequest.DoesNotExist, ValueError, DjangoValidationError):
            raise NotFoundError(
                "Role change request not found",
                details={'request_id': str(request_id)}
            )

    @classmethod
    def submit(cls, requester, requested_role, reason, justification=None, files=None,
               district=None, timeout=None, attachment_service=None) -> SubmissionResult:
        """
        Submit a request to move requester into requested_role.

        The approval policy is resolved once and stored on the request.
        Attachments are best-effort: the request is created even when some
        files are rejected or fail to upload.

        Raises:
            ValidationError: blank reason, or requested_role is not reachable
                from the requester's current role (nothing is persisted)
            ConflictError: requester already has an open request, or already
                has an assignment row for requested_role (inactive or in
                another district)
            RetryableError: the database timed out
        """
        if not reason or not str(reason).strip():
            raise ValidationError("A reason is required", details={'field': 'reason'})

        current_role = RoleAssignmentService.current_role(requester, district)
        allowed = role_hierarchy.available_targets(current_role)
        if requested_role not in Role.values or requested_role not in allowed:
            logger.info(
                "Role change request refused: target not reachable",
                extra={
                    'user_id': str(requester.pk),
                    'current_role': current_role,
                    'requested_role': str(requested_role),
                }
            )
            raise ValidationError(
                f"Cannot request '{requested_role}' from current role '{current_role}'",
                details={
                    'current_role': current_role,
                    'requested_role': str(requested_role),
                    'available_targets': sorted(str(r) for r in allowed),
                }
            )

        if RoleChangeRequest.objects.for_requester(requester).open().exists():
            raise ConflictError(
                "You already have an open role change request",
                details={'user_id': str(requester.pk)}
            )

        existing = RoleAssignmentService.find(requester, requested_role)
        if existing is not None:
            raise ConflictError(
                f"You already have an assignment for '{requested_role}'; ask for it to be reactivated instead",
                details={
                    'assignment_id': str(existing.pk),
                    'is_active': existing.is_active,
                    'district_id': str(existing.district_id) if existing.district_id else None,
                }
            )

        policy = approval_policy_resolver.resolve(current_role, requested_role)

        batch = None
        if files:
            attachment_service = attachment_service or AttachmentService()
            batch = attachment_service.store_all(requester.pk, files, timeout=timeout)

        with db_timeout(timeout, operation='role_request.submit'):
            request = RoleChangeRequest.objects.create(
                requester=requester,
                target_user=requester,
                current_role=current_role,
                requested_role=requested_role,
                reason=str(reason).strip(),
                justification=justification or None,
                attachments=list(batch.stored) if batch else [],
                required_approver_role=policy.required_approver_role,
                approval_requirements=list(policy.approval_requirements),
                status=RequestStatus.SUBMITTED,
                district=district,
            )
            RoleAuditLog.record(
                'request_created',
                user=requester,
                old_role=current_role,
                new_role=requested_role,
                performed_by=requester,
                reason=request.reason,
                district=district,
                target_id=request.id,
                metadata={
                    'required_approver_role': policy.required_approver_role,
                    'approval_requirements': list(policy.approval_requirements),
                    'attachments': len(request.attachments),
                },
            )

        logger.info(
            "Role change request submitted",
            extra={
                'role_request_id': str(request.id),
                'user_id': str(requester.pk),
                'current_role': current_role,
                'requested_role': str(requested_role),
                'required_approver_role': policy.required_approver_role,
            }
        )

        return SubmissionResult(
            request=request,
            stored_attachments=list(batch.stored) if batch else [],
            attachment_failures=list(batch.failures) if batch else [],
        )

    @classmethod
    def _authorize_reviewer(cls, request, reviewer_role, reviewer):
        """
        Check reviewer_role against the request's snapshotted approver.

        reviewer_role must equal the required approver role or outrank it.
        When the reviewing user is known they must actively hold
        reviewer_role and must be neither the requester nor the target.
        """
        if reviewer_role not in Role.values:
            raise ValidationError(
                f"Unknown reviewer role '{reviewer_role}'",
                details={'reviewer_role': str(reviewer_role)}
            )

        required = request.required_approver_role
        if reviewer_role != required and not role_hierarchy.outranks(reviewer_role, required):
            raise ValidationError(
                "Reviewer role is not authorized to review this request",
                details={
                    'reviewer_role': str(reviewer_role),
                    'required_approver_role': required,
                }
            )

        if reviewer is None:
            return

        if reviewer.pk in (request.requester_id, request.target_user_id):
            SecurityLogger.log_four_eyes_violation(
                requester_id=str(request.requester_id),
                reviewer_id=str(reviewer.pk),
                request_id=str(request.pk),
                district_id=str(request.district_id) if request.district_id else None,
            )
            raise ValidationError(
                "Four-eyes validation failed: a request cannot be reviewed by its requester",
                details={'request_id': str(request.pk)}
            )

        if not reviewer.is_superuser and not RoleAssignmentService.holds_role(
            reviewer, reviewer_role, request.district
        ):
            raise ValidationError(
                f"Reviewer does not hold the '{reviewer_role}' role",
                details={'reviewer_role': str(reviewer_role)}
            )

    @classmethod
    def _ensure_open(cls, request):
        if not request.is_open:
            raise ConflictError(
                f"Request is already {request.status}",
                details={'request_id': str(request.pk), 'status': request.status}
            )

    @classmethod
    def _transition(cls, request, from_statuses, to_status, **fields) -> int:
        """Compare-and-set the request status; returns the number of rows updated."""
        return RoleChangeRequest.objects.filter(
            pk=request.pk,
            status__in=list(from_statuses),
        ).update(status=to_status, updated_at=timezone.now(), **fields)

    @classmethod
    def _stale(cls, request):
        current = RoleChangeRequest.objects.filter(pk=request.pk).values_list('status', flat=True).first()
        return ConflictError(
            "Request was changed by someone else; reload and try again",
            details={'request_id': str(request.pk), 'status': current}
        )

    @classmethod
    def start_review(cls, request, reviewer_role, reviewer=None, timeout=None) -> RoleChangeRequest:
        """
        Move a submitted request to under_review.

        Raises:
            ValidationError: unauthorized reviewer
            ConflictError: request is not in submitted state
        """
        cls._authorize_reviewer(request, reviewer_role, reviewer)
        if request.status != RequestStatus.SUBMITTED:
            raise ConflictError(
                f"Only submitted requests can be taken under review (status: {request.status})",
                details={'request_id': str(request.pk), 'status': request.status}
            )

        with db_timeout(timeout, operation='role_request.start_review'):
            updated = cls._transition(
                request, [RequestStatus.SUBMITTED], RequestStatus.UNDER_REVIEW,
                reviewed_by=reviewer, reviewer_role=reviewer_role,
            )
            if updated == 0:
                raise cls._stale(request)
            RoleAuditLog.record(
                'request_under_review',
                user=request.target_user,
                old_role=request.current_role,
                new_role=request.requested_role,
                performed_by=reviewer,
                district=request.district,
                target_id=request.pk,
                metadata={'reviewer_role': str(reviewer_role)},
            )

        request.refresh_from_db()
        return request

    @classmethod
    def review(cls, request, decision, reviewer_role, reviewer=None, rejection_reason=None,
               timeout=None) -> RoleChangeRequest:
        """
        Approve or reject an open request.

        Approval grants requested_role to the target user and deactivates
        their assignment of the snapshotted current role, in the same
        transaction as the status change. Exactly one review of a request
        can succeed; later ones fail with ConflictError.

        Raises:
            ValidationError: bad decision, unauthorized reviewer, four-eyes
                violation
            ConflictError: request already terminal or changed concurrently;
                DuplicateRoleError when the target already has the role
            RetryableError: the database timed out
        """
        if decision not in REVIEW_DECISIONS:
            raise ValidationError(
                f"Decision must be one of: {', '.join(REVIEW_DECISIONS)}",
                details={'decision': str(decision)}
            )

        cls._authorize_reviewer(request, reviewer_role, reviewer)
        cls._ensure_open(request)

        with db_timeout(timeout, operation='role_request.review'):
            updated = cls._transition(
                request, OPEN_STATUSES, decision,
                reviewed_by=reviewer,
                reviewer_role=reviewer_role,
                reviewed_at=timezone.now(),
                rejection_reason=(rejection_reason or '') if decision == RequestStatus.REJECTED else '',
            )
            if updated == 0:
                raise cls._stale(request)

            if decision == RequestStatus.APPROVED:
                RoleAssignmentService.assign(
                    request.target_user,
                    request.requested_role,
                    assigned_by=reviewer,
                    district=request.district,
                    reason=request.reason,
                    metadata={'path': 'role_request', 'request_id': str(request.pk)},
                )
                RoleAssignmentService.retire(
                    request.target_user,
                    request.current_role,
                    performed_by=reviewer,
                    reason=request.reason,
                    metadata={'path': 'role_request', 'request_id': str(request.pk)},
                )
                RoleAuditLog.record(
                    'request_approved',
                    user=request.target_user,
                    old_role=request.current_role,
                    new_role=request.requested_role,
                    performed_by=reviewer,
                    reason=request.reason,
                    district=request.district,
                    target_id=request.pk,
                    metadata={'reviewer_role': str(reviewer_role)},
                )
            else:
                RoleAuditLog.record(
                    'request_rejected',
                    user=request.target_user,
                    old_role=request.current_role,
                    new_role=request.requested_role,
                    performed_by=reviewer,
                    reason=rejection_reason or '',
                    district=request.district,
                    target_id=request.pk,
                    metadata={'reviewer_role': str(reviewer_role)},
                )

        request.refresh_from_db()
        logger.info(
            f"Role change request {request.status}",
            extra={
                'role_request_id': str(request.pk),
                'reviewer_role': str(reviewer_role),
                'reviewer_id': str(reviewer.pk) if reviewer else None,
            }
        )
        return request

    @classmethod
    def cancel(cls, request, requester, timeout=None) -> RoleChangeRequest:
        """
        Withdraw an open request. Only its requester may do so.

        Raises:
            ValidationError: requester is not the original requester
            ConflictError: request is already terminal
        """
        if requester is None or requester.pk != request.requester_id:
            raise ValidationError(
                "Only the requester can cancel this request",
                details={'request_id': str(request.pk)}
            )
        cls._ensure_open(request)

        with db_timeout(timeout, operation='role_request.cancel'):
            updated = cls._transition(request, OPEN_STATUSES, RequestStatus.CANCELLED)
            if updated == 0:
                raise cls._stale(request)
            RoleAuditLog.record(
                'request_cancelled',
                user=request.target_user,
                old_role=request.current_role,
                new_role=request.requested_role,
                performed_by=requester,
                district=request.district,
                target_id=request.pk,
            )

        request.refresh_from_db()
        return request

    @classmethod
    def pending_for_approver(cls, reviewer_role, district=None):
        """Open requests reviewer_role may decide: snapshot approver at or below its level."""
        level = role_hierarchy.level(reviewer_role)
        reviewable = [
            definition.role for definition in role_hierarchy.roles()
            if definition.level <= level
        ]
        queryset = RoleChangeRequest.objects.open().filter(
            required_approver_role__in=reviewable
        ).select_related('requester', 'district').order_by('created_at')
        if district is not None:
            queryset = queryset.filter(district=district)
        return queryset

    @classmethod
    def requests_for_user(cls, user):
        return RoleChangeRequest.objects.for_requester(user).select_related(
            'district', 'reviewed_by'
        ).order_by('-created_at')

    @classmethod
    def current_policy(cls, request) -> Optional[dict]:
        """
        The policy the request is judged against: its submission snapshot.

        Never recomputed, so later catalog edits do not change who may
        approve an in-flight request.
        """
        return {
            'required_approver_role': request.required_approver_role,
            'approval_requirements': list(request.approval_requirements),
        }
