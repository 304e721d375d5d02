"""
Approval workflow serializers.
"""
from rest_framework import serializers

from apps.approvals.models import AccessRequest, ApprovalRequest


class UserSummarySerializer(serializers.Serializer):
    id = serializers.UUIDField(read_only=True)
    email = serializers.EmailField(read_only=True)
    first_name = serializers.CharField(read_only=True)
    last_name = serializers.CharField(read_only=True)


class ApprovalRequestSerializer(serializers.ModelSerializer):
    """Serializer for ApprovalRequest model."""

    user = UserSummarySerializer(read_only=True)
    coach_id = serializers.UUIDField(read_only=True)
    athlete_id = serializers.UUIDField(read_only=True)
    approved_by = serializers.UUIDField(source='approved_by_id', read_only=True)

    class Meta:
        model = ApprovalRequest
        fields = [
            'id', 'user', 'requested_role', 'status', 'coach_id', 'athlete_id',
            'request_date', 'response_date', 'approved_by', 'rejection_reason',
            'approval_notes', 'athlete_profile',
        ]
        read_only_fields = fields


class RejectSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, max_length=2000)


class AccessRequestSerializer(serializers.ModelSerializer):
    """Serializer for AccessRequest model."""

    parent = UserSummarySerializer(read_only=True)
    athlete = serializers.SerializerMethodField()
    coach_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = AccessRequest
        fields = [
            'id', 'parent', 'athlete', 'coach_id', 'status',
            'request_date', 'response_date', 'message',
        ]
        read_only_fields = fields

    def get_athlete(self, obj):
        return {
            'id': str(obj.athlete_id),
            'name': obj.athlete.get_full_name(),
            'category': obj.athlete.category,
        }


class AccessRequestCreateSerializer(serializers.Serializer):
    athlete_id = serializers.UUIDField()
    coach_id = serializers.UUIDField(required=False, allow_null=True)
    message = serializers.CharField(required=False, allow_blank=True, max_length=2000)
