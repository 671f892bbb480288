from rest_framework import serializers

from .models import RoleAssignment, User, UserRole


class UserSerializer(serializers.ModelSerializer):
    base_role = serializers.CharField(read_only=True)
    effective_role = serializers.CharField(read_only=True)

    class Meta:
        model = User
        fields = ["id", "username", "email", "first_name", "last_name", "role", "base_role", "active_role", "effective_role"]
        read_only_fields = fields


class RoleAssignmentSerializer(serializers.ModelSerializer):
    username = serializers.CharField(source="user.username", read_only=True)
    granted_by_name = serializers.CharField(source="granted_by.username", read_only=True)

    class Meta:
        model = RoleAssignment
        fields = ["id", "user", "username", "role", "granted_by_name", "is_active", "granted_at", "revoked_at"]
        read_only_fields = ["id", "granted_by_name", "is_active", "granted_at", "revoked_at"]

    def validate(self, data):
        user = data["user"]
        if user.role == data["role"]:
            raise serializers.ValidationError("Role is already the user's base role")
        if user.role_assignments.filter(role=data["role"], is_active=True).exists():
            raise serializers.ValidationError("Role is already assigned to this user")
        return data


class ActiveRoleSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=UserRole.choices)

    def validate_role(self, value):
        user = self.context["request"].user
        if value not in user.available_roles():
            raise serializers.ValidationError("Role has not been granted to this user")
        return value
