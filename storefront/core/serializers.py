from rest_framework import serializers
from django.contrib.auth.password_validation import validate_password
from django.db import transaction
from .models import User, Address, SiteSettings, ActivityLog


class UserSerializer(serializers.ModelSerializer):
    is_admin = serializers.BooleanField(read_only=True)

    class Meta:
        model = User
        fields = ['id', 'email', 'username', 'name', 'phone', 'address', 'role', 'status',
                  'is_admin', 'total_orders', 'total_spent', 'last_active', 'created_at', 'updated_at']
        read_only_fields = ['email', 'username', 'role', 'status', 'total_orders', 'total_spent',
                            'last_active', 'created_at', 'updated_at']


class ProfileUpdateSerializer(serializers.ModelSerializer):
    """Fields a user may change on their own account"""

    class Meta:
        model = User
        fields = ['name', 'phone', 'address']


class RegisterSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, validators=[validate_password])
    password_confirm = serializers.CharField(write_only=True, required=False)

    class Meta:
        model = User
        fields = ['email', 'password', 'password_confirm', 'name', 'phone', 'address']

    def validate_email(self, value):
        value = value.lower()
        if User.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError('User already exists')
        return value

    def validate(self, attrs):
        confirm = attrs.pop('password_confirm', None)
        if confirm is not None and confirm != attrs['password']:
            raise serializers.ValidationError({"password": "Passwords don't match"})
        return attrs

    def create(self, validated_data):
        password = validated_data.pop('password')
        return User.objects.create_user(password=password, role=User.ROLE_CUSTOMER, **validated_data)


class AdminUserSerializer(serializers.ModelSerializer):
    """Back-office user management; the password is only accepted on create"""
    password = serializers.CharField(write_only=True, required=False, validators=[validate_password])
    is_admin = serializers.BooleanField(read_only=True)

    class Meta:
        model = User
        fields = ['id', 'email', 'username', 'password', 'name', 'phone', 'address', 'role', 'status',
                  'is_admin', 'total_orders', 'total_spent', 'last_active', 'created_at', 'updated_at']
        read_only_fields = ['username', 'total_orders', 'total_spent', 'last_active', 'created_at', 'updated_at']

    def validate_email(self, value):
        value = value.lower()
        queryset = User.objects.filter(email__iexact=value)
        if self.instance is not None:
            queryset = queryset.exclude(pk=self.instance.pk)
        if queryset.exists():
            raise serializers.ValidationError('User with this email already exists')
        return value

    def create(self, validated_data):
        password = validated_data.pop('password', None)
        user = User.objects.create_user(password=password, **validated_data)
        if not password:
            user.set_unusable_password()
            user.save(update_fields=['password'])
        return user

    def update(self, instance, validated_data):
        validated_data.pop('password', None)
        return super().update(instance, validated_data)


class AddressSerializer(serializers.ModelSerializer):
    """A user's saved address. The first address, or one flagged is_default, becomes the default"""

    class Meta:
        model = Address
        fields = ['id', 'type', 'full_name', 'phone', 'address', 'city', 'state',
                  'zip_code', 'country', 'is_default', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    @transaction.atomic
    def create(self, validated_data):
        user = validated_data['user']
        if not user.addresses.exists():
            validated_data['is_default'] = True
        elif validated_data.get('is_default'):
            user.addresses.update(is_default=False)
        return super().create(validated_data)

    @transaction.atomic
    def update(self, instance, validated_data):
        if validated_data.get('is_default'):
            instance.user.addresses.exclude(pk=instance.pk).update(is_default=False)
        return super().update(instance, validated_data)


class BulkUserStatusSerializer(serializers.Serializer):
    user_ids = serializers.ListField(child=serializers.IntegerField(), allow_empty=False)
    status = serializers.ChoiceField(choices=User.STATUS_CHOICES)


class ForgotPasswordSerializer(serializers.Serializer):
    email = serializers.EmailField()


class ResetPasswordSerializer(serializers.Serializer):
    token = serializers.CharField()
    password = serializers.CharField(validators=[validate_password])


class SiteSettingsSerializer(serializers.ModelSerializer):
    class Meta:
        model = SiteSettings
        fields = ['website_name', 'website_description', 'contact_email', 'contact_phone',
                  'primary_color', 'enable_dark_mode', 'maintenance_mode', 'debug_mode', 'updated_at']
        read_only_fields = ['updated_at']


class PublicSiteSettingsSerializer(serializers.ModelSerializer):
    class Meta:
        model = SiteSettings
        fields = ['website_name', 'website_description', 'contact_email', 'contact_phone',
                  'primary_color', 'enable_dark_mode', 'maintenance_mode']


class ActivityLogSerializer(serializers.ModelSerializer):
    user_email = serializers.EmailField(source='user.email', read_only=True, default=None)
    user_name = serializers.CharField(source='user.name', read_only=True, default=None)

    class Meta:
        model = ActivityLog
        fields = ['id', 'user', 'user_email', 'user_name', 'action', 'model_name', 'object_id',
                  'object_name', 'changes', 'ip_address', 'created_at']
