import logging
import secrets
from datetime import timedelta

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer, TokenRefreshSerializer
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError, AuthenticationFailed
from rest_framework_simplejwt.settings import api_settings as jwt_settings
from rest_framework_simplejwt.tokens import RefreshToken
from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.exceptions import ObjectDoesNotExist
from django.core.mail import send_mail
from django.db import transaction
from django.db.models import Q, Count
from django.shortcuts import get_object_or_404
from django.utils import timezone

from .models import Address, SiteSettings, ActivityLog
from .permissions import IsAdminRole
from .serializers import (
    AddressSerializer, UserSerializer, ProfileUpdateSerializer, RegisterSerializer, AdminUserSerializer,
    BulkUserStatusSerializer, ForgotPasswordSerializer, ResetPasswordSerializer,
    SiteSettingsSerializer, PublicSiteSettingsSerializer, ActivityLogSerializer
)
from .utils import create_activity_log, paginate, parse_date, parse_id, parse_int

User = get_user_model()
logger = logging.getLogger(__name__)

FORGOT_PASSWORD_MESSAGE = 'If an account with that email exists, a password reset link has been sent'


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    default_error_messages = {
        'no_active_account': 'Invalid credentials',
    }

    def validate(self, attrs):
        attrs[self.username_field] = (attrs.get(self.username_field) or '').strip().lower()

        # Blocked or inactive accounts get a specific message instead of "Invalid credentials"
        user = User.objects.filter(email=attrs[self.username_field]).first()
        if user is not None and user.status != User.STATUS_ACTIVE and user.check_password(attrs.get('password', '')):
            raise AuthenticationFailed('Account is not active')

        data = super().validate(attrs)
        self.check_role(self.user)

        self.user.last_active = timezone.now()
        self.user.save(update_fields=['last_active'])
        data['user'] = UserSerializer(self.user).data
        create_activity_log(
            request=self.context.get('request'),
            action='login',
            model_name='User',
            object_id=self.user.id,
            object_name=self.user.email,
            user=self.user,
        )
        return data

    def check_role(self, user):
        pass

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['email'] = user.email
        token['role'] = user.role
        return token


class AdminTokenObtainPairSerializer(CustomTokenObtainPairSerializer):
    def check_role(self, user):
        if not user.is_admin:
            raise AuthenticationFailed('Admin access required')


class CustomTokenObtainPairView(TokenObtainPairView):
    serializer_class = CustomTokenObtainPairSerializer


class AdminTokenObtainPairView(TokenObtainPairView):
    serializer_class = AdminTokenObtainPairSerializer


class CustomTokenRefreshSerializer(TokenRefreshSerializer):
    """Token refresh serializer that rejects tokens of deleted or deactivated users"""
    def validate(self, attrs):
        try:
            refresh = RefreshToken(attrs['refresh'])
        except TokenError:
            raise InvalidToken('Token is invalid or expired.')
        user_id = refresh.payload.get(jwt_settings.USER_ID_CLAIM)
        if not User.objects.filter(**{jwt_settings.USER_ID_FIELD: user_id, 'is_active': True}).exists():
            raise InvalidToken('Token is invalid. User no longer exists.')

        try:
            return super().validate(attrs)
        except (InvalidToken, TokenError):
            raise InvalidToken('Token is invalid or expired.')
        except (ObjectDoesNotExist, User.DoesNotExist):
            raise InvalidToken('Token is invalid. User no longer exists.')


class CustomTokenRefreshView(TokenRefreshView):
    """Token refresh view that handles deleted users gracefully"""
    serializer_class = CustomTokenRefreshSerializer


@api_view(['POST'])
@permission_classes([AllowAny])
def register(request):
    """Customer registration endpoint"""
    email = (request.data.get('email') or '').strip().lower()
    if email and User.objects.filter(email__iexact=email).exists():
        return Response({'error': 'User already exists'}, status=status.HTTP_400_BAD_REQUEST)

    serializer = RegisterSerializer(data=request.data)
    if serializer.is_valid():
        user = serializer.save()
        user.last_active = timezone.now()
        user.save(update_fields=['last_active'])
        token = CustomTokenObtainPairSerializer.get_token(user)
        create_activity_log(request=request, action='register', model_name='User',
                            object_id=user.id, object_name=user.email, user=user)
        return Response({
            'message': 'User registered successfully',
            'user': UserSerializer(user).data,
            'access': str(token.access_token),
            'refresh': str(token),
        }, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH'])
@permission_classes([IsAuthenticated])
def profile(request):
    """Get or update the current user's profile"""
    user = request.user
    if request.method == 'GET':
        return Response(UserSerializer(user).data)

    serializer = ProfileUpdateSerializer(user, data=request.data, partial=True)
    if serializer.is_valid():
        serializer.save()
        return Response({
            'message': 'Profile updated successfully',
            'user': UserSerializer(user).data,
        })
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def address_list_create(request):
    """List or add the current user's saved addresses"""
    if request.method == 'GET':
        addresses = request.user.addresses.all()
        return Response({'addresses': AddressSerializer(addresses, many=True).data})

    serializer = AddressSerializer(data=request.data)
    if serializer.is_valid():
        address = serializer.save(user=request.user)
        logger.info(f"User {request.user.pk} added address {address.pk}")
        return Response({
            'message': 'Address added successfully',
            'address': AddressSerializer(address).data,
        }, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def address_detail(request, pk):
    """Retrieve, update or delete one of the current user's addresses"""
    address = get_object_or_404(Address, pk=pk, user=request.user)

    if request.method == 'GET':
        return Response(AddressSerializer(address).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = AddressSerializer(address, data=request.data, partial=True)
        if serializer.is_valid():
            serializer.save()
            return Response({
                'message': 'Address updated successfully',
                'address': serializer.data,
            })
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        with transaction.atomic():
            was_default = address.is_default
            address.delete()
            if was_default:
                # Promote the oldest remaining address
                remaining = request.user.addresses.order_by('created_at', 'pk').first()
                if remaining:
                    remaining.is_default = True
                    remaining.save(update_fields=['is_default', 'updated_at'])
        return Response({'message': 'Address deleted successfully'})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def address_set_default(request, pk):
    """Make one of the current user's addresses the default"""
    address = get_object_or_404(Address, pk=pk, user=request.user)
    with transaction.atomic():
        request.user.addresses.exclude(pk=address.pk).update(is_default=False)
        address.is_default = True
        address.save(update_fields=['is_default', 'updated_at'])
    return Response({
        'message': 'Default address updated successfully',
        'address': AddressSerializer(address).data,
    })


@api_view(['POST'])
@permission_classes([AllowAny])
def forgot_password(request):
    """
    Issue a one-hour password reset token.
    The response is identical whether or not the e-mail is registered.
    """
    serializer = ForgotPasswordSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    email = serializer.validated_data['email'].lower()
    user = User.objects.filter(email__iexact=email).first()
    if user is not None:
        user.reset_password_token = secrets.token_hex(32)
        user.reset_password_expires = timezone.now() + timedelta(hours=settings.PASSWORD_RESET_TIMEOUT_HOURS)
        user.save(update_fields=['reset_password_token', 'reset_password_expires'])

        reset_url = f"{settings.FRONTEND_URL}/reset-password?token={user.reset_password_token}"
        try:
            send_mail(
                subject='Password reset',
                message=f"Use the link below to reset your password. It expires in one hour.\n\n{reset_url}",
                from_email=settings.DEFAULT_FROM_EMAIL,
                recipient_list=[user.email],
            )
        except Exception as e:
            # The token stays valid; the user can request another e-mail
            logger.error(f"Failed to send password reset e-mail to {user.email}: {str(e)}")

    return Response({'message': FORGOT_PASSWORD_MESSAGE})


@api_view(['POST'])
@permission_classes([AllowAny])
def reset_password(request):
    """Set a new password from a reset token"""
    serializer = ResetPasswordSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    user = User.objects.filter(
        reset_password_token=serializer.validated_data['token'],
        reset_password_expires__gt=timezone.now(),
    ).first()
    if user is None:
        return Response({'error': 'Invalid or expired reset token'}, status=status.HTTP_400_BAD_REQUEST)

    user.set_password(serializer.validated_data['password'])
    user.reset_password_token = None
    user.reset_password_expires = None
    user.save()
    create_activity_log(request=request, action='password_reset', model_name='User',
                        object_id=user.id, object_name=user.email, user=user)
    return Response({'message': 'Password has been reset successfully'})


# Admin user management
@api_view(['GET', 'POST'])
@permission_classes([IsAdminRole])
def admin_user_list_create(request):
    """List users with search/role/status filters or create a user"""
    if request.method == 'GET':
        queryset = User.objects.all()

        search = request.query_params.get('search', '').strip()
        if search:
            queryset = queryset.filter(
                Q(name__icontains=search) |
                Q(email__icontains=search) |
                Q(phone__icontains=search)
            )

        role = request.query_params.get('role')
        if role:
            queryset = queryset.filter(role=role)

        user_status = request.query_params.get('status')
        if user_status:
            queryset = queryset.filter(status=user_status)

        queryset = queryset.order_by('-created_at')
        return Response(paginate(request, queryset, AdminUserSerializer, key='users'))

    email = (request.data.get('email') or '').strip().lower()
    if email and User.objects.filter(email__iexact=email).exists():
        return Response({'error': 'User with this email already exists'}, status=status.HTTP_400_BAD_REQUEST)

    serializer = AdminUserSerializer(data=request.data)
    if serializer.is_valid():
        user = serializer.save()
        create_activity_log(request=request, action='create', model_name='User',
                            object_id=user.id, object_name=user.email)
        return Response({
            'message': 'User created successfully',
            'user': AdminUserSerializer(user).data,
        }, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAdminRole])
def admin_user_detail(request, pk):
    """Retrieve, update or delete a user"""
    user = get_object_or_404(User, pk=pk)

    if request.method == 'GET':
        return Response(AdminUserSerializer(user).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = AdminUserSerializer(user, data=request.data, partial=True)
        if serializer.is_valid():
            serializer.save()
            create_activity_log(request=request, action='update', model_name='User',
                                object_id=user.id, object_name=user.email,
                                changes={k: v for k, v in request.data.items() if k != 'password'})
            return Response({
                'message': 'User updated successfully',
                'user': serializer.data,
            })
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        if user.pk == request.user.pk:
            return Response({'error': 'You cannot delete your own account'}, status=status.HTTP_400_BAD_REQUEST)
        order_count = user.orders.count()
        if order_count:
            return Response(
                {'error': f'Cannot delete user with {order_count} existing orders. Block the account instead.'},
                status=status.HTTP_400_BAD_REQUEST
            )
        create_activity_log(request=request, action='delete', model_name='User',
                            object_id=user.id, object_name=user.email)
        user.delete()
        return Response({'message': 'User deleted successfully'})


@api_view(['POST'])
@permission_classes([IsAdminRole])
def admin_user_bulk_status(request):
    """Set the status of several users at once"""
    serializer = BulkUserStatusSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    new_status = serializer.validated_data['status']
    users = User.objects.filter(id__in=serializer.validated_data['user_ids'])
    updated = 0
    # save() keeps is_active in step with the status
    for user in users:
        user.status = new_status
        user.save(update_fields=['status', 'is_active', 'updated_at'])
        updated += 1

    create_activity_log(request=request, action='update', model_name='User', object_id='bulk',
                        changes={'user_ids': serializer.validated_data['user_ids'], 'status': new_status})
    return Response({
        'message': f'{updated} users updated successfully',
        'updated': updated,
    })


# Settings views
@api_view(['GET'])
@permission_classes([AllowAny])
def public_settings(request):
    """Settings the storefront needs before login"""
    return Response(PublicSiteSettingsSerializer(SiteSettings.load()).data)


@api_view(['GET', 'PUT', 'PATCH'])
@permission_classes([IsAdminRole])
def admin_settings(request):
    """Retrieve or update the storefront settings"""
    site_settings = SiteSettings.load()

    if request.method == 'GET':
        return Response(SiteSettingsSerializer(site_settings).data)

    serializer = SiteSettingsSerializer(site_settings, data=request.data, partial=True)
    if serializer.is_valid():
        serializer.save()
        create_activity_log(request=request, action='settings_update', model_name='SiteSettings',
                            object_id=site_settings.pk, changes=serializer.validated_data)
        return Response({
            'message': 'Settings updated successfully',
            'settings': serializer.data,
        })
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


# Activity log views
@api_view(['GET', 'DELETE'])
@permission_classes([IsAdminRole])
def activity_log_list(request):
    """List activity logs with filtering, or clear them"""
    if request.method == 'DELETE':
        queryset = ActivityLog.objects.all()
        older_than = request.query_params.get('older_than_days')
        if older_than:
            days = parse_int(older_than, 0, minimum=0)
            queryset = queryset.filter(created_at__lt=timezone.now() - timedelta(days=days))
        deleted, _ = queryset.delete()
        logger.info(f"Cleared {deleted} activity log entries")
        return Response({'message': f'{deleted} activity logs cleared', 'deleted': deleted})

    queryset = ActivityLog.objects.select_related('user')

    action_filter = request.query_params.get('action')
    if action_filter:
        queryset = queryset.filter(action=action_filter)

    model_filter = request.query_params.get('model')
    if model_filter:
        queryset = queryset.filter(model_name=model_filter)

    user_filter = request.query_params.get('user')
    if user_filter:
        user_id = parse_id(user_filter)
        if user_id is None:
            return Response({'error': 'Invalid user'}, status=status.HTTP_400_BAD_REQUEST)
        queryset = queryset.filter(user_id=user_id)

    date_from = parse_date(request.query_params.get('date_from'))
    date_to = parse_date(request.query_params.get('date_to'))
    if date_from:
        queryset = queryset.filter(created_at__date__gte=date_from)
    if date_to:
        queryset = queryset.filter(created_at__date__lte=date_to)

    queryset = queryset.order_by('-created_at')
    return Response(paginate(request, queryset, ActivityLogSerializer, key='logs', default_limit=50))


@api_view(['GET'])
@permission_classes([IsAdminRole])
def activity_log_stats(request):
    """Activity counts by action"""
    since = timezone.now() - timedelta(days=parse_int(request.query_params.get('days'), 30, minimum=1))
    queryset = ActivityLog.objects.filter(created_at__gte=since)
    by_action = {
        row['action']: row['count']
        for row in queryset.values('action').annotate(count=Count('id')).order_by('action')
    }
    return Response({
        'total': queryset.count(),
        'by_action': by_action,
        'today': ActivityLog.objects.filter(created_at__date=timezone.localdate()).count(),
    })
