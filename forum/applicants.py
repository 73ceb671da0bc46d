"""
Applicant operations on the user table.

An application is a User row with is_applicant=True. register() creates
one, approve() turns it into an active member and decline() soft-deletes
it. Store-side problems (duplicate name or email, a registration flagged as
spam) are raised as django.core.exceptions.ValidationError.
"""

import logging

from django.conf import settings
from django.contrib.auth import password_validation
from django.core.exceptions import ValidationError
from django.core.mail import send_mail
from django.db import transaction

from .middleware import get_client_ip
from .models import RecordType, User
from .spam import SpamModel

logger = logging.getLogger(__name__)


def get_applicants(limit=30, offset=0):
    """Return pending, non-deleted applicants, newest first."""
    return User.objects.filter(is_applicant=True, deleted=False).order_by('-date_joined', '-pk')[offset:offset + limit]


def is_applicant(user_id):
    return User.objects.filter(pk=user_id, is_applicant=True, deleted=False).exists()


def validate_password_strength(password, name, email=''):
    """Run the AUTH_PASSWORD_VALIDATORS against a prospective applicant."""
    password_validation.validate_password(password, user=User(username=name, email=email))


def register(data, request=None, spam=None):
    """
    Submit a new application.

    Args:
        data: dict with email, name, password and discovery_text
        request: Current HttpRequest (for the registering IP)
        spam: SpamModel to consult; built from settings when omitted

    Returns:
        int: The new user's ID

    Raises:
        ValidationError: Name or email taken, or the registration is spam
    """
    name = data['name']
    email = data['email'].strip().lower()
    ip_address = get_client_ip(request)

    errors = {}
    if User.objects.filter(username__iexact=name).exists():
        errors['name'] = ["The name you entered is already in use by another member."]
    if User.objects.filter(email__iexact=email).exists():
        errors['email'] = ["The email you entered is in use by another member."]
    if errors:
        raise ValidationError(errors)

    spam = spam or SpamModel.from_settings()
    record = {
        'name': name,
        'email': email,
        'discovery_text': data.get('discovery_text', ''),
        'ip_address': ip_address,
    }
    if spam.is_spam(RecordType.REGISTRATION, record, request=request):
        logger.warning(f"Registration for {email} from {ip_address} flagged as spam")
        raise ValidationError({'spam': ["You are not allowed to register at this time."]})

    with transaction.atomic():
        user = User.objects.create_user(
            username=name,
            email=email,
            password=data['password'],
        )
        user.is_active = False
        user.is_applicant = True
        user.discovery_text = data.get('discovery_text', '')
        user.insert_ip_address = ip_address
        user.last_ip_address = ip_address
        user.save()

    logger.info(f"Application submitted for {email} (user {user.pk})")
    return user.pk


def approve(user_id):
    """
    Approve an applicant: activate the account and send a welcome email.

    Returns:
        bool: True when the user was an applicant and is now active
    """
    with transaction.atomic():
        user = User.objects.select_for_update().filter(pk=user_id, is_applicant=True, deleted=False).first()
        if user is None:
            return False
        user.is_applicant = False
        user.is_active = True
        user.save(update_fields=['is_applicant', 'is_active'])

    logger.info(f"Application {user_id} approved")

    try:
        send_mail(
            subject=f"Your membership application has been approved - {user.username}",
            message=(
                f"Hi {user.username},\n\n"
                "Your application has been approved. You can now sign in.\n"
            ),
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[user.email],
            fail_silently=False,
        )
    except Exception as email_error:
        logger.error(f"Approval email failed for {user.email}: {str(email_error)}")

    return True


def decline(user_id):
    """
    Decline an applicant. The row is kept and marked deleted.

    Returns:
        bool: True when the user was an applicant and is now declined
    """
    updated = User.objects.filter(pk=user_id, is_applicant=True, deleted=False).update(
        deleted=True,
        is_active=False,
    )
    if updated:
        logger.info(f"Application {user_id} declined")
    return bool(updated)
