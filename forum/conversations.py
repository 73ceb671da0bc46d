"""
Conversation helpers: membership lookups, flood control and notifications.
"""

import logging

from django.conf import settings
from django.core.exceptions import PermissionDenied, ValidationError
from django.db import transaction
from django.db.models import F

from .activity import ActivityQueue
from .flood import FloodGate
from .middleware import get_client_ip
from .models import Conversation, ConversationMember, ConversationMessage, RecordType
from .spam import SpamModel

logger = logging.getLogger(__name__)

FLOOD_TYPES = (RecordType.CONVERSATION, RecordType.CONVERSATION_MESSAGE)

HEADLINE_FORMAT = '{ActivityUserID,User} sent you a <a href="{Url,html}">message</a>'


def get_conversation_members(conversation_id, ids_only=True, limit=None, offset=None):
    """
    Get the members of a conversation, ordered by user ID.

    Args:
        conversation_id: The conversation ID
        ids_only: Return only user IDs instead of the membership rows
        limit: Maximum number of members to return
        offset: Number of members to skip

    Returns:
        list | dict: [user_id, ...] or {user_id: membership_row}
    """
    members = ConversationMember.objects.filter(conversation_id=conversation_id).order_by('user_id')
    if ids_only:
        members = members.values_list('user_id', flat=True)
    else:
        members = members.values()

    start = offset or 0
    if limit:
        members = members[start:start + limit]
    elif start:
        members = members[start:]

    if ids_only:
        return list(members)
    return {row['user_id']: row for row in members}


def valid_conversation_member(conversation_id, user_id):
    """Check whether a user is a member of the conversation."""
    return user_id in get_conversation_members(conversation_id)


def check_for_spam(user, record_type):
    """
    Check whether a user is posting conversations or messages too quickly.

    Raises:
        ValueError: For a type other than Conversation or ConversationMessage
    """
    if record_type not in FLOOD_TYPES:
        raise ValueError(f"Spam check type unknown: {record_type}")
    return FloodGate.configure(record_type).is_spamming(user)


def notify_users(conversation, message, notify_user_ids):
    """
    Notify conversation members about a new message.

    The author is never notified. When the conversation has a subject, the
    story is prefixed with "Re: <subject>".
    """
    story = message.body
    if conversation.subject:
        story = f"Re: {conversation.subject}<br>{message.body}"

    activity = {
        'activity_type': 'ConversationMessage',
        'activity_user_id': message.insert_user_id,
        'headline_format': HEADLINE_FORMAT,
        'record_type': RecordType.CONVERSATION,
        'record_id': conversation.pk,
        'story': story,
        'action_text': 'Reply',
        'format': message.format or getattr(settings, 'INPUT_FORMATTER', 'Html'),
        'route': f"/messages/{conversation.pk}#Message_{message.pk}",
    }

    activities = ActivityQueue()
    for user_id in notify_user_ids:
        if user_id == message.insert_user_id:
            continue
        activities.queue({**activity, 'notify_user_id': user_id}, 'ConversationMessage')
    return activities.flush()


def add_message(conversation, user, body, request=None, spam=None):
    """
    Post a message to a conversation and notify the other members.

    Raises:
        PermissionDenied: The user is not a member of the conversation
        ValidationError: The user is flooding or the message is spam
    """
    if not valid_conversation_member(conversation.pk, user.pk):
        raise PermissionDenied("You are not a member of this conversation.")

    if check_for_spam(user, RecordType.CONVERSATION_MESSAGE):
        raise ValidationError(
            "You have posted too many messages. Please wait a few minutes and try again.",
            code='flood',
        )

    spam = spam or SpamModel.from_settings()
    record = {
        'conversation_id': conversation.pk,
        'insert_user_id': user.pk,
        'body': body,
    }
    if spam.is_spam(RecordType.CONVERSATION_MESSAGE, record, request=request):
        raise ValidationError("Your message has been flagged for review.", code='spam')

    with transaction.atomic():
        message = ConversationMessage.objects.create(
            conversation=conversation,
            insert_user=user,
            body=body,
            format=getattr(settings, 'INPUT_FORMATTER', 'Html'),
            insert_ip_address=get_client_ip(request),
        )
        Conversation.objects.filter(pk=conversation.pk).update(count_messages=F('count_messages') + 1)
        ConversationMember.objects.filter(conversation=conversation).update(deleted=False)

    logger.info(f"User {user.pk} posted message {message.pk} in conversation {conversation.pk}")
    notify_users(conversation, message, get_conversation_members(conversation.pk))
    return message
