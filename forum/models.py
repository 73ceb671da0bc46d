"""
================================================================================
FORUM - DATABASE MODELS
================================================================================

@file        models.py
@description Django ORM models for the forum record store
@version     1.0.0

MODULE PURPOSE
================================================================================
This module defines the tables every other part of the forum reads and
writes:
- User model (extended from AbstractUser, doubles as the applicant record)
- Discussions and their comments
- Private conversations (Conversation, ConversationMember, ConversationMessage)
- Activity notifications
- Moderation log (spam queue, flagged records)

DATABASE STRUCTURE
================================================================================
1. User & Registration
   - User (AbstractUser extension; applicants are users with is_applicant)

2. Content Models
   - Discussion (thread root, keeps a denormalized comment count)
   - Comment (reply inside a discussion)

3. Messaging System
   - Conversation (private thread, optional subject)
   - ConversationMember (membership, read tracking)
   - ConversationMessage (message body)

4. Notifications
   - Activity (queued notification for one recipient)

5. Moderation
   - Log (snapshot of a record pulled for review)

MODEL RELATIONSHIPS
================================================================================
User (1) ──────> (N) Discussion
User (1) ──────> (N) Comment
User (1) ──────> (N) ConversationMessage
User (1) ──────> (N) Activity (notify_user)

Discussion (1) ──> (N) Comment
Conversation (1) ─> (N) ConversationMessage
User (N) <─────> (N) Conversation (via ConversationMember)

RECORD TYPES
================================================================================
RecordType names the kind of record a spam check or log row is about.
The values are stored verbatim in Log.record_type and Activity.record_type.

================================================================================
"""

from django.contrib.auth.models import AbstractUser
from django.core.serializers.json import DjangoJSONEncoder
from django.db import models
from django.db.models import F
from django.utils import timezone


# ============================================================================
# CONSTANTS & CHOICES
# ============================================================================

class RecordType(models.TextChoices):
    COMMENT = 'Comment', 'Comment'
    DISCUSSION = 'Discussion', 'Discussion'
    REGISTRATION = 'Registration', 'Registration'
    ACTIVITY = 'Activity', 'Activity'
    ACTIVITY_COMMENT = 'ActivityComment', 'Activity comment'
    CONVERSATION = 'Conversation', 'Conversation'
    CONVERSATION_MESSAGE = 'ConversationMessage', 'Conversation message'


FORMAT_CHOICES = [
    ('Html', 'HTML'),
    ('Markdown', 'Markdown'),
    ('Text', 'Plain text'),
]


# ============================================================================
# SECTION 1: USER & REGISTRATION MODELS
# ============================================================================

class User(AbstractUser):
    """
    Forum member or pending applicant.

    Extends Django's AbstractUser with the fields the registration
    approval workflow and the spam dispatcher need. An application is a
    user row with is_applicant=True; approving it clears the flag and
    activates the account, declining it sets the deleted flag.

    Attributes:
        verified (BooleanField): Trusted member, bypasses spam checks
        deleted (BooleanField): Soft-delete flag, hides the row from the API
        is_applicant (BooleanField): Waiting for moderator approval
        discovery_text (TextField): Why the applicant wants to join
        insert_ip_address (GenericIPAddressField): IP used to register
        last_ip_address (GenericIPAddressField): Most recent request IP

    Administrators are superusers; like verified members they are never
    treated as spammers.

    Example:
        applicant = User.objects.get(pk=42, is_applicant=True)
        if not applicant.deleted:
            print(applicant.discovery_text)
    """

    # --- Trust ---
    verified = models.BooleanField(
        default=False,
        help_text="Verified members skip spam checking"
    )
    deleted = models.BooleanField(
        default=False,
        help_text="Soft-deleted accounts are invisible to the API"
    )

    # --- Application ---
    is_applicant = models.BooleanField(
        default=False,
        db_index=True,
        help_text="Registration waiting for moderator approval"
    )
    discovery_text = models.TextField(
        blank=True,
        help_text="Reason the applicant gave for joining"
    )

    # --- Network Tracking ---
    insert_ip_address = models.GenericIPAddressField(
        null=True,
        blank=True,
        help_text="IP address used when registering"
    )
    last_ip_address = models.GenericIPAddressField(
        null=True,
        blank=True,
        help_text="IP address of the most recent request"
    )

    class Meta:
        permissions = [
            ('approve_users', 'Can approve or decline applications'),
            ('moderate', 'Can manage the moderation queue'),
        ]

    @property
    def is_trusted(self):
        """Verified members and administrators are never spam-checked."""
        return bool(self.verified or self.is_superuser)


# ============================================================================
# SECTION 2: CONTENT MODELS (Discussions & Comments)
# ============================================================================

class Discussion(models.Model):
    """
    Discussion thread.

    Keeps a denormalized count of its comments. The count decides whether a
    discussion flagged as spam is purged (small threads) or only logged
    (threads at or above DELETE_COMMENT_THRESHOLD).

    Attributes:
        name (CharField): Thread title
        body (TextField): Opening post
        format (CharField): Body input format
        insert_user (ForeignKey): Author
        insert_ip_address (GenericIPAddressField): Author IP
        date_inserted (DateTimeField): Creation timestamp
        count_comments (PositiveIntegerField): Number of comments

    Related Names:
        comments: QuerySet of Comment objects
    """

    DELETE_COMMENT_THRESHOLD = 200

    name = models.CharField(
        max_length=100,
        help_text="Discussion title"
    )
    body = models.TextField(
        help_text="Opening post body"
    )
    format = models.CharField(
        max_length=20,
        choices=FORMAT_CHOICES,
        default='Html'
    )
    insert_user = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        related_name='discussions',
        help_text="Author of the discussion"
    )
    insert_ip_address = models.GenericIPAddressField(
        null=True,
        blank=True
    )
    date_inserted = models.DateTimeField(
        default=timezone.now,
        db_index=True
    )
    count_comments = models.PositiveIntegerField(
        default=0,
        help_text="Denormalized number of comments"
    )

    class Meta:
        ordering = ['-date_inserted']

    def __str__(self):
        return self.name


class Comment(models.Model):
    """
    Reply inside a discussion.

    Creating or deleting a comment adjusts the parent discussion's
    count_comments with an F() expression, so concurrent writers do not
    overwrite each other's counts.
    """

    discussion = models.ForeignKey(
        Discussion,
        on_delete=models.CASCADE,
        related_name='comments',
        help_text="Discussion this comment belongs to"
    )
    body = models.TextField(
        help_text="Comment body"
    )
    format = models.CharField(
        max_length=20,
        choices=FORMAT_CHOICES,
        default='Html'
    )
    insert_user = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        related_name='comments',
        help_text="Comment author"
    )
    insert_ip_address = models.GenericIPAddressField(
        null=True,
        blank=True
    )
    date_inserted = models.DateTimeField(
        default=timezone.now
    )

    class Meta:
        ordering = ['date_inserted', 'pk']

    def save(self, *args, **kwargs):
        created = self._state.adding
        super().save(*args, **kwargs)
        if created:
            Discussion.objects.filter(pk=self.discussion_id).update(
                count_comments=F('count_comments') + 1
            )

    def delete(self, *args, **kwargs):
        discussion_id = self.discussion_id
        result = super().delete(*args, **kwargs)
        Discussion.objects.filter(pk=discussion_id, count_comments__gt=0).update(
            count_comments=F('count_comments') - 1
        )
        return result

    def __str__(self):
        return f"{self.insert_user} - {self.body[:50]}"


# ============================================================================
# SECTION 3: MESSAGING SYSTEM MODELS
# ============================================================================

class Conversation(models.Model):
    """
    Private conversation between two or more members.

    Attributes:
        subject (CharField): Optional subject line, used in notifications
        insert_user (ForeignKey): Member who started the conversation
        date_inserted (DateTimeField): Creation timestamp
        count_messages (PositiveIntegerField): Number of messages

    Related Names:
        members: QuerySet of ConversationMember objects
        messages: QuerySet of ConversationMessage objects
    """

    subject = models.CharField(
        max_length=255,
        blank=True,
        help_text="Optional subject line"
    )
    insert_user = models.ForeignKey(
        User,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name='started_conversations'
    )
    date_inserted = models.DateTimeField(
        default=timezone.now
    )
    count_messages = models.PositiveIntegerField(
        default=0
    )

    def __str__(self):
        return self.subject or f"Conversation #{self.pk}"


class ConversationMember(models.Model):
    """
    Membership of a user in a conversation.

    Meta:
        unique_together: One membership per user per conversation
    """

    conversation = models.ForeignKey(
        Conversation,
        on_delete=models.CASCADE,
        related_name='members'
    )
    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='conversation_memberships'
    )
    date_last_viewed = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Last time the member opened the conversation"
    )
    count_read_messages = models.PositiveIntegerField(
        default=0
    )
    deleted = models.BooleanField(
        default=False,
        help_text="Member left or hid the conversation"
    )

    class Meta:
        unique_together = ('conversation', 'user')

    def __str__(self):
        return f"{self.user} in {self.conversation}"


class ConversationMessage(models.Model):
    conversation = models.ForeignKey(
        Conversation,
        on_delete=models.CASCADE,
        related_name='messages'
    )
    body = models.TextField()
    format = models.CharField(
        max_length=20,
        choices=FORMAT_CHOICES,
        default='Html'
    )
    insert_user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='conversation_messages'
    )
    insert_ip_address = models.GenericIPAddressField(
        null=True,
        blank=True
    )
    date_inserted = models.DateTimeField(
        default=timezone.now
    )

    class Meta:
        ordering = ['date_inserted', 'pk']

    def __str__(self):
        return f"[Conversation {self.conversation_id}] {self.insert_user}: {self.body[:30]}"


# ============================================================================
# SECTION 4: NOTIFICATION MODELS
# ============================================================================

class Activity(models.Model):
    """
    Notification queued for a single recipient.

    Attributes:
        activity_type (CharField): Kind of activity (e.g. 'ConversationMessage')
        activity_user (ForeignKey): User who caused the activity
        notify_user (ForeignKey): User receiving the notification
        headline_format (CharField): Headline template
        record_type (CharField): Type of the record the activity points at
        record_id (PositiveIntegerField): ID of that record
        story (TextField): Notification body
        route (CharField): Link to the record
        channel (CharField): Queue channel the activity was sent on
        is_read (BooleanField): Read status

    Meta:
        ordering: Newest first
    """

    activity_type = models.CharField(
        max_length=50
    )
    activity_user = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        related_name='caused_activities'
    )
    notify_user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='activities',
        help_text="User receiving this notification"
    )
    headline_format = models.CharField(
        max_length=255,
        blank=True
    )
    record_type = models.CharField(
        max_length=30,
        choices=RecordType.choices,
        blank=True
    )
    record_id = models.PositiveIntegerField(
        null=True,
        blank=True
    )
    story = models.TextField(
        blank=True
    )
    format = models.CharField(
        max_length=20,
        choices=FORMAT_CHOICES,
        default='Html'
    )
    route = models.CharField(
        max_length=255,
        blank=True
    )
    action_text = models.CharField(
        max_length=50,
        blank=True
    )
    channel = models.CharField(
        max_length=50,
        blank=True
    )
    is_read = models.BooleanField(
        default=False
    )
    date_inserted = models.DateTimeField(
        default=timezone.now
    )

    class Meta:
        ordering = ['-date_inserted', '-pk']
        verbose_name_plural = 'activities'


# ============================================================================
# SECTION 5: MODERATION MODELS
# ============================================================================

class Log(models.Model):
    """
    Moderation queue entry.

    Holds a JSON snapshot of a record pulled for review. Entries with the
    same operation, record type and group_by values are collapsed into one
    row whose count_group grows with each repeat.

    Attributes:
        operation (CharField): 'Spam', 'Moderate', 'Delete', ...
        record_type (CharField): RecordType of the snapshot
        record_id (PositiveIntegerField): ID of the logged record, if any
        record_user_id (PositiveIntegerField): Author of the record
        record_name (CharField): Author name at logging time
        record_email (CharField): Author email at logging time
        record_ip_address (GenericIPAddressField): Author IP
        record_date (DateTimeField): When the record was created
        parent_record_id (PositiveIntegerField): Discussion of a comment
        data (JSONField): Snapshot of the record
        group_by (JSONField): Field names used for de-duplication
        count_group (PositiveIntegerField): Number of collapsed entries
        inserted_by (ForeignKey): Session user when the log was written
    """

    OPERATION_SPAM = 'Spam'

    operation = models.CharField(
        max_length=20,
        db_index=True
    )
    record_type = models.CharField(
        max_length=30,
        choices=RecordType.choices
    )
    record_id = models.PositiveIntegerField(
        null=True,
        blank=True
    )
    record_user_id = models.PositiveIntegerField(
        null=True,
        blank=True
    )
    record_name = models.CharField(
        max_length=150,
        blank=True
    )
    record_email = models.CharField(
        max_length=254,
        blank=True
    )
    record_ip_address = models.GenericIPAddressField(
        null=True,
        blank=True
    )
    record_date = models.DateTimeField(
        null=True,
        blank=True
    )
    parent_record_id = models.PositiveIntegerField(
        null=True,
        blank=True
    )
    data = models.JSONField(
        encoder=DjangoJSONEncoder,
        default=dict,
        help_text="Snapshot of the record as it was logged"
    )
    group_by = models.JSONField(
        default=list,
        blank=True
    )
    count_group = models.PositiveIntegerField(
        default=1
    )
    inserted_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    insert_ip_address = models.GenericIPAddressField(
        null=True,
        blank=True
    )
    date_inserted = models.DateTimeField(
        default=timezone.now,
        db_index=True
    )
    date_updated = models.DateTimeField(
        null=True,
        blank=True
    )

    class Meta:
        ordering = ['-date_inserted', '-pk']
        indexes = [
            models.Index(fields=['operation', 'record_type', 'record_id'], name='forum_log_op_type_id_idx'),
        ]

    def __str__(self):
        return f"{self.operation} {self.record_type} #{self.record_id or '-'}"
