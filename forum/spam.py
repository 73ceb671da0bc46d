"""
================================================================================
FORUM - SPAM DISPATCHER & MODERATION QUEUE
================================================================================

@file        spam.py
@description Spam verdicts for forum records and their moderation side effects
@version     1.0.0

MODULE PURPOSE
================================================================================
SpamModel.is_spam() decides whether a record (a comment, a discussion, a
registration, ...) is spam:

1. Enrichment
   - Registration: username defaults to the submitted name
   - Everything else: the author defaults to the session user; verified
     members and administrators are trusted and short-circuit to False;
     username / email / IP default from the author's account
   - body defaults to story
   - packed IP addresses are decoded, at any nesting depth
   - ip_address defaults to the request's client IP

2. Verdict
   - every configured checker is asked, in order
   - the check_spam signal is sent
   - any positive answer makes the record spam (all checkers always run)

3. Moderation queue (positive verdict, options['log'] true)
   - comments and discussions with an ID are flagged for review:
     snapshot, optional purge, one log row
   - everything else is written to the log as submitted

LOG GROUPING
================================================================================
Registration                                  -> ['record_ip_address']
Comment, Discussion, Activity, ActivityComment -> ['record_id']
anything else                                  -> no grouping

FLAG FOR REVIEW
================================================================================
Discussions with count_comments >= SPAM_DELETE_COMMENT_THRESHOLD are left in
place and only logged. Smaller discussions are logged together with all of
their comments and then deleted. The snapshot is always taken before the
delete, and the whole sequence runs in one transaction.

USAGE
================================================================================
    spam = SpamModel.from_settings()
    if spam.is_spam(RecordType.COMMENT, {'body': body}, request=request):
        return JsonResponse({"error": "Your comment will appear after review."}, status=202)

================================================================================
"""

import ipaddress
import logging
from contextlib import contextmanager

from django.conf import settings
from django.db import transaction

from .checkers import load_checkers
from .exceptions import UnsupportedRecordType
from .logs import insert_log, positive_int, record_id_from
from .middleware import get_client_ip
from .models import Comment, Discussion, Log, RecordType, User
from .signals import check_spam

logger = logging.getLogger(__name__)


# ============================================================================
# CONSTANTS
# ============================================================================

GROUP_BY_IP = ['record_ip_address']
GROUP_BY_RECORD = ['record_id']

RECORD_GROUP_BY = {
    RecordType.REGISTRATION: GROUP_BY_IP,
    RecordType.COMMENT: GROUP_BY_RECORD,
    RecordType.DISCUSSION: GROUP_BY_RECORD,
    RecordType.ACTIVITY: GROUP_BY_RECORD,
    RecordType.ACTIVITY_COMMENT: GROUP_BY_RECORD,
}

REVIEWABLE_MODELS = {
    RecordType.COMMENT: Comment,
    RecordType.DISCUSSION: Discussion,
}

OVERRIDE_FIELDS = ('name', 'body')


# ============================================================================
# HELPERS
# ============================================================================

def decode_ip(value):
    """Return the text form of a packed (4 or 16 byte) IP, else the value."""
    if isinstance(value, (bytes, bytearray)) and len(value) in (4, 16):
        return str(ipaddress.ip_address(bytes(value)))
    return value


def decode_ips(data):
    """
    Decode packed IP addresses in a record, recursively.

    Any key containing 'ip_address' is decoded, whether it holds a single
    value or a list of values. Nested dicts and lists are walked.
    """
    if isinstance(data, dict):
        decoded = {}
        for key, value in data.items():
            if 'ip_address' in str(key).lower():
                if isinstance(value, (list, tuple)):
                    value = [decode_ip(v) for v in value]
                else:
                    value = decode_ip(value)
            decoded[key] = decode_ips(value)
        return decoded
    if isinstance(data, list):
        return [decode_ips(item) for item in data]
    return data


def touch(data, key, default):
    """Set data[key] to default unless it already holds a value."""
    if data.get(key) is None:
        data[key] = default


def author_fields(data):
    """Log columns describing the author, taken from an enriched record."""
    return {
        'record_user_id': positive_int(data.get('insert_user_id')),
        'record_name': data.get('username') or '',
        'record_email': data.get('email') or '',
        'record_ip_address': data.get('ip_address') or None,
    }


def delete_comment_threshold():
    return getattr(settings, 'SPAM_DELETE_COMMENT_THRESHOLD', Discussion.DELETE_COMMENT_THRESHOLD)


# ============================================================================
# SPAM MODEL
# ============================================================================

class SpamModel:
    """
    Spam dispatcher.

    Instances are built explicitly and handed to whatever needs a verdict.
    The enabled flag lives on the instance, so turning checks off for an
    import or a test does not leak into other callers.

    Attributes:
        checkers (list): Objects implementing evaluate(record_type, data, options)
        enabled (bool): False makes every check return False without side effects
    """

    def __init__(self, checkers=(), enabled=True):
        self.checkers = list(checkers)
        self.enabled = enabled

    @classmethod
    def from_settings(cls):
        return cls(
            checkers=load_checkers(),
            enabled=getattr(settings, 'SPAM_CHECK_ENABLED', True),
        )

    @contextmanager
    def disabled(self):
        """Turn spam checking off for the duration of a with-block."""
        previous = self.enabled
        self.enabled = False
        try:
            yield self
        finally:
            self.enabled = previous

    # ------------------------------------------------------------------------
    # Verdict
    # ------------------------------------------------------------------------

    def is_spam(self, record_type, data, options=None, request=None):
        """
        Check whether a record is spam.

        Args:
            record_type: RecordType of the record
            data: Record fields (snake_case keys); not modified
            options: {'log': bool}; log defaults to True
            request: Current HttpRequest, used for the session user and IP

        Returns:
            bool: True when at least one checker flagged the record

        Raises:
            UnsupportedRecordType: Propagated from flag_for_review
        """
        if not self.enabled:
            return False

        options = {'log': True, **(options or {})}
        data = dict(data)
        session_user = getattr(request, 'user', None)

        if record_type == RecordType.REGISTRATION:
            touch(data, 'username', data.get('name'))
        else:
            if session_user is not None and session_user.is_authenticated:
                touch(data, 'insert_user_id', session_user.pk)

            user = None
            user_id = positive_int(data.get('insert_user_id'))
            if user_id is not None:
                user = User.objects.filter(pk=user_id).first()

            if user is not None:
                if user.is_trusted:
                    return False
                touch(data, 'username', user.username)
                touch(data, 'email', user.email)
                touch(data, 'ip_address', user.last_ip_address)

        if 'body' not in data and 'story' in data:
            data['body'] = data['story']

        data = decode_ips(data)

        touch(data, 'ip_address', get_client_ip(request))

        verdict = False
        for checker in self.checkers:
            if checker.evaluate(record_type, data, options):
                logger.debug("%s flagged %s", type(checker).__name__, record_type)
                verdict = True

        responses = check_spam.send(sender=type(self), record_type=record_type, data=data, options=options)
        if any(response for _, response in responses):
            verdict = True

        if verdict:
            logger.info(
                "Spam detected: %s by %s (%s)",
                record_type, data.get('username') or '-', data.get('ip_address') or '-',
            )
            if options.get('log', True):
                self.log_spam(record_type, data, request=request)

        return verdict

    # ------------------------------------------------------------------------
    # Moderation queue
    # ------------------------------------------------------------------------

    def log_spam(self, record_type, data, request=None):
        """Write a positive verdict to the moderation queue."""
        group_by = RECORD_GROUP_BY.get(record_type)

        if record_type in REVIEWABLE_MODELS:
            record_id = record_id_from(record_type, data)
            if record_id:
                return self.flag_for_review(record_type, record_id, data, request=request)

        return insert_log(
            Log.OPERATION_SPAM,
            record_type,
            data,
            group_by=group_by,
            inserted_by=getattr(request, 'user', None),
            insert_ip_address=get_client_ip(request),
        )

    def flag_for_review(self, record_type, record_id, override_data=None, request=None):
        """
        Move a live comment or discussion into the moderation queue.

        Args:
            record_type: RecordType.COMMENT or RecordType.DISCUSSION
            record_id: ID of the live record
            override_data: Submitted fields; name and body replace the stored ones
            request: Current HttpRequest, recorded on the log row

        Returns:
            Log: The log row holding the snapshot

        Raises:
            UnsupportedRecordType: For any other record type
        """
        model = REVIEWABLE_MODELS.get(record_type)
        if model is None:
            raise UnsupportedRecordType(record_type)

        override_data = override_data or {}

        with transaction.atomic():
            live = model.objects.select_for_update().filter(pk=record_id).first()
            row = model.objects.filter(pk=record_id).values().first() or {}
            delete_row = live is not None

            if record_type == RecordType.DISCUSSION and row:
                if row['count_comments'] >= delete_comment_threshold():
                    delete_row = False
                elif row['count_comments'] > 0:
                    comments = list(Comment.objects.filter(discussion_id=record_id).values())
                    row.setdefault('_data', {})['comments'] = comments

            for field in OVERRIDE_FIELDS:
                if override_data.get(field) is not None:
                    row[field] = override_data[field]

            if delete_row:
                live.delete()
                logger.info("Purged %s #%s pending review", record_type, record_id)
            else:
                logger.info("Flagged %s #%s for review without purging", record_type, record_id)

            row.setdefault('id', record_id)
            return insert_log(
                Log.OPERATION_SPAM,
                record_type,
                row,
                group_by=GROUP_BY_RECORD,
                inserted_by=getattr(request, 'user', None),
                insert_ip_address=get_client_ip(request),
                record_fields=author_fields(override_data),
            )
