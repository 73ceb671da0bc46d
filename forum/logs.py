"""
Moderation log writer.

insert_log() turns a record snapshot into a Log row, pulling the record's
ID, author and IP out of the snapshot so moderators can sort and group
entries without opening the JSON. restore_log() puts a flagged comment or
discussion back.
"""

import logging

from django.db import transaction
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from .exceptions import UnsupportedRecordType
from .models import Comment, Discussion, Log, RecordType

logger = logging.getLogger(__name__)

# Snapshot key holding a record's ID, by record type. Rows captured straight
# from the table use "id" instead.
RECORD_ID_FIELDS = {
    RecordType.COMMENT: 'comment_id',
    RecordType.DISCUSSION: 'discussion_id',
    RecordType.ACTIVITY: 'activity_id',
    RecordType.ACTIVITY_COMMENT: 'activity_comment_id',
    RecordType.CONVERSATION: 'conversation_id',
    RecordType.CONVERSATION_MESSAGE: 'message_id',
}


def positive_int(value):
    try:
        value = int(value)
    except (TypeError, ValueError):
        return None
    return value if value > 0 else None


def record_id_from(record_type, data):
    """Return the positive integer ID held in a snapshot, or None."""
    field = RECORD_ID_FIELDS.get(record_type)
    if field and data.get(field) is not None:
        return positive_int(data.get(field))
    return positive_int(data.get('id'))


def _record_date(data):
    value = data.get('date_inserted')
    if isinstance(value, str):
        value = parse_datetime(value)
    return value or None


def _record_fields(record_type, data):
    """Extract the Log columns that describe the logged record."""
    fields = {
        'record_id': record_id_from(record_type, data),
        'record_user_id': positive_int(data.get('insert_user_id')),
        'record_name': data.get('username') or '',
        'record_email': data.get('email') or '',
        'record_ip_address': data.get('ip_address') or data.get('insert_ip_address') or None,
        'record_date': _record_date(data),
        'parent_record_id': None,
    }
    if record_type == RecordType.COMMENT:
        fields['parent_record_id'] = positive_int(data.get('discussion_id'))
    return fields


@transaction.atomic
def insert_log(operation, record_type, data, group_by=None, inserted_by=None, insert_ip_address=None,
               record_fields=None):
    """
    Write a moderation log entry for a record snapshot.

    Args:
        operation: Log operation, e.g. Log.OPERATION_SPAM
        record_type: RecordType of the snapshot
        data: JSON-serializable snapshot of the record
        group_by: Log field names used to collapse repeated entries
        inserted_by: Session user writing the entry
        insert_ip_address: IP of the request writing the entry
        record_fields: Log columns (record_name, record_email, ...) to use where
            the snapshot itself has no value, e.g. author details for a row
            captured straight from its table

    Returns:
        Log: The created row, or the existing row it was merged into

    When group_by is given and an entry with the same operation, record type
    and group values exists, that entry takes the new snapshot and its
    count_group is incremented. A missing group value never merges.
    """
    group_by = list(group_by or [])
    fields = _record_fields(record_type, data)
    for key, value in (record_fields or {}).items():
        if value and not fields.get(key):
            fields[key] = value

    if group_by and all(fields.get(key) is not None for key in group_by):
        lookup = {key: fields[key] for key in group_by}
        existing = (
            Log.objects.select_for_update()
            .filter(operation=operation, record_type=record_type, **lookup)
            .order_by('-date_inserted', '-pk')
            .first()
        )
        if existing is not None:
            existing.data = data
            existing.count_group += 1
            existing.date_updated = timezone.now()
            existing.save(update_fields=['data', 'count_group', 'date_updated'])
            logger.info(
                "Merged %s log for %s %s (count %s)",
                operation, record_type, lookup, existing.count_group,
            )
            return existing

    log = Log.objects.create(
        operation=operation,
        record_type=record_type,
        data=data,
        group_by=group_by,
        inserted_by=inserted_by if getattr(inserted_by, 'pk', None) else None,
        insert_ip_address=insert_ip_address,
        **fields,
    )
    logger.info("Logged %s %s #%s", operation, record_type, log.record_id or '-')
    return log


def _restore_comment(snapshot, discussion_id=None):
    return Comment.objects.create(
        pk=snapshot.get('id'),
        discussion_id=discussion_id or snapshot['discussion_id'],
        body=snapshot.get('body', ''),
        format=snapshot.get('format') or 'Html',
        insert_user_id=snapshot.get('insert_user_id'),
        insert_ip_address=snapshot.get('insert_ip_address'),
        date_inserted=_record_date(snapshot) or timezone.now(),
    )


@transaction.atomic
def restore_log(log):
    """
    Re-create a comment or discussion from its log snapshot.

    Nested comments captured with a discussion are restored with it. The log
    row is deleted once the record is back.

    Raises:
        UnsupportedRecordType: For anything but Comment and Discussion
    """
    snapshot = dict(log.data)

    if log.record_type == RecordType.COMMENT:
        restored = _restore_comment(snapshot)
    elif log.record_type == RecordType.DISCUSSION:
        nested = (snapshot.get('_data') or {}).get('comments', [])
        restored, created = Discussion.objects.get_or_create(
            pk=snapshot.get('id'),
            defaults={
                'name': snapshot.get('name', ''),
                'body': snapshot.get('body', ''),
                'format': snapshot.get('format') or 'Html',
                'insert_user_id': snapshot.get('insert_user_id'),
                'insert_ip_address': snapshot.get('insert_ip_address'),
                'date_inserted': _record_date(snapshot) or timezone.now(),
            },
        )
        if created:
            for comment in nested:
                _restore_comment(comment, discussion_id=restored.pk)
    else:
        raise UnsupportedRecordType(log.record_type)

    logger.info("Restored %s #%s from log %s", log.record_type, restored.pk, log.pk)
    log.delete()
    return restored
