"""
Forum - Moderation Log Tests
============================

Tests for insert_log() grouping and restore_log().
"""

import pytest

from forum.exceptions import UnsupportedRecordType
from forum.logs import insert_log, record_id_from, restore_log
from forum.models import Comment, Discussion, Log, RecordType
from forum.spam import SpamModel


pytestmark = pytest.mark.django_db


class TestRecordId:

    def test_type_specific_key_wins(self):
        assert record_id_from(RecordType.COMMENT, {'comment_id': 3, 'id': 9}) == 3

    def test_falls_back_to_id(self):
        assert record_id_from(RecordType.DISCUSSION, {'id': '9'}) == 9

    @pytest.mark.parametrize('value', [None, 0, -4, 'abc'])
    def test_non_positive_is_none(self, value):
        assert record_id_from(RecordType.COMMENT, {'comment_id': value}) is None


class TestInsertLog:

    def test_extracts_record_columns(self, member):
        log = insert_log('Spam', RecordType.COMMENT, {
            'comment_id': 5,
            'discussion_id': 2,
            'insert_user_id': member.pk,
            'username': 'alice',
            'email': 'alice@example.com',
            'ip_address': '10.0.0.7',
            'date_inserted': '2024-05-01T12:00:00Z',
        }, inserted_by=member, insert_ip_address='10.0.0.1')

        assert log.record_id == 5
        assert log.parent_record_id == 2
        assert log.record_user_id == member.pk
        assert log.record_name == 'alice'
        assert log.record_email == 'alice@example.com'
        assert log.record_ip_address == '10.0.0.7'
        assert log.record_date.year == 2024
        assert log.inserted_by == member
        assert log.insert_ip_address == '10.0.0.1'

    def test_merges_on_group_values(self):
        first = insert_log('Spam', RecordType.ACTIVITY, {'activity_id': 1, 'story': 'a'}, group_by=['record_id'])
        second = insert_log('Spam', RecordType.ACTIVITY, {'activity_id': 1, 'story': 'b'}, group_by=['record_id'])

        assert first.pk == second.pk
        log = Log.objects.get()
        assert log.count_group == 2
        assert log.data['story'] == 'b'
        assert log.date_updated is not None

    def test_different_group_values_do_not_merge(self):
        insert_log('Spam', RecordType.ACTIVITY, {'activity_id': 1}, group_by=['record_id'])
        insert_log('Spam', RecordType.ACTIVITY, {'activity_id': 2}, group_by=['record_id'])
        assert Log.objects.count() == 2

    def test_missing_group_value_never_merges(self):
        insert_log('Spam', RecordType.REGISTRATION, {'name': 'a'}, group_by=['record_ip_address'])
        insert_log('Spam', RecordType.REGISTRATION, {'name': 'b'}, group_by=['record_ip_address'])
        assert Log.objects.count() == 2

    def test_operation_is_part_of_the_group(self):
        insert_log('Spam', RecordType.ACTIVITY, {'activity_id': 1}, group_by=['record_id'])
        insert_log('Moderate', RecordType.ACTIVITY, {'activity_id': 1}, group_by=['record_id'])
        assert Log.objects.count() == 2


class TestRestoreLog:

    def test_restores_comment(self, make_discussion):
        discussion = make_discussion(comments=1)
        comment = discussion.comments.get()
        log = SpamModel().flag_for_review(RecordType.COMMENT, comment.pk)
        log.refresh_from_db()

        restored = restore_log(log)

        assert restored.pk == comment.pk
        assert restored.body == comment.body
        assert Discussion.objects.get(pk=discussion.pk).count_comments == 1
        assert not Log.objects.filter(pk=log.pk).exists()

    def test_restores_discussion_with_comments(self, make_discussion):
        discussion = make_discussion(comments=2)
        comment_ids = set(discussion.comments.values_list('pk', flat=True))
        log = SpamModel().flag_for_review(RecordType.DISCUSSION, discussion.pk)
        log.refresh_from_db()
        assert not Discussion.objects.filter(pk=discussion.pk).exists()

        restored = restore_log(log)

        assert restored.pk == discussion.pk
        assert restored.name == discussion.name
        assert set(Comment.objects.filter(discussion=restored).values_list('pk', flat=True)) == comment_ids
        assert Discussion.objects.get(pk=discussion.pk).count_comments == 2

    def test_kept_discussion_is_not_duplicated(self, make_discussion, settings):
        settings.SPAM_DELETE_COMMENT_THRESHOLD = 1
        discussion = make_discussion(comments=1)
        log = SpamModel().flag_for_review(RecordType.DISCUSSION, discussion.pk)

        restore_log(log)

        assert Discussion.objects.count() == 1
        assert Comment.objects.count() == 1

    def test_unsupported_type(self):
        log = insert_log('Spam', RecordType.REGISTRATION, {'name': 'bob'})

        with pytest.raises(UnsupportedRecordType):
            restore_log(log)
        assert Log.objects.filter(pk=log.pk).exists()
