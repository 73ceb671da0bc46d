"""
Forum - Applications API Tests
==============================

Tests for /api/v2/applications.
"""

import json

import pytest
from django.urls import reverse

from forum.models import Log, RecordType, User


pytestmark = pytest.mark.django_db

STRONG_PASSWORD = 'Tr0ub4dor-and-3-horses'


def submit(client, **overrides):
    payload = {
        'email': 'newbie@example.com',
        'name': 'newbie',
        'password': STRONG_PASSWORD,
        'discoveryText': 'Search engine.',
        **overrides,
    }
    return client.post(reverse('applications'), data=json.dumps(payload), content_type='application/json')


def patch(client, application_id, body):
    return client.patch(
        reverse('application_detail', args=[application_id]),
        data=json.dumps(body),
        content_type='application/json',
    )


class TestSubmit:
    """POST /api/v2/applications"""

    def test_creates_pending_application(self, client):
        response = submit(client, email='NewBie@Example.com')

        assert response.status_code == 201
        row = response.json()
        assert row['name'] == 'newbie'
        assert row['email'] == 'newbie@example.com'
        assert row['discoveryText'] == 'Search engine.'
        assert row['status'] == 'pending'
        assert row['insertIPAddress'] == '127.0.0.1'
        assert 'dateInserted' in row

        user = User.objects.get(pk=row['applicationID'])
        assert user.is_applicant is True
        assert user.is_active is False
        assert user.check_password(STRONG_PASSWORD)

    def test_invalid_json(self, client):
        response = client.post(reverse('applications'), data='{not json', content_type='application/json')
        assert response.status_code == 400

    def test_missing_fields(self, client):
        response = client.post(reverse('applications'), data='{}', content_type='application/json')

        assert response.status_code == 400
        errors = response.json()['errors']
        assert {'email', 'name', 'password', 'discoveryText'} <= set(errors)

    def test_bad_username(self, client):
        response = submit(client, name='no spaces')
        assert response.status_code == 400
        assert 'name' in response.json()['errors']

    def test_weak_password(self, client):
        response = submit(client, password='12345')

        assert response.status_code == 400
        assert response.json()['errors']['password']
        assert not User.objects.filter(username='newbie').exists()

    def test_duplicate_name_is_store_validation_error(self, client, make_user):
        make_user('NewBie')
        response = submit(client)

        assert response.status_code == 422
        assert 'name' in response.json()['errors']

    def test_duplicate_email(self, client, make_user):
        make_user('someone', email='newbie@example.com')
        response = submit(client)

        assert response.status_code == 422
        assert 'email' in response.json()['errors']

    def test_spam_registration_is_rejected_and_logged(self, client, settings):
        settings.SPAM_BLOCKED_WORDS = ['casino']
        response = submit(client, name='casino')

        assert response.status_code == 422
        assert 'spam' in response.json()['errors']
        assert not User.objects.filter(username='casino').exists()

        log = Log.objects.get()
        assert log.record_type == RecordType.REGISTRATION
        assert log.group_by == ['record_ip_address']
        assert log.record_ip_address == '127.0.0.1'

    def test_garbage_forwarded_for_is_not_stored(self, client):
        response = client.post(
            reverse('applications'),
            data=json.dumps({
                'email': 'newbie@example.com',
                'name': 'newbie',
                'password': STRONG_PASSWORD,
                'discoveryText': 'Search engine.',
            }),
            content_type='application/json',
            HTTP_X_FORWARDED_FOR='not-an-ip',
        )

        assert response.status_code == 201
        assert response.json()['insertIPAddress'] == '127.0.0.1'

    def test_forged_forwarded_for_cannot_split_spam_log(self, client, settings):
        """Spam registrations from one address collapse whatever the header says."""
        settings.SPAM_BLOCKED_WORDS = ['casino']
        for i in range(3):
            client.post(
                reverse('applications'),
                data=json.dumps({
                    'email': f"casino{i}@example.com",
                    'name': 'casino',
                    'password': STRONG_PASSWORD,
                    'discoveryText': 'Search engine.',
                }),
                content_type='application/json',
                HTTP_X_FORWARDED_FOR=f"198.51.100.{i}",
            )

        log = Log.objects.get()
        assert log.record_ip_address == '127.0.0.1'
        assert log.count_group == 3

    def test_upstream_failure_without_id(self, client, monkeypatch):
        monkeypatch.setattr('forum.views.applicants.register', lambda data, request=None: None)
        response = submit(client)

        assert response.status_code == 500
        assert response.json()['error'] == "An unknown error occurred while attempting to create the application."


class TestRegistrationMethod:
    def test_endpoints_require_approval_method(self, client, moderator, settings):
        settings.REGISTRATION_METHOD = 'basic'
        client.force_login(moderator)

        response = client.get(reverse('applications'))

        assert response.status_code == 400
        assert response.json()['error'] == "The site is not configured for the approval registration method."
        assert submit(client).status_code == 400


class TestList:
    """GET /api/v2/applications"""

    def test_requires_permission(self, client, member):
        assert client.get(reverse('applications')).status_code == 403
        client.force_login(member)
        assert client.get(reverse('applications')).status_code == 403

    def test_pending_applicants_newest_first(self, client, moderator, make_applicant):
        first = make_applicant('first')
        second = make_applicant('second')
        make_applicant('declined', deleted=True)
        client.force_login(moderator)

        rows = client.get(reverse('applications')).json()

        assert [row['applicationID'] for row in rows] == [second.pk, first.pk]
        assert all(row['status'] == 'pending' for row in rows)

    def test_paging(self, client, moderator, make_applicant):
        applicants = [make_applicant(f"applicant{i}") for i in range(3)]
        client.force_login(moderator)

        rows = client.get(reverse('applications'), {'page': 2, 'limit': 2}).json()

        assert [row['applicationID'] for row in rows] == [applicants[0].pk]

    @pytest.mark.parametrize('query', [{'limit': 0}, {'limit': 101}, {'page': 0}, {'page': 101}])
    def test_paging_bounds(self, client, moderator, query):
        client.force_login(moderator)
        assert client.get(reverse('applications'), query).status_code == 400


class TestDetail:
    """GET/PATCH/DELETE /api/v2/applications/<id>"""

    def test_get(self, client, moderator, make_applicant):
        applicant = make_applicant('pending')
        client.force_login(moderator)

        response = client.get(reverse('application_detail', args=[applicant.pk]))

        assert response.status_code == 200
        assert response.json()['name'] == 'pending'
        assert response.json()['insertIPAddress'] == '192.0.2.10'

    def test_requires_permission(self, client, member, make_applicant):
        applicant = make_applicant()
        client.force_login(member)
        assert client.get(reverse('application_detail', args=[applicant.pk])).status_code == 403

    def test_missing_and_deleted_are_not_found(self, client, moderator, make_applicant):
        deleted = make_applicant(deleted=True)
        client.force_login(moderator)

        assert client.get(reverse('application_detail', args=[deleted.pk])).status_code == 404
        assert client.get(reverse('application_detail', args=[999999])).status_code == 404

    def test_approve(self, client, moderator, make_applicant, mailoutbox):
        applicant = make_applicant('hopeful')
        client.force_login(moderator)

        response = patch(client, applicant.pk, {'status': 'approved'})

        assert response.status_code == 200
        assert response.json()['status'] == 'approved'
        applicant.refresh_from_db()
        assert applicant.is_active is True
        assert applicant.is_applicant is False
        assert len(mailoutbox) == 1
        assert mailoutbox[0].to == ['hopeful@example.com']

    def test_decline(self, client, moderator, make_applicant):
        applicant = make_applicant()
        client.force_login(moderator)

        response = patch(client, applicant.pk, {'status': 'declined'})

        assert response.status_code == 200
        assert response.json()['status'] == 'declined'
        applicant.refresh_from_db()
        assert applicant.deleted is True
        assert applicant.is_active is False

    def test_bad_status(self, client, moderator, make_applicant):
        applicant = make_applicant()
        client.force_login(moderator)

        assert patch(client, applicant.pk, {'status': 'maybe'}).status_code == 400
        applicant.refresh_from_db()
        assert applicant.is_applicant is True

    def test_patch_active_member_conflicts(self, client, moderator, member):
        client.force_login(moderator)

        response = patch(client, member.pk, {'status': 'declined'})

        assert response.status_code == 409
        assert response.json()['error'] == "The application specified is already an active user."
        member.refresh_from_db()
        assert member.deleted is False
        assert member.is_active is True

    def test_delete_declines(self, client, moderator, make_applicant):
        applicant = make_applicant()
        client.force_login(moderator)

        response = client.delete(reverse('application_detail', args=[applicant.pk]))

        assert response.status_code == 204
        applicant.refresh_from_db()
        assert applicant.deleted is True
        assert client.get(reverse('application_detail', args=[applicant.pk])).status_code == 404

    def test_delete_active_member_conflicts(self, client, moderator, member):
        client.force_login(moderator)
        assert client.delete(reverse('application_detail', args=[member.pk])).status_code == 409

    def test_method_not_allowed(self, client, moderator, make_applicant):
        applicant = make_applicant()
        client.force_login(moderator)
        assert client.put(reverse('application_detail', args=[applicant.pk])).status_code == 405
