"""
Forum - Middleware & Activity Queue Tests
=========================================
"""

import pytest
from django.http import HttpResponse
from django.test import RequestFactory

from forum.activity import ActivityQueue
from forum.middleware import ClientIPMiddleware, get_client_ip
from forum.models import Activity, User


# =============================================================================
# get_client_ip
# =============================================================================

class TestGetClientIp:

    def test_no_request(self):
        assert get_client_ip(None) is None

    def test_remote_addr(self):
        request = RequestFactory().get('/', REMOTE_ADDR='198.51.100.4')
        assert get_client_ip(request) == '198.51.100.4'

    def test_forwarded_for_ignored_without_trusted_proxy(self, settings):
        settings.TRUSTED_PROXY_COUNT = 0
        request = RequestFactory().get('/', HTTP_X_FORWARDED_FOR='203.0.113.1', REMOTE_ADDR='198.51.100.4')
        assert get_client_ip(request) == '198.51.100.4'

    def test_hop_added_by_trusted_proxy(self, settings):
        """Entries left of the proxy's own hop are client-supplied."""
        settings.TRUSTED_PROXY_COUNT = 1
        request = RequestFactory().get('/', HTTP_X_FORWARDED_FOR='6.6.6.6, 203.0.113.1')
        assert get_client_ip(request) == '203.0.113.1'

    def test_hop_at_proxy_depth(self, settings):
        settings.TRUSTED_PROXY_COUNT = 2
        request = RequestFactory().get('/', HTTP_X_FORWARDED_FOR='6.6.6.6, 203.0.113.1, 10.0.0.2')
        assert get_client_ip(request) == '203.0.113.1'

    def test_short_header_falls_back(self, settings):
        settings.TRUSTED_PROXY_COUNT = 2
        request = RequestFactory().get('/', HTTP_X_FORWARDED_FOR='203.0.113.1', REMOTE_ADDR='198.51.100.4')
        assert get_client_ip(request) == '198.51.100.4'

    def test_garbage_header_falls_back(self, settings):
        settings.TRUSTED_PROXY_COUNT = 1
        request = RequestFactory().get('/', HTTP_X_FORWARDED_FOR='not-an-ip', REMOTE_ADDR='198.51.100.4')
        assert get_client_ip(request) == '198.51.100.4'

    def test_invalid_remote_addr(self):
        request = RequestFactory().get('/', REMOTE_ADDR='unknown')
        assert get_client_ip(request) is None

    def test_ipv6_is_normalized(self):
        request = RequestFactory().get('/', REMOTE_ADDR='2001:DB8:0:0:0:0:0:1')
        assert get_client_ip(request) == '2001:db8::1'

    def test_resolved_ip_wins(self):
        request = RequestFactory().get('/', HTTP_X_FORWARDED_FOR='203.0.113.1')
        request.client_ip = '192.0.2.200'
        assert get_client_ip(request) == '192.0.2.200'


# =============================================================================
# ClientIPMiddleware
# =============================================================================

@pytest.mark.django_db
class TestClientIPMiddleware:

    @pytest.fixture
    def middleware(self):
        return ClientIPMiddleware(lambda request: HttpResponse())

    def test_sets_client_ip_and_last_ip(self, middleware, make_request, member):
        request = make_request(member, REMOTE_ADDR='198.51.100.23')

        middleware(request)

        assert request.client_ip == '198.51.100.23'
        assert User.objects.get(pk=member.pk).last_ip_address == '198.51.100.23'

    def test_write_is_throttled(self, middleware, make_request, member):
        middleware(make_request(member, REMOTE_ADDR='198.51.100.23'))
        User.objects.filter(pk=member.pk).update(last_ip_address='10.9.9.9')

        middleware(make_request(User.objects.get(pk=member.pk), REMOTE_ADDR='198.51.100.23'))

        assert User.objects.get(pk=member.pk).last_ip_address == '10.9.9.9'

    def test_new_ip_is_written(self, middleware, make_request, member):
        middleware(make_request(member, REMOTE_ADDR='198.51.100.23'))
        middleware(make_request(member, REMOTE_ADDR='198.51.100.24'))

        assert User.objects.get(pk=member.pk).last_ip_address == '198.51.100.24'

    def test_anonymous_request(self, middleware, make_request):
        request = make_request(REMOTE_ADDR='198.51.100.23')
        middleware(request)
        assert request.client_ip == '198.51.100.23'


# =============================================================================
# ActivityQueue
# =============================================================================

@pytest.mark.django_db
class TestActivityQueue:

    def test_one_activity_per_recipient_and_channel(self, member, make_user):
        bob = make_user('bob')
        activities = ActivityQueue()

        activities.queue({'activity_type': 'X', 'notify_user_id': bob.pk, 'story': 'first'}, 'Mail')
        activities.queue({'activity_type': 'X', 'notify_user_id': bob.pk, 'story': 'second'}, 'Mail')
        activities.queue({'activity_type': 'X', 'notify_user_id': bob.pk, 'story': 'web'}, 'Web')
        activities.queue({'activity_type': 'X', 'notify_user_id': member.pk, 'story': 'alice'}, 'Mail')

        assert len(activities) == 3
        rows = activities.flush()

        assert len(rows) == 3
        assert len(activities) == 0
        assert Activity.objects.get(notify_user=bob, channel='Mail').story == 'second'

    def test_empty_flush(self):
        assert ActivityQueue().flush() == []
