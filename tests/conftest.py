"""
Forum - Test Fixtures
=====================

Shared fixtures for all tests.
"""

import pytest
from django.contrib.auth.models import AnonymousUser, Permission
from django.core.cache import cache
from django.test import RequestFactory

from forum.models import Comment, Conversation, ConversationMember, Discussion, User


# =============================================================================
# Checker doubles
# =============================================================================

class RecordingChecker:
    """Checker that remembers what it was asked and answers a fixed verdict."""

    def __init__(self, verdict=True):
        self.verdict = verdict
        self.calls = []

    def evaluate(self, record_type, data, options):
        self.calls.append((record_type, dict(data)))
        return self.verdict


# =============================================================================
# Environment
# =============================================================================

@pytest.fixture(autouse=True)
def forum_settings(settings):
    """Plain HTTP for the test client and a quiet spam setup for every test."""
    settings.SECURE_SSL_REDIRECT = False
    settings.SESSION_COOKIE_SECURE = False
    settings.CSRF_COOKIE_SECURE = False
    settings.SPAM_CHECKERS = [{'NAME': 'forum.checkers.BlockedWordsChecker'}]
    settings.SPAM_BLOCKED_WORDS = []
    settings.SPAM_CHECK_ENABLED = True
    settings.REGISTRATION_METHOD = 'approval'
    settings.TRUSTED_PROXY_COUNT = 0
    settings.STORAGES = {
        **settings.STORAGES,
        'staticfiles': {'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage'},
    }


@pytest.fixture(autouse=True)
def clear_cache():
    cache.clear()
    yield
    cache.clear()


# =============================================================================
# Users
# =============================================================================

@pytest.fixture
def make_user(db):
    """Factory creating members with sensible defaults."""
    counter = {'n': 0}

    def _make(username=None, **fields):
        counter['n'] += 1
        username = username or f"member{counter['n']}"
        fields.setdefault('email', f"{username}@example.com")
        return User.objects.create_user(username=username, password='Sup3r-Secret-pass', **fields)

    return _make


@pytest.fixture
def member(make_user):
    return make_user('alice', last_ip_address='10.0.0.7')


@pytest.fixture
def moderator(make_user):
    user = make_user('moderator')
    user.user_permissions.add(
        Permission.objects.get(content_type__app_label='forum', codename='approve_users'),
        Permission.objects.get(content_type__app_label='forum', codename='moderate'),
    )
    return User.objects.get(pk=user.pk)


@pytest.fixture
def make_applicant(make_user):
    def _make(username=None, **fields):
        fields.setdefault('is_active', False)
        fields.setdefault('is_applicant', True)
        fields.setdefault('discovery_text', 'A friend told me about it.')
        fields.setdefault('insert_ip_address', '192.0.2.10')
        return make_user(username, **fields)

    return _make


# =============================================================================
# Content
# =============================================================================

@pytest.fixture
def make_discussion(member):
    def _make(comments=0, **fields):
        fields.setdefault('name', 'Weekend plans')
        fields.setdefault('body', 'Anyone around?')
        fields.setdefault('insert_user', member)
        discussion = Discussion.objects.create(**fields)
        for i in range(comments):
            Comment.objects.create(discussion=discussion, body=f"reply {i}", insert_user=member)
        discussion.refresh_from_db()
        return discussion

    return _make


@pytest.fixture
def make_conversation(db):
    def _make(users, subject=''):
        conversation = Conversation.objects.create(subject=subject, insert_user=users[0])
        for user in users:
            ConversationMember.objects.create(conversation=conversation, user=user)
        return conversation

    return _make


# =============================================================================
# Requests
# =============================================================================

@pytest.fixture
def make_request():
    factory = RequestFactory()

    def _make(user=None, **meta):
        request = factory.post('/', **meta)
        request.user = user or AnonymousUser()
        return request

    return _make
