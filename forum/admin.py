"""
Django admin for the forum: applicant approval, the moderation log (with a
restore action for records wrongly flagged as spam) and the content tables.
"""

from django.contrib import admin, messages
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.contrib.auth.models import Group

from . import applicants
from .exceptions import UnsupportedRecordType
from .logs import restore_log
from .models import (
    User, Discussion, Comment, Conversation, ConversationMember,
    ConversationMessage, Activity, Log
)

# ==================== ADMIN CLASSES ====================

@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ('username', 'email', 'is_applicant', 'verified', 'deleted', 'is_superuser', 'date_joined')
    list_filter = ('is_applicant', 'verified', 'deleted', 'is_superuser')
    search_fields = ('username', 'email', 'insert_ip_address', 'last_ip_address')
    fieldsets = BaseUserAdmin.fieldsets + (
        ('Forum', {'fields': ('verified', 'deleted', 'is_applicant', 'discovery_text',
                              'insert_ip_address', 'last_ip_address')}),
    )
    actions = ['approve_applications', 'decline_applications']

    def approve_applications(self, request, queryset):
        approved = sum(1 for user in queryset if applicants.approve(user.pk))
        self.message_user(request, f"{approved} applications approved")
    approve_applications.short_description = "Approve selected applications"

    def decline_applications(self, request, queryset):
        declined = sum(1 for user in queryset if applicants.decline(user.pk))
        self.message_user(request, f"{declined} applications declined")
    decline_applications.short_description = "Decline selected applications"

@admin.register(Log)
class LogAdmin(admin.ModelAdmin):
    list_display = ('id', 'operation', 'record_type', 'record_id', 'record_name', 'record_ip_address',
                    'count_group', 'date_inserted')
    list_filter = ('operation', 'record_type', 'date_inserted')
    search_fields = ('record_name', 'record_email', 'record_ip_address')
    readonly_fields = ('data', 'group_by', 'count_group', 'date_inserted', 'date_updated')
    actions = ['restore_records']

    def restore_records(self, request, queryset):
        restored = 0
        for log in queryset:
            try:
                restore_log(log)
                restored += 1
            except UnsupportedRecordType as e:
                self.message_user(request, f"Log {log.pk}: {e}", level=messages.WARNING)
        self.message_user(request, f"{restored} records restored")
    restore_records.short_description = "Restore selected records (not spam)"

@admin.register(Discussion)
class DiscussionAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'insert_user', 'count_comments', 'date_inserted')
    search_fields = ('name', 'body', 'insert_user__username')

@admin.register(Comment)
class CommentAdmin(admin.ModelAdmin):
    list_display = ('id', 'insert_user', 'discussion', 'date_inserted', 'body_short')
    search_fields = ('body', 'insert_user__username', 'discussion__id')

    def body_short(self, obj):
        if obj.body:
            return obj.body[:50] + '...' if len(obj.body) > 50 else obj.body
        return "(no content)"
    body_short.short_description = 'Body'

@admin.register(Conversation)
class ConversationAdmin(admin.ModelAdmin):
    list_display = ('id', 'subject', 'insert_user', 'date_inserted', 'member_count')
    search_fields = ('subject', 'insert_user__username')

    def member_count(self, obj):
        return obj.members.count()
    member_count.short_description = 'Members'

@admin.register(ConversationMember)
class ConversationMemberAdmin(admin.ModelAdmin):
    list_display = ('id', 'conversation', 'user', 'date_last_viewed', 'deleted')
    search_fields = ('conversation__subject', 'user__username')

@admin.register(ConversationMessage)
class ConversationMessageAdmin(admin.ModelAdmin):
    list_display = ('id', 'conversation', 'insert_user', 'date_inserted')
    search_fields = ('body', 'insert_user__username')

@admin.register(Activity)
class ActivityAdmin(admin.ModelAdmin):
    list_display = ('id', 'activity_type', 'notify_user', 'activity_user', 'date_inserted', 'is_read')
    list_filter = ('activity_type', 'is_read', 'date_inserted')
    search_fields = ('notify_user__username', 'activity_user__username')

# Unregister Django's default Group
admin.site.unregister(Group)

# Basic admin site configuration
admin.site.site_header = "Forum Admin"
admin.site.site_title = "Forum Admin Portal"
admin.site.index_title = "Moderation"
