"""
================================================================================
FORUM - URL CONFIGURATION
================================================================================

@file        urls.py
@description URL routing for the forum API
@version     1.0.0

URL STRUCTURE OVERVIEW
================================================================================
Applications API (registration approval workflow)
    GET    /api/v2/applications              list pending applications
    POST   /api/v2/applications              submit an application
    GET    /api/v2/applications/<id>         one application
    PATCH  /api/v2/applications/<id>         approve or decline
    DELETE /api/v2/applications/<id>         decline

SECURITY CONSIDERATIONS
================================================================================
- All endpoints except submission require the forum.approve_users permission
- CSRF protection applies to every state-changing request

================================================================================
"""

from django.urls import path
from . import views


urlpatterns = [

    # ========================================================================
    # APPLICATIONS API
    # ========================================================================

    path(
        "api/v2/applications",
        views.applications,
        name="applications"
    ),  # List / submit

    path(
        "api/v2/applications/<int:application_id>",
        views.application_detail,
        name="application_detail"
    ),  # Get / approve-decline / delete
]
