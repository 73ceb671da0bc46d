"""
================================================================================
FORUM - APPLICATIONS API VIEWS
================================================================================

@file        views.py
@description JSON endpoints for the registration approval workflow

ERROR MAPPING
================================================================================
json_api wraps every endpoint and turns exceptions into JSON responses:
    form errors              -> 400 (field errors under "errors")
    RegistrationMethodError  -> 400
    PermissionDenied         -> 403
    Http404                  -> 404
    ConflictError            -> 409
    ValidationError          -> 422 (store-side, e.g. duplicate name or spam)
    UpstreamError            -> 500 (logged)

================================================================================
"""

import json
import logging
from functools import wraps

from django.conf import settings
from django.core.exceptions import PermissionDenied, ValidationError
from django.http import Http404, HttpResponse, JsonResponse
from django.views.decorators.http import require_http_methods

from . import applicants
from .exceptions import ConflictError, ForumError, RegistrationMethodError, UpstreamError
from .forms import ApplicationForm, ApplicationListForm, ApplicationStatusForm
from .models import User


# Logger
logger = logging.getLogger(__name__)


def json_api(view):
    """Map forum and Django exceptions raised by an API view to JSON errors."""

    @wraps(view)
    def wrapper(request, *args, **kwargs):
        try:
            if str(getattr(settings, 'REGISTRATION_METHOD', 'approval')).lower() != 'approval':
                raise RegistrationMethodError()
            return view(request, *args, **kwargs)
        except PermissionDenied as e:
            return JsonResponse({"error": str(e) or "Permission denied."}, status=403)
        except Http404 as e:
            return JsonResponse({"error": str(e) or "Not found."}, status=404)
        except ValidationError as e:
            errors = e.message_dict if hasattr(e, 'error_dict') else {'__all__': e.messages}
            return JsonResponse({"error": "Validation failed.", "errors": errors}, status=422)
        except ForumError as e:
            if e.status >= 500:
                logger.error(f"API error in {view.__name__}: {e.message}")
            return JsonResponse({"error": e.message}, status=e.status)

    return wrapper


def parse_body(request):
    try:
        return json.loads(request.body or b'{}')
    except (ValueError, UnicodeDecodeError):
        return None


def form_errors(form):
    return JsonResponse({"error": "Validation failed.", "errors": form.errors.get_json_data()}, status=400)


def require_approve_permission(request):
    if not request.user.has_perm('forum.approve_users'):
        raise PermissionDenied("You need the approve users permission.")


def user_by_id(user_id):
    user = User.objects.filter(pk=user_id).first()
    if user is None or user.deleted:
        raise Http404("Application not found.")
    return user


def prepare_row(user):
    return {
        "applicationID": user.pk,
        "email": user.email,
        "name": user.username,
        "discoveryText": user.discovery_text,
        "status": "pending",
        "insertIPAddress": user.insert_ip_address,
        "dateInserted": user.date_joined.isoformat(),
    }


@require_http_methods(["GET", "POST"])
@json_api
def applications(request):
    if request.method == "POST":
        return submit_application(request)

    require_approve_permission(request)

    form = ApplicationListForm(request.GET)
    if not form.is_valid():
        return form_errors(form)

    page = form.cleaned_data['page']
    limit = form.cleaned_data['limit']
    rows = applicants.get_applicants(limit=limit, offset=(page - 1) * limit)
    return JsonResponse([prepare_row(user) for user in rows], safe=False)


def submit_application(request):
    body = parse_body(request)
    if body is None:
        return JsonResponse({"error": "Invalid JSON body."}, status=400)

    form = ApplicationForm(body)
    if not form.is_valid():
        return form_errors(form)
    data = form.cleaned_data

    try:
        applicants.validate_password_strength(data['password'], data['name'], data['email'])
    except ValidationError as e:
        return JsonResponse({"error": "Validation failed.", "errors": {"password": e.messages}}, status=400)

    user_id = applicants.register({
        'email': data['email'],
        'name': data['name'],
        'password': data['password'],
        'discovery_text': data['discoveryText'],
    }, request=request)

    if not isinstance(user_id, int) or isinstance(user_id, bool) or user_id <= 0:
        raise UpstreamError()

    row = prepare_row(user_by_id(user_id))
    return JsonResponse(row, status=201)


@require_http_methods(["GET", "PATCH", "DELETE"])
@json_api
def application_detail(request, application_id):
    require_approve_permission(request)

    user = user_by_id(application_id)
    row = prepare_row(user)

    if request.method == "GET":
        return JsonResponse(row)

    if not applicants.is_applicant(application_id):
        raise ConflictError()

    if request.method == "DELETE":
        applicants.decline(application_id)
        return HttpResponse(status=204)

    body = parse_body(request)
    if body is None:
        return JsonResponse({"error": "Invalid JSON body."}, status=400)

    form = ApplicationStatusForm(body)
    if not form.is_valid():
        return form_errors(form)

    status = form.cleaned_data['status']
    if status == "approved" and applicants.approve(application_id):
        row["status"] = "approved"
    elif status == "declined" and applicants.decline(application_id):
        row["status"] = "declined"

    return JsonResponse(row)
