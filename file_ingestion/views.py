from pathlib import Path

from django.conf import settings
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt, ensure_csrf_cookie
from django.views.decorators.http import require_http_methods

from .errors import NotFoundError
from .services.gateway import OUTCOME_REJECTED, IngestionGateway, SubmitResult
from .services.status import StatusQueryService


def _allowed_extensions():
    return tuple(getattr(settings, "INGEST_ALLOWED_EXTENSIONS", (".csv", ".txt")))


def _max_upload_bytes() -> int:
    return int(getattr(settings, "INGEST_MAX_UPLOAD_BYTES", 50 * 1024 * 1024))


def _admission_error(upload) -> str:
    name = getattr(upload, "name", "") or ""
    if not name.lower().endswith(_allowed_extensions()):
        return f"unsupported file type (expected {', '.join(_allowed_extensions())})"
    size = getattr(upload, "size", None)
    if size is not None and size > _max_upload_bytes():
        return f"file too large ({size} bytes, limit {_max_upload_bytes()})"
    return ""


@require_http_methods(["GET"])
@ensure_csrf_cookie
def api_health(request):
    return JsonResponse({"ok": True, "service": "django"})


@csrf_exempt
@require_http_methods(["POST"])
def upload_files(request):
    """
    multipart/form-data, key ``files`` (repeatable).
    One entry per file: {file_name, record_id, outcome: queued|skipped|rejected, message}.
    """
    uploads = request.FILES.getlist("files") or request.FILES.getlist("files[]")
    if not uploads:
        return JsonResponse({"ok": False, "error": "missing files (form-data key should be 'files')"}, status=400)

    gateway = IngestionGateway()
    results = []
    for upload in uploads:
        reason = _admission_error(upload)
        if reason:
            name = Path(getattr(upload, "name", "") or "").name
            results.append(SubmitResult(file_name=name, record_id=None, outcome=OUTCOME_REJECTED, message=reason))
        else:
            results.extend(gateway.submit_many([(upload, upload.name)]))

    rejected = [r for r in results if r.outcome == OUTCOME_REJECTED]
    if rejected:
        message = f"{len(rejected)} of {len(results)} file(s) rejected."
    else:
        message = "Files uploaded successfully. Processing in background."
    return JsonResponse(
        {"ok": not rejected, "message": message, "data": [r.as_dict() for r in results]},
        status=422 if rejected else 200,
    )


@require_http_methods(["GET"])
def file_status(request, record_id: int):
    try:
        data = StatusQueryService().get_status(record_id)
    except NotFoundError:
        return JsonResponse({"ok": False, "error": "File not found"}, status=404)
    return JsonResponse({"ok": True, "data": data})


@require_http_methods(["GET"])
def list_files(request):
    return JsonResponse({"ok": True, "data": StatusQueryService().list()})


@require_http_methods(["GET"])
def details_by_key(request):
    unique_key = (request.GET.get("unique_key") or "").strip()
    if not unique_key:
        return JsonResponse({"ok": False, "error": "missing unique_key"}, status=422)

    try:
        data = StatusQueryService().lookup_by_key(unique_key)
    except NotFoundError:
        return JsonResponse({"ok": False, "error": "No records found for the given unique key"}, status=404)
    return JsonResponse({"ok": True, "data": data})
