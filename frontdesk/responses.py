from rest_framework.response import Response


def success(data=None, message='Success', status=200) -> Response:
    return Response({'success': True, 'message': message, 'data': data}, status=status)


def paginate(page, limit, default_limit=20):
    """Return ``(page, limit, offset)`` from raw query values."""
    try:
        page = max(1, int(page or 1))
    except (TypeError, ValueError):
        page = 1
    try:
        limit = min(200, max(1, int(limit or default_limit)))
    except (TypeError, ValueError):
        limit = default_limit
    return page, limit, (page - 1) * limit
