import logging

from django.db import DatabaseError, connections
from django.http import JsonResponse

from core.models import Branch

logger = logging.getLogger(__name__)


def healthz(request):
    """Liveness probe: database round trip plus the number of configured branches."""
    try:
        with connections['default'].cursor() as c:
            c.execute('SELECT 1')
            alive = c.fetchone() == (1,)
        branches = Branch.objects.count()
    except DatabaseError as e:
        logger.error('health check failed: %s', e)
        return JsonResponse({'ok': False, 'db': False, 'error': str(e)}, status=500)
    return JsonResponse({'ok': alive, 'db': alive, 'branches': branches}, status=200 if alive else 500)
