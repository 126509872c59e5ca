class LegacyPrefixMiddleware:
    """Serve legacy ``/api/me/*`` customer paths from ``/api/user/*``."""
    LEGACY_PREFIXES = (('/api/me/', '/api/user/'),)

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        path = request.path_info or ''
        for old, new in self.LEGACY_PREFIXES:
            if path.startswith(old):
                request.path_info = new + path[len(old):]
                break
        return self.get_response(request)
