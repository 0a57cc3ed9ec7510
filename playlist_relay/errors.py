"""Error types raised by the relay. Each carries the HTTP status it maps to."""


class RelayError(Exception):
    status_code = 500
    message = 'Internal server error'

    def __init__(self, message=None, status_code=None):
        super().__init__(message or self.message)
        if message:
            self.message = message
        if status_code is not None:
            self.status_code = status_code


# ─── Client input errors ─────────────────────────────────────────────────────

class MissingCodeError(RelayError):
    status_code = 400
    message = 'Missing authorization code'


class MissingTokenError(RelayError):
    status_code = 401
    message = 'Missing access token'


class BadRequestError(RelayError):
    status_code = 400
    message = 'Invalid request body'


class NotConfiguredError(RelayError):
    status_code = 503
    message = 'Service is not configured'


# ─── Upstream failures (always a generic 500) ────────────────────────────────

class UpstreamAuthError(RelayError):
    message = 'Failed to authenticate with Spotify'


class UpstreamFetchError(RelayError):
    message = 'Failed to fetch data from Spotify'


class UpstreamCompletionError(RelayError):
    message = 'Failed to generate playlist'
