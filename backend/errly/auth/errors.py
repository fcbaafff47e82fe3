"""Errors raised while verifying dashboard identity."""


class AuthenticationError(Exception):
    """The session token is missing, forged, expired or has a bad subject.

    Only the server log sees the reason. The HTTP layer answers every
    variant with the same 401.
    """
