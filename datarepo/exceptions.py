"""
Exceptions raised by the repository core.

Each exception class carries an ``http_status`` attribute indicating the HTTP response status that
the (external) transport layer should return when the exception escapes a service call.  All but
:py:class:`InternalServerError` represent faults that the client can diagnose and correct.
"""

__all__ = [ "RepoException", "BadArgument", "ResourceAlreadyExists", "ResourceNotFound",
            "AccessForbidden", "UnsupportedMediaType", "InternalServerError" ]

class RepoException(Exception):
    """
    a base class for all exceptions raised by the repository core
    """
    http_status = 500
    default_message = "Unexpected repository error"

    def __init__(self, message: str=None, cause: Exception=None):
        """
        create the exception
        :param str     message:  a description of the problem; if not provided, a default message
                                 (or the message from ``cause``) is used.
        :param Exception cause:  the exception that triggered this one (optional)
        """
        if not message:
            message = str(cause) if cause else self.default_message
        super(RepoException, self).__init__(message)
        self.cause = cause

class BadArgument(RepoException):
    """
    an exception indicating that mandatory input was missing or malformed (e.g. a resource without
    a title or with a blank internal identifier).
    """
    http_status = 400
    default_message = "Bad or missing argument"

class ResourceAlreadyExists(RepoException):
    """
    an exception indicating an attempt to create something--a resource or content at a path--that
    already exists.
    """
    http_status = 409
    default_message = "Resource already exists"

class ResourceNotFound(RepoException):
    """
    an exception indicating that the requested resource or content does not exist or is not
    visible to the caller (as is the case with revoked resources).
    """
    http_status = 404
    default_message = "The requested resource was not found"

    def __init__(self, message: str=None, resid: str=None, cause: Exception=None):
        if not message and resid:
            message = "Resource with id={} was not found".format(resid)
        super(ResourceNotFound, self).__init__(message, cause)
        self.resource_id = resid

class AccessForbidden(RepoException):
    """
    an exception indicating that the caller lacks the permission needed for the requested
    operation on an existing, visible resource.
    """
    http_status = 403
    default_message = "Insufficient permission to access resource"

    def __init__(self, message: str=None, who: str=None, op: str=None, cause: Exception=None):
        """
        create the exception
        :param str message: the message describing why the exception was raised; if not given,
                            a default message is constructed from ``who`` and ``op``.
        :param str who:     the identifier of the caller who requested the operation
        :param str op:      a brief phrase identifying the forbidden operation
        """
        self.user_id = who
        self.operation = op
        if not message and (who or op):
            if not op:
                op = "effect an unspecified action"
            message = "User "
            if who:
                message += who + " "
            message += "is not authorized to {}".format(op)
        super(AccessForbidden, self).__init__(message, cause)

class UnsupportedMediaType(RepoException):
    """
    an exception indicating that content was requested in a packaging format that is not supported.
    """
    http_status = 415
    default_message = "Unsupported media type"

    def __init__(self, media_type: str=None, supported=None, message: str=None):
        self.media_type = media_type
        self.supported = list(supported or [])
        if not message:
            message = "Unsupported media type: {}".format(media_type)
            if self.supported:
                message += " (supported: {})".format(", ".join(self.supported))
        super(UnsupportedMediaType, self).__init__(message)

class InternalServerError(RepoException):
    """
    an exception indicating a non-recoverable configuration or environment fault (e.g. an
    unparseable storage location, an unavailable digest algorithm, an I/O failure while streaming).
    The message is not intended to carry caller-actionable detail.
    """
    http_status = 500
    default_message = "Internal server error"
