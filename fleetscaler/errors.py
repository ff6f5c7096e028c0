"""Error taxonomy for the fleet autoscaler."""
import re
from typing import Iterable, Optional

_URL_USERINFO = re.compile(r'(?P<scheme>[a-zA-Z][a-zA-Z0-9+.-]*://)[^/@\s]+@')


def redact(text: str, secrets: Optional[Iterable[str]] = None) -> str:
    """
    Remove credentials from a message before it is logged or returned.

    Strips the userinfo part of any URL and masks every non-empty value in
    ``secrets``.
    """
    text = _URL_USERINFO.sub(r'\g<scheme>***@', str(text))
    for secret in secrets or ():
        if secret:
            text = text.replace(secret, '***')
    return text


class ScalerError(Exception):
    """Base exception for autoscaler errors."""

    component = None

    def __init__(self, message: str, component: Optional[str] = None):
        super().__init__(message)
        if component is not None:
            self.component = component


class UpstreamUnavailable(ScalerError):
    """Remote API could not be reached or timed out."""

    pass


class UpstreamRejected(ScalerError):
    """Remote API answered with a non-success status."""

    def __init__(self, message: str, status: Optional[int] = None, component: Optional[str] = None):
        super().__init__(message, component)
        self.status = status


class MalformedResponse(ScalerError):
    """Remote API answered with a body that could not be decoded."""

    pass


class ConfigurationInvalid(ScalerError):
    """Startup configuration is missing or out of range."""

    component = 'config'


class SchedulerStopped(ScalerError):
    """A cycle was requested after shutdown began."""

    component = 'scheduler'


class SchedulerBusy(ScalerError):
    """A triggered cycle could not start before its wait timed out."""

    component = 'scheduler'
