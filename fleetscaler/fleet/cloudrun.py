import logging

import google.auth
import requests
from google.auth import exceptions as auth_exceptions
from google.auth.transport.requests import AuthorizedSession

from fleetscaler.errors import ConfigurationInvalid, MalformedResponse, UpstreamRejected, UpstreamUnavailable

COMPONENT = 'fleet'

CLOUD_PLATFORM_SCOPE = 'https://www.googleapis.com/auth/cloud-platform'
RUN_API = 'https://run.googleapis.com/v2'
UPDATE_MASK = 'scaling.scalingMode,scaling.manualInstanceCount'


def service_url(project_id, region, service_name):
    return f"{RUN_API}/projects/{project_id}/locations/{region}/services/{service_name}"


def create_authorized_session():
    """
    Build an authorized session from Application Default Credentials.

    Raises:
        ConfigurationInvalid: If no default credentials are available
    """
    try:
        credentials, _ = google.auth.default(scopes=[CLOUD_PLATFORM_SCOPE])
    except auth_exceptions.DefaultCredentialsError as e:
        raise ConfigurationInvalid(f"Google Cloud credentials are not available: {e}") from None
    return AuthorizedSession(credentials)


class CloudRunFleet:
    """
    Read and set the manual instance count of a Cloud Run service.
    """

    def __init__(self, project_id: str, region: str, service_name: str, timeout: float = 10, session=None):
        self.service_name = service_name
        self.region = region
        self.url = service_url(project_id, region, service_name)
        self.timeout = timeout
        self._session = session or create_authorized_session()

    def _request(self, method, **kwargs):
        try:
            response = self._session.request(method, self.url, timeout=self.timeout, **kwargs)
        except auth_exceptions.RefreshError as e:
            raise UpstreamRejected(f"Cloud Run credentials were rejected: {e}", component=COMPONENT) from None
        except (requests.exceptions.RequestException, auth_exceptions.TransportError) as e:
            raise UpstreamUnavailable(
                f"Failed to reach Cloud Run for service {self.service_name}: {e}", COMPONENT) from None

        if not response.ok:
            raise UpstreamRejected(
                f"Cloud Run {method} {self.service_name} failed: {response.status_code} {response.reason}",
                status=response.status_code, component=COMPONENT)
        return response

    def get_current(self) -> int:
        """
        Get the manual instance count of the service.

        Returns:
            int: Current instance count (0 if the service has none set)
        """
        logging.debug(f"Getting instance count for service {self.service_name} in {self.region}")
        response = self._request('GET')

        try:
            service = response.json()
        except ValueError:
            raise MalformedResponse(f"Cloud Run response for {self.service_name} is not valid JSON",
                                    COMPONENT) from None

        scaling = service.get('scaling') if isinstance(service, dict) else None
        count = (scaling or {}).get('manualInstanceCount')
        if count is None:
            logging.warning(f"Service {self.service_name} has no manualInstanceCount, treating it as 0")
            return 0
        if isinstance(count, str) and count.isdecimal():
            count = int(count)
        if isinstance(count, bool) or not isinstance(count, int) or count < 0:
            raise MalformedResponse(f"Cloud Run returned invalid instance count: {count!r}", COMPONENT)

        logging.debug(f"Service {self.service_name} has {count} instances")
        return count

    def set_target(self, count: int):
        """
        Set the manual instance count of the service.

        Only the scaling fields are sent, scoped by the update mask, so the
        rest of the service configuration is untouched.

        Args:
            count: Desired instance count
        """
        logging.info(f"Updating instance count of service {self.service_name} to {count}")
        self._request(
            'PATCH',
            params={'updateMask': UPDATE_MASK},
            json={
                'scaling': {
                    'scalingMode': 'MANUAL',
                    'manualInstanceCount': count
                }
            }
        )
        logging.info(f"Updated service {self.service_name} to {count} instances")
