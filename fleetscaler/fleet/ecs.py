import logging

from botocore.exceptions import BotoCoreError, ClientError

from fleetscaler.errors import UpstreamRejected, UpstreamUnavailable

COMPONENT = 'fleet'


def _rejected(action, error: ClientError):
    details = error.response.get('Error', {})
    status = error.response.get('ResponseMetadata', {}).get('HTTPStatusCode')
    return UpstreamRejected(f"ECS rejected {action}: {details.get('Code')} {details.get('Message')}",
                            status=status, component=COMPONENT)


class ECSFleet:
    """
    Read and set the desired task count of an ECS service.
    """

    def __init__(self, aws_wrapper, cluster: str, service_name: str):
        self.cluster = cluster
        self.service_name = service_name
        self._ecs_client = aws_wrapper.create_aws_client('ecs')

    def get_current(self) -> int:
        """
        Get the desired task count of the service.

        Raises:
            UpstreamRejected: If ECS rejects the call or the service does not exist
            UpstreamUnavailable: On connection errors or timeouts
        """
        try:
            service_response = self._ecs_client.describe_services(
                cluster=self.cluster,
                services=[self.service_name]
            )
        except ClientError as e:
            raise _rejected('describe_services', e) from None
        except BotoCoreError as e:
            raise UpstreamUnavailable(f"Failed to reach ECS: {e}", COMPONENT) from None

        if not service_response.get('services'):
            raise UpstreamRejected(f"Service {self.service_name} not found in cluster {self.cluster}",
                                   status=404, component=COMPONENT)

        service = service_response['services'][0]
        current_task_count = service.get('desiredCount', 0)
        logging.debug(f"Current ECS state - desired: {current_task_count}, running: {service.get('runningCount', 0)}")
        return current_task_count

    def set_target(self, count: int):
        """
        Update the ECS service with a new desired count.

        Args:
            count: New desired task count
        """
        try:
            self._ecs_client.update_service(
                cluster=self.cluster,
                service=self.service_name,
                desiredCount=count
            )
        except ClientError as e:
            raise _rejected('update_service', e) from None
        except BotoCoreError as e:
            raise UpstreamUnavailable(f"Failed to reach ECS: {e}", COMPONENT) from None

        logging.info(f"Updated service {self.service_name} to {count} tasks")
