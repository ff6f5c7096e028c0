import logging

from botocore.exceptions import BotoCoreError, ClientError

from fleetscaler.errors import MalformedResponse, UpstreamRejected, UpstreamUnavailable

COMPONENT = 'queue'


class SQSQueueSource:
    """
    Sample queue depth from an SQS queue.
    """

    def __init__(self, aws_wrapper, queue_url: str):
        self.queue_url = queue_url
        self._sqs_client = aws_wrapper.create_aws_client('sqs')

    def sample(self) -> int:
        """
        Get the approximate number of visible messages in the queue.

        Returns:
            int: Queue depth

        Raises:
            UpstreamUnavailable: On connection errors or timeouts
            UpstreamRejected: If SQS rejects the request
            MalformedResponse: If the attribute is not an integer
        """
        try:
            response = self._sqs_client.get_queue_attributes(
                QueueUrl=self.queue_url,
                AttributeNames=['ApproximateNumberOfMessages']
            )
        except ClientError as e:
            error = e.response.get('Error', {})
            status = e.response.get('ResponseMetadata', {}).get('HTTPStatusCode')
            raise UpstreamRejected(
                f"SQS rejected queue attributes request: {error.get('Code')} {error.get('Message')}",
                status=status, component=COMPONENT) from None
        except BotoCoreError as e:
            raise UpstreamUnavailable(f"Failed to reach SQS: {e}", COMPONENT) from None

        value = response.get('Attributes', {}).get('ApproximateNumberOfMessages')
        if value is None:
            logging.warning(f"SQS queue {self.queue_url} returned no ApproximateNumberOfMessages, treating depth as 0")
            return 0
        if not isinstance(value, str) or not value.isdecimal():
            raise MalformedResponse(f"SQS returned invalid message count: {value!r}", COMPONENT)
        depth = int(value)

        logging.debug(f"SQS queue {self.queue_url} has {depth} visible messages")
        return depth
