import logging
from typing import Protocol, Any
from taskiq import InMemoryBroker, SimpleRetryMiddleware
from taskiq_aio_pika import AioPikaBroker

from config.conf import load_settings, BROKER_RABBITMQ

logger = logging.getLogger(__name__)

class HasKiq(Protocol):
    def kiq(self, *args: Any, **kwargs: Any) -> Any: ...

settings = load_settings()

# Define the broker
if settings.broker_backend == BROKER_RABBITMQ and settings.rabbitmq_url:
    broker = AioPikaBroker(settings.rabbitmq_url)
else:
    logger.info("RabbitMQ not configured, running tasks in-process")
    broker = InMemoryBroker()

broker = broker.with_middlewares(SimpleRetryMiddleware(default_retry_count=5))


# Import task after broker to avoid circular imports
from jobs.task import (
    _send_booking_confirmation_task,
    _send_payment_confirmation_task,
)


send_booking_confirmation_task: HasKiq = broker.task(
    _send_booking_confirmation_task,
    retry_on_error=True,
    max_retries=5,
)

send_payment_confirmation_task: HasKiq = broker.task(
    _send_payment_confirmation_task,
    retry_on_error=True,
    max_retries=5,
)
