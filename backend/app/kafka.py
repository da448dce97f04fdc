# app/kafka.py
import json
import logging

from aiokafka import AIOKafkaProducer

from app.config import KAFKA_BOOTSTRAP, KAFKA_TOPIC_BOOKING_NOTIFICATIONS

logger = logging.getLogger(__name__)

producer: AIOKafkaProducer | None = None


async def start_kafka():
    global producer
    if not KAFKA_BOOTSTRAP:
        logger.info("Kafka disabled (KAFKA_BOOTSTRAP not set); notifications dispatch in-process")
        return
    producer = AIOKafkaProducer(
        bootstrap_servers=KAFKA_BOOTSTRAP,
        value_serializer=lambda v: json.dumps(v).encode(),
        key_serializer=lambda v: str(v).encode(),
        linger_ms=5,
        acks="all",
        enable_idempotence=True,
    )
    await producer.start()


async def stop_kafka():
    global producer
    if producer:
        await producer.stop()
        producer = None


async def publish_booking_notification(notification_id: int) -> bool:
    """False when there is no producer or the send failed; the row stays PENDING either way."""
    if not producer:
        return False
    try:
        await producer.send_and_wait(
            KAFKA_TOPIC_BOOKING_NOTIFICATIONS,
            key=notification_id,
            value={"notification_id": notification_id},
        )
    except Exception as e:
        logger.error(f"Kafka publish failed for notification {notification_id}: {e}")
        return False
    return True
