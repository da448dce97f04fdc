# app/workers/notification_worker.py
# python -m app.workers.notification_worker
import asyncio
import json
import logging

from aiokafka import AIOKafkaConsumer  # type: ignore

from app.config import (
    KAFKA_BOOTSTRAP,
    KAFKA_TOPIC_BOOKING_NOTIFICATIONS,
    KAFKA_GROUP_NOTIFICATION_WORKERS,
    LOG_LEVEL,
    NOTIFY_SWEEP_INTERVAL_S,
)
from app.services.notification_outbox import dispatch_notification, dispatch_due_notifications

logger = logging.getLogger("notification_worker")


async def handle_message(payload: dict):
    """Kafka에서 들어온 알림 한 건 처리"""
    notification_id = payload.get("notification_id") if isinstance(payload, dict) else None
    if notification_id is None:
        logger.warning(f"[notification_worker] payload without notification_id: {payload}")
        return
    status = await dispatch_notification(int(notification_id))
    logger.info(f"[notification_worker] 📩 notification {notification_id} -> {status}")


async def sweep_forever():
    """Retries PENDING rows whose backoff elapsed (also covers rows never published)."""
    while True:
        try:
            attempted = await dispatch_due_notifications()
            if attempted:
                logger.info(f"[notification_worker] 🔁 sweep attempted {attempted} notification(s)")
        except Exception as e:
            logger.error(f"[notification_worker] sweep failed: {e}")
        await asyncio.sleep(NOTIFY_SWEEP_INTERVAL_S)


async def consume_forever():
    consumer = AIOKafkaConsumer(
        KAFKA_TOPIC_BOOKING_NOTIFICATIONS,
        bootstrap_servers=KAFKA_BOOTSTRAP,
        group_id=KAFKA_GROUP_NOTIFICATION_WORKERS,
        value_deserializer=lambda v: json.loads(v),
        key_deserializer=lambda v: v.decode() if v is not None else None,
        enable_auto_commit=False,
        auto_offset_reset="earliest",
    )
    await consumer.start()
    try:
        while True:
            batch = await consumer.getmany(timeout_ms=1000)
            for tp, messages in batch.items():
                for msg in messages:
                    logger.debug(f"[notification_worker] offset={msg.offset}, key={msg.key}, value={msg.value}")
                    await handle_message(msg.value)
                    await consumer.commit()
    finally:
        await consumer.stop()


async def main():
    logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    if not KAFKA_BOOTSTRAP:
        logger.info("[notification_worker] 🚀 start (sweep only, Kafka disabled)")
        await sweep_forever()
        return

    logger.info(
        f"[notification_worker] 🚀 start - bootstrap={KAFKA_BOOTSTRAP}, "
        f"topic={KAFKA_TOPIC_BOOKING_NOTIFICATIONS}, group_id={KAFKA_GROUP_NOTIFICATION_WORKERS}"
    )
    await asyncio.gather(consume_forever(), sweep_forever())


if __name__ == "__main__":
    asyncio.run(main())
