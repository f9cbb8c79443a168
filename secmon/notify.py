"""Kafka alert transport.

Publishes each high-severity activity as JSON to an alerts topic, keyed by
source address so all alerts for one address land on one partition.
Downstream consumers (paging, triage, dashboards) subscribe to the topic.
"""

import json
import logging

from confluent_kafka import KafkaError, KafkaException, Producer
from confluent_kafka.admin import AdminClient, NewTopic

logger = logging.getLogger(__name__)


def ensure_topic(bootstrap_servers, topic, partitions, replication_factor,
                 timeout=10.0, admin=None):
    """Make sure the alerts topic exists. Returns True if this call created it.

    Partition count and replication come from the deployment (CLI flags);
    an existing topic is left as it is, whatever its layout.
    """
    if admin is None:
        admin = AdminClient({"bootstrap.servers": bootstrap_servers})
    if topic in admin.list_topics(timeout=timeout).topics:
        logger.info("Topic '%s' already exists", topic)
        return False

    future = admin.create_topics([
        NewTopic(topic, num_partitions=partitions,
                 replication_factor=replication_factor)
    ], operation_timeout=timeout)[topic]
    try:
        future.result()
    except KafkaException as e:
        # Another instance may have created it since list_topics().
        if e.args[0].code() == KafkaError.TOPIC_ALREADY_EXISTS:
            logger.info("Topic '%s' already exists", topic)
            return False
        raise
    logger.info("Created topic '%s' partitions=%d replication=%d",
                topic, partitions, replication_factor)
    return True


class KafkaAlertHandler:

    def __init__(self, topic="security-alerts", bootstrap_servers=None, producer=None):
        if producer is None:
            if not bootstrap_servers:
                raise ValueError("bootstrap_servers is required without a producer")
            producer = Producer({"bootstrap.servers": bootstrap_servers})
        self.topic = topic
        self._producer = producer

    def handle(self, activity):
        self._producer.produce(
            self.topic,
            key=activity.source_address.encode("utf-8"),
            value=json.dumps(activity.to_dict()).encode("utf-8"),
            on_delivery=self._on_delivery,
        )
        # Serve delivery callbacks from earlier produce() calls.
        self._producer.poll(0)

    def close(self, timeout=5.0):
        remaining = self._producer.flush(timeout)
        if remaining:
            logger.warning("%d alert(s) still undelivered to '%s'", remaining, self.topic)

    def _on_delivery(self, err, msg):
        if err is not None:
            logger.error("Alert delivery to '%s' failed: %s", self.topic, err)

    def __repr__(self):
        return f"KafkaAlertHandler(topic={self.topic!r})"
