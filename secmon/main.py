"""Security monitor service — guard, admin endpoints and metrics over HTTP.

Loads thresholds, builds one SecurityMonitor, optionally publishes
high-severity alerts to Kafka, and serves the app with uvicorn.

Usage:
    python -m secmon.main
    python -m secmon.main --config thresholds.yml --port 8080
    python -m secmon.main --bootstrap-servers kafka-1:29092 --alerts-topic security-alerts
    python -m secmon.main --bootstrap-servers kafka-1:29092 --alerts-replication-factor 3
"""

import argparse
import logging
import sys

import uvicorn

from secmon.app import create_app
from secmon.config import ConfigError, load_settings
from secmon.engine import SecurityMonitor
from secmon.notify import KafkaAlertHandler, ensure_topic


def build_parser():
    parser = argparse.ArgumentParser(description="Security monitor service")
    parser.add_argument("--config", default=None,
                        help="Thresholds YAML (default: packaged thresholds.yml)")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8080)
    parser.add_argument("--bootstrap-servers", default=None,
                        help="Kafka brokers; enables the Kafka alert handler")
    parser.add_argument("--alerts-topic", default="security-alerts")
    parser.add_argument("--alerts-partitions", type=int, default=3,
                        help="Partitions when creating the alerts topic")
    parser.add_argument("--alerts-replication-factor", type=int, default=1,
                        help="Replication factor when creating the alerts topic")
    parser.add_argument("--log-level", default="INFO")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = load_settings(args.config)
    except ConfigError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    monitor = SecurityMonitor(settings)
    kafka_handler = None
    if args.bootstrap_servers:
        ensure_topic(args.bootstrap_servers, args.alerts_topic,
                     args.alerts_partitions, args.alerts_replication_factor)
        kafka_handler = KafkaAlertHandler(args.alerts_topic,
                                          bootstrap_servers=args.bootstrap_servers)
        monitor.register_alert_handler(kafka_handler)

    t = settings.thresholds
    print(f"Security monitor started  port={args.port}  "
          f"max_failed_attempts={t.max_failed_attempts}  window={t.time_window}s  "
          f"alerts={args.alerts_topic if kafka_handler else 'log only'}")

    try:
        uvicorn.run(create_app(monitor), host=args.host, port=args.port,
                    log_level=args.log_level.lower())
    finally:
        if kafka_handler is not None:
            kafka_handler.close()
        print("Security monitor stopped.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
