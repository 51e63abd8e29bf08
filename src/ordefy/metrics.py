"""Prometheus counters for webhook intake and job processing."""

from prometheus_client import Counter, Histogram

WEBHOOKS_RECEIVED = Counter(
    "ordefy_webhooks_received_total",
    "Inbound webhook calls by topic and outcome",
    ["topic", "outcome"],
)

WEBHOOK_JOBS = Counter(
    "ordefy_webhook_jobs_total",
    "Webhook job processing outcomes",
    ["topic", "outcome"],
)

WEBHOOK_JOB_DURATION = Histogram(
    "ordefy_webhook_job_duration_seconds",
    "Handler execution time per webhook job",
    ["topic"],
)
