from __future__ import annotations
from prometheus_client import Counter, Histogram

api_requests = Counter("blockwire_api_requests_total", "Slack API requests dispatched", ["endpoint"])
api_retries = Counter("blockwire_api_retries_total", "Slack API requests retried after transport failure", ["endpoint"])
api_errors = Counter("blockwire_api_errors_total", "Slack API request failures", ["endpoint", "kind"])
file_uploads = Counter("blockwire_file_uploads_total", "Attachment uploads", ["status"])
send_latency = Histogram("blockwire_send_latency_seconds", "End-to-end send/update latency seconds")
