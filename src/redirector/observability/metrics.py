from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

REDIRECTS = Counter(
    "redirector_redirects_total",
    "Total redirects issued by configured routes",
    ["route", "outcome", "status"],
)

# reason: not_found, not_found_redirect, method_not_allowed
UNMATCHED_REQUESTS = Counter(
    "redirector_unmatched_requests_total",
    "Requests that matched no configured route",
    ["reason"],
)

EVALUATION_DURATION = Histogram(
    "redirector_evaluation_duration_seconds",
    "Time spent evaluating a route's conditions",
    buckets=(0.00001, 0.000025, 0.00005, 0.0001, 0.00025, 0.0005, 0.001, 0.005, 0.01),
)


def generate_metrics() -> bytes:
    return generate_latest()


def get_content_type() -> str:
    return CONTENT_TYPE_LATEST
