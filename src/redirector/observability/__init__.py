from redirector.observability.metrics import (
    EVALUATION_DURATION,
    REDIRECTS,
    UNMATCHED_REQUESTS,
    generate_metrics,
    get_content_type,
)

__all__ = [
    "REDIRECTS",
    "UNMATCHED_REQUESTS",
    "EVALUATION_DURATION",
    "generate_metrics",
    "get_content_type",
]
