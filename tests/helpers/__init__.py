from .api import API_URL, archive_url, endpoint
from .metric_delta import histogram_observes, metric_delta, sample_value

__all__ = ["API_URL", "archive_url", "endpoint", "histogram_observes", "metric_delta", "sample_value"]
