from prometheus_client import Counter, Histogram, generate_latest
from fastapi import Response

# HTTP
http_requests_total = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status']
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint']
)

# Catalog cache
cache_hits_total = Counter('cache_hits_total', 'Total cache hits')
cache_misses_total = Counter('cache_misses_total', 'Total cache misses')

# Progression
access_decisions_total = Counter(
    'access_decisions_total',
    'Access decisions by target and outcome',
    ['target', 'outcome']
)
graded_submissions_total = Counter(
    'graded_submissions_total',
    'Graded submissions by assessment kind and result',
    ['kind', 'result']
)
cooldown_rejections_total = Counter(
    'cooldown_rejections_total',
    'Submissions or deliveries refused by an active cooldown',
    ['kind']
)
progress_save_conflicts_total = Counter(
    'progress_save_conflicts_total',
    'Optimistic version conflicts while saving progress'
)
certificates_issued_total = Counter('certificates_issued_total', 'Certificate records created')


def metrics_endpoint():
    """Prometheus exposition"""
    return Response(content=generate_latest(), media_type="text/plain")
