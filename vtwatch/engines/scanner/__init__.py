"""Scanner engine: hashing, caching, rate limiting, remote analysis, retries."""

from vtwatch.engines.scanner.cache import ResultCache
from vtwatch.engines.scanner.hasher import hash_file, hash_file_async
from vtwatch.engines.scanner.history import ScanHistory
from vtwatch.engines.scanner.limiter import ConcurrencyLimiter
from vtwatch.engines.scanner.models import EngineVerdict, ScanResult, ScanStatus, classify
from vtwatch.engines.scanner.pipeline import ScanPipeline, create_pipeline
from vtwatch.engines.scanner.rate_limiter import RateLimiter
from vtwatch.engines.scanner.retry import RetryPolicy, exponential_backoff, fixed_backoff
from vtwatch.engines.scanner.scan_client import ScanClient

__all__ = [
    "ConcurrencyLimiter",
    "EngineVerdict",
    "RateLimiter",
    "ResultCache",
    "RetryPolicy",
    "ScanClient",
    "ScanHistory",
    "ScanPipeline",
    "ScanResult",
    "ScanStatus",
    "classify",
    "create_pipeline",
    "exponential_backoff",
    "fixed_backoff",
    "hash_file",
    "hash_file_async",
]
