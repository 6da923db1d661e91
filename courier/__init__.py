from .cache import Cache, HttpAwareCache, MemoryCache, fingerprint
from .config import Settings
from .dispatcher import Dispatcher, create
from .interceptors import InterceptorChain
from .model import (CacheEntry, CancellationToken, Cancelled, ErrorKind, Outcome, Request, RequestDraft, Response,
                    Success, TransportError)
from .retry import DefaultRetryPolicy, NoRetry, RetryPolicy
from .transport import RequestsTransport, Transport
