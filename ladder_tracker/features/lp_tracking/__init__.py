"""
LP tracking feature package.

Everything related to the ranked-ladder (LP) tracking queue lives here:
domain models, the Riot API client, repositories, the queue processor and
active-match monitor, and the cron trigger router.
"""

from .api.router import router as lp_tracking_router  # noqa: F401
from .clients.riot_client import RiotApiClient, create_riot_client  # noqa: F401
from .domain.models import LpSnapshot, QueueAction, QueueJob, QueueRunSummary  # noqa: F401
from .services.queue_processor import LpQueueProcessor, process_queue  # noqa: F401
from .services.scheduler import enqueue_lp_job  # noqa: F401
