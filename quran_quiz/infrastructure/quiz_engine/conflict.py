import logging

from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .errors import ConstraintConflictError

logger = logging.getLogger(__name__)

CONFLICT_RETRY_ATTEMPTS = 3

# Re-run a get-or-create operation when a concurrent writer won the race on a
# unique key. The retried call re-reads first, so it picks up the winner's row.
# After the last attempt the ConstraintConflictError reaches the caller.
retry_on_conflict = retry(
    retry=retry_if_exception_type(ConstraintConflictError),
    stop=stop_after_attempt(CONFLICT_RETRY_ATTEMPTS),
    wait=wait_exponential(multiplier=0.05, max=0.5),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)
