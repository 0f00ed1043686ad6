import logging

from apscheduler.schedulers.background import BackgroundScheduler

from usagewatch.services.reconciliation import ReconciliationService
from usagewatch.utils.constants import RECONCILE_INTERVAL_SECONDS

logger = logging.getLogger(__name__)

JOB_ID = "reconciliation_pass"


class SchedulerService:

    # Recurring reconciliation timer of the host process.
    # max_instances=1 + the owner lock inside the pass -> firings never overlap

    def __init__(self, reconciliation: ReconciliationService,
                 interval_seconds: int = RECONCILE_INTERVAL_SECONDS,
                 scheduler: BackgroundScheduler = None):
        self.reconciliation = reconciliation
        self.interval_seconds = interval_seconds
        self.scheduler = scheduler or BackgroundScheduler()

    def run_job(self):
        # a scheduled pass must never raise into the scheduler thread
        try:
            return self.reconciliation.run_scheduled_pass()
        except Exception as e:
            logger.error(f"Error in reconciliation job: {e}")
            return None

    def start(self):
        if self.scheduler.running:
            return

        self.scheduler.add_job(
            self.run_job,
            'interval',
            seconds=self.interval_seconds,
            id=JOB_ID,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )

        self.scheduler.start()
        logger.info(f"[SchedulerService] Scheduler started. Reconciliation every {self.interval_seconds}s.")

    def stop(self):
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("[SchedulerService] Scheduler stopped.")
