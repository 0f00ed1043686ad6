# usagewatch/cron/run_reconciliation.py

"""
One reconciliation pass outside the API server (e.g. from a system timer).
"""

import logging
import sys

from dotenv import load_dotenv


def run_once():
    from usagewatch.database import Base, SharedBase, engine, shared_engine
    from usagewatch.models import SharedStateEntry  # noqa: F401  register models
    from usagewatch.services.container import build_services

    Base.metadata.create_all(bind=engine)
    SharedBase.metadata.create_all(bind=shared_engine)

    services = build_services()
    return services.reconciliation.run_scheduled_pass()


if __name__ == "__main__":
    load_dotenv()
    logging.basicConfig(level=logging.INFO)

    result = run_once()
    print(f"[RECONCILE] {result.status} (removed={result.removed_apps}, new={result.new_apps})")
    sys.exit(0 if result.status != "failed" else 1)
