#!/usr/bin/env python3
import sys
import os

print("Running preflight import check...")
try:
    # Dummy env so config load never fails on a bare machine
    os.environ.setdefault("REDIS_URL", "redis://localhost:6379/0")

    import coachbot.main
    print("Import coachbot.main: OK")

    import coachbot.queue.jobs
    print("Import coachbot.queue.jobs: OK")

    from coachbot.core.onboarding_flow import ONBOARDING_FLOW
    from coachbot.core.checkin_flow import CHECKIN_FLOW
    print(f"Flows loaded: {ONBOARDING_FLOW.name} ({len(ONBOARDING_FLOW.steps)} steps), "
          f"{CHECKIN_FLOW.name} ({len(CHECKIN_FLOW.steps)} steps)")

    print("Preflight check passed.")
    sys.exit(0)
except Exception as e:
    print(f"Preflight check FAILED: {e}")
    import traceback
    traceback.print_exc()
    sys.exit(1)
