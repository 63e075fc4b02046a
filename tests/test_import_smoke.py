import pytest
from unittest.mock import patch


@pytest.mark.parametrize("schedule_enabled", ["true", "false"])
def test_import_graph_smoke(schedule_enabled):
    """The app and worker modules import without a Redis server or Twilio credentials."""
    with patch.dict("os.environ", {
        "SCHEDULE_ENABLED": schedule_enabled,
        "REDIS_URL": "redis://localhost:6379/0",  # harmless default
    }):
        try:
            import coachbot.main
            import coachbot.queue.jobs
            import coachbot.queue.schedule
        except ImportError as e:
            pytest.fail(f"Import failed with SCHEDULE_ENABLED={schedule_enabled}: {e}")


def test_uvicorn_importable():
    from coachbot.main import app
    paths = set(app.openapi()["paths"])
    assert {"/webhook-reply", "/health", "/admin/sweeps/initiate", "/admin/metrics"} <= paths
