from coachbot.observability.logging import log
from coachbot.store.models import SubjectRecord


def publish_completed(record: SubjectRecord) -> None:
    """
    Hand-off point for finished response sets. Coaching-plan generation lives
    outside this service; for now the completed answers are only logged.
    """
    log(
        event="responses_completed",
        flow=record.flow,
        address=record.address,
        periodStart=record.periodStart,
        state=record.state,
        rounds=sorted((record.answers or {}).keys()),
        answers=record.answers,
    )
