import logging

logger = logging.getLogger("pitstop.audit")


def log_action(action: str, details: str | None = None, user_id: int | None = None) -> None:
    logger.info(
        "%s user=%s details=%s",
        action,
        user_id,
        details,
        extra={"action": action, "user_id": user_id, "details": details},
    )
