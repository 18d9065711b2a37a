import subprocess

from loguru import logger

from focus_mode.settings import settings


def send_notification(summary: str, body: str = "", timeout_seconds: int | None = None):
    """Sends a desktop notification using notify-send."""
    logger.info(f"Sending notification: {summary} | {body}")
    cmd = ["notify-send", summary, body, "-a", settings.app_name]
    if timeout_seconds:
        cmd += ["-t", str(int(timeout_seconds * 1000))]
    try:
        subprocess.run(cmd, check=False)
    except FileNotFoundError:
        logger.error("notify-send not found. Install libnotify-bin.")
    except OSError as e:
        logger.error(f"Failed to send notification: {e}")
