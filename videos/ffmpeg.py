import logging
import subprocess

from .errors import EncodeFailure

logger = logging.getLogger(__name__)


def run_ffmpeg(cmd: list[str], timeout: float | None = None) -> subprocess.CompletedProcess:
    """
    Run one ffmpeg invocation to completion.

    subprocess.run() kills the child on TimeoutExpired and on any other
    exception raised while waiting (e.g. Celery's SoftTimeLimitExceeded), so a
    stuck or abandoned encode never outlives the job.
    """
    logger.info("ffmpeg: %s", " ".join(str(c) for c in cmd))
    try:
        proc = subprocess.run(
            [str(c) for c in cmd],
            check=True,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            timeout=timeout,
        )
    except subprocess.CalledProcessError as e:
        err = e.stderr.decode("utf-8", errors="ignore") if e.stderr else ""
        logger.error("ffmpeg failed (code %s): %s", e.returncode, err[-400:])
        raise EncodeFailure(cmd, e.returncode, err) from e
    except subprocess.TimeoutExpired as e:
        err = e.stderr.decode("utf-8", errors="ignore") if e.stderr else ""
        logger.error("ffmpeg exceeded %ss limit", timeout)
        raise EncodeFailure(cmd, None, err, timed_out=True) from e
    except FileNotFoundError as e:
        raise EncodeFailure(cmd, None, str(e)) from e

    err = proc.stderr.decode("utf-8", errors="ignore").strip() if proc.stderr else ""
    if err:
        logger.debug("ffmpeg err: %s...", err[-400:])
    return proc
