"""Failure taxonomy for the transcoding pipeline.

Everything raised out of a pipeline stage on purpose derives from
``PipelineError`` so the orchestrator and the Celery task can tell expected
failures from bugs in logs. Persist and cleanup problems are only logged and
have no exception class.
"""

STDERR_TAIL = 4000


def _tail(text: str, limit: int = STDERR_TAIL) -> str:
    text = (text or "").strip()
    return text[-limit:]


class PipelineError(Exception):
    pass


class InvalidJob(PipelineError):
    """Inbound queue payload is missing fields or malformed."""

    def __init__(self, errors):
        self.errors = errors
        super().__init__(f"Invalid job payload: {errors}")


class EncodeFailure(PipelineError):
    """ffmpeg exited nonzero, timed out, or could not be started."""

    def __init__(self, command, returncode=None, stderr="", *, timed_out=False):
        self.command = list(command)
        self.returncode = returncode
        self.stderr = _tail(stderr)
        self.timed_out = timed_out
        if timed_out:
            reason = "timed out"
        elif returncode is None:
            reason = "could not be started"
        else:
            reason = f"exited with code {returncode}"
        msg = f"{self.command[0] if self.command else 'encoder'} {reason}"
        if self.stderr:
            msg = f"{msg}: {self.stderr[-400:]}"
        super().__init__(msg)


class UploadFailure(PipelineError):
    """All attempts to store one object failed."""

    def __init__(self, key: str, attempts: int):
        self.key = key
        self.attempts = attempts
        super().__init__(f"Upload of {key} failed after {attempts} attempt(s)")


class ManifestWriteFailure(PipelineError):
    def __init__(self, path):
        self.path = path
        super().__init__(f"Could not write master playlist {path}")
