import logging
import shutil
from pathlib import Path

logger = logging.getLogger(__name__)


class Workspace:
    """
    Per-job scratch directories:

        <root>/<job_id>/hls/<base_name>/
        <root>/<job_id>/thumbnails/<base_name>/

    Keyed by job id so two jobs for the same base name never share files.
    """

    def __init__(self, root: Path, job_id: str, base_name: str, source_path: Path):
        self.job_root = Path(root) / job_id
        self.hls_dir = self.job_root / "hls" / base_name
        self.thumbnails_dir = self.job_root / "thumbnails" / base_name
        self.source_path = Path(source_path)

    @classmethod
    def create(cls, root: Path, job_id: str, base_name: str, source_path: Path) -> "Workspace":
        ws = cls(root, job_id, base_name, source_path)
        # A redelivered job may find leftovers from a killed attempt
        if ws.job_root.exists():
            shutil.rmtree(ws.job_root)
        ws.hls_dir.mkdir(parents=True)
        ws.thumbnails_dir.mkdir(parents=True)
        return ws

    def cleanup(self, *, remove_source: bool = True) -> bool:
        """Remove the job directories (and the uploaded source). Never raises."""
        ok = True
        try:
            shutil.rmtree(self.job_root)
        except FileNotFoundError:
            pass
        except OSError as e:
            ok = False
            logger.warning("cleanup warning: could not remove %s: %s", self.job_root, e)

        if remove_source:
            try:
                self.source_path.unlink(missing_ok=True)
            except OSError as e:
                ok = False
                logger.warning("cleanup warning: could not remove source %s: %s", self.source_path, e)
        return ok

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.cleanup()
        return False
