"""
JSON file credential store.

Lets a command-line session survive restarts. The file holds one
serialized ``Credential``; a corrupt file is treated as no credential.
"""

from pathlib import Path

from pydantic import ValidationError

from billing_sync.config import get_logger
from billing_sync.core.entities.session import Credential
from billing_sync.core.interfaces import ICredentialStore

logger = get_logger(__name__)


class FileCredentialStore(ICredentialStore):
    """Credential persisted as JSON at ``path``."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def load(self) -> Credential | None:
        if not self.path.exists():
            return None
        try:
            return Credential.model_validate_json(self.path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as e:
            logger.warning("credential_file_unreadable", path=str(self.path), error=str(e))
            return None

    def save(self, credential: Credential) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(credential.model_dump_json(), encoding="utf-8")
        self.path.chmod(0o600)

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)
