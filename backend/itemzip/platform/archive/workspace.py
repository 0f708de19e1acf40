"""Per-request temporary directory for archive staging."""

import os
import shutil
from pathlib import Path
from typing import Union
from uuid import uuid4

from itemzip.core.logging import ContextualLogger
from itemzip.platform.utils.async_helpers import run_in_thread_pool


class TempWorkspace:
    """Temporary directory owned by a single import or export request.

    The directory is keyed by a fresh UUID so concurrent requests never share
    staging files. ``cleanup`` is safe to call on every exit path.
    """

    def __init__(self, base_dir: Union[str, Path], workspace_id: str, logger: ContextualLogger):
        """Initialize the workspace (does not touch the filesystem).

        Args:
            base_dir: Parent directory of all workspaces (settings.TMP_FOLDER_PATH)
            workspace_id: Unique id of this workspace
            logger: Request logger
        """
        self.id = workspace_id
        self.path = Path(base_dir) / workspace_id
        self.logger = logger.with_context(workspace_id=workspace_id)
        self._cleaned = False

    @classmethod
    def create(cls, base_dir: Union[str, Path], logger: ContextualLogger) -> "TempWorkspace":
        """Create a new workspace directory."""
        workspace = cls(base_dir, str(uuid4()), logger)
        os.makedirs(workspace.path, exist_ok=False)
        workspace.logger.debug(f"Created workspace {workspace.path}")
        return workspace

    async def cleanup(self) -> None:
        """Remove the workspace directory.

        Never raises: a missing directory is logged, as are removal errors.
        """
        if self._cleaned:
            return
        self._cleaned = True

        if not self.path.exists():
            self.logger.error(f"{self.path} was not found, and was not deleted")
            return

        try:
            await run_in_thread_pool(shutil.rmtree, self.path)
            self.logger.debug(f"Removed workspace {self.path}")
        except OSError as e:
            self.logger.warning(f"Workspace cleanup error: {e}", exc_info=True)
