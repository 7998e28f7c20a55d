"""
Persisted auth token

A single opaque token string stored in a JSON credentials file under a fixed
key. Its presence is the only input to startup session resolution.
"""

import json
import os
from pathlib import Path
from typing import Optional

import aiofiles

from portal.logging_config import logger


class TokenStore:
    """Reads and writes the token in <config_dir>/credentials.json"""

    def __init__(self, path: str, key: str = "authToken"):
        self.path = Path(path)
        self.key = key

    async def load(self) -> Optional[str]:
        """Return the stored token, or None if absent or unreadable"""
        if not self.path.exists():
            return None
        try:
            async with aiofiles.open(self.path, "r") as f:
                data = json.loads(await f.read())
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Could not read credentials file {self.path}: {e}")
            return None

        if not isinstance(data, dict):
            return None
        token = data.get(self.key)
        return token if isinstance(token, str) and token else None

    async def save(self, token: str) -> None:
        """Persist the token, replacing any previous one"""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(self.path, "w") as f:
            await f.write(json.dumps({self.key: token}, indent=2))

        # Secure the file (Unix only)
        try:
            os.chmod(self.path, 0o600)
        except OSError:
            pass

    async def clear(self) -> None:
        """Remove the stored token"""
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
