"""
Interface for simple local key-value persistence.

Used for the cached campaign rules and per-campaign debounce timestamps.
"""
from abc import ABC, abstractmethod
from typing import Dict, Optional
import os
import re
import tempfile

from bittensor.utils.btlogging import logging


class IKeyValueStore(ABC):
    """Interface for byte-valued key-value persistence."""
    
    @abstractmethod
    def get(self, key: str) -> Optional[bytes]:
        """
        Get the value stored under key.
        
        Args:
            key: Storage key
        
        Returns:
            Stored bytes, or None if the key has never been set
        """
        pass
    
    @abstractmethod
    def set(self, key: str, value: bytes) -> None:
        """
        Store value under key, replacing any previous value.
        
        Args:
            key: Storage key
            value: Bytes to store
        """
        pass


class InMemoryKeyValueStore(IKeyValueStore):
    """Process-local store. Nothing survives a restart."""
    
    def __init__(self):
        self._data: Dict[str, bytes] = {}
    
    def get(self, key: str) -> Optional[bytes]:
        return self._data.get(key)
    
    def set(self, key: str, value: bytes) -> None:
        self._data[key] = bytes(value)


class FileKeyValueStore(IKeyValueStore):
    """
    Store that keeps one file per key inside a directory.
    
    Values are written to a temporary file and moved into place with
    os.replace, so readers see either the old value or the new one.
    """
    
    _UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")
    
    def __init__(self, directory: str):
        """
        Initialize file store.
        
        Args:
            directory: Directory holding the value files. Created if missing.
        """
        self.directory = os.path.expanduser(directory)
        os.makedirs(self.directory, exist_ok=True)
    
    def _path_for(self, key: str) -> str:
        safe_key = self._UNSAFE_CHARS.sub("_", key)
        return os.path.join(self.directory, f"{safe_key}.bin")
    
    def get(self, key: str) -> Optional[bytes]:
        path = self._path_for(key)
        try:
            with open(path, "rb") as fh:
                return fh.read()
        except FileNotFoundError:
            return None
        except OSError as e:
            logging.warning(f"Failed to read key {key} from {path}: {e}")
            return None
    
    def set(self, key: str, value: bytes) -> None:
        path = self._path_for(key)
        fd, tmp_path = tempfile.mkstemp(dir=self.directory, prefix=".tmp-")
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(value)
            os.replace(tmp_path, path)
        except OSError:
            logging.error(f"Failed to write key {key} to {path}")
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
