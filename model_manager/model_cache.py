# DEPENDENCIES
import os
import sys
import time
import numpy as np
from typing import Any
from typing import Dict
from pathlib import Path
from typing import Optional

# Add parent directory to path for imports
sys.path.append(str(Path(__file__).parent.parent))

from utils.logger import log_info
from utils.logger import log_error


class EmbeddingDiskCache:
    """
    Persistent key/value tier for embeddings: one .npy file per content hash, with TTL

    Entries are content addressed and immutable; a fresh entry is never overwritten
    """
    SUFFIX = ".npy"

    def __init__(self, cache_dir: Path, ttl_seconds: int = 24 * 3600):
        self.cache_dir   = Path(cache_dir)
        self.cache_dir.mkdir(parents = True, exist_ok = True)
        self.ttl_seconds = ttl_seconds

        log_info("EmbeddingDiskCache initialized",
                 cache_dir   = str(self.cache_dir),
                 ttl_seconds = ttl_seconds,
                )


    def _get_cache_path(self, cache_key: str) -> Path:
        return self.cache_dir / f"{cache_key}{self.SUFFIX}"


    def _is_expired(self, cache_path: Path) -> bool:
        try:
            age = time.time() - cache_path.stat().st_mtime

        except FileNotFoundError:
            return True

        return age > self.ttl_seconds


    def get(self, cache_key: str) -> Optional[np.ndarray]:
        """
        Stored vector for cache_key, or None when absent or expired
        """
        cache_path = self._get_cache_path(cache_key)

        if self._is_expired(cache_path):
            return None

        try:
            with open(cache_path, "rb") as f:
                return np.load(f, allow_pickle = False)

        except (OSError, ValueError) as e:
            log_error(e, context = {"component" : "EmbeddingDiskCache", "operation" : "get", "cache_key" : cache_key})

            return None


    def put(self, cache_key: str, vector: np.ndarray) -> bool:
        """
        Store vector under cache_key unless a fresh entry already exists

        Returns:
        --------
            { bool } : True when a file was written
        """
        cache_path = self._get_cache_path(cache_key)

        if not self._is_expired(cache_path):
            return False

        tmp_path   = cache_path.with_name(f"{cache_path.name}.{os.getpid()}.tmp")

        try:
            with open(tmp_path, "wb") as f:
                np.save(f, np.asarray(vector), allow_pickle = False)

            os.replace(tmp_path, cache_path)

            return True

        except OSError as e:
            log_error(e, context = {"component" : "EmbeddingDiskCache", "operation" : "put", "cache_key" : cache_key})

            if tmp_path.exists():
                tmp_path.unlink()

            return False


    def clear_expired(self) -> int:
        expired_count = 0

        for cache_file in self.cache_dir.glob(f"*{self.SUFFIX}"):
            if self._is_expired(cache_file):
                cache_file.unlink(missing_ok = True)
                expired_count += 1

        log_info("Embedding cache cleanup completed", expired_files = expired_count)

        return expired_count


    def get_stats(self) -> Dict[str, Any]:
        cache_files = list(self.cache_dir.glob(f"*{self.SUFFIX}"))
        total_size  = sum(f.stat().st_size for f in cache_files)

        return {"total_files"   : len(cache_files),
                "expired_files" : sum(1 for f in cache_files if self._is_expired(f)),
                "total_size_mb" : round(total_size / (1024 * 1024), 4),
                "cache_dir"     : str(self.cache_dir),
                "ttl_seconds"   : self.ttl_seconds,
               }
