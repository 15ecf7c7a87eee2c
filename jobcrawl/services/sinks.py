import asyncio
import json
import logging
import os
import re
from typing import List

from jobcrawl.core.errors import SinkError
from jobcrawl.models.job_model import PageResult

logger = logging.getLogger(__name__)


def _file_part(value: str) -> str:
    return re.sub(r"[^0-9A-Za-z+#.-]+", "_", value).strip("_")


class JsonDirectorySink:
    """Writes each page result to its own pretty-printed JSON file."""

    def __init__(self, output_dir: str, prefix: str = "linkedin"):
        self.output_dir = output_dir
        self.prefix = prefix
        os.makedirs(output_dir, exist_ok=True)

    def file_path(self, result: PageResult) -> str:
        name = f"{self.prefix}_{_file_part(result.query.text)}_{_file_part(result.query.location)}_{result.page_index}.json"
        return os.path.join(self.output_dir, name)

    def _write(self, path: str, result: PageResult) -> None:
        payload = [record.model_dump(mode="json") for record in result.records]
        with open(path, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, ensure_ascii=False)

    async def accept(self, result: PageResult) -> None:
        path = self.file_path(result)
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self._write, path, result)
        except OSError as e:
            raise SinkError(f"Could not write {path}: {e}") from e
        logger.info(f"Saved {len(result.records)} jobs to {path}")


class CollectingSink:
    """Keeps page results in memory, in arrival order."""

    def __init__(self):
        self.results: List[PageResult] = []

    async def accept(self, result: PageResult) -> None:
        self.results.append(result)
