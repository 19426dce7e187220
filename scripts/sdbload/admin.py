"""
Domain administration: create, delete and inspect the loader's domains.

These calls carry no throttling or batching; each domain gets one
request on the pool and all of them are waited on together.
"""
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Dict, List, Optional, Tuple

from .config import LoaderConfig, ERR_ADMIN_FAILED, MSG_CREATING_DOMAINS, MSG_DELETING_DOMAINS
from .logger import get_logger
from .partition import domain_names
from .store import SimpleDBStore, WriteFailure


class DomainAdmin:
    """Fan-out of per-domain administrative calls."""

    def __init__(self, store: SimpleDBStore, config: LoaderConfig):
        self.store = store
        self.config = config
        self.logger = get_logger()

    def domain_names(self) -> List[str]:
        return domain_names(self.config.domain_prefix, self.config.domain_count)

    def create_all(self) -> Tuple[int, List[WriteFailure]]:
        """
        Create every domain. Creating an existing domain is a no-op on SimpleDB.

        Returns:
            Tuple of (successful_count, failures)
        """
        self.logger.info(MSG_CREATING_DOMAINS, count=self.config.domain_count)
        return self._fan_out(self.store.create_domain, "create")

    def delete_all(self) -> Tuple[int, List[WriteFailure]]:
        """
        Delete every domain and all items in it.

        Returns:
            Tuple of (successful_count, failures)
        """
        self.logger.info(MSG_DELETING_DOMAINS, count=self.config.domain_count)
        return self._fan_out(self.store.delete_domain, "delete")

    def describe_all(self) -> Dict[str, Optional[dict]]:
        """Metadata for each configured domain; None for domains that do not exist."""
        existing = set(self.store.list_domains())
        result: Dict[str, Optional[dict]] = {}
        for name in self.domain_names():
            result[name] = self.store.domain_metadata(name) if name in existing else None
        return result

    def _fan_out(self, operation: Callable[[str], None], label: str) -> Tuple[int, List[WriteFailure]]:
        successful = 0
        failures: List[WriteFailure] = []
        names = self.domain_names()

        with ThreadPoolExecutor(max_workers=min(self.config.thread_count, len(names))) as executor:
            futures = {executor.submit(operation, name): name for name in names}

            for future in as_completed(futures):
                name = futures[future]
                error = future.exception()
                if error is None:
                    successful += 1
                    self.logger.debug(f"Domain {label} done", domain=name)
                    continue

                failure = WriteFailure.from_exception(name, 0, error)
                failures.append(failure)
                details = failure.details()
                details.pop("items")
                self.logger.error(f"{ERR_ADMIN_FAILED}: {label}", **details)

        return successful, failures
